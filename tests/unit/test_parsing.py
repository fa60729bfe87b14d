"""
Unit tests for generated payload parsing and fallbacks.
"""

import json

import pytest

from academy.core.content import AssignmentContent, Question, TeacherPick
from academy.core.errors import FailureKind, SchemaViolationError
from academy.generation.parsing import (
    PICKS_EMPTY_TITLE,
    PICKS_MALFORMED_TITLE,
    fallback_assignment,
    fallback_for,
    parse_payload,
)
from academy.generation.schemas import SchemaKind


class TestParsePayload:
    """Tests for parse_payload()."""

    @pytest.mark.parametrize("text", [None, "", "   \n"])
    def test_empty_candidate(self, text):
        result = parse_payload(SchemaKind.ASSIGNMENT, text)

        assert not result.ok
        assert result.failure == FailureKind.EMPTY

    def test_malformed_json(self):
        result = parse_payload(SchemaKind.RESOURCE_LIST, "[{'title': oops")

        assert result.failure == FailureKind.MALFORMED_JSON
        assert "Malformed JSON" in result.message

    def test_schema_mismatch(self, sample_assignment):
        del sample_assignment["scenario"]

        result = parse_payload(SchemaKind.ASSIGNMENT, json.dumps(sample_assignment))

        assert result.failure == FailureKind.SCHEMA_MISMATCH

    def test_resource_list_success(self, sample_picks):
        result = parse_payload(SchemaKind.RESOURCE_LIST, json.dumps(sample_picks))

        assert result.ok
        assert len(result.value) == 4
        assert all(isinstance(pick, TeacherPick) for pick in result.value)
        assert result.value[3].url is None

    def test_empty_resource_list_is_empty_failure(self):
        result = parse_payload(SchemaKind.RESOURCE_LIST, "[]")

        assert result.failure == FailureKind.EMPTY

    def test_assignment_success(self, sample_assignment):
        result = parse_payload(SchemaKind.ASSIGNMENT, json.dumps(sample_assignment))

        assert result.ok
        assert isinstance(result.value, AssignmentContent)
        assert result.value.section_count == 3
        assert result.value.sections[0].tasks[1].language == "python"

    def test_invalid_task_type_is_mismatch(self, sample_assignment):
        sample_assignment["sections"][0]["tasks"][0]["type"] = "essay"

        result = parse_payload(SchemaKind.ASSIGNMENT, json.dumps(sample_assignment))

        assert result.failure == FailureKind.SCHEMA_MISMATCH

    def test_question_set_success(self, sample_questions):
        result = parse_payload(SchemaKind.QUESTION_SET, json.dumps(sample_questions), expected_count=5)

        assert result.ok
        assert all(isinstance(q, Question) for q in result.value)
        assert result.value[0].correct_answer == "A"

    def test_question_count_mismatch(self, question_factory):
        result = parse_payload(SchemaKind.QUESTION_SET, json.dumps(question_factory(4)), expected_count=5)

        assert result.failure == FailureKind.SCHEMA_MISMATCH
        assert "Expected 5" in result.message

    def test_correct_answer_outside_options(self, question_factory):
        result = parse_payload(SchemaKind.QUESTION_SET, json.dumps(question_factory(5, correct="E")))

        assert result.failure == FailureKind.SCHEMA_MISMATCH

    def test_unwrap_raises_schema_violation(self):
        result = parse_payload(SchemaKind.QUESTION_SET, "not json")

        with pytest.raises(SchemaViolationError) as exc_info:
            result.unwrap()
        assert exc_info.value.kind == FailureKind.MALFORMED_JSON


class TestFallbacks:
    """Fallbacks depend only on the schema (and why parsing failed)."""

    def test_picks_fallback_wording(self):
        malformed = fallback_for(SchemaKind.RESOURCE_LIST, "Topology", FailureKind.MALFORMED_JSON)
        empty = fallback_for(SchemaKind.RESOURCE_LIST, "Topology", FailureKind.EMPTY)

        assert malformed == [TeacherPick(title=PICKS_MALFORMED_TITLE, url="#")]
        assert empty == [TeacherPick(title=PICKS_EMPTY_TITLE, url="#")]

    def test_assignment_fallback_is_schema_valid(self):
        fallback = fallback_assignment("Topology")

        assert fallback.title == "Generic Assignment for Topology"
        assert fallback.section_count == 1
        # Round trip through the same validator the service output goes through
        assert parse_payload(SchemaKind.ASSIGNMENT, fallback.model_dump_json()).ok

    def test_question_set_has_no_fallback(self):
        assert fallback_for(SchemaKind.QUESTION_SET, "Topology", FailureKind.EMPTY) == []
