"""
Unit tests for the Assessment Generator and its prompts.
"""

import httpx
import pytest

from academy.core.content import AssignmentContent, TeacherPick
from academy.core.errors import ConfigurationError
from academy.core.models import Module
from academy.generation.assessment_generator import (
    ASSESSMENT_METRICS,
    GENERATION_FAILED_NOTICE,
    AssessmentGenerator,
    resource_labels,
)
from academy.generation.prompts import STANDARD_MATERIALS, AssessmentVariant, get_assessment_prompt
from academy.generation.schemas import SchemaKind


@pytest.fixture
def generator(client):
    return AssessmentGenerator(client, question_count=5)


@pytest.fixture
def module(sample_assignment):
    module = Module.new("Graph Theory Basics")
    module.resources = ["My lecture notes"]
    module.teacher_picks = [
        TeacherPick(title="Trudeau", url="https://example.org/trudeau"),
        TeacherPick(title="Search for lecture notes", url="#"),
    ]
    module.assignment_content = AssignmentContent.model_validate(sample_assignment)
    return module


class TestPrompts:
    """Tests for assessment prompt construction."""

    def test_resource_labels_order(self, module):
        assert resource_labels(module) == [
            "My lecture notes",
            "https://example.org/trudeau",
            "Search for lecture notes",
        ]

    def test_prompt_cites_resources(self, module):
        prompt = get_assessment_prompt(module.name, AssessmentVariant.QUIZ, resource_labels(module))

        assert '5 questions about "Graph Theory Basics"' in prompt
        assert "My lecture notes, https://example.org/trudeau" in prompt
        assert "practice quiz" in prompt

    def test_prompt_without_resources_uses_standard_materials(self):
        prompt = get_assessment_prompt("Topology", AssessmentVariant.FINAL_TEST, [])

        assert STANDARD_MATERIALS in prompt
        assert "comprehensive final test" in prompt


class TestAssessmentGenerator:
    """Tests for AssessmentGenerator.generate()."""

    @pytest.mark.asyncio
    async def test_generates_five_questions(self, generator, module, gemini, sample_questions):
        gemini.respond(SchemaKind.QUESTION_SET, sample_questions)

        assessment = await generator.generate(module, AssessmentVariant.QUIZ)

        assert assessment.ready
        assert len(assessment.questions) == 5
        assert assessment.error is None
        assert assessment.metrics == ASSESSMENT_METRICS[AssessmentVariant.QUIZ]

    @pytest.mark.asyncio
    async def test_metrics_depend_only_on_variant(self, generator, module, gemini, sample_questions):
        gemini.respond(SchemaKind.QUESTION_SET, sample_questions)

        assessment = await generator.generate(module, AssessmentVariant.FINAL_TEST)

        assert assessment.metrics.difficulty == "High Graduate Level"
        assert assessment.metrics.learning_time == "2-3 hours for completion"

    @pytest.mark.asyncio
    async def test_malformed_payload_yields_no_questions(self, generator, module, gemini):
        gemini.respond(SchemaKind.QUESTION_SET, text="Here are your questions: ...")

        assessment = await generator.generate(module, AssessmentVariant.QUIZ)

        assert not assessment.ready
        assert assessment.error == GENERATION_FAILED_NOTICE

    @pytest.mark.asyncio
    async def test_wrong_question_count_yields_no_questions(self, generator, module, gemini, question_factory):
        gemini.respond(SchemaKind.QUESTION_SET, question_factory(3))

        assessment = await generator.generate(module, AssessmentVariant.QUIZ)

        assert assessment.questions == []
        assert assessment.error == GENERATION_FAILED_NOTICE

    @pytest.mark.asyncio
    async def test_network_error_message(self, generator, module, gemini):
        gemini.respond(SchemaKind.QUESTION_SET, error=httpx.ReadTimeout("timed out"))

        assessment = await generator.generate(module, AssessmentVariant.QUIZ)

        assert assessment.questions == []
        assert assessment.error.startswith("Error generating test: Network error")

    @pytest.mark.asyncio
    async def test_missing_key(self, generator, module, gemini):
        generator.client.api_key = ""

        with pytest.raises(ConfigurationError):
            await generator.generate(module, AssessmentVariant.QUIZ)
        assert gemini.calls == []

    @pytest.mark.asyncio
    async def test_request_uses_question_set_schema(self, generator, module, gemini, sample_questions):
        gemini.respond(SchemaKind.QUESTION_SET, sample_questions)

        await generator.generate(module, AssessmentVariant.QUIZ)

        kind, kwargs = gemini.calls[0]
        assert kind == SchemaKind.QUESTION_SET
        prompt = kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert "Graph Theory Basics" in prompt
