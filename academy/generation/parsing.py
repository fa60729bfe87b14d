"""
Strict parsing of generated payloads.

``parse_payload`` never raises: it returns a ParseResult tagged either ok (with the
validated value) or failed (with a FailureKind and message). Fallback values are a
pure function of the requested schema, so every call site substitutes the same
placeholder.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from academy.core.content import AssignmentContent, Question, TeacherPick
from academy.core.errors import FailureKind, SchemaViolationError

from .schemas import SchemaKind

V = TypeVar("V")

_ADAPTERS: dict[SchemaKind, TypeAdapter] = {
    SchemaKind.RESOURCE_LIST: TypeAdapter(list[TeacherPick]),
    SchemaKind.ASSIGNMENT: TypeAdapter(AssignmentContent),
    SchemaKind.QUESTION_SET: TypeAdapter(list[Question]),
}


@dataclass(frozen=True)
class ParseResult(Generic[V]):
    """Success-with-value or failure-with-kind."""

    value: V | None = None
    failure: FailureKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: V) -> ParseResult[V]:
        return cls(value=value)

    @classmethod
    def failed(cls, kind: FailureKind, message: str) -> ParseResult[V]:
        return cls(failure=kind, message=message)

    def unwrap(self) -> V:
        """Return the value or raise SchemaViolationError."""
        if self.failure is not None:
            raise SchemaViolationError(self.message, kind=self.failure)
        return self.value  # type: ignore[return-value]


def parse_payload(kind: SchemaKind, text: str | None, expected_count: int | None = None) -> ParseResult:
    """
    Parse and validate a generated JSON payload against one of the schemas.

    Args:
        kind: Which schema the request declared
        text: The candidate text (None when the response had no candidate)
        expected_count: For list payloads, the exact number of items required
    """
    if text is None or not text.strip():
        return ParseResult.failed(FailureKind.EMPTY, "No content was generated")

    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        return ParseResult.failed(FailureKind.MALFORMED_JSON, f"Malformed JSON: {e}")

    try:
        value = _ADAPTERS[kind].validate_python(data)
    except ValidationError as e:
        return ParseResult.failed(
            FailureKind.SCHEMA_MISMATCH,
            f"Response does not match the {kind.value} schema: {e.error_count()} error(s)",
        )

    if isinstance(value, list):
        if not value:
            return ParseResult.failed(FailureKind.EMPTY, "Generated list is empty")
        if expected_count is not None and len(value) != expected_count:
            return ParseResult.failed(
                FailureKind.SCHEMA_MISMATCH,
                f"Expected {expected_count} items, got {len(value)}",
            )

    return ParseResult.success(value)


# =============================================================================
# Fallbacks
# =============================================================================

PICKS_MALFORMED_TITLE = "Could not generate specific picks. Please try again or add manually."
PICKS_EMPTY_TITLE = "No specific picks generated. Please add your own resources."


def fallback_teacher_picks(failure: FailureKind) -> list[TeacherPick]:
    """Placeholder resource list; wording depends only on why parsing failed."""
    title = PICKS_EMPTY_TITLE if failure == FailureKind.EMPTY else PICKS_MALFORMED_TITLE
    return [TeacherPick(title=title, url="#")]


def fallback_assignment(module_name: str) -> AssignmentContent:
    """Minimal schema-valid assignment so the learner can continue."""
    return AssignmentContent.model_validate(
        {
            "title": f"Generic Assignment for {module_name}",
            "total_marks": 100,
            "scenario": {
                "title": "Generic Scenario",
                "description": "This is a fallback assignment.",
            },
            "sections": [
                {
                    "section_id": "fallback1",
                    "section_title": "Part 1: Fallback Tasks",
                    "marks": 50,
                    "sub_scenario": {
                        "title": "Fallback Sub-scenario",
                        "description": "Review basic concepts.",
                    },
                    "tasks": [
                        {
                            "task_id": "F1.1",
                            "task_description": "Complete task A.",
                            "marks": 25,
                            "type": "text_input",
                        }
                    ],
                }
            ],
            "resources": [],
        }
    )


def fallback_for(kind: SchemaKind, module_name: str, failure: FailureKind) -> Any:
    """
    Fallback value for a failed payload.

    Question sets have no fallback: an empty list is returned and the learner has
    to generate again.
    """
    if kind == SchemaKind.RESOURCE_LIST:
        return fallback_teacher_picks(failure)
    if kind == SchemaKind.ASSIGNMENT:
        return fallback_assignment(module_name)
    return []
