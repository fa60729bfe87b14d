"""
Pydantic models for generated content.

These mirror the response schemas sent to the generative service and are used to
validate its JSON payloads:
- TeacherPick: one curated resource recommendation
- AssignmentContent: scenario + ordered sections of tasks + resources
- Question: one four-option multiple-choice question (never persisted)
"""

from __future__ import annotations

from typing import Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

OptionKey = Literal["A", "B", "C", "D"]
OPTION_KEYS: tuple[str, ...] = ("A", "B", "C", "D")


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TeacherPick(_Payload):
    """A curated resource produced by the content generator."""

    title: str
    url: str | None = None

    def prompt_label(self) -> str:
        """Label used when citing this pick in an assessment prompt."""
        if self.url and self.url != "#":
            return self.url
        return self.title


class Scenario(_Payload):
    title: str
    description: str


class AssignmentTask(_Payload):
    task_id: str
    task_description: str
    marks: float
    type: Literal["text_input", "code_input"]
    language: str | None = None


class AssignmentSection(_Payload):
    section_id: str
    section_title: str
    marks: float
    sub_scenario: Scenario
    tasks: list[AssignmentTask]


class AssignmentResource(_Payload):
    title: str
    url: str
    type: Literal["website", "video", "pdf", "book"]
    category: str


class AssignmentContent(_Payload):
    """Structured multi-section assignment for a module."""

    title: str
    total_marks: float
    scenario: Scenario
    sections: list[AssignmentSection]
    resources: list[AssignmentResource] = Field(default_factory=list)

    @property
    def section_count(self) -> int:
        return len(self.sections)

    def marks_consistent(self) -> bool:
        """
        Check that task marks sum to section marks and section marks to total_marks.

        Generated content is accepted either way; this is only reported.
        """
        section_sum = sum(section.marks for section in self.sections)
        if abs(section_sum - self.total_marks) > 1e-6:
            return False
        for section in self.sections:
            task_sum = sum(task.marks for task in section.tasks)
            if abs(task_sum - section.marks) > 1e-6:
                return False
        return True

    def log_marks_inconsistency(self) -> None:
        if not self.marks_consistent():
            logger.warning(f"Assignment '{self.title}' marks do not add up to total_marks={self.total_marks}")


class QuestionOptions(_Payload):
    A: str
    B: str
    C: str
    D: str

    def items(self) -> list[tuple[str, str]]:
        return [(key, getattr(self, key)) for key in OPTION_KEYS]


class Question(_Payload):
    """Multiple-choice question, alive only for one quiz/final-test attempt."""

    question: str
    options: QuestionOptions
    correctAnswer: OptionKey

    @property
    def correct_answer(self) -> str:
        return self.correctAnswer
