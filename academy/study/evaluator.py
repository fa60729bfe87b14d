"""
Assessment Evaluator.

score = correct / total * 100, by exact equality of the selected option key and
the question's correctAnswer. Unanswered questions count as wrong.

- Quiz: every submission is appended to ``quizzes``; status is untouched. The pass
  threshold only decides whether the learner may move on to the final test.
- Final test: overwrites ``finalTestScore`` and sets ``status`` and
  ``certificateIssued`` from the threshold.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from academy.core.content import Question
from academy.core.models import Module, ModuleStatus, QuizAttempt

from .phases import PASS_THRESHOLD

MASTERED_COMMENT = "Congratulations! You have mastered this module."
REVISIT_COMMENT = "This module requires further study and practice."


def score_answers(questions: Sequence[Question], answers: Mapping[int, str]) -> float:
    """Percentage of questions whose selected option matches the correct answer."""
    if not questions:
        raise ValueError("Cannot score an assessment without questions")
    correct = sum(1 for index, question in enumerate(questions) if answers.get(index) == question.correctAnswer)
    # Multiply first so 4 of 5 is exactly 80.0
    return correct * 100 / len(questions)


def is_passing(score: float, threshold: float = PASS_THRESHOLD) -> bool:
    return score >= threshold


@dataclass(frozen=True)
class ScoreDetails:
    """What the results phase shows."""

    score: float
    comment: str
    certificate_issued: bool

    @classmethod
    def for_module(cls, module: Module) -> ScoreDetails:
        return cls(
            score=module.final_test_score,
            comment=MASTERED_COMMENT if module.status == ModuleStatus.COMPLETED else REVISIT_COMMENT,
            certificate_issued=module.certificate_issued,
        )


@dataclass(frozen=True)
class QuizResult:
    score: float
    passed: bool
    attempt: QuizAttempt
    update: dict[str, Any]


@dataclass(frozen=True)
class FinalTestResult:
    score: float
    certificate_issued: bool
    status: ModuleStatus
    details: ScoreDetails
    update: dict[str, Any]


def record_quiz(
    module: Module,
    questions: Sequence[Question],
    answers: Mapping[int, str],
    threshold: float = PASS_THRESHOLD,
) -> QuizResult:
    """Score a quiz, append the attempt to the module and return the partial update."""
    score = score_answers(questions, answers)
    attempt = QuizAttempt(score=score)
    module.quizzes.append(attempt)
    last_updated = module.touch()
    return QuizResult(
        score=score,
        passed=is_passing(score, threshold),
        attempt=attempt,
        update={
            "quizzes": [q.to_dict() for q in module.quizzes],
            "lastUpdated": last_updated,
        },
    )


def record_final_test(
    module: Module,
    questions: Sequence[Question],
    answers: Mapping[int, str],
    threshold: float = PASS_THRESHOLD,
) -> FinalTestResult:
    """Score a final test and overwrite the module's final result."""
    score = score_answers(questions, answers)
    certificate_issued = is_passing(score, threshold)
    status = ModuleStatus.COMPLETED if certificate_issued else ModuleStatus.NEEDS_REVISIT

    module.final_test_score = score
    module.certificate_issued = certificate_issued
    module.status = status
    last_updated = module.touch()

    return FinalTestResult(
        score=score,
        certificate_issued=certificate_issued,
        status=status,
        details=ScoreDetails.for_module(module),
        update={
            "finalTestScore": score,
            "certificateIssued": certificate_issued,
            "status": status.value,
            "lastUpdated": last_updated,
        },
    )
