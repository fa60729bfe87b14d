"""
Learner-visible phases and their derivation from a persisted module.

The phase is never stored. ``derive_phase`` is the single place that maps a
module's status and content to the phase shown when the module is (re)selected.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from academy.core.models import Module, ModuleStatus

PASS_THRESHOLD = 80.0


class Phase(str, Enum):
    MODULE_SELECT = "moduleSelect"
    RESOURCES = "resources"
    ASSIGNMENT = "assignment"
    QUIZ = "quiz"
    FINAL_TEST = "finalTest"
    RESULTS = "results"


@dataclass(frozen=True)
class PhaseDecision:
    phase: Phase
    needs_generation: bool = False


def all_quizzes_passed(module: Module, threshold: float = PASS_THRESHOLD) -> bool:
    return bool(module.quizzes) and all(q.score >= threshold for q in module.quizzes)


def any_quiz_passed(module: Module, threshold: float = PASS_THRESHOLD) -> bool:
    return any(q.score >= threshold for q in module.quizzes)


def derive_phase(module: Module, threshold: float = PASS_THRESHOLD) -> PhaseDecision:
    """
    Map a module to the phase it opens in.

    Order matters:
    1. finished (completed / needs_revisit) -> results
    2. content missing -> assignment, generation required first
    3. assignment_done -> quiz
    4. every recorded quiz passed -> finalTest
    5. otherwise -> assignment
    """
    if module.status.is_finished:
        return PhaseDecision(Phase.RESULTS)
    if not module.has_generated_content:
        return PhaseDecision(Phase.ASSIGNMENT, needs_generation=True)
    if module.status == ModuleStatus.ASSIGNMENT_DONE:
        return PhaseDecision(Phase.QUIZ)
    if all_quizzes_passed(module, threshold):
        return PhaseDecision(Phase.FINAL_TEST)
    return PhaseDecision(Phase.ASSIGNMENT)
