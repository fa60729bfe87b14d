"""
Study flow: phase derivation, scoring, the per-module state machine and the registry.
"""

from .evaluator import FinalTestResult, QuizResult, ScoreDetails, score_answers
from .phases import PASS_THRESHOLD, Phase, PhaseDecision, derive_phase
from .registry import ModuleRegistry
from .session import ModuleSession, Notice

__all__ = [
    "FinalTestResult",
    "ModuleRegistry",
    "ModuleSession",
    "Notice",
    "PASS_THRESHOLD",
    "Phase",
    "PhaseDecision",
    "QuizResult",
    "ScoreDetails",
    "derive_phase",
    "score_answers",
]
