"""
Core domain types shared across the study, generation and sync layers.
"""

from .content import AssignmentContent, Question, TeacherPick
from .errors import (
    AcademyError,
    AuthError,
    ConfigurationError,
    FailureKind,
    NetworkError,
    PersistenceError,
    SchemaViolationError,
    TransitionError,
)
from .models import AssignmentProgress, Module, ModuleStatus, QuizAttempt

__all__ = [
    "AcademyError",
    "AssignmentContent",
    "AssignmentProgress",
    "AuthError",
    "ConfigurationError",
    "FailureKind",
    "Module",
    "ModuleStatus",
    "NetworkError",
    "PersistenceError",
    "Question",
    "QuizAttempt",
    "SchemaViolationError",
    "TeacherPick",
    "TransitionError",
]
