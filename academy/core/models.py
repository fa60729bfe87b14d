"""
Module record and its persisted document format.

One Module per topic of study. Documents use the store's camelCase field names
(teacherPicks, assignmentContent, finalTestScore, ...) so that existing learner
data stays readable.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import ValidationError

from .content import AssignmentContent, TeacherPick


class ModuleStatus(str, Enum):
    """Persisted progress status of a module."""

    STARTED = "started"
    RESOURCES_ADDED = "resources_added"
    ASSIGNMENT_DONE = "assignment_done"
    COMPLETED = "completed"
    NEEDS_REVISIT = "needs_revisit"

    @property
    def is_finished(self) -> bool:
        return self in (ModuleStatus.COMPLETED, ModuleStatus.NEEDS_REVISIT)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_module_id() -> str:
    """Opaque, never-reused module identifier."""
    return f"module-{uuid.uuid4().hex}"


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return utc_now()
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class QuizAttempt:
    """A recorded quiz submission."""

    score: float
    date: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "date": self.date.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuizAttempt:
        return cls(score=float(data.get("score", 0.0)), date=_parse_timestamp(data.get("date")))


@dataclass
class AssignmentProgress:
    """Assignment completion flag and the learner's (ungraded) responses."""

    completed: bool = False
    responses: dict[str, dict[str, str]] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.completed:
            data["completed"] = True
        if self.responses is not None:
            data["responses"] = self.responses
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AssignmentProgress:
        data = data or {}
        return cls(completed=bool(data.get("completed", False)), responses=data.get("responses"))


@dataclass
class Module:
    """A unit of study with its resources, assignment, quizzes and final test."""

    id: str
    name: str
    status: ModuleStatus = ModuleStatus.STARTED
    resources: list[str] = field(default_factory=list)
    teacher_picks: list[TeacherPick] = field(default_factory=list)
    assignment_content: AssignmentContent | None = None
    assignments: AssignmentProgress = field(default_factory=AssignmentProgress)
    quizzes: list[QuizAttempt] = field(default_factory=list)
    final_test_score: float = 0.0
    certificate_issued: bool = False
    created_at: datetime = field(default_factory=utc_now)
    last_updated: datetime = field(default_factory=utc_now)

    @classmethod
    def new(cls, name: str, module_id: str | None = None) -> Module:
        """Create a fresh module in the `started` state."""
        now = utc_now()
        return cls(id=module_id or new_module_id(), name=name, created_at=now, last_updated=now)

    @property
    def has_generated_content(self) -> bool:
        return self.assignment_content is not None and bool(self.teacher_picks)

    @property
    def section_count(self) -> int:
        return self.assignment_content.section_count if self.assignment_content else 0

    def touch(self) -> str:
        """Refresh lastUpdated and return it in document form."""
        self.last_updated = utc_now()
        return self.last_updated.isoformat()

    # -------------------------------------------------------------------------
    # Document conversion
    # -------------------------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        """Full document (without the id, which is the document key)."""
        return {
            "name": self.name,
            "status": self.status.value,
            "resources": list(self.resources),
            "teacherPicks": [pick.model_dump() for pick in self.teacher_picks],
            "assignmentContent": (
                self.assignment_content.model_dump() if self.assignment_content else None
            ),
            "assignments": self.assignments.to_dict(),
            "quizzes": [attempt.to_dict() for attempt in self.quizzes],
            "finalTestScore": self.final_test_score,
            "certificateIssued": self.certificate_issued,
            "createdAt": self.created_at.isoformat(),
            "lastUpdated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_document(cls, module_id: str, data: dict[str, Any]) -> Module:
        """Build a Module from a stored document, tolerating missing fields."""
        picks = []
        for item in data.get("teacherPicks") or []:
            try:
                picks.append(TeacherPick.model_validate(item))
            except ValidationError:
                continue

        assignment = None
        if data.get("assignmentContent"):
            try:
                assignment = AssignmentContent.model_validate(data["assignmentContent"])
            except ValidationError:
                assignment = None

        return cls(
            id=module_id,
            name=data.get("name", ""),
            status=ModuleStatus(data.get("status", ModuleStatus.STARTED.value)),
            resources=list(data.get("resources") or []),
            teacher_picks=picks,
            assignment_content=assignment,
            assignments=AssignmentProgress.from_dict(data.get("assignments")),
            quizzes=[QuizAttempt.from_dict(q) for q in data.get("quizzes") or []],
            final_test_score=float(data.get("finalTestScore", 0.0)),
            certificate_issued=bool(data.get("certificateIssued", False)),
            created_at=_parse_timestamp(data.get("createdAt")),
            last_updated=_parse_timestamp(data.get("lastUpdated")),
        )
