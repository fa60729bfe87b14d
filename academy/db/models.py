"""
Document table.

Every document lives at a slash-separated path such as
``apps/{appId}/users/{userId}/modules/{moduleId}``; ``collection`` is the path
without the final segment so a collection can be queried in one index scan.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class StoredDocument(Base):
    """One JSON document in the store."""

    __tablename__ = "documents"

    path: Mapped[str] = mapped_column(Text, primary_key=True)
    collection: Mapped[str] = mapped_column(Text, nullable=False)
    document_id: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("ix_documents_collection", "collection"),)
