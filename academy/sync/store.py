"""
SQLAlchemy-backed document store.

Provides the four document operations the synchronizer relies on:
- set:   full write (create or replace)
- merge: field-level upsert, unspecified top-level fields untouched
- get:   one-shot read
- query: up to ``limit`` documents of a collection, in no particular order

plus a change feed: ``watch(collection, callback)`` invokes ``callback(collection)``
after every committed write to that collection, on the writing thread.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from loguru import logger
from sqlalchemy import Engine, select
from sqlalchemy.exc import SQLAlchemyError

from academy.core.errors import PersistenceError
from academy.db.database import get_engine, init_db, make_session_factory, session_scope
from academy.db.models import StoredDocument

from .subscription import Subscription

ChangeCallback = Callable[[str], None]


def split_path(path: str) -> tuple[str, str]:
    """Split a document path into (collection, document_id)."""
    collection, _, document_id = path.strip("/").rpartition("/")
    if not collection or not document_id:
        raise ValueError(f"Not a document path: {path!r}")
    return collection, document_id


class DocumentStore:
    """JSON documents keyed by path, with per-collection change notification."""

    def __init__(self, engine: Engine | None = None, create_tables: bool = True):
        self.engine = engine or get_engine()
        self._sessions = make_session_factory(self.engine)
        self._listeners: dict[str, list[ChangeCallback]] = defaultdict(list)
        self._lock = threading.Lock()
        # Serializes read-modify-write cycles within this process
        self._write_lock = threading.Lock()
        if create_tables:
            init_db(self.engine)

    # -------------------------------------------------------------------------
    # Document operations
    # -------------------------------------------------------------------------

    def set(self, path: str, data: dict[str, Any]) -> None:
        collection, document_id = split_path(path)
        try:
            with self._write_lock, session_scope(self._sessions) as session:
                row = session.get(StoredDocument, path, with_for_update=True)
                if row is None:
                    session.add(
                        StoredDocument(
                            path=path,
                            collection=collection,
                            document_id=document_id,
                            data=dict(data),
                        )
                    )
                else:
                    row.data = dict(data)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e
        self._notify(collection)

    def merge(self, path: str, partial: dict[str, Any]) -> None:
        collection, document_id = split_path(path)
        try:
            with self._write_lock, session_scope(self._sessions) as session:
                # Row lock keeps writers in other processes out on PostgreSQL
                row = session.get(StoredDocument, path, with_for_update=True)
                if row is None:
                    session.add(
                        StoredDocument(
                            path=path,
                            collection=collection,
                            document_id=document_id,
                            data=dict(partial),
                        )
                    )
                else:
                    # Reassign so the JSON column is flagged dirty
                    row.data = {**row.data, **partial}
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update {path}: {e}") from e
        self._notify(collection)

    def get(self, path: str) -> dict[str, Any] | None:
        try:
            with session_scope(self._sessions) as session:
                row = session.get(StoredDocument, path)
                return dict(row.data) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e

    def query(self, collection: str, limit: int) -> list[tuple[str, dict[str, Any]]]:
        try:
            with session_scope(self._sessions) as session:
                rows = session.scalars(
                    select(StoredDocument)
                    .where(StoredDocument.collection == collection.strip("/"))
                    .limit(limit)
                ).all()
                return [(row.document_id, dict(row.data)) for row in rows]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to query {collection}: {e}") from e

    # -------------------------------------------------------------------------
    # Change feed
    # -------------------------------------------------------------------------

    def watch(self, collection: str, callback: ChangeCallback) -> Subscription:
        key = collection.strip("/")
        with self._lock:
            self._listeners[key].append(callback)

        def _remove() -> None:
            with self._lock:
                if callback in self._listeners.get(key, []):
                    self._listeners[key].remove(callback)

        return Subscription(on_close=_remove)

    def listener_count(self, collection: str) -> int:
        with self._lock:
            return len(self._listeners.get(collection.strip("/"), []))

    def _notify(self, collection: str) -> None:
        with self._lock:
            callbacks = list(self._listeners.get(collection, []))
        for callback in callbacks:
            try:
                callback(collection)
            except Exception as e:  # Intentionally broad - one bad listener must not break writes
                logger.error(f"Change listener for {collection} failed: {e}")
