"""
Persistence Synchronizer.

Per-user access to module documents at
``apps/{appId}/users/{userId}/modules/{moduleId}``.

Every call is a suspension point: store work runs on a worker thread so the event
loop keeps processing other events. Callers update their in-memory state before
(or independently of) write confirmation; there is no read-after-write guarantee.
"""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from academy.core.errors import PersistenceError
from academy.core.models import Module

from .store import DocumentStore
from .subscription import StreamSubscription

DEFAULT_QUERY_LIMIT = 100


def sort_newest_first(modules: list[Module]) -> list[Module]:
    """The store does not order snapshots; sort by createdAt descending."""
    return sorted(modules, key=lambda m: m.created_at, reverse=True)


class ModuleSnapshotStream(StreamSubscription[list[Module]]):
    """
    Stream of full module-list snapshots.

    Yields one snapshot right after subscribing and one after every change to the
    user's module collection. Refreshes run one at a time so snapshots never go
    backwards in time.
    """

    def __init__(self, synchronizer: PersistenceSynchronizer, limit: int):
        super().__init__(on_close=self._release)
        self._synchronizer = synchronizer
        self._limit = limit
        self._loop = asyncio.get_running_loop()
        self._refresh_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._watch = synchronizer.store.watch(synchronizer.collection_path, self._on_change)
        self._schedule_refresh()

    def _on_change(self, _collection: str) -> None:
        # Called on the writer's thread
        if self.closed or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._schedule_refresh)

    def _schedule_refresh(self) -> None:
        if self.closed:
            return
        task = self._loop.create_task(self._refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh(self) -> None:
        async with self._refresh_lock:
            if self.closed:
                return
            try:
                modules = await self._synchronizer.list_modules(self._limit)
            except PersistenceError as e:
                self.fail(e)
                return
            self.push(sort_newest_first(modules))

    def _release(self) -> None:
        self._watch.close()
        current = asyncio.current_task() if self._loop.is_running() else None
        for task in list(self._tasks):
            if task is not current:
                task.cancel()
        logger.debug(f"Released module subscription for {self._synchronizer.collection_path}")


class PersistenceSynchronizer:
    """Read/write/subscribe access to one user's module documents."""

    def __init__(self, store: DocumentStore, app_id: str, user_id: str):
        if not user_id:
            raise PersistenceError("A signed-in user is required for module storage")
        self.store = store
        self.app_id = app_id
        self.user_id = user_id

    @property
    def collection_path(self) -> str:
        return f"apps/{self.app_id}/users/{self.user_id}/modules"

    def document_path(self, module_id: str) -> str:
        return f"{self.collection_path}/{module_id}"

    async def create(self, module: Module) -> None:
        """Full write of a new module document."""
        await asyncio.to_thread(self.store.set, self.document_path(module.id), module.to_document())
        logger.info(f"Module {module.id} created ({module.name!r})")

    async def merge_update(self, module_id: str, partial: dict[str, Any]) -> None:
        """Field-level upsert; fields not in ``partial`` are left untouched."""
        await asyncio.to_thread(self.store.merge, self.document_path(module_id), partial)
        logger.debug(f"Module {module_id} updated: {sorted(partial)}")

    async def get_once(self, module_id: str) -> Module | None:
        data = await asyncio.to_thread(self.store.get, self.document_path(module_id))
        if data is None:
            return None
        try:
            return Module.from_document(module_id, data)
        except (ValueError, TypeError) as e:
            raise PersistenceError(f"Unreadable module document {module_id}: {e}") from e

    async def list_modules(self, limit: int = DEFAULT_QUERY_LIMIT) -> list[Module]:
        """One-shot read of up to ``limit`` modules, unordered."""
        rows = await asyncio.to_thread(self.store.query, self.collection_path, limit)
        modules = []
        for module_id, data in rows:
            try:
                modules.append(Module.from_document(module_id, data))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping unreadable module document {module_id}: {e}")
        return modules

    def subscribe(self, limit: int = DEFAULT_QUERY_LIMIT) -> ModuleSnapshotStream:
        """Subscribe to full snapshots of the module list. Must run inside the event loop."""
        return ModuleSnapshotStream(self, limit)
