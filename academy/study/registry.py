"""
Module Registry.

Owns the learner's module list for one signed-in user and composes the
synchronizer, generators and study sessions:

- activate(): wait for the user id, subscribe to the module list, start consuming
  snapshots
- create_module(): optimistic insert, full document write, content generation
- select_module(): open a ModuleSession in the phase derived from stored state
- deactivate(): release the subscription and the HTTP client

Use as ``async with ModuleRegistry(...) as registry:`` so the subscription is
always released.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from config import Settings, get_settings
from academy.auth.identity import IdentityProvider, User
from academy.core.errors import AcademyError, PersistenceError
from academy.core.models import Module
from academy.generation.assessment_generator import AssessmentGenerator
from academy.generation.content_generator import ContentGenerator
from academy.generation.gemini_client import GeminiClient
from academy.generation.single_flight import SingleFlight
from academy.sync.store import DocumentStore
from academy.sync.synchronizer import ModuleSnapshotStream, PersistenceSynchronizer, sort_newest_first

from .session import ModuleSession


class ModuleRegistry:
    """The learner's modules plus factories for study sessions."""

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        client: GeminiClient,
        settings: Settings | None = None,
    ):
        self.store = store
        self.identity = identity
        self.client = client
        self.settings = settings or get_settings()

        self.user: User | None = None
        self.synchronizer: PersistenceSynchronizer | None = None
        self.content_generator: ContentGenerator | None = None
        self.assessment_generator: AssessmentGenerator | None = None
        self.last_error: AcademyError | None = None

        self._modules: list[Module] = []
        self._stream: ModuleSnapshotStream | None = None
        self._consumer: asyncio.Task | None = None
        self._updated = asyncio.Condition()
        self._version = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._stream is not None and not self._stream.closed

    async def activate(self) -> None:
        """Wait for authentication, then start following the module list."""
        if self.active:
            return
        self.user = await self.identity.wait_for_user()
        self.synchronizer = PersistenceSynchronizer(self.store, self.settings.app_id, self.user.uid)

        single_flight = SingleFlight()
        self.content_generator = ContentGenerator(self.client, self.synchronizer, single_flight)
        self.assessment_generator = AssessmentGenerator(
            self.client,
            question_count=self.settings.assessment_question_count,
            single_flight=single_flight,
        )

        self._stream = self.synchronizer.subscribe(self.settings.module_query_limit)
        self._consumer = asyncio.create_task(self._consume(self._stream))
        logger.info(f"Module registry active for user {self.user.uid}")

    async def deactivate(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
        await self.client.close()
        logger.debug("Module registry deactivated")

    async def __aenter__(self) -> ModuleRegistry:
        await self.activate()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.deactivate()

    async def _consume(self, stream: ModuleSnapshotStream) -> None:
        try:
            async for snapshot in stream:
                await self._publish(snapshot)
        except PersistenceError as e:
            logger.error(f"Module list subscription failed: {e}")
            self.last_error = e
            await self._publish(self._modules)

    async def _publish(self, modules: list[Module]) -> None:
        async with self._updated:
            self._modules = list(modules)
            self._version += 1
            self._updated.notify_all()

    def _require_active(self) -> PersistenceSynchronizer:
        if self.synchronizer is None:
            raise PersistenceError("Module registry is not active")
        return self.synchronizer

    # -------------------------------------------------------------------------
    # Module list
    # -------------------------------------------------------------------------

    @property
    def modules(self) -> list[Module]:
        """Latest snapshot, newest first."""
        return list(self._modules)

    async def wait_for_update(self, timeout: float | None = None) -> list[Module]:
        """Wait for the next snapshot after the current one."""
        async with self._updated:
            seen = self._version
            await asyncio.wait_for(self._updated.wait_for(lambda: self._version > seen), timeout)
            return list(self._modules)

    async def refresh(self) -> list[Module]:
        """One-shot reload, independent of the subscription."""
        synchronizer = self._require_active()
        modules = sort_newest_first(await synchronizer.list_modules(self.settings.module_query_limit))
        await self._publish(modules)
        return self.modules

    async def find(self, module_id: str) -> Module | None:
        for module in self._modules:
            if module.id == module_id:
                return module
        return await self._require_active().get_once(module_id)

    # -------------------------------------------------------------------------
    # Create / select
    # -------------------------------------------------------------------------

    def open_session(self, module: Module) -> ModuleSession:
        synchronizer = self._require_active()
        return ModuleSession(
            module,
            synchronizer,
            self.content_generator,
            self.assessment_generator,
            pass_threshold=self.settings.pass_threshold,
        )

    async def create_module(self, topic: str) -> ModuleSession:
        """
        Create a module for a topic and generate its content.

        Raises:
            ValueError: Empty topic
            ConfigurationError: No API key configured
            PersistenceError: The module document could not be written
        """
        synchronizer = self._require_active()
        if not topic or not topic.strip():
            raise ValueError("Please enter a module name.")
        self.client.require_configured()

        module = Module.new(topic.strip())
        await self._publish(sort_newest_first([module, *self._modules]))
        await synchronizer.create(module)

        session = self.open_session(module)
        await session.enter()
        return session

    async def select_module(self, module_id: str) -> ModuleSession:
        """
        Open a stored module in the phase its status implies.

        Raises:
            PersistenceError: Unknown module id or store failure
        """
        module = await self._require_active().get_once(module_id)
        if module is None:
            raise PersistenceError(f"Module not found: {module_id}")
        session = self.open_session(module)
        await session.enter()
        return session

    def back_to_modules(self, session: ModuleSession) -> list[Module]:
        session.back_to_modules()
        return self.modules
