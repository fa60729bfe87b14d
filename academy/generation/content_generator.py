"""
Content Generator: Teacher's Picks and the module assignment.

Pipeline per module:
1. Check the credential (ConfigurationError aborts both requests, nothing is sent)
2. Issue the resource-list and assignment requests independently
3. Parse each payload strictly; on empty/malformed output substitute the fallback
4. Persist each result with a partial merge as soon as it is available

A failed request (NetworkError) leaves that field untouched and is reported;
it never blocks the other request.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from loguru import logger

from academy.core.content import AssignmentContent, TeacherPick
from academy.core.errors import FailureKind, NetworkError, PersistenceError
from academy.core.models import utc_now
from academy.sync.synchronizer import PersistenceSynchronizer

from .gemini_client import GeminiClient
from .parsing import fallback_for, parse_payload
from .prompts import get_assignment_prompt, get_resource_prompt
from .schemas import SchemaKind, get_response_schema
from .single_flight import SingleFlight

PICKS_MALFORMED_NOTICE = "AI generated malformed resources. Using fallback."
ASSIGNMENT_MALFORMED_NOTICE = "AI generated malformed assignment. Using fallback."


@dataclass
class ContentGenerationResult:
    """Outcome of generating a module's content."""

    module_id: str
    teacher_picks: list[TeacherPick] | None = None
    assignment_content: AssignmentContent | None = None
    picks_fallback: bool = False
    assignment_fallback: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.teacher_picks is not None and self.assignment_content is not None


class ContentGenerator:
    """Generates and persists Teacher's Picks and assignment content."""

    def __init__(
        self,
        client: GeminiClient,
        synchronizer: PersistenceSynchronizer,
        single_flight: SingleFlight | None = None,
    ):
        self.client = client
        self.synchronizer = synchronizer
        self.single_flight = single_flight or SingleFlight()

    async def generate(self, module_name: str, module_id: str) -> ContentGenerationResult:
        """
        Generate content for a module, replacing any previously stored content.

        Concurrent calls for the same module share one generation.

        Raises:
            ConfigurationError: No API key configured
        """
        self.client.require_configured()
        return await self.single_flight.run(
            f"content:{module_id}",
            lambda: self._generate(module_name, module_id),
        )

    async def _generate(self, module_name: str, module_id: str) -> ContentGenerationResult:
        result = ContentGenerationResult(module_id=module_id)
        logger.info(f"Generating content for module {module_id} ({module_name!r})")

        await asyncio.gather(
            self._generate_picks(module_name, result),
            self._generate_assignment(module_name, result),
        )
        return result

    async def _generate_picks(self, module_name: str, result: ContentGenerationResult) -> None:
        try:
            text = await self.client.generate_text(
                get_resource_prompt(module_name),
                get_response_schema(SchemaKind.RESOURCE_LIST),
            )
        except NetworkError as e:
            result.errors.append(f"Failed to generate module content: {e}")
            return

        parsed = parse_payload(SchemaKind.RESOURCE_LIST, text)
        if parsed.ok:
            picks = parsed.value
        else:
            logger.error(f"Resource list for {result.module_id} unusable ({parsed.failure.value}): {parsed.message}")
            logger.debug(f"Raw resource payload: {(text or '')[:500]}")
            picks = fallback_for(SchemaKind.RESOURCE_LIST, module_name, parsed.failure)
            result.picks_fallback = True
            if parsed.failure != FailureKind.EMPTY:
                result.warnings.append(PICKS_MALFORMED_NOTICE)

        result.teacher_picks = picks
        await self._persist(
            result,
            {"teacherPicks": [pick.model_dump() for pick in picks]},
        )

    async def _generate_assignment(self, module_name: str, result: ContentGenerationResult) -> None:
        try:
            text = await self.client.generate_text(
                get_assignment_prompt(module_name),
                get_response_schema(SchemaKind.ASSIGNMENT),
            )
        except NetworkError as e:
            result.errors.append(f"Failed to generate module content: {e}")
            return

        parsed = parse_payload(SchemaKind.ASSIGNMENT, text)
        if parsed.ok:
            assignment = parsed.value
            assignment.log_marks_inconsistency()
        else:
            logger.error(f"Assignment for {result.module_id} unusable ({parsed.failure.value}): {parsed.message}")
            logger.debug(f"Raw assignment payload: {(text or '')[:500]}")
            assignment = fallback_for(SchemaKind.ASSIGNMENT, module_name, parsed.failure)
            result.assignment_fallback = True
            if parsed.failure != FailureKind.EMPTY:
                result.warnings.append(ASSIGNMENT_MALFORMED_NOTICE)

        result.assignment_content = assignment
        await self._persist(result, {"assignmentContent": assignment.model_dump()})

    async def _persist(self, result: ContentGenerationResult, partial: dict) -> None:
        partial = {**partial, "lastUpdated": utc_now().isoformat()}
        try:
            await self.synchronizer.merge_update(result.module_id, partial)
        except PersistenceError as e:
            logger.error(f"Error updating module {result.module_id}: {e}")
            result.errors.append(f"Failed to save module progress: {e}")
