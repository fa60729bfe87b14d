"""
Unit tests for the Content Generator (Teacher's Picks + assignment).
"""

import asyncio

import httpx
import pytest

from academy.core.errors import ConfigurationError, FailureKind, PersistenceError
from academy.core.models import Module
from academy.generation.content_generator import (
    ASSIGNMENT_MALFORMED_NOTICE,
    PICKS_MALFORMED_NOTICE,
    ContentGenerator,
)
from academy.generation.parsing import PICKS_EMPTY_TITLE, PICKS_MALFORMED_TITLE
from academy.generation.schemas import SchemaKind


@pytest.fixture
def generator(client, synchronizer):
    return ContentGenerator(client, synchronizer)


async def create_module(synchronizer, name="Graph Theory Basics") -> Module:
    module = Module.new(name)
    await synchronizer.create(module)
    return module


class TestContentGenerator:
    """Tests for ContentGenerator.generate()."""

    @pytest.mark.asyncio
    async def test_generates_and_persists_both_fields(
        self, generator, synchronizer, gemini, sample_picks, sample_assignment
    ):
        gemini.respond(SchemaKind.RESOURCE_LIST, sample_picks)
        gemini.respond(SchemaKind.ASSIGNMENT, sample_assignment)
        module = await create_module(synchronizer)

        result = await generator.generate(module.name, module.id)

        assert result.complete
        assert result.errors == [] and result.warnings == []
        assert len(result.teacher_picks) == 4
        assert result.assignment_content.total_marks == 100

        stored = await synchronizer.get_once(module.id)
        assert [p.title for p in stored.teacher_picks] == [p["title"] for p in sample_picks]
        assert stored.assignment_content.section_count == 3
        assert stored.name == "Graph Theory Basics"  # untouched by the partial merges

    @pytest.mark.asyncio
    async def test_both_fields_stored_on_every_run(
        self, generator, synchronizer, gemini, sample_picks, sample_assignment
    ):
        gemini.respond(SchemaKind.RESOURCE_LIST, sample_picks)
        gemini.respond(SchemaKind.ASSIGNMENT, sample_assignment)

        incomplete = []
        for i in range(20):
            module = await create_module(synchronizer, name=f"Topic {i}")
            await generator.generate(module.name, module.id)

            stored = await synchronizer.get_once(module.id)
            if not stored.teacher_picks or stored.assignment_content is None:
                incomplete.append(module.name)

        assert incomplete == []

    @pytest.mark.asyncio
    async def test_malformed_payloads_use_fallback_with_notice(self, generator, synchronizer, gemini):
        gemini.respond(SchemaKind.RESOURCE_LIST, text="[{broken")
        gemini.respond(SchemaKind.ASSIGNMENT, text='{"title": "missing everything else"}')
        module = await create_module(synchronizer)

        result = await generator.generate(module.name, module.id)

        assert result.picks_fallback and result.assignment_fallback
        assert result.teacher_picks[0].title == PICKS_MALFORMED_TITLE
        assert result.assignment_content.title == "Generic Assignment for Graph Theory Basics"
        assert PICKS_MALFORMED_NOTICE in result.warnings
        assert ASSIGNMENT_MALFORMED_NOTICE in result.warnings

        stored = await synchronizer.get_once(module.id)
        assert stored.assignment_content is not None
        assert stored.has_generated_content

    @pytest.mark.asyncio
    async def test_empty_candidates_use_fallback_silently(self, generator, synchronizer, gemini):
        gemini.respond(SchemaKind.RESOURCE_LIST)
        gemini.respond(SchemaKind.ASSIGNMENT, text="")
        module = await create_module(synchronizer)

        result = await generator.generate(module.name, module.id)

        assert result.warnings == []
        assert result.teacher_picks[0].title == PICKS_EMPTY_TITLE
        assert result.assignment_content.section_count == 1

    @pytest.mark.asyncio
    async def test_one_request_failing_does_not_block_the_other(
        self, generator, synchronizer, gemini, sample_assignment
    ):
        gemini.respond(SchemaKind.RESOURCE_LIST, error=httpx.ConnectError("unreachable"))
        gemini.respond(SchemaKind.ASSIGNMENT, sample_assignment)
        module = await create_module(synchronizer)

        result = await generator.generate(module.name, module.id)

        assert result.teacher_picks is None
        assert result.assignment_content is not None
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Failed to generate module content: Network error")

        stored = await synchronizer.get_once(module.id)
        assert stored.teacher_picks == []
        assert stored.assignment_content.title == sample_assignment["title"]

    @pytest.mark.asyncio
    async def test_http_error_is_reported_verbatim(self, generator, synchronizer, gemini, sample_picks):
        gemini.respond(SchemaKind.RESOURCE_LIST, sample_picks)
        gemini.respond(
            SchemaKind.ASSIGNMENT,
            status=429,
            body={"error": {"message": "Resource has been exhausted"}},
        )
        module = await create_module(synchronizer)

        result = await generator.generate(module.name, module.id)

        assert result.errors == ["Failed to generate module content: API error: 429 - Resource has been exhausted"]
        assert gemini.count(SchemaKind.ASSIGNMENT) == 1

    @pytest.mark.asyncio
    async def test_missing_key_aborts_both_requests(self, generator, gemini):
        generator.client.api_key = None

        with pytest.raises(ConfigurationError):
            await generator.generate("Topology", "module-x")
        assert gemini.calls == []

    @pytest.mark.asyncio
    async def test_regeneration_replaces_content(
        self, generator, synchronizer, gemini, sample_picks, assignment_factory
    ):
        gemini.respond(SchemaKind.RESOURCE_LIST, sample_picks)
        gemini.respond(SchemaKind.ASSIGNMENT, assignment_factory("First"))
        gemini.respond(SchemaKind.ASSIGNMENT, assignment_factory("Second"))
        module = await create_module(synchronizer)

        await generator.generate(module.name, module.id)
        await generator.generate(module.name, module.id)

        stored = await synchronizer.get_once(module.id)
        assert stored.assignment_content.title == "Second"

    @pytest.mark.asyncio
    async def test_concurrent_triggers_share_one_generation(
        self, generator, synchronizer, gemini, sample_picks, sample_assignment
    ):
        gemini.respond(SchemaKind.RESOURCE_LIST, sample_picks)
        gemini.respond(SchemaKind.ASSIGNMENT, sample_assignment)
        gemini.delay = 0.05
        module = await create_module(synchronizer)

        first, second = await asyncio.gather(
            generator.generate(module.name, module.id),
            generator.generate(module.name, module.id),
        )

        assert first is second
        assert gemini.count(SchemaKind.RESOURCE_LIST) == 1
        assert gemini.count(SchemaKind.ASSIGNMENT) == 1

    @pytest.mark.asyncio
    async def test_persistence_failure_is_reported(
        self, generator, synchronizer, gemini, sample_picks, sample_assignment, monkeypatch
    ):
        gemini.respond(SchemaKind.RESOURCE_LIST, sample_picks)
        gemini.respond(SchemaKind.ASSIGNMENT, sample_assignment)

        async def failing_merge(module_id, partial):
            raise PersistenceError("disk full")

        monkeypatch.setattr(synchronizer, "merge_update", failing_merge)

        result = await generator.generate("Graph Theory Basics", "module-1")

        assert result.complete  # values are still returned to the caller
        assert result.errors == ["Failed to save module progress: disk full"] * 2

    def test_failure_kind_enum_values(self):
        assert {k.value for k in FailureKind} == {"empty", "malformed_json", "schema_mismatch"}
