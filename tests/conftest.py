"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import asyncio
import copy
import json
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import Request, Response

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from academy.db.database import create_store_engine  # noqa: E402
from academy.generation.gemini_client import GeminiClient  # noqa: E402
from academy.generation.schemas import RESPONSE_SCHEMAS, SchemaKind  # noqa: E402
from academy.sync.store import DocumentStore  # noqa: E402
from academy.sync.synchronizer import PersistenceSynchronizer  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (temporary SQLite store)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Sample payloads
# =============================================================================

SAMPLE_PICKS = [
    {"title": "Introduction to Graph Theory (Trudeau)", "url": "https://example.org/trudeau"},
    {"title": "MIT 6.042J Mathematics for Computer Science", "url": "https://ocw.mit.edu/6-042j"},
    {"title": "Graph Theory Playlist", "url": "https://video.example.org/graphs"},
    {"title": "Search for 'graph theory lecture notes'"},
]


def make_assignment(title: str = "Graph Theory Basics Assignment") -> dict:
    """Three sections, 100 marks in total."""
    def section(number: int, marks: int) -> dict:
        return {
            "section_id": f"section{number}",
            "section_title": f"Part {number}",
            "marks": marks,
            "sub_scenario": {"title": f"Situation {number}", "description": f"Details for part {number}."},
            "tasks": [
                {
                    "task_id": f"{number}.1",
                    "task_description": f"Explain concept {number}.",
                    "marks": marks // 2,
                    "type": "text_input",
                },
                {
                    "task_id": f"{number}.2",
                    "task_description": f"Implement algorithm {number}.",
                    "marks": marks - marks // 2,
                    "type": "code_input",
                    "language": "python",
                },
            ],
        }

    return {
        "title": title,
        "total_marks": 100,
        "scenario": {"title": "Transit network", "description": "A city plans its bus routes."},
        "sections": [section(1, 30), section(2, 30), section(3, 40)],
        "resources": [
            {"title": "Graph Theory Notes", "url": "https://example.org/notes", "type": "pdf", "category": "Core"},
        ],
    }


def make_questions(count: int = 5, correct: str = "A") -> list[dict]:
    return [
        {
            "question": f"Question {i + 1}?",
            "options": {"A": "first", "B": "second", "C": "third", "D": "fourth"},
            "correctAnswer": correct,
        }
        for i in range(count)
    ]


def gemini_body(text: str | None) -> dict:
    """A generateContent response body carrying ``text`` as the first candidate part."""
    if text is None:
        return {"candidates": []}
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def schema_kind_of(request_json: dict) -> SchemaKind:
    schema = request_json["generationConfig"]["responseSchema"]
    for kind, candidate in RESPONSE_SCHEMAS.items():
        if candidate == schema:
            return kind
    raise AssertionError("Request declared an unknown response schema")


class FakeGeminiService:
    """
    Stand-in for the Gemini endpoint, patched over ``GeminiClient.client.post``.

    Replies are queued per schema kind; the last queued reply repeats.
    A reply is a payload (JSON-encoded into the candidate text), raw text via
    ``text=``, an HTTP error via ``status=``, or an exception via ``error=``.
    """

    def __init__(self):
        self.replies: dict[SchemaKind, list[dict]] = {}
        self.calls: list[tuple[SchemaKind, dict]] = []
        self.delay = 0.0

    def respond(self, kind, payload=None, *, text=None, status=200, error=None, body=None):
        if text is None and payload is not None:
            text = json.dumps(payload)
        self.replies.setdefault(kind, []).append(
            {"text": text, "status": status, "error": error, "body": body}
        )
        return self

    def count(self, kind) -> int:
        return sum(1 for called, _ in self.calls if called == kind)

    async def post(self, url, **kwargs):
        kind = schema_kind_of(kwargs["json"])
        self.calls.append((kind, kwargs))
        if self.delay:
            await asyncio.sleep(self.delay)

        queue = self.replies.get(kind)
        if not queue:
            raise AssertionError(f"No reply queued for {kind.value}")
        reply = queue.pop(0) if len(queue) > 1 else queue[0]

        if reply["error"] is not None:
            raise reply["error"]
        request = Request("POST", url)
        if reply["status"] != 200:
            return Response(reply["status"], json=reply["body"] or {}, request=request)
        return Response(200, json=reply["body"] or gemini_body(reply["text"]), request=request)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary database, ignoring any local .env."""
    return Settings(
        _env_file=None,
        app_id="test-app",
        database_url=f"sqlite:///{tmp_path / 'academy.db'}",
        identity_file=tmp_path / "identity.json",
        gemini_api_key="test-key",
    )


@pytest.fixture
def store(settings):
    """Document store on a temporary SQLite file."""
    engine = create_store_engine(settings.database_url)
    yield DocumentStore(engine)
    engine.dispose()


@pytest.fixture
def synchronizer(store):
    return PersistenceSynchronizer(store, "test-app", "learner-1")


@pytest.fixture
def gemini():
    """Fake generative service with no replies queued."""
    return FakeGeminiService()


@pytest_asyncio.fixture
async def client(settings, gemini, monkeypatch):
    """Gemini client whose HTTP calls go to the fake service."""
    client = GeminiClient(settings=settings)
    monkeypatch.setattr(client.client, "post", gemini.post)
    yield client
    await client.close()


@pytest.fixture
def sample_picks():
    return copy.deepcopy(SAMPLE_PICKS)


@pytest.fixture
def sample_assignment():
    return make_assignment()


@pytest.fixture
def sample_questions():
    return make_questions()


@pytest.fixture
def question_factory():
    """Build ``count`` questions whose correct answer is ``correct``."""
    return make_questions


@pytest.fixture
def assignment_factory():
    return make_assignment


@pytest.fixture
def gemini_body_factory():
    return gemini_body
