"""Central Pytest Fixtures for perftrack.

Fixtures included:
- Users: session, other_session
- Storage: memory_store
- AI: fake_transport, ai_client (no network)
- Core data: sample_goals, sample_achievements, sample_tasks
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from perftrack.ai.client import AIClient, AIClientError, AIResponse, GenerateRequest
from perftrack.config import reset_config
from perftrack.core.models import (
    Achievement,
    AchievementType,
    Goal,
    Session,
    Task,
    TaskStatus,
)
from perftrack.core.store import InMemoryStore

# =============================================================================
# Fake Transport
# =============================================================================


class FakeTransport:
    """Transport that records requests and replays queued replies.

    Each queued reply is either a string (returned as the response text) or
    an AIClientError (raised). With an empty queue ``default_text`` is used.
    """

    def __init__(self, default_text: str = "Generated text") -> None:
        self.default_text = default_text
        self.replies: list[str | AIClientError] = []
        self.requests: list[GenerateRequest] = []

    def queue(self, *replies: str | AIClientError) -> None:
        self.replies.extend(replies)

    async def send(self, request: GenerateRequest) -> AIResponse:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else self.default_text
        if isinstance(reply, AIClientError):
            raise reply
        return AIResponse(text=reply, model=request.model or "gemini-2.5-flash", latency_ms=1.0)

    @property
    def last_contents(self) -> str:
        return self.requests[-1].contents


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_config_cache():
    """Never leak a cached AppConfig between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo setup_logging so caplog keeps working and log files are closed."""
    yield
    package_logger = logging.getLogger("perftrack")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def session() -> Session:
    return Session(user_id="user-1", email="ada@example.com")


@pytest.fixture
def other_session() -> Session:
    return Session(user_id="user-2")


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def ai_client(fake_transport: FakeTransport) -> AIClient:
    return AIClient(fake_transport)


@pytest.fixture
def sample_goals() -> list[Goal]:
    return [
        Goal(user_id="user-1", title="Ship v2", progress=40),
        Goal(user_id="user-1", title="Mentor two juniors", progress=100),
    ]


@pytest.fixture
def sample_achievements() -> list[Achievement]:
    """Achievements straddling February 2024."""
    return [
        Achievement(
            user_id="user-1",
            title="Launched billing",
            classification=AchievementType.DELIVERY,
            summary="Shipped billing two weeks early.",
            date="2024-01-31",
        ),
        Achievement(
            user_id="user-1",
            title="Led incident review",
            classification=AchievementType.LEADERSHIP,
            summary="Ran the postmortem for the outage.",
            date="2024-02-01",
        ),
        Achievement(
            user_id="user-1",
            title="Leap day talk",
            classification=AchievementType.COMMUNICATION,
            summary="Gave a tech talk.",
            date="2024-02-29",
        ),
        Achievement(
            user_id="user-1",
            title="March planning",
            classification=AchievementType.IMPACT,
            summary="Set Q2 plan.",
            date="2024-03-01",
        ),
    ]


def make_task(title: str, completed_at: str | None = None, **fields: Any) -> Task:
    status = TaskStatus.COMPLETED if completed_at else TaskStatus.PENDING
    return Task(
        user_id="user-1",
        list_id=fields.pop("list_id", "list-1"),
        title=title,
        status=status,
        completed_at=completed_at,
        **fields,
    )


@pytest.fixture
def sample_tasks() -> list[Task]:
    return [
        make_task("Close Jan books", completed_at="2024-01-31T23:59:00.000Z"),
        make_task("Write RFC", completed_at="2024-02-01T09:00:00.000Z"),
        make_task("Late-night deploy", completed_at="2024-02-29T22:30:00.000Z"),
        make_task("Still open"),
        make_task("March task", completed_at="2024-03-01T00:00:00.000Z"),
    ]


@pytest.fixture
def task_factory():
    """Build tasks with ``task_factory(title, completed_at=None, **fields)``."""
    return make_task
