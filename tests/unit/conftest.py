"""Shared fixtures for unit tests."""

from typing import Any
from unittest.mock import AsyncMock

import orjson
import pytest

from infrastructure.repositories.in_memory_answer_repo import InMemoryAnswerRepository
from infrastructure.repositories.in_memory_member_repo import InMemoryMemberRepository
from infrastructure.repositories.in_memory_question_repo import InMemoryQuestionRepository
from infrastructure.repositories.in_memory_team_repo import InMemoryTeamRepository


class FakeWebSocket:
    """Records frames the hub sends to one connection."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed_with: int | None = None
        self.fail_sends = False

    async def send_text(self, data: str) -> None:
        if self.fail_sends:
            raise RuntimeError("socket closed")
        self.sent.append(orjson.loads(data))

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = code

    def of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["type"] == message_type]

    @property
    def last(self) -> dict[str, Any]:
        return self.sent[-1]


@pytest.fixture
def members() -> InMemoryMemberRepository:
    return InMemoryMemberRepository()


@pytest.fixture
def teams() -> InMemoryTeamRepository:
    return InMemoryTeamRepository()


@pytest.fixture
def questions() -> InMemoryQuestionRepository:
    return InMemoryQuestionRepository()


@pytest.fixture
def answers() -> InMemoryAnswerRepository:
    return InMemoryAnswerRepository()


@pytest.fixture
def events() -> AsyncMock:
    """Event sink mock recording every domain event."""
    return AsyncMock()
