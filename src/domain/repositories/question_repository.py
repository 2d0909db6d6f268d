"""Question repository protocol."""

from datetime import datetime
from typing import Protocol

from domain.entities.question import Question
from domain.value_objects.ids import MemberId, QuestionId, TeamId


class IQuestionRepository(Protocol):
    """Repository interface for Question entities."""

    async def save(self, question: Question) -> None:
        """Insert or replace a question."""
        ...

    async def get(self, id: QuestionId) -> Question | None:
        """Get a question by ID."""
        ...

    async def get_pending_by_team(self, team_id: TeamId) -> list[Question]:
        """Get pending questions addressed to a team."""
        ...

    async def get_by_team(self, team_id: TeamId) -> list[Question]:
        """Get all questions addressed to a team."""
        ...

    async def get_by_asker(self, member_id: MemberId) -> list[Question]:
        """Get all questions asked by a member."""
        ...

    async def get_pending_by_asker(self, member_id: MemberId) -> list[Question]:
        """Get pending questions asked by a member."""
        ...

    async def delete(self, id: QuestionId) -> bool:
        """Delete a question."""
        ...

    async def exists(self, id: QuestionId) -> bool:
        """Check whether a question exists."""
        ...

    async def list_all(self) -> list[Question]:
        """Get every question."""
        ...

    async def mark_timed_out(
        self, older_than_seconds: float, now: datetime | None = None
    ) -> int:
        """Mark pending questions older than the threshold as TIMEOUT.

        Returns the number of questions marked.
        """
        ...
