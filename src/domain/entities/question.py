"""Question domain entity."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from core.exceptions import QuestionAlreadyAnsweredError
from domain.value_objects.ids import MemberId, QuestionId, TeamId
from domain.value_objects.message_content import MessageContent


class QuestionStatus(StrEnum):
    """Lifecycle of a question. Every status except PENDING is terminal."""

    PENDING = "PENDING"
    ANSWERED = "ANSWERED"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"


@dataclass
class Question:
    """Domain entity for a question addressed to a team."""

    from_member_id: MemberId
    to_team_id: TeamId
    content: MessageContent
    id: QuestionId = field(default_factory=QuestionId.generate)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    status: QuestionStatus = QuestionStatus.PENDING
    answered_at: datetime | None = None
    answered_by_member_id: MemberId | None = None

    @classmethod
    def create(
        cls, from_member_id: MemberId, to_team_id: TeamId, content: MessageContent
    ) -> "Question":
        """Create a new PENDING question."""
        return cls(from_member_id=from_member_id, to_team_id=to_team_id, content=content)

    @property
    def is_pending(self) -> bool:
        return self.status == QuestionStatus.PENDING

    @property
    def is_answered(self) -> bool:
        return self.status == QuestionStatus.ANSWERED

    @property
    def is_timed_out(self) -> bool:
        return self.status == QuestionStatus.TIMEOUT

    @property
    def is_cancelled(self) -> bool:
        return self.status == QuestionStatus.CANCELLED

    @property
    def can_be_answered(self) -> bool:
        return self.status == QuestionStatus.PENDING

    def age_ms(self, now: datetime | None = None) -> int:
        """Milliseconds elapsed since the question was created."""
        now = now or datetime.now(UTC)
        return int((now - self.created_at).total_seconds() * 1000)

    def mark_as_answered(self, answered_by: MemberId) -> None:
        """Record the answer.

        Raises:
            QuestionAlreadyAnsweredError: If the question is no longer pending.
        """
        if not self.can_be_answered:
            raise QuestionAlreadyAnsweredError(str(self.id))
        self.status = QuestionStatus.ANSWERED
        self.answered_at = datetime.now(UTC)
        self.answered_by_member_id = answered_by

    def mark_as_timed_out(self) -> None:
        if self.status == QuestionStatus.PENDING:
            self.status = QuestionStatus.TIMEOUT

    def mark_as_cancelled(self) -> None:
        if self.status == QuestionStatus.PENDING:
            self.status = QuestionStatus.CANCELLED
