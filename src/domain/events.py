"""Domain events and the sink that receives them."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar, Protocol
from uuid import uuid4

from domain.value_objects.ids import AnswerId, MemberId, QuestionId, TeamId


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for events raised after state has been stored."""

    event_type: ClassVar[str] = "DOMAIN_EVENT"

    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def payload(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": self.payload(),
        }


@dataclass(frozen=True, kw_only=True)
class MemberJoinedEvent(DomainEvent):
    event_type: ClassVar[str] = "MEMBER_JOINED"

    member_id: MemberId
    team_id: TeamId
    display_name: str

    def payload(self) -> dict[str, Any]:
        return {
            "member_id": str(self.member_id),
            "team_id": str(self.team_id),
            "display_name": self.display_name,
        }


@dataclass(frozen=True, kw_only=True)
class MemberLeftEvent(DomainEvent):
    event_type: ClassVar[str] = "MEMBER_LEFT"

    member_id: MemberId
    team_id: TeamId

    def payload(self) -> dict[str, Any]:
        return {"member_id": str(self.member_id), "team_id": str(self.team_id)}


@dataclass(frozen=True, kw_only=True)
class QuestionAskedEvent(DomainEvent):
    event_type: ClassVar[str] = "QUESTION_ASKED"

    question_id: QuestionId
    from_member_id: MemberId
    to_team_id: TeamId
    content_preview: str

    def payload(self) -> dict[str, Any]:
        return {
            "question_id": str(self.question_id),
            "from_member_id": str(self.from_member_id),
            "to_team_id": str(self.to_team_id),
            "content_preview": self.content_preview,
        }


@dataclass(frozen=True, kw_only=True)
class QuestionAnsweredEvent(DomainEvent):
    event_type: ClassVar[str] = "QUESTION_ANSWERED"

    question_id: QuestionId
    answer_id: AnswerId
    answered_by_member_id: MemberId
    content_preview: str

    def payload(self) -> dict[str, Any]:
        return {
            "question_id": str(self.question_id),
            "answer_id": str(self.answer_id),
            "answered_by_member_id": str(self.answered_by_member_id),
            "content_preview": self.content_preview,
        }


class EventSink(Protocol):
    """Receiver of domain events, injected into the use-case services."""

    async def member_joined(self, event: MemberJoinedEvent) -> None:
        """Handle a member joining a team."""
        ...

    async def member_left(self, event: MemberLeftEvent) -> None:
        """Handle a member leaving a team."""
        ...

    async def question_asked(self, event: QuestionAskedEvent) -> None:
        """Handle a newly stored question."""
        ...

    async def question_answered(self, event: QuestionAnsweredEvent) -> None:
        """Handle a newly stored answer."""
        ...


class NullEventSink:
    """Event sink that drops every event."""

    async def member_joined(self, event: MemberJoinedEvent) -> None:
        return None

    async def member_left(self, event: MemberLeftEvent) -> None:
        return None

    async def question_asked(self, event: QuestionAskedEvent) -> None:
        return None

    async def question_answered(self, event: QuestionAnsweredEvent) -> None:
        return None
