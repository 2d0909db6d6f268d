"""Answer domain entity."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from domain.value_objects.ids import AnswerId, MemberId, QuestionId
from domain.value_objects.message_content import MessageContent


@dataclass(frozen=True, slots=True)
class Answer:
    """Immutable response to exactly one question."""

    question_id: QuestionId
    from_member_id: MemberId
    content: MessageContent
    id: AnswerId = field(default_factory=AnswerId.generate)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
