"""Reply-question use case."""

from dataclasses import dataclass
from datetime import datetime

import structlog

from core.exceptions import (
    MemberNotFoundError,
    QuestionAlreadyAnsweredError,
    QuestionNotFoundError,
)
from domain.entities.answer import Answer
from domain.events import EventSink, NullEventSink, QuestionAnsweredEvent
from domain.repositories.answer_repository import IAnswerRepository
from domain.repositories.member_repository import IMemberRepository
from domain.repositories.question_repository import IQuestionRepository
from domain.value_objects.ids import AnswerId, MemberId, QuestionId
from domain.value_objects.message_content import (
    DEFAULT_MAX_MESSAGE_LENGTH,
    MessageContent,
    MessageFormat,
)

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class ReplyQuestionResult:
    answer_id: AnswerId
    question_id: QuestionId
    delivered_to_member_id: MemberId
    created_at: datetime


class ReplyQuestionService:
    """Answers a pending question."""

    def __init__(
        self,
        members: IMemberRepository,
        questions: IQuestionRepository,
        answers: IAnswerRepository,
        events: EventSink | None = None,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ) -> None:
        self._members = members
        self._questions = questions
        self._answers = answers
        self._events = events or NullEventSink()
        self._max_message_length = max_message_length

    async def execute(
        self,
        question_id: QuestionId,
        from_member_id: MemberId,
        content: str,
        format: MessageFormat | str = MessageFormat.MARKDOWN,
    ) -> ReplyQuestionResult:
        member = await self._members.get(from_member_id)
        if not member:
            raise MemberNotFoundError(str(from_member_id))

        question = await self._questions.get(question_id)
        if not question:
            raise QuestionNotFoundError(str(question_id))

        if not question.can_be_answered:
            raise QuestionAlreadyAnsweredError(str(question_id))

        message = MessageContent.create(content, format, max_length=self._max_message_length)
        answer = Answer(
            question_id=question_id,
            from_member_id=from_member_id,
            content=message,
        )
        question.mark_as_answered(from_member_id)

        # Two independent writes; a failure between them is not rolled back.
        await self._answers.save(answer)
        await self._questions.save(question)

        member.record_activity()
        await self._members.save(member)

        logger.info(
            "question_answered",
            question_id=str(question_id),
            answer_id=str(answer.id),
            answered_by=str(from_member_id),
        )

        await self._events.question_answered(
            QuestionAnsweredEvent(
                question_id=question_id,
                answer_id=answer.id,
                answered_by_member_id=from_member_id,
                content_preview=message.preview,
            )
        )

        return ReplyQuestionResult(
            answer_id=answer.id,
            question_id=question_id,
            delivered_to_member_id=question.from_member_id,
            created_at=answer.created_at,
        )
