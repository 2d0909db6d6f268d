"""Ask-question use case."""

from dataclasses import dataclass
from datetime import datetime

import structlog

from core.exceptions import MemberNotFoundError, TeamNotFoundError, ValidationError
from domain.entities.question import Question, QuestionStatus
from domain.events import EventSink, NullEventSink, QuestionAskedEvent
from domain.repositories.member_repository import IMemberRepository
from domain.repositories.question_repository import IQuestionRepository
from domain.repositories.team_repository import ITeamRepository
from domain.value_objects.ids import MemberId, QuestionId, TeamId
from domain.value_objects.message_content import (
    DEFAULT_MAX_MESSAGE_LENGTH,
    MessageContent,
    MessageFormat,
)

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class AskQuestionResult:
    question_id: QuestionId
    to_team_id: TeamId
    status: QuestionStatus
    created_at: datetime


class AskQuestionService:
    """Stores a question addressed to another team."""

    def __init__(
        self,
        members: IMemberRepository,
        teams: ITeamRepository,
        questions: IQuestionRepository,
        events: EventSink | None = None,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ) -> None:
        self._members = members
        self._teams = teams
        self._questions = questions
        self._events = events or NullEventSink()
        self._max_message_length = max_message_length

    async def execute(
        self,
        from_member_id: MemberId,
        to_team_name: str,
        content: str,
        format: MessageFormat | str = MessageFormat.MARKDOWN,
    ) -> AskQuestionResult:
        member = await self._members.get(from_member_id)
        if not member:
            raise MemberNotFoundError(str(from_member_id))

        target = await self._teams.get_by_name(to_team_name)
        if not target:
            raise TeamNotFoundError(to_team_name)

        if target.id == member.team_id:
            raise ValidationError("to_team_name", "Cannot ask question to your own team")

        message = MessageContent.create(content, format, max_length=self._max_message_length)
        question = Question.create(from_member_id, target.id, message)
        await self._questions.save(question)

        member.record_activity()
        await self._members.save(member)

        logger.info(
            "question_asked",
            question_id=str(question.id),
            from_member_id=str(from_member_id),
            to_team_id=str(target.id),
        )

        await self._events.question_asked(
            QuestionAskedEvent(
                question_id=question.id,
                from_member_id=from_member_id,
                to_team_id=target.id,
                content_preview=message.preview,
            )
        )

        return AskQuestionResult(
            question_id=question.id,
            to_team_id=target.id,
            status=question.status,
            created_at=question.created_at,
        )
