"""Get-inbox use case."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from core.exceptions import MemberNotFoundError, TeamNotFoundError
from domain.entities.member import MemberStatus
from domain.entities.question import QuestionStatus
from domain.repositories.member_repository import IMemberRepository
from domain.repositories.question_repository import IQuestionRepository
from domain.repositories.team_repository import ITeamRepository
from domain.value_objects.ids import MemberId, QuestionId, TeamId
from domain.value_objects.message_content import MessageFormat

UNKNOWN = "Unknown"


@dataclass(frozen=True, slots=True)
class InboxItem:
    question_id: QuestionId
    from_member_id: MemberId
    from_team_id: TeamId | None
    from_display_name: str
    from_team_name: str
    from_status: MemberStatus
    content: str
    format: MessageFormat
    status: QuestionStatus
    created_at: datetime
    age_ms: int


@dataclass(frozen=True, slots=True)
class InboxResult:
    team_id: TeamId
    team_name: str
    questions: list[InboxItem] = field(default_factory=list)
    total_count: int = 0
    pending_count: int = 0


class GetInboxService:
    """Lists the questions addressed to a member's team, newest first."""

    def __init__(
        self,
        members: IMemberRepository,
        teams: ITeamRepository,
        questions: IQuestionRepository,
    ) -> None:
        self._members = members
        self._teams = teams
        self._questions = questions

    async def execute(
        self,
        member_id: MemberId,
        team_id: TeamId,
        include_answered: bool = False,
    ) -> InboxResult:
        if not await self._members.exists(member_id):
            raise MemberNotFoundError(str(member_id))

        team = await self._teams.get(team_id)
        if not team:
            raise TeamNotFoundError(str(team_id))

        if include_answered:
            questions = await self._questions.get_by_team(team_id)
        else:
            questions = await self._questions.get_pending_by_team(team_id)

        now = datetime.now(UTC)
        items: list[InboxItem] = []
        for question in questions:
            # Askers may have disconnected since; their lookups fall back to "Unknown".
            asker = await self._members.get(question.from_member_id)
            asker_team = await self._teams.get(asker.team_id) if asker else None

            items.append(
                InboxItem(
                    question_id=question.id,
                    from_member_id=question.from_member_id,
                    from_team_id=asker.team_id if asker else None,
                    from_display_name=asker.display_name if asker else UNKNOWN,
                    from_team_name=asker_team.name if asker_team else UNKNOWN,
                    from_status=asker.status if asker else MemberStatus.OFFLINE,
                    content=question.content.text,
                    format=question.content.format,
                    status=question.status,
                    created_at=question.created_at,
                    age_ms=question.age_ms(now),
                )
            )

        items.sort(key=lambda item: item.created_at, reverse=True)
        pending_count = sum(1 for item in items if item.status == QuestionStatus.PENDING)

        return InboxResult(
            team_id=team.id,
            team_name=team.name,
            questions=items,
            total_count=len(items),
            pending_count=pending_count,
        )
