"""Join-team use case."""

from dataclasses import dataclass

import structlog

from core.exceptions import ValidationError
from domain.entities.member import Member, MemberStatus
from domain.events import EventSink, MemberJoinedEvent, NullEventSink
from domain.repositories.member_repository import IMemberRepository
from domain.repositories.team_repository import ITeamRepository
from domain.value_objects.ids import MemberId, TeamId

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class JoinTeamResult:
    member_id: MemberId
    team_id: TeamId
    team_name: str
    display_name: str
    status: MemberStatus
    member_count: int


class JoinTeamService:
    """Creates a member and adds it to a team, creating the team on first use."""

    def __init__(
        self,
        members: IMemberRepository,
        teams: ITeamRepository,
        events: EventSink | None = None,
    ) -> None:
        self._members = members
        self._teams = teams
        self._events = events or NullEventSink()

    @staticmethod
    def validate(team_name: str, display_name: str) -> None:
        """Check a join request without touching any state.

        Raises:
            ValidationError: If a name is blank or the team name has no valid id.
        """
        if not team_name.strip():
            raise ValidationError("team_name", "Team name cannot be empty")
        if not display_name.strip():
            raise ValidationError("display_name", "Display name cannot be empty")
        TeamId.from_name(team_name)

    async def execute(self, team_name: str, display_name: str) -> JoinTeamResult:
        self.validate(team_name, display_name)

        team = await self._teams.get_or_create(team_name)
        member = Member.create(team_id=team.id, display_name=display_name)
        await self._members.save(member)

        team.add_member(member.id)
        await self._teams.save(team)

        logger.info(
            "member_joined",
            member_id=str(member.id),
            team_id=str(team.id),
            member_count=team.member_count,
        )

        await self._events.member_joined(
            MemberJoinedEvent(
                member_id=member.id,
                team_id=team.id,
                display_name=member.display_name,
            )
        )

        return JoinTeamResult(
            member_id=member.id,
            team_id=team.id,
            team_name=team.name,
            display_name=member.display_name,
            status=member.status,
            member_count=team.member_count,
        )
