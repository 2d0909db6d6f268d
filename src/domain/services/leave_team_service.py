"""Leave-team use case."""

import structlog

from domain.events import EventSink, MemberLeftEvent, NullEventSink
from domain.repositories.member_repository import IMemberRepository
from domain.repositories.team_repository import ITeamRepository
from domain.value_objects.ids import MemberId, TeamId

logger = structlog.get_logger()


class LeaveTeamService:
    """Takes a member offline and out of its team."""

    def __init__(
        self,
        members: IMemberRepository,
        teams: ITeamRepository,
        events: EventSink | None = None,
    ) -> None:
        self._members = members
        self._teams = teams
        self._events = events or NullEventSink()

    async def execute(self, member_id: MemberId) -> TeamId | None:
        """Remove the member from its team.

        Returns the team the member left, or None if the member is unknown.
        Unknown members are not an error: a disconnect may race a LEAVE.
        """
        member = await self._members.get(member_id)
        if not member:
            return None

        member.go_offline()
        await self._members.save(member)

        team = await self._teams.get(member.team_id)
        if not team:
            return None

        team.remove_member(member_id)
        await self._teams.save(team)

        logger.info(
            "member_left",
            member_id=str(member_id),
            team_id=str(team.id),
            member_count=team.member_count,
        )

        await self._events.member_left(MemberLeftEvent(member_id=member_id, team_id=team.id))
        return team.id
