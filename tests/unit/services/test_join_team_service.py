"""Unit tests for JoinTeamService."""

from unittest.mock import AsyncMock

import pytest

from core.exceptions import ValidationError
from domain.entities.member import MemberStatus
from domain.events import MemberJoinedEvent
from domain.services.join_team_service import JoinTeamService
from domain.value_objects.ids import TeamId
from infrastructure.repositories.in_memory_member_repo import InMemoryMemberRepository
from infrastructure.repositories.in_memory_team_repo import InMemoryTeamRepository


@pytest.fixture
def service(
    members: InMemoryMemberRepository, teams: InMemoryTeamRepository, events: AsyncMock
) -> JoinTeamService:
    return JoinTeamService(members, teams, events)


class TestJoinTeam:
    @pytest.mark.asyncio
    async def test_creates_team_on_first_join(
        self, service: JoinTeamService, teams: InMemoryTeamRepository
    ):
        result = await service.execute("Frontend", "alice")

        assert result.team_id == TeamId("frontend")
        assert result.team_name == "Frontend"
        assert result.status == MemberStatus.ONLINE
        assert result.member_count == 1
        assert teams.count == 1

    @pytest.mark.asyncio
    async def test_second_member_joins_existing_team(self, service: JoinTeamService):
        first = await service.execute("frontend", "alice")
        second = await service.execute("frontend", "bob")

        assert first.member_id != second.member_id
        assert second.member_count == 2

    @pytest.mark.asyncio
    async def test_persists_member(
        self, service: JoinTeamService, members: InMemoryMemberRepository
    ):
        result = await service.execute("frontend", "alice")

        member = await members.get(result.member_id)
        assert member is not None
        assert member.team_id == result.team_id

    @pytest.mark.asyncio
    async def test_emits_member_joined(self, service: JoinTeamService, events: AsyncMock):
        result = await service.execute("frontend", "alice")

        events.member_joined.assert_awaited_once()
        event = events.member_joined.await_args.args[0]
        assert isinstance(event, MemberJoinedEvent)
        assert event.member_id == result.member_id
        assert event.display_name == "alice"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("team_name,display_name", [("", "alice"), ("frontend", "  ")])
    async def test_blank_input_rejected(
        self, service: JoinTeamService, events: AsyncMock, team_name: str, display_name: str
    ):
        with pytest.raises(ValidationError):
            await service.execute(team_name, display_name)

        events.member_joined.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_team_name_rejected(self, service: JoinTeamService):
        with pytest.raises(ValidationError):
            await service.execute("front end", "alice")

    @pytest.mark.asyncio
    async def test_works_without_event_sink(
        self, members: InMemoryMemberRepository, teams: InMemoryTeamRepository
    ):
        result = await JoinTeamService(members, teams).execute("frontend", "alice")

        assert result.member_count == 1

    @pytest.mark.asyncio
    async def test_rejected_join_writes_nothing(
        self,
        service: JoinTeamService,
        members: InMemoryMemberRepository,
        teams: InMemoryTeamRepository,
    ):
        with pytest.raises(ValidationError):
            await service.execute("bad_team", "alice")

        assert members.count == 0
        assert teams.count == 0


class TestValidateJoin:
    @pytest.mark.parametrize(
        "team_name,display_name,field",
        [
            ("", "alice", "team_name"),
            ("frontend", " ", "display_name"),
            ("bad_team", "alice", "team_id"),
            ("9lives", "alice", "team_id"),
        ],
    )
    def test_rejects(self, team_name: str, display_name: str, field: str):
        with pytest.raises(ValidationError) as exc_info:
            JoinTeamService.validate(team_name, display_name)

        assert exc_info.value.field == field

    def test_accepts_mixed_case_name(self):
        JoinTeamService.validate("  Frontend-2 ", "alice")
