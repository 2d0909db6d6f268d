"""In-memory implementation of Member repository."""

from domain.entities.member import Member
from domain.value_objects.ids import MemberId, TeamId


class InMemoryMemberRepository:
    """Dict-backed implementation of IMemberRepository."""

    def __init__(self) -> None:
        self._members: dict[MemberId, Member] = {}

    async def save(self, member: Member) -> None:
        self._members[member.id] = member

    async def get(self, id: MemberId) -> Member | None:
        return self._members.get(id)

    async def get_by_team(self, team_id: TeamId) -> list[Member]:
        return [m for m in self._members.values() if m.team_id == team_id]

    async def get_online_by_team(self, team_id: TeamId) -> list[Member]:
        return [
            m for m in self._members.values() if m.team_id == team_id and m.is_online
        ]

    async def delete(self, id: MemberId) -> bool:
        return self._members.pop(id, None) is not None

    async def exists(self, id: MemberId) -> bool:
        return id in self._members

    async def list_all(self) -> list[Member]:
        return list(self._members.values())

    def clear(self) -> None:
        self._members.clear()

    @property
    def count(self) -> int:
        return len(self._members)
