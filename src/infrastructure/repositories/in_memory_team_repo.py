"""In-memory implementation of Team repository."""

from domain.entities.team import Team
from domain.value_objects.ids import TeamId


class InMemoryTeamRepository:
    """Dict-backed implementation of ITeamRepository."""

    def __init__(self) -> None:
        self._teams: dict[TeamId, Team] = {}

    async def save(self, team: Team) -> None:
        self._teams[team.id] = team

    async def get(self, id: TeamId) -> Team | None:
        return self._teams.get(id)

    async def get_by_name(self, name: str) -> Team | None:
        """Look a team up by name; names that cannot be team ids match nothing."""
        if not TeamId.is_valid(name):
            return None
        return self._teams.get(TeamId.from_name(name))

    async def get_or_create(self, name: str) -> Team:
        existing = await self.get_by_name(name)
        if existing:
            return existing

        team = Team.create(name)
        await self.save(team)
        return team

    async def delete(self, id: TeamId) -> bool:
        return self._teams.pop(id, None) is not None

    async def exists(self, id: TeamId) -> bool:
        return id in self._teams

    async def list_all(self) -> list[Team]:
        return list(self._teams.values())

    async def list_non_empty(self) -> list[Team]:
        return [t for t in self._teams.values() if not t.is_empty]

    def clear(self) -> None:
        self._teams.clear()

    @property
    def count(self) -> int:
        return len(self._teams)
