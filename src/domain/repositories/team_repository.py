"""Team repository protocol."""

from typing import Protocol

from domain.entities.team import Team
from domain.value_objects.ids import TeamId


class ITeamRepository(Protocol):
    """Repository interface for Team entities."""

    async def save(self, team: Team) -> None:
        """Insert or replace a team."""
        ...

    async def get(self, id: TeamId) -> Team | None:
        """Get a team by ID."""
        ...

    async def get_by_name(self, name: str) -> Team | None:
        """Get a team by name, case-insensitively."""
        ...

    async def get_or_create(self, name: str) -> Team:
        """Get the team for a name, creating it on first use."""
        ...

    async def delete(self, id: TeamId) -> bool:
        """Delete a team."""
        ...

    async def exists(self, id: TeamId) -> bool:
        """Check whether a team exists."""
        ...

    async def list_all(self) -> list[Team]:
        """Get every team."""
        ...

    async def list_non_empty(self) -> list[Team]:
        """Get teams with at least one member."""
        ...
