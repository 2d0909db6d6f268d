"""Member repository protocol."""

from typing import Protocol

from domain.entities.member import Member
from domain.value_objects.ids import MemberId, TeamId


class IMemberRepository(Protocol):
    """Repository interface for Member entities."""

    async def save(self, member: Member) -> None:
        """Insert or replace a member."""
        ...

    async def get(self, id: MemberId) -> Member | None:
        """Get a member by ID."""
        ...

    async def get_by_team(self, team_id: TeamId) -> list[Member]:
        """Get all members of a team."""
        ...

    async def get_online_by_team(self, team_id: TeamId) -> list[Member]:
        """Get online or idle members of a team."""
        ...

    async def delete(self, id: MemberId) -> bool:
        """Delete a member."""
        ...

    async def exists(self, id: MemberId) -> bool:
        """Check whether a member exists."""
        ...

    async def list_all(self) -> list[Member]:
        """Get every member."""
        ...
