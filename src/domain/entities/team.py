"""Team domain entity."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from core.exceptions import ValidationError
from domain.value_objects.ids import MemberId, TeamId


@dataclass
class Team:
    """Domain entity for a named channel of members."""

    id: TeamId
    name: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    member_ids: set[MemberId] = field(default_factory=set)

    @classmethod
    def create(cls, name: str) -> "Team":
        """Create a team whose id is the normalized name."""
        display = name.strip()
        if not display:
            raise ValidationError("name", "Team name cannot be empty")
        return cls(id=TeamId.from_name(display), name=display)

    @property
    def member_count(self) -> int:
        return len(self.member_ids)

    @property
    def is_empty(self) -> bool:
        return not self.member_ids

    def add_member(self, member_id: MemberId) -> bool:
        """Add a member. Returns False if it was already present."""
        if member_id in self.member_ids:
            return False
        self.member_ids.add(member_id)
        return True

    def remove_member(self, member_id: MemberId) -> bool:
        """Remove a member. Returns False if it was not present."""
        if member_id not in self.member_ids:
            return False
        self.member_ids.discard(member_id)
        return True

    def has_member(self, member_id: MemberId) -> bool:
        return member_id in self.member_ids

    def other_member_ids(self, exclude: MemberId) -> list[MemberId]:
        """Member ids except ``exclude``, for broadcasting to peers."""
        return [member_id for member_id in self.member_ids if member_id != exclude]
