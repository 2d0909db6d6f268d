"""Member domain entity."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from core.exceptions import ValidationError
from domain.value_objects.ids import MemberId, TeamId


class MemberStatus(StrEnum):
    """Presence of a member."""

    ONLINE = "ONLINE"
    IDLE = "IDLE"
    OFFLINE = "OFFLINE"


@dataclass
class Member:
    """Domain entity for a participant connected to the hub."""

    id: MemberId
    team_id: TeamId
    display_name: str
    status: MemberStatus = MemberStatus.ONLINE
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.last_activity_at is None:
            self.last_activity_at = self.connected_at

    @classmethod
    def create(
        cls,
        team_id: TeamId,
        display_name: str,
        member_id: MemberId | None = None,
        status: MemberStatus = MemberStatus.ONLINE,
    ) -> "Member":
        """Create a new member, rejecting blank display names."""
        name = display_name.strip()
        if not name:
            raise ValidationError("display_name", "Display name cannot be empty")
        return cls(
            id=member_id or MemberId.generate(),
            team_id=team_id,
            display_name=name,
            status=status,
        )

    @property
    def is_online(self) -> bool:
        return self.status in (MemberStatus.ONLINE, MemberStatus.IDLE)

    def go_online(self) -> None:
        self.status = MemberStatus.ONLINE
        self.last_activity_at = datetime.now(UTC)

    def go_idle(self) -> None:
        self.status = MemberStatus.IDLE

    def go_offline(self) -> None:
        self.status = MemberStatus.OFFLINE

    def record_activity(self) -> None:
        """Refresh the activity timestamp; an idle member comes back online."""
        self.last_activity_at = datetime.now(UTC)
        if self.status == MemberStatus.IDLE:
            self.status = MemberStatus.ONLINE
