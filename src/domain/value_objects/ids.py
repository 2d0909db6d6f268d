"""Typed identifiers for hub entities.

Each entity gets its own wrapper type so a team id can never be passed where a
member id is expected. Two ids of different kinds never compare equal, even
when they wrap the same text.
"""

import re
from dataclasses import dataclass
from uuid import uuid4

from core.exceptions import ValidationError

TEAM_ID_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")


@dataclass(frozen=True, slots=True)
class MemberId:
    """Identity of a connected member."""

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValidationError("member_id", "Member id cannot be empty")

    @classmethod
    def generate(cls) -> "MemberId":
        return cls(str(uuid4()))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class TeamId:
    """Normalized team identifier (lowercase slug of the team name)."""

    value: str

    def __post_init__(self) -> None:
        if not TEAM_ID_PATTERN.match(self.value):
            raise ValidationError(
                "team_id",
                f"Invalid team id '{self.value}': must start with a letter and "
                "contain only lowercase letters, digits and hyphens",
            )

    @classmethod
    def from_name(cls, name: str) -> "TeamId":
        """Normalize a display name into a team id."""
        return cls(name.strip().lower())

    @staticmethod
    def is_valid(name: str) -> bool:
        return bool(TEAM_ID_PATTERN.match(name.strip().lower()))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class QuestionId:
    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValidationError("question_id", "Question id cannot be empty")

    @classmethod
    def generate(cls) -> "QuestionId":
        return cls(f"q_{uuid4()}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class AnswerId:
    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValidationError("answer_id", "Answer id cannot be empty")

    @classmethod
    def generate(cls) -> "AnswerId":
        return cls(f"a_{uuid4()}")

    def __str__(self) -> str:
        return self.value
