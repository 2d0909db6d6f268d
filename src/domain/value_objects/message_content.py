"""MessageContent value object."""

from dataclasses import dataclass
from enum import StrEnum

from core.exceptions import ValidationError

DEFAULT_MAX_MESSAGE_LENGTH = 50_000
PREVIEW_LENGTH = 100


class MessageFormat(StrEnum):
    """Rendering format of a message body."""

    PLAIN = "plain"
    MARKDOWN = "markdown"


@dataclass(frozen=True, slots=True)
class MessageContent:
    """Immutable, validated message text with its format."""

    text: str
    format: MessageFormat = MessageFormat.MARKDOWN

    @classmethod
    def create(
        cls,
        text: str,
        format: MessageFormat | str = MessageFormat.MARKDOWN,
        max_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ) -> "MessageContent":
        """Trim and validate text.

        Raises:
            ValidationError: If the text is empty after trimming or longer
                than ``max_length`` characters.
        """
        trimmed = text.strip()
        if not trimmed:
            raise ValidationError("text", "Message content cannot be empty")
        if len(trimmed) > max_length:
            raise ValidationError(
                "text",
                f"Message content exceeds maximum length of {max_length} characters",
            )
        try:
            message_format = MessageFormat(format)
        except ValueError as e:
            raise ValidationError("format", f"Unsupported message format: {format}") from e
        return cls(text=trimmed, format=message_format)

    @classmethod
    def plain(cls, text: str) -> "MessageContent":
        return cls.create(text, MessageFormat.PLAIN)

    @classmethod
    def markdown(cls, text: str) -> "MessageContent":
        return cls.create(text, MessageFormat.MARKDOWN)

    @property
    def length(self) -> int:
        return len(self.text)

    @property
    def is_markdown(self) -> bool:
        return self.format == MessageFormat.MARKDOWN

    @property
    def is_plain(self) -> bool:
        return self.format == MessageFormat.PLAIN

    @property
    def preview(self) -> str:
        """First 100 characters, truncated with an ellipsis."""
        if len(self.text) <= PREVIEW_LENGTH:
            return self.text
        return f"{self.text[: PREVIEW_LENGTH - 3]}..."

    def to_dict(self) -> dict[str, str]:
        return {"text": self.text, "format": self.format.value}

    def __str__(self) -> str:
        return self.text
