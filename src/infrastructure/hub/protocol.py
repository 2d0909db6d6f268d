"""Wire protocol between hub and clients.

Every frame is a single JSON object with a ``type`` discriminator. Field names
are camelCase on the wire and snake_case in Python; timestamps travel as
ISO-8601 strings.
"""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

import orjson
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from core.exceptions import InvalidMessageError
from domain.entities.member import MemberStatus
from domain.entities.question import QuestionStatus
from domain.value_objects.message_content import MessageFormat


class WireModel(BaseModel):
    """Base for all protocol payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class MemberInfo(WireModel):
    member_id: str
    team_id: str
    team_name: str
    display_name: str
    status: MemberStatus


# --- Client -> Hub ---


class JoinMessage(WireModel):
    type: Literal["JOIN"] = "JOIN"
    team_name: str
    display_name: str
    request_id: str | None = None


class LeaveMessage(WireModel):
    type: Literal["LEAVE"] = "LEAVE"


class AskMessage(WireModel):
    type: Literal["ASK"] = "ASK"
    to_team: str
    content: str
    format: MessageFormat = MessageFormat.MARKDOWN
    request_id: str


class ReplyMessage(WireModel):
    type: Literal["REPLY"] = "REPLY"
    question_id: str
    content: str
    format: MessageFormat = MessageFormat.MARKDOWN


class GetInboxMessage(WireModel):
    type: Literal["GET_INBOX"] = "GET_INBOX"
    request_id: str


class PingMessage(WireModel):
    type: Literal["PING"] = "PING"


ClientMessage = Annotated[
    JoinMessage | LeaveMessage | AskMessage | ReplyMessage | GetInboxMessage | PingMessage,
    Field(discriminator="type"),
]


# --- Hub -> Client ---


class JoinedMessage(WireModel):
    type: Literal["JOINED"] = "JOINED"
    member: MemberInfo
    member_count: int
    request_id: str | None = None


class LeftMessage(WireModel):
    type: Literal["LEFT"] = "LEFT"
    member_id: str


class MemberJoinedMessage(WireModel):
    type: Literal["MEMBER_JOINED"] = "MEMBER_JOINED"
    member: MemberInfo


class MemberLeftMessage(WireModel):
    type: Literal["MEMBER_LEFT"] = "MEMBER_LEFT"
    member_id: str
    team_id: str


class QuestionMessage(WireModel):
    type: Literal["QUESTION"] = "QUESTION"
    question_id: str
    from_: MemberInfo = Field(alias="from")
    content: str
    format: MessageFormat
    created_at: datetime


class AnswerMessage(WireModel):
    type: Literal["ANSWER"] = "ANSWER"
    question_id: str
    from_: MemberInfo = Field(alias="from")
    content: str
    format: MessageFormat
    answered_at: datetime
    request_id: str | None = None


class QuestionSentMessage(WireModel):
    type: Literal["QUESTION_SENT"] = "QUESTION_SENT"
    question_id: str
    to_team_id: str
    status: QuestionStatus
    request_id: str


class InboxQuestionInfo(WireModel):
    question_id: str
    from_: MemberInfo = Field(alias="from")
    content: str
    format: MessageFormat
    status: QuestionStatus
    created_at: datetime
    age_ms: int


class InboxMessage(WireModel):
    type: Literal["INBOX"] = "INBOX"
    questions: list[InboxQuestionInfo] = Field(default_factory=list)
    total_count: int
    pending_count: int
    request_id: str


class PongMessage(WireModel):
    type: Literal["PONG"] = "PONG"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ErrorMessage(WireModel):
    type: Literal["ERROR"] = "ERROR"
    code: str
    message: str
    request_id: str | None = None


HubMessage = Annotated[
    JoinedMessage
    | LeftMessage
    | MemberJoinedMessage
    | MemberLeftMessage
    | QuestionMessage
    | AnswerMessage
    | QuestionSentMessage
    | InboxMessage
    | PongMessage
    | ErrorMessage,
    Field(discriminator="type"),
]

_client_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)
_hub_adapter: TypeAdapter[HubMessage] = TypeAdapter(HubMessage)


def serialize_message(message: WireModel) -> str:
    """Encode a message as a JSON text frame, omitting unset optionals."""
    payload = message.model_dump(mode="json", by_alias=True, exclude_none=True)
    return orjson.dumps(payload).decode()


def _parse(adapter: TypeAdapter[Any], data: str | bytes, direction: str) -> Any:
    try:
        return adapter.validate_json(data)
    except PydanticValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or 'message'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidMessageError(f"Invalid {direction} message: {errors}") from e


def parse_client_message(data: str | bytes) -> ClientMessage:
    """Decode and validate a frame sent by a client.

    Raises:
        InvalidMessageError: If the frame is not JSON, has an unknown type,
            or lacks required fields.
    """
    return _parse(_client_adapter, data, "client")


def parse_hub_message(data: str | bytes) -> HubMessage:
    """Decode and validate a frame sent by the hub."""
    return _parse(_hub_adapter, data, "hub")


def error_message(code: str, message: str, request_id: str | None = None) -> ErrorMessage:
    return ErrorMessage(code=str(code), message=message, request_id=request_id)
