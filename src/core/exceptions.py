"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Machine-readable error codes carried in ERROR frames."""

    # Not found errors
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    TEAM_NOT_FOUND = "TEAM_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"

    # Conflict errors
    QUESTION_ALREADY_ANSWERED = "QUESTION_ALREADY_ANSWERED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_MESSAGE = "INVALID_MESSAGE"
    NOT_JOINED = "NOT_JOINED"

    # Transport errors
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"

    # Server errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode | str,
        message: str,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.details = details
        super().__init__(self.message)

    @property
    def code(self) -> str:
        """Wire representation of the error code."""
        return str(self.error_code)


class EntityNotFoundError(AppException):
    """Generic entity not found."""

    def __init__(self, entity_name: str, entity_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.ENTITY_NOT_FOUND,
            message=f"{entity_name} with id '{entity_id}' not found",
            details={"entity": entity_name, "id": entity_id},
        )


class TeamNotFoundError(AppException):
    """Team not found."""

    def __init__(self, team_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.TEAM_NOT_FOUND,
            message=f"Team '{team_id}' not found",
            details={"team_id": team_id},
        )


class MemberNotFoundError(AppException):
    """Member not found."""

    def __init__(self, member_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.MEMBER_NOT_FOUND,
            message=f"Member '{member_id}' not found",
            details={"member_id": member_id},
        )


class QuestionNotFoundError(AppException):
    """Question not found."""

    def __init__(self, question_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.QUESTION_NOT_FOUND,
            message=f"Question '{question_id}' not found",
            details={"question_id": question_id},
        )


class QuestionAlreadyAnsweredError(AppException):
    """Question is no longer pending."""

    def __init__(self, question_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.QUESTION_ALREADY_ANSWERED,
            message=f"Question '{question_id}' has already been answered",
            details={"question_id": question_id},
        )


class ValidationError(AppException):
    """Input failed a domain rule."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(
            error_code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={"field": field},
        )


class InvalidMessageError(AppException):
    """A frame could not be parsed as a protocol message."""

    def __init__(self, message: str = "Invalid message") -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_MESSAGE,
            message=message,
        )


class NotJoinedError(AppException):
    """Operation requires the connection to have joined a team."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.NOT_JOINED,
            message="Must join a team first",
        )


class HubTimeoutError(AppException):
    """No reply arrived within the deadline."""

    def __init__(self, operation: str, timeout: float, message: str | None = None) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            error_code=ErrorCode.TIMEOUT,
            message=message or f"Operation '{operation}' timed out after {timeout:g}s",
            details={"operation": operation, "timeout": timeout},
        )


class AnswerTimeoutError(HubTimeoutError):
    """The question was delivered but nobody answered in time."""

    def __init__(self, question_id: str, timeout: float) -> None:
        self.question_id = question_id
        super().__init__(
            operation="ask",
            timeout=timeout,
            message=(
                f"Question '{question_id}' was delivered but no answer "
                f"arrived within {timeout:g}s"
            ),
        )
        self.details = {"operation": "ask", "timeout": timeout, "question_id": question_id}


class HubConnectionError(AppException):
    """Transport-level failure talking to the hub."""

    def __init__(self, message: str) -> None:
        super().__init__(
            error_code=ErrorCode.CONNECTION_ERROR,
            message=message,
        )


class HubError(AppException):
    """Failure reported by the hub in an ERROR frame."""

    def __init__(self, code: str, message: str, request_id: str | None = None) -> None:
        self.request_id = request_id
        super().__init__(
            error_code=code,
            message=message,
            details={"request_id": request_id} if request_id else None,
        )
