"""Answer repository protocol."""

from typing import Protocol

from domain.entities.answer import Answer
from domain.value_objects.ids import AnswerId, QuestionId


class IAnswerRepository(Protocol):
    """Repository interface for Answer entities."""

    async def save(self, answer: Answer) -> None:
        """Store an answer."""
        ...

    async def get(self, id: AnswerId) -> Answer | None:
        """Get an answer by ID."""
        ...

    async def get_by_question(self, question_id: QuestionId) -> Answer | None:
        """Get the answer for a question."""
        ...

    async def list_all(self) -> list[Answer]:
        """Get every answer."""
        ...
