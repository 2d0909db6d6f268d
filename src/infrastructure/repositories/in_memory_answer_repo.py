"""In-memory implementation of Answer repository."""

from domain.entities.answer import Answer
from domain.value_objects.ids import AnswerId, QuestionId


class InMemoryAnswerRepository:
    """Dict-backed implementation of IAnswerRepository.

    Does not enforce one answer per question; the question's status guard
    does that before an answer is ever created.
    """

    def __init__(self) -> None:
        self._answers: dict[AnswerId, Answer] = {}

    async def save(self, answer: Answer) -> None:
        self._answers[answer.id] = answer

    async def get(self, id: AnswerId) -> Answer | None:
        return self._answers.get(id)

    async def get_by_question(self, question_id: QuestionId) -> Answer | None:
        for answer in self._answers.values():
            if answer.question_id == question_id:
                return answer
        return None

    async def list_all(self) -> list[Answer]:
        return list(self._answers.values())

    def clear(self) -> None:
        self._answers.clear()

    @property
    def count(self) -> int:
        return len(self._answers)
