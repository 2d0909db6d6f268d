"""In-memory implementation of Question repository."""

from datetime import UTC, datetime, timedelta

from domain.entities.question import Question
from domain.value_objects.ids import MemberId, QuestionId, TeamId


class InMemoryQuestionRepository:
    """Dict-backed implementation of IQuestionRepository."""

    def __init__(self) -> None:
        self._questions: dict[QuestionId, Question] = {}

    async def save(self, question: Question) -> None:
        self._questions[question.id] = question

    async def get(self, id: QuestionId) -> Question | None:
        return self._questions.get(id)

    async def get_pending_by_team(self, team_id: TeamId) -> list[Question]:
        return [
            q for q in self._questions.values() if q.to_team_id == team_id and q.is_pending
        ]

    async def get_by_team(self, team_id: TeamId) -> list[Question]:
        return [q for q in self._questions.values() if q.to_team_id == team_id]

    async def get_by_asker(self, member_id: MemberId) -> list[Question]:
        return [q for q in self._questions.values() if q.from_member_id == member_id]

    async def get_pending_by_asker(self, member_id: MemberId) -> list[Question]:
        return [
            q
            for q in self._questions.values()
            if q.from_member_id == member_id and q.is_pending
        ]

    async def delete(self, id: QuestionId) -> bool:
        return self._questions.pop(id, None) is not None

    async def exists(self, id: QuestionId) -> bool:
        return id in self._questions

    async def list_all(self) -> list[Question]:
        return list(self._questions.values())

    async def mark_timed_out(
        self, older_than_seconds: float, now: datetime | None = None
    ) -> int:
        cutoff = (now or datetime.now(UTC)) - timedelta(seconds=older_than_seconds)
        count = 0
        for question in self._questions.values():
            if question.is_pending and question.created_at < cutoff:
                question.mark_as_timed_out()
                count += 1
        return count

    def clear(self) -> None:
        self._questions.clear()

    @property
    def count(self) -> int:
        return len(self._questions)
