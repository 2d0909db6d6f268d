"""Hub server: connection registry, message routing and background sweeps."""

import asyncio
import time
from datetime import datetime
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import uuid4

import structlog
from starlette.websockets import WebSocketDisconnect

from core.config import Settings, get_settings
from core.exceptions import AppException, ErrorCode, NotJoinedError
from domain.entities.member import MemberStatus
from domain.events import (
    MemberJoinedEvent,
    MemberLeftEvent,
    QuestionAnsweredEvent,
    QuestionAskedEvent,
)
from domain.repositories.answer_repository import IAnswerRepository
from domain.repositories.member_repository import IMemberRepository
from domain.repositories.question_repository import IQuestionRepository
from domain.repositories.team_repository import ITeamRepository
from domain.services.ask_question_service import AskQuestionService
from domain.services.get_inbox_service import GetInboxService
from domain.services.join_team_service import JoinTeamService
from domain.services.leave_team_service import LeaveTeamService
from domain.services.reply_question_service import ReplyQuestionService
from domain.value_objects.ids import MemberId, QuestionId, TeamId
from infrastructure.hub.protocol import (
    AnswerMessage,
    AskMessage,
    GetInboxMessage,
    InboxMessage,
    InboxQuestionInfo,
    JoinedMessage,
    JoinMessage,
    LeaveMessage,
    LeftMessage,
    MemberInfo,
    MemberJoinedMessage,
    MemberLeftMessage,
    PingMessage,
    PongMessage,
    QuestionMessage,
    QuestionSentMessage,
    ReplyMessage,
    WireModel,
    error_message,
    parse_client_message,
    serialize_message,
)
from infrastructure.repositories.in_memory_answer_repo import InMemoryAnswerRepository
from infrastructure.repositories.in_memory_member_repo import InMemoryMemberRepository
from infrastructure.repositories.in_memory_question_repo import InMemoryQuestionRepository
from infrastructure.repositories.in_memory_team_repo import InMemoryTeamRepository

logger = structlog.get_logger()

UNKNOWN = "Unknown"
WS_GOING_AWAY = 1001


class WebSocketLike(Protocol):
    """The part of a WebSocket the hub needs."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass
class ClientConnection:
    """Live connection state. ``member_id`` is only a lookup key."""

    websocket: WebSocketLike
    connection_id: str = field(default_factory=lambda: str(uuid4()))
    member_id: MemberId | None = None
    team_id: TeamId | None = None
    last_seen: float = field(default_factory=time.monotonic)
    ask_request_id: str | None = None

    @property
    def is_joined(self) -> bool:
        return self.member_id is not None

    def touch(self, now: float | None = None) -> None:
        self.last_seen = time.monotonic() if now is None else now


class HubServer:
    """Tracks connections, teams and questions, and routes protocol messages.

    The hub is the event sink of its own use cases: domain events raised while
    handling one connection's message are turned into pushes to the other
    affected connections. All state lives in the repositories and the two
    connection maps; handlers run on a single event loop, so no locking is
    needed.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        members: IMemberRepository | None = None,
        teams: ITeamRepository | None = None,
        questions: IQuestionRepository | None = None,
        answers: IAnswerRepository | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._members = members or InMemoryMemberRepository()
        self._teams = teams or InMemoryTeamRepository()
        self._questions = questions or InMemoryQuestionRepository()
        self._answers = answers or InMemoryAnswerRepository()

        self._connections: dict[str, ClientConnection] = {}
        self._member_connections: dict[MemberId, ClientConnection] = {}
        self._ask_request_ids: dict[QuestionId, str] = {}
        self._tasks: list[asyncio.Task[None]] = []

        max_length = self._settings.max_message_length
        self._join_team = JoinTeamService(self._members, self._teams, events=self)
        self._leave_team = LeaveTeamService(self._members, self._teams, events=self)
        self._ask_question = AskQuestionService(
            self._members, self._teams, self._questions, events=self, max_message_length=max_length
        )
        self._get_inbox = GetInboxService(self._members, self._teams, self._questions)
        self._reply_question = ReplyQuestionService(
            self._members, self._questions, self._answers, events=self, max_message_length=max_length
        )

        self._handlers: dict[str, Callable[[ClientConnection, Any], Awaitable[None]]] = {
            "JOIN": self._handle_join,
            "LEAVE": self._handle_leave,
            "ASK": self._handle_ask,
            "REPLY": self._handle_reply,
            "GET_INBOX": self._handle_get_inbox,
            "PING": self._handle_ping,
        }

    # --- Lifecycle ---

    async def start(self) -> None:
        """Start the liveness and question-timeout sweeps."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(
                self._run_periodically(
                    "heartbeat_sweep",
                    self._settings.heartbeat_interval,
                    self.sweep_stale_connections,
                )
            ),
            asyncio.create_task(
                self._run_periodically(
                    "question_timeout_sweep",
                    self._settings.question_sweep_interval,
                    self.sweep_timed_out_questions,
                )
            ),
        ]
        logger.info(
            "hub_started",
            heartbeat_interval=self._settings.heartbeat_interval,
            client_timeout=self._settings.client_timeout,
            answer_timeout=self._settings.answer_timeout,
        )

    async def stop(self) -> None:
        """Stop the sweeps and close every connection."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        for connection in list(self._connections.values()):
            await self.disconnect(connection)
            await self._close_socket(connection)
        logger.info("hub_stopped")

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    @property
    def client_count(self) -> int:
        return len(self._connections)

    async def stats(self) -> dict[str, int]:
        """Counts for the health endpoint."""
        members = await self._members.list_all()
        teams = await self._teams.list_all()
        questions = await self._questions.list_all()
        return {
            "connections": len(self._connections),
            "teams": len(teams),
            "members_online": sum(1 for m in members if m.is_online),
            "pending_questions": sum(1 for q in questions if q.is_pending),
        }

    # --- Connection handling ---

    async def connect(self, websocket: WebSocketLike) -> ClientConnection:
        connection = ClientConnection(websocket=websocket)
        self._connections[connection.connection_id] = connection
        logger.info(
            "client_connected",
            connection_id=connection.connection_id,
            total_clients=len(self._connections),
        )
        return connection

    async def disconnect(self, connection: ClientConnection) -> None:
        """Forget a connection and take its member out of its team. Idempotent."""
        if self._connections.pop(connection.connection_id, None) is None:
            return
        if connection.is_joined:
            await self._leave(connection)
        logger.info(
            "client_disconnected",
            connection_id=connection.connection_id,
            total_clients=len(self._connections),
        )

    async def handle_message(self, connection: ClientConnection, data: str | bytes) -> None:
        """Handle one inbound frame.

        Failures are answered with an ERROR frame on the same connection;
        the connection itself stays open.
        """
        if connection.connection_id not in self._connections:
            return
        connection.touch()
        request_id: str | None = None
        try:
            message = parse_client_message(data)
            request_id = getattr(message, "request_id", None)
            logger.debug(
                "message_received",
                type=message.type,
                member_id=str(connection.member_id) if connection.member_id else None,
            )
            await self._handlers[message.type](connection, message)
        except AppException as e:
            logger.warning(
                "message_failed",
                error_code=e.code,
                message=e.message,
                member_id=str(connection.member_id) if connection.member_id else None,
            )
            await self._send(connection, error_message(e.code, e.message, request_id))
        except Exception as e:
            logger.error(
                "unhandled_exception",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            detail = "An unexpected error occurred"
            if not self._settings.is_production:
                detail = str(e)
            await self._send(
                connection, error_message(ErrorCode.INTERNAL_ERROR, detail, request_id)
            )

    # --- Message handlers ---

    async def _handle_join(self, connection: ClientConnection, message: JoinMessage) -> None:
        # A rejected JOIN leaves the current membership untouched.
        self._join_team.validate(message.team_name, message.display_name)
        if connection.is_joined:
            # A member belongs to one team at a time.
            await self._leave(connection)

        result = await self._join_team.execute(message.team_name, message.display_name)

        connection.member_id = result.member_id
        connection.team_id = result.team_id
        self._member_connections[result.member_id] = connection

        await self._send(
            connection,
            JoinedMessage(
                member=MemberInfo(
                    member_id=str(result.member_id),
                    team_id=str(result.team_id),
                    team_name=result.team_name,
                    display_name=result.display_name,
                    status=result.status,
                ),
                member_count=result.member_count,
                request_id=message.request_id,
            ),
        )

    async def _handle_leave(self, connection: ClientConnection, message: LeaveMessage) -> None:
        member_id = self._require_joined(connection)
        await self._leave(connection)
        await self._send(connection, LeftMessage(member_id=str(member_id)))

    async def _handle_ask(self, connection: ClientConnection, message: AskMessage) -> None:
        member_id = self._require_joined(connection)

        connection.ask_request_id = message.request_id
        try:
            result = await self._ask_question.execute(
                member_id, message.to_team, message.content, message.format
            )
        finally:
            connection.ask_request_id = None

        await self._send(
            connection,
            QuestionSentMessage(
                question_id=str(result.question_id),
                to_team_id=str(result.to_team_id),
                status=result.status,
                request_id=message.request_id,
            ),
        )

    async def _handle_reply(self, connection: ClientConnection, message: ReplyMessage) -> None:
        member_id = self._require_joined(connection)
        await self._reply_question.execute(
            QuestionId(message.question_id), member_id, message.content, message.format
        )

    async def _handle_get_inbox(
        self, connection: ClientConnection, message: GetInboxMessage
    ) -> None:
        member_id = self._require_joined(connection)
        if connection.team_id is None:
            raise NotJoinedError()

        result = await self._get_inbox.execute(member_id, connection.team_id)
        questions = [
            InboxQuestionInfo(
                question_id=str(item.question_id),
                from_=MemberInfo(
                    member_id=str(item.from_member_id),
                    team_id=str(item.from_team_id) if item.from_team_id else "",
                    team_name=item.from_team_name,
                    display_name=item.from_display_name,
                    status=item.from_status,
                ),
                content=item.content,
                format=item.format,
                status=item.status,
                created_at=item.created_at,
                age_ms=item.age_ms,
            )
            for item in result.questions
        ]
        await self._send(
            connection,
            InboxMessage(
                questions=questions,
                total_count=result.total_count,
                pending_count=result.pending_count,
                request_id=message.request_id,
            ),
        )

    async def _handle_ping(self, connection: ClientConnection, message: PingMessage) -> None:
        await self._send(connection, PongMessage())

    # --- Event sink ---

    async def member_joined(self, event: MemberJoinedEvent) -> None:
        await self._broadcast_to_team(
            event.team_id,
            event.member_id,
            MemberJoinedMessage(member=await self._member_info(event.member_id)),
        )

    async def member_left(self, event: MemberLeftEvent) -> None:
        await self._broadcast_to_team(
            event.team_id,
            event.member_id,
            MemberLeftMessage(member_id=str(event.member_id), team_id=str(event.team_id)),
        )

    async def question_asked(self, event: QuestionAskedEvent) -> None:
        asker = self._member_connections.get(event.from_member_id)
        if asker and asker.ask_request_id:
            self._ask_request_ids[event.question_id] = asker.ask_request_id

        question = await self._questions.get(event.question_id)
        team = await self._teams.get(event.to_team_id)
        if not question or not team:
            return

        message = QuestionMessage(
            question_id=str(question.id),
            from_=await self._member_info(question.from_member_id),
            content=question.content.text,
            format=question.content.format,
            created_at=question.created_at,
        )
        delivered = 0
        for member_id in team.member_ids:
            connection = self._member_connections.get(member_id)
            if connection and await self._send(connection, message):
                delivered += 1

        logger.info(
            "question_delivered",
            question_id=str(question.id),
            to_team_id=str(team.id),
            team_size=team.member_count,
            delivered_count=delivered,
        )

    async def question_answered(self, event: QuestionAnsweredEvent) -> None:
        request_id = self._ask_request_ids.pop(event.question_id, None)
        question = await self._questions.get(event.question_id)
        answer = await self._answers.get_by_question(event.question_id)
        if not question or not answer:
            return

        connection = self._member_connections.get(question.from_member_id)
        if not connection:
            logger.warning(
                "answer_dropped",
                question_id=str(question.id),
                asker_id=str(question.from_member_id),
            )
            return

        await self._send(
            connection,
            AnswerMessage(
                question_id=str(question.id),
                from_=await self._member_info(event.answered_by_member_id),
                content=answer.content.text,
                format=answer.content.format,
                answered_at=answer.created_at,
                request_id=request_id,
            ),
        )
        logger.info(
            "answer_delivered",
            question_id=str(question.id),
            answered_by=str(event.answered_by_member_id),
            delivered_to=str(question.from_member_id),
        )

    # --- Background sweeps ---

    async def sweep_stale_connections(self, now: float | None = None) -> int:
        """Terminate connections silent for longer than the client timeout."""
        now = time.monotonic() if now is None else now
        stale = [
            connection
            for connection in self._connections.values()
            if now - connection.last_seen > self._settings.client_timeout
        ]
        for connection in stale:
            logger.info(
                "client_timed_out",
                connection_id=connection.connection_id,
                idle_seconds=round(now - connection.last_seen, 1),
            )
            await self.disconnect(connection)
            await self._close_socket(connection)
        return len(stale)

    async def sweep_timed_out_questions(self, now: datetime | None = None) -> int:
        """Mark pending questions older than the answer timeout as TIMEOUT.

        Askers are not notified; their own call deadline runs independently.
        """
        count = await self._questions.mark_timed_out(self._settings.answer_timeout, now)
        if count:
            logger.info("questions_timed_out", count=count)
        await self._forget_settled_asks()
        return count

    async def _run_periodically(
        self, name: str, interval: float, sweep: Callable[[], Awaitable[int]]
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await sweep()
            except Exception:
                logger.exception("sweep_failed", sweep=name)

    # --- Helpers ---

    def _require_joined(self, connection: ClientConnection) -> MemberId:
        if connection.member_id is None:
            raise NotJoinedError()
        return connection.member_id

    async def _leave(self, connection: ClientConnection) -> None:
        member_id = connection.member_id
        if member_id is None:
            return
        connection.member_id = None
        connection.team_id = None
        if self._member_connections.get(member_id) is connection:
            del self._member_connections[member_id]
        for question in await self._questions.get_by_asker(member_id):
            self._ask_request_ids.pop(question.id, None)
        await self._leave_team.execute(member_id)

    async def _broadcast_to_team(
        self, team_id: TeamId, exclude: MemberId, message: WireModel
    ) -> None:
        team = await self._teams.get(team_id)
        if not team:
            return
        for member_id in team.other_member_ids(exclude):
            connection = self._member_connections.get(member_id)
            if connection:
                await self._send(connection, message)

    async def _forget_settled_asks(self) -> None:
        """Drop ASK request ids of questions that can no longer be answered."""
        for question_id in list(self._ask_request_ids):
            question = await self._questions.get(question_id)
            if question is None or not question.is_pending:
                del self._ask_request_ids[question_id]

    async def _member_info(self, member_id: MemberId) -> MemberInfo:
        member = await self._members.get(member_id)
        team = await self._teams.get(member.team_id) if member else None
        return MemberInfo(
            member_id=str(member_id),
            team_id=str(member.team_id) if member else "",
            team_name=team.name if team else UNKNOWN,
            display_name=member.display_name if member else UNKNOWN,
            status=member.status if member else MemberStatus.OFFLINE,
        )

    async def _send(self, connection: ClientConnection, message: WireModel) -> bool:
        """Best-effort send. Returns False if the socket is already gone."""
        if connection.connection_id not in self._connections:
            return False
        try:
            await connection.websocket.send_text(serialize_message(message))
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.warning(
                "send_failed",
                connection_id=connection.connection_id,
                error=str(e),
            )
            return False
        return True

    async def _close_socket(self, connection: ClientConnection) -> None:
        try:
            await connection.websocket.close(code=WS_GOING_AWAY)
        except (RuntimeError, OSError) as e:
            logger.debug(
                "close_failed",
                connection_id=connection.connection_id,
                error=str(e),
            )
