"""Hub client: turns the push protocol into awaitable calls with deadlines."""

import asyncio
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast
from uuid import uuid4

import structlog
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosedError, WebSocketException
from websockets.protocol import State

from core.config import Settings, get_settings
from core.exceptions import (
    AnswerTimeoutError,
    AppException,
    ErrorCode,
    HubConnectionError,
    HubError,
    HubTimeoutError,
    InvalidMessageError,
)
from domain.value_objects.message_content import MessageFormat
from infrastructure.hub.protocol import (
    AnswerMessage,
    AskMessage,
    GetInboxMessage,
    HubMessage,
    InboxMessage,
    JoinedMessage,
    JoinMessage,
    LeaveMessage,
    MemberInfo,
    PingMessage,
    ReplyMessage,
    WireModel,
    parse_hub_message,
    serialize_message,
)

logger = structlog.get_logger()

Observer = Callable[..., Any]


@dataclass
class HubClientObservers:
    """Callbacks for unsolicited hub traffic. Each may be sync or async."""

    on_connected: Observer | None = None
    on_disconnected: Observer | None = None
    on_question: Observer | None = None
    on_answer: Observer | None = None
    on_member_joined: Observer | None = None
    on_member_left: Observer | None = None
    on_error: Observer | None = None


@dataclass
class _Waiter:
    predicate: Callable[[HubMessage], bool]
    future: "asyncio.Future[HubMessage]"


def _reply_to(request_id: str, expected_type: str) -> Callable[[HubMessage], bool]:
    """Match the expected reply, or an ERROR, carrying ``request_id``."""

    def predicate(message: HubMessage) -> bool:
        if getattr(message, "request_id", None) != request_id:
            return False
        return message.type in (expected_type, "ERROR")

    return predicate


class HubClient:
    """Single-connection hub client.

    Every call that expects a reply registers a waiter keyed by a fresh request
    id before sending. Each inbound frame resolves at most the first matching
    waiter and is then always handed to the observers. Waiters that miss their
    deadline are dropped, so late replies match nothing and are ignored.

    Usage::

        async with HubClient() as client:
            await client.join("frontend", "alice")
            answer = await client.ask("backend", "Which port?", timeout=30)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        url: str | None = None,
        reconnect: bool | None = None,
        observers: HubClientObservers | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._url = url or self._settings.ws_url
        self._reconnect = self._settings.reconnect_enabled if reconnect is None else reconnect
        self._observers = observers or HubClientObservers()

        self._ws: ClientConnection | None = None
        self._waiters: dict[str, _Waiter] = {}
        self._reader_task: asyncio.Task[None] | None = None
        self._ping_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._observer_tasks: set[asyncio.Task[Any]] = set()
        self._reconnect_attempts = 0
        self._closing = False

        self._member: MemberInfo | None = None
        self._identity: tuple[str, str] | None = None

    async def __aenter__(self) -> "HubClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    # --- State ---

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._ws.state is State.OPEN

    @property
    def member_id(self) -> str | None:
        return self._member.member_id if self._member else None

    @property
    def team_id(self) -> str | None:
        return self._member.team_id if self._member else None

    @property
    def team_name(self) -> str | None:
        return self._member.team_name if self._member else None

    @property
    def display_name(self) -> str | None:
        return self._member.display_name if self._member else None

    # --- Connection lifecycle ---

    async def connect(self) -> None:
        """Open the connection.

        Raises:
            HubConnectionError: If the hub cannot be reached.
        """
        if self.is_connected:
            return
        self._closing = False
        self._reconnect_attempts = 0
        await self._open()

    async def disconnect(self) -> None:
        """Leave the team, close the connection and stop reconnecting."""
        self._closing = True
        if self._reconnect_task and self._reconnect_task is not asyncio.current_task():
            self._reconnect_task.cancel()

        if self.is_connected and self._member is not None:
            try:
                await self._send(LeaveMessage())
            except HubConnectionError as e:
                logger.debug("leave_not_sent", error=e.message)

        ws = self._ws
        if ws is not None:
            await ws.close()
        if self._reader_task and self._reader_task is not asyncio.current_task():
            await asyncio.gather(self._reader_task, return_exceptions=True)
        self._on_connection_lost(ws)

        self._identity = None
        self._member = None

    async def _open(self) -> None:
        try:
            ws = await connect(
                self._url,
                ping_interval=None,
                open_timeout=self._settings.join_timeout,
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            raise HubConnectionError(f"Could not connect to hub at {self._url}: {e}") from e

        self._ws = ws
        self._reader_task = asyncio.create_task(self._read_loop(ws))
        self._ping_task = asyncio.create_task(self._ping_loop())
        logger.info("hub_connected", url=self._url)
        self._notify(self._observers.on_connected)

    async def _read_loop(self, ws: ClientConnection) -> None:
        try:
            async for data in ws:
                await self._handle_raw(data)
        except ConnectionClosedError as e:
            logger.warning(
                "hub_connection_lost",
                code=e.rcvd.code if e.rcvd else None,
                reason=e.rcvd.reason if e.rcvd else None,
            )
        finally:
            self._on_connection_lost(ws)

    def _on_connection_lost(self, ws: ClientConnection | None) -> None:
        if ws is None or self._ws is not ws:
            return
        self._ws = None
        self._member = None
        if self._ping_task:
            self._ping_task.cancel()
            self._ping_task = None

        self._fail_waiters(HubConnectionError("Connection to hub lost"))
        logger.info("hub_disconnected", url=self._url)
        self._notify(self._observers.on_disconnected)

        if self._closing or not self._reconnect:
            return
        if self._reconnect_task and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        max_attempts = self._settings.max_reconnect_attempts
        while self._reconnect_attempts < max_attempts and not self._closing:
            self._reconnect_attempts += 1
            await asyncio.sleep(self._settings.reconnect_delay)
            logger.info(
                "hub_reconnecting",
                attempt=self._reconnect_attempts,
                max_attempts=max_attempts,
            )
            try:
                await self._open()
            except HubConnectionError as e:
                logger.warning(
                    "hub_reconnect_failed",
                    attempt=self._reconnect_attempts,
                    error=e.message,
                )
                continue

            if self._identity is None:
                return
            team_name, display_name = self._identity
            try:
                await self.join(team_name, display_name)
            except HubConnectionError as e:
                logger.warning("rejoin_failed", team_name=team_name, error=e.message)
                continue
            except AppException as e:
                logger.warning("rejoin_failed", team_name=team_name, error=e.message)
                self._notify(self._observers.on_error, e)
                return
            # The counter resets only after a replayed JOIN succeeds.
            self._reconnect_attempts = 0
            return

        if not self._closing:
            logger.error("hub_reconnect_exhausted", attempts=max_attempts)
            self._notify(
                self._observers.on_error,
                HubConnectionError(f"Gave up reconnecting after {max_attempts} attempts"),
            )

    async def _ping_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.heartbeat_interval)
            try:
                await self._send(PingMessage())
            except HubConnectionError:
                return

    # --- Operations ---

    async def join(self, team_name: str, display_name: str) -> JoinedMessage:
        """Join a team, waiting up to ``join_timeout`` for JOINED.

        The identity is remembered and replayed after a reconnect. The hub
        validates a JOIN before leaving the current team, so a VALIDATION_ERROR
        keeps the current membership; any other rejection clears it.
        """
        request_id = self._new_request_id()
        future = self._register(request_id, _reply_to(request_id, "JOINED"))
        try:
            await self._send(
                JoinMessage(team_name=team_name, display_name=display_name, request_id=request_id)
            )
            joined = cast(
                JoinedMessage,
                await self._await(future, self._settings.join_timeout, "join"),
            )
        except HubError as e:
            if e.code != ErrorCode.VALIDATION_ERROR:
                self._member = None
                self._identity = None
            raise
        finally:
            self._discard(request_id)

        self._member = joined.member
        self._identity = (team_name, display_name)
        logger.info(
            "joined_team",
            member_id=joined.member.member_id,
            team_id=joined.member.team_id,
            member_count=joined.member_count,
        )
        return joined

    async def ask(
        self,
        to_team: str,
        content: str,
        format: MessageFormat | str = MessageFormat.MARKDOWN,
        timeout: float | None = None,
    ) -> AnswerMessage:
        """Ask another team and wait for the first answer.

        The whole call never outlives ``timeout`` (default ``answer_timeout``).
        QUESTION_SENT must arrive within ``ack_timeout``; the rest of the budget
        is spent waiting for the ANSWER.

        Raises:
            HubError: If the hub rejects the question.
            HubTimeoutError: If the hub did not acknowledge the question.
            AnswerTimeoutError: If the question was delivered but unanswered.
        """
        timeout = self._settings.answer_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        request_id = self._new_request_id()
        ack_key = f"{request_id}:ack"
        answer_key = f"{request_id}:answer"
        # The answer may overtake the acknowledgement, so both wait from the start.
        ack = self._register(ack_key, _reply_to(request_id, "QUESTION_SENT"))
        answer = self._register(
            answer_key,
            lambda m: m.type == "ANSWER" and m.request_id == request_id,
        )
        try:
            await self._send(
                AskMessage(
                    to_team=to_team,
                    content=content,
                    format=MessageFormat(format),
                    request_id=request_id,
                )
            )
            sent = await self._await(ack, min(self._settings.ack_timeout, timeout), "ask")
            remaining = max(deadline - loop.time(), 0)
            try:
                result = cast(AnswerMessage, await asyncio.wait_for(answer, remaining))
            except TimeoutError as e:
                logger.info("answer_timed_out", question_id=sent.question_id, timeout=timeout)
                raise AnswerTimeoutError(sent.question_id, timeout) from e
        finally:
            self._discard(ack_key)
            self._discard(answer_key)

        return result

    async def get_inbox(self) -> InboxMessage:
        """Fetch pending questions addressed to this client's team."""
        request_id = self._new_request_id()
        future = self._register(request_id, _reply_to(request_id, "INBOX"))
        try:
            await self._send(GetInboxMessage(request_id=request_id))
            inbox = await self._await(future, self._settings.ack_timeout, "get_inbox")
        finally:
            self._discard(request_id)

        return cast(InboxMessage, inbox)

    async def reply(
        self,
        question_id: str,
        content: str,
        format: MessageFormat | str = MessageFormat.MARKDOWN,
    ) -> None:
        """Send an answer. The hub does not acknowledge replies."""
        await self._send(
            ReplyMessage(question_id=question_id, content=content, format=MessageFormat(format))
        )

    # --- Inbound dispatch ---

    async def _handle_raw(self, data: str | bytes) -> None:
        try:
            message = parse_hub_message(data)
        except InvalidMessageError as e:
            logger.warning("invalid_hub_message", error=e.message)
            return

        self._resolve_waiter(message)
        self._dispatch(message)

    def _resolve_waiter(self, message: HubMessage) -> None:
        for key, waiter in list(self._waiters.items()):
            if waiter.future.done() or not waiter.predicate(message):
                continue
            del self._waiters[key]
            if message.type == "ERROR":
                waiter.future.set_exception(
                    HubError(message.code, message.message, message.request_id)
                )
            else:
                waiter.future.set_result(message)
            return

    def _dispatch(self, message: HubMessage) -> None:
        observers = self._observers
        match message.type:
            case "QUESTION":
                self._notify(observers.on_question, message)
            case "ANSWER":
                self._notify(observers.on_answer, message)
            case "MEMBER_JOINED":
                self._notify(observers.on_member_joined, message)
            case "MEMBER_LEFT":
                self._notify(observers.on_member_left, message)
            case "ERROR":
                self._notify(
                    observers.on_error,
                    HubError(message.code, message.message, message.request_id),
                )

    def _notify(self, callback: Observer | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
        except Exception:
            logger.exception("observer_failed", observer=getattr(callback, "__name__", None))
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._observer_tasks.add(task)
            task.add_done_callback(self._observer_done)

    def _observer_done(self, task: "asyncio.Task[Any]") -> None:
        self._observer_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("observer_failed", error=str(error), error_type=type(error).__name__)

    # --- Waiters ---

    def _new_request_id(self) -> str:
        return str(uuid4())

    def _register(
        self, key: str, predicate: Callable[[HubMessage], bool]
    ) -> "asyncio.Future[HubMessage]":
        future: asyncio.Future[HubMessage] = asyncio.get_running_loop().create_future()
        self._waiters[key] = _Waiter(predicate=predicate, future=future)
        return future

    async def _await(
        self, future: "asyncio.Future[HubMessage]", timeout: float, operation: str
    ) -> Any:
        try:
            return await asyncio.wait_for(future, timeout)
        except TimeoutError as e:
            raise HubTimeoutError(operation, timeout) from e

    def _discard(self, key: str) -> None:
        waiter = self._waiters.pop(key, None)
        if waiter is None:
            return
        if not waiter.future.done():
            waiter.future.cancel()
        elif not waiter.future.cancelled():
            # Mark an unawaited failure as retrieved.
            waiter.future.exception()

    def _fail_waiters(self, error: AppException) -> None:
        # Callers discard their own waiters once the failure has surfaced.
        for waiter in self._waiters.values():
            if not waiter.future.done():
                waiter.future.set_exception(error)

    async def _send(self, message: WireModel) -> None:
        ws = self._ws
        if ws is None or ws.state is not State.OPEN:
            raise HubConnectionError("Not connected to hub")
        try:
            await ws.send(serialize_message(message))
        except WebSocketException as e:
            raise HubConnectionError(f"Failed to send {message.type}: {e}") from e
