"""Unit tests for HubClient request correlation."""

import asyncio
from typing import Any
from unittest.mock import MagicMock

import orjson
import pytest
from websockets.asyncio.server import ServerConnection, serve
from websockets.protocol import State

from core.exceptions import AnswerTimeoutError, HubConnectionError, HubError, HubTimeoutError
from infrastructure.hub.client import HubClient, HubClientObservers
from infrastructure.hub.protocol import AnswerMessage, QuestionMessage
from tests.conftest import make_settings

MEMBER = {
    "memberId": "m-1",
    "teamId": "backend",
    "teamName": "backend",
    "displayName": "bob",
    "status": "ONLINE",
}


class FakeConnection:
    """Stands in for a websockets client connection."""

    def __init__(self) -> None:
        self.state = State.OPEN
        self.sent: list[dict[str, Any]] = []

    async def send(self, data: str) -> None:
        self.sent.append(orjson.loads(data))

    async def close(self) -> None:
        self.state = State.CLOSED


@pytest.fixture
def fake() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def observers() -> HubClientObservers:
    return HubClientObservers(
        on_disconnected=MagicMock(),
        on_question=MagicMock(),
        on_answer=MagicMock(),
        on_member_joined=MagicMock(),
        on_member_left=MagicMock(),
        on_error=MagicMock(),
    )


@pytest.fixture
def client(fake: FakeConnection, observers: HubClientObservers) -> HubClient:
    hub_client = HubClient(
        make_settings(join_timeout=0.2, ack_timeout=0.2), reconnect=False, observers=observers
    )
    hub_client._ws = fake  # type: ignore[assignment]
    return hub_client


async def sent_frame(fake: FakeConnection, index: int = 0) -> dict[str, Any]:
    for _ in range(100):
        if len(fake.sent) > index:
            return fake.sent[index]
        await asyncio.sleep(0)
    raise AssertionError("nothing was sent")


async def feed(client: HubClient, **frame: Any) -> None:
    await client._handle_raw(orjson.dumps(frame))


async def feed_answer(client: HubClient, request_id: str, content: str = "9999") -> None:
    await feed(
        client,
        type="ANSWER",
        questionId="q_1",
        **{"from": MEMBER},
        content=content,
        format="plain",
        answeredAt="2024-01-01T00:00:00Z",
        requestId=request_id,
    )


async def feed_ack(client: HubClient, request_id: str, question_id: str = "q_1") -> None:
    await feed(
        client,
        type="QUESTION_SENT",
        questionId=question_id,
        toTeamId="backend",
        status="PENDING",
        requestId=request_id,
    )


class TestJoin:
    @pytest.mark.asyncio
    async def test_resolves_on_matching_joined(self, client: HubClient, fake: FakeConnection):
        task = asyncio.create_task(client.join("backend", "bob"))
        frame = await sent_frame(fake)

        await feed(client, type="JOINED", member=MEMBER, memberCount=1, requestId=frame["requestId"])
        joined = await task

        assert frame["type"] == "JOIN"
        assert frame["teamName"] == "backend"
        assert joined.member_count == 1
        assert client.member_id == "m-1"
        assert client.team_name == "backend"
        assert client.display_name == "bob"

    @pytest.mark.asyncio
    async def test_ignores_other_request_ids(self, client: HubClient, fake: FakeConnection):
        task = asyncio.create_task(client.join("backend", "bob"))
        await sent_frame(fake)

        await feed(client, type="JOINED", member=MEMBER, memberCount=1, requestId="someone-else")

        with pytest.raises(HubTimeoutError) as exc_info:
            await task
        assert exc_info.value.code == "TIMEOUT"
        assert client.member_id is None
        assert client._waiters == {}

    @pytest.mark.asyncio
    async def test_error_frame_rejects_call(
        self, client: HubClient, fake: FakeConnection, observers: HubClientObservers
    ):
        task = asyncio.create_task(client.join("back end", "bob"))
        frame = await sent_frame(fake)

        await feed(
            client,
            type="ERROR",
            code="VALIDATION_ERROR",
            message="Invalid team id",
            requestId=frame["requestId"],
        )

        with pytest.raises(HubError) as exc_info:
            await task
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.request_id == frame["requestId"]
        observers.on_error.assert_called_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code,keeps_membership",
        [("VALIDATION_ERROR", True), ("INTERNAL_ERROR", False)],
    )
    async def test_rejected_rejoin(
        self, client: HubClient, fake: FakeConnection, code: str, keeps_membership: bool
    ):
        task = asyncio.create_task(client.join("backend", "bob"))
        frame = await sent_frame(fake)
        await feed(client, type="JOINED", member=MEMBER, memberCount=1, requestId=frame["requestId"])
        await task

        task = asyncio.create_task(client.join("bad_team", "bob"))
        frame = await sent_frame(fake, 1)
        await feed(
            client, type="ERROR", code=code, message="rejected", requestId=frame["requestId"]
        )

        with pytest.raises(HubError):
            await task
        if keeps_membership:
            assert client.member_id == "m-1"
            assert client.team_name == "backend"
        else:
            assert client.member_id is None
            assert client._identity is None


class TestAsk:
    @pytest.mark.asyncio
    async def test_returns_answer(self, client: HubClient, fake: FakeConnection):
        task = asyncio.create_task(client.ask("backend", "Which port?", timeout=1))
        frame = await sent_frame(fake)

        await feed_ack(client, frame["requestId"])
        await feed_answer(client, frame["requestId"])
        answer = await task

        assert frame["type"] == "ASK"
        assert frame["toTeam"] == "backend"
        assert frame["format"] == "markdown"
        assert isinstance(answer, AnswerMessage)
        assert answer.content == "9999"
        assert client._waiters == {}

    @pytest.mark.asyncio
    async def test_answer_may_arrive_before_ack(self, client: HubClient, fake: FakeConnection):
        task = asyncio.create_task(client.ask("backend", "Which port?", timeout=1))
        frame = await sent_frame(fake)

        await feed_answer(client, frame["requestId"])
        await feed_ack(client, frame["requestId"])

        assert (await task).content == "9999"

    @pytest.mark.asyncio
    async def test_unanswered_question(self, client: HubClient, fake: FakeConnection):
        task = asyncio.create_task(client.ask("backend", "Which port?", timeout=0.1))
        frame = await sent_frame(fake)
        await feed_ack(client, frame["requestId"], question_id="q_7")

        with pytest.raises(AnswerTimeoutError) as exc_info:
            await task

        assert exc_info.value.code == "TIMEOUT"
        assert exc_info.value.question_id == "q_7"
        assert "delivered" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_ack_is_a_plain_timeout(self, client: HubClient, fake: FakeConnection):
        task = asyncio.create_task(client.ask("backend", "Which port?", timeout=5))
        await sent_frame(fake)

        with pytest.raises(HubTimeoutError) as exc_info:
            await task

        assert not isinstance(exc_info.value, AnswerTimeoutError)
        assert exc_info.value.operation == "ask"

    @pytest.mark.asyncio
    async def test_never_outlives_requested_timeout(self, client: HubClient, fake: FakeConnection):
        loop = asyncio.get_running_loop()
        started = loop.time()

        with pytest.raises(HubTimeoutError):
            await client.ask("backend", "Which port?", timeout=0.05)

        assert loop.time() - started < 0.15

    @pytest.mark.asyncio
    async def test_late_answer_is_ignored(
        self, client: HubClient, fake: FakeConnection, observers: HubClientObservers
    ):
        task = asyncio.create_task(client.ask("backend", "Which port?", timeout=0.05))
        frame = await sent_frame(fake)
        await feed_ack(client, frame["requestId"])
        with pytest.raises(AnswerTimeoutError):
            await task

        await feed_answer(client, frame["requestId"])

        observers.on_answer.assert_called_once()
        assert client._waiters == {}

    @pytest.mark.asyncio
    async def test_concurrent_asks_resolve_independently(
        self, client: HubClient, fake: FakeConnection
    ):
        first = asyncio.create_task(client.ask("backend", "one", timeout=1))
        second = asyncio.create_task(client.ask("backend", "two", timeout=1))
        first_frame = await sent_frame(fake, 0)
        second_frame = await sent_frame(fake, 1)

        for frame in (first_frame, second_frame):
            await feed_ack(client, frame["requestId"])
        await feed_answer(client, second_frame["requestId"], content="for two")
        await feed_answer(client, first_frame["requestId"], content="for one")

        assert (await first).content == "for one"
        assert (await second).content == "for two"


class TestOtherOperations:
    @pytest.mark.asyncio
    async def test_get_inbox(self, client: HubClient, fake: FakeConnection):
        task = asyncio.create_task(client.get_inbox())
        frame = await sent_frame(fake)

        await feed(
            client,
            type="INBOX",
            questions=[],
            totalCount=0,
            pendingCount=0,
            requestId=frame["requestId"],
        )

        assert (await task).total_count == 0
        assert frame["type"] == "GET_INBOX"

    @pytest.mark.asyncio
    async def test_reply_is_fire_and_forget(self, client: HubClient, fake: FakeConnection):
        await client.reply("q_1", "9999", "plain")

        assert fake.sent == [
            {"type": "REPLY", "questionId": "q_1", "content": "9999", "format": "plain"}
        ]
        assert client._waiters == {}

    @pytest.mark.asyncio
    async def test_send_requires_connection(self, observers: HubClientObservers):
        hub_client = HubClient(make_settings(), reconnect=False, observers=observers)

        with pytest.raises(HubConnectionError):
            await hub_client.reply("q_1", "hi")
        assert not hub_client.is_connected


class TestObservers:
    @pytest.mark.asyncio
    async def test_pushes_reach_observers(
        self, client: HubClient, observers: HubClientObservers
    ):
        await feed(
            client,
            type="QUESTION",
            questionId="q_1",
            **{"from": MEMBER},
            content="hi",
            format="markdown",
            createdAt="2024-01-01T00:00:00Z",
        )
        await feed(client, type="MEMBER_JOINED", member=MEMBER)
        await feed(client, type="MEMBER_LEFT", memberId="m-1", teamId="backend")

        question = observers.on_question.call_args.args[0]
        assert isinstance(question, QuestionMessage)
        assert question.from_.display_name == "bob"
        observers.on_member_joined.assert_called_once()
        observers.on_member_left.assert_called_once()

    @pytest.mark.asyncio
    async def test_async_observer(self, client: HubClient):
        received: list[Any] = []

        async def on_question(message: QuestionMessage) -> None:
            received.append(message.question_id)

        client._observers.on_question = on_question
        await feed(
            client,
            type="QUESTION",
            questionId="q_9",
            **{"from": MEMBER},
            content="hi",
            format="markdown",
            createdAt="2024-01-01T00:00:00Z",
        )
        await asyncio.sleep(0.01)

        assert received == ["q_9"]

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_break_dispatch(
        self, client: HubClient, fake: FakeConnection
    ):
        client._observers.on_answer = MagicMock(side_effect=RuntimeError("observer bug"))
        task = asyncio.create_task(client.ask("backend", "hi", timeout=1))
        frame = await sent_frame(fake)

        await feed_ack(client, frame["requestId"])
        await feed_answer(client, frame["requestId"])

        assert (await task).content == "9999"

    @pytest.mark.asyncio
    async def test_unsolicited_error(self, client: HubClient, observers: HubClientObservers):
        await feed(client, type="ERROR", code="INTERNAL_ERROR", message="boom")

        error = observers.on_error.call_args.args[0]
        assert isinstance(error, HubError)
        assert error.code == "INTERNAL_ERROR"

    @pytest.mark.asyncio
    async def test_invalid_frame_is_dropped(
        self, client: HubClient, observers: HubClientObservers
    ):
        await client._handle_raw("not json")
        await client._handle_raw('{"type": "JOIN"}')

        observers.on_error.assert_not_called()


class TestConnectionLoss:
    @pytest.mark.asyncio
    async def test_pending_calls_fail(
        self, client: HubClient, fake: FakeConnection, observers: HubClientObservers
    ):
        task = asyncio.create_task(client.ask("backend", "hi", timeout=5))
        await sent_frame(fake)

        client._on_connection_lost(fake)  # type: ignore[arg-type]

        with pytest.raises(HubConnectionError):
            await task
        observers.on_disconnected.assert_called_once()
        assert not client.is_connected
        assert client._reconnect_task is None
        assert client._waiters == {}

    @pytest.mark.asyncio
    async def test_connect_refused(self):
        hub_client = HubClient(make_settings(), url="ws://127.0.0.1:1/ws", reconnect=False)

        with pytest.raises(HubConnectionError) as exc_info:
            await hub_client.connect()

        assert exc_info.value.code == "CONNECTION_ERROR"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity", [None, ("backend", "bob")])
    async def test_reconnect_gives_up_when_hub_keeps_dropping(
        self, identity: tuple[str, str] | None
    ):
        opened = 0

        async def accept_and_close(ws: ServerConnection) -> None:
            nonlocal opened
            opened += 1
            await ws.close()

        errors: list[Exception] = []
        async with serve(accept_and_close, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            hub_client = HubClient(
                make_settings(max_reconnect_attempts=3, reconnect_delay=0.01),
                url=f"ws://127.0.0.1:{port}/ws",
                reconnect=True,
                observers=HubClientObservers(on_error=errors.append),
            )
            hub_client._identity = identity
            await hub_client.connect()
            for _ in range(300):
                if errors:
                    break
                await asyncio.sleep(0.01)
            await hub_client.disconnect()

        assert [error.code for error in errors] == ["CONNECTION_ERROR"]
        assert opened <= 1 + 3
