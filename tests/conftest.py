"""Pytest configuration and fixtures."""

import asyncio
import socket
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
import uvicorn
from httpx import ASGITransport, AsyncClient

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.config import Settings
from infrastructure.hub.client import HubClient, HubClientObservers
from infrastructure.hub.server import HubServer
from main import create_app


def make_settings(**overrides: Any) -> Settings:
    """Settings with short client waits and reconnection off."""
    values: dict[str, Any] = {
        "app_env": "testing",
        "host": "127.0.0.1",
        "port": 9999,
        "join_timeout": 2.0,
        "ack_timeout": 2.0,
        "reconnect_enabled": False,
        "reconnect_delay": 0.05,
        "max_reconnect_attempts": 2,
    }
    values.update(overrides)
    return Settings(**values)


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port: int = sock.getsockname()[1]
        return port


@dataclass
class LiveHub:
    """A hub served by uvicorn on an ephemeral port."""

    settings: Settings
    hub: HubServer
    server: uvicorn.Server
    task: "asyncio.Task[None]"

    async def shutdown(self) -> None:
        self.server.should_exit = True
        await self.task


async def start_live_hub(settings: Settings) -> LiveHub:
    hub = HubServer(settings)
    config = uvicorn.Config(
        create_app(settings, hub),
        host=settings.host,
        port=settings.port,
        log_level="warning",
        lifespan="on",
    )
    server = uvicorn.Server(config)
    task = asyncio.create_task(server.serve())
    while not server.started:
        if task.done():
            task.result()
        await asyncio.sleep(0.01)
    return LiveHub(settings=settings, hub=hub, server=server, task=task)


@pytest.fixture
def settings() -> Settings:
    """Test settings with an ephemeral port."""
    return make_settings(port=free_port())


@pytest.fixture
async def client(settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP test client against a fresh app."""
    app = create_app(settings)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def live_hub(settings: Settings) -> AsyncGenerator[LiveHub, None]:
    """Run a real hub for end-to-end tests."""
    live = await start_live_hub(settings)
    yield live
    await live.shutdown()


ClientFactory = Callable[..., Awaitable[HubClient]]


@pytest.fixture
async def hub_client_factory(
    live_hub: LiveHub,
) -> AsyncGenerator[ClientFactory, None]:
    """Create connected hub clients that are disconnected at teardown."""
    clients: list[HubClient] = []

    async def factory(
        observers: HubClientObservers | None = None, **kwargs: Any
    ) -> HubClient:
        hub_client = HubClient(live_hub.settings, observers=observers, **kwargs)
        await hub_client.connect()
        clients.append(hub_client)
        return hub_client

    yield factory

    for hub_client in clients:
        await hub_client.disconnect()
