"""Main FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from api.routes.health import router as health_router
from api.routes.hub import hub_websocket
from core.config import Settings, get_settings
from core.logging import setup_logging
from infrastructure.hub.server import HubServer

logger = structlog.get_logger()


def create_app(settings: Settings | None = None, hub: HubServer | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The hub lives for the lifetime of the app; its sweeps start and stop with
    the lifespan.
    """
    settings = settings or get_settings()
    hub = hub or HubServer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await hub.start()
        logger.info("app_started", ws_url=settings.ws_url, environment=settings.app_env)
        try:
            yield
        finally:
            await hub.stop()
            logger.info("app_stopped")

    app = FastAPI(
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        title=settings.app_name,
        description=(
            "## Relay Hub\n\n"
            "Real-time relay connecting agents into named team channels.\n\n"
            f"Clients connect over WebSocket at `{settings.ws_path}` and exchange "
            "JSON frames (JOIN, ASK, REPLY, GET_INBOX, LEAVE, PING)."
        ),
        version="1.0.0",
        debug=settings.debug,
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check endpoints",
            },
        ],
    )
    app.state.settings = settings
    app.state.hub = hub

    app.include_router(health_router)
    app.add_api_websocket_route(settings.ws_path, hub_websocket, name="hub")

    return app


def run() -> None:
    """Run the hub with uvicorn on the configured host and port."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
