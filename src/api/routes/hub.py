"""WebSocket endpoint that feeds frames into the hub."""

import structlog
from fastapi import Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from api.dependencies.hub import get_hub
from infrastructure.hub.server import HubServer

logger = structlog.get_logger()


async def hub_websocket(websocket: WebSocket, hub: HubServer = Depends(get_hub)) -> None:
    """Serve one client connection until it closes."""
    await websocket.accept()
    connection = await hub.connect(websocket)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)

    try:
        while websocket.application_state == WebSocketState.CONNECTED:
            data = await websocket.receive_text()
            await hub.handle_message(connection, data)
    except WebSocketDisconnect as e:
        logger.debug("websocket_closed", code=e.code)
    finally:
        await hub.disconnect(connection)
        structlog.contextvars.unbind_contextvars("connection_id")
