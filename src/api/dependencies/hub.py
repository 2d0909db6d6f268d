"""Application-scoped dependencies for HTTP and WebSocket routes."""

from starlette.requests import HTTPConnection

from core.config import Settings
from infrastructure.hub.server import HubServer


def get_hub(connection: HTTPConnection) -> HubServer:
    """Return the hub owned by the running application."""
    hub: HubServer = connection.app.state.hub
    return hub


def get_app_settings(connection: HTTPConnection) -> Settings:
    """Return the settings the application was created with."""
    app_settings: Settings = connection.app.state.settings
    return app_settings
