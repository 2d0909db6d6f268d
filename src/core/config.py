"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Hub and client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RELAY_HUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Relay Hub")
    app_env: str = Field(default="development")
    debug: bool = Field(default=False)

    # Server
    host: str = Field(default="localhost")
    port: int = Field(default=9999)
    ws_path: str = Field(default="/ws", description="WebSocket endpoint path")

    # Liveness
    heartbeat_interval: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between liveness sweeps (hub) and keepalive pings (client)",
    )
    client_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds without activity before the hub terminates a connection",
    )

    # Questions
    answer_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds before a pending question is marked TIMEOUT; default ask timeout",
    )
    question_sweep_interval: float = Field(default=5.0, gt=0)
    max_message_length: int = Field(default=50_000, gt=0)

    # Client waits
    join_timeout: float = Field(default=30.0, gt=0)
    ack_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for QUESTION_SENT and INBOX replies",
    )

    # Client reconnection
    reconnect_enabled: bool = Field(default=True)
    reconnect_delay: float = Field(default=1.0, ge=0)
    max_reconnect_attempts: int = Field(default=3, ge=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ws_url(self) -> str:
        """URL clients use to reach the hub."""
        return f"ws://{self.host}:{self.port}{self.ws_path}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
