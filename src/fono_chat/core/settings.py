"""Application settings and configuration.

This module defines all configuration options for the Fono chat backend.
Settings are loaded from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    ``ENCRYPTION_KEY`` and ``JWT_SECRET`` have no defaults; the process
    refuses to start without them.
    """

    # Application metadata
    app_name: str = Field(default="Fono Chat", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="text", alias="LOG_FORMAT")

    # Database configuration
    database_url: str = Field(default="sqlite:///./fono.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    db_pool_timeout_seconds: float = Field(default=10.0, alias="DB_POOL_TIMEOUT_SECONDS")
    db_statement_timeout_ms: int = Field(default=5_000, alias="DB_STATEMENT_TIMEOUT_MS")
    db_connect_timeout_seconds: int = Field(default=5, alias="DB_CONNECT_TIMEOUT_SECONDS")

    # Message encryption (hex encoded AES-256 key)
    encryption_key: str = Field(alias="ENCRYPTION_KEY")

    # JWT verification for the authenticated principal
    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_audience: str | None = Field(default=None, alias="JWT_AUDIENCE")
    jwt_issuer: str | None = Field(default=None, alias="JWT_ISSUER")

    # Pusher Channels configuration for realtime fan-out
    pusher_app_id: str = Field(default="", alias="PUSHER_APP_ID")
    pusher_key: str = Field(default="", alias="PUSHER_KEY")
    pusher_secret: str = Field(default="", alias="PUSHER_SECRET")
    pusher_cluster: str = Field(default="mt1", alias="PUSHER_CLUSTER")
    pusher_host: str | None = Field(default=None, alias="PUSHER_HOST")
    pusher_use_tls: bool = Field(default=True, alias="PUSHER_USE_TLS")
    pusher_timeout_seconds: float = Field(default=5.0, alias="PUSHER_TIMEOUT_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def pusher_configured(self) -> bool:
        """Return True when every credential needed to talk to Pusher is set."""
        return bool(self.pusher_app_id and self.pusher_key and self.pusher_secret)

    @property
    def pusher_api_host(self) -> str:
        """Return the REST API host for the configured Pusher cluster.

        ``PUSHER_HOST`` wins over the cluster so self-hosted, Pusher-compatible
        servers (soketi and friends) can be used.
        """
        return self.pusher_host or f"api-{self.pusher_cluster}.pusher.com"


@lru_cache
def get_settings() -> Settings:
    """Return the cached process-wide settings instance."""
    return Settings()  # type: ignore[call-arg]
