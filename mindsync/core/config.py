"""
Application configuration.

Loads settings from environment variables and .env file.
The settings record is built once at process entry and passed
explicitly to the components that need it (CORS policy, lifecycle).
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_CLIENT_ORIGIN = "http://localhost:5173"


class Environment(str, Enum):
    """Deployment environment recognised from NODE_ENV."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    OTHER = "other"


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        port: TCP port the server listens on.
        host: Interface the listening socket binds to.
        node_env: Raw environment name ("development", "production", ...).
        node_origin: Extra browser origin allowed by the CORS policy.
        project_name: Display name for the API.
        version: Current API version string.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Request quota per client, in limits notation.
        rate_limit_storage_uri: Counter store for the rate limiter.
            ``memory://`` for a single process, a shared store such as
            ``redis://`` when several workers serve the same clients.
        body_limit_bytes: Maximum accepted request body size for parsers.
        compression_min_size: Smallest response body that gets compressed.
        shutdown_grace_seconds: Upper bound for draining in-flight requests.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    port: int = 3000
    host: str = "0.0.0.0"
    node_env: Optional[str] = None
    node_origin: Optional[str] = None
    project_name: str = "MindSync"
    version: str = "0.1.0"
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_storage_uri: str = "memory://"
    body_limit_bytes: int = 102_400  # 100 KiB
    compression_min_size: int = 1024
    shutdown_grace_seconds: int = 10

    @property
    def environment(self) -> Environment:
        """Return the recognised environment; anything else maps to OTHER."""
        try:
            return Environment(self.node_env)
        except ValueError:
            return Environment.OTHER

    @property
    def is_development(self) -> bool:
        return self.environment is Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.environment is Environment.PRODUCTION

    @property
    def whitelist_origins(self) -> tuple[str, ...]:
        """Origins admitted by the CORS policy outside development.

        The local client origin is always present; NODE_ORIGIN is
        appended when it is set.
        """
        if self.node_origin:
            return (LOCAL_CLIENT_ORIGIN, self.node_origin)
        return (LOCAL_CLIENT_ORIGIN,)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment once."""
    return Settings()
