"""Application settings loaded from environment variables (and .env)."""
from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholder secret; anyone who knows it can forge tokens
DEFAULT_JWT_SECRET = "change-me"


class Settings(BaseSettings):
    """Runtime configuration for the API, stores and real-time layer."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    # Log and SIGTERM on unhandled asyncio task failures
    exit_on_async_error: bool = True

    # Persistence
    database_url: str = "sqlite:///./amp.db"
    db_pool_size: int = 10
    db_max_overflow: int = 0
    db_pool_timeout: int = 30
    auto_create_schema: bool = False

    # Tokens
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expires_hours: int = 24

    # Credential cipher (AES-256 wants 32 bytes, see encryption.py)
    encryption_key: str = ""

    # Comma-separated list
    cors_origins: str = "*"

    # First admin, created at startup when both are set
    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None

    # Per-connection outbound buffer for the websocket fan-out
    realtime_queue_size: int = 100

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
