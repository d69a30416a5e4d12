"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Session refresh window is strictly shorter than the session lifetime

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://bookmarks:bookmarks@db:5432/bookmarks"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting platforms provide postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Sessions
    session_cookie_name: str = "sb_session"
    session_ttl_seconds: int = 7 * 24 * 3600
    session_refresh_window_seconds: int = 24 * 3600
    session_rotation_grace_seconds: int = 60
    cookie_secure: bool = True
    cookie_samesite: str = "lax"

    # Authorization codes
    auth_code_ttl_seconds: int = 600

    # Change feed
    feed_queue_size: int = 256

    # Gate
    gate_exempt_prefixes: list[str] = [
        "/static/", "/favicon.ico", "/api/v1/health",
    ]
    gate_exempt_suffixes: list[str] = [
        ".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp",
    ]

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @model_validator(mode="after")
    def check_refresh_window(self):
        if self.session_refresh_window_seconds >= self.session_ttl_seconds:
            raise ValueError(
                "session_refresh_window_seconds must be shorter than session_ttl_seconds",
            )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
