"""Process Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting has a default: the library works with no environment at all
    - get_settings() is cached (lru_cache) — single instance per process
    - Env vars are prefixed MODELREST_ (MODELREST_LOG_LEVEL, MODELREST_DATABASE_URL, ...)

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Per-controller behaviour lives in ControllerOptions, not here; settings only
      carry process-wide concerns (database, logging, default page size)
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """modelrest settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MODELREST_", env_file=".env", case_sensitive=False,
        extra="ignore",
    )

    # Database (used by DatabaseSessionManager / get_db)
    database_url: str = "sqlite+aiosqlite:///./modelrest.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Controllers
    default_limit: int | None = Field(None, ge=1)

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
