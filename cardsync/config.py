"""Client Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting has a working default: a bare checkout runs against a local SQLite file
    - get_settings() is cached (lru_cache) — single instance per process
    - Durations are configured in the unit the name says (_ms, _seconds) and converted
      at the composition root, never inside services

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - CARDSYNC_ env prefix keeps the client's settings apart from the host application's
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="CARDSYNC_", case_sensitive=False,
    )

    # Persistence service
    api_base_url: str = "http://localhost:8000/api"
    api_timeout_seconds: float = 15.0

    # Durable local store
    local_store_url: str = "sqlite+aiosqlite:///cardsync.db"

    @field_validator("local_store_url", mode="before")
    @classmethod
    def convert_sqlite_url(cls, v: str) -> str:
        """Plain sqlite:// URLs need the async driver."""
        if isinstance(v, str) and v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    # Synchronization
    save_debounce_ms: int = 800

    # Cache
    cache_key_prefix: str = "cardsync_cache_"
    cache_default_ttl_seconds: float = 300.0
    cache_max_memory_entries: int = 100
    cache_version_quantum_seconds: float = 600.0

    # Resolution
    resolution_cache_ttl_seconds: float = 300.0
    resolution_max_retries: int = 3
    resolution_base_delay_ms: int = 1000
    resolution_max_delay_ms: int = 8000

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
