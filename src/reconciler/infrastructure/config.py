"""Configuration for the process hosting the reconciler."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the default data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


class Settings(BaseSettings):
    """Reconciler settings, read from ``RECONCILER_*`` variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="RECONCILER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = _DEFAULT_DATA_DIR
    log_level: str = "INFO"
    # "console" for humans, "json" for log shippers
    log_format: str = "console"

    # Optimistic transaction retry budget
    max_attempts: int = 5
    backoff_seconds: float = 0.05
    max_backoff_seconds: float = 1.0

    mark_restocked_orders: bool = False

    @property
    def store_path(self) -> Path:
        return self.data_dir / "store.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
