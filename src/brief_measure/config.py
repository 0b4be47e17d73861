import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR_NAME = "brief-measure"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BRIEF_MEASURE_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    DATA_DIR: Optional[Path] = None
    API_BASE_URL: str = "https://localhost:3000/api/v1/"
    RETRY_BASE_SECONDS: float = 60.0
    RETRY_MAX_SECONDS: float = 86_400.0
    RETENTION_SECONDS: float = 86_400.0
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    LOG_LEVEL: str = "INFO"

    @property
    def data_dir(self) -> Path:
        return resolve_data_dir(self.DATA_DIR)


def default_data_dir() -> Path:
    """Per-user durable directory (never a cache directory)."""
    xdg = os.environ.get("XDG_DATA_HOME")
    root = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return root / APP_DIR_NAME


def resolve_data_dir(configured: Optional[Path] = None) -> Path:
    """Create and return the data directory, falling back to the temp dir."""
    target = configured or default_data_dir()
    try:
        target.mkdir(parents=True, exist_ok=True)
        return target
    except OSError as e:
        fallback = Path(tempfile.gettempdir()) / APP_DIR_NAME
        logger.warning(f"Data dir {target} unavailable ({e}); using {fallback}")
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


@lru_cache()
def get_settings() -> Settings:
    return Settings()
