"""Application configuration loaded from environment variables and .env file."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Values are loaded from environment variables first,
    then from a .env file in the project root as fallback.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    DATABASE_URL: str = "sqlite:///./dev.db"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Content
    CONTENT_DIR: str = str(Path(__file__).resolve().parent / "data")
    ENTRY_MAP_ID: str = "1"

    # Dev toggle: treat every map as independent
    ALL_NPC_INDEPENDENT: bool = False

    # Remote progress store
    REMOTE_PROVIDER: str = "memory"
    REMOTE_API_URL: Optional[str] = None
    REMOTE_TIMEOUT: float = 10.0

    # Local snapshot cache (disabled when unset)
    LOCAL_CACHE_PATH: Optional[str] = None


settings = Settings()
