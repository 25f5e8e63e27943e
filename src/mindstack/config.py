"""Application configuration loaded from environment variables."""
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings read from ``MINDSTACK_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="MINDSTACK_", extra="ignore")

    db_path: str = str(Path.home() / ".mindstack" / "mindstack.db")
    card_time_limit: int = 30  # seconds per card in test mode
    test_card_limit: int = 30
    log_level: str = "WARNING"


settings = Settings()
