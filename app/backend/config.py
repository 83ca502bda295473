"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "1.0.0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI (required at request time, not at startup)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1"

    # Upload ceiling in megabytes. Keep at 4 on hosts with a hard payload limit.
    max_upload_mb: float = 4

    # Deadline for the AI call in seconds. 0 disables the deadline.
    ai_timeout_seconds: float = 9.0

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",  # Vite development server
        "http://127.0.0.1:5173",
    ]

    # Debug flags
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the backend directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )

    @property
    def max_upload_bytes(self) -> int:
        """Upload ceiling in bytes."""
        return int(self.max_upload_mb * 1024 * 1024)

    @property
    def ai_timeout(self) -> float | None:
        """AI deadline for asyncio.wait_for, or None when unbounded."""
        if self.ai_timeout_seconds and self.ai_timeout_seconds > 0:
            return self.ai_timeout_seconds
        return None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
