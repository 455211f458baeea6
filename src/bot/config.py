"""Configuration for the Telegram bot surface."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BotConfig(BaseSettings):
    """Long-poll and conversation settings.

    All settings can be overridden via environment variables with BOT_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    poll_timeout_seconds: int = Field(
        default=30,
        ge=0,
        le=50,
        description="getUpdates long-poll timeout",
    )
    poll_error_backoff_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Pause after a failed getUpdates call",
    )
    search_limit: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum search results offered as buttons",
    )
    cancel_word: str = Field(
        default="iptal",
        description="Typed word that abandons a pending follow/unfollow",
    )
