"""Notification delivery configuration.

All settings can be overridden via ``NOTIFICATIONS_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotificationConfig(BaseSettings):
    """Configuration for announcement fan-out."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    disable_link_preview: bool = Field(
        default=True,
        description="Suppress the inline link preview under each announcement",
    )
    send_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single Bot API call",
    )
