"""Configuration for the sources service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourcesConfig(BaseSettings):
    """Settings for the source registry cache and seeding."""

    model_config = SettingsConfigDict(
        env_prefix="SOURCES_",
        case_sensitive=False,
        extra="ignore",
    )

    cache_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="TTL for the in-memory source list (0 = no caching)",
    )
    seed_on_init: bool = Field(
        default=True,
        description="Seed from the bundled JSON on startup if the table is empty",
    )
