"""Configuration for the paginated listing fetcher.

All settings can be overridden via ``FETCHER_*`` environment variables.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36 Edg/124.0.0.0",
]


class FetcherConfig(BaseSettings):
    """Request shaping, throttling and parsing rules for listing pages."""

    model_config = SettingsConfigDict(
        env_prefix="FETCHER_",
        case_sensitive=False,
        extra="ignore",
    )

    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Per-request timeout; a timeout fails the source for this cycle",
    )
    min_delay_seconds: float = Field(
        default=0.3,
        ge=0.0,
        description="Lower bound of the randomized delay before each request",
    )
    max_delay_seconds: float = Field(
        default=0.9,
        ge=0.0,
        description="Upper bound of the randomized delay before each request",
    )
    user_agents: list[str] = Field(
        default_factory=lambda: list(DEFAULT_USER_AGENTS),
        min_length=1,
        description="Identity pool rotated across outbound requests",
    )

    # Listing endpoint contract
    listing_path: str = Field(
        default="/home/_TestData?langId=1",
        description="AJAX endpoint resolved against each source's public URL",
    )
    announcement_type: str = Field(default="duyuru")
    sort_order: str = Field(default="ascending")

    # Row parsing
    date_format: str = Field(
        default="%d.%m.%Y",
        description="strptime format of the listing's date column",
    )
    fallback_to_now_on_bad_date: bool = Field(
        default=False,
        description="Keep rows with unparseable dates, dated today, instead of dropping them",
    )

    max_pages: int = Field(
        default=1000,
        ge=1,
        description="Safety cap on pages per source if a listing never returns an empty page",
    )

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "FetcherConfig":
        if self.max_delay_seconds < self.min_delay_seconds:
            raise ValueError("max_delay_seconds must be >= min_delay_seconds")
        return self
