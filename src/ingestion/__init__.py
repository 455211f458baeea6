"""Ingestion layer - throttled HTTP, listing parser and paginated fetcher."""

from src.ingestion.config import FetcherConfig
from src.ingestion.fetcher import AnnouncementFetcher
from src.ingestion.http_client import (
    HTTPClientError,
    IdentityRotator,
    RequestThrottle,
    ScraperClient,
)
from src.ingestion.parser import parse_listing, resolve_link
from src.ingestion.schemas import ListingRow, ParsedPage

__all__ = [
    "AnnouncementFetcher",
    "FetcherConfig",
    "HTTPClientError",
    "IdentityRotator",
    "ListingRow",
    "ParsedPage",
    "RequestThrottle",
    "ScraperClient",
    "parse_listing",
    "resolve_link",
]
