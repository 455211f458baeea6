"""Sources: the registry of academic units whose listings are scraped."""

from src.sources.config import SourcesConfig
from src.sources.repository import SourcesRepository
from src.sources.schemas import Source
from src.sources.service import (
    SourceRegistry,
    SourcesService,
    StaticSourceRegistry,
    load_seed_file,
)

__all__ = [
    "Source",
    "SourcesConfig",
    "SourcesRepository",
    "SourcesService",
    "SourceRegistry",
    "StaticSourceRegistry",
    "load_seed_file",
]
