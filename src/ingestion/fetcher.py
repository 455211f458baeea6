"""
Paginated announcement fetcher.

Walks a source's AJAX listing endpoint from offset zero, one page at a
time, until a page comes back with no rows at all. The offset advances
by the number of ``<tr>`` elements the previous page returned, so a
change in the site's page size between cycles does not skip or repeat
entries.

Each call to ``fetch_all`` starts over from offset zero; the fetcher
keeps no state between calls.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from urllib.parse import urljoin

from src.ingestion.config import FetcherConfig
from src.ingestion.http_client import ScraperClient
from src.ingestion.parser import parse_listing
from src.ingestion.schemas import ListingRow, ParsedPage
from src.observability.metrics import get_metrics
from src.sources.schemas import Source

logger = logging.getLogger(__name__)


class AnnouncementFetcher:
    """
    Fetches every announcement row of a source.

    Usage:
        async with ScraperClient(config) as client:
            fetcher = AnnouncementFetcher(client, config)
            async for row in fetcher.fetch_all(source):
                ...
    """

    def __init__(
        self,
        client: ScraperClient,
        config: FetcherConfig | None = None,
    ):
        self._client = client
        self._config = config or client.config
        self._metrics = get_metrics()

    def listing_endpoint(self, source: Source) -> str:
        """AJAX endpoint on the source's host, e.g. ``https://uludag.edu.tr/home/_TestData?langId=1``."""
        return urljoin(source.listing_url, self._config.listing_path)

    def build_form(self, source: Source, offset: int) -> dict[str, str]:
        return {
            "sortOrder": self._config.sort_order,
            "searchString": "",
            "insId": str(source.source_id),
            "type": self._config.announcement_type,
            "firstItem": str(offset),
        }

    def build_headers(self, source: Source) -> dict[str, str]:
        return {
            "Referer": source.listing_url,
            "X-Requested-With": "XMLHttpRequest",
            "Accept": "text/html",
        }

    async def fetch_page(self, source: Source, offset: int) -> ParsedPage:
        """
        Request and parse the page starting at ``offset``.

        Raises:
            HTTPClientError: If the request fails
        """
        body = await self._client.post_form(
            self.listing_endpoint(source),
            data=self.build_form(source, offset),
            headers=self.build_headers(source),
        )
        self._metrics.record_page(source.short_name)
        return parse_listing(body, source, self._config)

    async def fetch_all(
        self,
        source: Source,
        stop_event: asyncio.Event | None = None,
    ) -> AsyncIterator[ListingRow]:
        """
        Yield every valid row of the source, page by page.

        Args:
            source: Source to walk
            stop_event: When set, no further pages are requested

        Yields:
            ListingRow in listing order

        Raises:
            HTTPClientError: If any page request fails
        """
        start = time.monotonic()
        offset = 0
        pages = 0
        rows = 0
        dropped = 0

        while True:
            page = await self.fetch_page(source, offset)
            pages += 1

            if page.is_empty:
                break

            dropped += page.dropped
            for row in page.rows:
                rows += 1
                yield row

            offset += page.row_count

            if stop_event is not None and stop_event.is_set():
                logger.info(
                    "Stop requested, leaving %s after %d pages", source.short_name, pages
                )
                break
            if pages >= self._config.max_pages:
                logger.warning(
                    "Reached max_pages=%d for %s at offset %d, stopping",
                    self._config.max_pages, source.short_name, offset,
                )
                break

        self._metrics.record_rows(source.short_name, rows)
        logger.info(
            "Fetched %s: pages=%d rows=%d dropped=%d elapsed=%.2fs",
            source.short_name, pages, rows, dropped, time.monotonic() - start,
        )
