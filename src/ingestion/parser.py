"""
Listing page parser.

The listing endpoint returns an HTML fragment whose ``<tr>`` elements are
announcements: the first cell's anchor carries the link and title, the
second cell the publication date (``dd.mm.yyyy``).
"""

import logging
import re
from datetime import date, datetime
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from src.ingestion.config import FetcherConfig
from src.ingestion.schemas import ListingRow, ParsedPage
from src.sources.schemas import Source

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def clean_title(raw: str) -> str:
    """Strip control characters and collapse whitespace."""
    text = _CONTROL_CHARS.sub("", raw)
    return " ".join(text.split())


def parse_date(text: str, date_format: str = "%d.%m.%Y") -> date | None:
    """Parse a listing date, returning None when it does not match the format."""
    try:
        return datetime.strptime(text.strip(), date_format).date()
    except ValueError:
        return None


def resolve_link(href: str, source: Source) -> str:
    """
    Build the canonical link for an announcement href.

    Hrefs on the listing pages are inconsistent (relative, root-relative,
    sometimes absolute), so only their path and query are kept and they
    are re-rooted under the source's slug on the source's own host:

        resolve_link("duyuru/42", bilgisayar)
        -> "https://uludag.edu.tr/bilgisayar/duyuru/42"
    """
    listing = urlsplit(source.listing_url)
    target = urlsplit(href.strip())

    path = target.path.lstrip("/")
    slug = source.short_name.strip("/")
    if path == slug or path.startswith(slug + "/"):
        path = path[len(slug):].lstrip("/")
    if target.query:
        path = f"{path}?{target.query}"

    return f"{listing.scheme}://{listing.netloc}/{slug}/{path}"


def _parse_row(
    row: Tag,
    source: Source,
    config: FetcherConfig,
) -> ListingRow | None:
    cells = row.find_all("td")
    if len(cells) < 2:
        return None

    anchor = cells[0].find("a")
    if anchor is None:
        return None
    href = anchor.get("href")
    if not href or not str(href).strip():
        return None

    title = clean_title(anchor.get_text(" "))
    link = resolve_link(str(href), source)

    date_text = cells[1].get_text(" ", strip=True)
    published = parse_date(date_text, config.date_format)
    if published is None:
        if not config.fallback_to_now_on_bad_date:
            logger.warning(
                "Dropping row with unparseable date %r from %s: %s",
                date_text, source.short_name, link,
            )
            return None
        logger.warning(
            "Unparseable date %r from %s, using today: %s",
            date_text, source.short_name, link,
        )
        published = date.today()

    return ListingRow(
        source_id=source.source_id,
        link=link,
        title=title,
        published_date=published,
    )


def parse_listing(
    body: str,
    source: Source,
    config: FetcherConfig | None = None,
) -> ParsedPage:
    """
    Parse one listing response into rows.

    Rows without an anchor in the first cell or without a usable date are
    dropped but still counted in ``row_count``.

    Args:
        body: Response HTML
        source: Source the page belongs to
        config: Parsing rules (date format, bad-date policy)

    Returns:
        ParsedPage with the total row count and the valid rows
    """
    config = config or FetcherConfig()
    if not body or not body.strip():
        return ParsedPage()

    soup = BeautifulSoup(body, "html.parser")
    table_rows = soup.find_all("tr")

    page = ParsedPage(row_count=len(table_rows))
    for row in table_rows:
        parsed = _parse_row(row, source, config)
        if parsed is not None:
            page.rows.append(parsed)

    if page.dropped:
        logger.debug(
            "Dropped %d/%d rows from %s", page.dropped, page.row_count, source.short_name
        )
    return page
