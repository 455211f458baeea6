"""Data models for the sources module."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Source:
    """An academic unit whose announcement listing is scraped.

    ``source_id`` is the unit id assigned by the university site (sent as
    ``insId`` in listing requests). ``short_name`` is the unique URL slug,
    e.g. ``bilgisayar`` in ``https://uludag.edu.tr/bilgisayar``.
    """

    source_id: int
    name: str
    short_name: str
    listing_url: str
