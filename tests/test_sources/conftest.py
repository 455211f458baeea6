"""Shared fixtures for sources tests."""

import pytest


@pytest.fixture
def sample_db_row() -> dict:
    """A dict mimicking an asyncpg Record for a source."""
    return {
        "source_id": 53,
        "name": "Bilgisayar Mühendisliği Bölümü",
        "short_name": "bilgisayar",
        "listing_url": "https://uludag.edu.tr/bilgisayar",
    }


@pytest.fixture
def kimya_db_row() -> dict:
    return {
        "source_id": 88,
        "name": "Kimya Bölümü",
        "short_name": "kimya",
        "listing_url": "https://uludag.edu.tr/kimya",
    }
