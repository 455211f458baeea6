"""
Fuzzy search over source names for the follow/unfollow dialogue.

A query matches a source word when their edit distance is at most
``min(2, len(query_word) // 2)``; the score is the number of matching
(source word, query word) pairs over both the display name and the
slug. Diacritics are stripped first so "kimya bolumu" finds
"Kimya Bölümü".
"""

import unicodedata
from collections.abc import Iterable, Sequence

from rapidfuzz.distance import Levenshtein

from src.sources.schemas import Source


def normalize_text(text: str) -> str:
    """Strip combining marks and lowercase.

    Turkish dotless ı has no decomposition and stays as is, while İ
    decomposes to I plus a combining dot and lowercases to i.
    """
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return unicodedata.normalize("NFC", stripped).lower()


def match_score(candidate: str, query: str) -> int:
    """Count word pairs of two normalized strings within the edit bound."""
    candidate_words = candidate.split()
    query_words = query.split()

    score = 0
    for cand_word in candidate_words:
        for query_word in query_words:
            max_distance = min(2, len(query_word) // 2)
            if Levenshtein.distance(cand_word, query_word, score_cutoff=max_distance) <= max_distance:
                score += 1
    return score


def search_sources(
    query: str,
    candidates: Iterable[Source],
    limit: int = 5,
) -> list[Source]:
    """Rank sources against a free-text query.

    Returns:
        At most ``limit`` sources with a positive score, best first.
        Ties keep the candidates' order.
    """
    norm_query = normalize_text(query)
    if not norm_query.strip():
        return []

    scored: list[tuple[int, Source]] = []
    for source in candidates:
        score = match_score(normalize_text(source.name), norm_query) + match_score(
            normalize_text(source.short_name), norm_query
        )
        if score > 0:
            scored.append((score, source))

    # sorted() is stable
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [source for _, source in scored[:limit]]


def filter_followed(sources: Sequence[Source], followed_ids: set[int]) -> list[Source]:
    """Sources the chat follows, in registry order."""
    return [s for s in sources if s.source_id in followed_ids]
