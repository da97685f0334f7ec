"""
Relevance Ranking - Merge heterogeneous results into one ordered list.

Category is always the primary sort key: every category owns a score band
(band_size points wide) and no fuzzy score can cross from one band into the
next. Within a category, results are ordered by a weighted fuzzy score over
title, hostname and URL/secondary text. Ties keep their input order.
"""

import re
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
from urllib.parse import urlsplit

from omnitab.search.models import Result, ScoredResult
from omnitab.services.frecency import SECONDS_PER_DAY, calculate_frecency

# Fixed fuzzy score tiers
EXACT_SCORE = 100
PREFIX_SCORE = 90
SUBSTRING_SCORE = 80
WORD_PREFIX_SCORE = 60
WORD_CONTAINS_SCORE = 50

# Terms this long get no per-word fallback (precision over recall)
STRICT_TERM_LENGTH = 4

HISTORY_BOOST_CAP = 50
BOOKMARK_BOOST_MAX = 10

_WORD_SPLIT = re.compile(r"[^a-z0-9]+")


@dataclass
class RankOptions:
    """Tunable ranking constants. Only the ordering they produce is contractual."""
    category_order: tuple[str, ...] = ("command", "tab", "history", "bookmark", "topsite")
    band_size: float = 1000
    min_score: float = 30
    max_results: int = 50
    field_weights: dict[str, float] = field(default_factory=lambda: {
        "title": 2.0,
        "hostname": 1.2,
        "url": 0.8,
    })

    @classmethod
    def from_settings(cls, settings: dict) -> "RankOptions":
        ranking = settings.get("ranking", {})
        defaults = cls()
        return cls(
            category_order=tuple(ranking.get("category_order", defaults.category_order)),
            band_size=ranking.get("band_size", defaults.band_size),
            min_score=ranking.get("min_score", defaults.min_score),
            max_results=ranking.get("max_results", defaults.max_results),
        )

    def category_position(self, category: str) -> int:
        try:
            return self.category_order.index(category)
        except ValueError:
            return len(self.category_order)

    def category_band(self, category: str) -> float:
        return (len(self.category_order) - self.category_position(category)) * self.band_size


def fuzzy_score(text: Optional[str], term: Optional[str]) -> int:
    """
    Score how well a single field matches the search term (0-100).

    Exact > starts-with > substring. Terms shorter than four characters may
    also match the start or inside of a single word of the text.
    """
    if not term:
        return EXACT_SCORE
    if not text:
        return 0

    text_lower = text.lower()
    term_lower = term.lower()

    if text_lower == term_lower:
        return EXACT_SCORE
    if text_lower.startswith(term_lower):
        return PREFIX_SCORE
    if term_lower in text_lower:
        return SUBSTRING_SCORE

    if len(term_lower) >= STRICT_TERM_LENGTH:
        return 0

    # Every word is a substring of text_lower, so a term rejected above never
    # matches here either: a short term with no substring match scores 0.
    words = [w for w in _WORD_SPLIT.split(text_lower) if w]
    for word in words:
        if word.startswith(term_lower):
            return WORD_PREFIX_SCORE
    for word in words:
        if term_lower in word:
            return WORD_CONTAINS_SCORE
    return 0


def rank(
    results: Iterable[Result],
    term: str,
    options: Optional[RankOptions] = None,
    now: Optional[float] = None,
) -> list[ScoredResult]:
    """
    Score, filter and order results for one search turn.

    Args:
        results: Merged provider output; duplicate ids keep the first occurrence
        term: Search term, empty when browsing a category
        options: Ranking constants, defaults to RankOptions()
        now: Reference time for recency boosts

    Returns:
        At most options.max_results scored results, best first.
    """
    options = options or RankOptions()
    term = (term or "").strip()
    if now is None:
        now = time.time()

    scored = []
    for index, result in enumerate(_dedupe(results)):
        if term:
            entry = score_result(result, term, options)
            if entry is None:
                continue
        else:
            entry = ScoredResult(
                result,
                options.category_band(result.category) + category_boost(result, now),
                [],
            )
        scored.append((options.category_position(result.category), -entry.score, index, entry))

    scored.sort(key=lambda item: item[:3])
    return [item[3] for item in scored[:options.max_results]]


def score_result(result: Result, term: str, options: RankOptions) -> Optional[ScoredResult]:
    """Weighted field score plus category band, or None below the minimum score."""
    weights = options.field_weights
    url = _result_url(result)
    fields = {
        "title": result.title,
        "hostname": _hostname(url),
        "url": url,
    }

    total = 0.0
    denominator = 0.0
    matched = []
    for name, value in fields.items():
        if not value:
            continue
        weight = weights.get(name, 0.0)
        denominator += weight
        field_score = fuzzy_score(value, term)
        if field_score > 0:
            total += field_score * weight
            matched.append(name)

    aggregate = total / denominator if denominator else 0.0
    if not matched or aggregate < options.min_score:
        return None

    return ScoredResult(result, options.category_band(result.category) + aggregate, matched)


def category_boost(result: Result, now: float) -> float:
    """Small in-band boost used when browsing a category without a term."""
    metadata = result.metadata or {}
    if result.category == "history":
        frecency = calculate_frecency(
            _number(metadata.get("visit_count")),
            _optional_number(metadata.get("last_visit_time")),
            now,
        )
        return min(frecency / 100, HISTORY_BOOST_CAP)
    if result.category == "bookmark":
        date_added = _optional_number(metadata.get("date_added"))
        if date_added is None:
            return 0.0
        days_since_added = max(0.0, now - date_added) / SECONDS_PER_DAY
        return max(0.0, BOOKMARK_BOOST_MAX - days_since_added / 10)
    return 0.0


def _dedupe(results: Iterable[Result]) -> list[Result]:
    seen = set()
    unique = []
    for result in results:
        if result.id in seen:
            continue
        seen.add(result.id)
        unique.append(result)
    return unique


def _result_url(result: Result) -> Optional[str]:
    url = (result.metadata or {}).get("url")
    if isinstance(url, str) and url:
        return url
    return result.secondary_text or None


def _hostname(url: Optional[str]) -> Optional[str]:
    """Hostname of a URL, None when the value is not a parseable URL."""
    if not url:
        return None
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return parts.hostname


def _number(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _optional_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
