"""
Frecency - Rank items by usage frequency and recency.

Implements a Firefox-style frecency algorithm:
  frecency_score = use_count * recency_weight

Where recency_weight depends on how recently the item was used:
  - < 4 days: 100x multiplier
  - < 14 days: 70x multiplier
  - < 31 days: 50x multiplier
  - < 90 days: 30x multiplier
  - 90+ days: 10x multiplier

This ensures recently-visited pages rank higher than frequently-but-old ones.
The ranking engine uses it to order history entries among themselves when
the user browses a category without a search term.
"""

import time
from typing import Optional

SECONDS_PER_DAY = 24 * 3600


def recency_weight(age_days: float) -> int:
    """Weight multiplier for an item last used age_days ago."""
    if age_days < 4:
        return 100
    elif age_days < 14:
        return 70
    elif age_days < 31:
        return 50
    elif age_days < 90:
        return 30
    return 10


def calculate_frecency(use_count: int, last_used: Optional[float], now: Optional[float] = None) -> float:
    """
    Calculate a frecency score.

    Args:
        use_count: Number of times the item was used (visits, launches)
        last_used: Unix timestamp of the last use, None if unknown
        now: Reference time, defaults to time.time()

    Returns:
        Frecency score (float), 0 when the item was never used
    """
    if not use_count or use_count <= 0:
        return 0.0
    if now is None:
        now = time.time()
    if last_used is None:
        # Unknown age counts as old
        return float(use_count * recency_weight(float("inf")))

    age_days = max(0.0, now - last_used) / SECONDS_PER_DAY
    return float(use_count * recency_weight(age_days))
