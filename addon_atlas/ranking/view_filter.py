"""
addon_atlas/ranking/view_filter.py — Search and window over a ranked population.

Filtering never re-ranks: every entry keeps the static rank assigned by
rank_population() over the full population.
"""

import logging
from typing import Any

from addon_atlas.ranking.engine import RankedEntry

logger = logging.getLogger(__name__)


def clamp_window(requested: Any, size: int) -> int:
    """
    Coerce a requested window into [1, size].

    Out-of-range and non-integer requests are coerced, never rejected. An
    empty population still yields 1 (the slice is simply empty).
    """
    try:
        value = int(requested)
    except (TypeError, ValueError):
        value = 1
    return max(1, min(size, value))


def matches_query(entry: RankedEntry, needle: str) -> bool:
    """Case-insensitive substring match on display name or primary creator."""
    name = entry.name
    if name and needle in name.lower():
        return True
    creator = entry.creator
    return bool(creator and needle in creator.lower())


def filter_view(
    ranked: list[RankedEntry],
    query: str,
    max_entries: Any,
) -> list[RankedEntry]:
    """
    Apply a text search and a result-count window to a ranked population.

    Args:
        ranked:      Output of rank_population() for the whole population.
        query:       Search text. Empty or whitespace-only means no filtering.
        max_entries: Requested window; clamped to [1, filtered size].

    Returns:
        The first `window` matching entries, static ranks unchanged.
    """
    needle = (query or "").strip().lower()
    if needle:
        matched = [e for e in ranked if matches_query(e, needle)]
    else:
        matched = list(ranked)

    window = clamp_window(max_entries, len(matched))
    logger.debug(
        "View filter: %d/%d matched %r, window=%d.",
        len(matched), len(ranked), needle, window,
    )
    return matched[:window]
