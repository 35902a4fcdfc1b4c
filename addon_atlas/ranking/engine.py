"""
addon_atlas/ranking/engine.py — Ranking Engine.

Computes a full, deterministic order over an entire population for a given
sort key and direction, and assigns every member its static rank (1-based
position in that order).

Static rank must be computed over the unfiltered population. The view filter
runs afterwards and never re-ranks, so an entry ranked #7 overall still shows
"#7" when it is the second row left after a search.

Sort-key resolution:
    A fixed alias table maps user-facing keys to record fields. Any other key
    is used verbatim as a field name, so every field on a record can be
    sorted on.

Comparison:
    - String fields ("name", or a field whose present values are mostly strings)
      compare with a locale-aware collation key.
    - Everything else compares numerically; numeric strings are parsed and a
      missing or non-numeric value counts as 0.

Ties keep the population's input order (normalizer / aggregator insertion
order). There is no secondary key.
"""

import locale
import logging
import unicodedata
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from addon_atlas.ranking.state import SortDirection

logger = logging.getLogger(__name__)

SORT_KEY_ALIASES: dict[str, str] = {
    "downloads": "downloadCount",
    "rate": "downloadRate",
    "items": "itemCount",
    "name": "name",
    "age": "daysExisting",
}

_STRING_FIELDS = frozenset({"name"})
_NUMERIC_FIELDS = frozenset({"downloadCount", "downloadRate", "itemCount", "daysExisting"})


@dataclass(frozen=True)
class RankedEntry:
    """
    A population member plus its static rank.

    Fields:
        record: The snapshot record mapping (read-only by convention).
        rank:   1-based position in the full sort order of the population.
    """

    record: Mapping
    rank: int

    @property
    def name(self) -> Optional[str]:
        value = self.record.get("name")
        return value if isinstance(value, str) else None

    @property
    def creator(self) -> Optional[str]:
        """Primary creator attribute; only item records carry one."""
        value = self.record.get("author")
        return value if isinstance(value, str) and value else None


def resolve_sort_field(sort_key: str) -> str:
    """Map a user-facing sort key to a record field (unknown keys pass through)."""
    return SORT_KEY_ALIASES.get(sort_key, sort_key)


def collation_key(value: Any) -> str:
    """
    Case- and accent-insensitive collation key for a string value.

    Combining marks are stripped after NFKD decomposition, so "Émile" sorts
    with "emile" even under the C locale; strxfrm then applies whatever
    collation locale the process has set.
    """
    text = value if isinstance(value, str) else ""
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return locale.strxfrm(base)


def _numeric(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return 0.0
    if isinstance(value, (int, float)) and value == value:
        return float(value)
    return 0.0


def _is_string_field(records: Sequence[Mapping], field: str) -> bool:
    """A field is textual when most of its present values are strings."""
    if field in _STRING_FIELDS:
        return True
    if field in _NUMERIC_FIELDS:
        return False
    present = [r.get(field) for r in records if r.get(field) is not None]
    strings = sum(1 for v in present if isinstance(v, str))
    return strings > len(present) - strings


def rank_population(
    records: Sequence[Mapping],
    sort_key: str,
    direction: SortDirection = SortDirection.DESC,
) -> list[RankedEntry]:
    """
    Order an entire population and assign static ranks.

    Args:
        records:   Every record of the population, in its stable input order.
        sort_key:  User-facing sort key or literal field name.
        direction: SortDirection.DESC (default) or SortDirection.ASC.

    Returns:
        RankedEntry list covering the whole population, in sorted order, with
        rank == index + 1.

    Notes:
        Python's sort is stable for both directions, so tied records keep
        their input order whether sorting ascending or descending.
    """
    field = resolve_sort_field(sort_key)
    if _is_string_field(records, field):
        def key(record: Mapping) -> Any:
            return collation_key(record.get(field))
    else:
        def key(record: Mapping) -> Any:
            return _numeric(record.get(field))

    ordered = sorted(records, key=key, reverse=direction is SortDirection.DESC)
    ranked = [RankedEntry(record=r, rank=i + 1) for i, r in enumerate(ordered)]

    logger.debug(
        "Ranked %d records by %s (%s, field=%s).",
        len(ranked), sort_key, direction.value, field,
    )
    return ranked
