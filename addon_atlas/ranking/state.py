"""
addon_atlas/ranking/state.py — Population model and immutable view state.

A Population is resolved exactly once, when a snapshot payload is loaded:
its kind (items vs. creators) is an explicit enum value rather than something
re-inferred from dict keys at each transformation step.

ViewState carries everything a user can change (population, sort key and
direction, search text, window size, chart mode). Every user action produces
a new ViewState; nothing is mutated in place.
"""

import enum
import logging
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


class PopulationKind(enum.Enum):
    """Which snapshot a population came from."""

    ITEMS = "items"
    CREATORS = "creators"

    @property
    def snapshot_key(self) -> str:
        """Top-level key holding the record list in the snapshot payload."""
        return self.value

    @property
    def api_path(self) -> str:
        """Fixed read path on the serving collaborator."""
        return f"/api/{self.value}.json"


class SortDirection(enum.Enum):
    DESC = "desc"
    ASC = "asc"

    def flipped(self) -> "SortDirection":
        return SortDirection.ASC if self is SortDirection.DESC else SortDirection.DESC


class ViewMode(enum.Enum):
    GROUPED = "grouped"
    SINGLE = "single"


@dataclass(frozen=True)
class Population:
    """
    An immutable, typed view of one snapshot.

    Fields:
        kind:         PopulationKind resolved at load time.
        records:      Tuple of JSON record mappings, in snapshot order.
        generated_at: The snapshot's generation timestamp (string), if any.
    """

    kind: PopulationKind
    records: tuple
    generated_at: Optional[str] = None

    def __len__(self) -> int:
        return len(self.records)


def parse_population(
    payload: Any,
    expected: Optional[PopulationKind] = None,
) -> Optional[Population]:
    """
    Resolve a snapshot payload into a Population.

    The kind is taken from whichever of the "items" / "creators" keys holds a
    list. When `expected` is given, only that key is accepted.

    Returns:
        Population, or None for a malformed or unrecognized payload. A None
        result short-circuits the view pipeline before ranking.
    """
    if not isinstance(payload, Mapping):
        logger.warning("Snapshot payload is not an object: %r", type(payload).__name__)
        return None

    kinds = [expected] if expected is not None else list(PopulationKind)
    for kind in kinds:
        records = payload.get(kind.snapshot_key)
        if isinstance(records, list):
            return Population(
                kind=kind,
                records=tuple(r for r in records if isinstance(r, Mapping)),
                generated_at=payload.get("generatedAt"),
            )

    logger.warning(
        "Unrecognized snapshot shape (keys: %s).", ", ".join(sorted(map(str, payload)))
    )
    return None


# Sort buttons offered per population kind (dashboard and CLI choices).
SORT_KEYS_BY_KIND: dict[PopulationKind, tuple[str, ...]] = {
    PopulationKind.ITEMS: ("downloads", "rate", "name", "age"),
    PopulationKind.CREATORS: ("downloads", "rate", "items", "name", "age"),
}


@dataclass(frozen=True)
class ViewState:
    """
    Everything that determines one rendered view.

    Fields:
        population: Active PopulationKind.
        sort_key:   User-facing sort key (see ranking.engine.SORT_KEY_ALIASES).
        direction:  SortDirection, descending by default.
        search:     Raw search text; empty or whitespace means no filter.
        window:     Requested maximum number of entries shown.
        mode:       ViewMode (grouped bars vs. single-series pie).
    """

    population: PopulationKind = PopulationKind.ITEMS
    sort_key: str = "downloads"
    direction: SortDirection = SortDirection.DESC
    search: str = ""
    window: int = 20
    mode: ViewMode = ViewMode.GROUPED

    def with_sort(self, sort_key: str) -> "ViewState":
        """Selecting the active key flips direction; a new key starts descending."""
        if sort_key == self.sort_key:
            return replace(self, direction=self.direction.flipped())
        return replace(self, sort_key=sort_key, direction=SortDirection.DESC)

    def with_direction(self, direction: SortDirection) -> "ViewState":
        return replace(self, direction=direction)

    def with_search(self, search: str) -> "ViewState":
        return replace(self, search=search or "")

    def with_window(self, window: Any) -> "ViewState":
        """Store the requested window; non-integers coerce to 1."""
        try:
            value = int(window)
        except (TypeError, ValueError):
            value = 1
        return replace(self, window=max(1, value))

    def with_population(self, population: PopulationKind) -> "ViewState":
        return replace(self, population=population)

    def toggle_mode(self) -> "ViewState":
        mode = ViewMode.SINGLE if self.mode is ViewMode.GROUPED else ViewMode.GROUPED
        return replace(self, mode=mode)
