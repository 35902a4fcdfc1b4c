"""
addon_atlas/ranking/series.py — Series Builder.

Converts the windowed entry list into a ChartModel: display labels plus a set
of parallel, axis-tagged numeric series aligned index-for-index with it.

Series, in fixed order:
    Download Rate   alias "rate"       axis "rate-x"       visible
    Downloads       alias "downloads"  axis "downloads-x"  hidden
    Items           alias "items"      axis "items-x"      hidden  (creators only)
    Age (days)      alias "age"        axis "age-x"        hidden

Visibility is an initial-display hint only; the presenter keeps every series
togglable.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

from addon_atlas.ranking.engine import RankedEntry
from addon_atlas.ranking.state import PopulationKind


@dataclass(frozen=True)
class SeriesDescriptor:
    """
    One named numeric sequence.

    Fields:
        label:     Legend label.
        field:     Primary record field the values were read from.
        values:    Values aligned with ChartModel.labels.
        visible:   Default visibility (initial-display hint).
        axis_id:   Value-axis identity.
        sort_key:  Sort-key alias this series corresponds to.
        color:     Bar / slice color.
    """

    label: str
    field: str
    values: tuple
    visible: bool
    axis_id: str
    sort_key: str
    color: str = "steelblue"


@dataclass(frozen=True)
class ChartModel:
    """Ordered labels plus ordered series, all aligned by index."""

    labels: tuple
    series: tuple = field(default_factory=tuple)

    def series_for(self, sort_key: str) -> SeriesDescriptor:
        """Series whose alias equals `sort_key`, else the first series."""
        for s in self.series:
            if s.sort_key == sort_key:
                return s
        return self.series[0]


# (label, field, sort_key, axis_id, visible, color, creators_only)
_SERIES_SPECS = (
    ("Download Rate", "downloadRate", "rate", "rate-x", True, "rgba(75,192,192,0.6)", False),
    ("Downloads", "downloadCount", "downloads", "downloads-x", False, "rgba(245,140,28,0.6)", False),
    ("Items", "itemCount", "items", "items-x", False, "rgba(100,100,255,0.4)", True),
    ("Age (days)", "daysExisting", "age", "age-x", False, "rgba(120,120,120,0.3)", False),
)


def entry_label(entry: RankedEntry) -> str:
    """'#{rank} {name}', plus ' (by {creator})' when the entry has a primary creator."""
    label = f"#{entry.rank} "
    if entry.name:
        label += entry.name
    if entry.creator:
        label += f" (by {entry.creator})"
    return label


def read_value(record: Mapping, field: str) -> Any:
    """Read `field`, falling back to its lower-cased spelling, defaulting to 0."""
    value = record.get(field)
    if value is None:
        value = record.get(field.lower())
    return value if value is not None else 0


def build_chart_model(window: list[RankedEntry], kind: PopulationKind) -> ChartModel:
    """
    Build the ChartModel for a windowed entry list.

    Args:
        window: Output of filter_view().
        kind:   PopulationKind of the population the entries came from.

    Returns:
        ChartModel with one label per entry and 3 (items) or 4 (creators) series.
    """
    labels = tuple(entry_label(e) for e in window)
    series = []
    for label, fld, sort_key, axis_id, visible, color, creators_only in _SERIES_SPECS:
        if creators_only and kind is not PopulationKind.CREATORS:
            continue
        series.append(
            SeriesDescriptor(
                label=label,
                field=fld,
                values=tuple(read_value(e.record, fld) for e in window),
                visible=visible,
                axis_id=axis_id,
                sort_key=sort_key,
                color=color,
            )
        )
    return ChartModel(labels=labels, series=tuple(series))
