"""
addon_atlas/metrics/creators.py — Creator Aggregator.

Rolls normalized items up into one CreatorSummary per creator name.

Algorithm:
    1. Explode each item over its full creator list. An item with several
       creators contributes to every one of them, not only the primary.
    2. Recompute each item's age from its creation timestamp at aggregation
       time. Items without a timestamp contribute no age.
    3. Group by creator in first-encountered order (groupby(sort=False)):
           download_count = sum of downloads
           item_count     = number of items
           mean age       = arithmetic mean of the collected ages (1 if none)
           download_rate  = download_count / mean age, 2 dp

Output order is the order in which distinct creator names are first seen
while scanning the items. The ranking engine breaks ties by this order, so
it is part of the observable contract.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import pandas as pd

from addon_atlas.metrics.normalizer import ItemRecord, days_since

logger = logging.getLogger(__name__)


@dataclass
class CreatorSummary:
    """
    Per-creator popularity rollup.

    Fields:
        name:           Creator name (unique key).
        download_count: Sum of download counts across the creator's items.
        item_count:     Number of items listing this creator.
        days_existing:  Mean age in days across those items, 2 dp, > 0.
        download_rate:  download_count / mean age, 2 dp.
    """

    name: str
    download_count: int
    item_count: int
    days_existing: float
    download_rate: float

    def to_dict(self) -> dict:
        """Snapshot (camelCase) representation."""
        return {
            "name": self.name,
            "downloadCount": self.download_count,
            "itemCount": self.item_count,
            "downloadRate": self.download_rate,
            "daysExisting": self.days_existing,
        }


def aggregate_creators(
    items: list[ItemRecord],
    now: Optional[datetime] = None,
) -> list[CreatorSummary]:
    """
    Aggregate ItemRecords into CreatorSummaries.

    Args:
        items: Normalized items, in normalizer output order.
        now:   Reference time for age recomputation. Use the same value that
               was passed to normalize_catalog() for a consistent run.

    Returns:
        List of CreatorSummary in first-encountered creator order.
    """
    now = now or datetime.now(tz=timezone.utc)

    rows = [
        {
            "creator": creator,
            "downloads": item.download_count,
            "age": days_since(item.created_at, now) if item.created_at else None,
        }
        for item in items
        for creator in item.authors
    ]
    if not rows:
        logger.warning("aggregate_creators: no creator names found in %d items.", len(items))
        return []

    df = pd.DataFrame(rows, columns=["creator", "downloads", "age"])
    df["age"] = pd.to_numeric(df["age"])
    grouped = df.groupby("creator", sort=False).agg(
        downloads=("downloads", "sum"),
        items=("downloads", "size"),
        mean_age=("age", "mean"),
    )
    # A creator whose items all lack timestamps has no ages to average.
    grouped["mean_age"] = grouped["mean_age"].fillna(1.0)

    summaries = []
    for creator, row in grouped.iterrows():
        mean_age = float(row["mean_age"])
        total = int(row["downloads"])
        summaries.append(
            CreatorSummary(
                name=creator,
                download_count=total,
                item_count=int(row["items"]),
                days_existing=round(mean_age, 2),
                download_rate=round(total / mean_age, 2),
            )
        )

    logger.debug(
        "Aggregated %d items into %d creators.", len(items), len(summaries)
    )
    return summaries
