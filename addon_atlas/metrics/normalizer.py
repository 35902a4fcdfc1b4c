"""
addon_atlas/metrics/normalizer.py — Catalog Normalizer.

Turns the loosely-typed entries returned by the upstream catalog search into
uniform ItemRecord rows for the population of interest.

Selection rules (all configurable via AddonAtlasConfig):
    1. Reject outright if links.websiteUrl contains an excluded segment
       (modpacks, bukkit plugins).
    2. Keep if the entry carries the qualifying category id, OR its trimmed,
       lower-cased name starts with the qualifying prefix followed by
       whitespace. Either condition alone is sufficient.

Age and rate:
    age_days     = days between the creation timestamp and `now`, clamped to 1
                   when non-positive, missing or unparseable.
    download_rate = download_count / age_days, rounded to 2 dp at storage.

The creation timestamp is the first non-empty value among dateCreated,
dateReleased and dateModified.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from addon_atlas.config import DEFAULT_CONFIG, AddonAtlasConfig

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 60 * 60 * 24


@dataclass
class ItemRecord:
    """
    One normalized catalog entry.

    Fields:
        id:             Upstream identifier.
        name:           Display name.
        author:         Primary creator name (first listed author), or None.
        authors:        Every listed creator name, in upstream order.
        download_count: Total downloads (int >= 0).
        download_rate:  download_count / days_existing, 2 dp.
        created_at:     Raw creation timestamp string, or None.
        days_existing:  Age in days at normalization time, 2 dp, always > 0.
    """

    id: Any
    name: str
    author: Optional[str]
    authors: list[str] = field(default_factory=list)
    download_count: int = 0
    download_rate: float = 0.0
    created_at: Optional[str] = None
    days_existing: float = 1.0

    def to_dict(self) -> dict:
        """Snapshot (camelCase) representation."""
        return {
            "id": self.id,
            "name": self.name,
            "author": self.author,
            "authors": list(self.authors),
            "downloadCount": self.download_count,
            "downloadRate": self.download_rate,
            "createdAt": self.created_at,
            "daysExisting": self.days_existing,
        }


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime, or None."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since(timestamp: Any, now: Optional[datetime] = None) -> float:
    """
    Fractional days elapsed between `timestamp` and `now`.

    Never raises: a missing, unparseable, future-dated or exactly-now
    timestamp yields 1.0 so that downstream rate math never divides by zero.
    """
    created = parse_timestamp(timestamp)
    if created is None:
        return 1.0
    now = now or datetime.now(tz=timezone.utc)
    diff = (now - created).total_seconds() / _SECONDS_PER_DAY
    return diff if diff > 0 else 1.0


def pick_created_at(raw: dict, config: AddonAtlasConfig = DEFAULT_CONFIG) -> Optional[str]:
    """Return the first non-empty candidate creation timestamp."""
    for key in config.timestamp_fields:
        value = raw.get(key)
        if value:
            return value
    return None


def _website_url(raw: dict) -> str:
    links = raw.get("links")
    if not isinstance(links, dict):
        return ""
    url = links.get("websiteUrl")
    return url if isinstance(url, str) else ""


def _has_category(raw: dict, category_id: int) -> bool:
    categories = raw.get("categories")
    if not isinstance(categories, list):
        return False
    return any(
        isinstance(cat, dict) and cat.get("id") == category_id for cat in categories
    )


def is_qualifying_entry(raw: dict, config: AddonAtlasConfig = DEFAULT_CONFIG) -> bool:
    """Apply the exclusion and inclusion rules to a single raw entry."""
    url = _website_url(raw)
    if any(segment in url for segment in config.excluded_url_segments):
        return False

    if _has_category(raw, config.category_id):
        return True

    name = raw.get("name")
    if not isinstance(name, str):
        return False
    pattern = rf"^{re.escape(config.name_prefix.lower())}\s"
    return re.match(pattern, name.strip().lower()) is not None


def _coerce_download_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if value != value or value < 0:  # NaN or negative
        return 0
    return int(value)


def _author_names(raw: dict) -> list[str]:
    authors = raw.get("authors")
    if not isinstance(authors, list):
        return []
    return [
        a["name"] for a in authors
        if isinstance(a, dict) and isinstance(a.get("name"), str)
    ]


def normalize_entry(
    raw: dict,
    now: datetime,
    config: AddonAtlasConfig = DEFAULT_CONFIG,
) -> ItemRecord:
    """Project a single qualifying raw entry into an ItemRecord."""
    authors = _author_names(raw)
    download_count = _coerce_download_count(raw.get("downloadCount"))
    created_at = pick_created_at(raw, config)
    days = days_since(created_at, now) if created_at else 1.0

    return ItemRecord(
        id=raw.get("id"),
        name=raw.get("name"),
        author=authors[0] if authors else None,
        authors=authors,
        download_count=download_count,
        download_rate=round(download_count / days, 2),
        created_at=created_at,
        days_existing=round(days, 2),
    )


def normalize_catalog(
    raw_entries: list[dict],
    config: AddonAtlasConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> list[ItemRecord]:
    """
    Filter raw catalog entries to the population of interest and normalize them.

    Args:
        raw_entries: Entries as returned by the catalog search (list of dicts).
                     Non-dict entries are skipped.
        config:      AddonAtlasConfig. Uses category_id, name_prefix,
                     excluded_url_segments and timestamp_fields.
        now:         Reference time for age computation (defaults to UTC now).
                     Pass a fixed value to make a run reproducible.

    Returns:
        List of ItemRecord in the insertion order of the filtered input.
    """
    now = now or datetime.now(tz=timezone.utc)
    items = [
        normalize_entry(raw, now, config)
        for raw in raw_entries
        if isinstance(raw, dict) and is_qualifying_entry(raw, config)
    ]
    logger.info(
        "Normalized %d of %d catalog entries.", len(items), len(raw_entries)
    )
    return items
