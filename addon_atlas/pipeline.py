"""
addon_atlas/pipeline.py — Single-call batch orchestrator.

Provides run_catalog_pipeline() which executes the offline snapshot run in
order and returns every intermediate result:

    1. Fetch the full upstream catalog (sequential pages)
    2. Normalize to ItemRecords
    3. Aggregate CreatorSummaries
    4. Serialize and write both snapshots, all-or-nothing

A failure at any step aborts the run. Prior snapshots are left untouched,
the failure is logged, and the exception propagates to the caller.

Usage:
    from addon_atlas.pipeline import run_catalog_pipeline
    result = run_catalog_pipeline(api_key=os.environ["CURSEFORGE_TOKEN"])
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from addon_atlas.config import DEFAULT_CONFIG, AddonAtlasConfig
from addon_atlas.ingestion.curseforge_client import CurseForgeClient
from addon_atlas.metrics.creators import CreatorSummary, aggregate_creators
from addon_atlas.metrics.normalizer import ItemRecord, normalize_catalog
from addon_atlas.storage.snapshots import (
    SnapshotPaths,
    build_creators_snapshot,
    build_items_snapshot,
    write_snapshot_pair,
)

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Complete output of one batch run."""

    generated_at: str
    raw_count: int
    items: list[ItemRecord] = field(default_factory=list)
    creators: list[CreatorSummary] = field(default_factory=list)
    paths: Optional[SnapshotPaths] = None


def build_snapshots(
    raw_entries: list[dict],
    config: AddonAtlasConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> tuple[list[ItemRecord], list[CreatorSummary], dict, dict]:
    """
    Pure part of the run: normalize, aggregate and build both snapshot dicts.

    With a fixed `now`, repeated calls on the same input produce identical
    snapshots.
    """
    now = now or datetime.now(tz=timezone.utc)
    generated_at = now.isoformat().replace("+00:00", "Z")
    items = normalize_catalog(raw_entries, config, now=now)
    creators = aggregate_creators(items, now=now)
    return (
        items,
        creators,
        build_items_snapshot(items, generated_at),
        build_creators_snapshot(creators, generated_at),
    )


def run_catalog_pipeline(
    config: AddonAtlasConfig = DEFAULT_CONFIG,
    api_key: Optional[str] = None,
    client: Optional[CurseForgeClient] = None,
    data_dir: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PipelineResult:
    """
    Execute the complete batch run in one call.

    Args:
        config:   AddonAtlasConfig with retrieval, filter and path settings.
        api_key:  CurseForge API key (ignored when `client` is given).
        client:   Pre-built catalog client (tests inject a stub).
        data_dir: Output directory (defaults to config.data_dir).
        now:      Reference time for ages and generatedAt (defaults to UTC now).

    Returns:
        PipelineResult with items, creators and written paths.

    Raises:
        CatalogFetchError, SnapshotWriteError, or any aggregation error.
        Nothing is written unless every step succeeded.
    """
    client = client or CurseForgeClient(api_key=api_key, config=config)
    paths = SnapshotPaths.in_dir(
        data_dir or config.data_dir, config.items_filename, config.creators_filename
    )

    logger.info("Addon Atlas batch run starting.")
    try:
        logger.info("Phase 1/3: Fetching catalog...")
        raw_entries = client.fetch_all()

        logger.info("Phase 2/3: Normalizing %d entries and aggregating creators...", len(raw_entries))
        items, creators, items_snapshot, creators_snapshot = build_snapshots(
            raw_entries, config, now
        )

        logger.info("Phase 3/3: Writing snapshots...")
        write_snapshot_pair(items_snapshot, creators_snapshot, paths)
    except Exception:
        logger.error("Batch run aborted; previous snapshots left untouched.", exc_info=True)
        raise

    logger.info(
        "Batch run complete: %d items, %d creators.", len(items), len(creators)
    )
    return PipelineResult(
        generated_at=items_snapshot["generatedAt"],
        raw_count=len(raw_entries),
        items=items,
        creators=creators,
        paths=paths,
    )
