"""
addon_atlas/storage/snapshots.py — Flat JSON snapshot persistence.

Snapshots are immutable artifacts replaced wholesale on every batch run:

    items.json     {"generatedAt": "<iso8601>", "items":    [ItemRecord...]}
    creators.json  {"generatedAt": "<iso8601>", "creators": [CreatorSummary...]}

Both files are serialized in memory first, then written to ".tmp" siblings,
then moved into place with os.replace(). Any failure, including a failed
rename, leaves the previous snapshots in place.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Iterable

logger = logging.getLogger(__name__)


class SnapshotWriteError(Exception):
    """Raised when a snapshot pair cannot be serialized or written."""


@dataclass(frozen=True)
class SnapshotPaths:
    items: str
    creators: str

    @classmethod
    def in_dir(
        cls,
        data_dir: str,
        items_filename: str = "items.json",
        creators_filename: str = "creators.json",
    ) -> "SnapshotPaths":
        return cls(
            items=os.path.join(data_dir, items_filename),
            creators=os.path.join(data_dir, creators_filename),
        )


def build_items_snapshot(items: Iterable, generated_at: str) -> dict:
    return {"generatedAt": generated_at, "items": [i.to_dict() for i in items]}


def build_creators_snapshot(creators: Iterable, generated_at: str) -> dict:
    return {"generatedAt": generated_at, "creators": [c.to_dict() for c in creators]}


def _cleanup(paths: Iterable[str]) -> None:
    for path in paths:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove temp snapshot %s: %s", path, exc)


def _install(pending: list, tmp_paths: list[str]) -> None:
    """
    Move every temp file into place, rolling back on a failed rename.

    Each existing target is first moved aside to ".bak"; if any rename fails,
    the backups are restored and targets that did not exist before are
    removed, so the pair is never left half-replaced.
    """
    backups: list[tuple[str, str]] = []
    created: list[str] = []
    try:
        for (target, _), tmp in zip(pending, tmp_paths):
            if os.path.exists(target):
                os.replace(target, target + ".bak")
                backups.append((target + ".bak", target))
            else:
                created.append(target)
            os.replace(tmp, target)
    except OSError as exc:
        for bak, target in reversed(backups):
            os.replace(bak, target)
        _cleanup(created)
        _cleanup(tmp_paths)
        raise SnapshotWriteError(f"Snapshot rename failed: {exc}") from exc
    _cleanup(bak for bak, _ in backups)


def write_snapshot_pair(
    items_snapshot: dict,
    creators_snapshot: dict,
    paths: SnapshotPaths,
) -> SnapshotPaths:
    """
    Write both snapshots, all-or-nothing.

    Raises:
        SnapshotWriteError: if serialization, the temp-file write or the final
                            rename fails. Existing snapshots are left as
                            they were.
    """
    try:
        items_text = json.dumps(items_snapshot, indent=2, ensure_ascii=False)
        creators_text = json.dumps(creators_snapshot, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise SnapshotWriteError(f"Snapshot serialization failed: {exc}") from exc

    pending = [(paths.items, items_text), (paths.creators, creators_text)]
    tmp_paths = [target + ".tmp" for target, _ in pending]
    try:
        for (target, text), tmp in zip(pending, tmp_paths):
            os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as fh:
                fh.write(text)
    except OSError as exc:
        _cleanup(tmp_paths)
        raise SnapshotWriteError(f"Snapshot write failed: {exc}") from exc

    _install(pending, tmp_paths)

    logger.info(
        "Snapshots written: %s (%d items), %s (%d creators).",
        paths.items, len(items_snapshot.get("items", [])),
        paths.creators, len(creators_snapshot.get("creators", [])),
    )
    return paths


def read_snapshot(path: str) -> dict:
    """Load one snapshot file as a dict."""
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)
