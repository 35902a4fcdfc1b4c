"""
addon_atlas/config.py — All tunable parameters for Addon Atlas.

No catalog filter, API constant or chart dimension should be hardcoded in a
pipeline module. Everything that a maintainer might want to retune lives here
so that calibration changes are a single-file diff.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class AddonAtlasConfig:
    """
    Immutable configuration for the Addon Atlas batch and view pipelines.

    Override by constructing a new AddonAtlasConfig with the desired values.
    """

    # ── Catalog retrieval ─────────────────────────────────────────────────────
    api_url: str = "https://api.curseforge.com/v1/mods/search"

    game_id: int = 432
    # CurseForge domain identifier for Minecraft.

    search_filter: str = "create"
    # Free-text filter sent upstream. The normalizer does the real population
    # selection.

    page_size: int = 50
    # CurseForge caps pageSize at 50.

    max_results: int | None = None
    # Optional hard cap on the number of entries fetched in one run.

    request_interval_seconds: float = 1.0
    # Minimum interval between upstream requests (self-imposed courtesy limit).

    request_timeout_seconds: float = 30.0

    # ── Population selection ──────────────────────────────────────────────────
    category_id: int = 6484
    # The "Create" addon category. Membership alone qualifies an entry.

    name_prefix: str = "create"
    # Case-insensitive name prefix (followed by whitespace) that also qualifies.

    excluded_url_segments: tuple[str, ...] = ("/modpacks/", "/bukkit-plugins/")
    # Entries whose canonical link contains any of these are rejected outright.

    timestamp_fields: tuple[str, ...] = ("dateCreated", "dateReleased", "dateModified")
    # Candidate creation timestamps, in priority order.

    # ── Snapshots ─────────────────────────────────────────────────────────────
    data_dir: str = "data"
    items_filename: str = "items.json"
    creators_filename: str = "creators.json"

    # ── Interactive view ──────────────────────────────────────────────────────
    default_sort_key: str = "downloads"
    default_window: int = 20

    chart_row_height: int = 30
    # Pixels per row in the grouped bar view.

    chart_min_rows: int = 20
    # The grouped view is never sized for fewer rows than this.

    pie_size: int = 600
    # Fixed square size (px) for the proportional view.

    # ── Leaderboard notifier ──────────────────────────────────────────────────
    message_size_limit: int = 2000
    # Per-message character limit of the target chat channel.

    leaderboard_top_n: int = 10


# Singleton default — import this everywhere instead of constructing anew.
DEFAULT_CONFIG = AddonAtlasConfig()
