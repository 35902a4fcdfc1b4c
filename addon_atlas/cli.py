"""
addon_atlas/cli.py — Command-line interface for Addon Atlas.

Usage:
    python -m addon_atlas fetch            # batch run: catalog → snapshots
    python -m addon_atlas chart            # render one view to HTML
    python -m addon_atlas leaderboard NAME # format (and optionally post) a leaderboard
    python -m addon_atlas serve            # serve snapshots over HTTP
    python -m addon_atlas status           # show snapshot state

All commands read CURSEFORGE_TOKEN and LEADERBOARD_WEBHOOK_URL from .env in
the repo root (or the path given by --env-file) before falling back to the
environment.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from datetime import datetime
from pathlib import Path

from addon_atlas.config import DEFAULT_CONFIG


# ── .env loader (stdlib only — no python-dotenv required) ────────────────────

def _load_dotenv(env_file: str | None = None) -> dict[str, str]:
    """Load key=value pairs from a .env file into the environment.

    Existing environment values are NOT overwritten. Returns the dict of
    values that were newly loaded.

    Args:
        env_file: Explicit path. If None, searches for .env from the current
                  directory upwards.
    """
    if env_file is None:
        start = Path.cwd()
        for directory in [start, *start.parents]:
            candidate = directory / ".env"
            if candidate.is_file():
                env_file = str(candidate)
                break

    if not env_file or not Path(env_file).is_file():
        return {}

    loaded: dict[str, str] = {}
    with open(env_file, encoding="utf-8") as fh:
        for raw_line in fh:
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                value = value[1:-1]
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


# ── Logging setup ─────────────────────────────────────────────────────────────

def _setup_logging(level: str = "INFO") -> None:
    """Configure root logger with timestamps."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s  %(levelname)-8s  %(name)s — %(message)s"
    logging.basicConfig(level=numeric, format=fmt, datefmt="%H:%M:%S", stream=sys.stderr)


logger = logging.getLogger("addon_atlas.cli")


# ── Subcommand: fetch ────────────────────────────────────────────────────────

def cmd_fetch(args: argparse.Namespace) -> int:
    """Batch run: fetch catalog, normalize, aggregate, write both snapshots."""
    from dataclasses import replace

    from addon_atlas.pipeline import run_catalog_pipeline

    token = args.token or os.environ.get("CURSEFORGE_TOKEN")
    if not token:
        logger.warning("CURSEFORGE_TOKEN not set. The CurseForge API will reject requests.")

    config = DEFAULT_CONFIG
    if args.max_results is not None:
        config = replace(config, max_results=args.max_results)

    t0 = time.monotonic()
    try:
        result = run_catalog_pipeline(config=config, api_key=token, data_dir=args.data_dir)
    except Exception as exc:  # noqa: BLE001
        logger.error("Fetch failed: %s", exc)
        return 1
    elapsed = time.monotonic() - t0

    print()
    print("=" * 60)
    print("  ADDON ATLAS — FETCH COMPLETE")
    print("=" * 60)
    print(f"  Elapsed        : {elapsed:.0f}s")
    print(f"  Raw entries    : {result.raw_count}")
    print(f"  Items          : {len(result.items)}  -> {result.paths.items}")
    print(f"  Creators       : {len(result.creators)}  -> {result.paths.creators}")
    print(f"  Generated at   : {result.generated_at}")
    print("=" * 60)
    return 0


# ── Subcommand: chart ────────────────────────────────────────────────────────

def cmd_chart(args: argparse.Namespace) -> int:
    """Render one ranked view to a self-contained HTML file."""
    from addon_atlas.ranking.session import PopulationLoader, compute_view
    from addon_atlas.ranking.state import PopulationKind, SortDirection, ViewMode, ViewState
    from addon_atlas.viz.chart_presenter import ChartPresenter, save_chart_html

    kind = PopulationKind(args.population)
    loader = PopulationLoader(base_url=args.api_url, data_dir=args.data_dir)
    population = loader.load(kind)
    if population is None:
        logger.error("No usable %s population.", kind.value)
        return 1

    state = ViewState(
        population=kind,
        sort_key=args.sort,
        direction=SortDirection(args.direction),
        search=args.search,
        mode=ViewMode.SINGLE if args.pie else ViewMode.GROUPED,
    ).with_window(args.max_entries)

    result = compute_view(population, state)
    fig = ChartPresenter().render(result.model, state)
    save_chart_html(fig, args.output)

    for label in result.model.labels:
        print(label)
    print(f"\n  Chart saved to: {args.output}")
    return 0


# ── Subcommand: leaderboard ──────────────────────────────────────────────────

def cmd_leaderboard(args: argparse.Namespace) -> int:
    """Format a creator leaderboard excerpt; post it when --post is given."""
    from addon_atlas.ranking.session import PopulationLoader
    from addon_atlas.ranking.state import PopulationKind
    from addon_atlas.reports.leaderboard import (
        chunk_message,
        format_leaderboard,
        post_leaderboard,
    )

    population = PopulationLoader(base_url=args.api_url, data_dir=args.data_dir).load(
        PopulationKind.CREATORS
    )
    if population is None:
        logger.error("No usable creators population.")
        return 1

    text = format_leaderboard(population, args.name, top_n=args.top)
    chunks = chunk_message(text, DEFAULT_CONFIG.message_size_limit)

    if not args.post:
        print(text)
        return 0

    webhook = args.webhook or os.environ.get("LEADERBOARD_WEBHOOK_URL")
    if not webhook:
        logger.error("LEADERBOARD_WEBHOOK_URL not set; pass --webhook or set it in .env.")
        return 1
    posted = post_leaderboard(webhook, chunks)
    return 0 if posted == len(chunks) else 1


# ── Subcommand: serve ────────────────────────────────────────────────────────

def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the snapshot files over HTTP."""
    import uvicorn

    from addon_atlas.api.endpoints import create_app

    uvicorn.run(create_app(data_dir=args.data_dir), host=args.host, port=args.port)
    return 0


# ── Subcommand: status ───────────────────────────────────────────────────────

def cmd_status(args: argparse.Namespace) -> int:
    """Show the current state of the snapshot files."""
    from addon_atlas.storage.snapshots import SnapshotPaths, read_snapshot

    paths = SnapshotPaths.in_dir(
        args.data_dir, DEFAULT_CONFIG.items_filename, DEFAULT_CONFIG.creators_filename
    )
    token = args.token or os.environ.get("CURSEFORGE_TOKEN")

    print("\nAddon Atlas — Status Report")
    print("=" * 40)
    print(f"  CURSEFORGE_TOKEN : {'✓ present' if token else '✗ not set'}")
    print(f"\n  Snapshots ({args.data_dir}/):")
    for key, path in (("items", paths.items), ("creators", paths.creators)):
        name = os.path.basename(path)
        if not os.path.exists(path):
            print(f"    ✗ {name:<16} not found")
            continue
        mtime = datetime.fromtimestamp(os.path.getmtime(path)).strftime("%Y-%m-%d %H:%M")
        try:
            snap = read_snapshot(path)
            count = len(snap.get(key, []))
            print(f"    ✓ {name:<16} {count:>6} {key:<9} generated {snap.get('generatedAt')}  ({mtime})")
        except (OSError, ValueError):
            print(f"    ? {name:<16} (unreadable)")
    print()
    return 0


# ── Argument parser ───────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="addon-atlas",
        description=(
            "Addon Atlas — popularity rankings for the Create add-on catalog.\n"
            "Reads CURSEFORGE_TOKEN from .env automatically."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Refresh both snapshots
  python -m addon_atlas fetch

  # Top 30 creators by download rate, as a pie chart
  python -m addon_atlas chart --population creators --sort rate --max-entries 30 --pie

  # Where does a creator stand?
  python -m addon_atlas leaderboard "Orion"
        """,
    )

    parser.add_argument(
        "--env-file", default=None, metavar="PATH",
        help="Path to .env file (default: auto-detect .env from the current directory up)",
    )
    parser.add_argument(
        "--token", default=None, metavar="CURSEFORGE_TOKEN",
        help="CurseForge API key (overrides .env and environment)",
    )
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--data-dir", default=DEFAULT_CONFIG.data_dir, metavar="PATH",
        help=f"Snapshot directory (default: {DEFAULT_CONFIG.data_dir})",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    def add_source_flags(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--api-url", default=None, metavar="URL",
            help="Read snapshots from a running server instead of --data-dir",
        )

    p_fetch = subparsers.add_parser("fetch", help="Batch run: catalog → items/creators snapshots")
    p_fetch.add_argument(
        "--max-results", type=int, default=None, metavar="N",
        help="Cap the number of catalog entries fetched",
    )
    p_fetch.set_defaults(func=cmd_fetch)

    p_chart = subparsers.add_parser("chart", help="Render one ranked view to HTML")
    add_source_flags(p_chart)
    p_chart.add_argument("--population", choices=["items", "creators"], default="items")
    p_chart.add_argument(
        "--sort", default=DEFAULT_CONFIG.default_sort_key, metavar="KEY",
        help="downloads | rate | items | name | age, or any record field",
    )
    p_chart.add_argument("--direction", choices=["desc", "asc"], default="desc")
    p_chart.add_argument("--search", default="", metavar="TEXT")
    p_chart.add_argument(
        "--max-entries", type=int, default=DEFAULT_CONFIG.default_window, metavar="N",
    )
    p_chart.add_argument("--pie", action="store_true", help="Single-series pie chart")
    p_chart.add_argument("--output", default="ranking.html", metavar="PATH")
    p_chart.set_defaults(func=cmd_chart)

    p_board = subparsers.add_parser("leaderboard", help="Creator leaderboard excerpt")
    add_source_flags(p_board)
    p_board.add_argument("name", nargs="?", default=None, metavar="CREATOR")
    p_board.add_argument("--top", type=int, default=DEFAULT_CONFIG.leaderboard_top_n, metavar="N")
    p_board.add_argument("--post", action="store_true", help="Post to the webhook")
    p_board.add_argument("--webhook", default=None, metavar="URL")
    p_board.set_defaults(func=cmd_leaderboard)

    p_serve = subparsers.add_parser("serve", help="Serve snapshots over HTTP")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.set_defaults(func=cmd_serve)

    p_status = subparsers.add_parser("status", help="Show snapshot state")
    p_status.set_defaults(func=cmd_status)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _load_dotenv(args.env_file)
    _setup_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
