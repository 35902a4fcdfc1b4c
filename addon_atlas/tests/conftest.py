"""
addon_atlas/tests/conftest.py — Shared pytest fixtures for the Addon Atlas suite.

Fixtures:
    now               — Fixed reference time (UTC) for deterministic ages.
    raw_catalog       — Small raw CurseForge-shaped catalog exercising every
                        selection rule.
    items_population  — Population of three tied-rate items (A, B, C).
    creators_population — Population of creators including "Orion".
    snapshot_dir      — tmp_path holding items.json / creators.json.
    curseforge_token  — CURSEFORGE_TOKEN env var (or None).
"""

import io
import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from addon_atlas.ranking.state import Population, PopulationKind


# ── Pytest configuration hooks ────────────────────────────────────────────────

def pytest_configure(config):
    """Register the integration marker."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests that call real external APIs (deselected by default, "
        "pass --run-integration or -m integration to enable)",
    )


def pytest_addoption(parser):
    """Add --run-integration CLI flag to enable integration tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that call real external APIs.",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration or -m integration is used."""
    markexpr = config.getoption("-m", default="")
    if "integration" in markexpr:
        return

    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(
        reason="Integration test -- pass --run-integration or -m integration to run"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ── Helpers ───────────────────────────────────────────────────────────────────

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def iso_days_ago(days: float, now: datetime = NOW) -> str:
    """ISO-8601 'Z' timestamp `days` before `now`."""
    return (now - timedelta(days=days)).isoformat().replace("+00:00", "Z")


def make_raw_mod(
    mod_id,
    name,
    authors=("someone",),
    downloads=0,
    days_ago=10,
    categories=(6484,),
    website="https://www.curseforge.com/minecraft/mc-mods/x",
    **extra,
) -> dict:
    """Build one CurseForge-shaped search result entry."""
    raw = {
        "id": mod_id,
        "name": name,
        "authors": [{"id": i, "name": a} for i, a in enumerate(authors)],
        "downloadCount": downloads,
        "categories": [{"id": c, "name": f"cat-{c}"} for c in categories],
        "links": {"websiteUrl": website},
    }
    if days_ago is not None:
        raw["dateCreated"] = iso_days_ago(days_ago)
    raw.update(extra)
    return raw


class StubResponse(io.BytesIO):
    """Minimal urlopen() response: a readable context manager."""


class StubOpener:
    """
    Stand-in for urllib.request.urlopen.

    `responses` is a list of either bytes/dicts (returned in order) or
    exceptions (raised in order). Every request is recorded.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        if not self.responses:
            raise AssertionError("StubOpener ran out of responses")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        if isinstance(nxt, (dict, list)):
            nxt = json.dumps(nxt).encode("utf-8")
        return StubResponse(nxt)


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def raw_catalog() -> list[dict]:
    return [
        make_raw_mod(1, "Create: Steam 'n' Rails", authors=("Orion", "Slimeist"),
                     downloads=40, days_ago=4),
        make_raw_mod(2, "Create Deco", authors=("Orion",), downloads=60,
                     days_ago=6, categories=()),
        make_raw_mod(3, "Modpack of Create", downloads=999, days_ago=3,
                     website="https://www.curseforge.com/minecraft/modpacks/create-pack"),
        make_raw_mod(4, "Creative Tabs", downloads=5, categories=()),
        make_raw_mod(5, "Createaddon", downloads=7, categories=()),
        make_raw_mod(6, "Future Gadgets", authors=("Kurisu",), downloads=30,
                     days_ago=-5),
        make_raw_mod(7, "Plugin Thing", downloads=11,
                     website="https://www.curseforge.com/minecraft/bukkit-plugins/thing"),
    ]


@pytest.fixture
def items_population() -> Population:
    """A(100 dl, 10d), B(50 dl, 5d), C(200 dl, 20d) — all rate 10."""
    records = (
        {"id": 1, "name": "A", "author": "ann", "authors": ["ann"],
         "downloadCount": 100, "downloadRate": 10.0, "daysExisting": 10.0},
        {"id": 2, "name": "B", "author": "bob", "authors": ["bob"],
         "downloadCount": 50, "downloadRate": 10.0, "daysExisting": 5.0},
        {"id": 3, "name": "C", "author": "cy", "authors": ["cy"],
         "downloadCount": 200, "downloadRate": 10.0, "daysExisting": 20.0},
    )
    return Population(kind=PopulationKind.ITEMS, records=records,
                      generated_at="2025-06-01T12:00:00Z")


@pytest.fixture
def creators_population() -> Population:
    records = (
        {"name": "Simibubi", "downloadCount": 5000, "itemCount": 3,
         "downloadRate": 50.0, "daysExisting": 100.0},
        {"name": "Orion", "downloadCount": 100, "itemCount": 2,
         "downloadRate": 20.0, "daysExisting": 5.0},
        {"name": "Kurisu", "downloadCount": 300, "itemCount": 1,
         "downloadRate": 3.0, "daysExisting": 100.0},
        {"name": "Slimeist", "downloadCount": 40, "itemCount": 1,
         "downloadRate": 10.0, "daysExisting": 4.0},
    )
    return Population(kind=PopulationKind.CREATORS, records=records,
                      generated_at="2025-06-01T12:00:00Z")


@pytest.fixture
def snapshot_dir(tmp_path, items_population, creators_population):
    (tmp_path / "items.json").write_text(json.dumps({
        "generatedAt": items_population.generated_at,
        "items": list(items_population.records),
    }), encoding="utf-8")
    (tmp_path / "creators.json").write_text(json.dumps({
        "generatedAt": creators_population.generated_at,
        "creators": list(creators_population.records),
    }), encoding="utf-8")
    return tmp_path


@pytest.fixture(scope="session")
def curseforge_token():
    return os.environ.get("CURSEFORGE_TOKEN")
