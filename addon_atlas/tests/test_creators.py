"""
addon_atlas/tests/test_creators.py — Tests for the creator aggregator.

Tests verify:
- Every listed creator of an item is credited, not only the primary one.
- Totals, item counts, mean age and rate per creator.
- Output order is first-encountered creator order.
- Creators whose items all lack timestamps get a mean age of 1.
"""

from conftest import make_raw_mod

from addon_atlas.metrics.creators import aggregate_creators
from addon_atlas.metrics.normalizer import ItemRecord, normalize_catalog


# ── Helpers ───────────────────────────────────────────────────────────────────

def _aggregate(raw_catalog, now):
    items = normalize_catalog(raw_catalog, now=now)
    return items, aggregate_creators(items, now=now)


# ── Tests ─────────────────────────────────────────────────────────────────────

def test_first_encountered_order(raw_catalog, now):
    _, creators = _aggregate(raw_catalog, now)
    assert [c.name for c in creators] == ["Orion", "Slimeist", "Kurisu"]


def test_orion_rollup(raw_catalog, now):
    _, creators = _aggregate(raw_catalog, now)
    orion = creators[0]
    assert orion.download_count == 100
    assert orion.item_count == 2
    assert orion.days_existing == 5.0
    assert orion.download_rate == 20.0


def test_secondary_author_credited(raw_catalog, now):
    _, creators = _aggregate(raw_catalog, now)
    slimeist = next(c for c in creators if c.name == "Slimeist")
    assert slimeist.download_count == 40
    assert slimeist.item_count == 1


def test_future_dated_item_ages_one(raw_catalog, now):
    _, creators = _aggregate(raw_catalog, now)
    kurisu = next(c for c in creators if c.name == "Kurisu")
    assert kurisu.days_existing == 1.0
    assert kurisu.download_rate == 30.0


def test_totals_match_item_sums(raw_catalog, now):
    items, creators = _aggregate(raw_catalog, now)
    for creator in creators:
        expected = sum(i.download_count for i in items if creator.name in i.authors)
        assert creator.download_count == expected


def test_creator_without_timestamps_gets_age_one(now):
    items = normalize_catalog(
        [make_raw_mod(1, "Create A", authors=("nodate",), downloads=9, days_ago=None)],
        now=now,
    )
    (creator,) = aggregate_creators(items, now=now)
    assert creator.days_existing == 1.0
    assert creator.download_rate == 9.0


def test_items_without_authors_contribute_nothing(now):
    items = [ItemRecord(id=1, name="Create A", author=None, authors=[])]
    assert aggregate_creators(items, now=now) == []


def test_to_dict_keys(raw_catalog, now):
    _, creators = _aggregate(raw_catalog, now)
    assert set(creators[0].to_dict()) == {
        "name", "downloadCount", "itemCount", "downloadRate", "daysExisting",
    }


def test_deterministic(raw_catalog, now):
    _, first = _aggregate(raw_catalog, now)
    _, second = _aggregate(raw_catalog, now)
    assert [c.to_dict() for c in first] == [c.to_dict() for c in second]
