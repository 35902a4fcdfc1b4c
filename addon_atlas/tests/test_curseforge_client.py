"""
addon_atlas/tests/test_curseforge_client.py — Tests for the CurseForge catalog client.

Tests verify:
- Search URL carries gameId, searchFilter, index and pageSize.
- Paging advances by page size until totalCount, an empty page, or the cap.
- The API key is sent as x-api-key only when configured.
- HTTP, network and decode failures raise CatalogFetchError.
"""

import urllib.error
from urllib.parse import parse_qs, urlparse

import pytest

from conftest import StubOpener

from addon_atlas.config import AddonAtlasConfig
from addon_atlas.ingestion.curseforge_client import (
    CURSEFORGE_USER_AGENT,
    CatalogFetchError,
    CurseForgeClient,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

FAST = AddonAtlasConfig(request_interval_seconds=0.0, page_size=2)


def page(ids, total):
    return {
        "data": [{"id": i, "name": f"Create {i}"} for i in ids],
        "pagination": {"index": 0, "pageSize": 2, "resultCount": len(ids), "totalCount": total},
    }


def _query(req):
    return {k: v[0] for k, v in parse_qs(urlparse(req.full_url).query).items()}


# ── URL and headers ───────────────────────────────────────────────────────────

def test_build_url_parameters():
    client = CurseForgeClient(config=AddonAtlasConfig())
    query = parse_qs(urlparse(client.build_url(100)).query)
    assert query == {
        "gameId": ["432"], "searchFilter": ["create"],
        "index": ["100"], "pageSize": ["50"],
    }


def test_api_key_header_sent():
    stub = StubOpener([page([1], 1)])
    CurseForgeClient(api_key="secret", config=FAST, opener=stub).fetch_all()
    req = stub.requests[0]
    assert req.get_header("X-api-key") == "secret"
    assert req.get_header("User-agent") == CURSEFORGE_USER_AGENT


def test_no_api_key_header_without_key():
    stub = StubOpener([page([1], 1)])
    CurseForgeClient(config=FAST, opener=stub).fetch_all()
    assert stub.requests[0].get_header("X-api-key") is None


# ── Paging ────────────────────────────────────────────────────────────────────

def test_fetches_until_total_count():
    stub = StubOpener([page([1, 2], 5), page([3, 4], 5), page([5], 5)])
    entries = CurseForgeClient(config=FAST, opener=stub).fetch_all()
    assert [e["id"] for e in entries] == [1, 2, 3, 4, 5]
    assert [_query(r)["index"] for r in stub.requests] == ["0", "2", "4"]


def test_stops_on_empty_page():
    stub = StubOpener([page([1, 2], 10), page([], 10)])
    entries = CurseForgeClient(config=FAST, opener=stub).fetch_all()
    assert [e["id"] for e in entries] == [1, 2]
    assert len(stub.requests) == 2


def test_respects_max_results():
    config = AddonAtlasConfig(request_interval_seconds=0.0, page_size=2, max_results=3)
    stub = StubOpener([page([1, 2], 50), page([3, 4], 50)])
    entries = CurseForgeClient(config=config, opener=stub).fetch_all()
    assert [e["id"] for e in entries] == [1, 2, 3]
    assert len(stub.requests) == 2


def test_zero_total_stops_after_first_page():
    stub = StubOpener([page([], 0)])
    assert CurseForgeClient(config=FAST, opener=stub).fetch_all() == []


# ── Failures ──────────────────────────────────────────────────────────────────

def test_http_error_raises():
    err = urllib.error.HTTPError("http://x", 403, "Forbidden", {}, None)
    stub = StubOpener([page([1, 2], 4), err])
    with pytest.raises(CatalogFetchError, match="403"):
        CurseForgeClient(config=FAST, opener=stub).fetch_all()


def test_network_error_raises():
    stub = StubOpener([urllib.error.URLError("connection refused")])
    with pytest.raises(CatalogFetchError):
        CurseForgeClient(config=FAST, opener=stub).fetch_all()


def test_invalid_json_raises():
    stub = StubOpener([b"<html>oops</html>"])
    with pytest.raises(CatalogFetchError):
        CurseForgeClient(config=FAST, opener=stub).fetch_all()


def test_unexpected_shape_raises():
    stub = StubOpener([{"error": "nope"}])
    with pytest.raises(CatalogFetchError):
        CurseForgeClient(config=FAST, opener=stub).search_page(0)
