"""
addon_atlas/tests/test_session.py — Tests for retrieval caching and view commits.

Tests verify:
- compute_view ranks the whole population before filtering.
- PopulationLoader caches successes; failures are not cached.
- PopulationLoader reads from the serving collaborator when given a base URL.
- ViewSession only commits the latest request; stale completions are dropped,
  whichever order they finish in.
- Commit callbacks fire in commit order, so the last render is the latest view.
"""

import json
import threading

from conftest import StubOpener

from addon_atlas.ranking.session import PopulationLoader, ViewSession, compute_view
from addon_atlas.ranking.state import PopulationKind, ViewMode, ViewState


# ── Helpers ───────────────────────────────────────────────────────────────────

class FakeLoader:
    """Returns fixed populations; optionally blocks on a per-kind event."""

    def __init__(self, populations, gates=None):
        self.populations = populations
        self.gates = gates or {}
        self.calls = []

    def load(self, kind):
        self.calls.append(kind)
        gate = self.gates.get(kind)
        if gate is not None:
            gate.wait(timeout=5)
        return self.populations.get(kind)


# ── compute_view ──────────────────────────────────────────────────────────────

def test_compute_view_ranks_before_filtering(creators_population):
    state = ViewState(population=PopulationKind.CREATORS, search="slime")
    result = compute_view(creators_population, state)
    assert len(result.ranked) == 4
    assert [(e.name, e.rank) for e in result.window] == [("Slimeist", 4)]
    assert result.model.labels == ("#4 Slimeist",)


def test_compute_view_same_inputs_same_output(items_population):
    state = ViewState(sort_key="rate", window=2, mode=ViewMode.SINGLE)
    assert compute_view(items_population, state) == compute_view(items_population, state)


# ── PopulationLoader ──────────────────────────────────────────────────────────

def test_loader_reads_local_snapshots(snapshot_dir):
    loader = PopulationLoader(data_dir=str(snapshot_dir))
    items = loader.load(PopulationKind.ITEMS)
    creators = loader.load(PopulationKind.CREATORS)
    assert items.kind is PopulationKind.ITEMS and len(items) == 3
    assert creators.kind is PopulationKind.CREATORS and len(creators) == 4


def test_loader_caches_success(snapshot_dir):
    loader = PopulationLoader(data_dir=str(snapshot_dir))
    first = loader.load(PopulationKind.ITEMS)
    (snapshot_dir / "items.json").unlink()
    assert loader.load(PopulationKind.ITEMS) is first


def test_loader_invalidate_forces_reload(snapshot_dir):
    loader = PopulationLoader(data_dir=str(snapshot_dir))
    loader.load(PopulationKind.ITEMS)
    (snapshot_dir / "items.json").write_text(json.dumps({"items": []}), encoding="utf-8")
    loader.invalidate(PopulationKind.ITEMS)
    assert len(loader.load(PopulationKind.ITEMS)) == 0


def test_loader_failure_not_cached(tmp_path):
    loader = PopulationLoader(data_dir=str(tmp_path))
    assert loader.load(PopulationKind.ITEMS) is None
    (tmp_path / "items.json").write_text(json.dumps({"items": [{"name": "a"}]}), encoding="utf-8")
    assert len(loader.load(PopulationKind.ITEMS)) == 1


def test_loader_invalid_json_returns_none(tmp_path):
    (tmp_path / "creators.json").write_text("{not json", encoding="utf-8")
    loader = PopulationLoader(data_dir=str(tmp_path))
    assert loader.load(PopulationKind.CREATORS) is None


def test_loader_wrong_shape_returns_none(tmp_path):
    (tmp_path / "items.json").write_text(json.dumps({"creators": []}), encoding="utf-8")
    loader = PopulationLoader(data_dir=str(tmp_path))
    assert loader.load(PopulationKind.ITEMS) is None


def test_loader_fetches_from_base_url(monkeypatch):
    stub = StubOpener([{"generatedAt": "t", "creators": [{"name": "Orion"}]}])
    monkeypatch.setattr("urllib.request.urlopen", stub)
    loader = PopulationLoader(base_url="http://localhost:8000/")
    population = loader.load(PopulationKind.CREATORS)
    assert population.generated_at == "t"
    assert stub.requests[0].full_url == "http://localhost:8000/api/creators.json"


# ── ViewSession ───────────────────────────────────────────────────────────────

def test_refresh_commits(items_population):
    commits = []
    session = ViewSession(FakeLoader({PopulationKind.ITEMS: items_population}),
                          on_commit=commits.append)
    result = session.refresh(ViewState())
    assert result is not None
    assert session.committed is result
    assert commits == [result]


def test_refresh_without_population_commits_none(items_population):
    session = ViewSession(FakeLoader({PopulationKind.ITEMS: items_population}))
    session.refresh(ViewState())
    assert session.refresh(ViewState(population=PopulationKind.CREATORS)) is None
    assert session.committed is None


def test_stale_completion_after_newer_is_discarded(items_population, creators_population):
    session = ViewSession(FakeLoader({}))
    old = session.submit(ViewState())
    new = session.submit(ViewState(population=PopulationKind.CREATORS))
    committed = session.complete(new, creators_population)
    assert session.complete(old, items_population) is None
    assert session.committed is committed
    assert session.committed.state.population is PopulationKind.CREATORS


def test_stale_completion_before_newer_is_discarded(items_population, creators_population):
    session = ViewSession(FakeLoader({}))
    old = session.submit(ViewState())
    new = session.submit(ViewState(population=PopulationKind.CREATORS))
    assert not session.is_current(old)
    assert session.complete(old, items_population) is None
    assert session.committed is None
    assert session.complete(new, creators_population) is not None
    assert session.latest_generation == new.generation


def test_async_slow_request_cannot_overwrite(items_population, creators_population):
    gate = threading.Event()
    loader = FakeLoader(
        {PopulationKind.ITEMS: items_population, PopulationKind.CREATORS: creators_population},
        gates={PopulationKind.ITEMS: gate},
    )
    session = ViewSession(loader)
    slow = session.refresh_async(ViewState())
    fast = session.refresh_async(ViewState(population=PopulationKind.CREATORS))
    assert fast.result(timeout=5) is not None
    gate.set()
    assert slow.result(timeout=5) is None
    assert session.committed.state.population is PopulationKind.CREATORS


def test_callbacks_fire_in_commit_order(items_population, creators_population):
    entered = threading.Event()
    release = threading.Event()
    rendered = []

    def on_commit(result):
        if result.state.population is PopulationKind.ITEMS:
            entered.set()
            release.wait(timeout=5)
        rendered.append(result.state.population)

    session = ViewSession(FakeLoader({}), on_commit=on_commit)
    old = session.submit(ViewState())
    old_thread = threading.Thread(target=session.complete, args=(old, items_population))
    old_thread.start()
    assert entered.wait(timeout=5)

    new = session.submit(ViewState(population=PopulationKind.CREATORS))
    new_thread = threading.Thread(target=session.complete, args=(new, creators_population))
    new_thread.start()
    release.set()
    old_thread.join(timeout=5)
    new_thread.join(timeout=5)

    assert rendered == [PopulationKind.ITEMS, PopulationKind.CREATORS]
    assert session.committed.state.population is PopulationKind.CREATORS
