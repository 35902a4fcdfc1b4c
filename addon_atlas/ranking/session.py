"""
addon_atlas/ranking/session.py — Population retrieval and view recomputation.

Provides:
    - compute_view():     full recomputation rank → filter → series for one
                          ViewState. There is no incremental patch path.
    - PopulationLoader:   retrieves a snapshot by PopulationKind from the
                          serving collaborator (HTTP) or a local directory.
                          Successful retrievals are cached for the session;
                          failures are logged, not cached, and retried on the
                          next request.
    - ViewSession:        request-generation gate. Each submitted ViewState
                          gets a ticket; only the completion carrying the
                          latest ticket may commit, so a slow retrieval can
                          never overwrite a fresher view.
"""

import json
import logging
import os
import threading
import urllib.error
import urllib.request
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from addon_atlas.config import DEFAULT_CONFIG, AddonAtlasConfig
from addon_atlas.ranking.engine import RankedEntry, rank_population
from addon_atlas.ranking.series import ChartModel, build_chart_model
from addon_atlas.ranking.state import (
    Population,
    PopulationKind,
    ViewState,
    parse_population,
)
from addon_atlas.ranking.view_filter import filter_view

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewResult:
    """
    One fully recomputed view.

    Fields:
        state:   The ViewState this result was computed for.
        ranked:  Whole population with static ranks.
        window:  Filtered, windowed entries.
        model:   ChartModel aligned with `window`.
        generated_at: Snapshot generation timestamp.
    """

    state: ViewState
    ranked: tuple
    window: tuple
    model: ChartModel
    generated_at: Optional[str] = None


def compute_view(population: Population, state: ViewState) -> ViewResult:
    """Rank the whole population, then filter and window, then build series."""
    ranked: list[RankedEntry] = rank_population(
        population.records, state.sort_key, state.direction
    )
    window = filter_view(ranked, state.search, state.window)
    model = build_chart_model(window, population.kind)
    return ViewResult(
        state=state,
        ranked=tuple(ranked),
        window=tuple(window),
        model=model,
        generated_at=population.generated_at,
    )


class PopulationLoader:
    """
    Memoized snapshot retrieval keyed by PopulationKind.

    Exactly one of `base_url` (serving collaborator, e.g.
    "http://localhost:8000") or `data_dir` (local snapshot directory) is used;
    `base_url` wins when both are given.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        data_dir: Optional[str] = None,
        config: AddonAtlasConfig = DEFAULT_CONFIG,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._data_dir = data_dir or config.data_dir
        self._config = config
        self._cache: dict[PopulationKind, Population] = {}
        self._lock = threading.Lock()

    def _read_payload(self, kind: PopulationKind) -> object:
        if self._base_url:
            url = f"{self._base_url}{kind.api_path}"
            req = urllib.request.Request(url, headers={"Accept": "application/json"})
            with urllib.request.urlopen(req, timeout=self._config.request_timeout_seconds) as resp:
                return json.loads(resp.read())

        filename = (
            self._config.items_filename
            if kind is PopulationKind.ITEMS
            else self._config.creators_filename
        )
        with open(os.path.join(self._data_dir, filename), encoding="utf-8") as fh:
            return json.load(fh)

    def load(self, kind: PopulationKind) -> Optional[Population]:
        """
        Return the Population for `kind`, or None if it is unavailable.

        Failures (network, missing file, invalid JSON, unrecognized shape)
        are logged and not cached.
        """
        with self._lock:
            cached = self._cache.get(kind)
        if cached is not None:
            return cached

        try:
            payload = self._read_payload(kind)
        except (OSError, urllib.error.URLError, ValueError) as exc:
            logger.warning("Failed to load %s snapshot: %s", kind.value, exc)
            return None

        population = parse_population(payload, expected=kind)
        if population is None:
            return None

        with self._lock:
            self._cache[kind] = population
        return population

    def invalidate(self, kind: Optional[PopulationKind] = None) -> None:
        """Drop one (or every) cached population."""
        with self._lock:
            if kind is None:
                self._cache.clear()
            else:
                self._cache.pop(kind, None)


@dataclass(frozen=True)
class Ticket:
    """Identifies one submitted view request."""

    generation: int
    state: ViewState


class ViewSession:
    """
    Holds the committed view and gates commits by request generation.

    Usage:
        session = ViewSession(loader)
        result = session.refresh(state)            # synchronous
        future = session.refresh_async(state)      # background retrieval

    `committed` is the last accepted ViewResult (None until the first
    successful view, and reset to None when the latest request found no
    usable population).
    """

    def __init__(
        self,
        loader: PopulationLoader,
        on_commit: Optional[Callable[[Optional[ViewResult]], None]] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._loader = loader
        self._on_commit = on_commit
        self._executor = executor
        self._generation = 0
        self._lock = threading.Lock()
        # Serializes gate check + on_commit so callbacks fire in commit order.
        self._commit_lock = threading.RLock()
        self.committed: Optional[ViewResult] = None

    @property
    def latest_generation(self) -> int:
        return self._generation

    def submit(self, state: ViewState) -> Ticket:
        """Issue a new ticket; any earlier outstanding ticket becomes stale."""
        with self._lock:
            self._generation += 1
            return Ticket(generation=self._generation, state=state)

    def is_current(self, ticket: Ticket) -> bool:
        return ticket.generation == self._generation

    def complete(
        self,
        ticket: Ticket,
        population: Optional[Population],
    ) -> Optional[ViewResult]:
        """
        Finish a request with its retrieved population.

        Returns the committed ViewResult, or None when the ticket is stale or
        no usable population was retrieved.
        """
        result = compute_view(population, ticket.state) if population is not None else None
        with self._commit_lock:
            with self._lock:
                if ticket.generation != self._generation:
                    logger.debug(
                        "Discarding stale view (generation %d, latest %d).",
                        ticket.generation, self._generation,
                    )
                    return None
                self.committed = result
            if self._on_commit is not None:
                self._on_commit(result)
        return result

    def refresh(self, state: ViewState) -> Optional[ViewResult]:
        """Submit, retrieve and complete synchronously."""
        ticket = self.submit(state)
        population = self._loader.load(state.population)
        return self.complete(ticket, population)

    def refresh_async(self, state: ViewState) -> Future:
        """Submit now; retrieve and complete on the executor."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=2)
        ticket = self.submit(state)

        def _run() -> Optional[ViewResult]:
            population = self._loader.load(state.population)
            return self.complete(ticket, population)

        return self._executor.submit(_run)
