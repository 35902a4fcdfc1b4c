"""
addon_atlas/viz/dashboard.py — Streamlit dashboard for Addon Atlas.

Interactive ranking view over the two snapshots:

    - population switch (items / creators)
    - sort buttons (selecting the active key again flips direction)
    - search box and window size
    - grouped-bars / pie toggle

Every control change replaces the ViewState held in st.session_state and
triggers a full recomputation through ViewSession.refresh(). The snapshot
retrieval is memoized per population by the PopulationLoader kept in the
session.

Usage:
    streamlit run addon_atlas/viz/dashboard.py
    ADDON_ATLAS_API_URL=http://localhost:8000 streamlit run addon_atlas/viz/dashboard.py
"""

import logging
import os
from typing import Optional

import pandas as pd
import streamlit as st

from addon_atlas.config import DEFAULT_CONFIG
from addon_atlas.ranking.session import PopulationLoader, ViewResult, ViewSession
from addon_atlas.ranking.state import (
    SORT_KEYS_BY_KIND,
    PopulationKind,
    SortDirection,
    ViewMode,
    ViewState,
)
from addon_atlas.viz.chart_presenter import ChartPresenter

logger = logging.getLogger(__name__)

_SORT_LABELS = {
    "downloads": "Downloads",
    "rate": "Download Rate",
    "items": "Items",
    "name": "Name",
    "age": "Age",
}


def _session_objects() -> tuple[ViewSession, ChartPresenter]:
    """Create the per-browser-session loader, view session and presenter once."""
    if "view_session" not in st.session_state:
        loader = PopulationLoader(
            base_url=os.environ.get("ADDON_ATLAS_API_URL"),
            data_dir=os.environ.get("ADDON_ATLAS_DATA_DIR", DEFAULT_CONFIG.data_dir),
        )
        st.session_state.view_session = ViewSession(loader)
        st.session_state.presenter = ChartPresenter()
        st.session_state.view_state = ViewState(
            sort_key=DEFAULT_CONFIG.default_sort_key,
            window=DEFAULT_CONFIG.default_window,
        )
    return st.session_state.view_session, st.session_state.presenter


def _set_state(state: ViewState) -> None:
    st.session_state.view_state = state


def _render_controls(state: ViewState) -> ViewState:
    """Render sidebar + sort bar; return the (possibly new) ViewState."""
    kind_label = st.sidebar.radio(
        "Ranking",
        ["Items", "Creators"],
        index=0 if state.population is PopulationKind.ITEMS else 1,
    )
    kind = PopulationKind.ITEMS if kind_label == "Items" else PopulationKind.CREATORS
    if kind is not state.population:
        state = state.with_population(kind)

    search = st.sidebar.text_input("Search", value=state.search)
    if search != state.search:
        state = state.with_search(search)

    window = st.sidebar.number_input("Max entries", min_value=1, value=state.window, step=1)
    if int(window) != state.window:
        state = state.with_window(window)

    toggle_label = "Bar Chart" if state.mode is ViewMode.SINGLE else "Pie Chart"
    if st.sidebar.button(toggle_label):
        state = state.toggle_mode()

    keys = SORT_KEYS_BY_KIND[state.population]
    cols = st.columns(len(keys))
    for col, key in zip(cols, keys):
        indicator = ""
        if key == state.sort_key:
            indicator = " ▼" if state.direction is SortDirection.DESC else " ▲"
        if col.button(f"{_SORT_LABELS.get(key, key)}{indicator}", key=f"sort-{key}"):
            state = state.with_sort(key)
    return state


def _render_table(result: ViewResult) -> None:
    rows = [
        {"Rank": e.rank, **{k: v for k, v in e.record.items() if k != "authors"}}
        for e in result.window
    ]
    if rows:
        with st.expander("Table"):
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def run_dashboard() -> None:
    """Launch the Addon Atlas Streamlit dashboard."""
    st.set_page_config(page_title="Addon Atlas — Popularity Rankings", layout="wide")
    st.title("Addon Atlas — Popularity Rankings")

    session, presenter = _session_objects()
    previous: ViewState = st.session_state.view_state
    state = _render_controls(previous)
    if state != previous:
        _set_state(state)
        st.rerun()

    result: Optional[ViewResult] = session.refresh(state)
    if result is not None and result.generated_at:
        st.caption(f"Data generated: {result.generated_at}")

    if result is None:
        st.error("Failed to load chart data.")
        st.plotly_chart(presenter.render(None, state), use_container_width=True)
        return

    fig = presenter.render(result.model, state)
    st.plotly_chart(fig, use_container_width=state.mode is ViewMode.GROUPED)
    _render_table(result)


if __name__ == "__main__":
    # When run via `streamlit run dashboard.py`.
    run_dashboard()
