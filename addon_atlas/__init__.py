"""
addon_atlas — Popularity rankings for a community add-on catalog.

Offline, a batch run pulls the CurseForge catalog, keeps the Create add-on
population, and writes two flat snapshots: per-item and per-creator
popularity. Interactively, either snapshot is ranked, searched, windowed and
rendered as a grouped bar chart or a single-series pie chart.

Subpackages:
- addon_atlas.ingestion  — paginated catalog retrieval
- addon_atlas.metrics    — catalog normalizer and creator aggregator
- addon_atlas.storage    — all-or-nothing snapshot persistence
- addon_atlas.ranking    — view state, ranking engine, view filter, series builder
- addon_atlas.viz        — plotly chart presenter and Streamlit dashboard
- addon_atlas.api        — FastAPI snapshot server
- addon_atlas.reports    — creator leaderboard notifier
"""

__version__ = "0.1.0"
