"""
addon_atlas.viz — Chart rendering.

Modules:
    chart_presenter — Plotly grouped-bar / pie rendering of a ChartModel.
    dashboard       — Streamlit interactive ranking dashboard.
"""
