"""
addon_atlas.ranking — Interactive view pipeline.

Modules:
    state       — PopulationKind, Population, immutable ViewState.
    engine      — Static ranking over a whole population.
    view_filter — Search + window, ranks preserved.
    series      — ChartModel / SeriesDescriptor construction.
    session     — Memoized population loader and generation-gated commits.

Order is fixed: rank (whole population) → filter → series → present.
"""
