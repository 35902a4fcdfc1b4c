"""
addon_atlas.metrics — Batch-side popularity metrics.

Modules:
    normalizer — Filter raw catalog entries and project them to ItemRecords.
    creators   — Roll ItemRecords up into per-creator CreatorSummaries.

All ages are clamped to >= 1 day; all rates are total / age, 2 dp.
"""
