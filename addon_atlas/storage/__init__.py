"""
addon_atlas.storage — Flat JSON snapshot persistence.

Modules:
    snapshots — Write the items/creators snapshot pair all-or-nothing.
"""
