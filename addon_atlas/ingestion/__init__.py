"""
addon_atlas.ingestion — Upstream catalog retrieval.

Modules:
    curseforge_client — Paginated CurseForge mod search (stdlib urllib).
"""
