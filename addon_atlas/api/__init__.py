"""
addon_atlas.api — FastAPI snapshot server.

Modules:
    endpoints — create_app(): serves items.json / creators.json verbatim.
"""
