"""
addon_atlas/api/endpoints.py — FastAPI app serving the snapshot files.

The interactive view treats snapshots as opaque JSON payloads fetched by
population identity, so this service returns the files verbatim at fixed
read paths.

Endpoint summary:
    GET  /api/v1/health         — Liveness probe.
    GET  /api/items.json        — Items snapshot, verbatim.
    GET  /api/creators.json     — Creators snapshot, verbatim.
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from addon_atlas import __version__
from addon_atlas.config import DEFAULT_CONFIG, AddonAtlasConfig
from addon_atlas.ranking.state import PopulationKind

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


def create_app(
    data_dir: Optional[str] = None,
    config: AddonAtlasConfig = DEFAULT_CONFIG,
) -> FastAPI:
    """
    Create and return the snapshot-serving FastAPI application.

    Args:
        data_dir: Directory holding the snapshot files (defaults to
                  config.data_dir). Files are re-read on every request, so a
                  batch run that replaces them is picked up immediately.
        config:   AddonAtlasConfig (snapshot filenames).
    """
    data_dir = data_dir or config.data_dir
    filenames = {
        PopulationKind.ITEMS: config.items_filename,
        PopulationKind.CREATORS: config.creators_filename,
    }

    app = FastAPI(
        title="Addon Atlas API",
        version=__version__,
        description="Read-only access to the latest item and creator popularity snapshots.",
    )

    def _serve(kind: PopulationKind) -> Response:
        path = os.path.join(data_dir, filenames[kind])
        try:
            with open(path, "rb") as fh:
                body = fh.read()
        except OSError:
            logger.warning("Snapshot not found: %s", path)
            return JSONResponse(status_code=404, content={"error": "File not found"})
        return Response(content=body, media_type="application/json")

    @app.get("/api/v1/health", response_model=HealthResponse, tags=["system"])
    def health() -> dict:
        """Liveness probe — returns service status and version."""
        return {"status": "ok", "version": __version__}

    @app.get(PopulationKind.ITEMS.api_path, tags=["snapshots"])
    def get_items_snapshot() -> Response:
        """Return the items snapshot verbatim."""
        return _serve(PopulationKind.ITEMS)

    @app.get(PopulationKind.CREATORS.api_path, tags=["snapshots"])
    def get_creators_snapshot() -> Response:
        """Return the creators snapshot verbatim."""
        return _serve(PopulationKind.CREATORS)

    logger.info("Addon Atlas FastAPI application created (data dir: %s).", data_dir)
    return app
