"""API routes exposing model router telemetry.

The telemetry store is resolved through the ``get_telemetry_store``
dependency so tests and embedding applications can substitute their own
instance with ``app.dependency_overrides``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..llm.telemetry import TelemetryStore, get_default_store
from ..utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


def get_telemetry_store() -> TelemetryStore:
    return get_default_store()


@router.get("/model-router/stats")
async def model_router_stats(store: TelemetryStore = Depends(get_telemetry_store)) -> JSONResponse:
    """Aggregated routing statistics over the most recent calls."""
    try:
        stats = store.routing_stats()
        return JSONResponse(
            {
                "success": True,
                "data": stats.to_wire(),
                "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            }
        )
    except Exception:
        logger.exception("Error fetching routing stats")
        return JSONResponse(
            {"success": False, "error": "Failed to fetch routing statistics"},
            status_code=500,
        )
