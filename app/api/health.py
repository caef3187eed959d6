"""Health check endpoints.

Provides:
- `/health`: service status including database connectivity
- `/live`: liveness probe that touches nothing
"""

import time
from typing import Any, Dict

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.core.db_client import db
from app.core.logging import get_logger
from app.models.schemas import HealthResponse

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={500: {"model": HealthResponse}},
)
async def health_check():
    """
    Health check endpoint with database connectivity verification.

    Returns 200 with status "ok" if healthy, 500 with status "error" otherwise.
    """
    try:
        if not await db.test_connection(timeout=5.0):
            raise RuntimeError("Database unavailable")

        return HealthResponse(
            status="ok", message="All systems operational (database connected)"
        )

    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "message": str(e)},
        )


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    """Liveness probe endpoint for Kubernetes."""
    return {"alive": True, "timestamp": time.time()}
