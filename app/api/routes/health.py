from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import get_stats_service
from app.services.stats_service import StatsService

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    service: Annotated[StatsService, Depends(get_stats_service)],
) -> dict:
    """Health check endpoint.

    The API keeps serving while the store is down (admission fails open and
    the cache misses), so an unreachable store reports "degraded" rather
    than failing the check.

    Returns:
        dict: ``status`` ("ok" or "degraded") and ``store`` reachability.
    """

    connected = await service.is_connected()
    return {"status": "ok" if connected else "degraded", "store": connected}
