from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import get_stats_service
from app.schemas.stats import StatsResponse
from app.services.stats_service import StatsService

router = APIRouter(tags=["Stats"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    service: Annotated[StatsService, Depends(get_stats_service)],
) -> StatsResponse:
    """Dashboard snapshot of limiter, cache and activity state.

    Returns 503 with ``connected: false`` when the store is unreachable.
    """
    return await service.collect()
