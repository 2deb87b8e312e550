from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends

from app.api.dependencies import get_simulation_service
from app.schemas.simulate import SimulateRequest, SimulateResponse
from app.services.simulation_service import SimulationService

router = APIRouter(tags=["Simulate"])


@router.post("/simulate", response_model=SimulateResponse)
async def simulate(
    service: Annotated[SimulationService, Depends(get_simulation_service)],
    body: Annotated[SimulateRequest | None, Body()] = None,
) -> SimulateResponse:
    """Fire a burst of generate calls to demonstrate caching and throttling.

    Args:
        service: Burst simulator.
        body: Optional request body; ``count`` defaults to 50.

    Returns:
        SimulateResponse: Totals and the first 50 individual outcomes.
    """
    return await service.run((body or SimulateRequest()).count)
