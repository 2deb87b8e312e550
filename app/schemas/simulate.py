"""Pydantic schemas for the burst simulation endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SimulateRequest(BaseModel):
    count: int = Field(
        50,
        ge=1,
        description="Number of requests to fire (capped by configuration).",
    )


class SimulatedCall(BaseModel):
    """Outcome of one simulated generate call."""

    success: bool
    status: int = Field(..., description="HTTP status the call would have returned.")
    cached: bool = False
    blocked: bool = False
    identity: str
    prompt: str = Field(..., description="First 30 characters of the prompt.")
    error: str | None = None


class SimulationSummary(BaseModel):
    total: int
    successful: int
    blocked: int
    cached: int
    failed: int


class SimulateResponse(BaseModel):
    summary: SimulationSummary
    results: list[SimulatedCall] = Field(
        default_factory=list,
        description="The first 50 individual call outcomes.",
    )
