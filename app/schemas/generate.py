"""Pydantic schemas for the generation endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Prompt submitted for generation."""

    prompt: str = Field(
        ...,
        min_length=1,
        description="Prompt text. Identical prompts are served from cache.",
    )


class RateLimitInfo(BaseModel):
    """Admission budget left for the calling client."""

    remaining: int = Field(..., ge=0, description="Requests left in the current window.")
    reset_at: int = Field(..., description="Epoch milliseconds when capacity frees up.")


class GenerateResponse(BaseModel):
    """Generated (or cached) response for a prompt."""

    response: str = Field(..., description="Generated text.")
    cached: bool = Field(..., description="True when the response came from cache.")
    rate_limit: RateLimitInfo
