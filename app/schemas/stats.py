"""Pydantic schemas for the dashboard statistics endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.services.activity_log import ActivityCategory


class ConsumerOut(BaseModel):
    identity: str
    current_count: int = Field(..., ge=0)


class RateLimitStatsOut(BaseModel):
    """Limiter view: live window keys and the busiest clients."""

    total_keys: int = Field(..., ge=0, description="Number of live rate limit keys.")
    top_consumers: list[ConsumerOut] = Field(default_factory=list)
    blocked_requests: int = Field(
        ..., ge=0, description="Blocked events among the recent activity."
    )
    requests_per_minute: int = Field(
        ..., ge=0, description="Request events in the recent activity newer than one minute."
    )


class CacheStatsOut(BaseModel):
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    hit_ratio: float = Field(..., ge=0, le=100, description="Hit percentage (0-100).")
    cached_key_count: int = Field(..., ge=0)


class ActivityEventOut(BaseModel):
    id: str
    timestamp: int | None = None
    category: ActivityCategory | None = None
    identity: str
    payload_excerpt: str | None = None
    cached: bool | None = None
    blocked: bool | None = None


class KeyDistribution(BaseModel):
    """Number of store keys per namespace."""

    rate_limit: int = 0
    cache: int = 0
    stats: int = 0
    activity: int = 0


class StatsResponse(BaseModel):
    """Everything the dashboard renders in one payload."""

    connected: bool = True
    timestamp: int = Field(..., description="Epoch milliseconds when stats were collected.")
    degraded: bool = Field(
        False, description="True when some section fell back to empty values."
    )
    rate_limit: RateLimitStatsOut
    cache: CacheStatsOut
    activity: list[ActivityEventOut] = Field(default_factory=list)
    key_distribution: KeyDistribution
    total_keys: int = Field(..., ge=0)
