"""Composition root wiring one store handle into every component.

The store is created once per process (in the application lifespan), shared
by all components and closed at shutdown. Nothing looks it up globally.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.generator.base import AbstractResponseGenerator
from app.adapters.generator.simulated import SimulatedResponseGenerator
from app.adapters.store.base import AbstractStore
from app.core.config import AppSettings
from app.services.activity_log import ActivityLog
from app.services.generation_service import GenerationService
from app.services.rate_limiter import SlidingWindowRateLimiter
from app.services.response_cache import ResponseCache
from app.services.simulation_service import SimulationService
from app.services.stats_service import StatsService


@dataclass
class ServiceContainer:
    store: AbstractStore
    limiter: SlidingWindowRateLimiter
    cache: ResponseCache
    activity: ActivityLog
    generation: GenerationService
    stats: StatsService
    simulation: SimulationService

    async def close(self) -> None:
        await self.store.close()


def build_services(
    store: AbstractStore,
    app_settings: AppSettings,
    *,
    generator: AbstractResponseGenerator | None = None,
    clock: Callable[[], float] = time.time,
) -> ServiceContainer:
    """Construct all components around an existing store handle.

    Args:
        store: Process-wide store adapter.
        app_settings: Limits, TTLs and log sizes.
        generator: Response generator; defaults to the simulated one.
        clock: Time source shared by every component.

    Returns:
        ServiceContainer holding the wired components.
    """
    limiter = SlidingWindowRateLimiter(store, clock=clock)
    cache = ResponseCache(store)
    activity = ActivityLog(
        store,
        max_len=app_settings.activity_max_len,
        excerpt_chars=app_settings.activity_excerpt_chars,
        clock=clock,
    )
    generation = GenerationService(
        limiter=limiter,
        cache=cache,
        activity=activity,
        generator=generator
        or SimulatedResponseGenerator(latency_seconds=app_settings.generator_latency_ms / 1000),
        limit=app_settings.rate_limit_requests,
        window_ms=app_settings.rate_limit_window_ms,
        cache_ttl_seconds=app_settings.cache_ttl_seconds,
        clock=clock,
    )
    stats = StatsService(
        store=store,
        limiter=limiter,
        cache=cache,
        activity=activity,
        recent_count=app_settings.activity_recent_count,
        consumer_sample=app_settings.top_consumers_sample,
        clock=clock,
    )
    simulation = SimulationService(generation, max_requests=app_settings.simulate_max_requests)
    return ServiceContainer(
        store=store,
        limiter=limiter,
        cache=cache,
        activity=activity,
        generation=generation,
        stats=stats,
        simulation=simulation,
    )
