"""Generation flow composing the limiter, the cache and the activity log.

For one request:
1. Admission check for the client identity; a rejection is logged to the
   activity log and raised as ``RateLimitExceededError``.
2. Cache lookup for the prompt; on a miss the response is generated and
   written back (cache-aside).
3. Activity events for the cache outcome and for the request itself.

The primitives degrade instead of raising, so a store outage turns into
"admit, miss, regenerate, drop the events" rather than an error.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.generator.base import AbstractResponseGenerator
from app.core.errors import RateLimitExceededError, ValidationAppError
from app.core.logging import fingerprint
from app.services.activity_log import ActivityCategory, ActivityEvent, ActivityLog
from app.services.rate_limiter import AdmissionResult, SlidingWindowRateLimiter
from app.services.response_cache import ResponseCache


@dataclass(frozen=True)
class GenerationResult:
    """Response text plus the admission data the HTTP layer exposes."""

    response: str
    cached: bool
    admission: AdmissionResult
    limit: int
    degraded: bool = False


class GenerationService:
    """Per-request orchestration around the expensive generation call.

    Attributes:
        limit: Admissions per window and identity.
        window_ms: Sliding window length in milliseconds.
        cache_ttl_seconds: TTL applied to freshly generated responses.
    """

    def __init__(
        self,
        *,
        limiter: SlidingWindowRateLimiter,
        cache: ResponseCache,
        activity: ActivityLog,
        generator: AbstractResponseGenerator,
        limit: int = 10,
        window_ms: int = 60_000,
        cache_ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limiter = limiter
        self.cache = cache
        self.activity = activity
        self.generator = generator
        self.limit = limit
        self.window_ms = window_ms
        self.cache_ttl_seconds = cache_ttl_seconds
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def _retry_after_seconds(self, reset_at: int) -> int:
        return max(0, math.ceil((reset_at - self._clock() * 1000) / 1000))

    async def _reject(self, identity: str, prompt: str, admission: AdmissionResult) -> None:
        await self.activity.append(
            ActivityEvent(
                category=ActivityCategory.RATE_LIMITED,
                identity=identity,
                payload_excerpt=prompt,
                blocked=True,
            )
        )
        retry_after = self._retry_after_seconds(admission.reset_at)
        self._logger.warning(
            "generate.rate_limited",
            extra={
                "identity_hash": fingerprint(identity),
                "limit": self.limit,
                "retry_after_s": retry_after,
            },
        )
        raise RateLimitExceededError(
            code="rate_limit_exceeded",
            message="Rate limit exceeded. Try again later.",
            details={
                "limit": self.limit,
                "remaining": admission.remaining,
                "reset_at": admission.reset_at,
                "retry_after": retry_after,
            },
        )

    async def generate(self, identity: str, prompt: str) -> GenerationResult:
        """Serve one prompt for one client.

        Args:
            identity: Client identity used for admission control.
            prompt: Prompt text; also the cache payload.

        Returns:
            GenerationResult with the response and the admission snapshot.

        Raises:
            ValidationAppError: If the prompt is empty.
            RateLimitExceededError: If the client exhausted its window budget.
        """
        if not prompt or not prompt.strip():
            raise ValidationAppError(
                code="prompt_required",
                message="Prompt is required",
                details={"field": "prompt"},
            )

        admission = await self.limiter.check(identity, self.limit, self.window_ms)
        if not admission.value.admitted:
            await self._reject(identity, prompt, admission.value)

        lookup = await self.cache.lookup(prompt)
        response = lookup.value
        from_cache = response is not None
        degraded = admission.degraded or lookup.degraded

        if response is None:
            response = await self.generator.generate(prompt)
            written = await self.cache.store(prompt, response, self.cache_ttl_seconds)
            degraded = degraded or written.degraded
            category = ActivityCategory.CACHE_MISS
        else:
            category = ActivityCategory.CACHE_HIT

        await self.activity.append(
            ActivityEvent(category=category, identity=identity, payload_excerpt=prompt, cached=from_cache)
        )
        await self.activity.append(
            ActivityEvent(
                category=ActivityCategory.REQUEST,
                identity=identity,
                payload_excerpt=prompt,
                cached=from_cache,
            )
        )

        self._logger.info(
            "generate.completed",
            extra={
                "identity_hash": fingerprint(identity),
                "cached": from_cache,
                "remaining": admission.value.remaining,
                "degraded": degraded,
            },
        )
        return GenerationResult(
            response=response,
            cached=from_cache,
            admission=admission.value,
            limit=self.limit,
            degraded=degraded,
        )
