"""Sliding-window admission limiter backed by store sorted sets.

Each identity owns a sorted set ``ratelimit:<identity>`` whose members are
request tokens scored by arrival time in milliseconds. A check purges the
members that fell out of the trailing window, counts the rest, and records a
new member when the request is admitted.

Notes:
- Purge, count and insert are separate store commands, not one atomic step.
  Concurrent checks for the same identity can each see a count below the
  limit, so a burst may over-admit by at most the number of racing callers.
- Store failures fail open: the request is admitted, the outcome is flagged
  as degraded and a warning is logged.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Callable

from app.adapters.store.base import AbstractStore
from app.core.errors import StoreAppError, ValidationAppError
from app.core.logging import fingerprint
from app.core.outcome import Outcome

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit:"
DEFAULT_LIMIT = 10
DEFAULT_WINDOW_MS = 60_000
TOP_CONSUMERS = 5


@dataclass(frozen=True)
class AdmissionResult:
    """Decision for a single admission check.

    Attributes:
        admitted: Whether the request may proceed.
        remaining: Admissions left in the current window (0 when denied).
            Advisory only under concurrent access.
        reset_at: Epoch milliseconds at which capacity frees up again.
    """

    admitted: bool
    remaining: int
    reset_at: int


@dataclass(frozen=True)
class ConsumerCount:
    identity: str
    current_count: int


@dataclass(frozen=True)
class RateLimitStats:
    total_keys: int = 0
    top_consumers: list[ConsumerCount] = field(default_factory=list)


def window_key(identity: str) -> str:
    return f"{KEY_PREFIX}{identity}"


class SlidingWindowRateLimiter:
    """Per-identity sliding-window limiter.

    The limiter keeps no state of its own; every decision is derived from the
    store, so any number of processes can share one store.
    """

    def __init__(
        self,
        store: AbstractStore,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Shared store adapter.
            clock: Time source function returning UNIX time in seconds.
        """
        self._store = store
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def _validate(identity: str, limit: int, window_ms: int) -> None:
        if not identity:
            raise ValidationAppError(
                code="identity_required",
                message="identity must be a non-empty string",
                details={"field": "identity"},
            )
        if limit < 1:
            raise ValidationAppError(
                code="invalid_limit",
                message="limit must be >= 1",
                details={"field": "limit"},
            )
        if window_ms < 1:
            raise ValidationAppError(
                code="invalid_window",
                message="window_ms must be >= 1",
                details={"field": "window_ms"},
            )

    async def check(
        self,
        identity: str,
        limit: int = DEFAULT_LIMIT,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> Outcome[AdmissionResult]:
        """Check and, when allowed, record one request for ``identity``.

        Args:
            identity: Client identity (e.g., IP address).
            limit: Maximum admissions within any trailing window.
            window_ms: Window length in milliseconds.

        Returns:
            Outcome wrapping the admission decision. Degraded outcomes always
            admit with ``remaining == limit``.

        Raises:
            ValidationAppError: If identity is empty or limit/window are not
                positive.
        """
        self._validate(identity, limit, window_ms)

        key = window_key(identity)
        now = self._now_ms()
        window_start = now - window_ms

        try:
            await self._store.zrem_range_by_score(key, float("-inf"), window_start)
            count = await self._store.zcard(key)

            if count >= limit:
                oldest = await self._store.zrange_with_scores(key, 0, 0)
                reset_at = int(oldest[0][1]) + window_ms if oldest else now + window_ms
                logger.info(
                    "rate_limit.denied",
                    extra={
                        "identity_hash": fingerprint(identity),
                        "limit": limit,
                        "count": count,
                        "reset_at": reset_at,
                    },
                )
                return Outcome.ok(AdmissionResult(admitted=False, remaining=0, reset_at=reset_at))

            await self._store.zadd_scored(key, now, f"{now}-{secrets.token_hex(8)}")
            await self._store.expire_after(key, window_ms)
        except StoreAppError as exc:
            logger.warning(
                "rate_limit.fail_open",
                extra={
                    "identity_hash": fingerprint(identity),
                    "error_code": exc.code,
                    "error_message": exc.message,
                },
            )
            return Outcome.fallback(
                AdmissionResult(admitted=True, remaining=limit, reset_at=now + window_ms),
                reason=exc.code,
            )

        remaining = limit - count - 1
        logger.debug(
            "rate_limit.admitted",
            extra={
                "identity_hash": fingerprint(identity),
                "limit": limit,
                "remaining": remaining,
            },
        )
        return Outcome.ok(AdmissionResult(admitted=True, remaining=remaining, reset_at=now + window_ms))

    async def stats(self, sample_limit: int = 10) -> Outcome[RateLimitStats]:
        """Summarize live window collections.

        Only the first ``sample_limit`` keys found are counted, which bounds
        the cost on large key spaces. Counts are raw set sizes and may include
        entries that expired since the identity's last check.

        Args:
            sample_limit: Maximum number of keys inspected.

        Returns:
            Outcome wrapping the total key count and the top 5 consumers by
            count, descending. Ties keep enumeration order, which carries no
            meaning.
        """
        try:
            keys = await self._store.list_keys(f"{KEY_PREFIX}*")
            sampled = [
                ConsumerCount(
                    identity=key[len(KEY_PREFIX):],
                    current_count=await self._store.zcard(key),
                )
                for key in keys[:sample_limit]
            ]
        except StoreAppError as exc:
            logger.warning(
                "rate_limit.stats_failed",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
            return Outcome.fallback(RateLimitStats(), reason=exc.code)

        top = sorted(sampled, key=lambda consumer: consumer.current_count, reverse=True)
        return Outcome.ok(RateLimitStats(total_keys=len(keys), top_consumers=top[:TOP_CONSUMERS]))

    async def top_consumers(self, sample_limit: int = 10) -> Outcome[list[ConsumerCount]]:
        """Return the busiest identities among a sample of window keys."""
        summary = await self.stats(sample_limit)
        return Outcome(
            value=summary.value.top_consumers,
            degraded=summary.degraded,
            reason=summary.reason,
        )
