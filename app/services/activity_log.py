"""Bounded activity log kept in the store's capped stream ``activity:stream``.

Records are flat string maps. The field names (``type``, ``ip``, ``prompt``,
``cached``, ``blocked``, ``timestamp``) match the records already written by
earlier deployments so existing streams stay readable.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from app.adapters.store.base import AbstractStore
from app.core.errors import StoreAppError, ValidationAppError
from app.core.logging import fingerprint
from app.core.outcome import Outcome

logger = logging.getLogger(__name__)

STREAM_KEY = "activity:stream"
DEFAULT_MAX_LEN = 100
DEFAULT_RECENT_COUNT = 20


class ActivityCategory(str, Enum):
    REQUEST = "request"
    CACHE_MISS = "cache_miss"
    CACHE_HIT = "cache_hit"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class ActivityEvent:
    """One entry of the activity log.

    ``id`` and ``timestamp`` are assigned on append and ignored when passed in.
    Optional fields are None when a stored record does not carry them.
    """

    category: ActivityCategory | None
    identity: str
    payload_excerpt: str | None = None
    cached: bool | None = None
    blocked: bool | None = None
    id: str | None = None
    timestamp: int | None = None


def _flag(value: bool | None) -> str:
    return "1" if value else "0"


def _parse_flag(raw: str | None) -> bool | None:
    if raw is None:
        return None
    return raw == "1"


def _parse_category(raw: str | None) -> ActivityCategory | None:
    try:
        return ActivityCategory(raw)
    except ValueError:
        return None


def _parse_timestamp(raw: str | None, entry_id: str) -> int | None:
    """Read the timestamp field, falling back to the ms part of the entry id."""
    for candidate in (raw, entry_id.partition("-")[0]):
        if candidate:
            try:
                return int(candidate)
            except ValueError:
                continue
    return None


def event_from_record(entry_id: str, fields: dict[str, str]) -> ActivityEvent:
    """Rebuild an event from a raw stream record, tolerating missing fields."""
    return ActivityEvent(
        id=entry_id,
        timestamp=_parse_timestamp(fields.get("timestamp"), entry_id),
        category=_parse_category(fields.get("type")),
        identity=fields.get("ip", ""),
        payload_excerpt=fields.get("prompt") or None,
        cached=_parse_flag(fields.get("cached")),
        blocked=_parse_flag(fields.get("blocked")),
    )


class ActivityLog:
    """Capped, append-only event log."""

    def __init__(
        self,
        store: AbstractStore,
        *,
        max_len: int = DEFAULT_MAX_LEN,
        excerpt_chars: int = 50,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the log.

        Args:
            store: Shared store adapter.
            max_len: Approximate number of events retained.
            excerpt_chars: Payload excerpts are cut to this many characters.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If max_len or excerpt_chars are invalid.
        """
        if max_len < 1:
            raise ValueError("max_len must be >= 1")
        if excerpt_chars < 0:
            raise ValueError("excerpt_chars must be >= 0")

        self._store = store
        self._max_len = max_len
        self._excerpt_chars = excerpt_chars
        self._clock = clock

    def _to_record(self, event: ActivityEvent) -> dict[str, str]:
        excerpt = (event.payload_excerpt or "")[: self._excerpt_chars]
        category = event.category.value if event.category else ""
        return {
            "type": category,
            "ip": event.identity,
            "prompt": excerpt,
            "cached": _flag(event.cached),
            "blocked": _flag(event.blocked),
            "timestamp": str(int(self._clock() * 1000)),
        }

    async def append(self, event: ActivityEvent) -> Outcome[str | None]:
        """Append ``event``; never raises on store failure.

        Returns:
            Outcome wrapping the store-assigned entry id, or None when the
            append was dropped.
        """
        try:
            entry_id = await self._store.append_capped(STREAM_KEY, self._max_len, self._to_record(event))
        except StoreAppError as exc:
            logger.warning(
                "activity.append_failed",
                extra={
                    "category": event.category.value if event.category else None,
                    "identity_hash": fingerprint(event.identity),
                    "error_code": exc.code,
                },
            )
            return Outcome.fallback(None, reason=exc.code)
        return Outcome.ok(entry_id)

    async def recent(self, count: int = DEFAULT_RECENT_COUNT) -> Outcome[list[ActivityEvent]]:
        """Return up to ``count`` events, most recent first.

        ``count`` is clamped to the log capacity, so reads never return more
        than the cap even when the store trims with slack.

        Raises:
            ValidationAppError: If ``count`` is not positive.
        """
        if count < 1:
            raise ValidationAppError(
                code="invalid_count",
                message="count must be >= 1",
                details={"field": "count"},
            )

        try:
            rows = await self._store.read_reverse_range(
                STREAM_KEY, "+", "-", count=min(count, self._max_len)
            )
        except StoreAppError as exc:
            logger.warning(
                "activity.read_failed",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
            return Outcome.fallback([], reason=exc.code)

        return Outcome.ok([event_from_record(entry_id, fields) for entry_id, fields in rows])
