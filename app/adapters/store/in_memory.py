"""In-process store adapter mirroring the Redis command semantics we rely on.

Notes:
- Per-process only: running multiple workers gives each its own state.
- Thread-safe: uses a lock around shared state.
- Expiry is lazy: an expired key is dropped the next time it is touched.
- Capped logs are trimmed exactly (no slack).
"""

from __future__ import annotations

import fnmatch
import math
import threading
import time
from typing import Callable, Mapping

from app.adapters.store.base import AbstractStore, LogEntry
from app.core.errors import StoreAppError

_LogId = tuple[int, int]


def _parse_log_id(raw: str, *, upper: bool) -> _LogId:
    """Parse a stream id bound (``+``, ``-``, ``<ms>`` or ``<ms>-<seq>``)."""
    if raw == "+":
        return (math.inf, math.inf)  # type: ignore[return-value]
    if raw == "-":
        return (-1, -1)
    ms, _, seq = raw.partition("-")
    if seq:
        return (int(ms), int(seq))
    return (int(ms), math.inf if upper else 0)  # type: ignore[return-value]


class InMemoryStore(AbstractStore):
    """Dictionary-backed store with lazy TTL expiry.

    Keys live in one namespace across types, the way they do in Redis, but
    type clashes are not detected.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize an empty store.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._strings: dict[str, str] = {}
        self._zsets: dict[str, dict[str, float]] = {}
        self._logs: dict[str, list[tuple[_LogId, dict[str, str]]]] = {}
        self._last_log_id: dict[str, _LogId] = {}
        self._expires_at: dict[str, float] = {}

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _drop(self, key: str) -> None:
        self._strings.pop(key, None)
        self._zsets.pop(key, None)
        self._logs.pop(key, None)
        self._expires_at.pop(key, None)

    def _expire_if_due(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._drop(key)

    def _exists(self, key: str) -> bool:
        self._expire_if_due(key)
        return key in self._strings or key in self._zsets or key in self._logs

    # Sorted sets

    async def zadd_scored(self, key: str, score: float, member: str) -> None:
        with self._lock:
            self._expire_if_due(key)
            self._zsets.setdefault(key, {})[member] = float(score)

    async def zrem_range_by_score(self, key: str, min_score: float, max_score: float) -> int:
        with self._lock:
            self._expire_if_due(key)
            members = self._zsets.get(key)
            if not members:
                return 0
            doomed = [m for m, s in members.items() if min_score <= s <= max_score]
            for member in doomed:
                del members[member]
            if not members:
                self._drop(key)
            return len(doomed)

    async def zcard(self, key: str) -> int:
        with self._lock:
            self._expire_if_due(key)
            return len(self._zsets.get(key, {}))

    async def zrange_with_scores(self, key: str, start: int, stop: int) -> list[tuple[str, float]]:
        with self._lock:
            self._expire_if_due(key)
            ordered = sorted(self._zsets.get(key, {}).items(), key=lambda item: (item[1], item[0]))
            size = len(ordered)
            if start < 0:
                start = max(size + start, 0)
            if stop < 0:
                stop = size + stop
            if start > stop or start >= size:
                return []
            return ordered[start : stop + 1]

    async def expire_after(self, key: str, milliseconds: int) -> bool:
        with self._lock:
            if not self._exists(key):
                return False
            self._expires_at[key] = self._clock() + milliseconds / 1000
            return True

    # Strings

    async def get(self, key: str) -> str | None:
        with self._lock:
            self._expire_if_due(key)
            return self._strings.get(key)

    async def set_with_expiry(self, key: str, ttl_seconds: int, value: str) -> None:
        with self._lock:
            self._drop(key)
            self._strings[key] = value
            self._expires_at[key] = self._clock() + ttl_seconds

    async def increment(self, key: str) -> int:
        with self._lock:
            self._expire_if_due(key)
            raw = self._strings.get(key, "0")
            try:
                value = int(raw) + 1
            except ValueError as exc:
                raise StoreAppError(
                    code="store_wrong_type",
                    message=f"Value at '{key}' is not an integer",
                    details={"operation": "incr", "error_type": type(exc).__name__},
                ) from exc
            self._strings[key] = str(value)
            return value

    # Capped logs

    def _next_log_id(self, name: str) -> _LogId:
        now_ms = self._now_ms()
        last_ms, last_seq = self._last_log_id.get(name, (-1, -1))
        log_id = (last_ms, last_seq + 1) if now_ms <= last_ms else (now_ms, 0)
        self._last_log_id[name] = log_id
        return log_id

    async def append_capped(self, name: str, max_len: int, fields: Mapping[str, str]) -> str:
        with self._lock:
            self._expire_if_due(name)
            log_id = self._next_log_id(name)
            entries = self._logs.setdefault(name, [])
            entries.append((log_id, dict(fields)))
            if len(entries) > max_len:
                del entries[: len(entries) - max_len]
            return f"{log_id[0]}-{log_id[1]}"

    async def read_reverse_range(
        self,
        name: str,
        start: str = "+",
        end: str = "-",
        count: int | None = None,
    ) -> list[LogEntry]:
        upper = _parse_log_id(start, upper=True)
        lower = _parse_log_id(end, upper=False)
        with self._lock:
            self._expire_if_due(name)
            rows: list[LogEntry] = []
            for log_id, fields in reversed(self._logs.get(name, [])):
                if not lower <= log_id <= upper:
                    continue
                rows.append((f"{log_id[0]}-{log_id[1]}", dict(fields)))
                if count is not None and len(rows) >= count:
                    break
            return rows

    # Keys and lifecycle

    async def list_keys(self, pattern: str) -> list[str]:
        with self._lock:
            keys = [*self._strings, *self._zsets, *self._logs]
            return [key for key in keys if self._exists(key) and fnmatch.fnmatchcase(key, pattern)]

    async def ping(self) -> bool:
        return True
