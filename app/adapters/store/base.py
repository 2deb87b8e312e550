"""Store interface shared by every store-backed component.

Implementations translate engine-specific failures into
``StoreAppError`` so callers only ever handle one error type.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping

# Stream entry as returned by ``read_reverse_range``: (entry id, field map).
LogEntry = tuple[str, dict[str, str]]


class AbstractStore(ABC):
    """Interface for the key-value engine behind limiter, cache and log."""

    # Sorted sets

    @abstractmethod
    async def zadd_scored(self, key: str, score: float, member: str) -> None:
        """Add ``member`` to the sorted set at ``key`` with ``score``."""
        raise NotImplementedError

    @abstractmethod
    async def zrem_range_by_score(self, key: str, min_score: float, max_score: float) -> int:
        """Remove members whose score lies in ``[min_score, max_score]``.

        Returns:
            Number of removed members.
        """
        raise NotImplementedError

    @abstractmethod
    async def zcard(self, key: str) -> int:
        """Return the number of members in the sorted set (0 if missing)."""
        raise NotImplementedError

    @abstractmethod
    async def zrange_with_scores(self, key: str, start: int, stop: int) -> list[tuple[str, float]]:
        """Return members by ascending score rank, inclusive of ``stop``."""
        raise NotImplementedError

    @abstractmethod
    async def expire_after(self, key: str, milliseconds: int) -> bool:
        """Set a time-to-live on ``key``.

        Returns:
            True if the key existed and the expiry was set.
        """
        raise NotImplementedError

    # Strings

    @abstractmethod
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def set_with_expiry(self, key: str, ttl_seconds: int, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Increment the integer at ``key`` (created at 0) and return it."""
        raise NotImplementedError

    # Capped logs

    @abstractmethod
    async def append_capped(self, name: str, max_len: int, fields: Mapping[str, str]) -> str:
        """Append an entry to the log ``name`` and trim it to about ``max_len``.

        Trimming may leave a bounded number of extra entries behind.

        Returns:
            Store-assigned entry id.
        """
        raise NotImplementedError

    @abstractmethod
    async def read_reverse_range(
        self,
        name: str,
        start: str = "+",
        end: str = "-",
        count: int | None = None,
    ) -> list[LogEntry]:
        """Read entries newest first, from id ``start`` down to id ``end``."""
        raise NotImplementedError

    # Keys and lifecycle

    @abstractmethod
    async def list_keys(self, pattern: str) -> list[str]:
        """Return live keys matching a glob-style ``pattern``."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Return True if the engine answers; raise StoreAppError otherwise."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections held by the adapter."""
        return None
