"""Result wrapper returned by the store-backed primitives.

Limiter, cache and activity log never let store failures escape; instead they
return the documented fallback value with ``degraded`` set so callers and
tests can tell "legitimately empty" apart from "store is down".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Value produced by an operation plus its degradation status.

    Attributes:
        value: Result of the operation, or the fallback when degraded.
        degraded: True when the fallback policy was applied.
        reason: Machine-readable code of the failure behind a degraded result.
    """

    value: T
    degraded: bool = False
    reason: str | None = None

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, reason: str) -> "Outcome[T]":
        return cls(value=value, degraded=True, reason=reason)
