"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before anything imports the settings module.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from app.adapters.store.base import AbstractStore
from app.adapters.store.in_memory import InMemoryStore
from app.core.errors import StoreAppError


class FakeClock:
    """Deterministic clock shared by the store and the components under test."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


def store_down() -> StoreAppError:
    return StoreAppError(
        code="store_unavailable",
        message="Store command failed",
        details={"operation": "test", "error_type": "ConnectionError"},
    )


class FailingStore(AbstractStore):
    """Store whose every command fails as if the server were unreachable."""

    def __init__(self) -> None:
        self.closed = False

    async def zadd_scored(self, key, score, member):
        raise store_down()

    async def zrem_range_by_score(self, key, min_score, max_score):
        raise store_down()

    async def zcard(self, key):
        raise store_down()

    async def zrange_with_scores(self, key, start, stop):
        raise store_down()

    async def expire_after(self, key, milliseconds):
        raise store_down()

    async def get(self, key):
        raise store_down()

    async def set_with_expiry(self, key, ttl_seconds, value):
        raise store_down()

    async def increment(self, key):
        raise store_down()

    async def append_capped(self, name, max_len, fields):
        raise store_down()

    async def read_reverse_range(self, name, start="+", end="-", count=None):
        raise store_down()

    async def list_keys(self, pattern):
        raise store_down()

    async def ping(self):
        raise store_down()

    async def close(self):
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryStore:
    return InMemoryStore(clock=clock)


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def store_error() -> StoreAppError:
    return store_down()
