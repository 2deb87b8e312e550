"""Factory pattern for creating store adapter instances."""

from __future__ import annotations

from app.adapters.store.base import AbstractStore
from app.adapters.store.in_memory import InMemoryStore
from app.adapters.store.redis_store import RedisStore
from app.core.config import StoreSettings, settings
from app.core.errors import ValidationAppError


def create_store(store_settings: StoreSettings | None = None) -> AbstractStore:
    """Instantiate the store adapter selected by configuration.

    Args:
        store_settings: Optional store settings; defaults to global settings.

    Returns:
        AbstractStore: Configured store adapter. Nothing is connected yet;
            the Redis client connects lazily on the first command.

    Raises:
        ValidationAppError: If the configured backend is unknown. Settings
            loaded from the environment are validated already; this guards
            settings built with ``model_construct`` or mutated after load.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.lower()

    if backend == "redis":
        return RedisStore.from_settings(cfg)

    if backend == "memory":
        return InMemoryStore()

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: redis, memory",
    )
