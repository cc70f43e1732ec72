"""
Store connection management.
Creates the configured sorted-set store and holds the process-wide instance.
"""

import logging

from readyq.config import Settings, get_settings
from readyq.constants import StoreBackend
from readyq.exceptions import ConfigurationError
from readyq.store.base import SortedSetStore
from readyq.store.memory import InMemorySortedSetStore
from readyq.store.redis import RedisSortedSetStore

logger = logging.getLogger(__name__)

# Global store instance
_store: SortedSetStore | None = None


def create_store(settings: Settings | None = None) -> SortedSetStore:
    """
    Build a store for the configured backend.

    Args:
        settings: Settings to read the backend from. Defaults to the cached ones.

    Returns:
        SortedSetStore: A new, unshared store instance.
    """
    settings = settings or get_settings()
    if settings.store_backend == StoreBackend.REDIS:
        return RedisSortedSetStore.from_url(
            settings.redis_url,
            socket_timeout=settings.redis_socket_timeout_seconds,
        )
    if settings.store_backend == StoreBackend.MEMORY:
        return InMemorySortedSetStore()
    raise ConfigurationError(f"Unknown store backend: {settings.store_backend}", "store")


async def init_store(store: SortedSetStore | None = None) -> SortedSetStore:
    """
    Initialize the process-wide store.
    Should be called on application startup.

    Args:
        store: Use this store instead of building one from settings.
    """
    global _store
    if _store is None:
        _store = store or create_store()
        logger.info(
            "Store initialized",
            extra={"backend": type(_store).__name__},
        )
    return _store


async def close_store() -> None:
    """
    Close the process-wide store.
    Should be called on application shutdown.
    """
    global _store
    if _store is not None:
        await _store.close()
        _store = None
        logger.info("Store connection closed")


def get_store() -> SortedSetStore:
    """
    Get the process-wide store.

    Raises:
        RuntimeError: If the store is not initialized.
    """
    if _store is None:
        raise RuntimeError("Store not initialized. Call init_store() first.")
    return _store
