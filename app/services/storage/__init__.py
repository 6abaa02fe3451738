"""Live queue storage backends."""

from loguru import logger

from app.app_config import get_app_environ_config

from .memory_store import MemoryLiveQueueStore
from .store import DuplicateRecordError, LiveQueueStore


def create_live_queue_store(backend: str | None = None) -> LiveQueueStore:
    """Build the store selected by STORE_BACKEND (`mongo` or `memory`).

    The mongo backend expects `init_beanie_odm` to be awaited before first use.
    """
    backend = (backend or get_app_environ_config().STORE_BACKEND).lower()
    if backend == "memory":
        logger.info("Using in-memory live queue store")
        return MemoryLiveQueueStore()
    if backend == "mongo":
        from .mongo_store import MongoLiveQueueStore

        logger.info("Using MongoDB live queue store")
        return MongoLiveQueueStore()
    raise ValueError(f"Unknown STORE_BACKEND '{backend}'")


__all__ = [
    "DuplicateRecordError",
    "LiveQueueStore",
    "MemoryLiveQueueStore",
    "create_live_queue_store",
]
