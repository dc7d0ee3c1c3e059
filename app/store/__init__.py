import logging

from app.core.config import Settings
from app.store.base import Store
from app.store.memory import MemoryStore
from app.store.sql import SqlStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> Store:
    """Construct the store selected by ``settings.store_backend``."""
    backend = settings.store_backend.lower()
    if backend == "memory":
        logger.info("Using in-memory store")
        return MemoryStore()
    if backend == "sql":
        logger.info("Using SQL store")
        return SqlStore.from_url(settings.database_url, echo=settings.debug)
    raise ValueError(f"Unknown store backend: {settings.store_backend!r}")


__all__ = ["Store", "MemoryStore", "SqlStore", "build_store"]
