"""Work item stores: in-memory for tests, SQLAlchemy for everything else."""

from typing import Optional

from config import settings
from store.base import Descendant, EffortStore, EstimateWrite
from store.memory import MemoryEffortStore
from store.sql import SqlEffortStore

MEMORY_URL = "memory://"


def get_store(url: Optional[str] = None) -> EffortStore:
    """Build a store from a database URL.

    Args:
        url: memory:// for the in-memory store, any SQLAlchemy URL otherwise.
            Defaults to settings.database_url.
    """
    url = url or settings.database_url
    if url == MEMORY_URL:
        return MemoryEffortStore()
    return SqlEffortStore(url)


__all__ = [
    "Descendant",
    "EffortStore",
    "EstimateWrite",
    "MemoryEffortStore",
    "SqlEffortStore",
    "get_store",
]
