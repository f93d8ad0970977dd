from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from threading import RLock
from typing import Any, Dict, Iterator, List, Optional

from .models import COLLECTIONS
from .settings import Settings

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


# PUBLIC_INTERFACE
class RecordStore(ABC):
    """
    Abstract keyed storage for the ``users``, ``tasks`` and ``sessions`` collections.

    Records are plain dicts keyed by their ``id`` field. Implementations return
    copies, so mutating a returned record never changes stored state.
    """

    def __init__(self) -> None:
        self._lock = RLock()

    @abstractmethod
    def open(self) -> None:
        """Acquire underlying resources. Called once at application startup."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources. Called once at application shutdown."""

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Optional[Record]:
        """Return the record with the given id, or None if absent."""

    @abstractmethod
    def list(self, collection: str) -> List[Record]:
        """Return every record of a collection in insertion order."""

    @abstractmethod
    def put(self, collection: str, record: Record) -> None:
        """Insert or replace a record by id. A replaced record keeps its position."""

    @abstractmethod
    def remove(self, collection: str, record_id: str) -> bool:
        """Delete a record by id. Return True if deleted, False if not found."""

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Serialize one logical read-modify-write against the store.

        The lock is re-entrant, so nested operations within the same thread are safe.
        """
        with self._lock:
            yield

    @staticmethod
    def _check_collection(collection: str) -> None:
        if collection not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {collection}")


class InMemoryRecordStore(RecordStore):
    """
    Thread-safe in-memory store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        super().__init__()
        self._items: Dict[str, Dict[str, Record]] = {name: {} for name in COLLECTIONS}

    def open(self) -> None:
        logger.info("In-memory record store opened")

    def close(self) -> None:
        with self._lock:
            for items in self._items.values():
                items.clear()
        logger.info("In-memory record store closed")

    def get(self, collection: str, record_id: str) -> Optional[Record]:
        self._check_collection(collection)
        with self._lock:
            item = self._items[collection].get(record_id)
            return None if item is None else copy.deepcopy(item)

    def list(self, collection: str) -> List[Record]:
        self._check_collection(collection)
        with self._lock:
            # Return copies to avoid external mutation
            return [copy.deepcopy(r) for r in self._items[collection].values()]

    def put(self, collection: str, record: Record) -> None:
        self._check_collection(collection)
        with self._lock:
            self._items[collection][record["id"]] = copy.deepcopy(record)

    def remove(self, collection: str, record_id: str) -> bool:
        self._check_collection(collection)
        with self._lock:
            return self._items[collection].pop(record_id, None) is not None


# PUBLIC_INTERFACE
def create_store(settings: Settings) -> RecordStore:
    """
    Factory to return the configured record store based on settings.
    - memory: InMemoryRecordStore
    - sqlite: SQLiteRecordStore backed by settings.sqlite_db_path
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRecordStore

        return SQLiteRecordStore(settings.sqlite_db_path)
    return InMemoryRecordStore()
