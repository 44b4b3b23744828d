"""Record stores consumed by the engine.

The engine only depends on the Store / MutableStore interfaces. InMemoryStore
is the process-local implementation; it serializes its own mutations and
hands readers a copied snapshot so aggregation never holds the lock.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from operator import attrgetter
from typing import Callable, Generic, Optional, TypeVar

import structlog

from .errors import DuplicateRecord, RecordNotFound

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class Store(ABC, Generic[T]):
    """Append-only record store."""

    @abstractmethod
    def append(self, record: T) -> T:
        """Add a record. Raises DuplicateRecord if its key is already present."""

    @abstractmethod
    def list(self) -> tuple[T, ...]:
        """Return a consistent snapshot of all records in insertion order."""

    @abstractmethod
    def find(self, key: str) -> Optional[T]:
        """Return the record with the given key, or None."""


class MutableStore(Store[T]):
    """Store that also supports replacing and removing records."""

    @abstractmethod
    def replace(self, record: T) -> T:
        """Overwrite an existing record. Raises RecordNotFound if absent."""

    @abstractmethod
    def remove(self, key: str) -> Optional[T]:
        """Remove and return the record with the given key, or None if absent."""


class InMemoryStore(MutableStore[T]):
    """Dict-backed store keyed by a record attribute.

    Args:
        name: Store name used in log context.
        key: Attribute holding the record key (default ``id``).
    """

    def __init__(self, name: str = "store", key: str = "id"):
        self.name = name
        self._key: Callable[[T], str] = attrgetter(key)
        self._records: dict[str, T] = {}
        self._lock = threading.Lock()
        self.log = logger.bind(store=name)

    def append(self, record: T) -> T:
        key = self._key(record)
        with self._lock:
            if key in self._records:
                raise DuplicateRecord(key)
            self._records[key] = record
        self.log.debug("record_appended", key=key)
        return record

    def list(self) -> tuple[T, ...]:
        with self._lock:
            return tuple(self._records.values())

    def find(self, key: str) -> Optional[T]:
        with self._lock:
            return self._records.get(key)

    def replace(self, record: T) -> T:
        key = self._key(record)
        with self._lock:
            if key not in self._records:
                raise RecordNotFound(key)
            self._records[key] = record
        self.log.debug("record_replaced", key=key)
        return record

    def remove(self, key: str) -> Optional[T]:
        with self._lock:
            record = self._records.pop(key, None)
        if record is not None:
            self.log.debug("record_removed", key=key)
        return record

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
