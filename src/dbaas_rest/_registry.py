"""In-memory registry of provisioned databases."""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ._errors import AlreadyExists, NotFound


def _fold(name: str) -> str:
    return name.casefold()


@dataclass(frozen=True)
class DatabaseRecord:
    """Metadata for a database the manager believes exists."""

    name: str
    engine: str
    size: str
    replicas: int
    identity: str
    rows_affected: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Registry:
    """Insertion-ordered records keyed by case-folded name.

    Every operation runs under one lock. Names with a create in flight are
    tracked separately so the duplicate check and the final insert of a create
    stay atomic without holding the lock across engine round-trips.
    """

    def __init__(self):
        self._records: OrderedDict[str, DatabaseRecord] = OrderedDict()
        self._pending: set[str] = set()
        self._lock = threading.Lock()

    def find(self, name: str) -> int | None:
        """Position of the record matching ``name`` in creation order, or None if absent.

        Positional lookup for callers that report or page by order. The
        lifecycle manager looks records up with :meth:`get` instead.
        """
        key = _fold(name)
        with self._lock:
            for position, existing in enumerate(self._records):
                if existing == key:
                    return position
        return None

    def get(self, name: str) -> DatabaseRecord | None:
        """Get a record by name, or None if absent."""
        with self._lock:
            return self._records.get(_fold(name))

    def insert(self, record: DatabaseRecord) -> None:
        """Append a record. Raises AlreadyExists on a case-insensitive match."""
        key = _fold(record.name)
        with self._lock:
            if key in self._records:
                raise AlreadyExists(f"Database '{record.name}' is already registered")
            self._records[key] = record

    def remove(self, name: str) -> DatabaseRecord:
        """Remove and return a record. Raises NotFound if absent."""
        with self._lock:
            record = self._records.pop(_fold(name), None)
        if record is None:
            raise NotFound(f"Database '{name}' is not registered")
        return record

    def list_records(self) -> list[DatabaseRecord]:
        """Snapshot of all records in insertion order."""
        with self._lock:
            return list(self._records.values())

    def reserve(self, name: str) -> bool:
        """Claim ``name`` for a create in flight.

        Returns False if the name is registered or already claimed.
        """
        key = _fold(name)
        with self._lock:
            if key in self._records or key in self._pending:
                return False
            self._pending.add(key)
            return True

    def release(self, name: str) -> None:
        """Drop the in-flight claim on ``name``."""
        with self._lock:
            self._pending.discard(_fold(name))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
