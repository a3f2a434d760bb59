"""Interfaces that storage engines implement, and the registry of engines."""

from __future__ import annotations

import abc
import threading
from dataclasses import dataclass, field


class IIterator(abc.ABC):
    """A cursor over the keys of an engine, in byte order."""

    @abc.abstractmethod
    def first(self) -> None:
        """Move to the first key."""

    @abc.abstractmethod
    def last(self) -> None:
        """Move to the last key."""

    @abc.abstractmethod
    def seek(self, key: bytes) -> None:
        """Move to the first key that is not less than ``key``."""

    @abc.abstractmethod
    def next(self) -> None:
        """Move to the following key."""

    @abc.abstractmethod
    def prev(self) -> None:
        """Move to the preceding key."""

    @abc.abstractmethod
    def valid(self) -> bool:
        """Whether the cursor stands on a key."""

    @abc.abstractmethod
    def key(self) -> bytes | None:
        """The current key, or None when not valid."""

    @abc.abstractmethod
    def value(self) -> bytes | None:
        """The current value, or None when not valid."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the cursor."""


class IWriteBatch(abc.ABC):
    """A set of writes applied together."""

    @abc.abstractmethod
    def put(self, key: bytes, value: bytes | None) -> None:
        """Queue a put."""

    @abc.abstractmethod
    def delete(self, key: bytes) -> None:
        """Queue a delete."""

    @abc.abstractmethod
    def commit(self) -> None:
        """Apply the queued writes."""

    @abc.abstractmethod
    def sync_commit(self) -> None:
        """Apply the queued writes and flush them to stable storage."""

    @abc.abstractmethod
    def rollback(self) -> None:
        """Drop the queued writes."""

    @abc.abstractmethod
    def data(self) -> bytes:
        """The queued writes in batch wire format."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the batch."""


class ISnapshot(abc.ABC):
    """A frozen, read-only view of an engine."""

    @abc.abstractmethod
    def get(self, key: bytes) -> bytes | None:
        """Read a key as of the snapshot."""

    @abc.abstractmethod
    def new_iterator(self) -> IIterator:
        """A cursor over the snapshot."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the snapshot."""


class IDB(abc.ABC):
    """An ordered key-value engine."""

    @abc.abstractmethod
    def get(self, key: bytes) -> bytes | None:
        """Read a key; None when missing."""

    @abc.abstractmethod
    def put(self, key: bytes, value: bytes | None) -> None:
        """Write a key."""

    @abc.abstractmethod
    def delete(self, key: bytes) -> None:
        """Remove a key."""

    @abc.abstractmethod
    def sync_put(self, key: bytes, value: bytes | None) -> None:
        """Write a key and flush it to stable storage."""

    @abc.abstractmethod
    def sync_delete(self, key: bytes) -> None:
        """Remove a key and flush to stable storage."""

    @abc.abstractmethod
    def new_iterator(self) -> IIterator:
        """A cursor over the engine."""

    @abc.abstractmethod
    def new_write_batch(self) -> IWriteBatch:
        """An empty write batch."""

    @abc.abstractmethod
    def new_snapshot(self) -> ISnapshot:
        """A frozen view of the current contents."""

    @abc.abstractmethod
    def compact(self) -> None:
        """Reclaim space held by overwritten data."""

    @abc.abstractmethod
    def close(self) -> None:
        """Close the engine."""


class StoreDriver(abc.ABC):
    """A named factory of engines."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """The name the driver is registered under."""

    @abc.abstractmethod
    def open(self, path) -> IDB:
        """Open the engine stored at ``path``."""

    @abc.abstractmethod
    def repair(self, path) -> None:
        """Recover the engine stored at ``path``."""

    def __str__(self) -> str:
        return self.name


@dataclass
class BytesSlice:
    """A value read from an engine, held as plain bytes."""

    payload: bytes
    freed: bool = field(default=False, compare=False)

    def data(self) -> bytes:
        return self.payload

    def size(self) -> int:
        return len(self.payload)

    def free(self) -> None:
        """Drop the held bytes; the slice is empty afterwards."""
        self.payload = b""
        self.freed = True


_stores: dict[str, StoreDriver] = {}
_stores_lock = threading.Lock()


def register(store: StoreDriver) -> None:
    """Register a driver under its name; a name may be taken only once."""
    with _stores_lock:
        if store.name in _stores:
            raise ValueError(f"store {store.name} is registered")
        _stores[store.name] = store


def list_stores() -> list[str]:
    """Names of all registered drivers."""
    with _stores_lock:
        return list(_stores)


def get_store(name: str) -> StoreDriver:
    """The driver registered under ``name``."""
    with _stores_lock:
        try:
            return _stores[name]
        except KeyError:
            raise LookupError(f"store {name} is not registered") from None