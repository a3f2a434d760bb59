"""An ordered key-value engine kept in a sorted map, optionally backed by a log."""

from __future__ import annotations

import os
import struct
import threading
import zlib
from pathlib import Path

from sortedcontainers import SortedDict

from ledkv.batchdata import BatchData
from ledkv.driver import IDB, IIterator, ISnapshot, IWriteBatch, StoreDriver, register

DISK_STORE_NAME = "disk"
MEMORY_STORE_NAME = "memory"

_LOG_NAME = "data.log"
_ENTRY = struct.Struct("<II")


def _encode_entry(payload: bytes) -> bytes:
    return _ENTRY.pack(len(payload), zlib.crc32(payload)) + payload


def _read_log(path: Path) -> tuple[list[BatchData], int, bool]:
    """Decode a log: the good batches, the length they cover, and whether that is all."""
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return [], 0, True

    batches = []
    pos = 0
    while pos + _ENTRY.size <= len(raw):
        length, crc = _ENTRY.unpack_from(raw, pos)
        start = pos + _ENTRY.size
        end = start + length
        if end > len(raw):
            break
        payload = raw[start:end]
        if zlib.crc32(payload) != crc:
            break
        try:
            batch = BatchData(payload)
        except ValueError:
            break
        batches.append(batch)
        pos = end
    return batches, pos, pos == len(raw)


class SortedIterator(IIterator):
    """A cursor over a frozen copy of the engine's contents."""

    def __init__(self, items: SortedDict):
        self._items: SortedDict | None = items
        self._pos = -1

    def first(self) -> None:
        self._pos = 0

    def last(self) -> None:
        self._pos = len(self._items) - 1 if self._items is not None else -1

    def seek(self, key: bytes) -> None:
        if self._items is not None:
            self._pos = self._items.bisect_left(bytes(key))

    def next(self) -> None:
        if self._items is not None and self._pos < len(self._items):
            self._pos += 1

    def prev(self) -> None:
        if self._pos >= 0:
            self._pos -= 1

    def valid(self) -> bool:
        return self._items is not None and 0 <= self._pos < len(self._items)

    def key(self) -> bytes | None:
        return self._items.peekitem(self._pos)[0] if self.valid() else None

    def value(self) -> bytes | None:
        return self._items.peekitem(self._pos)[1] if self.valid() else None

    def close(self) -> None:
        self._items = None


class SortedSnapshot(ISnapshot):
    """A read-only view of the engine at one moment."""

    def __init__(self, items: SortedDict):
        self._items: SortedDict | None = items

    def _view(self) -> SortedDict:
        if self._items is None:
            raise RuntimeError("snapshot is released")
        return self._items

    def get(self, key: bytes) -> bytes | None:
        return self._view().get(bytes(key))

    def new_iterator(self) -> SortedIterator:
        return SortedIterator(self._view())

    def close(self) -> None:
        self._items = None


class SortedDB(IDB):
    """Ordered map of bytes to bytes; with a path, every write is logged there."""

    def __init__(self, path=None):
        self._lock = threading.RLock()
        self._data = SortedDict()
        self._closed = False
        self._log = None
        self._log_path: Path | None = None

        if path is not None:
            directory = Path(path)
            directory.mkdir(parents=True, exist_ok=True)
            self._log_path = directory / _LOG_NAME
            batches, _, clean = _read_log(self._log_path)
            if not clean:
                raise ValueError(f"corrupted log {self._log_path}, repair needed")
            for batch in batches:
                self._apply(batch)
            self._log = open(self._log_path, "ab")

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("database is closed")

    def _apply(self, batch: BatchData) -> None:
        for item in batch.items():
            if item.value is None:
                self._data.pop(item.key, None)
            else:
                self._data[item.key] = item.value

    def _write(self, batch: BatchData, sync: bool) -> None:
        with self._lock:
            self._check_open()
            if self._log is not None:
                self._log.write(_encode_entry(batch.dump()))
                self._log.flush()
                if sync:
                    os.fsync(self._log.fileno())
            self._apply(batch)

    def _single(self, key: bytes, value: bytes | None, delete: bool) -> BatchData:
        batch = BatchData()
        if delete:
            batch.delete(key)
        else:
            batch.put(key, value)
        return batch

    def get(self, key: bytes) -> bytes | None:
        with self._lock:
            self._check_open()
            return self._data.get(bytes(key))

    def put(self, key: bytes, value: bytes | None) -> None:
        self._write(self._single(key, value, False), sync=False)

    def delete(self, key: bytes) -> None:
        self._write(self._single(key, None, True), sync=False)

    def sync_put(self, key: bytes, value: bytes | None) -> None:
        self._write(self._single(key, value, False), sync=True)

    def sync_delete(self, key: bytes) -> None:
        self._write(self._single(key, None, True), sync=True)

    def new_iterator(self) -> SortedIterator:
        with self._lock:
            self._check_open()
            return SortedIterator(self._data.copy())

    def new_write_batch(self) -> "SortedWriteBatch":
        return SortedWriteBatch(self)

    def new_snapshot(self) -> SortedSnapshot:
        with self._lock:
            self._check_open()
            return SortedSnapshot(self._data.copy())

    def compact(self) -> None:
        """Rewrite the log so it holds only the live keys."""
        with self._lock:
            self._check_open()
            if self._log is None:
                return
            live = BatchData()
            for key, value in self._data.items():
                live.put(key, value)
            tmp_path = self._log_path.with_name(_LOG_NAME + ".tmp")
            with open(tmp_path, "wb") as out:
                if len(live):
                    out.write(_encode_entry(live.dump()))
                out.flush()
                os.fsync(out.fileno())
            self._log.close()
            os.replace(tmp_path, self._log_path)
            self._log = open(self._log_path, "ab")

    def close(self) -> None:
        with self._lock:
            if self._log is not None:
                self._log.close()
                self._log = None
            self._closed = True


class SortedWriteBatch(IWriteBatch):
    """Writes queued for one atomic application to a :class:`SortedDB`."""

    def __init__(self, db: SortedDB):
        self._db = db
        self._batch = BatchData()

    def put(self, key: bytes, value: bytes | None) -> None:
        self._batch.put(key, value)

    def delete(self, key: bytes) -> None:
        self._batch.delete(key)

    def commit(self) -> None:
        self._db._write(self._batch, sync=False)

    def sync_commit(self) -> None:
        self._db._write(self._batch, sync=True)

    def rollback(self) -> None:
        self._batch.reset()

    def data(self) -> bytes:
        return self._batch.dump()

    def close(self) -> None:
        self._batch.reset()


class DiskStore(StoreDriver):
    """Engines whose contents survive in a log under a directory."""

    name = DISK_STORE_NAME

    def open(self, path) -> SortedDB:
        return SortedDB(path)

    def repair(self, path) -> None:
        """Cut the log back to its last intact entry."""
        log_path = Path(path) / _LOG_NAME
        _, good_length, clean = _read_log(log_path)
        if clean:
            return
        with open(log_path, "r+b") as f:
            f.truncate(good_length)


class MemoryStore(StoreDriver):
    """Engines that live only in memory."""

    name = MEMORY_STORE_NAME

    def open(self, path) -> SortedDB:
        return SortedDB()

    def repair(self, path) -> None:
        """Nothing is stored, so nothing needs repair."""
        return None


register(DiskStore())
register(MemoryStore())