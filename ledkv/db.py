"""A store opened from configuration, with statistics, batches and snapshots."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path

from ledkv.batchdata import BatchData
from ledkv.driver import IDB, ISnapshot, IWriteBatch, BytesSlice, get_store
from ledkv.engine import DISK_STORE_NAME
from ledkv.iterator import (
    Iterator,
    Limit,
    Range,
    RangeLimitIterator,
    RangeType,
    range_limit_iterator,
    rev_range_limit_iterator,
)
from ledkv.stat import Stat

DEFAULT_DB_NAME = DISK_STORE_NAME


@dataclass
class StoreConfig:
    """Where and how a store is opened.

    ``db_sync_commit``: 0 never flushes writes to stable storage, 1 flushes
    at most about once per second, 2 flushes every write.
    """

    data_dir: str | Path = "/tmp/ledkv"
    db_name: str = DEFAULT_DB_NAME
    db_path: str | Path | None = None
    db_sync_commit: int = 0


def store_path(cfg: StoreConfig) -> Path:
    """The directory that holds the store's data."""
    if cfg.db_path:
        return Path(cfg.db_path)
    return Path(cfg.data_dir) / f"{cfg.db_name}_data"


def _driver_for(cfg: StoreConfig):
    if not cfg.db_name:
        cfg.db_name = DEFAULT_DB_NAME
    return get_store(cfg.db_name)


def open_store(cfg: StoreConfig) -> "DB":
    """Open the store that ``cfg`` names, creating its directory if needed."""
    driver = _driver_for(cfg)
    path = store_path(cfg)
    path.mkdir(parents=True, exist_ok=True)
    engine = driver.open(path)
    return DB(engine, driver.name, cfg)


def repair_store(cfg: StoreConfig) -> None:
    """Repair the store that ``cfg`` names."""
    driver = _driver_for(cfg)
    driver.repair(store_path(cfg))


class DB:
    """A store engine wrapped with statistics and commit policy."""

    def __init__(self, engine: IDB, name: str, cfg: StoreConfig):
        self._db = engine
        self.name = name
        self._stat = Stat()
        self._cfg = cfg
        self._last_commit: float | None = None
        self._commit_lock = threading.Lock()

    @property
    def driver(self) -> IDB:
        return self._db

    @property
    def stat(self) -> Stat:
        return self._stat

    def __str__(self) -> str:
        return self.name

    def __enter__(self) -> "DB":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._db.close()

    def _need_sync_commit(self) -> bool:
        mode = self._cfg.db_sync_commit
        if mode == 0:
            return False
        if mode == 2:
            return True
        now = time.monotonic()
        with self._commit_lock:
            need = self._last_commit is None or now - self._last_commit > 1.0
            self._last_commit = now
        return need

    def get(self, key: bytes) -> bytes | None:
        start = time.perf_counter()
        value = self._db.get(key)
        self._stat.stat_get(value)
        self._stat.get_total_time += time.perf_counter() - start
        return value

    def get_slice(self, key: bytes) -> BytesSlice | None:
        value = self.get(key)
        return None if value is None else BytesSlice(value)

    def put(self, key: bytes, value: bytes | None) -> None:
        self._stat.put_num += 1
        if self._need_sync_commit():
            self._db.sync_put(key, value)
        else:
            self._db.put(key, value)

    def delete(self, key: bytes) -> None:
        self._stat.delete_num += 1
        if self._need_sync_commit():
            self._db.sync_delete(key)
        else:
            self._db.delete(key)

    def new_iterator(self) -> Iterator:
        self._stat.iter_num += 1
        return Iterator(self._db.new_iterator(), self._stat)

    def new_write_batch(self) -> "WriteBatch":
        self._stat.batch_num += 1
        return WriteBatch(self._db.new_write_batch(), self._stat, self)

    def new_snapshot(self) -> "Snapshot":
        self._stat.snapshot_num += 1
        return Snapshot(self._db.new_snapshot(), self._stat)

    def compact(self) -> None:
        self._stat.compact_num += 1
        start = time.perf_counter()
        try:
            self._db.compact()
        finally:
            self._stat.compact_total_time += time.perf_counter() - start

    def range_iterator(self, min_key, max_key, range_type) -> RangeLimitIterator:
        return self.range_limit_iterator(min_key, max_key, range_type, 0, -1)

    def rev_range_iterator(self, min_key, max_key, range_type) -> RangeLimitIterator:
        return self.rev_range_limit_iterator(min_key, max_key, range_type, 0, -1)

    def range_limit_iterator(
        self, min_key, max_key, range_type, offset, count
    ) -> RangeLimitIterator:
        """Ascending iteration; a negative count is unlimited, a negative offset yields nothing."""
        return range_limit_iterator(
            self.new_iterator(),
            Range(min_key, max_key, RangeType(range_type)),
            Limit(offset, count),
        )

    def rev_range_limit_iterator(
        self, min_key, max_key, range_type, offset, count
    ) -> RangeLimitIterator:
        """Descending iteration; a negative count is unlimited, a negative offset yields nothing."""
        return rev_range_limit_iterator(
            self.new_iterator(),
            Range(min_key, max_key, RangeType(range_type)),
            Limit(offset, count),
        )


class Snapshot:
    """A frozen view of a store that records its reads."""

    def __init__(self, snapshot: ISnapshot, stat: Stat):
        self._snap = snapshot
        self._stat = stat

    def get(self, key: bytes) -> bytes | None:
        value = self._snap.get(key)
        self._stat.stat_get(value)
        return value

    def get_slice(self, key: bytes) -> BytesSlice | None:
        value = self.get(key)
        return None if value is None else BytesSlice(value)

    def new_iterator(self) -> Iterator:
        self._stat.iter_num += 1
        return Iterator(self._snap.new_iterator(), self._stat)

    def close(self) -> None:
        self._stat.snapshot_close_num += 1
        self._snap.close()

    def __enter__(self) -> "Snapshot":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class WriteBatch:
    """Writes queued against a store, counted when committed."""

    def __init__(self, batch: IWriteBatch, stat: Stat, db: DB | None = None):
        self._wb = batch
        self._stat = stat
        self._db = db
        self._put_num = 0
        self._delete_num = 0

    def put(self, key: bytes, value: bytes | None) -> None:
        self._put_num += 1
        self._wb.put(key, value)

    def delete(self, key: bytes) -> None:
        self._delete_num += 1
        self._wb.delete(key)

    def commit(self) -> None:
        self._stat.batch_commit_num += 1
        self._stat.put_num += self._put_num
        self._stat.delete_num += self._delete_num
        self._put_num = 0
        self._delete_num = 0

        start = time.perf_counter()
        try:
            if self._db is None or not self._db._need_sync_commit():
                self._wb.commit()
            else:
                self._wb.sync_commit()
        finally:
            self._stat.batch_commit_total_time += time.perf_counter() - start

    def rollback(self) -> None:
        self._put_num = 0
        self._delete_num = 0
        self._wb.rollback()

    def batch_data(self) -> BatchData:
        """The queued writes decoded; meaningless after commit or rollback."""
        return BatchData(self._wb.data())

    def data(self) -> bytes:
        return self.batch_data().dump()

    def close(self) -> None:
        self._wb.close()

    def __enter__(self) -> "WriteBatch":
        return self

    def __exit__(self, *exc) -> None:
        self.close()