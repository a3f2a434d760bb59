"""Counters kept by a store."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, fields


@dataclass
class Stat:
    """Operation counters and accumulated timings (seconds) of a store."""

    get_num: int = 0
    get_missing_num: int = 0
    get_total_time: float = 0.0
    put_num: int = 0
    delete_num: int = 0
    iter_num: int = 0
    iter_seek_num: int = 0
    iter_close_num: int = 0
    snapshot_num: int = 0
    snapshot_close_num: int = 0
    batch_num: int = 0
    batch_commit_num: int = 0
    batch_commit_total_time: float = 0.0
    tx_num: int = 0
    tx_commit_num: int = 0
    tx_close_num: int = 0
    compact_num: int = 0
    compact_total_time: float = 0.0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def stat_get(self, value) -> None:
        """Count a read; a read that found nothing also counts as missing."""
        with self._lock:
            self.get_num += 1
            if value is None:
                self.get_missing_num += 1

    def reset(self) -> None:
        """Set every counter back to zero."""
        with self._lock:
            for f in fields(self):
                if f.init:
                    setattr(self, f.name, f.default)