"""Counting iterators and range/limit iteration over a store."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator as _PyIterator

from ledkv.driver import IIterator
from ledkv.stat import Stat


class RangeType(enum.IntFlag):
    """Which ends of a range are open."""

    CLOSE = 0x00
    LOPEN = 0x01
    ROPEN = 0x10
    OPEN = 0x11


class Direction(enum.Enum):
    FORWARD = 0
    BACKWARD = 1


@dataclass(frozen=True)
class Range:
    """A key range; None on either side means unbounded."""

    min: bytes | None = None
    max: bytes | None = None
    type: RangeType = RangeType.CLOSE


@dataclass(frozen=True)
class Limit:
    """Skip ``offset`` keys, then yield at most ``count`` (unlimited if negative)."""

    offset: int = 0
    count: int = -1


class Iterator:
    """An engine cursor that records its use in a :class:`Stat`."""

    def __init__(self, it: IIterator, stat: Stat):
        self._it: IIterator | None = it
        self._stat = stat

    def key(self) -> bytes | None:
        return None if self._it is None else self._it.key()

    def value(self) -> bytes | None:
        return None if self._it is None else self._it.value()

    def valid(self) -> bool:
        return self._it is not None and self._it.valid()

    def _move(self, action) -> None:
        self._stat.iter_seek_num += 1
        if self._it is not None:
            action(self._it)

    def next(self) -> None:
        self._move(lambda it: it.next())

    def prev(self) -> None:
        self._move(lambda it: it.prev())

    def seek_to_first(self) -> None:
        self._move(lambda it: it.first())

    def seek_to_last(self) -> None:
        self._move(lambda it: it.last())

    def seek(self, key: bytes) -> None:
        self._move(lambda it: it.seek(key))

    def find(self, key: bytes) -> bytes | None:
        """The value stored under exactly ``key``, or None."""
        self.seek(key)
        if self.valid() and self.key() == key:
            return self.value()
        return None

    def close(self) -> None:
        if self._it is not None:
            self._stat.iter_close_num += 1
            self._it.close()
            self._it = None

    def __enter__(self) -> "Iterator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class RangeLimitIterator:
    """Walks a key range in one direction, honouring an offset and a count."""

    def __init__(
        self,
        it: Iterator,
        rng: Range,
        limit: Limit,
        direction: Direction = Direction.FORWARD,
    ):
        self._it = it
        self._range = rng
        self._limit = limit
        self._direction = direction
        self._step = 0

        if limit.offset < 0:
            return

        if direction is Direction.FORWARD:
            self._position_forward()
        else:
            self._position_backward()

        for _ in range(limit.offset):
            if not it.valid():
                break
            self._advance()

    def _position_forward(self) -> None:
        it, rng = self._it, self._range
        if rng.min is None:
            it.seek_to_first()
            return
        it.seek(rng.min)
        if rng.type & RangeType.LOPEN and it.valid() and it.key() == rng.min:
            it.next()

    def _position_backward(self) -> None:
        it, rng = self._it, self._range
        if rng.max is None:
            it.seek_to_last()
            return
        it.seek(rng.max)
        if not it.valid():
            it.seek_to_last()
        elif it.key() != rng.max:
            it.prev()
        if rng.type & RangeType.ROPEN and it.valid() and it.key() == rng.max:
            it.prev()

    def _advance(self) -> None:
        if self._direction is Direction.FORWARD:
            self._it.next()
        else:
            self._it.prev()

    def key(self) -> bytes | None:
        return self._it.key()

    def value(self) -> bytes | None:
        return self._it.value()

    def valid(self) -> bool:
        if self._limit.offset < 0 or not self._it.valid():
            return False
        if self._limit.count >= 0 and self._step >= self._limit.count:
            return False

        key = self._it.key()
        rng = self._range
        if self._direction is Direction.FORWARD:
            if rng.max is not None:
                if rng.type & RangeType.ROPEN:
                    return key < rng.max
                return key <= rng.max
        elif rng.min is not None:
            if rng.type & RangeType.LOPEN:
                return key > rng.min
            return key >= rng.min
        return True

    def next(self) -> None:
        self._step += 1
        self._advance()

    def close(self) -> None:
        self._it.close()

    def __iter__(self) -> _PyIterator[tuple[bytes, bytes]]:
        while self.valid():
            yield self.key(), self.value()
            self.next()

    def __enter__(self) -> "RangeLimitIterator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def range_limit_iterator(it: Iterator, rng: Range, limit: Limit) -> RangeLimitIterator:
    """Iterate ``rng`` in ascending key order."""
    return RangeLimitIterator(it, rng, limit, Direction.FORWARD)


def rev_range_limit_iterator(
    it: Iterator, rng: Range, limit: Limit
) -> RangeLimitIterator:
    """Iterate ``rng`` in descending key order."""
    return RangeLimitIterator(it, rng, limit, Direction.BACKWARD)