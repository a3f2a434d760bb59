"""Write batches in the sorted-table batch wire format.

Layout: an 8-byte little-endian sequence number, a 4-byte little-endian
record count, then records of a kind byte (1 put, 0 delete), a varint
key length and key, and for puts a varint value length and value.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Protocol

_HEADER = struct.Struct("<QI")
_KIND_DELETE = 0
_KIND_PUT = 1


@dataclass(frozen=True)
class BatchItem:
    """One record of a batch; ``value`` is None for a delete."""

    key: bytes
    value: bytes | None


class _Replayer(Protocol):
    def put(self, key: bytes, value: bytes) -> None: ...

    def delete(self, key: bytes) -> None: ...


def _uvarint(n: int) -> bytes:
    out = bytearray()
    while n >= 0x80:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def _read_uvarint(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise ValueError("batch is corrupted: truncated length")
        b = data[pos]
        pos += 1
        result |= (b & 0x7F) << shift
        if b < 0x80:
            return result, pos
        shift += 7
        if shift > 63:
            raise ValueError("batch is corrupted: length overflow")


def _read_chunk(data: bytes, pos: int) -> tuple[bytes, int]:
    size, pos = _read_uvarint(data, pos)
    end = pos + size
    if end > len(data):
        raise ValueError("batch is corrupted: truncated record")
    return data[pos:end], end


def _decode_records(data: bytes, pos: int) -> list[tuple[int, bytes, bytes | None]]:
    records = []
    while pos < len(data):
        kind = data[pos]
        pos += 1
        if kind not in (_KIND_PUT, _KIND_DELETE):
            raise ValueError("batch is corrupted: invalid record type")
        key, pos = _read_chunk(data, pos)
        value = None
        if kind == _KIND_PUT:
            value, pos = _read_chunk(data, pos)
        records.append((kind, key, value))
    return records


class BatchData:
    """An ordered list of puts and deletes that can be dumped and loaded."""

    def __init__(self, data: bytes | None = None):
        self._seq = 0
        self._records: list[tuple[int, bytes, bytes | None]] = []
        if data is not None:
            self.load(data)

    def __len__(self) -> int:
        return len(self._records)

    def put(self, key: bytes, value: bytes | None) -> None:
        self._records.append(
            (_KIND_PUT, bytes(key), b"" if value is None else bytes(value))
        )

    def delete(self, key: bytes) -> None:
        self._records.append((_KIND_DELETE, bytes(key), None))

    def dump(self) -> bytes:
        out = bytearray(_HEADER.pack(self._seq, len(self._records)))
        for kind, key, value in self._records:
            out.append(kind)
            out += _uvarint(len(key))
            out += key
            if kind == _KIND_PUT:
                out += _uvarint(len(value))
                out += value
        return bytes(out)

    def load(self, data: bytes) -> None:
        """Replace the contents with those decoded from ``data``."""
        data = bytes(data)
        if len(data) < _HEADER.size:
            raise ValueError("batch is too short")
        seq, count = _HEADER.unpack_from(data)
        records = _decode_records(data, _HEADER.size)
        if len(records) != count:
            raise ValueError("batch is corrupted: invalid records length")
        self._seq = seq
        self._records = records

    def replay(self, handler: _Replayer) -> None:
        """Call ``handler.put`` or ``handler.delete`` for each record in order."""
        for kind, key, value in self._records:
            if kind == _KIND_PUT:
                handler.put(key, value)
            else:
                handler.delete(key)

    def items(self) -> list[BatchItem]:
        return [BatchItem(key, value) for _, key, value in self._records]

    def reset(self) -> None:
        self._seq = 0
        self._records = []