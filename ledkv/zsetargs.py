"""Argument parsing for the sorted-set commands.

Scores are 64-bit integers only.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from ledkv.errors import CmdParamsError, ScoreOverflowError, SyntaxError_, ValueError_
from ledkv.iterator import RangeType

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

MIN_SCORE = INT64_MIN + 1
MAX_SCORE = INT64_MAX

_DECIMAL = re.compile(rb"[+-]?[0-9]+")


class Aggregate(enum.Enum):
    """How scores of one member are combined across source sets."""

    SUM = "sum"
    MIN = "min"
    MAX = "max"


@dataclass(frozen=True)
class ScoreRange:
    """Inclusive score bounds, open ends already moved inwards."""

    min: int
    max: int

    @property
    def is_empty(self) -> bool:
        return self.min > self.max


@dataclass(frozen=True)
class MemberRange:
    """Member bounds for lexical ranges; None means unbounded."""

    min: bytes | None
    max: bytes | None
    type: RangeType = RangeType.CLOSE


@dataclass(frozen=True)
class StoreOptions:
    """Arguments of a union or intersection store."""

    dest_key: bytes
    src_keys: list[bytes]
    weights: list[int] | None
    aggregate: Aggregate


def _b(arg) -> bytes:
    if isinstance(arg, str):
        return arg.encode()
    if isinstance(arg, int):
        return str(arg).encode()
    return bytes(arg)


def parse_int64(buf) -> int:
    """A signed decimal 64-bit integer."""
    data = _b(buf)
    if not _DECIMAL.fullmatch(data):
        raise ValueError_()
    n = int(data)
    if not INT64_MIN <= n <= INT64_MAX:
        raise ValueError_()
    return n


def _score_bound(buf: bytes, strip_twice: bool) -> tuple[int, bool]:
    if not buf:
        raise CmdParamsError()
    is_open = False
    if buf.startswith(b"("):
        is_open = True
        buf = buf[1:]
        if strip_twice and buf.startswith(b"("):
            buf = buf[1:]
    value = parse_int64(buf)
    if value <= MIN_SCORE or value >= MAX_SCORE:
        raise ScoreOverflowError()
    return value, is_open


def parse_score_range(min_buf, max_buf) -> ScoreRange:
    """Parse bounds such as ``-inf``, ``(2``, ``4`` and ``+inf``."""
    min_b, max_b = _b(min_buf), _b(max_buf)

    if min_b.lower() == b"-inf":
        low = INT64_MIN
    else:
        low, is_open = _score_bound(min_b, strip_twice=False)
        if is_open:
            low += 1

    if max_b.lower() == b"+inf":
        high = INT64_MAX
    else:
        high, is_open = _score_bound(max_b, strip_twice=True)
        if is_open:
            high -= 1

    return ScoreRange(low, high)


def parse_member_range(min_buf, max_buf) -> MemberRange:
    """Parse lexical bounds: ``-``/``+`` or ``(`` / ``[`` followed by a member."""
    min_b, max_b = _b(min_buf), _b(max_buf)
    range_type = RangeType.CLOSE

    if min_b == b"-":
        low = None
    elif min_b.startswith(b"("):
        range_type |= RangeType.LOPEN
        low = min_b[1:]
    elif min_b.startswith(b"["):
        low = min_b[1:]
    else:
        raise CmdParamsError()

    if max_b == b"+":
        high = None
    elif max_b.startswith(b"("):
        range_type |= RangeType.ROPEN
        high = max_b[1:]
    elif max_b.startswith(b"["):
        high = max_b[1:]
    else:
        raise CmdParamsError()

    return MemberRange(low, high, RangeType(range_type))


def parse_rank_range(start_buf, stop_buf) -> tuple[int, int]:
    """Start and stop ranks; negative ranks count from the end."""
    return parse_int64(start_buf), parse_int64(stop_buf)


def parse_zadd(args) -> tuple[bytes, list[tuple[int, bytes]]]:
    """``key score member [score member ...]`` as the key and score/member pairs."""
    args = [_b(a) for a in args]
    if len(args) < 3 or len(args[1:]) % 2:
        raise CmdParamsError()
    rest = args[1:]
    pairs = [
        (parse_int64(score), member) for score, member in zip(rest[::2], rest[1::2])
    ]
    return args[0], pairs


def parse_zrange(args) -> tuple[bytes, int, int, bool]:
    """``key start stop [withscores]``."""
    args = [_b(a) for a in args]
    if len(args) < 3:
        raise CmdParamsError()
    start, stop = parse_rank_range(args[1], args[2])
    extra = args[3:]
    with_scores = False
    if extra:
        if len(extra) != 1:
            raise CmdParamsError()
        if extra[0].lower() != b"withscores":
            raise SyntaxError_()
        with_scores = True
    return args[0], start, stop, with_scores


def _parse_limit(args: list[bytes]) -> tuple[int, int]:
    if args[0].lower() != b"limit":
        raise SyntaxError_()
    return parse_int64(args[1]), parse_int64(args[2])


def parse_zrangebyscore(args, reverse) -> tuple[bytes, ScoreRange, bool, int, int]:
    """``key min max [withscores] [limit offset count]``; max comes first when reversed.

    Returns the key, the score range, whether scores are wanted, the offset
    and the count (negative for unlimited).
    """
    args = [_b(a) for a in args]
    if len(args) < 3:
        raise CmdParamsError()
    first, second = args[1], args[2]
    if reverse:
        first, second = second, first
    score_range = parse_score_range(first, second)

    extra = args[3:]
    with_scores = False
    if extra and extra[0].lower() == b"withscores":
        with_scores = True
        extra = extra[1:]

    offset, count = 0, -1
    if extra:
        if len(extra) != 3:
            raise CmdParamsError()
        offset, count = _parse_limit(extra)

    return args[0], score_range, with_scores, offset, count


def parse_zrangebylex(args) -> tuple[bytes, MemberRange, int, int]:
    """``key min max [limit offset count]``."""
    args = [_b(a) for a in args]
    if len(args) not in (3, 6):
        raise CmdParamsError()
    member_range = parse_member_range(args[1], args[2])
    offset, count = 0, -1
    if len(args) == 6:
        offset, count = _parse_limit(args[3:])
    return args[0], member_range, offset, count


def parse_store_options(args) -> StoreOptions:
    """``dest numkeys key [key ...] [weights w ...] [aggregate sum|min|max]``."""
    args = [_b(a) for a in args]
    if len(args) < 2:
        raise CmdParamsError()
    dest_key = args[0]
    num_keys = parse_int64(args[1])
    rest = args[2:]
    if num_keys < 0 or len(rest) < num_keys:
        raise SyntaxError_()

    src_keys = rest[:num_keys]
    rest = rest[num_keys:]

    weights: list[int] | None = None
    aggregate: Aggregate | None = None

    while rest:
        word = rest[0].lower()
        if word == b"weights":
            if weights is not None:
                raise SyntaxError_()
            rest = rest[1:]
            if len(rest) < num_keys:
                raise SyntaxError_()
            weights = [parse_int64(w) for w in rest[:num_keys]]
            rest = rest[num_keys:]
        elif word == b"aggregate":
            if aggregate is not None or len(rest) < 2:
                raise SyntaxError_()
            try:
                aggregate = Aggregate(rest[1].lower().decode("latin-1"))
            except ValueError:
                raise SyntaxError_() from None
            rest = rest[2:]
        else:
            raise SyntaxError_()

    return StoreOptions(dest_key, src_keys, weights, aggregate or Aggregate.SUM)