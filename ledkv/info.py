"""Formatting of server information sections."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

DELIMS = "\r\n"

GB = 1024 * 1024 * 1024
MB = 1024 * 1024
KB = 1024


def memory_human(size: int) -> str:
    """A byte count with a G, M or K suffix and three decimals, or plain below a kilobyte."""
    if size > GB:
        return f"{size / GB:0.3f}G"
    if size > MB:
        return f"{size / MB:0.3f}M"
    if size > KB:
        return f"{size / KB:0.3f}K"
    return str(size)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    return str(value)


def _pairs(pairs) -> Iterable[tuple[str, Any]]:
    if isinstance(pairs, Mapping):
        return pairs.items()
    return pairs


def dump_pairs(pairs) -> str:
    """``key:value`` lines ending in CRLF, from a mapping or (key, value) pairs."""
    return "".join(f"{key}:{_format_value(value)}{DELIMS}" for key, value in _pairs(pairs))


def dump_section(title: str, pairs) -> str:
    """A ``# Title`` header line followed by the section's pairs."""
    return f"# {title}{DELIMS}" + dump_pairs(pairs)