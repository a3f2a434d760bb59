"""A table of named command handlers, and ASCII case helpers."""

from __future__ import annotations

from typing import Callable, Iterator

from ledkv.errors import CommandError


def _command_name(name: str | bytes) -> str:
    if isinstance(name, (bytes, bytearray)):
        name = bytes(name).decode("latin-1")
    return name.lower()


class CommandRegistry:
    """Maps case-insensitive command names to handlers."""

    def __init__(self) -> None:
        self._commands: dict[str, Callable] = {}

    def register(self, name: str | bytes, func: Callable) -> None:
        """Add a handler; registering a name twice is an error."""
        key = _command_name(name)
        if key in self._commands:
            raise ValueError(f"{name} has been registered")
        self._commands[key] = func

    def get(self, name: str | bytes) -> Callable:
        """The handler for ``name``, whatever its case."""
        key = _command_name(name)
        if not key:
            raise CommandError("empty command")
        try:
            return self._commands[key]
        except KeyError:
            raise CommandError("command not found") from None

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, (str, bytes, bytearray)):
            return False
        return _command_name(name) in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)


def lower_bytes(buf: bytes | bytearray) -> bytes:
    """Lower-case ASCII letters only; other bytes are kept as they are."""
    return bytes(buf).lower()


def upper_bytes(buf: bytes | bytearray) -> bytes:
    """Upper-case ASCII letters only; other bytes are kept as they are."""
    return bytes(buf).upper()