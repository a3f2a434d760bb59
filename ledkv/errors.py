"""Errors raised while parsing and running commands."""

from __future__ import annotations


class CommandError(Exception):
    """Base of all errors a command reports to its caller."""

    message = "command error"

    def __init__(self, message: str | None = None):
        super().__init__(message if message is not None else self.message)


class CmdParamsError(CommandError):
    """Wrong number or shape of command arguments."""

    message = "invalid command param"


class ValueError_(CommandError, ValueError):
    """An argument that should be an integer is not one, or is out of range."""

    message = "value is not an integer or out of range"


class SyntaxError_(CommandError):
    """An argument where a keyword was expected is not a known keyword."""

    message = "syntax error"


class ScoreOverflowError(CommandError):
    """A sorted-set score lies outside the supported range."""

    message = "zset score overflow"