"""Ordered key-value storage with range iterators, batches, snapshots and command argument parsing."""

__version__ = "0.1.0"

__all__ = [
    "batchdata",
    "commands",
    "db",
    "driver",
    "engine",
    "errors",
    "info",
    "iterator",
    "stat",
    "zsetargs",
]