# ledkv

An ordered key-value store for Python. Keys and values are `bytes`; keys are
kept in byte order, so any range can be walked forwards or backwards, with an
offset and a count. The package also has write batches with a portable wire
format, point-in-time snapshots, operation statistics, parsers for the
arguments of sorted-set commands, a case-insensitive command table, and
helpers that format server information sections.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Opening a store

```python
from ledkv.db import StoreConfig, open_store

cfg = StoreConfig(data_dir="/tmp/ledkv", db_name="memory")
db = open_store(cfg)

db.put(b"key", b"hello world")
assert db.get(b"key") == b"hello world"
db.delete(b"key")
assert db.get(b"key") is None
db.close()
```

`DB` is also a context manager that closes the store on exit.

Two engines are registered in `ledkv.driver` (see `list_stores()`):

- `"memory"` keeps everything in memory and forgets it on close.
- `"disk"` (the default `db_name`) keeps the data in a checksummed log,
  `data.log`, under `store_path(cfg)`, which is `cfg.db_path` if set and
  otherwise `<data_dir>/<db_name>_data`. `DB.compact()` rewrites the log so
  it holds only live keys. If the log is damaged, opening raises
  `ValueError`; `repair_store(cfg)` cuts it back to its last intact entry.

`StoreConfig.db_sync_commit` chooses when writes are flushed to stable
storage: `0` never, `1` at most about once a second, `2` on every write.

Further engines can be added by subclassing `ledkv.driver.StoreDriver` and
passing an instance to `ledkv.driver.register`.

## Range iteration

```python
from ledkv.iterator import RangeType

for i in range(10):
    db.put(f"key_{i}".encode(), b"value")

it = db.range_limit_iterator(b"key_1", b"key_5", RangeType.CLOSE, 1, 3)
keys = [key for key, _ in it]
it.close()
# keys == [b"key_2", b"key_3", b"key_4"]
```

`RangeType.LOPEN`, `ROPEN` and `OPEN` exclude one or both ends; `None` for
either bound leaves that side unbounded. `rev_range_limit_iterator` walks
from the high end down; `range_iterator` and `rev_range_iterator` take no
limit. A negative `count` means no limit; a negative `offset` gives an empty
range. The lower-level cursor from `db.new_iterator()` offers `seek`,
`seek_to_first`, `seek_to_last`, `next`, `prev` and `find`.

## Write batches and snapshots

```python
wb = db.new_write_batch()
wb.put(b"a", b"1")
wb.delete(b"b")
items = wb.batch_data().items()   # BatchItem(key, value); value is None for a delete
wb.commit()

snap = db.new_snapshot()
db.put(b"a", b"2")
assert snap.get(b"a") == b"1"
snap.close()
```

`ledkv.batchdata.BatchData` dumps and loads the batch wire format
(`dump()`, `load(data)`) and can replay its records into any object with
`put` and `delete` methods.

## Statistics

`db.stat` is a `ledkv.stat.Stat` counting reads, misses, puts, deletes,
iterators, seeks, snapshots, batch commits and compactions, with
accumulated timings in seconds; `reset()` zeroes it.

## Sorted-set argument parsing

`ledkv.zsetargs` turns raw command arguments into typed values. Scores are
64-bit integers. Bad arguments raise `CmdParamsError`, `ValueError_`,
`SyntaxError_` or `ScoreOverflowError`, all subclasses of `CommandError` in
`ledkv.errors`.

```python
from ledkv.zsetargs import parse_score_range, parse_member_range, parse_store_options

parse_score_range(b"(1", b"+inf")   # ScoreRange(min=2, max=2**63 - 1)
parse_member_range(b"-", b"(c")     # MemberRange(None, b"c", RangeType.ROPEN)
parse_store_options([b"out", b"2", b"k1", b"k2", b"weights", b"1", b"2"])
```

There are parsers for `zadd`, `zrange`, `zrangebyscore`, `zrangebylex` and
the union/intersection store options.

## Commands and info sections

`ledkv.commands.CommandRegistry` maps case-insensitive command names to
handlers; registering a name twice raises `ValueError`, and looking up an
empty or unknown name raises `CommandError`. `lower_bytes` and
`upper_bytes` change the case of ASCII letters only.

`ledkv.info` formats `key:value` lines ending in CRLF (`dump_pairs`,
`dump_section`) and byte counts such as `memory_human(2048) == "2.000K"`.

## What it does not do

This package is a library. It has no network server, no command-line
programs, and no sorted-set storage: the sorted-set module only parses
arguments, and the command table holds whatever handlers you register.
It has no replication and no store for rotating dump files on disk.