import pytest

from ledkv.batchdata import BatchItem
from ledkv.db import (
    DB,
    StoreConfig,
    open_store,
    repair_store,
    store_path,
)
from ledkv.driver import list_stores
from ledkv.iterator import RangeType


def _key(i):
    return f"key_{i}".encode()


@pytest.fixture(params=sorted(list_stores()))
def db(request, tmp_path):
    cfg = StoreConfig(data_dir=tmp_path, db_name=request.param)
    store = open_store(cfg)
    yield store
    store.close()


def _keys(it):
    out = []
    for key, value in it:
        assert value == b"value"
        out.append(key)
    it.close()
    return out


def test_simple(db):
    key = b"key"
    value = b"hello world"
    db.put(key, value)
    assert db.get(key) == value

    sl = db.get_slice(key)
    assert sl.data() == value
    assert sl.size() == len(value)
    sl.free()

    db.delete(key)
    assert db.get(key) is None
    assert db.get_slice(key) is None

    db.put(key, None)
    assert db.get(key) == b""


def test_batch(db):
    key1, key2 = b"key1", b"key2"
    value = b"hello world"
    db.put(key1, value)
    db.put(key2, value)

    wb = db.new_write_batch()
    wb.delete(key2)
    wb.put(key1, b"hello world2")
    wb.commit()

    assert db.get(key2) is None
    assert db.get(key1) == b"hello world2"

    wb.delete(key1)
    wb.rollback()
    assert db.get(key1) == b"hello world2"

    wb.put(key1, None)
    wb.put(key2, b"")
    wb.commit()
    assert db.get(key1) == b""
    assert db.get(key2) == b""


def test_iterator(db):
    for i in range(10):
        db.put(_key(i), b"value")

    it = db.new_iterator()
    it.seek_to_first()
    assert it.valid()
    assert it.key() == b"key_0"
    it.close()

    k = _key
    cases = [
        (db.range_limit_iterator, RangeType.CLOSE, 0, -1, [1, 2, 3, 4, 5]),
        (db.range_limit_iterator, RangeType.CLOSE, 1, 3, [2, 3, 4]),
        (db.range_limit_iterator, RangeType.LOPEN, 0, -1, [2, 3, 4, 5]),
        (db.range_limit_iterator, RangeType.ROPEN, 0, -1, [1, 2, 3, 4]),
        (db.range_limit_iterator, RangeType.OPEN, 0, -1, [2, 3, 4]),
        (db.rev_range_limit_iterator, RangeType.CLOSE, 0, -1, [5, 4, 3, 2, 1]),
        (db.rev_range_limit_iterator, RangeType.CLOSE, 1, 3, [4, 3, 2]),
        (db.rev_range_limit_iterator, RangeType.LOPEN, 0, -1, [5, 4, 3, 2]),
        (db.rev_range_limit_iterator, RangeType.ROPEN, 0, -1, [4, 3, 2, 1]),
        (db.rev_range_limit_iterator, RangeType.OPEN, 0, -1, [4, 3, 2]),
    ]
    for make, rtype, offset, count, expected in cases:
        got = _keys(make(k(1), k(5), rtype, offset, count))
        assert got == [k(i) for i in expected], (make, rtype, offset, count)


def test_range_iterators_unbounded(db):
    for i in range(3):
        db.put(_key(i), b"value")
    assert _keys(db.range_iterator(None, None, RangeType.CLOSE)) == [
        _key(0),
        _key(1),
        _key(2),
    ]
    assert _keys(db.rev_range_iterator(None, None, RangeType.CLOSE)) == [
        _key(2),
        _key(1),
        _key(0),
    ]


def test_negative_offset_yields_nothing(db):
    db.put(_key(1), b"value")
    assert _keys(db.range_limit_iterator(None, None, RangeType.CLOSE, -1, -1)) == []


def test_snapshot(db):
    db.put(b"foo", b"v1")
    db.put(b"bar", b"v1")

    snap = db.new_snapshot()
    it = snap.new_iterator()
    it.seek(b"foo")
    assert it.valid()
    assert it.value() == b"v1"
    it.close()

    db.put(b"foo", b"v2")
    db.put(b"bar", b"v2")

    assert snap.get(b"foo") == b"v1"
    assert snap.get(b"bar") == b"v1"
    assert snap.get_slice(b"foo").data() == b"v1"
    assert db.get(b"foo") == b"v2"
    assert db.get(b"bar") == b"v2"

    snap.close()
    assert db.get(b"foo") == b"v2"
    assert db.stat.snapshot_num == 1
    assert db.stat.snapshot_close_num == 1


def test_batch_data(db):
    w = db.new_write_batch()
    w.put(b"a", b"1")
    w.put(b"b", None)
    w.delete(b"c")

    assert w.batch_data().items() == [
        BatchItem(b"a", b"1"),
        BatchItem(b"b", b""),
        BatchItem(b"c", None),
    ]
    assert w.data() == w.batch_data().dump()


def test_clear(db):
    for i in range(5):
        db.put(_key(i), b"value")
    it = db.range_iterator(None, None, RangeType.CLOSE)
    while it.valid():
        db.delete(it.key())
        it.next()
    it.close()
    check = db.new_iterator()
    check.seek_to_first()
    assert not check.valid()
    check.close()


def test_stat_counts(db):
    db.put(b"a", b"1")
    assert db.get(b"a") == b"1"
    assert db.get(b"missing") is None
    assert db.stat.get_num == 2
    assert db.stat.get_missing_num == 1
    assert db.stat.put_num == 1

    wb = db.new_write_batch()
    wb.put(b"b", b"2")
    wb.delete(b"a")
    wb.commit()
    assert db.stat.batch_num == 1
    assert db.stat.batch_commit_num == 1
    assert db.stat.put_num == 2
    assert db.stat.delete_num == 1


def test_store_path_default_and_explicit(tmp_path):
    cfg = StoreConfig(data_dir=tmp_path, db_name="memory")
    assert store_path(cfg) == tmp_path / "memory_data"
    cfg.db_path = tmp_path / "custom"
    assert store_path(cfg) == tmp_path / "custom"


def test_empty_name_uses_default(tmp_path):
    cfg = StoreConfig(data_dir=tmp_path, db_name="")
    with open_store(cfg) as store:
        assert str(store) == "disk"
    assert cfg.db_name == "disk"


def test_unknown_store(tmp_path):
    with pytest.raises(LookupError):
        open_store(StoreConfig(data_dir=tmp_path, db_name="nosuchstore"))


def test_disk_persistence_and_compact(tmp_path):
    cfg = StoreConfig(data_dir=tmp_path, db_name="disk")
    with open_store(cfg) as store:
        store.put(b"a", b"1")
        store.put(b"b", b"2")
        store.delete(b"a")
        store.compact()
        store.put(b"c", b"3")
        assert store.stat.compact_num == 1

    with open_store(cfg) as store:
        assert store.get(b"a") is None
        assert store.get(b"b") == b"2"
        assert store.get(b"c") == b"3"


def test_repair(tmp_path):
    cfg = StoreConfig(data_dir=tmp_path, db_name="disk")
    with open_store(cfg) as store:
        store.put(b"a", b"1")

    with open(store_path(cfg) / "data.log", "ab") as f:
        f.write(b"\x01\x02\x03garbage")

    with pytest.raises(ValueError):
        open_store(cfg)

    repair_store(cfg)
    with open_store(cfg) as store:
        assert store.get(b"a") == b"1"


@pytest.mark.parametrize("mode", [1, 2])
def test_sync_commit_modes(tmp_path, mode):
    cfg = StoreConfig(data_dir=tmp_path, db_name="disk", db_sync_commit=mode)
    with open_store(cfg) as store:
        store.put(b"a", b"1")
        store.put(b"b", b"2")
        store.delete(b"b")
        wb = store.new_write_batch()
        wb.put(b"c", b"3")
        wb.commit()
    with open_store(cfg) as store:
        assert store.get(b"a") == b"1"
        assert store.get(b"b") is None
        assert store.get(b"c") == b"3"


def test_db_is_context_manager(tmp_path):
    cfg = StoreConfig(data_dir=tmp_path, db_name="memory")
    with open_store(cfg) as store:
        assert isinstance(store, DB)
        store.put(b"x", b"y")
    with pytest.raises(RuntimeError):
        store.get(b"x")