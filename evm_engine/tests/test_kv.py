from __future__ import annotations

import pytest

from evm_engine.db.kv import (CONFIG, NONCE, STORAGE, VERSION, KeyPrefix,
                              MemoryKV, be_u32, be_u64)


def test_prefixes_are_versioned_and_distinct():
    keys = {NONCE.key(b"\x01" * 20), STORAGE.key(b"\x01" * 20), CONFIG.key(b"\x01" * 20)}
    assert len(keys) == 3
    assert NONCE.key(b"a")[:2] == bytes([VERSION, KeyPrefix.NONCE])


def test_length_prefixed_parts_do_not_collide():
    assert CONFIG.key(b"ab", b"c") != CONFIG.key(b"a", b"bc")


def test_batch_commits_atomically_on_clean_exit():
    kv = MemoryKV()
    with kv.batch() as b:
        b.put(b"k1", b"v1")
        b.put(b"k2", b"v2")
        assert kv.get(b"k1") is None
    assert kv.get(b"k1") == b"v1"
    assert kv.commits == 1


def test_batch_discards_on_exception():
    kv = MemoryKV({b"k": b"old"})
    with pytest.raises(RuntimeError):
        with kv.batch() as b:
            b.put(b"k", b"new")
            b.delete(b"k")
            raise RuntimeError("boom")
    assert kv.get(b"k") == b"old"
    assert kv.commits == 0


def test_delete_is_idempotent_and_counted():
    kv = MemoryKV({b"k": b"v"})
    kv.delete(b"k")
    kv.delete(b"k")
    assert kv.snapshot() == {}
    assert kv.writes == 2


@pytest.mark.parametrize("fn,bad", [(be_u32, 1 << 32), (be_u64, 1 << 64), (be_u32, -1)])
def test_fixed_width_encoders_reject_out_of_range(fn, bad):
    with pytest.raises(ValueError):
        fn(bad)
