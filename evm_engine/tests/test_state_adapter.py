from __future__ import annotations

import pytest

from evm_engine.db.kv import MemoryKV
from evm_engine.errors import (BalanceOverflowError, InsufficientBalance,
                               StateAdapterError)
from evm_engine.state.adapter import StateAdapter
from evm_engine.types.events import Log
from evm_engine.types.word import U256_MAX

A = b"\xaa" * 20
B = b"\xbb" * 20


def _seed(kv: MemoryKV) -> None:
    st = StateAdapter(kv)
    h = st.begin_overlay()
    st.set_balance(A, 1_000)
    st.write_storage(A, 1, 7)
    st.set_code(A, b"\x60\x00")
    st.commit(h)


def test_outermost_commit_flushes_in_one_batch():
    kv = MemoryKV()
    _seed(kv)
    assert kv.commits == 1
    st = StateAdapter(kv)
    assert st.get_balance(A) == 1_000
    assert st.read_storage(A, 1) == 7
    assert st.get_code(A) == b"\x60\x00"


def test_nested_commit_merges_without_touching_host():
    kv = MemoryKV()
    st = StateAdapter(kv)
    outer = st.begin_overlay()
    inner = st.begin_overlay()
    st.write_storage(A, 3, 9)
    st.commit(inner)
    assert kv.commits == 0
    assert st.read_storage(A, 3) == 9
    st.commit(outer)
    assert kv.commits == 1
    assert StateAdapter(kv).read_storage(A, 3) == 9


def test_discard_drops_writes_logs_and_refunds():
    kv = MemoryKV()
    _seed(kv)
    before = kv.snapshot()
    st = StateAdapter(kv)
    outer = st.begin_overlay()
    inner = st.begin_overlay()
    st.write_storage(A, 1, 0)
    st.add_log(Log(address=A, topics=[], data=b"x"))
    st.add_refund(15_000)
    st.discard(inner)
    assert st.read_storage(A, 1) == 7
    assert st.logs() == []
    assert st.refund_total() == 0
    st.discard(outer)
    assert kv.snapshot() == before


def test_handles_must_be_lifo():
    st = StateAdapter(MemoryKV())
    outer = st.begin_overlay()
    st.begin_overlay()
    with pytest.raises(StateAdapterError):
        st.commit(outer)
    with pytest.raises(StateAdapterError):
        st.discard(outer)


def test_rollback_to_unwinds_inner_layers():
    st = StateAdapter(MemoryKV())
    outer = st.begin_overlay()
    st.begin_overlay()
    st.begin_overlay()
    st.rollback_to(outer)
    assert st.depth() == 0
    with pytest.raises(StateAdapterError):
        st.rollback_to(1)


def test_zero_write_is_visible_over_committed_value():
    kv = MemoryKV()
    _seed(kv)
    st = StateAdapter(kv)
    h = st.begin_overlay()
    st.write_storage(A, 1, 0)
    assert st.read_storage(A, 1) == 0
    assert st.original_storage(A, 1) == 7
    st.commit(h)
    assert StateAdapter(kv).read_storage(A, 1) == 0


def test_transfer_is_all_or_nothing():
    kv = MemoryKV()
    _seed(kv)
    st = StateAdapter(kv)
    st.begin_overlay()
    with pytest.raises(InsufficientBalance):
        st.transfer(A, B, 1_001)
    assert st.get_balance(A) == 1_000
    assert st.get_balance(B) == 0
    st.transfer(A, B, 400)
    assert (st.get_balance(A), st.get_balance(B)) == (600, 400)


def test_nonce_never_decreases():
    st = StateAdapter(MemoryKV())
    st.begin_overlay()
    st.set_nonce(A, 3)
    with pytest.raises(StateAdapterError):
        st.set_nonce(A, 2)
    assert st.increment_nonce(A) == 4


def test_writes_require_an_open_overlay():
    st = StateAdapter(MemoryKV())
    with pytest.raises(StateAdapterError):
        st.write_storage(A, 0, 1)


def test_destroyed_account_storage_is_unreachable_after_flush():
    kv = MemoryKV()
    _seed(kv)
    st = StateAdapter(kv)
    h = st.begin_overlay()
    st.mark_destroyed(A)
    st.commit(h)
    fresh = StateAdapter(kv)
    assert fresh.read_storage(A, 1) == 0
    assert fresh.get_code(A) == b""
    assert fresh.committed.get_generation(A) == 1


def test_commit_reports_post_values():
    st = StateAdapter(MemoryKV())
    h = st.begin_overlay()
    st.set_balance(B, 5)
    st.write_storage(B, 2, 11)
    diff = st.commit(h)
    assert diff.accounts[B].balance == 5
    assert diff.storage_at(B, 2) == 11


def test_credit_past_u256_is_a_balance_overflow():
    state = StateAdapter(MemoryKV())
    h = state.begin_overlay()
    state.set_balance(A, U256_MAX)
    with pytest.raises(BalanceOverflowError) as e:
        state.add_balance(A, 1)
    assert e.value.code == "ERR_BALANCE_OVERFLOW"
    assert state.get_balance(A) == U256_MAX
    state.discard(h)
