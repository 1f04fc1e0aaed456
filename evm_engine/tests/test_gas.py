from __future__ import annotations

import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from evm_engine.errors import OutOfGas
from evm_engine.gas.meter import GasMeter, all_but_one_64th
from evm_engine.gas.schedule import ISTANBUL, GasSchedule, load_gas_schedule


def test_debit_past_remaining_raises_and_leaves_meter_unchanged():
    m = GasMeter(100)
    m.debit(60)
    with pytest.raises(OutOfGas):
        m.debit(41)
    assert m.remaining == 40


def test_credit_returns_child_gas():
    m = GasMeter(1_000)
    m.debit(900)
    m.credit(500)
    assert m.remaining == 600
    with pytest.raises(ValueError):
        m.credit(1_000)


def test_consume_all():
    m = GasMeter(5_000)
    m.consume_all()
    assert m.exhausted


@given(used=st.integers(0, 10**7), refund=st.integers(0, 10**7))
@settings(max_examples=200)
def test_refund_is_capped_at_half_of_used(used, refund):
    m = GasMeter(10**7)
    m.debit(used)
    s = m.settle(refund)
    assert s.refund_applied == min(refund, used // 2)
    assert s.charged == used - s.refund_applied
    assert 0 <= s.charged <= m.limit


def test_all_but_one_64th():
    assert all_but_one_64th(6400) == 6300
    assert all_but_one_64th(63) == 63


def test_intrinsic_gas_counts_zero_and_nonzero_bytes():
    assert ISTANBUL.intrinsic_gas(b"", is_create=False) == 21000
    assert ISTANBUL.intrinsic_gas(b"\x00\x01", is_create=False) == 21000 + 4 + 16
    assert ISTANBUL.intrinsic_gas(b"", is_create=True) == 53000


def test_memory_cost_is_quadratic():
    assert ISTANBUL.memory_cost(1) == 3
    assert ISTANBUL.memory_cost(1024) == 1024 * 3 + 1024 * 1024 // 512


def test_build_rejects_unknown_and_negative_costs():
    with pytest.raises(KeyError):
        GasSchedule.build({"no_such_cost": 1})
    with pytest.raises(ValueError):
        GasSchedule.build({"sload": -1})


def test_load_schedule_from_file_with_overrides(tmp_path):
    path = tmp_path / "gas.json"
    path.write_text(json.dumps({"costs": {"sload": 200, "tx": 5000}}))
    sched = load_gas_schedule(path, overrides={"tx": 1})
    assert sched.sload == 200
    assert sched.tx == 1
    assert sched.sstore_set == ISTANBUL.sstore_set


def test_load_schedule_from_yaml(tmp_path):
    path = tmp_path / "gas.yaml"
    path.write_text("costs:\n  call: 40\n")
    assert load_gas_schedule(path).call == 40
