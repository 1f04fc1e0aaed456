from __future__ import annotations

import pytest

from evm_engine.vm.asm import assemble

from .util import USER, account_address, acting_as, call, deploy, fund, word

# Records who called it and with how much value.
LOGIC = assemble("CALLER PUSH1 0 SSTORE CALLVALUE PUSH1 1 SSTORE STOP")

# Runs the code at the address in calldata word 0; slot 2 = success.
DELEGATOR = assemble("""
    PUSH1 0 PUSH1 0 PUSH1 0 PUSH1 0 PUSH1 0 CALLDATALOAD GAS DELEGATECALL
    PUSH1 2 SSTORE STOP
""")

# Same, through CALLCODE with a value of 3.
CALLCODER = assemble("""
    PUSH1 0 PUSH1 0 PUSH1 0 PUSH1 0 PUSH1 3 PUSH1 0 CALLDATALOAD GAS CALLCODE
    PUSH1 2 SSTORE STOP
""")


def _slot(engine, contract: bytes, n: int) -> bytes:
    return engine.get_storage_at(contract, word(n))


@pytest.fixture
def user(engine, host) -> bytes:
    addr = account_address(USER)
    fund(engine, host, (addr, 100))
    return addr


def test_delegatecall_keeps_caller_value_and_storage_context(engine, host, user):
    logic = deploy(engine, LOGIC)
    proxy = deploy(engine, DELEGATOR)
    with acting_as(host, USER):
        out = call(engine, proxy, data=logic.rjust(32, b"\x00"), value=7)
    assert out.is_success
    assert _slot(engine, proxy, 0) == user.rjust(32, b"\x00")
    assert _slot(engine, proxy, 1) == word(7)
    assert _slot(engine, proxy, 2) == word(1)
    assert _slot(engine, logic, 0) == word(0)
    assert _slot(engine, logic, 1) == word(0)
    assert engine.get_balance(proxy) == 7
    assert engine.get_balance(logic) == 0


def test_callcode_runs_target_code_as_the_caller(engine, host, user):
    logic = deploy(engine, LOGIC)
    proxy = deploy(engine, CALLCODER)
    with acting_as(host, USER):
        out = call(engine, proxy, data=logic.rjust(32, b"\x00"), value=7)
    assert out.is_success
    assert _slot(engine, proxy, 0) == proxy.rjust(32, b"\x00")
    assert _slot(engine, proxy, 1) == word(3)
    assert _slot(engine, proxy, 2) == word(1)
    assert _slot(engine, logic, 0) == word(0)
    assert engine.get_balance(proxy) == 7
    assert engine.get_balance(logic) == 0
