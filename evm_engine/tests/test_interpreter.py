from __future__ import annotations

from typing import Tuple

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from evm_engine.db.kv import MemoryKV
from evm_engine.precompiles.registry import default_registry
from evm_engine.runtime.dispatcher import Dispatcher
from evm_engine.state.adapter import StateAdapter
from evm_engine.types.context import BlockContext, TxContext
from evm_engine.vm.asm import assemble
from evm_engine.vm.env import ExecEnv
from evm_engine.vm.frame import CallKind, FrameResult, Message

from .util import CHAIN_ID

CALLER = b"\x11" * 20
CONTRACT = b"\x22" * 20
U256 = 2**256

RETURN_TOP = "PUSH1 0 MSTORE PUSH1 32 PUSH1 0 RETURN"


def execute(code: bytes, *, data: bytes = b"", gas: int = 1_000_000, value: int = 0,
            static: bool = False) -> Tuple[FrameResult, StateAdapter]:
    kv = MemoryKV()
    state = StateAdapter(kv)
    h = state.begin_overlay()
    state.set_code(CONTRACT, code)
    state.set_balance(CALLER, 10**18)
    state.commit(h)
    state.begin_overlay()
    env = ExecEnv(
        state=state,
        block=BlockContext(number=7, timestamp=1_234, chain_id=CHAIN_ID),
        tx=TxContext(origin=CALLER, gas_price=3),
    )
    kind = CallKind.STATICCALL if static else CallKind.CALL
    msg = Message(kind, CALLER, CONTRACT, CONTRACT, value, data, gas, 0, is_static=static)
    return Dispatcher(env, default_registry()).execute(msg), state


def top(source: str) -> int:
    result, _ = execute(assemble(f"{source} {RETURN_TOP}"))
    assert result.success, result
    return int.from_bytes(result.output, "big")


@pytest.mark.parametrize("source,expected", [
    ("PUSH1 1 PUSH32 0xffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff ADD", 0),
    ("PUSH1 1 PUSH1 0 SUB", U256 - 1),
    ("PUSH1 0 PUSH1 5 DIV", 0),
    ("PUSH1 0 PUSH1 5 MOD", 0),
    ("PUSH1 3 PUSH1 10 DIV", 3),
    ("PUSH1 2 PUSH1 0 NOT SDIV", 0),
    ("PUSH1 0 NOT PUSH32 0x8000000000000000000000000000000000000000000000000000000000000000 SDIV",
     2**255),
    ("PUSH1 8 PUSH1 10 PUSH1 10 ADDMOD", 4),
    ("PUSH1 255 PUSH1 2 EXP", 2**255),
    ("PUSH1 0xff PUSH1 0 SIGNEXTEND", U256 - 1),
    ("PUSH1 0x7f PUSH1 0 SIGNEXTEND", 0x7f),
    ("PUSH2 0x1234 PUSH1 30 BYTE", 0x12),
    ("PUSH1 1 PUSH1 255 SHL", 2**255),
    ("PUSH1 0 NOT PUSH1 4 SAR", U256 - 1),
    ("PUSH1 0 NOT PUSH1 252 SHR", 0xF),
    ("PUSH1 0 NOT PUSH1 1 SLT", 0),
    ("PUSH1 1 PUSH1 0 NOT SLT", 1),
])
def test_word_arithmetic_wraps_modulo_2_256(source, expected):
    assert top(source) == expected


def test_environment_opcodes():
    assert top("CHAINID") == CHAIN_ID
    assert top("NUMBER") == 7
    assert top("TIMESTAMP") == 1_234
    assert top("GASPRICE") == 3
    assert top("CALLER") == int.from_bytes(CALLER, "big")
    assert top("ADDRESS") == int.from_bytes(CONTRACT, "big")


def test_blockhash_outside_window_is_zero():
    assert top("PUSH1 7 BLOCKHASH") == 0
    assert top("PUSH1 6 BLOCKHASH") != 0


def test_calldata_and_callvalue():
    code = assemble(f"PUSH1 0 CALLDATALOAD CALLVALUE ADD {RETURN_TOP}")
    result, _ = execute(code, data=(40).to_bytes(32, "big"), value=2)
    assert int.from_bytes(result.output, "big") == 42


def test_revert_keeps_output_and_returns_gas():
    code = assemble("PUSH1 1 PUSH1 0 SSTORE PUSH2 0xbeef PUSH1 0 MSTORE PUSH1 2 PUSH1 30 REVERT")
    result, state = execute(code, gas=100_000)
    assert not result.success and result.reverted
    assert result.output == b"\xbe\xef"
    assert result.gas_left > 0
    assert state.read_storage(CONTRACT, 0) == 0


@pytest.mark.parametrize("source,error", [
    ("INVALID", "INVALID_OPCODE"),
    ("PUSH1 3 JUMP", "INVALID_JUMP"),
    ("ADD", "STACK_UNDERFLOW"),
    ("PUSH1 1 PUSH1 0 PUSH1 0 RETURNDATACOPY", "RETURN_DATA_OUT_OF_BOUNDS"),
])
def test_exceptional_halts_consume_all_gas(source, error):
    result, _ = execute(assemble(source), gas=50_000)
    assert not result.success
    assert not result.reverted
    assert result.error == error
    assert result.gas_left == 0


def test_jump_into_push_data_is_invalid():
    # offset 4 is the 0x5b operand of the second PUSH1
    result, _ = execute(assemble("PUSH1 4 JUMP PUSH1 0x5b"))
    assert result.error == "INVALID_JUMP"


def test_stack_overflow():
    result, _ = execute(assemble("PUSH1 1 " * 1025))
    assert result.error == "STACK_OVERFLOW"


def test_out_of_gas_on_memory_expansion():
    result, _ = execute(assemble("PUSH1 1 PUSH4 0xffffffff MSTORE"), gas=100_000)
    assert result.error == "OUT_OF_GAS"


def test_static_frame_rejects_writes():
    result, _ = execute(assemble("PUSH1 1 PUSH1 0 SSTORE"), static=True)
    assert result.error == "WRITE_PROTECTION"


def test_sstore_refuses_to_run_on_stipend():
    # 2300 gas left after the pushes means SSTORE must fail even for a no-op
    result, _ = execute(assemble("PUSH1 0 PUSH1 0 SSTORE"), gas=2306)
    assert result.error == "OUT_OF_GAS"


def test_sstore_gas_costs():
    set_gas = 1_000_000 - execute(assemble("PUSH1 1 PUSH1 0 SSTORE"))[0].gas_left
    noop_gas = 1_000_000 - execute(assemble("PUSH1 0 PUSH1 0 SSTORE"))[0].gas_left
    assert set_gas == 20000 + 6
    assert noop_gas == 800 + 6


def test_sha3_and_msize():
    assert top("PUSH1 0 PUSH1 0 SHA3") == int(
        "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470", 16)
    assert top("PUSH1 1 PUSH1 63 MSTORE8 MSIZE") == 64


def test_log_records_topics_and_data():
    code = assemble("PUSH2 0xabcd PUSH1 0 MSTORE PUSH1 7 PUSH1 2 PUSH1 30 LOG1 STOP")
    result, state = execute(code)
    assert result.success
    (log,) = state.logs()
    assert log.address == CONTRACT
    assert log.topics == ((7).to_bytes(32, "big"),)
    assert log.data == b"\xab\xcd"


@given(code=st.binary(min_size=0, max_size=64), gas=st.integers(0, 60_000))
@settings(max_examples=150, deadline=None)
def test_random_bytecode_never_spends_more_than_its_gas(code, gas):
    result, state = execute(code, gas=gas)
    assert 0 <= result.gas_left <= gas
    assert state.depth() == 1
    if not result.success and not result.reverted:
        assert result.gas_left == 0
