"""
evm_engine.vm.opcodes - static 256-entry dispatch table.

Each entry is an `OpInfo(handler, name, stack_in, stack_out, gas)` where `gas`
names the GasSchedule field holding the instruction's static cost. Dynamic
parts (memory, copies, EXP bytes, SSTORE, calls) are charged by the handler.
Unassigned opcodes map to None and raise InvalidOpcode when executed.

`static_costs(schedule)` resolves the `gas` names into a flat list once per
schedule; `jumpdests(code)` returns the valid JUMPDEST offsets, skipping PUSH
immediates.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Callable, FrozenSet, List, NamedTuple, Optional, Tuple

from evm_engine.gas.schedule import GasSchedule

from .env import ExecEnv
from .frame import Frame
from .instructions import arithmetic as A
from .instructions import bitwise as B
from .instructions import block as K
from .instructions import environment as E
from .instructions import flow as F
from .instructions import log as L
from .instructions import system as S

PUSH1 = 0x60
PUSH32 = 0x7F
JUMPDEST = 0x5B


class OpInfo(NamedTuple):
    handler: Callable[[ExecEnv, Frame], object]
    name: str
    stack_in: int
    stack_out: int
    gas: str


def _build_table() -> Tuple[Optional[OpInfo], ...]:
    t: List[Optional[OpInfo]] = [None] * 256

    def op(code: int, handler, name: str, i: int, o: int, gas: str) -> None:
        t[code] = OpInfo(handler, name, i, o, gas)

    # 0x00 arithmetic
    op(0x00, A.op_stop, "STOP", 0, 0, "zero")
    op(0x01, A.op_add, "ADD", 2, 1, "verylow")
    op(0x02, A.op_mul, "MUL", 2, 1, "low")
    op(0x03, A.op_sub, "SUB", 2, 1, "verylow")
    op(0x04, A.op_div, "DIV", 2, 1, "low")
    op(0x05, A.op_sdiv, "SDIV", 2, 1, "low")
    op(0x06, A.op_mod, "MOD", 2, 1, "low")
    op(0x07, A.op_smod, "SMOD", 2, 1, "low")
    op(0x08, A.op_addmod, "ADDMOD", 3, 1, "mid")
    op(0x09, A.op_mulmod, "MULMOD", 3, 1, "mid")
    op(0x0A, A.op_exp, "EXP", 2, 1, "exp")
    op(0x0B, A.op_signextend, "SIGNEXTEND", 2, 1, "low")

    # 0x10 comparison & bitwise
    op(0x10, B.op_lt, "LT", 2, 1, "verylow")
    op(0x11, B.op_gt, "GT", 2, 1, "verylow")
    op(0x12, B.op_slt, "SLT", 2, 1, "verylow")
    op(0x13, B.op_sgt, "SGT", 2, 1, "verylow")
    op(0x14, B.op_eq, "EQ", 2, 1, "verylow")
    op(0x15, B.op_iszero, "ISZERO", 1, 1, "verylow")
    op(0x16, B.op_and, "AND", 2, 1, "verylow")
    op(0x17, B.op_or, "OR", 2, 1, "verylow")
    op(0x18, B.op_xor, "XOR", 2, 1, "verylow")
    op(0x19, B.op_not, "NOT", 1, 1, "verylow")
    op(0x1A, B.op_byte, "BYTE", 2, 1, "verylow")
    op(0x1B, B.op_shl, "SHL", 2, 1, "verylow")
    op(0x1C, B.op_shr, "SHR", 2, 1, "verylow")
    op(0x1D, B.op_sar, "SAR", 2, 1, "verylow")

    # 0x20 hashing
    op(0x20, E.op_sha3, "SHA3", 2, 1, "sha3")

    # 0x30 environment
    op(0x30, E.op_address, "ADDRESS", 0, 1, "base")
    op(0x31, E.op_balance, "BALANCE", 1, 1, "balance")
    op(0x32, E.op_origin, "ORIGIN", 0, 1, "base")
    op(0x33, E.op_caller, "CALLER", 0, 1, "base")
    op(0x34, E.op_callvalue, "CALLVALUE", 0, 1, "base")
    op(0x35, E.op_calldataload, "CALLDATALOAD", 1, 1, "verylow")
    op(0x36, E.op_calldatasize, "CALLDATASIZE", 0, 1, "base")
    op(0x37, E.op_calldatacopy, "CALLDATACOPY", 3, 0, "verylow")
    op(0x38, E.op_codesize, "CODESIZE", 0, 1, "base")
    op(0x39, E.op_codecopy, "CODECOPY", 3, 0, "verylow")
    op(0x3A, E.op_gasprice, "GASPRICE", 0, 1, "base")
    op(0x3B, E.op_extcodesize, "EXTCODESIZE", 1, 1, "ext_code")
    op(0x3C, E.op_extcodecopy, "EXTCODECOPY", 4, 0, "ext_code")
    op(0x3D, E.op_returndatasize, "RETURNDATASIZE", 0, 1, "base")
    op(0x3E, E.op_returndatacopy, "RETURNDATACOPY", 3, 0, "verylow")
    op(0x3F, E.op_extcodehash, "EXTCODEHASH", 1, 1, "ext_code_hash")

    # 0x40 block
    op(0x40, K.op_blockhash, "BLOCKHASH", 1, 1, "blockhash")
    op(0x41, K.op_coinbase, "COINBASE", 0, 1, "base")
    op(0x42, K.op_timestamp, "TIMESTAMP", 0, 1, "base")
    op(0x43, K.op_number, "NUMBER", 0, 1, "base")
    op(0x44, K.op_difficulty, "DIFFICULTY", 0, 1, "base")
    op(0x45, K.op_gaslimit, "GASLIMIT", 0, 1, "base")
    op(0x46, K.op_chainid, "CHAINID", 0, 1, "base")
    op(0x47, K.op_selfbalance, "SELFBALANCE", 0, 1, "self_balance")

    # 0x50 stack, memory, storage, flow
    op(0x50, F.op_pop, "POP", 1, 0, "base")
    op(0x51, F.op_mload, "MLOAD", 1, 1, "verylow")
    op(0x52, F.op_mstore, "MSTORE", 2, 0, "verylow")
    op(0x53, F.op_mstore8, "MSTORE8", 2, 0, "verylow")
    op(0x54, F.op_sload, "SLOAD", 1, 1, "sload")
    op(0x55, F.op_sstore, "SSTORE", 2, 0, "zero")
    op(0x56, F.op_jump, "JUMP", 1, 0, "mid")
    op(0x57, F.op_jumpi, "JUMPI", 2, 0, "high")
    op(0x58, F.op_pc, "PC", 0, 1, "base")
    op(0x59, F.op_msize, "MSIZE", 0, 1, "base")
    op(0x5A, F.op_gas, "GAS", 0, 1, "base")
    op(0x5B, F.op_jumpdest, "JUMPDEST", 0, 0, "jumpdest")

    for n in range(1, 33):
        op(0x5F + n, F.make_push(n), f"PUSH{n}", 0, 1, "verylow")
    for n in range(1, 17):
        op(0x7F + n, F.make_dup(n), f"DUP{n}", n, n + 1, "verylow")
        op(0x8F + n, F.make_swap(n), f"SWAP{n}", n + 1, n + 1, "verylow")
    for n in range(5):
        op(0xA0 + n, L.make_log(n), f"LOG{n}", n + 2, 0, "log")

    # 0xf0 system
    op(0xF0, S.op_create, "CREATE", 3, 1, "create")
    op(0xF1, S.op_call, "CALL", 7, 1, "call")
    op(0xF2, S.op_callcode, "CALLCODE", 7, 1, "call")
    op(0xF3, S.op_return, "RETURN", 2, 0, "zero")
    op(0xF4, S.op_delegatecall, "DELEGATECALL", 6, 1, "call")
    op(0xF5, S.op_create2, "CREATE2", 4, 1, "create")
    op(0xFA, S.op_staticcall, "STATICCALL", 6, 1, "call")
    op(0xFD, S.op_revert, "REVERT", 2, 0, "zero")
    op(0xFE, S.op_invalid, "INVALID", 0, 0, "zero")
    op(0xFF, S.op_selfdestruct, "SELFDESTRUCT", 1, 0, "selfdestruct")
    return tuple(t)


OPCODES: Tuple[Optional[OpInfo], ...] = _build_table()
OPCODE_BY_NAME = {info.name: code for code, info in enumerate(OPCODES) if info is not None}


@lru_cache(maxsize=8)
def static_costs(schedule: GasSchedule) -> Tuple[int, ...]:
    return tuple(0 if info is None else getattr(schedule, info.gas) for info in OPCODES)


@lru_cache(maxsize=1024)
def jumpdests(code: bytes) -> FrozenSet[int]:
    """Offsets of JUMPDEST bytes that are not inside PUSH immediates."""
    out = set()
    i, n = 0, len(code)
    while i < n:
        b = code[i]
        if b == JUMPDEST:
            out.add(i)
        elif PUSH1 <= b <= PUSH32:
            i += b - PUSH1 + 1
        i += 1
    return frozenset(out)


__all__ = ["OpInfo", "OPCODES", "OPCODE_BY_NAME", "static_costs", "jumpdests"]
