"""Comparison and bitwise logic: 0x10–0x1d."""

from __future__ import annotations

from evm_engine.types.word import U256_MAX, to_signed, to_unsigned

from ..env import ExecEnv
from ..frame import Frame


def op_lt(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = s.pop(), s.pop()
    s.push(1 if a < b else 0)


def op_gt(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = s.pop(), s.pop()
    s.push(1 if a > b else 0)


def op_slt(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = to_signed(s.pop()), to_signed(s.pop())
    s.push(1 if a < b else 0)


def op_sgt(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = to_signed(s.pop()), to_signed(s.pop())
    s.push(1 if a > b else 0)


def op_eq(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    s.push(1 if s.pop() == s.pop() else 0)


def op_iszero(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    s.push(1 if s.pop() == 0 else 0)


def op_and(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    s.push(s.pop() & s.pop())


def op_or(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    s.push(s.pop() | s.pop())


def op_xor(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    s.push(s.pop() ^ s.pop())


def op_not(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    s.push(U256_MAX ^ s.pop())


def op_byte(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    i, x = s.pop(), s.pop()
    s.push(0 if i >= 32 else (x >> (8 * (31 - i))) & 0xFF)


def op_shl(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    shift, value = s.pop(), s.pop()
    s.push(0 if shift >= 256 else (value << shift) & U256_MAX)


def op_shr(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    shift, value = s.pop(), s.pop()
    s.push(0 if shift >= 256 else value >> shift)


def op_sar(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    shift, value = s.pop(), to_signed(s.pop())
    if shift >= 256:
        s.push(U256_MAX if value < 0 else 0)
    else:
        s.push(to_unsigned(value >> shift))


__all__ = [
    "op_lt", "op_gt", "op_slt", "op_sgt", "op_eq", "op_iszero", "op_and",
    "op_or", "op_xor", "op_not", "op_byte", "op_shl", "op_shr", "op_sar",
]
