"""Arithmetic: 0x00–0x0b."""

from __future__ import annotations

from evm_engine.types.word import U256_MAX, UINT256_CEIL, to_signed, to_unsigned

from ..env import ExecEnv
from ..frame import Frame, Halt


def op_stop(env: ExecEnv, frame: Frame) -> Halt:
    return Halt()


def op_add(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = s.pop(), s.pop()
    s.push((a + b) & U256_MAX)


def op_mul(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = s.pop(), s.pop()
    s.push((a * b) & U256_MAX)


def op_sub(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = s.pop(), s.pop()
    s.push((a - b) & U256_MAX)


def op_div(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = s.pop(), s.pop()
    s.push(0 if b == 0 else a // b)


def op_sdiv(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = to_signed(s.pop()), to_signed(s.pop())
    if b == 0:
        s.push(0)
        return
    q = abs(a) // abs(b)
    s.push(to_unsigned(-q if (a < 0) != (b < 0) else q))


def op_mod(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = s.pop(), s.pop()
    s.push(0 if b == 0 else a % b)


def op_smod(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b = to_signed(s.pop()), to_signed(s.pop())
    if b == 0:
        s.push(0)
        return
    r = abs(a) % abs(b)
    s.push(to_unsigned(-r if a < 0 else r))


def op_addmod(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b, n = s.pop(), s.pop(), s.pop()
    s.push(0 if n == 0 else (a + b) % n)


def op_mulmod(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    a, b, n = s.pop(), s.pop(), s.pop()
    s.push(0 if n == 0 else (a * b) % n)


def op_exp(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    base, exponent = s.pop(), s.pop()
    if exponent:
        frame.meter.debit(env.schedule.exp_byte * ((exponent.bit_length() + 7) // 8), reason="EXP")
    s.push(pow(base, exponent, UINT256_CEIL))


def op_signextend(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    b, x = s.pop(), s.pop()
    if b < 31:
        bit = b * 8 + 7
        mask = (1 << bit) - 1
        x = (x | ~mask) & U256_MAX if x & (1 << bit) else x & mask
    s.push(x)


__all__ = [
    "op_stop", "op_add", "op_mul", "op_sub", "op_div", "op_sdiv", "op_mod",
    "op_smod", "op_addmod", "op_mulmod", "op_exp", "op_signextend",
]
