"""Stack, memory, storage and flow operations: 0x50–0x5b, 0x60–0x9f."""

from __future__ import annotations

from typing import Callable

from evm_engine.errors import InvalidJump, OutOfGas

from ..env import ExecEnv
from ..frame import Frame
from .common import charge_memory, ensure_writable

Handler = Callable[[ExecEnv, Frame], None]


def op_pop(env: ExecEnv, frame: Frame) -> None:
    frame.stack.pop()


def op_mload(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    offset = s.pop()
    charge_memory(env, frame, offset, 32)
    s.push(frame.memory.read_word(offset))


def op_mstore(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    offset, value = s.pop(), s.pop()
    charge_memory(env, frame, offset, 32)
    frame.memory.write(offset, value.to_bytes(32, "big"))


def op_mstore8(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    offset, value = s.pop(), s.pop()
    charge_memory(env, frame, offset, 1)
    frame.memory.write(offset, bytes([value & 0xFF]))


def op_sload(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    s.push(env.state.read_storage(frame.address, s.pop()))


def op_sstore(env: ExecEnv, frame: Frame) -> None:
    """EIP-2200 net gas metering."""
    ensure_writable(frame, "SSTORE")
    gs = env.schedule
    if frame.meter.remaining <= gs.sstore_sentry:
        raise OutOfGas("SSTORE sentry", data={"remaining": frame.meter.remaining})

    s = frame.stack
    slot, new = s.pop(), s.pop()
    state = env.state
    current = state.read_storage(frame.address, slot)
    original = state.original_storage(frame.address, slot)

    refund = 0
    if current == new:
        cost = gs.sstore_noop
    elif original == current:
        if original == 0:
            cost = gs.sstore_set
        else:
            cost = gs.sstore_reset
            if new == 0:
                refund += gs.sstore_clears_refund
    else:
        cost = gs.sstore_noop
        if original != 0:
            if current == 0:
                refund -= gs.sstore_clears_refund
            elif new == 0:
                refund += gs.sstore_clears_refund
        if original == new:
            if original == 0:
                refund += gs.sstore_set - gs.sstore_noop
            else:
                refund += gs.sstore_reset - gs.sstore_noop

    frame.meter.debit(cost, reason="SSTORE")
    state.write_storage(frame.address, slot, new)
    if refund:
        state.add_refund(refund)


def op_jump(env: ExecEnv, frame: Frame) -> None:
    dest = frame.stack.pop()
    if dest not in frame.jumpdests:
        raise InvalidJump(dest)
    frame.pc = dest


def op_jumpi(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    dest, cond = s.pop(), s.pop()
    if cond:
        if dest not in frame.jumpdests:
            raise InvalidJump(dest)
        frame.pc = dest


def op_pc(env: ExecEnv, frame: Frame) -> None:
    # pc already points past this instruction
    frame.stack.push(frame.pc - 1)


def op_msize(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(len(frame.memory))


def op_gas(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(frame.meter.remaining)


def op_jumpdest(env: ExecEnv, frame: Frame) -> None:
    return None


def make_push(n: int) -> Handler:
    def op_push(env: ExecEnv, frame: Frame) -> None:
        start = frame.pc
        imm = frame.code[start:start + n]
        frame.pc = start + n
        # Immediates running past the end of code read as zero bytes.
        frame.stack.push(int.from_bytes(imm.ljust(n, b"\x00"), "big"))
    op_push.__name__ = f"op_push{n}"
    return op_push


def make_dup(n: int) -> Handler:
    def op_dup(env: ExecEnv, frame: Frame) -> None:
        frame.stack.dup(n)
    op_dup.__name__ = f"op_dup{n}"
    return op_dup


def make_swap(n: int) -> Handler:
    def op_swap(env: ExecEnv, frame: Frame) -> None:
        frame.stack.swap(n)
    op_swap.__name__ = f"op_swap{n}"
    return op_swap


__all__ = [
    "op_pop", "op_mload", "op_mstore", "op_mstore8", "op_sload", "op_sstore",
    "op_jump", "op_jumpi", "op_pc", "op_msize", "op_gas", "op_jumpdest",
    "make_push", "make_dup", "make_swap",
]
