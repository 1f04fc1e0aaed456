"""
System operations: 0xf0–0xff.

CALL-family and CREATE-family handlers do not run the child. They settle the
caller's side (memory, static gas, the forwarded budget) and return a request
that the dispatcher turns into a new frame.
"""

from __future__ import annotations

from evm_engine.errors import InvalidOpcode, WriteProtection
from evm_engine.gas.meter import all_but_one_64th
from evm_engine.types.address import word_to_address
from evm_engine.types.word import words_for

from ..env import ExecEnv
from ..frame import CallKind, CallRequest, CreateRequest, Frame, Halt
from .common import charge_memory, ensure_writable


# ----------------------------------------------------------------------------
# Creation
# ----------------------------------------------------------------------------


def _create(env: ExecEnv, frame: Frame, kind: CallKind) -> CreateRequest:
    ensure_writable(frame, kind.name)
    s = frame.stack
    value, offset, size = s.pop(), s.pop(), s.pop()
    salt = s.pop() if kind is CallKind.CREATE2 else None
    charge_memory(env, frame, offset, size)
    if kind is CallKind.CREATE2 and size:
        frame.meter.debit(env.schedule.sha3_word * words_for(size), reason="CREATE2 hashing")
    init_code = frame.memory.read(offset, size)
    gas = all_but_one_64th(frame.meter.remaining)
    frame.meter.debit(gas)
    return CreateRequest(kind=kind, gas=gas, value=value, init_code=init_code, salt=salt)


def op_create(env: ExecEnv, frame: Frame) -> CreateRequest:
    return _create(env, frame, CallKind.CREATE)


def op_create2(env: ExecEnv, frame: Frame) -> CreateRequest:
    return _create(env, frame, CallKind.CREATE2)


# ----------------------------------------------------------------------------
# Calls
# ----------------------------------------------------------------------------


def _call(env: ExecEnv, frame: Frame, kind: CallKind) -> CallRequest:
    s = frame.stack
    requested = s.pop()
    to = word_to_address(s.pop())
    value = s.pop() if kind in (CallKind.CALL, CallKind.CALLCODE) else 0
    in_off, in_size, out_off, out_size = s.pop(), s.pop(), s.pop(), s.pop()

    if kind is CallKind.CALL and value and frame.is_static:
        raise WriteProtection("CALL with value")

    charge_memory(env, frame, in_off, in_size)
    charge_memory(env, frame, out_off, out_size)

    gs = env.schedule
    extra = 0
    if value:
        extra += gs.call_value
    if kind is CallKind.CALL and value and env.state.is_empty(to):
        extra += gs.new_account
    if extra:
        frame.meter.debit(extra, reason=kind.name)

    gas = min(requested, all_but_one_64th(frame.meter.remaining))
    frame.meter.debit(gas)
    return CallRequest(
        kind=kind,
        gas=gas,
        code_address=to,
        value=value,
        input=frame.memory.read(in_off, in_size),
        ret_offset=out_off,
        ret_size=out_size,
        stipend=gs.call_stipend if value else 0,
    )


def op_call(env: ExecEnv, frame: Frame) -> CallRequest:
    return _call(env, frame, CallKind.CALL)


def op_callcode(env: ExecEnv, frame: Frame) -> CallRequest:
    return _call(env, frame, CallKind.CALLCODE)


def op_delegatecall(env: ExecEnv, frame: Frame) -> CallRequest:
    return _call(env, frame, CallKind.DELEGATECALL)


def op_staticcall(env: ExecEnv, frame: Frame) -> CallRequest:
    return _call(env, frame, CallKind.STATICCALL)


# ----------------------------------------------------------------------------
# Halting
# ----------------------------------------------------------------------------


def _output(env: ExecEnv, frame: Frame) -> bytes:
    s = frame.stack
    offset, size = s.pop(), s.pop()
    charge_memory(env, frame, offset, size)
    return frame.memory.read(offset, size)


def op_return(env: ExecEnv, frame: Frame) -> Halt:
    return Halt(output=_output(env, frame))


def op_revert(env: ExecEnv, frame: Frame) -> Halt:
    return Halt(output=_output(env, frame), reverted=True)


def op_invalid(env: ExecEnv, frame: Frame) -> None:
    raise InvalidOpcode(0xFE)


def op_selfdestruct(env: ExecEnv, frame: Frame) -> Halt:
    ensure_writable(frame, "SELFDESTRUCT")
    beneficiary = word_to_address(frame.stack.pop())
    state = env.state
    balance = state.get_balance(frame.address)
    if balance and state.is_empty(beneficiary):
        frame.meter.debit(env.schedule.new_account, reason="SELFDESTRUCT")
    if not state.is_destroyed(frame.address):
        state.add_refund(env.schedule.selfdestruct_refund)
    if beneficiary != frame.address:
        state.transfer(frame.address, beneficiary, balance)
    else:
        # Sending to itself burns the balance.
        state.set_balance(frame.address, 0)
    state.mark_destroyed(frame.address)
    return Halt()


__all__ = [
    "op_create", "op_create2", "op_call", "op_callcode", "op_delegatecall",
    "op_staticcall", "op_return", "op_revert", "op_invalid", "op_selfdestruct",
]
