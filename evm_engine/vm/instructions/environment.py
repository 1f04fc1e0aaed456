"""Environment information and hashing: 0x20, 0x30–0x3f."""

from __future__ import annotations

from evm_engine.crypto import keccak256
from evm_engine.errors import ReturnDataOutOfBounds
from evm_engine.types.address import address_to_word, word_to_address
from evm_engine.types.word import words_for

from ..env import ExecEnv
from ..frame import Frame
from .common import charge_copy, charge_memory


def op_sha3(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    offset, size = s.pop(), s.pop()
    charge_memory(env, frame, offset, size)
    if size:
        frame.meter.debit(env.schedule.sha3_word * words_for(size), reason="SHA3")
    s.push(int.from_bytes(keccak256(frame.memory.read(offset, size)), "big"))


def op_address(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(address_to_word(frame.address))


def op_balance(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    s.push(env.state.get_balance(word_to_address(s.pop())))


def op_origin(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(address_to_word(env.tx.origin))


def op_caller(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(address_to_word(frame.msg.caller))


def op_callvalue(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(frame.msg.value)


def op_calldataload(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    i = s.pop()
    data = frame.msg.data
    chunk = data[i:i + 32] if i < len(data) else b""
    s.push(int.from_bytes(chunk.ljust(32, b"\x00"), "big"))


def op_calldatasize(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(len(frame.msg.data))


def _copy_to_memory(env: ExecEnv, frame: Frame, src: bytes) -> None:
    s = frame.stack
    mem_off, src_off, size = s.pop(), s.pop(), s.pop()
    charge_memory(env, frame, mem_off, size)
    charge_copy(env, frame, size)
    frame.memory.write_padded(mem_off, size, src, src_off)


def op_calldatacopy(env: ExecEnv, frame: Frame) -> None:
    _copy_to_memory(env, frame, frame.msg.data)


def op_codesize(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(len(frame.code))


def op_codecopy(env: ExecEnv, frame: Frame) -> None:
    _copy_to_memory(env, frame, frame.code)


def op_gasprice(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(env.tx.gas_price)


def op_extcodesize(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    s.push(len(env.state.get_code(word_to_address(s.pop()))))


def op_extcodecopy(env: ExecEnv, frame: Frame) -> None:
    addr = word_to_address(frame.stack.pop())
    _copy_to_memory(env, frame, env.state.get_code(addr))


def op_returndatasize(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(len(frame.return_data))


def op_returndatacopy(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    mem_off, src_off, size = s.pop(), s.pop(), s.pop()
    if src_off + size > len(frame.return_data):
        raise ReturnDataOutOfBounds(data={"offset": src_off, "size": size,
                                          "available": len(frame.return_data)})
    charge_memory(env, frame, mem_off, size)
    charge_copy(env, frame, size)
    frame.memory.write(mem_off, frame.return_data[src_off:src_off + size])


def op_extcodehash(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    addr = word_to_address(s.pop())
    if env.state.is_empty(addr):
        s.push(0)
    else:
        s.push(int.from_bytes(env.state.get_code_hash(addr), "big"))


__all__ = [
    "op_sha3", "op_address", "op_balance", "op_origin", "op_caller",
    "op_callvalue", "op_calldataload", "op_calldatasize", "op_calldatacopy",
    "op_codesize", "op_codecopy", "op_gasprice", "op_extcodesize",
    "op_extcodecopy", "op_returndatasize", "op_returndatacopy", "op_extcodehash",
]
