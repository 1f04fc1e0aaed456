"""Block information: 0x40–0x47."""

from __future__ import annotations

from evm_engine.types.address import address_to_word

from ..env import ExecEnv
from ..frame import Frame


def op_blockhash(env: ExecEnv, frame: Frame) -> None:
    s = frame.stack
    height = s.pop()
    s.push(int.from_bytes(env.block.block_hash(height), "big"))


def op_coinbase(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(address_to_word(env.block.coinbase))


def op_timestamp(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(env.block.timestamp)


def op_number(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(env.block.number)


def op_difficulty(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(env.block.difficulty)


def op_gaslimit(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(env.block.gas_limit)


def op_chainid(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(env.block.chain_id)


def op_selfbalance(env: ExecEnv, frame: Frame) -> None:
    frame.stack.push(env.state.get_balance(frame.address))


__all__ = [
    "op_blockhash", "op_coinbase", "op_timestamp", "op_number",
    "op_difficulty", "op_gaslimit", "op_chainid", "op_selfbalance",
]
