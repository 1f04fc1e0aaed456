"""Helpers shared by the instruction handlers."""

from __future__ import annotations

from evm_engine.errors import WriteProtection
from evm_engine.types.word import words_for

from ..env import ExecEnv
from ..frame import Frame


def charge_memory(env: ExecEnv, frame: Frame, offset: int, size: int) -> None:
    frame.memory.expand(frame.meter, env.schedule, offset, size)


def charge_copy(env: ExecEnv, frame: Frame, size: int) -> None:
    if size:
        frame.meter.debit(env.schedule.copy_word * words_for(size), reason="copy")


def ensure_writable(frame: Frame, op: str) -> None:
    if frame.is_static:
        raise WriteProtection(op)


__all__ = ["charge_memory", "charge_copy", "ensure_writable"]
