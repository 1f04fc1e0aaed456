"""LOG0–LOG4: 0xa0–0xa4."""

from __future__ import annotations

from typing import Callable

from evm_engine.types.events import Log
from evm_engine.types.word import word_to_bytes

from ..env import ExecEnv
from ..frame import Frame
from .common import charge_memory, ensure_writable


def make_log(n: int) -> Callable[[ExecEnv, Frame], None]:
    def op_log(env: ExecEnv, frame: Frame) -> None:
        ensure_writable(frame, f"LOG{n}")
        s = frame.stack
        offset, size = s.pop(), s.pop()
        topics = [word_to_bytes(s.pop()) for _ in range(n)]
        charge_memory(env, frame, offset, size)
        gs = env.schedule
        frame.meter.debit(gs.log_topic * n + gs.log_data * size, reason=f"LOG{n}")
        env.state.add_log(Log(address=frame.address, topics=topics,
                              data=frame.memory.read(offset, size)))
    op_log.__name__ = f"op_log{n}"
    return op_log


__all__ = ["make_log"]
