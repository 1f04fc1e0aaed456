"""
evm_engine.vm - the Interpreter Core.

- stack / memory : operand stack (1024) and quadratic-cost memory
- frame          : Message, Frame and the call/create requests
- opcodes        : static dispatch table, JUMPDEST analysis
- interpreter    : run() / resume()
- asm            : label-aware assembler for built-in contracts and tests
"""

from __future__ import annotations

from .env import ExecEnv
from .frame import (CallKind, CallRequest, CreateRequest, Frame, FrameResult,
                    Halt, Message)
from .interpreter import resume, run

__all__ = [
    "ExecEnv",
    "CallKind",
    "CallRequest",
    "CreateRequest",
    "Frame",
    "FrameResult",
    "Halt",
    "Message",
    "run",
    "resume",
]
