"""
evm_engine.vm.frame - call frames and the requests exchanged with the dispatcher.

The interpreter never recurses. When a frame reaches CALL/CREATE it returns a
`CallRequest` or `CreateRequest`; the dispatcher opens the child and, once the
child is finished, hands a `FrameResult` back through `Frame.pending`.

    Message      : immutable description of one frame's inputs
    Frame        : mutable execution state (pc, stack, memory, meter, ...)
    CallRequest  : CALL / CALLCODE / DELEGATECALL / STATICCALL from a running frame
    CreateRequest: CREATE / CREATE2 from a running frame
    Halt         : the frame stopped (STOP/RETURN/REVERT/SELFDESTRUCT)
    FrameResult  : what a finished child reports to its parent
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Union

from evm_engine.gas.meter import GasMeter

from .memory import Memory
from .stack import Stack


class CallKind(str, Enum):
    CALL = "call"
    CALLCODE = "callcode"
    DELEGATECALL = "delegatecall"
    STATICCALL = "staticcall"
    CREATE = "create"
    CREATE2 = "create2"

    @property
    def is_create(self) -> bool:
        return self in (CallKind.CREATE, CallKind.CREATE2)


@dataclass(frozen=True)
class Message:
    """
    Inputs of one frame.

    - `target` is the storage/balance context (ADDRESS).
    - `code_address` is where the code came from (differs for DELEGATECALL/CALLCODE).
    - `value` is CALLVALUE; `transfers_value` is False for DELEGATECALL, whose
      value is only apparent.
    - For creations `data` is the init code and `target` the new address.
    """
    kind: CallKind
    caller: bytes
    target: bytes
    code_address: bytes
    value: int
    data: bytes
    gas: int
    depth: int
    is_static: bool = False
    transfers_value: bool = True
    salt: Optional[int] = None


@dataclass(frozen=True)
class CallRequest:
    kind: CallKind
    gas: int
    code_address: bytes
    value: int
    input: bytes
    ret_offset: int
    ret_size: int
    # Stipend added on top of `gas` for value transfers; already excluded from the parent's debit.
    stipend: int = 0


@dataclass(frozen=True)
class CreateRequest:
    kind: CallKind
    gas: int
    value: int
    init_code: bytes
    salt: Optional[int] = None


@dataclass(frozen=True)
class Halt:
    """Frame termination. `reverted` distinguishes REVERT from STOP/RETURN."""
    output: bytes = b""
    reverted: bool = False


@dataclass(frozen=True)
class FrameResult:
    success: bool
    output: bytes = b""
    gas_left: int = 0
    error: Optional[str] = None
    created_address: Optional[bytes] = None

    @property
    def reverted(self) -> bool:
        return not self.success and self.error is None


Request = Union[CallRequest, CreateRequest]
StepResult = Union[Halt, CallRequest, CreateRequest]


@dataclass
class Frame:
    msg: Message
    code: bytes
    jumpdests: FrozenSet[int]
    meter: GasMeter
    overlay: int
    stack: Stack = field(default_factory=Stack)
    memory: Memory = field(default_factory=Memory)
    pc: int = 0
    return_data: bytes = b""
    pending: Optional[Request] = None

    @property
    def address(self) -> bytes:
        return self.msg.target

    @property
    def is_static(self) -> bool:
        return self.msg.is_static

    @property
    def depth(self) -> int:
        return self.msg.depth


__all__ = [
    "CallKind",
    "Message",
    "CallRequest",
    "CreateRequest",
    "Halt",
    "FrameResult",
    "Frame",
    "Request",
    "StepResult",
]
