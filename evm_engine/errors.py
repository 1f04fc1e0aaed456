"""
evm_engine.errors - typed exceptions for the three failure tiers of the engine.

Failures travel as *typed exceptions* and are converted into ExecutionOutcome
fields (frame-level tiers) or surfaced to the host (boundary tier). The classes
are dependency-free so the interpreter, gas meter and state adapter can import
them without cycles.

Hierarchy
---------
ExecError (base)
 ├─ VMError                : opcode-level, terminates the current frame only
 │   ├─ OutOfGas
 │   ├─ StackUnderflow / StackOverflow
 │   ├─ InvalidOpcode
 │   ├─ InvalidJump
 │   ├─ WriteProtection
 │   └─ ReturnDataOutOfBounds
 ├─ CallError              : frame fails to start (or to finish a creation)
 │   ├─ InsufficientBalance
 │   ├─ CallDepthExceeded
 │   ├─ PrecompileError
 │   ├─ CreateCollision
 │   └─ CodeSizeExceeded
 ├─ StateAdapterError      : misuse of overlay handles (a bug, never a tx outcome)
 └─ EngineError            : boundary rejection, carries an ERR_* code for the host
     └─ BalanceOverflowError

Notes
-----
* VMError and CallError never escape the dispatcher; they become a failed frame
  and the parent keeps running.
* EngineError is raised by entry points *before* any state mutation; the host
  sees `code` verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ExecError(Exception):
    """
    Base engine error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'OUT_OF_GAS', 'ERR_NOT_ALLOWED').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "execution error"
    code: str = "EXEC_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for outcomes/logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


# -------- opcode level -------------------------------------------------------


class VMError(ExecError):
    """Exceptional halt of the executing frame."""

    def __init__(self, message: str = "vm error", *, code: str = "VM_ERROR",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class OutOfGas(VMError):
    """
    Available gas is below the cost of the next metered step.

    Typical triggers:
      - static opcode cost or memory expansion exceeds the frame budget
      - code deposit cost at the end of a creation
      - SSTORE with gas left at or below the call stipend
    """
    def __init__(self, message: str = "out of gas", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="OUT_OF_GAS", data=data)


class StackUnderflow(VMError):
    def __init__(self, message: str = "stack underflow", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="STACK_UNDERFLOW", data=data)


class StackOverflow(VMError):
    def __init__(self, message: str = "stack overflow", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="STACK_OVERFLOW", data=data)


class InvalidOpcode(VMError):
    def __init__(self, opcode: int, *, data: Optional[Dict[str, Any]] = None):
        d = {"opcode": f"0x{opcode:02x}"}
        if data:
            d.update(data)
        super().__init__(f"invalid opcode 0x{opcode:02x}", code="INVALID_OPCODE", data=d)
        self.opcode = opcode


class InvalidJump(VMError):
    def __init__(self, dest: int, *, data: Optional[Dict[str, Any]] = None):
        d = {"dest": dest}
        if data:
            d.update(data)
        super().__init__(f"invalid jump destination {dest}", code="INVALID_JUMP", data=d)
        self.dest = dest


class WriteProtection(VMError):
    """State-modifying instruction attempted inside a static frame."""

    def __init__(self, op: str, *, data: Optional[Dict[str, Any]] = None):
        d = {"op": op}
        if data:
            d.update(data)
        super().__init__(f"{op} not allowed in static context", code="WRITE_PROTECTION", data=d)


class ReturnDataOutOfBounds(VMError):
    def __init__(self, message: str = "return data out of bounds", *,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="RETURN_DATA_OUT_OF_BOUNDS", data=data)


# -------- call level ---------------------------------------------------------


class CallError(ExecError):
    """A frame that could not start (or could not complete a creation)."""

    def __init__(self, message: str = "call failed", *, code: str = "CALL_ERROR",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class InsufficientBalance(CallError):
    def __init__(
        self,
        message: str = "insufficient balance",
        *,
        address: Optional[bytes] = None,
        needed: Optional[int] = None,
        available: Optional[int] = None,
    ):
        d: Dict[str, Any] = {}
        if address is not None:
            d["address"] = "0x" + address.hex()
        if needed is not None:
            d["needed"] = needed
        if available is not None:
            d["available"] = available
        super().__init__(message, code="INSUFFICIENT_BALANCE", data=d or None)


class CallDepthExceeded(CallError):
    def __init__(self, depth: int, limit: int):
        super().__init__(
            f"call depth {depth} exceeds limit {limit}",
            code="CALL_DEPTH_EXCEEDED",
            data={"depth": depth, "limit": limit},
        )


class PrecompileError(CallError):
    """Malformed input to a precompiled contract."""

    def __init__(self, message: str = "precompile failure", *, name: Optional[str] = None):
        super().__init__(message, code="PRECOMPILE_ERROR",
                         data={"precompile": name} if name else None)


class CreateCollision(CallError):
    def __init__(self, address: bytes):
        super().__init__(
            "contract address already in use",
            code="CREATE_COLLISION",
            data={"address": "0x" + address.hex()},
        )


class CodeSizeExceeded(CallError):
    def __init__(self, size: int, limit: int):
        super().__init__(
            f"code size {size} exceeds limit {limit}",
            code="CODE_SIZE_EXCEEDED",
            data={"size": size, "limit": limit},
        )


# -------- state adapter ------------------------------------------------------


class StateAdapterError(ExecError):
    def __init__(self, message: str = "state adapter misuse", *,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="STATE_ADAPTER", data=data)


# -------- boundary -----------------------------------------------------------


class EngineError(ExecError):
    """
    Rejection of a whole host invocation.

    `code` is one of the stable ERR_* strings returned to the host, e.g.
    'ERR_NOT_ALLOWED', 'ERR_INVALID_SIGNATURE', 'ERR_NOT_READY'.
    """
    def __init__(self, code: str, message: Optional[str] = None, *,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message or code, code=code, data=data)


class BalanceOverflowError(EngineError):
    def __init__(self, message: str = "balance arithmetic overflow"):
        super().__init__("ERR_BALANCE_OVERFLOW", message)


__all__ = [
    "ExecError",
    "VMError",
    "OutOfGas",
    "StackUnderflow",
    "StackOverflow",
    "InvalidOpcode",
    "InvalidJump",
    "WriteProtection",
    "ReturnDataOutOfBounds",
    "CallError",
    "InsufficientBalance",
    "CallDepthExceeded",
    "PrecompileError",
    "CreateCollision",
    "CodeSizeExceeded",
    "StateAdapterError",
    "EngineError",
    "BalanceOverflowError",
]
