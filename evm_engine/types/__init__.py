"""
evm_engine.types - small, dependency-light record types shared across the engine.

Public surface (re-exported):
    ExecStatus                    : Enum - SUCCESS / REVERT / ERROR
    Log                           : Dataclass - (address, topics, data)
    BlockContext, TxContext       : Dataclasses - interpreter environment
    ExecutionOutcome, StateDiff   : Dataclasses - result of a root execution
    Wei, Balance, Fee, NEP141Wei, Yocto : checked amount types

Entry-point argument schemas live in `evm_engine.types.args` (they pull in cbor2).
"""

from __future__ import annotations

from .balance import Balance, Fee, NEP141Wei, Wei, Yocto
from .context import BlockContext, TxContext
from .events import Log
from .outcome import AccountDiff, ExecutionOutcome, StateDiff
from .status import ExecStatus

__all__ = [
    "ExecStatus",
    "Log",
    "BlockContext",
    "TxContext",
    "ExecutionOutcome",
    "StateDiff",
    "AccountDiff",
    "Wei",
    "Balance",
    "Fee",
    "NEP141Wei",
    "Yocto",
]
