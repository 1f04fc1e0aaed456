"""
evm_engine.vm.env - what the instruction handlers can see besides their frame.
"""

from __future__ import annotations

from dataclasses import dataclass

from evm_engine.gas.schedule import ISTANBUL, GasSchedule
from evm_engine.state.adapter import StateAdapter
from evm_engine.types.context import BlockContext, TxContext


@dataclass
class ExecEnv:
    state: StateAdapter
    block: BlockContext
    tx: TxContext
    schedule: GasSchedule = ISTANBUL


__all__ = ["ExecEnv"]
