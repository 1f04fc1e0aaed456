"""
evm_engine.gas - gas accounting.

- meter:    per-frame GasMeter (debit, credit, consume_all, settle)
- schedule: Istanbul GasSchedule with YAML/JSON overrides
"""

from __future__ import annotations

from .meter import GasMeter, GasSettlement, all_but_one_64th
from .schedule import ISTANBUL, GasSchedule, load_gas_schedule

__all__ = [
    "GasMeter",
    "GasSettlement",
    "all_but_one_64th",
    "GasSchedule",
    "ISTANBUL",
    "load_gas_schedule",
]
