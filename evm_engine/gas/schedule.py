"""
evm_engine.gas.schedule - Istanbul gas constants with file/explicit overrides.

Overview
--------
The interpreter never hard-codes prices; it reads them from a frozen
`GasSchedule`. The built-in defaults are the Istanbul values (EIP-1884,
EIP-2200, EIP-2028). A YAML or JSON file may override any subset:

    # gas.yaml
    meta:
      notes: "cheaper storage for a benchmark run"
    costs:
      sload: 200
      sstore_set: 5000

Precedence is last-wins: defaults < file contents < explicit overrides.
Unknown keys, negative values, bools and floats are rejected.

Usage
-----
    from evm_engine.gas.schedule import load_gas_schedule
    gs = load_gas_schedule()                       # defaults (+ EVM_ENGINE_GAS_SCHEDULE)
    gs = load_gas_schedule("gas.yaml", overrides={"sload": 200})
    gs.sload
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from evm_engine.types.word import U64_MAX


@dataclass(frozen=True)
class GasSchedule:
    """
    Immutable gas price table.

    Tier names follow the Yellow Paper (zero/base/verylow/low/mid/high).
    """

    # -- tiers
    zero: int = 0
    base: int = 2
    verylow: int = 3
    low: int = 5
    mid: int = 8
    high: int = 10

    # -- account access (EIP-1884)
    balance: int = 700
    ext_code: int = 700
    ext_code_hash: int = 700
    sload: int = 800
    self_balance: int = 5

    # -- misc instructions
    jumpdest: int = 1
    blockhash: int = 20
    exp: int = 10
    exp_byte: int = 50
    sha3: int = 30
    sha3_word: int = 6
    copy_word: int = 3
    log: int = 375
    log_topic: int = 375
    log_data: int = 8

    # -- memory: words * memory + words^2 // quad_coeff_div
    memory: int = 3
    quad_coeff_div: int = 512

    # -- storage (EIP-2200)
    sstore_set: int = 20000
    sstore_reset: int = 5000
    sstore_clears_refund: int = 15000
    sstore_sentry: int = 2300

    # -- calls & creation
    call: int = 700
    call_value: int = 9000
    call_stipend: int = 2300
    new_account: int = 25000
    create: int = 32000
    code_deposit: int = 200
    selfdestruct: int = 5000
    selfdestruct_refund: int = 24000

    # -- transaction intrinsic (EIP-2028)
    tx: int = 21000
    tx_create: int = 32000
    tx_data_zero: int = 4
    tx_data_nonzero: int = 16

    # ---------- derived ----------

    @property
    def sstore_noop(self) -> int:
        """EIP-2200 'dirty' / no-op cost equals the SLOAD price."""
        return self.sload

    def memory_cost(self, words: int) -> int:
        return words * self.memory + (words * words) // self.quad_coeff_div

    def intrinsic_gas(self, data: bytes, *, is_create: bool) -> int:
        zeros = data.count(0)
        g = self.tx + zeros * self.tx_data_zero + (len(data) - zeros) * self.tx_data_nonzero
        if is_create:
            g += self.tx_create
        return g

    # ---------- conversions ----------

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def build(cls, costs: Mapping[str, Any]) -> "GasSchedule":
        known = {f.name for f in fields(cls)}
        clean: Dict[str, int] = {}
        for k, v in costs.items():
            if k not in known:
                raise KeyError(f"unknown gas schedule key: {k!r}")
            if isinstance(v, bool) or not isinstance(v, int):
                raise TypeError(f"costs.{k}: cost must be int")
            if v < 0 or v > U64_MAX:
                raise ValueError(f"costs.{k}: cost must be a non-negative u64")
            clean[k] = v
        if clean.get("quad_coeff_div", 1) == 0:
            raise ValueError("costs.quad_coeff_div must be positive")
        return replace(cls(), **clean)


ISTANBUL = GasSchedule()


# ------------------------------ helpers --------------------------------------


def _load_yaml_or_json(path: Path) -> Dict[str, Any]:
    txt = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        loaded = yaml.safe_load(txt)
    else:
        loaded = json.loads(txt)
    if not isinstance(loaded, dict):
        raise ValueError(f"{path.name}: root must be a mapping")
    return loaded


@lru_cache(maxsize=8)
def _file_costs(path: Path) -> Dict[str, Any]:
    data = _load_yaml_or_json(path)
    costs = data.get("costs", data if "meta" not in data else {})
    if not isinstance(costs, dict):
        raise ValueError(f"{path.name}: 'costs' must be a mapping")
    return {str(k): v for k, v in costs.items()}


# ------------------------------ public API -----------------------------------


def load_gas_schedule(
    path: Optional[str | Path] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
) -> GasSchedule:
    """
    Build a GasSchedule.

    Parameters
    ----------
    path:
        YAML/JSON file with a `costs` mapping (or flat keys at the root). When
        None, the EVM_ENGINE_GAS_SCHEDULE path from the config is used if set.
    overrides:
        Explicit costs applied last.
    """
    if path is None:
        from evm_engine.config import get_config

        path = get_config().gas_schedule_path
    merged: Dict[str, Any] = {}
    if path is not None:
        merged.update(_file_costs(Path(path).expanduser().resolve()))
    if overrides:
        merged.update({str(k): v for k, v in overrides.items()})
    if not merged:
        return ISTANBUL
    return GasSchedule.build(merged)


__all__ = ["GasSchedule", "ISTANBUL", "load_gas_schedule"]
