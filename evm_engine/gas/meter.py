"""
evm_engine.gas.meter - per-frame GasMeter (debit/credit), OOG semantics.

Every call frame owns one GasMeter sized to the gas it was given. It supports:
- deterministic debits that raise OutOfGas when insufficient gas remains,
- crediting back the unused gas of a finished child frame, and
- `consume_all()` for exceptional halts (the frame forfeits its whole budget).

SSTORE/SELFDESTRUCT refunds are *not* tracked here; they live in the state
overlay so they roll back with the frame. Root-level capping happens in
`settle(...)`.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from evm_engine.errors import OutOfGas
from evm_engine.types.word import U64_MAX


class GasSettlement(NamedTuple):
    """Result of root-level settlement."""
    used: int
    refund_applied: int
    charged: int


class GasMeter:
    """
    Deterministic gas meter.

    Parameters
    ----------
    limit : int
        Gas made available to the frame. Must fit in u64.

    Notes
    -----
    - `remaining` never goes negative; a debit past it raises OutOfGas and
      leaves the meter unchanged.
    - `credit` only returns gas previously handed to a child, so `used`
      never drops below zero.
    """

    __slots__ = ("_limit", "_used")

    def __init__(self, limit: int) -> None:
        lim = int(limit)
        if lim < 0 or lim > U64_MAX:
            raise ValueError("gas limit must be a non-negative u64")
        self._limit: int = lim
        self._used: int = 0

    # --------------------------- properties ---------------------------------

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int:
        return self._limit - self._used

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0

    # --------------------------- operations ---------------------------------

    def debit(self, amount: int, *, reason: Optional[str] = None) -> None:
        """Consume `amount` gas, raising OutOfGas if insufficient remains."""
        amt = int(amount)
        if amt < 0:
            raise ValueError("gas amount must be non-negative")
        if amt > self.remaining:
            raise OutOfGas(_oog_message(reason), data={"needed": amt, "remaining": self.remaining})
        self._used += amt

    def credit(self, amount: int) -> None:
        """Return unused gas (e.g. what a child frame did not spend)."""
        amt = int(amount)
        if amt < 0:
            raise ValueError("credit amount must be non-negative")
        if amt > self._used:
            raise ValueError("cannot credit more gas than was consumed")
        self._used -= amt

    def consume_all(self) -> None:
        """Exceptional halt: the frame forfeits everything it was given."""
        self._used = self._limit

    # --------------------------- settlement ---------------------------------

    def settle(self, refund: int, *, quotient: int = 2) -> GasSettlement:
        """
        Apply the refund counter at the root.

        The effective refund is `min(refund, used // quotient)`.
        """
        if quotient <= 0:
            raise ValueError("refund quotient must be positive")
        applied = min(max(0, int(refund)), self._used // quotient)
        return GasSettlement(self._used, applied, self._used - applied)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"GasMeter(limit={self._limit}, used={self._used}, remaining={self.remaining})"


def _oog_message(reason: Optional[str]) -> str:
    return f"out of gas: {reason}" if reason else "out of gas"


def all_but_one_64th(gas: int) -> int:
    """EIP-150: the most a frame may forward to a child."""
    return gas - gas // 64


__all__ = ["GasMeter", "GasSettlement", "all_but_one_64th"]
