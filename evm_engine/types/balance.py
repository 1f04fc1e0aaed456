"""
evm_engine.types.balance - checked value types for native and bridged amounts.

* `Wei`        : 256-bit EVM-side amount (account balances, call values).
* `NEP141Wei`  : 128-bit amount of the bridged fungible token on the host side.
* `Balance`    : 128-bit generic token amount (deposit amounts).
* `Fee`        : 128-bit relayer fee carried by deposit messages.
* `Yocto`      : 128-bit host native-currency amount (attached deposits).

All arithmetic is explicit: `checked_add`/`checked_sub` return None on
overflow/underflow, while the `+`/`-` operators raise `BalanceOverflowError`.
Nothing wraps silently; wrapping is reserved for interpreter words.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Type, TypeVar

from evm_engine.errors import BalanceOverflowError
from evm_engine.types.word import U128_MAX, U256_MAX

T = TypeVar("T", bound="_Amount")

ETH_TO_WEI: int = 10**18


@dataclass(frozen=True, order=True)
class _Amount:
    amount: int = 0

    MAX: ClassVar[int] = U128_MAX

    def __post_init__(self) -> None:
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise TypeError(f"{type(self).__name__} amount must be int")
        if not 0 <= self.amount <= self.MAX:
            raise BalanceOverflowError(f"{type(self).__name__} out of range: {self.amount}")

    def checked_add(self: T, other: T) -> Optional[T]:
        total = self.amount + _raw(other)
        return type(self)(total) if total <= self.MAX else None

    def checked_sub(self: T, other: T) -> Optional[T]:
        diff = self.amount - _raw(other)
        return type(self)(diff) if diff >= 0 else None

    def __add__(self: T, other: T) -> T:
        out = self.checked_add(other)
        if out is None:
            raise BalanceOverflowError()
        return out

    def __sub__(self: T, other: T) -> T:
        out = self.checked_sub(other)
        if out is None:
            raise BalanceOverflowError("balance arithmetic underflow")
        return out

    def into_u128(self) -> int:
        if self.amount > U128_MAX:
            raise BalanceOverflowError()
        return self.amount

    def __int__(self) -> int:
        return self.amount

    def __str__(self) -> str:
        return str(self.amount)

    @classmethod
    def zero(cls: Type[T]) -> T:
        return cls(0)


def _raw(v: object) -> int:
    if isinstance(v, _Amount):
        return v.amount
    if isinstance(v, int) and not isinstance(v, bool):
        return v
    raise TypeError(f"cannot combine amount with {type(v).__name__}")


@dataclass(frozen=True, order=True)
class Wei(_Amount):
    """256-bit EVM balance, serialized as 32 bytes big-endian."""

    MAX: ClassVar[int] = U256_MAX

    @classmethod
    def from_eth(cls, eth: int) -> Optional["Wei"]:
        """Whole ether to wei; None when the product leaves the 256-bit range."""
        total = int(eth) * ETH_TO_WEI
        return cls(total) if 0 <= total <= U256_MAX else None

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Wei":
        if len(raw) != 32:
            raise ValueError("Wei must be encoded as 32 bytes")
        return cls(int.from_bytes(raw, "big"))

    def to_bytes(self) -> bytes:
        return self.amount.to_bytes(32, "big")

    def try_into_u128(self) -> int:
        return self.into_u128()

    @classmethod
    def from_amount(cls, value: "_Amount") -> "Wei":
        """Widen any 128-bit amount (Balance, Fee, NEP141Wei) into wei."""
        return cls(value.amount)


@dataclass(frozen=True, order=True)
class NEP141Wei(_Amount):
    pass


@dataclass(frozen=True, order=True)
class Balance(_Amount):
    pass


@dataclass(frozen=True, order=True)
class Fee(_Amount):
    pass


@dataclass(frozen=True, order=True)
class Yocto(_Amount):
    pass


ZERO_WEI = Wei(0)
ZERO_BALANCE = Balance(0)
ZERO_NEP141_WEI = NEP141Wei(0)

__all__ = [
    "ETH_TO_WEI",
    "Wei",
    "NEP141Wei",
    "Balance",
    "Fee",
    "Yocto",
    "ZERO_WEI",
    "ZERO_BALANCE",
    "ZERO_NEP141_WEI",
]
