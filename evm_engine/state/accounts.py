"""
evm_engine.state.accounts - Account records held by state overlays.

An Account holds three fields:

- nonce:      u256 counter (monotonically increasing)
- balance:    u256 wei amount
- code_hash:  keccak256 of the account code (EMPTY_CODE_HASH when there is none)

The code bytes themselves live next to the record (overlay `codes` map, host
CODE keys); the hash is cached here for EXTCODEHASH and emptiness checks.

All arithmetic is u256-bounded; nothing wraps.
"""

from __future__ import annotations

from dataclasses import dataclass

from evm_engine.crypto import EMPTY_KECCAK, keccak256
from evm_engine.errors import BalanceOverflowError, EngineError, InsufficientBalance
from evm_engine.types.word import U256_MAX, is_u256

EMPTY_CODE_HASH: bytes = EMPTY_KECCAK


def _ensure_u256(name: str, value: int) -> int:
    if not isinstance(value, int):
        raise TypeError(f"{name} must be int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    if not is_u256(value):
        raise OverflowError(f"{name} exceeds u256")
    return value


def compute_code_hash(code: bytes | bytearray | memoryview) -> bytes:
    if not code:
        return EMPTY_CODE_HASH
    return keccak256(bytes(code))


@dataclass(slots=True)
class Account:
    """
    Invariants:
    - nonce and balance are u256
    - code_hash is exactly 32 bytes
    """
    nonce: int = 0
    balance: int = 0
    code_hash: bytes = EMPTY_CODE_HASH

    def __post_init__(self) -> None:
        self.nonce = _ensure_u256("nonce", int(self.nonce))
        self.balance = _ensure_u256("balance", int(self.balance))
        ch = bytes(self.code_hash)
        if len(ch) != 32:
            raise ValueError("code_hash must be 32 bytes")
        self.code_hash = ch

    # ----------------------- predicates ------------------------------------ #

    @property
    def has_code(self) -> bool:
        return self.code_hash != EMPTY_CODE_HASH

    @property
    def is_empty(self) -> bool:
        """EIP-161 emptiness: no nonce, no balance, no code."""
        return self.nonce == 0 and self.balance == 0 and not self.has_code

    # ----------------------- field operations ------------------------------ #

    def increment_nonce(self) -> None:
        if self.nonce == U256_MAX:
            raise EngineError("ERR_NONCE_OVERFLOW", "nonce overflow (u256 max)")
        self.nonce += 1

    def credit(self, amount: int) -> None:
        amt = _ensure_u256("amount", int(amount))
        if self.balance + amt > U256_MAX:
            raise BalanceOverflowError("balance exceeds u256")
        self.balance += amt

    def debit(self, amount: int, *, address: bytes | None = None) -> None:
        amt = _ensure_u256("amount", int(amount))
        if self.balance < amt:
            raise InsufficientBalance(address=address, needed=amt, available=self.balance)
        self.balance -= amt

    def copy(self) -> "Account":
        return Account(nonce=self.nonce, balance=self.balance, code_hash=self.code_hash)

    # ----------------------- (de)serialization ----------------------------- #

    def to_dict(self) -> dict:
        return {
            "nonce": self.nonce,
            "balance": self.balance,
            "code_hash": self.code_hash.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        ch = data.get("code_hash", EMPTY_CODE_HASH)
        return cls(
            nonce=int(data.get("nonce", 0)),
            balance=int(data.get("balance", 0)),
            code_hash=bytes.fromhex(ch) if isinstance(ch, str) else bytes(ch),
        )


__all__ = ["Account", "EMPTY_CODE_HASH", "compute_code_hash"]
