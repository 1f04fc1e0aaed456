"""
evm_engine.state.adapter - nested overlays over the committed host view.

The StateAdapter is the transactional mapping between EVM-visible accounts and
storage and the host KV store. Every frame works inside its own overlay:

    h = state.begin_overlay()       # push a new, empty overlay
    state.write_storage(addr, 0, 1) # writes always target the innermost overlay
    state.commit(h)                 # merge into the parent overlay ...
    state.discard(h)                # ... or drop it without a trace

Reads resolve through the innermost overlay first, then its parents, then the
committed view (`CommittedState`). Committing the *outermost* overlay flushes
it to the host store in one batch; no other call writes to the host.

Key properties
--------------
- Copy-on-write accounts (records are copied into the overlay before mutation).
- Storage values are plain ints; a written zero is kept explicitly so net gas
  metering sees the current value instead of falling through.
- Logs and the SSTORE refund counter live in the overlay too, so both roll back
  with the frame that produced them.
- Handles are LIFO depth markers. Committing or discarding anything but the
  innermost overlay raises StateAdapterError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from evm_engine.db.kv import KV
from evm_engine.errors import InsufficientBalance, StateAdapterError
from evm_engine.types.events import Log
from evm_engine.types.outcome import AccountDiff, StateDiff
from evm_engine.types.word import is_u256

from .accounts import Account, compute_code_hash
from .backend import CommittedState


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


# =============================================================================
# Overlay model
# =============================================================================


@dataclass
class _Overlay:
    """
    A single layer.

    - `accounts`: copies of Account records modified in this layer.
    - `codes`: code installed in this layer.
    - `storage`: staged slot values (ints, zero kept explicitly).
    - `destroyed`: addresses that executed SELFDESTRUCT in this layer.
    - `logs`: emitted in this layer, in order.
    - `refund`: net SSTORE/SELFDESTRUCT refund delta (may be negative).
    """

    accounts: Dict[bytes, Account] = field(default_factory=dict)
    codes: Dict[bytes, bytes] = field(default_factory=dict)
    storage: Dict[bytes, Dict[int, int]] = field(default_factory=dict)
    destroyed: Set[bytes] = field(default_factory=set)
    logs: List[Log] = field(default_factory=list)
    refund: int = 0

    def to_diff(self) -> StateDiff:
        return StateDiff(
            accounts={
                a: AccountDiff(nonce=acc.nonce, balance=acc.balance, code=self.codes.get(a))
                for a, acc in self.accounts.items()
            },
            storage={a: dict(slots) for a, slots in self.storage.items()},
            destroyed=frozenset(self.destroyed),
        )


# =============================================================================
# Adapter
# =============================================================================


class StateAdapter:
    """
    Parameters
    ----------
    kv : KV
        The host store. Only the outermost commit writes to it.
    """

    def __init__(self, kv: KV) -> None:
        self._base = CommittedState(kv)
        self._layers: List[_Overlay] = []

    @property
    def committed(self) -> CommittedState:
        return self._base

    # --------------------------------------------------------------------- #
    # Overlay lifecycle
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        return len(self._layers)

    def begin_overlay(self) -> int:
        """Push a new overlay. Returns its handle (the new depth)."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def _pop(self, handle: int) -> _Overlay:
        if handle != len(self._layers) or handle < 1:
            raise StateAdapterError(
                "overlay handle is not the innermost overlay",
                data={"handle": handle, "depth": len(self._layers)},
            )
        return self._layers.pop()

    def commit(self, handle: int) -> StateDiff:
        """
        Commit the innermost overlay. A nested overlay merges into its parent;
        the outermost one is flushed to the host store. Returns the diff the
        committed overlay carried.
        """
        top = self._pop(handle)
        if self._layers:
            self._merge_layers(self._layers[-1], top)
        else:
            self._base.flush(top)
        return top.to_diff()

    def discard(self, handle: int) -> None:
        """Drop the innermost overlay. Never touches the host store."""
        self._pop(handle)

    def rollback_to(self, handle: int) -> None:
        """Discard `handle` and every overlay opened after it (unwinding after a host error)."""
        if handle < 1 or handle > len(self._layers):
            raise StateAdapterError(
                "unknown overlay handle", data={"handle": handle, "depth": len(self._layers)}
            )
        del self._layers[handle - 1:]

    @property
    def _top(self) -> _Overlay:
        if not self._layers:
            raise StateAdapterError("no open overlay; call begin_overlay() first")
        return self._layers[-1]

    # --------------------------------------------------------------------- #
    # Accounts
    # --------------------------------------------------------------------- #

    def read_account(self, address: bytes) -> Account:
        """Visible account record (do not mutate the returned object)."""
        addr = _b(address, name="address")
        for layer in reversed(self._layers):
            acc = layer.accounts.get(addr)
            if acc is not None:
                return acc
        return self._base.get_account(addr)

    def _account_for_write(self, addr: bytes) -> Account:
        top = self._top
        acc = top.accounts.get(addr)
        if acc is None:
            acc = self.read_account(addr).copy()
            top.accounts[addr] = acc
        return acc

    def get_nonce(self, address: bytes) -> int:
        return self.read_account(address).nonce

    def get_balance(self, address: bytes) -> int:
        return self.read_account(address).balance

    def is_empty(self, address: bytes) -> bool:
        return self.read_account(address).is_empty

    def has_code_or_nonce(self, address: bytes) -> bool:
        acc = self.read_account(address)
        return acc.nonce != 0 or acc.has_code

    def set_nonce(self, address: bytes, nonce: int) -> None:
        acc = self._account_for_write(_b(address, name="address"))
        if nonce < acc.nonce:
            raise StateAdapterError("nonce may not decrease")
        acc.nonce = nonce

    def increment_nonce(self, address: bytes) -> int:
        acc = self._account_for_write(_b(address, name="address"))
        acc.increment_nonce()
        return acc.nonce

    def set_balance(self, address: bytes, balance: int) -> None:
        if not is_u256(balance):
            raise ValueError("balance must be a u256")
        self._account_for_write(_b(address, name="address")).balance = balance

    def add_balance(self, address: bytes, amount: int) -> None:
        self._account_for_write(_b(address, name="address")).credit(amount)

    def sub_balance(self, address: bytes, amount: int) -> None:
        addr = _b(address, name="address")
        if self.read_account(addr).balance < amount:
            raise InsufficientBalance(address=addr, needed=amount,
                                      available=self.read_account(addr).balance)
        self._account_for_write(addr).debit(amount, address=addr)

    def transfer(self, src: bytes, dst: bytes, amount: int) -> None:
        """Move `amount` wei; raises InsufficientBalance without mutating."""
        if amount == 0:
            return
        self.sub_balance(src, amount)
        self.add_balance(dst, amount)

    # --------------------------------------------------------------------- #
    # Code
    # --------------------------------------------------------------------- #

    def get_code(self, address: bytes) -> bytes:
        addr = _b(address, name="address")
        for layer in reversed(self._layers):
            code = layer.codes.get(addr)
            if code is not None:
                return code
        return self._base.get_code(addr)

    def get_code_hash(self, address: bytes) -> bytes:
        return self.read_account(address).code_hash

    def set_code(self, address: bytes, code: bytes) -> None:
        addr = _b(address, name="address")
        code_b = _b(code, name="code")
        self._account_for_write(addr).code_hash = compute_code_hash(code_b)
        self._top.codes[addr] = code_b

    # --------------------------------------------------------------------- #
    # Storage
    # --------------------------------------------------------------------- #

    def read_storage(self, address: bytes, slot: int) -> int:
        addr = _b(address, name="address")
        for layer in reversed(self._layers):
            slots = layer.storage.get(addr)
            if slots is not None and slot in slots:
                return slots[slot]
        return self._base.get_storage(addr, slot)

    def original_storage(self, address: bytes, slot: int) -> int:
        """Committed value, i.e. the value at the start of the invocation."""
        return self._base.get_storage(_b(address, name="address"), slot)

    def write_storage(self, address: bytes, slot: int, value: int) -> None:
        if not is_u256(slot) or not is_u256(value):
            raise ValueError("storage slot and value must be u256")
        addr = _b(address, name="address")
        self._top.storage.setdefault(addr, {})[slot] = value

    # --------------------------------------------------------------------- #
    # Selfdestruct, logs, refunds
    # --------------------------------------------------------------------- #

    def mark_destroyed(self, address: bytes) -> None:
        self._top.destroyed.add(_b(address, name="address"))

    def is_destroyed(self, address: bytes) -> bool:
        addr = _b(address, name="address")
        return any(addr in layer.destroyed for layer in self._layers)

    def add_log(self, log: Log) -> None:
        self._top.logs.append(log)

    def logs(self) -> List[Log]:
        """All logs visible from the innermost overlay, oldest first."""
        out: List[Log] = []
        for layer in self._layers:
            out.extend(layer.logs)
        return out

    def add_refund(self, delta: int) -> None:
        self._top.refund += delta

    def refund_total(self) -> int:
        return max(0, sum(layer.refund for layer in self._layers))

    # --------------------------------------------------------------------- #
    # Internal merge
    # --------------------------------------------------------------------- #

    @staticmethod
    def _merge_layers(dst: _Overlay, src: _Overlay) -> None:
        """Merge `src` into its parent `dst` (nested commit)."""
        for addr, acc in src.accounts.items():
            dst.accounts[addr] = acc.copy()
        dst.codes.update(src.codes)
        for addr, writes in src.storage.items():
            dst.storage.setdefault(addr, {}).update(writes)
        dst.destroyed |= src.destroyed
        dst.logs.extend(src.logs)
        dst.refund += src.refund


__all__ = ["StateAdapter"]
