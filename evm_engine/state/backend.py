"""
evm_engine.state.backend - the committed view of accounts, code and storage.

This is the only object that talks to the host KV for EVM state. Reads go
straight to the store; writes happen exclusively through `flush()`, which the
StateAdapter calls once, when the outermost overlay commits. Every flush is a
single host write batch.

Key layout (see evm_engine.db.kv)
---------------------------------

    NONCE      address                          -> be_u256(nonce)        (absent = 0)
    BALANCE    address                          -> be_u256(balance)      (absent = 0)
    CODE       address                          -> raw code              (absent = empty)
    GENERATION address                          -> be_u32(generation)    (absent = 0)
    STORAGE    address, be_u32(gen), slot(32)   -> be_u256(value)        (absent = 0)

Zero values are never stored: a nonce/balance/slot that becomes zero has its
key deleted. Destroying an account deletes its nonce/balance/code keys and bumps
the generation, which orphans every storage key written under the old one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional

from evm_engine.db.kv import (BALANCE, CODE, GENERATION, KV, NONCE, STORAGE,
                              Batch, be_u32, be_u256)

from .accounts import Account, compute_code_hash

if TYPE_CHECKING:  # pragma: no cover
    from .adapter import _Overlay


def _decode_u256(raw: Optional[bytes]) -> int:
    if raw is None:
        return 0
    return int.from_bytes(raw, "big")


class CommittedState:
    """
    Typed view over the host KV.

    Code hashes are cached per address because EXTCODEHASH/EXTCODESIZE and
    emptiness checks would otherwise re-read and re-hash code on every access.
    The cache is dropped for every address touched by a flush.
    """

    def __init__(self, kv: KV) -> None:
        self.kv = kv
        self._code_hash_cache: Dict[bytes, bytes] = {}

    # --- accounts ---

    def get_nonce(self, addr: bytes) -> int:
        return _decode_u256(self.kv.get(NONCE.key(addr)))

    def get_balance(self, addr: bytes) -> int:
        return _decode_u256(self.kv.get(BALANCE.key(addr)))

    def get_code(self, addr: bytes) -> bytes:
        return self.kv.get(CODE.key(addr)) or b""

    def get_code_hash(self, addr: bytes) -> bytes:
        ch = self._code_hash_cache.get(addr)
        if ch is None:
            ch = compute_code_hash(self.get_code(addr))
            self._code_hash_cache[addr] = ch
        return ch

    def get_account(self, addr: bytes) -> Account:
        return Account(
            nonce=self.get_nonce(addr),
            balance=self.get_balance(addr),
            code_hash=self.get_code_hash(addr),
        )

    # --- storage ---

    def get_generation(self, addr: bytes) -> int:
        raw = self.kv.get(GENERATION.key(addr))
        return 0 if raw is None else int.from_bytes(raw, "big")

    def _storage_key(self, addr: bytes, slot: int, generation: Optional[int] = None) -> bytes:
        gen = self.get_generation(addr) if generation is None else generation
        return STORAGE.key(addr, be_u32(gen), be_u256(slot))

    def get_storage(self, addr: bytes, slot: int) -> int:
        return _decode_u256(self.kv.get(self._storage_key(addr, slot)))

    # --- flush ---

    def flush(self, layer: "_Overlay") -> None:
        """Apply one overlay to the host store in a single batch."""
        with self.kv.batch() as b:
            for addr in sorted(layer.destroyed):
                self._destroy(b, addr)

            for addr in sorted(layer.accounts):
                if addr in layer.destroyed:
                    continue
                acc = layer.accounts[addr]
                _put_or_delete(b, NONCE.key(addr), acc.nonce)
                _put_or_delete(b, BALANCE.key(addr), acc.balance)

            for addr in sorted(layer.codes):
                if addr in layer.destroyed:
                    continue
                code = layer.codes[addr]
                if code:
                    b.put(CODE.key(addr), code)
                else:
                    b.delete(CODE.key(addr))

            for addr in sorted(layer.storage):
                if addr in layer.destroyed:
                    continue
                gen = self.get_generation(addr)
                for slot, value in sorted(layer.storage[addr].items()):
                    _put_or_delete(b, self._storage_key(addr, slot, gen), value)

        for addr in set(layer.destroyed) | set(layer.codes):
            self._code_hash_cache.pop(addr, None)

    def _destroy(self, b: Batch, addr: bytes) -> None:
        b.delete(NONCE.key(addr))
        b.delete(BALANCE.key(addr))
        b.delete(CODE.key(addr))
        b.put(GENERATION.key(addr), be_u32(self.get_generation(addr) + 1))


def _put_or_delete(b: Batch, key: bytes, value: int) -> None:
    if value == 0:
        b.delete(key)
    else:
        b.put(key, be_u256(value))


__all__ = ["CommittedState"]
