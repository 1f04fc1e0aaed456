"""
Host KV interface & engine key layout
=====================================

The engine persists everything through a byte-keyed store owned by the host.
This module defines the Protocols the host must satisfy, an in-memory backend
used by tests and benchmarks, and the canonical key namespaces:

- CONFIG   : engine state (owner, chain id, bridge provider, upgrade delay),
             staged upgrade, benchmark block context
- NONCE    : address → 32-byte BE nonce
- BALANCE  : address → 32-byte BE balance
- CODE     : address → raw code
- STORAGE  : address, generation, slot → 32-byte BE value (zero values are deleted)
- GENERATION : address → BE u32, bumped when an account is destroyed so old
             storage becomes unreachable without iterating it
- NEP141_ERC20 / ERC20_NEP141 : bridged-token mapping, both directions

Key building
------------
Every key starts with a VERSION byte followed by a one-byte namespace; parts
are then appended with a uvarint length prefix, which keeps composite keys
unambiguous and lexicographically grouped:

>>> NONCE.key(b"\\x01" * 20)[:2] == bytes([VERSION, KeyPrefix.NONCE])
True

Batching
--------
`KV.batch()` returns a context manager. Exiting without an exception commits
all staged puts/deletes at once; an escaping exception discards them.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, List, Optional, Protocol, Tuple, Union, runtime_checkable

VERSION = 0x07


class KeyPrefix(IntEnum):
    CONFIG = 0x00
    NONCE = 0x01
    BALANCE = 0x02
    CODE = 0x03
    STORAGE = 0x04
    GENERATION = 0x05
    NEP141_ERC20 = 0x06
    ERC20_NEP141 = 0x07


# ---------------------------------------------------------------------------
# Prefix helpers
# ---------------------------------------------------------------------------


class Prefix:
    """
    A logical namespace: VERSION ‖ prefix byte.

    .raw gives the raw bytes prefix.
    .key(*parts) builds a composite key: raw + ∑ (uvarlen | part_bytes).
    """

    __slots__ = ("_raw",)

    def __init__(self, prefix: KeyPrefix) -> None:
        self._raw = bytes([VERSION, int(prefix)])

    @property
    def raw(self) -> bytes:
        return self._raw

    def key(self, *parts: Union[bytes, bytearray, memoryview, str, int]) -> bytes:
        out = bytearray(self._raw)
        for p in parts:
            pb = _part_to_bytes(p)
            out.extend(_uvarint_len(len(pb)))
            out.extend(pb)
        return bytes(out)


def _part_to_bytes(p: Union[bytes, bytearray, memoryview, str, int]) -> bytes:
    if isinstance(p, (bytes, bytearray, memoryview)):
        return bytes(p)
    if isinstance(p, str):
        return p.encode("utf-8")
    if isinstance(p, int):
        if p < 0:
            raise ValueError("negative ints not supported in key parts")
        return _int_big_endian_minimal(p)
    raise TypeError(f"unsupported key part type: {type(p)!r}")


def _int_big_endian_minimal(n: int) -> bytes:
    if n == 0:
        return b"\x00"
    return n.to_bytes((n.bit_length() + 7) // 8, "big")


def _uvarint_len(n: int) -> bytes:
    """LEB128-style unsigned length prefix."""
    if n < 0:
        raise ValueError("length must be non-negative")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(0x80 | b)
        else:
            out.append(b)
            break
    return bytes(out)


def be_u32(n: int) -> bytes:
    if not (0 <= n < (1 << 32)):
        raise ValueError("be_u32 out of range")
    return n.to_bytes(4, "big")


def be_u64(n: int) -> bytes:
    if not (0 <= n < (1 << 64)):
        raise ValueError("be_u64 out of range")
    return n.to_bytes(8, "big")


def be_u256(n: int) -> bytes:
    if not (0 <= n < (1 << 256)):
        raise ValueError("be_u256 out of range")
    return n.to_bytes(32, "big")


CONFIG = Prefix(KeyPrefix.CONFIG)
NONCE = Prefix(KeyPrefix.NONCE)
BALANCE = Prefix(KeyPrefix.BALANCE)
CODE = Prefix(KeyPrefix.CODE)
STORAGE = Prefix(KeyPrefix.STORAGE)
GENERATION = Prefix(KeyPrefix.GENERATION)
NEP141_ERC20 = Prefix(KeyPrefix.NEP141_ERC20)
ERC20_NEP141 = Prefix(KeyPrefix.ERC20_NEP141)

# CONFIG sub-keys
# - CONFIG.key(b"STATE")          -> CBOR engine state
# - CONFIG.key(b"CODE")           -> staged upgrade code
# - CONFIG.key(b"CODE_STAGE")     -> be_u64(unlock index)
# - CONFIG.key(b"BLOCK")          -> CBOR benchmark block context


# ---------------------------------------------------------------------------
# KV protocols & Batch
# ---------------------------------------------------------------------------


@runtime_checkable
class ReadOnlyKV(Protocol):
    def get(self, key: bytes) -> Optional[bytes]:
        """Fetch value or None if missing."""
        ...


@runtime_checkable
class Batch(Protocol):
    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KV(ReadOnlyKV, Protocol):
    def put(self, key: bytes, value: bytes) -> None:
        ...

    def delete(self, key: bytes) -> None:
        """Remove key if present (idempotent)."""
        ...

    def batch(self) -> Batch:
        ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class MemoryBatch:
    """Buffered writes applied to the parent MemoryKV on commit."""

    __slots__ = ("_kv", "_ops", "_done")

    def __init__(self, kv: "MemoryKV") -> None:
        self._kv = kv
        self._ops: List[Tuple[bytes, Optional[bytes]]] = []
        self._done = False

    def put(self, key: bytes, value: bytes) -> None:
        self._ops.append((bytes(key), bytes(value)))

    def delete(self, key: bytes) -> None:
        self._ops.append((bytes(key), None))

    def commit(self) -> None:
        if self._done:
            return
        for k, v in self._ops:
            if v is None:
                self._kv._data.pop(k, None)
            else:
                self._kv._data[k] = v
        self._kv.writes += len(self._ops)
        self._kv.commits += 1
        self._ops.clear()
        self._done = True

    def rollback(self) -> None:
        self._ops.clear()
        self._done = True

    def __enter__(self) -> "MemoryBatch":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None


class MemoryKV:
    """
    Dict-backed KV. `commits` and `writes` count batch activity so tests can
    assert that a root frame flushes exactly once.
    """

    def __init__(self, initial: Optional[Dict[bytes, bytes]] = None) -> None:
        self._data: Dict[bytes, bytes] = dict(initial or {})
        self.commits = 0
        self.writes = 0

    def get(self, key: bytes) -> Optional[bytes]:
        return self._data.get(bytes(key))

    def put(self, key: bytes, value: bytes) -> None:
        self._data[bytes(key)] = bytes(value)
        self.writes += 1

    def delete(self, key: bytes) -> None:
        self._data.pop(bytes(key), None)
        self.writes += 1

    def batch(self) -> MemoryBatch:
        return MemoryBatch(self)

    def snapshot(self) -> Dict[bytes, bytes]:
        """Copy of the full contents (tests compare before/after)."""
        return dict(self._data)

    def __len__(self) -> int:
        return len(self._data)


__all__ = [
    "VERSION",
    "KeyPrefix",
    "Prefix",
    "CONFIG",
    "NONCE",
    "BALANCE",
    "CODE",
    "STORAGE",
    "GENERATION",
    "NEP141_ERC20",
    "ERC20_NEP141",
    "ReadOnlyKV",
    "KV",
    "Batch",
    "MemoryKV",
    "MemoryBatch",
    "be_u32",
    "be_u64",
    "be_u256",
]
