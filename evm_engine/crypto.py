"""
evm_engine.crypto - deterministic hashing wrappers used across the engine.

Goals
-----
- Strictly bytes-in, bytes-out (no implicit text/encoding).
- One place that decides which library provides each primitive.

Provided APIs
-------------
- keccak256(data) -> bytes            # pycryptodome Keccak (Ethereum flavour, not SHA3)
- keccak256_hex(data) -> str
- hash_concat_keccak256(*chunks) -> bytes
- sha256(data) -> bytes               # hashlib
- ripemd160(data) -> bytes            # pycryptodome (hashlib may lack it on OpenSSL 3)
"""

from __future__ import annotations

import hashlib
from typing import Iterable

from Crypto.Hash import RIPEMD160
from Crypto.Hash import keccak as _keccak


def _ensure_bytes(buf: object, name: str) -> bytes:
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    raise TypeError(f"{name} must be bytes-like (got {type(buf).__name__})")


def keccak256(data: bytes | bytearray | memoryview) -> bytes:
    """Keccak-256 (pre-SHA3 padding) as used by Ethereum."""
    h = _keccak.new(digest_bits=256)
    h.update(_ensure_bytes(data, "data"))
    return h.digest()


def keccak256_hex(data: bytes | bytearray | memoryview) -> str:
    return keccak256(data).hex()


def _hash_concat(chunks: Iterable[bytes | bytearray | memoryview], h) -> bytes:
    for i, c in enumerate(chunks):
        h.update(_ensure_bytes(c, f"chunk[{i}]"))
    return h.digest()


def hash_concat_keccak256(*chunks: bytes | bytearray | memoryview) -> bytes:
    return _hash_concat(chunks, _keccak.new(digest_bits=256))


def sha256(data: bytes | bytearray | memoryview) -> bytes:
    return hashlib.sha256(_ensure_bytes(data, "data")).digest()


def ripemd160(data: bytes | bytearray | memoryview) -> bytes:
    h = RIPEMD160.new()
    h.update(_ensure_bytes(data, "data"))
    return h.digest()


EMPTY_KECCAK: bytes = keccak256(b"")

__all__ = [
    "keccak256",
    "keccak256_hex",
    "hash_concat_keccak256",
    "sha256",
    "ripemd160",
    "EMPTY_KECCAK",
]
