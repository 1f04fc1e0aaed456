"""
evm_engine.types.word - 256-bit word arithmetic helpers.

The interpreter keeps words as plain Python ints in [0, 2**256). Every helper
here either wraps modulo 2**256 (EVM semantics) or validates the range; none of
them trap on overflow.
"""

from __future__ import annotations

from typing import NewType

# ------------------------------- constants -----------------------------------

UINT256_CEIL: int = 1 << 256
U256_MAX: int = UINT256_CEIL - 1
UINT255_CEIL: int = 1 << 255
U128_MAX: int = (1 << 128) - 1
U64_MAX: int = (1 << 64) - 1

Word = NewType("Word", int)


def is_u256(n: int) -> bool:
    """Return True iff 0 <= n <= U256_MAX."""
    return isinstance(n, int) and 0 <= n <= U256_MAX


def to_signed(n: int) -> int:
    """Two's-complement view of a word."""
    return n - UINT256_CEIL if n & UINT255_CEIL else n


def to_unsigned(n: int) -> int:
    return n & U256_MAX


def word_to_bytes(n: int) -> bytes:
    """Big-endian 32-byte encoding."""
    return (n & U256_MAX).to_bytes(32, "big")


def ceil32(n: int) -> int:
    rem = n % 32
    return n if rem == 0 else n + 32 - rem


def words_for(size: int) -> int:
    """Number of 32-byte words covering `size` bytes."""
    return (size + 31) // 32


__all__ = [
    "UINT256_CEIL",
    "U256_MAX",
    "UINT255_CEIL",
    "U128_MAX",
    "U64_MAX",
    "Word",
    "is_u256",
    "to_signed",
    "to_unsigned",
    "word_to_bytes",
    "ceil32",
    "words_for",
]
