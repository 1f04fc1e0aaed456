"""
evm_engine.precompiles - the Precompile Registry and the built-in contracts.

    0x01 ecrecover      0x04 identity      0x07 bn128 mul
    0x02 sha256         0x05 modexp        0x08 bn128 pairing
    0x03 ripemd160      0x06 bn128 add     0x09 blake2f
    keccak("exitToNear")[12:], keccak("exitToEthereum")[12:]  bridge exits
"""

from __future__ import annotations

from .base import Precompile, PrecompileContext, precompile_address
from .registry import PrecompileRegistry, default_registry

__all__ = [
    "Precompile",
    "PrecompileContext",
    "PrecompileRegistry",
    "default_registry",
    "precompile_address",
]
