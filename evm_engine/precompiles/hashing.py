"""SHA-256 (0x02), RIPEMD-160 (0x03) and identity (0x04)."""

from __future__ import annotations

from evm_engine.crypto import ripemd160, sha256

from .base import Precompile, PrecompileContext, words


class Sha256(Precompile):
    name = "sha256"

    def required_gas(self, data: bytes) -> int:
        return 60 + 12 * words(len(data))

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        return sha256(data)


class Ripemd160(Precompile):
    name = "ripemd160"

    def required_gas(self, data: bytes) -> int:
        return 600 + 120 * words(len(data))

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        return ripemd160(data).rjust(32, b"\x00")


class Identity(Precompile):
    name = "identity"

    def required_gas(self, data: bytes) -> int:
        return 15 + 3 * words(len(data))

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        return bytes(data)


__all__ = ["Sha256", "Ripemd160", "Identity"]
