"""
evm_engine.precompiles.base - the precompile interface.

A precompile is any object with a `name`, `required_gas(input)` and
`run(input, ctx)`. The dispatcher charges `required_gas` first (failing the
frame with OutOfGas when it exceeds the frame budget), then calls `run`.
Malformed input raises PrecompileError; the frame fails and its gas is spent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from evm_engine.state.adapter import StateAdapter


def precompile_address(n: int) -> bytes:
    """0x00..0n as a 20-byte address."""
    return n.to_bytes(20, "big")


@dataclass(frozen=True)
class PrecompileContext:
    caller: bytes
    address: bytes
    value: int
    state: StateAdapter
    is_static: bool = False


class Precompile(ABC):
    name: str = "precompile"

    @abstractmethod
    def required_gas(self, data: bytes) -> int:
        ...

    @abstractmethod
    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        ...

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"<{type(self).__name__} {self.name}>"


def pad_right(data: bytes, size: int, offset: int = 0) -> bytes:
    """`size` bytes of `data` from `offset`, zero-filled past its end."""
    chunk = data[offset:offset + size] if offset < len(data) else b""
    return chunk + b"\x00" * (size - len(chunk))


def words(size: int) -> int:
    return (size + 31) // 32


__all__ = ["Precompile", "PrecompileContext", "precompile_address", "pad_right", "words"]
