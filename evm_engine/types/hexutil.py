"""
evm_engine.types.hexutil - hex <-> bytes helpers shared by the JSON-friendly
`to_dict()` / `from_dict()` methods of the record types.
"""

from __future__ import annotations

from typing import Optional, Union

HexLike = Union[str, bytes, bytearray, memoryview]


def hex_to_bytes(v: HexLike) -> bytes:
    if isinstance(v, (bytes, bytearray, memoryview)):
        return bytes(v)
    if isinstance(v, str):
        s = v.strip()
        if s.startswith(("0x", "0X")):
            s = s[2:]
        if len(s) % 2:
            s = "0" + s  # tolerate odd-length hex
        try:
            return bytes.fromhex(s)
        except ValueError as e:
            raise ValueError(f"invalid hex string: {v!r}") from e
    raise TypeError(f"expected hex-like value, got {type(v).__name__}")


def bytes_to_hex(b: Optional[bytes]) -> Optional[str]:
    if b is None:
        return None
    return "0x" + bytes(b).hex()


__all__ = ["HexLike", "hex_to_bytes", "bytes_to_hex"]
