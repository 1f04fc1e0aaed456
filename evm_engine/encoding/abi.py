"""
evm_engine.encoding.abi - the Solidity ABI subset used by the engine.

Built-in contracts, bridge exit logs and deposit-event parsing only ever need
head/tail encoding of a flat tuple of:

    address, bool, uint<N>, bytes32, bytes, string

Nested arrays and tuples are not supported. Decoding is strict: offsets and
lengths must stay inside the buffer, and static values must be canonically
padded (otherwise ValueError).
"""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from evm_engine.crypto import keccak256

_DYNAMIC = ("bytes", "string")


def function_selector(signature: str) -> bytes:
    return keccak256(signature.encode("ascii"))[:4]


def event_topic(signature: str) -> bytes:
    return keccak256(signature.encode("ascii"))


def _uint_bits(t: str) -> int:
    bits = int(t[4:] or 256)
    if bits % 8 or not 8 <= bits <= 256:
        raise ValueError(f"unsupported type {t}")
    return bits


def _encode_static(t: str, v: Any) -> bytes:
    if t == "address":
        raw = bytes(v)
        if len(raw) != 20:
            raise ValueError("address must be 20 bytes")
        return raw.rjust(32, b"\x00")
    if t == "bool":
        return (1 if v else 0).to_bytes(32, "big")
    if t == "bytes32":
        raw = bytes(v)
        if len(raw) > 32:
            raise ValueError("bytes32 value too long")
        return raw.ljust(32, b"\x00")
    if t.startswith("uint"):
        n = int(v)
        if n < 0 or n >= 1 << _uint_bits(t):
            raise ValueError(f"{t} out of range")
        return n.to_bytes(32, "big")
    raise ValueError(f"unsupported type {t}")


def _encode_dynamic(t: str, v: Any) -> bytes:
    raw = v.encode("utf-8") if t == "string" else bytes(v)
    padded = raw + b"\x00" * ((32 - len(raw) % 32) % 32)
    return len(raw).to_bytes(32, "big") + padded


def encode(types: Sequence[str], values: Sequence[Any]) -> bytes:
    if len(types) != len(values):
        raise ValueError("types/values length mismatch")
    head_size = 32 * len(types)
    heads: List[bytes] = []
    tails: List[bytes] = []
    tail_len = 0
    for t, v in zip(types, values):
        if t in _DYNAMIC:
            heads.append((head_size + tail_len).to_bytes(32, "big"))
            enc = _encode_dynamic(t, v)
            tails.append(enc)
            tail_len += len(enc)
        else:
            heads.append(_encode_static(t, v))
    return b"".join(heads) + b"".join(tails)


def encode_call(signature: str, types: Sequence[str] = (), values: Sequence[Any] = ()) -> bytes:
    return function_selector(signature) + encode(types, values)


def _word(data: bytes, offset: int) -> int:
    if offset < 0 or offset + 32 > len(data):
        raise ValueError("abi data truncated")
    return int.from_bytes(data[offset:offset + 32], "big")


def _decode_static(t: str, data: bytes, offset: int) -> Any:
    w = _word(data, offset)
    if t == "address":
        if w >> 160:
            raise ValueError("address has dirty high bits")
        return w.to_bytes(20, "big")
    if t == "bool":
        if w > 1:
            raise ValueError("bool out of range")
        return bool(w)
    if t == "bytes32":
        return data[offset:offset + 32]
    if t.startswith("uint"):
        if w >> _uint_bits(t):
            raise ValueError(f"{t} out of range")
        return w
    raise ValueError(f"unsupported type {t}")


def _decode_dynamic(t: str, data: bytes, offset: int) -> Any:
    length = _word(data, offset)
    start = offset + 32
    if start + length > len(data):
        raise ValueError("abi dynamic value out of bounds")
    raw = data[start:start + length]
    if t == "string":
        return raw.decode("utf-8")
    return raw


def decode(types: Sequence[str], data: bytes) -> Tuple[Any, ...]:
    data = bytes(data)
    out: List[Any] = []
    for i, t in enumerate(types):
        if t in _DYNAMIC:
            out.append(_decode_dynamic(t, data, _word(data, 32 * i)))
        else:
            out.append(_decode_static(t, data, 32 * i))
    return tuple(out)


__all__ = [
    "function_selector",
    "event_topic",
    "encode",
    "encode_call",
    "decode",
]
