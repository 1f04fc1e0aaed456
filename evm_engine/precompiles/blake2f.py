"""
BLAKE2b F compression (0x09), EIP-152.

Input (213 bytes): rounds(4, BE) ‖ h(64) ‖ m(128) ‖ t(16) ‖ f(1).
Words of h, m and t are little-endian u64. Gas is one per round.
"""

from __future__ import annotations

import struct
from typing import List

from evm_engine.errors import PrecompileError

from .base import Precompile, PrecompileContext

MASK64 = (1 << 64) - 1

IV = (
    0x6A09E667F3BCC908, 0xBB67AE8584CAA73B, 0x3C6EF372FE94F82B, 0xA54FF53A5F1D36F1,
    0x510E527FADE682D1, 0x9B05688C2B3E6C1F, 0x1F83D9ABFB41BD6B, 0x5BE0CD19137E2179,
)

SIGMA = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15),
    (14, 10, 4, 8, 9, 15, 13, 6, 1, 12, 0, 2, 11, 7, 5, 3),
    (11, 8, 12, 0, 5, 2, 15, 13, 10, 14, 3, 6, 7, 1, 9, 4),
    (7, 9, 3, 1, 13, 12, 11, 14, 2, 6, 5, 10, 4, 0, 15, 8),
    (9, 0, 5, 7, 2, 4, 10, 15, 14, 1, 11, 12, 6, 8, 3, 13),
    (2, 12, 6, 10, 0, 11, 8, 3, 4, 13, 7, 5, 15, 14, 1, 9),
    (12, 5, 1, 15, 14, 13, 4, 10, 0, 7, 6, 3, 9, 2, 8, 11),
    (13, 11, 7, 14, 12, 1, 3, 9, 5, 0, 15, 4, 8, 6, 2, 10),
    (6, 15, 14, 9, 11, 3, 0, 8, 12, 2, 13, 7, 1, 4, 10, 5),
    (10, 2, 8, 4, 7, 6, 1, 5, 15, 11, 9, 14, 3, 12, 13, 0),
)

INPUT_LENGTH = 213


def _rotr(x: int, n: int) -> int:
    return ((x >> n) | (x << (64 - n))) & MASK64


def _g(v: List[int], a: int, b: int, c: int, d: int, x: int, y: int) -> None:
    v[a] = (v[a] + v[b] + x) & MASK64
    v[d] = _rotr(v[d] ^ v[a], 32)
    v[c] = (v[c] + v[d]) & MASK64
    v[b] = _rotr(v[b] ^ v[c], 24)
    v[a] = (v[a] + v[b] + y) & MASK64
    v[d] = _rotr(v[d] ^ v[a], 16)
    v[c] = (v[c] + v[d]) & MASK64
    v[b] = _rotr(v[b] ^ v[c], 63)


def compress(rounds: int, h: List[int], m: List[int], t0: int, t1: int, final: bool) -> List[int]:
    v = list(h) + list(IV)
    v[12] ^= t0
    v[13] ^= t1
    if final:
        v[14] ^= MASK64
    for r in range(rounds):
        s = SIGMA[r % 10]
        _g(v, 0, 4, 8, 12, m[s[0]], m[s[1]])
        _g(v, 1, 5, 9, 13, m[s[2]], m[s[3]])
        _g(v, 2, 6, 10, 14, m[s[4]], m[s[5]])
        _g(v, 3, 7, 11, 15, m[s[6]], m[s[7]])
        _g(v, 0, 5, 10, 15, m[s[8]], m[s[9]])
        _g(v, 1, 6, 11, 12, m[s[10]], m[s[11]])
        _g(v, 2, 7, 8, 13, m[s[12]], m[s[13]])
        _g(v, 3, 4, 9, 14, m[s[14]], m[s[15]])
    return [h[i] ^ v[i] ^ v[i + 8] for i in range(8)]


class Blake2F(Precompile):
    name = "blake2f"

    def required_gas(self, data: bytes) -> int:
        if len(data) != INPUT_LENGTH:
            return 0
        return int.from_bytes(data[:4], "big")

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        if len(data) != INPUT_LENGTH:
            raise PrecompileError(f"input must be {INPUT_LENGTH} bytes", name=self.name)
        flag = data[212]
        if flag not in (0, 1):
            raise PrecompileError("final block flag must be 0 or 1", name=self.name)
        rounds = int.from_bytes(data[:4], "big")
        h = list(struct.unpack("<8Q", data[4:68]))
        m = list(struct.unpack("<16Q", data[68:196]))
        t0, t1 = struct.unpack("<2Q", data[196:212])
        return struct.pack("<8Q", *compress(rounds, h, m, t0, t1, flag == 1))


__all__ = ["Blake2F", "compress"]
