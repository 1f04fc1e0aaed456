"""
MODEXP (0x05), EIP-198 pricing.

Input: `len(B)(32) ‖ len(E)(32) ‖ len(M)(32) ‖ B ‖ E ‖ M`, every field
zero-padded when the input is short. Output is `B**E % M` left-padded to
len(M) bytes.
"""

from __future__ import annotations

from .base import Precompile, PrecompileContext, pad_right

GQUADDIVISOR = 20


def _mult_complexity(x: int) -> int:
    if x <= 64:
        return x * x
    if x <= 1024:
        return x * x // 4 + 96 * x - 3072
    return x * x // 16 + 480 * x - 199680


def _lengths(data: bytes) -> tuple[int, int, int]:
    head = pad_right(data, 96)
    return (
        int.from_bytes(head[0:32], "big"),
        int.from_bytes(head[32:64], "big"),
        int.from_bytes(head[64:96], "big"),
    )


def _adjusted_exp_len(data: bytes, blen: int, elen: int) -> int:
    head_len = min(elen, 32)
    head = int.from_bytes(pad_right(data, head_len, 96 + blen), "big") if head_len else 0
    bits = head.bit_length()
    if elen <= 32:
        return max(0, bits - 1)
    return 8 * (elen - 32) + max(0, bits - 1)


class ModExp(Precompile):
    name = "modexp"

    def required_gas(self, data: bytes) -> int:
        blen, elen, mlen = _lengths(data)
        adj = _adjusted_exp_len(data, blen, elen)
        return _mult_complexity(max(blen, mlen)) * max(adj, 1) // GQUADDIVISOR

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        blen, elen, mlen = _lengths(data)
        if mlen == 0:
            return b""
        base = int.from_bytes(pad_right(data, blen, 96), "big")
        exp = int.from_bytes(pad_right(data, elen, 96 + blen), "big")
        mod = int.from_bytes(pad_right(data, mlen, 96 + blen + elen), "big")
        if mod == 0:
            return b"\x00" * mlen
        return pow(base, exp, mod).to_bytes(mlen, "big")


__all__ = ["ModExp"]
