"""
alt_bn128 precompiles (EIP-196/197) with Istanbul prices (EIP-1108):

    0x06 ECADD      150
    0x07 ECMUL      6000
    0x08 ECPAIRING  45000 + 34000 * pairs

Points are big-endian 32-byte coordinates; (0, 0) encodes the point at
infinity. G2 coordinates are encoded imaginary part first.
"""

from __future__ import annotations

from typing import Any, Tuple

from py_ecc.optimized_bn128 import (FQ, FQ2, FQ12, Z1, Z2, add, b, b2,
                                    curve_order, field_modulus,
                                    final_exponentiate, is_on_curve,
                                    multiply, normalize, twist)
from py_ecc.optimized_bn128.optimized_pairing import miller_loop

from evm_engine.errors import PrecompileError

from .base import Precompile, PrecompileContext, pad_right

ECADD_GAS = 150
ECMUL_GAS = 6000
PAIRING_BASE_GAS = 45000
PAIRING_PER_PAIR_GAS = 34000


def _is_inf(pt: Any) -> bool:
    return pt[2] == pt[2].zero()


def _field(raw: bytes, name: str) -> int:
    v = int.from_bytes(raw, "big")
    if v >= field_modulus:
        raise PrecompileError("coordinate out of field", name=name)
    return v


def decode_g1(raw: bytes, name: str) -> Tuple[Any, Any, Any]:
    x, y = _field(raw[:32], name), _field(raw[32:64], name)
    if x == 0 and y == 0:
        return Z1
    pt = (FQ(x), FQ(y), FQ(1))
    if not is_on_curve(pt, b):
        raise PrecompileError("G1 point not on curve", name=name)
    return pt


def decode_g2(raw: bytes, name: str) -> Tuple[Any, Any, Any]:
    x_im, x_re = _field(raw[0:32], name), _field(raw[32:64], name)
    y_im, y_re = _field(raw[64:96], name), _field(raw[96:128], name)
    if x_im == x_re == y_im == y_re == 0:
        return Z2
    pt = (FQ2([x_re, x_im]), FQ2([y_re, y_im]), FQ2.one())
    if not is_on_curve(pt, b2):
        raise PrecompileError("G2 point not on curve", name=name)
    if not _is_inf(multiply(pt, curve_order)):
        raise PrecompileError("G2 point not in subgroup", name=name)
    return pt


def encode_g1(pt: Any) -> bytes:
    if _is_inf(pt):
        return b"\x00" * 64
    x, y = normalize(pt)
    return int(x).to_bytes(32, "big") + int(y).to_bytes(32, "big")


class EcAdd(Precompile):
    name = "bn128_add"

    def required_gas(self, data: bytes) -> int:
        return ECADD_GAS

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        buf = pad_right(data, 128)
        p1 = decode_g1(buf[:64], self.name)
        p2 = decode_g1(buf[64:128], self.name)
        return encode_g1(add(p1, p2))


class EcMul(Precompile):
    name = "bn128_mul"

    def required_gas(self, data: bytes) -> int:
        return ECMUL_GAS

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        buf = pad_right(data, 96)
        p = decode_g1(buf[:64], self.name)
        scalar = int.from_bytes(buf[64:96], "big") % curve_order
        return encode_g1(multiply(p, scalar))


class EcPairing(Precompile):
    name = "bn128_pairing"

    def required_gas(self, data: bytes) -> int:
        return PAIRING_BASE_GAS + PAIRING_PER_PAIR_GAS * (len(data) // 192)

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        if len(data) % 192:
            raise PrecompileError("input length must be a multiple of 192", name=self.name)
        acc = FQ12.one()
        for i in range(0, len(data), 192):
            p = decode_g1(data[i:i + 64], self.name)
            q = decode_g2(data[i + 64:i + 192], self.name)
            if _is_inf(p) or _is_inf(q):
                continue
            acc = acc * miller_loop(twist(q), _cast_g1(p), final_exponentiate=False)
        ok = final_exponentiate(acc) == FQ12.one()
        return (1 if ok else 0).to_bytes(32, "big")


def _cast_g1(pt: Any) -> Tuple[Any, Any, Any]:
    x, y, z = pt
    return (
        FQ12([x.n] + [0] * 11),
        FQ12([y.n] + [0] * 11),
        FQ12([z.n] + [0] * 11),
    )


__all__ = ["EcAdd", "EcMul", "EcPairing", "decode_g1", "decode_g2", "encode_g1"]
