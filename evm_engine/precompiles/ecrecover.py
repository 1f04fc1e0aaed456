"""
ECRECOVER (0x01).

Input is `hash(32) ‖ v(32) ‖ r(32) ‖ s(32)`, zero-padded. Any invalid
signature yields *empty* output rather than an error, as on Ethereum.
"""

from __future__ import annotations

from typing import Optional

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from .base import Precompile, PrecompileContext, pad_right

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ECRECOVER_GAS = 3000


def recover_address(msg_hash: bytes, v: int, r: int, s: int) -> Optional[bytes]:
    """
    Recover the signer address; `v` is the recovery id (0/1). Returns None
    for any signature that does not recover.
    """
    if v not in (0, 1) or not (0 < r < SECP256K1_N) or not (0 < s < SECP256K1_N):
        return None
    try:
        sig = keys.Signature(vrs=(v, r, s))
        return sig.recover_public_key_from_msg_hash(msg_hash).to_canonical_address()
    except (BadSignature, ValidationError):
        return None


class EcRecover(Precompile):
    name = "ecrecover"

    def required_gas(self, data: bytes) -> int:
        return ECRECOVER_GAS

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        buf = pad_right(data, 128)
        msg_hash = buf[:32]
        v = int.from_bytes(buf[32:64], "big")
        r = int.from_bytes(buf[64:96], "big")
        s = int.from_bytes(buf[96:128], "big")
        if v not in (27, 28):
            return b""
        addr = recover_address(msg_hash, v - 27, r, s)
        if addr is None:
            return b""
        return addr.rjust(32, b"\x00")


__all__ = ["EcRecover", "recover_address", "SECP256K1_N", "ECRECOVER_GAS"]
