"""
Legacy signed transactions (EIP-155) for `raw_call`.

    rlp([nonce, gasPrice, gasLimit, to, value, data, v, r, s])

`to` is empty for contract creation. The signing hash covers the first six
fields plus `[chainId, 0, 0]`, and `v = chainId * 2 + 35 + recovery_id`.
Unprotected transactions (v = 27/28) carry no chain id.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional

import rlp
from eth_keys import keys
from rlp.exceptions import RLPException
from rlp.sedes import big_endian_int

from evm_engine.crypto import keccak256
from evm_engine.errors import EngineError
from evm_engine.precompiles.ecrecover import recover_address
from evm_engine.types.word import U64_MAX


def _int(raw: object) -> int:
    if not isinstance(raw, bytes):
        raise EngineError("ERR_INVALID_TRANSACTION", "expected an RLP string")
    try:
        return big_endian_int.deserialize(raw)
    except RLPException as e:
        raise EngineError("ERR_INVALID_TRANSACTION", f"bad integer: {e}") from e


@dataclass(frozen=True)
class LegacyTransaction:
    nonce: int
    gas_price: int
    gas_limit: int
    to: Optional[bytes]
    value: int
    data: bytes
    v: int = 0
    r: int = 0
    s: int = 0

    @property
    def is_create(self) -> bool:
        return self.to is None

    @property
    def chain_id(self) -> Optional[int]:
        if self.v >= 35:
            return (self.v - 35) // 2
        return None

    def _unsigned_fields(self) -> List[object]:
        return [self.nonce, self.gas_price, self.gas_limit, self.to or b"", self.value, self.data]

    def signing_hash(self, chain_id: Optional[int] = None) -> bytes:
        cid = self.chain_id if chain_id is None else chain_id
        fields = self._unsigned_fields()
        if cid is not None:
            fields += [cid, 0, 0]
        return keccak256(rlp.encode(fields))

    def sender(self) -> bytes:
        if self.v in (27, 28):
            recovery_id = self.v - 27
        elif self.v >= 35:
            recovery_id = (self.v - 35) % 2
        else:
            raise EngineError("ERR_INVALID_SIGNATURE", f"bad v value {self.v}")
        addr = recover_address(self.signing_hash(), recovery_id, self.r, self.s)
        if addr is None:
            raise EngineError("ERR_INVALID_SIGNATURE", "signature does not recover")
        return addr

    def encode(self) -> bytes:
        return rlp.encode(self._unsigned_fields() + [self.v, self.r, self.s])

    def sign(self, private_key: bytes, chain_id: int) -> "LegacyTransaction":
        sig = keys.PrivateKey(private_key).sign_msg_hash(self.signing_hash(chain_id))
        return replace(self, v=chain_id * 2 + 35 + sig.v, r=sig.r, s=sig.s)

    @classmethod
    def decode(cls, raw: bytes) -> "LegacyTransaction":
        try:
            items = rlp.decode(bytes(raw))
        except RLPException as e:
            raise EngineError("ERR_INVALID_TRANSACTION", f"rlp: {e}") from e
        if not isinstance(items, list) or len(items) != 9:
            raise EngineError("ERR_INVALID_TRANSACTION", "expected a 9-item list")
        to_raw = items[3]
        if not isinstance(to_raw, bytes) or len(to_raw) not in (0, 20):
            raise EngineError("ERR_INVALID_TRANSACTION", "to must be empty or 20 bytes")
        gas_limit = _int(items[2])
        if gas_limit > U64_MAX:
            raise EngineError("ERR_INVALID_TRANSACTION", "gas limit exceeds u64")
        data = items[5]
        if not isinstance(data, bytes):
            raise EngineError("ERR_INVALID_TRANSACTION", "data must be a byte string")
        return cls(
            nonce=_int(items[0]),
            gas_price=_int(items[1]),
            gas_limit=gas_limit,
            to=to_raw or None,
            value=_int(items[4]),
            data=data,
            v=_int(items[6]),
            r=_int(items[7]),
            s=_int(items[8]),
        )


__all__ = ["LegacyTransaction"]
