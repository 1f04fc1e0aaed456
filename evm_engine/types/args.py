"""
evm_engine.types.args - argument/result schemas of the host entry points.

Every schema is a frozen dataclass with:
  * `to_cbor()`        -> canonical CBOR map (snake_case keys, raw byte strings)
  * `from_cbor(data)`  -> strict decode; malformed input raises EngineError('ERR_ARGS')

`SubmitResult` is the wire form of an ExecutionOutcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from evm_engine.encoding.cbor import (dumps_canonical, loads_map, opt_bytes,
                                      opt_uint, req_bytes, req_text, req_uint)
from evm_engine.errors import EngineError
from evm_engine.types.outcome import ExecutionOutcome
from evm_engine.types.word import U64_MAX


@dataclass(frozen=True)
class NewCallArgs:
    chain_id: int
    owner_id: str
    bridge_prover_id: str
    upgrade_delay_blocks: Optional[int] = None

    def to_cbor(self) -> bytes:
        return dumps_canonical({
            "chain_id": self.chain_id,
            "owner_id": self.owner_id,
            "bridge_prover_id": self.bridge_prover_id,
            "upgrade_delay_blocks": self.upgrade_delay_blocks,
        })

    @classmethod
    def from_cbor(cls, data: bytes) -> "NewCallArgs":
        m = loads_map(data, required=("chain_id", "owner_id", "bridge_prover_id"),
                      optional=("upgrade_delay_blocks",))
        return cls(
            chain_id=req_uint(m, "chain_id"),
            owner_id=req_text(m, "owner_id"),
            bridge_prover_id=req_text(m, "bridge_prover_id"),
            upgrade_delay_blocks=opt_uint(m, "upgrade_delay_blocks", bits=64),
        )


@dataclass(frozen=True)
class FunctionCallArgs:
    contract: bytes
    input: bytes = b""
    value: int = 0
    gas_limit: Optional[int] = None

    def to_cbor(self) -> bytes:
        return dumps_canonical({
            "contract": self.contract,
            "input": self.input,
            "value": self.value,
            "gas_limit": self.gas_limit,
        })

    @classmethod
    def from_cbor(cls, data: bytes) -> "FunctionCallArgs":
        m = loads_map(data, required=("contract",), optional=("input", "value", "gas_limit"))
        return cls(
            contract=req_bytes(m, "contract", 20),
            input=opt_bytes(m, "input"),
            value=opt_uint(m, "value", 0),
            gas_limit=opt_uint(m, "gas_limit", bits=64),
        )


@dataclass(frozen=True)
class ViewCallArgs:
    sender: bytes
    address: bytes
    input: bytes = b""
    amount: int = 0
    gas_limit: Optional[int] = None

    def to_cbor(self) -> bytes:
        return dumps_canonical({
            "sender": self.sender,
            "address": self.address,
            "input": self.input,
            "amount": self.amount,
            "gas_limit": self.gas_limit,
        })

    @classmethod
    def from_cbor(cls, data: bytes) -> "ViewCallArgs":
        m = loads_map(data, required=("sender", "address"),
                      optional=("input", "amount", "gas_limit"))
        return cls(
            sender=req_bytes(m, "sender", 20),
            address=req_bytes(m, "address", 20),
            input=opt_bytes(m, "input"),
            amount=opt_uint(m, "amount", 0),
            gas_limit=opt_uint(m, "gas_limit", bits=64),
        )


@dataclass(frozen=True)
class MetaCallArgs:
    """
    Relayed call envelope. `signature` is 65 bytes r ‖ s ‖ v with v in {27, 28}
    (0/1 accepted). A zero `fee_address` pays the fee to the relayer's derived address.
    """
    sender: bytes
    nonce: int
    fee_amount: int
    fee_address: bytes
    chain_id: int
    verifying_contract: bytes
    contract_address: bytes
    value: int
    input: bytes
    signature: bytes
    gas_limit: Optional[int] = None

    def to_cbor(self) -> bytes:
        return dumps_canonical({
            "sender": self.sender,
            "nonce": self.nonce,
            "fee_amount": self.fee_amount,
            "fee_address": self.fee_address,
            "chain_id": self.chain_id,
            "verifying_contract": self.verifying_contract,
            "contract_address": self.contract_address,
            "value": self.value,
            "input": self.input,
            "signature": self.signature,
            "gas_limit": self.gas_limit,
        })

    @classmethod
    def from_cbor(cls, data: bytes) -> "MetaCallArgs":
        m = loads_map(
            data,
            required=("sender", "nonce", "fee_amount", "fee_address", "chain_id",
                      "verifying_contract", "contract_address", "value", "input",
                      "signature"),
            optional=("gas_limit",),
        )
        return cls(
            sender=req_bytes(m, "sender", 20),
            nonce=req_uint(m, "nonce"),
            fee_amount=req_uint(m, "fee_amount"),
            fee_address=req_bytes(m, "fee_address", 20),
            chain_id=req_uint(m, "chain_id"),
            verifying_contract=req_bytes(m, "verifying_contract", 20),
            contract_address=req_bytes(m, "contract_address", 20),
            value=req_uint(m, "value"),
            input=req_bytes(m, "input"),
            signature=req_bytes(m, "signature", 65),
            gas_limit=opt_uint(m, "gas_limit", bits=64),
        )


@dataclass(frozen=True)
class GetStorageAtArgs:
    address: bytes
    key: bytes

    def to_cbor(self) -> bytes:
        return dumps_canonical({"address": self.address, "key": self.key})

    @classmethod
    def from_cbor(cls, data: bytes) -> "GetStorageAtArgs":
        m = loads_map(data, required=("address", "key"))
        return cls(address=req_bytes(m, "address", 20), key=req_bytes(m, "key", 32))


@dataclass(frozen=True)
class GenesisAccount:
    address: bytes
    balance: int


@dataclass(frozen=True)
class BeginChainArgs:
    chain_id: int
    genesis_alloc: Tuple[GenesisAccount, ...] = field(default_factory=tuple)

    def to_cbor(self) -> bytes:
        return dumps_canonical({
            "chain_id": self.chain_id,
            "genesis_alloc": [
                {"address": a.address, "balance": a.balance} for a in self.genesis_alloc
            ],
        })

    @classmethod
    def from_cbor(cls, data: bytes) -> "BeginChainArgs":
        m = loads_map(data, required=("chain_id",), optional=("genesis_alloc",))
        raw = m.get("genesis_alloc") or []
        if not isinstance(raw, list):
            raise EngineError("ERR_ARGS", "genesis_alloc must be an array")
        alloc: List[GenesisAccount] = []
        for entry in raw:
            if not isinstance(entry, dict):
                raise EngineError("ERR_ARGS", "genesis_alloc entries must be maps")
            alloc.append(GenesisAccount(
                address=req_bytes(entry, "address", 20),
                balance=req_uint(entry, "balance"),
            ))
        return cls(chain_id=req_uint(m, "chain_id"), genesis_alloc=tuple(alloc))


@dataclass(frozen=True)
class BeginBlockArgs:
    number: int
    timestamp: int = 0
    coinbase: bytes = b"\x00" * 20
    difficulty: int = 0
    gas_limit: int = U64_MAX

    def to_cbor(self) -> bytes:
        return dumps_canonical({
            "number": self.number,
            "timestamp": self.timestamp,
            "coinbase": self.coinbase,
            "difficulty": self.difficulty,
            "gas_limit": self.gas_limit,
        })

    @classmethod
    def from_cbor(cls, data: bytes) -> "BeginBlockArgs":
        m = loads_map(data, required=("number",),
                      optional=("timestamp", "coinbase", "difficulty", "gas_limit"))
        return cls(
            number=req_uint(m, "number", bits=64),
            timestamp=opt_uint(m, "timestamp", 0, bits=64),
            coinbase=opt_bytes(m, "coinbase", b"\x00" * 20, n=20),
            difficulty=opt_uint(m, "difficulty", 0),
            gas_limit=opt_uint(m, "gas_limit", U64_MAX),
        )


@dataclass(frozen=True)
class FtOnTransferArgs:
    sender_id: str
    amount: int
    msg: str

    def to_cbor(self) -> bytes:
        return dumps_canonical({"sender_id": self.sender_id, "amount": self.amount, "msg": self.msg})

    @classmethod
    def from_cbor(cls, data: bytes) -> "FtOnTransferArgs":
        m = loads_map(data, required=("sender_id", "amount", "msg"))
        return cls(
            sender_id=req_text(m, "sender_id"),
            amount=req_uint(m, "amount", bits=128),
            msg=req_text(m, "msg"),
        )


@dataclass(frozen=True)
class SubmitResult:
    """Wire form of an ExecutionOutcome (the state diff stays host-side)."""

    status: str
    output: bytes
    gas_used: int
    logs: Tuple[Dict[str, Any], ...] = ()
    error: Optional[str] = None
    created_address: Optional[bytes] = None

    @classmethod
    def from_outcome(cls, outcome: ExecutionOutcome) -> "SubmitResult":
        return cls(
            status=str(outcome.status),
            output=outcome.output,
            gas_used=outcome.gas_used,
            logs=tuple(
                {"address": lg.address, "topics": list(lg.topics), "data": lg.data}
                for lg in outcome.logs
            ),
            error=outcome.error,
            created_address=outcome.created_address,
        )

    def to_cbor(self) -> bytes:
        return dumps_canonical({
            "status": self.status,
            "output": self.output,
            "gas_used": self.gas_used,
            "logs": list(self.logs),
            "error": self.error,
            "created_address": self.created_address,
        })

    @classmethod
    def from_cbor(cls, data: bytes) -> "SubmitResult":
        m = loads_map(data, required=("status", "output", "gas_used", "logs"),
                      optional=("error", "created_address"))
        logs = m["logs"]
        if not isinstance(logs, list):
            raise EngineError("ERR_ARGS", "logs must be an array")
        return cls(
            status=req_text(m, "status"),
            output=req_bytes(m, "output"),
            gas_used=req_uint(m, "gas_used"),
            logs=tuple(logs),
            error=m.get("error"),
            created_address=opt_bytes(m, "created_address", None, n=20),
        )


__all__ = [
    "NewCallArgs",
    "FunctionCallArgs",
    "ViewCallArgs",
    "MetaCallArgs",
    "GetStorageAtArgs",
    "GenesisAccount",
    "BeginChainArgs",
    "BeginBlockArgs",
    "FtOnTransferArgs",
    "SubmitResult",
]
