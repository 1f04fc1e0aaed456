"""
evm_engine.types.context - block and transaction environment for the interpreter.

These frozen dataclasses carry the *evaluated* context the opcodes read
(NUMBER, TIMESTAMP, COINBASE, DIFFICULTY, GASLIMIT, CHAINID, ORIGIN, GASPRICE,
BLOCKHASH). The engine builds them from the host accessors, or from the
benchmark block context installed by `begin_block`.

Block hashes are not available from the host, so BLOCKHASH returns a
deterministic commitment:

    sha256(0x00 ‖ chain_id(32, BE) ‖ account_id ‖ height(8, BE))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from evm_engine.crypto import sha256
from evm_engine.types.address import ZERO_ADDRESS
from evm_engine.types.hexutil import HexLike, bytes_to_hex, hex_to_bytes
from evm_engine.types.word import U64_MAX

BLOCKHASH_WINDOW = 256


def compute_block_hash(chain_id: int, height: int, account_id: str) -> bytes:
    data = bytearray(b"\x00")
    data.extend(chain_id.to_bytes(32, "big"))
    data.extend(account_id.encode("utf-8"))
    data.extend(height.to_bytes(8, "big"))
    return sha256(bytes(data))


@dataclass(frozen=True)
class BlockContext:
    """
    Environment for executing calls within one host block.

    Attributes:
        number:     int >= 0 - host block index
        timestamp:  int >= 0 - seconds
        chain_id:   int      - EVM chain id (CHAINID)
        coinbase:   bytes    - 20-byte beneficiary (zero on the host chain)
        difficulty: int      - always 0 outside benchmarks
        gas_limit:  int      - GASLIMIT (u64 max by default)
        account_id: str      - engine account, mixed into BLOCKHASH
    """
    number: int
    timestamp: int
    chain_id: int
    coinbase: bytes = ZERO_ADDRESS
    difficulty: int = 0
    gas_limit: int = U64_MAX
    account_id: str = field(default="")

    def __post_init__(self) -> None:
        if self.number < 0:
            raise ValueError("number must be >= 0")
        if self.timestamp < 0:
            raise ValueError("timestamp must be >= 0")
        if self.chain_id < 0:
            raise ValueError("chain_id must be >= 0")
        if len(self.coinbase) != 20:
            raise ValueError("coinbase must be 20 bytes")

    def block_hash(self, height: int) -> bytes:
        """BLOCKHASH semantics: zero outside the last 256 blocks."""
        if height >= self.number or height + BLOCKHASH_WINDOW < self.number:
            return b"\x00" * 32
        return compute_block_hash(self.chain_id, height, self.account_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "timestamp": self.timestamp,
            "chainId": self.chain_id,
            "coinbase": bytes_to_hex(self.coinbase),
            "difficulty": self.difficulty,
            "gasLimit": self.gas_limit,
            "accountId": self.account_id,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BlockContext":
        return cls(
            number=int(d["number"]),
            timestamp=int(d.get("timestamp", 0)),
            chain_id=int(d.get("chainId", d.get("chain_id", 0))),
            coinbase=hex_to_bytes(d.get("coinbase", ZERO_ADDRESS)),
            difficulty=int(d.get("difficulty", 0)),
            gas_limit=int(d.get("gasLimit", d.get("gas_limit", U64_MAX))),
            account_id=str(d.get("accountId", d.get("account_id", ""))),
        )


@dataclass(frozen=True)
class TxContext:
    """
    Per-invocation environment.

    Attributes:
        origin:    bytes - ORIGIN (root sender)
        gas_price: int   - GASPRICE (0 unless a signed transaction carries one)
    """
    origin: bytes
    gas_price: int = 0

    def __init__(self, *, origin: HexLike, gas_price: int = 0):
        origin_b = hex_to_bytes(origin)
        if len(origin_b) != 20:
            raise ValueError("origin must be 20 bytes")
        if gas_price < 0:
            raise ValueError("gas_price must be >= 0")
        object.__setattr__(self, "origin", origin_b)
        object.__setattr__(self, "gas_price", int(gas_price))

    def to_dict(self) -> Dict[str, Any]:
        return {"origin": bytes_to_hex(self.origin), "gasPrice": self.gas_price}


__all__ = ["BlockContext", "TxContext", "compute_block_hash", "BLOCKHASH_WINDOW"]
