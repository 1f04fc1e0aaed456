"""
evm_engine.types.events - log records emitted by LOG0..LOG4 and bridge precompiles.

`Log` is append-only inside a frame overlay and only reaches an
ExecutionOutcome when the root frame succeeds.

Conventions
-----------
* `address` is the 20-byte emitter.
* `topics` is an ordered tuple of 0..4 32-byte words.
* `data` is an arbitrary byte payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

from .hexutil import HexLike, bytes_to_hex, hex_to_bytes

MAX_TOPICS = 4


@dataclass(frozen=True)
class Log:
    """
    A single log emitted during execution.

    Raises:
        ValueError on a malformed address, more than four topics, or a topic
        that is not exactly 32 bytes.
    """

    address: bytes
    topics: Tuple[bytes, ...]
    data: bytes

    def __init__(self, address: HexLike, topics: Sequence[HexLike] = (), data: HexLike = b""):
        addr_b = hex_to_bytes(address)
        if len(addr_b) != 20:
            raise ValueError(f"log address must be 20 bytes, got {len(addr_b)}")
        if len(topics) > MAX_TOPICS:
            raise ValueError(f"at most {MAX_TOPICS} topics allowed")
        topics_b = tuple(hex_to_bytes(t) for t in topics)
        for t in topics_b:
            if len(t) != 32:
                raise ValueError("topics must be 32 bytes")
        object.__setattr__(self, "address", addr_b)
        object.__setattr__(self, "topics", topics_b)
        object.__setattr__(self, "data", hex_to_bytes(data))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": bytes_to_hex(self.address),
            "topics": [bytes_to_hex(t) for t in self.topics],
            "data": bytes_to_hex(self.data),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Log":
        topics = d.get("topics", [])
        if not isinstance(topics, (tuple, list)):
            raise TypeError("topics must be a list/tuple")
        return cls(address=d["address"], topics=list(topics), data=d.get("data", b""))

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        data_h = bytes_to_hex(self.data) or ""
        if len(data_h) > 18:
            data_h = data_h[:18] + "…"
        return f"Log(address={bytes_to_hex(self.address)}, topics={len(self.topics)}, data={data_h})"


__all__ = ["Log", "MAX_TOPICS"]
