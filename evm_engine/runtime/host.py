"""
evm_engine.runtime.host - the boundary to the embedding host.

The engine is a guest: it owns no storage, no clock and no identity. The host
provides all of them through this Protocol. `InMemoryHost` implements it for
tests and benchmarks; a block index, timestamp and predecessor can be set
directly, and `deploy_self` records the code it was handed.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from evm_engine.db.kv import KV, MemoryKV


@runtime_checkable
class Host(Protocol):
    kv: KV

    def block_index(self) -> int:
        ...

    def block_timestamp(self) -> int:
        """Seconds."""
        ...

    def predecessor_account_id(self) -> str:
        """Account that invoked the current entry point."""
        ...

    def current_account_id(self) -> str:
        """The engine's own account."""
        ...

    def deploy_self(self, code: bytes) -> None:
        """Replace the engine's own code (used by deploy_upgrade)."""
        ...


class InMemoryHost:
    def __init__(
        self,
        *,
        current_account_id: str = "evm.test",
        predecessor_account_id: str = "owner.test",
        block_index: int = 0,
        block_timestamp: int = 0,
        kv: Optional[KV] = None,
    ) -> None:
        self.kv: KV = kv if kv is not None else MemoryKV()
        self._current = current_account_id
        self._predecessor = predecessor_account_id
        self._block_index = block_index
        self._block_timestamp = block_timestamp
        self.deployed: List[bytes] = []

    # --- Host protocol ---

    def block_index(self) -> int:
        return self._block_index

    def block_timestamp(self) -> int:
        return self._block_timestamp

    def predecessor_account_id(self) -> str:
        return self._predecessor

    def current_account_id(self) -> str:
        return self._current

    def deploy_self(self, code: bytes) -> None:
        self.deployed.append(bytes(code))

    # --- test helpers ---

    def set_predecessor(self, account_id: str) -> None:
        self._predecessor = account_id

    def set_block(self, index: int, timestamp: Optional[int] = None) -> None:
        if index < 0:
            raise ValueError("block index must be >= 0")
        self._block_index = index
        if timestamp is not None:
            self._block_timestamp = timestamp

    def advance(self, blocks: int = 1, seconds_per_block: int = 1) -> None:
        self._block_index += blocks
        self._block_timestamp += blocks * seconds_per_block

    @property
    def deployed_code(self) -> Optional[bytes]:
        return self.deployed[-1] if self.deployed else None


__all__ = ["Host", "InMemoryHost"]
