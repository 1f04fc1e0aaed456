"""
evm_engine.upgrade.controller - staged, delayed self-upgrade.

The owner stages new engine code; it becomes deployable once the host block
index reaches `staged_at + delay`. At most one upgrade is pending; staging
again replaces it and restarts the delay.

Storage (CONFIG namespace):

    CONFIG.key(b"CODE")        -> staged code
    CONFIG.key(b"CODE_STAGE")  -> be_u64(unlock index)

Authorization is the caller's job (the Engine checks the owner); this module
only owns the pending record and its timing rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from evm_engine.crypto import keccak256
from evm_engine.db.kv import CONFIG, KV, be_u64
from evm_engine.errors import EngineError
from evm_engine.logging import get_logger

log = get_logger("evm_engine.upgrade")

CODE_KEY = CONFIG.key(b"CODE")
CODE_STAGE_KEY = CONFIG.key(b"CODE_STAGE")


@dataclass(frozen=True)
class PendingUpgrade:
    code: bytes
    code_hash: bytes
    unlock_index: int

    def is_ready(self, block_index: int) -> bool:
        return block_index >= self.unlock_index


class UpgradeController:
    def __init__(self, kv: KV, *, delay_blocks: int) -> None:
        if delay_blocks < 0:
            raise ValueError("delay_blocks must be >= 0")
        self.kv = kv
        self.delay_blocks = delay_blocks

    def pending(self) -> Optional[PendingUpgrade]:
        stage = self.kv.get(CODE_STAGE_KEY)
        code = self.kv.get(CODE_KEY)
        if stage is None or code is None:
            return None
        return PendingUpgrade(code=code, code_hash=keccak256(code),
                              unlock_index=int.from_bytes(stage, "big"))

    def index(self) -> Optional[int]:
        """Unlock index of the pending upgrade, None when nothing is staged."""
        p = self.pending()
        return p.unlock_index if p is not None else None

    def stage(self, code: bytes, block_index: int) -> PendingUpgrade:
        unlock = block_index + self.delay_blocks
        with self.kv.batch() as b:
            b.put(CODE_KEY, bytes(code))
            b.put(CODE_STAGE_KEY, be_u64(unlock))
        staged = PendingUpgrade(code=bytes(code), code_hash=keccak256(code), unlock_index=unlock)
        log.warning(
            "upgrade staged",
            extra={"code_hash": staged.code_hash.hex(), "unlock_index": unlock,
                   "code_size": len(code)},
        )
        return staged

    def deploy(self, block_index: int, deploy_self: Callable[[bytes], None]) -> PendingUpgrade:
        """
        Hand the unlocked code to `deploy_self`, then clear the pending record.

        Raises:
            EngineError('ERR_NO_UPGRADE')  nothing staged
            EngineError('ERR_NOT_READY')   block index below the unlock index
        """
        p = self.pending()
        if p is None:
            raise EngineError("ERR_NO_UPGRADE")
        if not p.is_ready(block_index):
            raise EngineError(
                "ERR_NOT_READY",
                data={"block_index": block_index, "unlock_index": p.unlock_index},
            )
        deploy_self(p.code)
        with self.kv.batch() as b:
            b.delete(CODE_KEY)
            b.delete(CODE_STAGE_KEY)
        log.warning("upgrade deployed", extra={"code_hash": p.code_hash.hex(),
                                               "block_index": block_index})
        return p


__all__ = ["PendingUpgrade", "UpgradeController", "CODE_KEY", "CODE_STAGE_KEY"]
