"""
evm_engine.state - the State Adapter.

- accounts: Account records (nonce, balance, code hash)
- backend:  CommittedState, the typed view over the host KV
- adapter:  StateAdapter, nested overlays with begin/commit/discard
"""

from __future__ import annotations

from .accounts import EMPTY_CODE_HASH, Account, compute_code_hash
from .adapter import StateAdapter
from .backend import CommittedState

__all__ = ["Account", "EMPTY_CODE_HASH", "compute_code_hash", "StateAdapter", "CommittedState"]
