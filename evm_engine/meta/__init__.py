"""
evm_engine.meta - signed-call authentication.

- verifier    : typed-data (EIP-712) meta calls relayed on behalf of a user
- transaction : EIP-155 legacy transactions accepted by `raw_call`
"""

from .transaction import LegacyTransaction
from .verifier import VerifiedMetaCall, apply, meta_call_digest, verify

__all__ = ["LegacyTransaction", "VerifiedMetaCall", "apply", "meta_call_digest", "verify"]
