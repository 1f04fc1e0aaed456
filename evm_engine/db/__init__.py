"""
evm_engine.db - the host key-value boundary (protocols, key layout, in-memory backend).
"""

from .kv import KV, Batch, MemoryKV, ReadOnlyKV

__all__ = ["KV", "Batch", "MemoryKV", "ReadOnlyKV"]
