"""
evm_engine.version - semantic version string reported by `get_version`.

The version is part of the engine's observable surface (hosts compare it across
upgrades), so it lives in its own tiny module with no imports from the rest of
the package.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict

# Bump this when making a tagged release. Use semver (major.minor.patch).
__version__ = "1.0.0"


@lru_cache(maxsize=1)
def version_metadata() -> Dict[str, str]:
    """
    Structured version info for logs / diagnostics.

    Keys:
        version  -> semantic version (from __version__)
        build    -> EVM_ENGINE_BUILD env override, or 'local'
        fork     -> instruction-set revision implemented by the interpreter
    """
    return {
        "version": __version__,
        "build": os.getenv("EVM_ENGINE_BUILD", "local").strip() or "local",
        "fork": "istanbul",
    }


__all__ = ["__version__", "version_metadata"]
