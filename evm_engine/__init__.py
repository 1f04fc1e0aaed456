"""
evm_engine - Ethereum-compatible execution engine persisting state through a host KV store.

Importing the package only exposes version metadata. The engine itself lives in
`evm_engine.runtime.engine`; hosts construct it explicitly:

    from evm_engine.runtime.engine import Engine
    from evm_engine.runtime.host import InMemoryHost

    engine = Engine(InMemoryHost(current_account_id="evm.near"))
"""

from .version import __version__, version_metadata

__all__ = ["__version__", "version_metadata"]
