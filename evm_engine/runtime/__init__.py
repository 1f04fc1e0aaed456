"""
evm_engine.runtime - frame dispatch and the host-facing Engine.

- host       : Host protocol and the in-memory host
- addresses  : CREATE / CREATE2 address derivation
- dispatcher : explicit frame stack driving the interpreter
- engine     : Engine entry points
- entry      : CBOR byte-level surface (`invoke`)
"""

from .addresses import create2_address, create_address
from .dispatcher import Dispatcher
from .engine import Engine
from .host import Host, InMemoryHost

__all__ = ["Dispatcher", "Engine", "Host", "InMemoryHost", "create_address", "create2_address"]
