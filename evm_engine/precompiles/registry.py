"""
evm_engine.precompiles.registry - extensible address → precompile table.

The dispatcher consults the registry for every call target. Registration is
explicit; there is no hard-coded dispatch anywhere else, so hosts can add or
remove built-ins for their deployment:

    reg = default_registry()
    reg.register(my_address, MyPrecompile())
    reg.unregister(precompile_address(9))
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from evm_engine.types.address import to_address

from .base import Precompile, precompile_address
from .blake2f import Blake2F
from .bn128 import EcAdd, EcMul, EcPairing
from .bridge import (EXIT_TO_ETHEREUM_ADDRESS, EXIT_TO_NEAR_ADDRESS,
                     ExitToEthereum, ExitToNear)
from .ecrecover import EcRecover
from .hashing import Identity, Ripemd160, Sha256
from .modexp import ModExp


class PrecompileRegistry:
    def __init__(self) -> None:
        self._by_address: Dict[bytes, Precompile] = {}

    def register(self, address: bytes | str, precompile: Precompile, *, replace: bool = False) -> None:
        addr = to_address(address)
        if addr in self._by_address and not replace:
            raise ValueError(f"precompile already registered at 0x{addr.hex()}")
        self._by_address[addr] = precompile

    def unregister(self, address: bytes | str) -> Optional[Precompile]:
        return self._by_address.pop(to_address(address), None)

    def get(self, address: bytes) -> Optional[Precompile]:
        return self._by_address.get(address)

    def addresses(self) -> List[bytes]:
        return sorted(self._by_address)

    def __contains__(self, address: object) -> bool:
        return address in self._by_address

    def __len__(self) -> int:
        return len(self._by_address)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.addresses())


def default_registry(*, bridge: bool = True) -> PrecompileRegistry:
    """Istanbul precompiles 0x01–0x09, plus the bridge exits unless `bridge=False`."""
    reg = PrecompileRegistry()
    for n, pc in enumerate(
        (EcRecover(), Sha256(), Ripemd160(), Identity(), ModExp(),
         EcAdd(), EcMul(), EcPairing(), Blake2F()),
        start=1,
    ):
        reg.register(precompile_address(n), pc)
    if bridge:
        reg.register(EXIT_TO_NEAR_ADDRESS, ExitToNear())
        reg.register(EXIT_TO_ETHEREUM_ADDRESS, ExitToEthereum())
    return reg


__all__ = ["PrecompileRegistry", "default_registry"]
