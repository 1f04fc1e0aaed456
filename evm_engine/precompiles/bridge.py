"""
Bridge exit precompiles.

Calling one of these addresses with value burns the value and emits an exit
log that the bridge relayer picks up:

    exitToNear      input: destination account id (utf-8)
                    log:   ExitToNear(address indexed sender, string dest, uint256 amount)
    exitToEthereum  input: 20-byte destination address
                    log:   ExitToEth(address indexed sender, address indexed dest, uint256 amount)

Both addresses are `keccak256(name)[12:]`.
"""

from __future__ import annotations

from evm_engine.crypto import keccak256
from evm_engine.encoding.abi import encode, event_topic
from evm_engine.errors import PrecompileError
from evm_engine.types.address import is_valid_account_id
from evm_engine.types.events import Log

from .base import Precompile, PrecompileContext

EXIT_TO_NEAR_ADDRESS = keccak256(b"exitToNear")[12:]
EXIT_TO_ETHEREUM_ADDRESS = keccak256(b"exitToEthereum")[12:]

EXIT_TO_NEAR_TOPIC = event_topic("ExitToNear(address,string,uint256)")
EXIT_TO_ETH_TOPIC = event_topic("ExitToEth(address,address,uint256)")

EXIT_GAS = 10_000


def _burn(ctx: PrecompileContext, name: str, own: bytes) -> int:
    if ctx.address != own:
        raise PrecompileError("exit must be called directly", name=name)
    if ctx.is_static:
        raise PrecompileError("exit is not allowed in a static call", name=name)
    if ctx.value == 0:
        raise PrecompileError("exit requires a positive value", name=name)
    # The dispatcher has already moved the value onto this address.
    ctx.state.sub_balance(ctx.address, ctx.value)
    return ctx.value


class ExitToNear(Precompile):
    name = "exit_to_near"

    def required_gas(self, data: bytes) -> int:
        return EXIT_GAS

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        try:
            dest = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PrecompileError("destination is not utf-8", name=self.name) from e
        if not is_valid_account_id(dest):
            raise PrecompileError("invalid destination account id", name=self.name)
        amount = _burn(ctx, self.name, EXIT_TO_NEAR_ADDRESS)
        ctx.state.add_log(Log(
            address=ctx.address,
            topics=[EXIT_TO_NEAR_TOPIC, ctx.caller.rjust(32, b"\x00")],
            data=encode(["string", "uint256"], [dest, amount]),
        ))
        return b""


class ExitToEthereum(Precompile):
    name = "exit_to_ethereum"

    def required_gas(self, data: bytes) -> int:
        return EXIT_GAS

    def run(self, data: bytes, ctx: PrecompileContext) -> bytes:
        if len(data) != 20:
            raise PrecompileError("destination must be a 20-byte address", name=self.name)
        amount = _burn(ctx, self.name, EXIT_TO_ETHEREUM_ADDRESS)
        ctx.state.add_log(Log(
            address=ctx.address,
            topics=[EXIT_TO_ETH_TOPIC, ctx.caller.rjust(32, b"\x00"), bytes(data).rjust(32, b"\x00")],
            data=encode(["uint256"], [amount]),
        ))
        return b""


__all__ = [
    "ExitToNear",
    "ExitToEthereum",
    "EXIT_TO_NEAR_ADDRESS",
    "EXIT_TO_ETHEREUM_ADDRESS",
    "EXIT_TO_NEAR_TOPIC",
    "EXIT_TO_ETH_TOPIC",
]
