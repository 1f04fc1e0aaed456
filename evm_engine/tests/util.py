"""Shared helpers for the engine tests: contract sources, deploy/call shortcuts."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from eth_keys import keys

from evm_engine.encoding.abi import encode_call, function_selector
from evm_engine.runtime.engine import Engine
from evm_engine.runtime.host import InMemoryHost
from evm_engine.types.address import near_account_to_evm_address
from evm_engine.types.args import (BeginChainArgs, FunctionCallArgs,
                                   GenesisAccount)
from evm_engine.types.outcome import ExecutionOutcome
from evm_engine.vm.asm import assemble, deployer

CHAIN_ID = 1313161554
ENGINE_ACCOUNT = "evm.test"
OWNER = "owner.test"
PROVER = "prover.test"
USER = "alice.test"

PRIVATE_KEY = bytes.fromhex("4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318")
SENDER = keys.PrivateKey(PRIVATE_KEY).public_key.to_canonical_address()


def sel(signature: str) -> str:
    return "0x" + function_selector(signature).hex()


COUNTER = assemble(f"""
    PUSH1 0 CALLDATALOAD PUSH1 0xe0 SHR
    DUP1 PUSH4 {sel("increment()")} EQ @inc JUMPI
    DUP1 PUSH4 {sel("decrement()")} EQ @dec JUMPI
    DUP1 PUSH4 {sel("get()")} EQ @get JUMPI
    PUSH1 0 DUP1 REVERT
inc:
    JUMPDEST PUSH1 0 SLOAD PUSH1 1 ADD PUSH1 0 SSTORE STOP
dec:
    JUMPDEST PUSH1 1 PUSH1 0 SLOAD SUB PUSH1 0 SSTORE STOP
get:
    JUMPDEST PUSH1 0 SLOAD PUSH1 0 MSTORE PUSH1 32 PUSH1 0 RETURN
""")

# calldata = (n, other). Stores 1 + success of the nested call at slot n, or
# 1 at slot 0 when n == 0. The nested call goes to `other` with (n - 1, self).
PING = assemble("""
    PUSH1 0 CALLDATALOAD
    DUP1 ISZERO @base JUMPI
    PUSH1 1 DUP2 SUB PUSH1 0 MSTORE
    ADDRESS PUSH1 32 MSTORE
    PUSH1 0 PUSH1 0 PUSH1 64 PUSH1 0 PUSH1 0 PUSH1 32 CALLDATALOAD GAS CALL
    PUSH1 1 ADD SWAP1 SSTORE STOP
base:
    JUMPDEST PUSH1 1 SWAP1 SSTORE STOP
""")

# Writes slot 0 = 1, then reverts with 4 bytes of data.
REVERTER = assemble("""
    PUSH1 1 PUSH1 0 SSTORE
    PUSH4 0xdeadbeef PUSH1 0 MSTORE
    PUSH1 4 PUSH1 28 REVERT
""")

# Writes slot 0 = 1, then hits INVALID.
FAULTY = assemble("PUSH1 1 PUSH1 0 SSTORE INVALID")

# Calls the address in calldata word 0 with all gas; slot 0 = success, slot 1 = RETURNDATASIZE.
PROXY = assemble("""
    PUSH1 0 PUSH1 0 PUSH1 0 PUSH1 0 PUSH1 0 PUSH1 0 CALLDATALOAD GAS CALL
    PUSH1 0 SSTORE
    RETURNDATASIZE PUSH1 1 SSTORE STOP
""")

# CREATE with calldata as init code; returns the new address (0 on failure).
FACTORY = assemble("""
    CALLDATASIZE PUSH1 0 PUSH1 0 CALLDATACOPY
    CALLDATASIZE PUSH1 0 PUSH1 0 CREATE
    PUSH1 0 MSTORE PUSH1 32 PUSH1 0 RETURN
""")

# CREATE2 with calldata = salt ‖ init code.
FACTORY2 = assemble("""
    PUSH1 32 CALLDATASIZE SUB PUSH1 32 PUSH1 0 CALLDATACOPY
    PUSH1 0 CALLDATALOAD PUSH1 32 CALLDATASIZE SUB PUSH1 0 PUSH1 0 CREATE2
    PUSH1 0 MSTORE PUSH1 32 PUSH1 0 RETURN
""")


@contextmanager
def acting_as(host: InMemoryHost, account_id: str) -> Iterator[None]:
    prev = host.predecessor_account_id()
    host.set_predecessor(account_id)
    try:
        yield
    finally:
        host.set_predecessor(prev)


def deploy(engine: Engine, runtime: bytes) -> bytes:
    outcome = engine.deploy_code(deployer(runtime))
    assert outcome.is_success, outcome
    assert outcome.created_address is not None
    return outcome.created_address


def call(engine: Engine, contract: bytes, signature: str = "", types: Sequence[str] = (),
         values: Sequence[object] = (), *, data: Optional[bytes] = None, value: int = 0,
         gas_limit: Optional[int] = None) -> ExecutionOutcome:
    payload = data if data is not None else encode_call(signature, types, values)
    return engine.call(FunctionCallArgs(contract=contract, input=payload, value=value,
                                        gas_limit=gas_limit))


def fund(engine: Engine, host: InMemoryHost, *allocs: tuple) -> None:
    """Credit balances through begin_chain (benchmark mode, as owner)."""
    with acting_as(host, OWNER):
        engine.begin_chain(BeginChainArgs(
            chain_id=CHAIN_ID,
            genesis_alloc=tuple(GenesisAccount(address=a, balance=b) for a, b in allocs),
        ))


def account_address(account_id: str) -> bytes:
    return near_account_to_evm_address(account_id)


def word(n: int) -> bytes:
    return n.to_bytes(32, "big")
