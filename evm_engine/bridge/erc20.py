"""
evm_engine.bridge.erc20 - the built-in bridged token and the NEP-141 ↔ ERC-20 map.

Every NEP-141 token bridged into the engine gets one ERC-20 contract whose
admin (the only account allowed to mint) is the engine's own address. The
runtime is assembled from source so the admin can be baked in as a constant.

Interface:

    balanceOf(address) -> uint256
    totalSupply()      -> uint256
    transfer(address,uint256) -> bool      (reverts on insufficient balance)
    mint(address,uint256) -> bool          (admin only, reverts otherwise)
    admin()            -> address

Storage: slot 1 holds the total supply; balances live at
keccak256(pad32(holder) ‖ pad32(0)), the usual mapping-at-slot-0 layout.

Mapping keys:

    NEP141_ERC20  nep141 account id -> 20-byte token address
    ERC20_NEP141  token address     -> nep141 account id (utf-8)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from evm_engine.crypto import keccak256
from evm_engine.db.kv import ERC20_NEP141, KV, NEP141_ERC20
from evm_engine.encoding.abi import event_topic, function_selector
from evm_engine.errors import EngineError
from evm_engine.vm.asm import assemble, deployer

BALANCE_OF = function_selector("balanceOf(address)")
TOTAL_SUPPLY = function_selector("totalSupply()")
TRANSFER = function_selector("transfer(address,uint256)")
MINT = function_selector("mint(address,uint256)")
ADMIN = function_selector("admin()")
TRANSFER_TOPIC = event_topic("Transfer(address,address,uint256)")

SUPPLY_SLOT = 1
_MASK160 = "0x" + "ff" * 20


def balance_slot(holder: bytes) -> int:
    return int.from_bytes(keccak256(holder.rjust(32, b"\x00") + b"\x00" * 32), "big")


def _sel(selector: bytes) -> str:
    return "0x" + selector.hex()


# Replaces the address on top of the stack with its balance slot.
_SLOT = "PUSH1 0 MSTORE PUSH1 0 PUSH1 32 MSTORE PUSH1 64 PUSH1 0 SHA3"
_ARG0_ADDRESS = f"PUSH1 4 CALLDATALOAD PUSH20 {_MASK160} AND"
_RETURN_TOP = "PUSH1 0 MSTORE PUSH1 32 PUSH1 0 RETURN"


@lru_cache(maxsize=16)
def erc20_runtime(admin: bytes) -> bytes:
    if len(admin) != 20:
        raise ValueError("admin must be a 20-byte address")
    admin_hex = "0x" + admin.hex()
    topic = "0x" + TRANSFER_TOPIC.hex()
    return assemble(f"""
        CALLVALUE @fail JUMPI
        PUSH1 0 CALLDATALOAD PUSH1 0xe0 SHR
        DUP1 PUSH4 {_sel(BALANCE_OF)} EQ @balance_of JUMPI
        DUP1 PUSH4 {_sel(TOTAL_SUPPLY)} EQ @total_supply JUMPI
        DUP1 PUSH4 {_sel(TRANSFER)} EQ @transfer JUMPI
        DUP1 PUSH4 {_sel(MINT)} EQ @mint JUMPI
        DUP1 PUSH4 {_sel(ADMIN)} EQ @admin JUMPI
    fail:
        JUMPDEST
        PUSH1 0 DUP1 REVERT

    balance_of:
        JUMPDEST
        {_ARG0_ADDRESS}
        {_SLOT}
        SLOAD
        {_RETURN_TOP}

    total_supply:
        JUMPDEST
        PUSH1 {SUPPLY_SLOT} SLOAD
        {_RETURN_TOP}

    admin:
        JUMPDEST
        PUSH20 {admin_hex}
        {_RETURN_TOP}

    transfer:
        JUMPDEST
        PUSH1 36 CALLDATALOAD            ; amount
        CALLER {_SLOT}                   ; amount from_slot
        DUP1 SLOAD                       ; amount from_slot from_bal
        DUP3 DUP2 LT @fail JUMPI         ; from_bal < amount
        DUP3 SWAP1 SUB                   ; amount from_slot from_bal-amount
        SWAP1 SSTORE                     ; amount
        {_ARG0_ADDRESS}                  ; amount to
        DUP1 {_SLOT}                     ; amount to to_slot
        DUP1 SLOAD DUP4 ADD SWAP1 SSTORE ; amount to
        DUP2 PUSH1 0 MSTORE
        DUP1 CALLER PUSH32 {topic} PUSH1 32 PUSH1 0 LOG3
        POP POP
        PUSH1 1 {_RETURN_TOP}

    mint:
        JUMPDEST
        CALLER PUSH20 {admin_hex} EQ ISZERO @fail JUMPI
        PUSH1 36 CALLDATALOAD            ; amount
        PUSH1 {SUPPLY_SLOT} SLOAD        ; amount supply
        DUP2 DUP2 ADD                    ; amount supply supply+amount
        SWAP1 DUP2 LT @fail JUMPI        ; wrapped: new < supply
        PUSH1 {SUPPLY_SLOT} SSTORE       ; amount
        {_ARG0_ADDRESS}                  ; amount to
        DUP1 {_SLOT}                     ; amount to to_slot
        DUP1 SLOAD DUP4 ADD SWAP1 SSTORE ; amount to
        DUP2 PUSH1 0 MSTORE
        DUP1 PUSH1 0 PUSH32 {topic} PUSH1 32 PUSH1 0 LOG3
        POP POP
        PUSH1 1 {_RETURN_TOP}
    """)


def erc20_init_code(admin: bytes) -> bytes:
    return deployer(erc20_runtime(admin))


class Erc20Mapping:
    """Both directions of the NEP-141 ↔ ERC-20 token map."""

    def __init__(self, kv: KV) -> None:
        self.kv = kv

    def get_erc20(self, nep141: str) -> Optional[bytes]:
        return self.kv.get(NEP141_ERC20.key(nep141))

    def get_nep141(self, erc20: bytes) -> Optional[str]:
        raw = self.kv.get(ERC20_NEP141.key(erc20))
        return raw.decode("utf-8") if raw is not None else None

    def ensure_unregistered(self, nep141: str) -> None:
        if self.get_erc20(nep141) is not None:
            raise EngineError("ERR_NEP141_TOKEN_ALREADY_REGISTERED", data={"nep141": nep141})

    def register(self, nep141: str, erc20: bytes) -> None:
        self.ensure_unregistered(nep141)
        with self.kv.batch() as b:
            b.put(NEP141_ERC20.key(nep141), bytes(erc20))
            b.put(ERC20_NEP141.key(erc20), nep141.encode("utf-8"))


__all__ = [
    "BALANCE_OF",
    "TOTAL_SUPPLY",
    "TRANSFER",
    "MINT",
    "ADMIN",
    "TRANSFER_TOPIC",
    "balance_slot",
    "erc20_runtime",
    "erc20_init_code",
    "Erc20Mapping",
]
