"""
evm_engine.bridge.connector - deposit messages and the ETH mint flow.

Deposits carry a free-form `recipient` string. `TokenMessageData` turns it into
one of two shapes:

    "alice.near"                        -> Near deposit to alice.near
    "relayer.near:0x<40 hex>"           -> Eth deposit; the NEP-141 transfer goes
                                           to relayer.near with the message
                                           "relayer.near:<hex(fee u128 BE ‖ address)>"

The prepared message comes back to the engine through `ft_on_transfer`, where
`FtTransferMessageData.parse_on_transfer_message` recovers relayer, fee and
recipient, and `mint_eth` credits the recipient and the relayer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from evm_engine.errors import EngineError
from evm_engine.state.adapter import StateAdapter
from evm_engine.types.address import (is_valid_account_id,
                                      near_account_to_evm_address,
                                      validate_eth_address)
from evm_engine.types.balance import Fee, NEP141Wei, Wei

_FEE_BYTES = 16
_ADDRESS_BYTES = 20


@dataclass(frozen=True)
class TokenMessageData:
    """`message` is None for a Near deposit and the prepared on-transfer message for Eth."""

    receiver_id: str
    message: Optional[str] = None

    @property
    def is_eth(self) -> bool:
        return self.message is not None

    @property
    def recipient(self) -> str:
        return self.receiver_id

    @classmethod
    def parse_event_message(cls, message: str, fee: Fee) -> "TokenMessageData":
        parts = message.split(":")
        if len(parts) >= 3:
            raise EngineError("ERR_INVALID_EVENT_MESSAGE_FORMAT")
        account_id = parts[0]
        if not is_valid_account_id(account_id):
            raise EngineError("ERR_INVALID_ACCOUNT_ID", data={"account_id": account_id})
        if len(parts) == 1:
            return cls(receiver_id=account_id)
        return cls(
            receiver_id=account_id,
            message=prepare_message_for_on_transfer(account_id, fee, parts[1]),
        )


def prepare_message_for_on_transfer(relayer_id: str, fee: Fee, address: str) -> str:
    if len(address) == 42:
        if not address.startswith("0x"):
            raise EngineError("ERR_INVALID_ADDRESS", "42-character address must start with 0x")
        address = address[2:]
    raw = fee.into_u128().to_bytes(_FEE_BYTES, "big") + validate_eth_address(address)
    return f"{relayer_id}:{raw.hex()}"


@dataclass(frozen=True)
class FtTransferMessageData:
    relayer: str
    recipient: bytes
    fee: Fee

    @classmethod
    def parse_on_transfer_message(cls, message: str) -> "FtTransferMessageData":
        parts = message.split(":")
        if len(parts) != 2:
            raise EngineError("ERR_INVALID_ON_TRANSFER_MESSAGE_FORMAT")
        relayer, payload = parts
        if not is_valid_account_id(relayer):
            raise EngineError("ERR_INVALID_ACCOUNT_ID", data={"account_id": relayer})
        try:
            raw = bytes.fromhex(payload)
        except ValueError as e:
            raise EngineError("ERR_INVALID_ON_TRANSFER_MESSAGE_HEX") from e
        if len(raw) != _FEE_BYTES + _ADDRESS_BYTES:
            raise EngineError("ERR_INVALID_ON_TRANSFER_MESSAGE_DATA")
        return cls(
            relayer=relayer,
            recipient=raw[_FEE_BYTES:],
            fee=Fee(int.from_bytes(raw[:_FEE_BYTES], "big")),
        )

    def encode(self) -> str:
        raw = self.fee.into_u128().to_bytes(_FEE_BYTES, "big") + self.recipient
        return f"{self.relayer}:{raw.hex()}"


@dataclass(frozen=True)
class MintReceipt:
    recipient: bytes
    recipient_amount: Wei
    relayer: bytes
    fee: Wei


def mint_eth(state: StateAdapter, data: FtTransferMessageData, amount: NEP141Wei) -> MintReceipt:
    """
    Credit `amount - fee` to the recipient and `fee` to the relayer's derived
    address, in the innermost overlay.
    """
    if data.fee.amount > amount.amount:
        raise EngineError("ERR_NOT_ENOUGH_BALANCE_FOR_FEE",
                          data={"amount": amount.amount, "fee": data.fee.amount})
    net = Wei(amount.amount - data.fee.amount)
    fee = Wei.from_amount(data.fee)
    relayer_address = near_account_to_evm_address(data.relayer)
    state.set_balance(data.recipient, (Wei(state.get_balance(data.recipient)) + net).amount)
    if fee.amount:
        state.set_balance(relayer_address, (Wei(state.get_balance(relayer_address)) + fee).amount)
    return MintReceipt(recipient=data.recipient, recipient_amount=net,
                       relayer=relayer_address, fee=fee)


__all__ = [
    "TokenMessageData",
    "FtTransferMessageData",
    "MintReceipt",
    "prepare_message_for_on_transfer",
    "mint_eth",
]
