"""
Parsing of the `Deposited` event emitted by the Ethereum-side custodian.

The host hands over a proven log entry as RLP:

    [address(20), [topic0, topic1], data]

    event Deposited(address indexed sender, string recipient, uint256 amount, uint256 fee)

Error codes (EngineError.code):
    ERR_RLP_FAILED          entry is not a well-formed RLP log
    ERR_PARSE_DEPOSIT_EVENT wrong signature, topic count or ABI data
    ERR_INVALID_SENDER      sender topic is not an address
    ERR_INVALID_AMOUNT      amount does not fit 128 bits
    ERR_INVALID_FEE         fee does not fit 128 bits
plus the message errors of `TokenMessageData.parse_event_message`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import rlp
from rlp.exceptions import RLPException

from evm_engine.encoding.abi import decode, event_topic
from evm_engine.errors import EngineError
from evm_engine.types.balance import Fee, NEP141Wei
from evm_engine.types.word import U128_MAX

from .connector import TokenMessageData

DEPOSITED_EVENT = "Deposited"
DEPOSITED_SIGNATURE = "Deposited(address,string,uint256,uint256)"
DEPOSITED_TOPIC = event_topic(DEPOSITED_SIGNATURE)


@dataclass(frozen=True)
class LogEntry:
    address: bytes
    topics: List[bytes]
    data: bytes

    def encode(self) -> bytes:
        return rlp.encode([self.address, list(self.topics), self.data])

    @classmethod
    def decode(cls, raw: bytes) -> "LogEntry":
        try:
            items = rlp.decode(bytes(raw))
        except RLPException as e:
            raise EngineError("ERR_RLP_FAILED", str(e)) from e
        if not isinstance(items, list) or len(items) != 3:
            raise EngineError("ERR_RLP_FAILED", "log entry must be a 3-item list")
        address, topics, data = items
        if not isinstance(address, bytes) or len(address) != 20:
            raise EngineError("ERR_RLP_FAILED", "log address must be 20 bytes")
        if not isinstance(topics, list) or any(
            not isinstance(t, bytes) or len(t) != 32 for t in topics
        ):
            raise EngineError("ERR_RLP_FAILED", "topics must be 32-byte strings")
        if not isinstance(data, bytes):
            raise EngineError("ERR_RLP_FAILED", "log data must be a byte string")
        return cls(address=address, topics=topics, data=data)


@dataclass(frozen=True)
class DepositedEvent:
    eth_custodian_address: bytes
    sender: bytes
    token_message_data: TokenMessageData
    amount: NEP141Wei
    fee: Fee

    @classmethod
    def from_log_entry_data(cls, data: bytes) -> "DepositedEvent":
        entry = LogEntry.decode(data)
        if len(entry.topics) != 2 or entry.topics[0] != DEPOSITED_TOPIC:
            raise EngineError("ERR_PARSE_DEPOSIT_EVENT", "not a Deposited event")
        try:
            recipient, amount, fee = decode(["string", "uint256", "uint256"], entry.data)
        except (ValueError, UnicodeDecodeError) as e:
            raise EngineError("ERR_PARSE_DEPOSIT_EVENT", str(e)) from e

        sender_topic = entry.topics[1]
        if any(sender_topic[:12]):
            raise EngineError("ERR_INVALID_SENDER")
        if amount > U128_MAX:
            raise EngineError("ERR_INVALID_AMOUNT")
        if fee > U128_MAX:
            raise EngineError("ERR_INVALID_FEE")

        fee_t = Fee(fee)
        return cls(
            eth_custodian_address=entry.address,
            sender=sender_topic[12:],
            token_message_data=TokenMessageData.parse_event_message(recipient, fee_t),
            amount=NEP141Wei(amount),
            fee=fee_t,
        )


__all__ = ["DepositedEvent", "LogEntry", "DEPOSITED_EVENT", "DEPOSITED_TOPIC"]
