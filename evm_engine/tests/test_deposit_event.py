from __future__ import annotations

import pytest

from evm_engine.bridge.connector import FtTransferMessageData
from evm_engine.bridge.deposit_event import DEPOSITED_TOPIC, DepositedEvent, LogEntry
from evm_engine.encoding.abi import encode
from evm_engine.errors import EngineError
from evm_engine.types.balance import Fee, NEP141Wei

CUSTODIAN = bytes.fromhex("6bfad42cfc4efc96f529d786d643ff4a8b89fa52")
SENDER = b"\x5e" * 20
RECIPIENT = "ab" * 20


def entry(recipient="alice.near", amount=1_000, fee=5, *, topics=None, data=None) -> bytes:
    return LogEntry(
        address=CUSTODIAN,
        topics=topics if topics is not None else [DEPOSITED_TOPIC, SENDER.rjust(32, b"\x00")],
        data=data if data is not None else encode(["string", "uint256", "uint256"],
                                                   [recipient, amount, fee]),
    ).encode()


def test_near_deposit():
    ev = DepositedEvent.from_log_entry_data(entry())
    assert ev.eth_custodian_address == CUSTODIAN
    assert ev.sender == SENDER
    assert ev.amount == NEP141Wei(1_000)
    assert ev.fee == Fee(5)
    assert ev.token_message_data.recipient == "alice.near"
    assert not ev.token_message_data.is_eth


def test_eth_deposit_prepares_on_transfer_message():
    ev = DepositedEvent.from_log_entry_data(entry(f"relayer.near:0x{RECIPIENT}"))
    msg = ev.token_message_data
    assert msg.is_eth
    assert msg.receiver_id == "relayer.near"
    parsed = FtTransferMessageData.parse_on_transfer_message(msg.message)
    assert parsed.relayer == "relayer.near"
    assert parsed.recipient == bytes.fromhex(RECIPIENT)
    assert parsed.fee == Fee(5)


@pytest.mark.parametrize("raw,code", [
    (b"\xc0", "ERR_RLP_FAILED"),
    (b"not rlp at all", "ERR_RLP_FAILED"),
    (entry(topics=[DEPOSITED_TOPIC]), "ERR_PARSE_DEPOSIT_EVENT"),
    (entry(topics=[b"\x00" * 32, SENDER.rjust(32, b"\x00")]), "ERR_PARSE_DEPOSIT_EVENT"),
    (entry(data=b"\x01"), "ERR_PARSE_DEPOSIT_EVENT"),
    (entry(topics=[DEPOSITED_TOPIC, b"\x01" * 32]), "ERR_INVALID_SENDER"),
    (entry(amount=2**128), "ERR_INVALID_AMOUNT"),
    (entry(fee=2**128), "ERR_INVALID_FEE"),
    (entry("a:b:c"), "ERR_INVALID_EVENT_MESSAGE_FORMAT"),
    (entry("Not An Account"), "ERR_INVALID_ACCOUNT_ID"),
    (entry("relayer.near:0x1234"), "ERR_INVALID_ADDRESS"),
])
def test_malformed_deposits(raw, code):
    with pytest.raises(EngineError) as e:
        DepositedEvent.from_log_entry_data(raw)
    assert e.value.code == code


def test_log_entry_roundtrip_preserves_fields():
    raw = entry()
    decoded = LogEntry.decode(raw)
    assert decoded.address == CUSTODIAN
    assert decoded.encode() == raw
