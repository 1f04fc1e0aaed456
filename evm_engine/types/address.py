"""
evm_engine.types.address - 20-byte addresses and host account-id mapping.

Addresses are opaque bit patterns; they do not map 1:1 onto host accounts.
The one fixed mapping is `near_account_to_evm_address`, which derives the EVM
identity the engine uses for a host caller (`keccak256(account_id)[12:]`).

Host account ids follow the usual NEAR rules: 2..64 characters of lowercase
alphanumerics, separated by single '-', '_' or '.' characters.
"""

from __future__ import annotations

import re
from typing import Union

from evm_engine.crypto import keccak256
from evm_engine.errors import EngineError

ADDRESS_LENGTH = 20
ZERO_ADDRESS: bytes = b"\x00" * ADDRESS_LENGTH

HexOrBytes = Union[str, bytes, bytearray, memoryview]

_ACCOUNT_ID_RE = re.compile(r"^(([a-z\d]+[\-_])*[a-z\d]+\.)*([a-z\d]+[\-_])*[a-z\d]+$")
_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def to_address(value: HexOrBytes) -> bytes:
    """
    Normalize bytes or a hex string (with or without 0x) into a 20-byte address.

    Raises:
        ValueError if the input does not describe exactly 20 bytes.
    """
    if isinstance(value, str):
        s = value[2:] if value.startswith(("0x", "0X")) else value
        if len(s) != 2 * ADDRESS_LENGTH or not _HEX_RE.match(s):
            raise ValueError(f"invalid address hex: {value!r}")
        return bytes.fromhex(s)
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if len(raw) != ADDRESS_LENGTH:
            raise ValueError(f"address must be {ADDRESS_LENGTH} bytes, got {len(raw)}")
        return raw
    raise TypeError(f"expected address bytes or hex, got {type(value).__name__}")


def address_to_word(addr: bytes) -> int:
    return int.from_bytes(addr, "big")


def word_to_address(word: int) -> bytes:
    """Low 160 bits of a word as an address."""
    return (word & ((1 << 160) - 1)).to_bytes(ADDRESS_LENGTH, "big")


def is_valid_account_id(account_id: str) -> bool:
    if not isinstance(account_id, str):
        return False
    return 2 <= len(account_id) <= 64 and bool(_ACCOUNT_ID_RE.match(account_id))


def near_account_to_evm_address(account_id: Union[str, bytes]) -> bytes:
    raw = account_id.encode("utf-8") if isinstance(account_id, str) else bytes(account_id)
    return keccak256(raw)[12:]


def validate_eth_address(address: str) -> bytes:
    """
    Decode a 40-character hex address (no 0x prefix).

    Raises:
        EngineError('ERR_INVALID_ADDRESS') on bad hex or bad length.
    """
    if not _HEX_RE.match(address):
        raise EngineError("ERR_INVALID_ADDRESS", "address is not valid hex")
    if len(address) != 2 * ADDRESS_LENGTH:
        raise EngineError("ERR_INVALID_ADDRESS", f"address must be 40 hex chars, got {len(address)}")
    return bytes.fromhex(address)


__all__ = [
    "ADDRESS_LENGTH",
    "ZERO_ADDRESS",
    "to_address",
    "address_to_word",
    "word_to_address",
    "is_valid_account_id",
    "near_account_to_evm_address",
    "validate_eth_address",
]
