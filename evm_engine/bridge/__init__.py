"""
evm_engine.bridge - the Ethereum ↔ host token bridge.

- deposit_event : parse proven `Deposited` log entries
- connector     : deposit message formats and the ETH mint flow (`ft_on_transfer`)
- erc20         : built-in bridged ERC-20 token and the NEP-141 ↔ ERC-20 mapping
"""

from .connector import FtTransferMessageData, TokenMessageData, mint_eth
from .deposit_event import DepositedEvent, LogEntry
from .erc20 import Erc20Mapping, erc20_init_code, erc20_runtime

__all__ = [
    "DepositedEvent",
    "LogEntry",
    "TokenMessageData",
    "FtTransferMessageData",
    "mint_eth",
    "Erc20Mapping",
    "erc20_init_code",
    "erc20_runtime",
]
