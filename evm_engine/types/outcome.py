"""
evm_engine.types.outcome - StateDiff and ExecutionOutcome.

`ExecutionOutcome` is what every executing entry point returns to the host.

Fields
------
* status          : ExecStatus - SUCCESS / REVERT / ERROR
* output          : bytes      - RETURN/REVERT data (created address for deploys)
* gas_used        : int        - gas charged after the capped refund
* logs            : tuple[Log, ...] - only populated on SUCCESS
* diff            : StateDiff  - changes committed by the invocation (always empty for a view)
* error           : Optional[str] - error code for ERROR outcomes (e.g. 'OUT_OF_GAS')
* created_address : Optional[bytes] - for creation paths

`StateDiff` lists post-values only: accounts whose nonce/balance/code changed,
storage slots written, and accounts destroyed by SELFDESTRUCT.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Sequence, Tuple

from .events import Log
from .hexutil import HexLike, bytes_to_hex, hex_to_bytes
from .status import ExecStatus


@dataclass(frozen=True)
class AccountDiff:
    nonce: int
    balance: int
    code: Optional[bytes] = None  # None means "code unchanged"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nonce": self.nonce,
            "balance": self.balance,
            "code": bytes_to_hex(self.code),
        }


@dataclass(frozen=True)
class StateDiff:
    accounts: Mapping[bytes, AccountDiff] = field(default_factory=dict)
    storage: Mapping[bytes, Mapping[int, int]] = field(default_factory=dict)
    destroyed: FrozenSet[bytes] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (self.accounts or self.storage or self.destroyed)

    def storage_at(self, address: bytes, slot: int) -> Optional[int]:
        return self.storage.get(address, {}).get(slot)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accounts": {bytes_to_hex(a): d.to_dict() for a, d in sorted(self.accounts.items())},
            "storage": {
                bytes_to_hex(a): {hex(k): hex(v) for k, v in sorted(slots.items())}
                for a, slots in sorted(self.storage.items())
            },
            "destroyed": [bytes_to_hex(a) for a in sorted(self.destroyed)],
        }


EMPTY_DIFF = StateDiff()


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Result of one root-level execution.

    The dataclass is frozen for determinism; build variants with `replace()`
    from `dataclasses` if a caller needs to adjust a field.
    """

    status: ExecStatus
    output: bytes
    gas_used: int
    logs: Tuple[Log, ...]
    diff: StateDiff
    error: Optional[str]
    created_address: Optional[bytes]

    def __init__(
        self,
        *,
        status: ExecStatus,
        gas_used: int,
        output: HexLike = b"",
        logs: Sequence[Log] | Iterable[Log] = (),
        diff: Optional[StateDiff] = None,
        error: Optional[str] = None,
        created_address: Optional[HexLike] = None,
    ):
        if gas_used < 0:
            raise ValueError("gas_used must be >= 0")
        logs_t = logs if isinstance(logs, tuple) else tuple(logs)
        for i, ev in enumerate(logs_t):
            if not isinstance(ev, Log):
                raise TypeError(f"logs[{i}] is not a Log (got {type(ev).__name__})")
        if logs_t and status is not ExecStatus.SUCCESS:
            raise ValueError("logs are only carried by successful outcomes")

        object.__setattr__(self, "status", status)
        object.__setattr__(self, "output", hex_to_bytes(output))
        object.__setattr__(self, "gas_used", int(gas_used))
        object.__setattr__(self, "logs", logs_t)
        object.__setattr__(self, "diff", diff if diff is not None else EMPTY_DIFF)
        object.__setattr__(self, "error", error)
        object.__setattr__(
            self,
            "created_address",
            hex_to_bytes(created_address) if created_address is not None else None,
        )

    @property
    def is_success(self) -> bool:
        return self.status.is_success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": str(self.status),
            "output": bytes_to_hex(self.output),
            "gasUsed": self.gas_used,
            "logs": [ev.to_dict() for ev in self.logs],
            "diff": self.diff.to_dict(),
            "error": self.error,
            "createdAddress": bytes_to_hex(self.created_address),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ExecutionOutcome":
        """Inverse of `to_dict` (the state diff is not round-tripped)."""
        raw_logs = d.get("logs", [])
        if not isinstance(raw_logs, (list, tuple)):
            raise TypeError("logs must be a list/tuple")
        return cls(
            status=ExecStatus.from_str(str(d.get("status", ""))),
            gas_used=int(d.get("gasUsed", 0)),
            output=d.get("output") or b"",
            logs=tuple(Log.from_dict(x) for x in raw_logs),
            error=d.get("error"),
            created_address=d.get("createdAddress"),
        )

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        out = bytes_to_hex(self.output) or ""
        if len(out) > 18:
            out = out[:18] + "…"
        return (
            f"ExecutionOutcome(status={self.status.code}, gas_used={self.gas_used}, "
            f"output={out}, logs={len(self.logs)}, error={self.error})"
        )


__all__ = ["AccountDiff", "StateDiff", "EMPTY_DIFF", "ExecutionOutcome"]
