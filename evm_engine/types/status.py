"""
evm_engine.types.status - canonical execution status enum.

ExecStatus models the *logical* outcome of a frame or a root call:
  - SUCCESS : halted via STOP/RETURN/SELFDESTRUCT (or end of code)
  - REVERT  : halted via REVERT, remaining gas returned, return data kept
  - ERROR   : exceptional halt (opcode- or call-level error), all frame gas consumed

String forms:
  - str(ExecStatus.SUCCESS) -> "success"
  - ExecStatus.SUCCESS.code  -> "SUCCESS"
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ExecStatus(str, Enum):
    SUCCESS = "success"
    REVERT = "revert"
    ERROR = "error"

    @property
    def code(self) -> str:
        return self.value.upper()

    @property
    def is_success(self) -> bool:
        return self is ExecStatus.SUCCESS

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value

    @classmethod
    def from_str(cls, s: str, *, default: Optional["ExecStatus"] = None) -> "ExecStatus":
        """
        Parse a status from a string (case-insensitive). Accepts the enum values
        plus the aliases "ok" and "fail"/"failed".
        """
        norm = (s or "").strip().lower()
        aliases = {"ok": cls.SUCCESS, "fail": cls.ERROR, "failed": cls.ERROR}
        if norm in aliases:
            return aliases[norm]
        try:
            return cls(norm)
        except ValueError:
            if default is not None:
                return default
            raise ValueError(f"unknown ExecStatus: {s!r}") from None


__all__ = ["ExecStatus"]
