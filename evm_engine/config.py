"""
evm_engine.config - runtime configuration for the engine.

This module centralizes knobs for:
  • Gas schedule source (optional YAML/JSON override file)
  • Feature flags (benchmark entry points)
  • Limits (code size, call depth, refund quotient, default gas, upgrade delay)

Configuration is read from environment variables with safe defaults so a local
run (and the test-suite) works out of the box.

Environment variables (all optional):
  EVM_ENGINE_GAS_SCHEDULE        -> path to a gas schedule YAML/JSON (default: none)
  EVM_ENGINE_BENCHMARK           -> 0/1/true/false, enables begin_chain/begin_block (default: 0)
  EVM_ENGINE_UPGRADE_DELAY       -> blocks between stage_upgrade and deploy_upgrade (default: 1)
  EVM_ENGINE_DEFAULT_GAS_LIMIT   -> gas for calls that do not name one (default: 30_000_000)
  EVM_ENGINE_MAX_CODE_BYTES      -> e.g. "24KiB", "24576" (default: 24576)
  EVM_ENGINE_MAX_CALL_DEPTH      -> integer (default: 1024)
  EVM_ENGINE_REFUND_QUOTIENT     -> integer, refund cap is gas_used // quotient (default: 2)

Programmatic usage:
    from evm_engine.config import get_config
    cfg = get_config()
    if cfg.features.benchmark:
        ...
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

# ----------------------------- helpers -------------------------------------


_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    return bool(v) if v != "" else default


_SIZE_RE = re.compile(r"^\s*(\d+)\s*([kKmM]i?[bB]|[bB])?\s*$")
_SIZE_MULT = {"b": 1, "kb": 1000, "kib": 1024, "mb": 1000**2, "mib": 1024**2}


def _parse_size_bytes(s: Union[str, int]) -> int:
    """
    Parse human-friendly byte sizes:
      "24KiB", "24KB", "24576", 24576 -> bytes (int)
    """
    if isinstance(s, int):
        if s < 0:
            raise ValueError("size must be non-negative")
        return s
    m = _SIZE_RE.match(str(s))
    if not m:
        raise ValueError(f"invalid size: {s!r}")
    unit = (m.group(2) or "B").lower()
    return int(m.group(1)) * _SIZE_MULT[unit]


def _int_setting(overrides: Mapping[str, object], env: Mapping[str, str],
                 key: str, var: str, default: int) -> int:
    raw = overrides.get(key, env.get(var, default))
    try:
        return int(raw, 0) if isinstance(raw, str) else int(raw)  # type: ignore[arg-type]
    except ValueError as e:
        raise ValueError(f"{var} must be int, got {raw!r}") from e


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class FeatureFlags:
    benchmark: bool = False


@dataclass(frozen=True)
class Limits:
    max_code_size_bytes: int = 24576
    max_call_depth: int = 1024
    refund_quotient: int = 2
    default_gas_limit: int = 30_000_000
    upgrade_delay_blocks: int = 1


@dataclass(frozen=True)
class EngineConfig:
    gas_schedule_path: Optional[Path]
    features: FeatureFlags
    limits: Limits

    def to_dict(self) -> Dict[str, object]:
        d = asdict(self)
        d["gas_schedule_path"] = str(self.gas_schedule_path) if self.gas_schedule_path else None
        return d


# ------------------------------ loader --------------------------------------


def _validate_limits(l: Limits) -> Limits:
    if l.max_code_size_bytes <= 0:
        raise ValueError("max_code_size_bytes must be > 0")
    if l.max_call_depth <= 0:
        raise ValueError("max_call_depth must be > 0")
    if l.refund_quotient <= 0:
        raise ValueError("refund_quotient must be > 0")
    if l.default_gas_limit <= 0:
        raise ValueError("default_gas_limit must be > 0")
    if l.upgrade_delay_blocks < 0:
        raise ValueError("upgrade_delay_blocks must be ≥ 0")
    return l


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, bool, Path]]] = None,
) -> EngineConfig:
    """
    Build an EngineConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'gas_schedule_path', 'benchmark', 'max_code_size_bytes', 'max_call_depth',
          'refund_quotient', 'default_gas_limit', 'upgrade_delay_blocks'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    raw_path = overrides.get("gas_schedule_path", env.get("EVM_ENGINE_GAS_SCHEDULE"))
    gas_schedule_path = Path(str(raw_path)).expanduser() if raw_path else None

    if "benchmark" in overrides:
        benchmark = bool(overrides["benchmark"])
    else:
        benchmark = _bool_env(env.get("EVM_ENGINE_BENCHMARK"), False)

    limits = _validate_limits(Limits(
        max_code_size_bytes=_parse_size_bytes(
            overrides.get("max_code_size_bytes", env.get("EVM_ENGINE_MAX_CODE_BYTES", 24576))  # type: ignore[arg-type]
        ),
        max_call_depth=_int_setting(overrides, env, "max_call_depth",
                                    "EVM_ENGINE_MAX_CALL_DEPTH", 1024),
        refund_quotient=_int_setting(overrides, env, "refund_quotient",
                                     "EVM_ENGINE_REFUND_QUOTIENT", 2),
        default_gas_limit=_int_setting(overrides, env, "default_gas_limit",
                                       "EVM_ENGINE_DEFAULT_GAS_LIMIT", 30_000_000),
        upgrade_delay_blocks=_int_setting(overrides, env, "upgrade_delay_blocks",
                                          "EVM_ENGINE_UPGRADE_DELAY", 1),
    ))

    return EngineConfig(
        gas_schedule_path=gas_schedule_path,
        features=FeatureFlags(benchmark=benchmark),
        limits=limits,
    )


@lru_cache(maxsize=1)
def get_config() -> EngineConfig:
    """Cached process-wide config."""
    return load_config()


# ----------------------------- pretty-print ---------------------------------


def _fmt_bytes(n: int) -> str:
    for unit, div in (("MiB", 1024**2), ("KiB", 1024)):
        if n >= div and n % div == 0:
            return f"{n // div}{unit}"
    return f"{n}B"


def summary(cfg: Optional[EngineConfig] = None) -> str:
    """One-line summary of the most important engine knobs."""
    cfg = cfg or get_config()
    l = cfg.limits
    return (
        "evm{"
        f"gas={cfg.gas_schedule_path or 'istanbul'}, "
        f"bench={int(cfg.features.benchmark)}, "
        f"code={_fmt_bytes(l.max_code_size_bytes)}, depth={l.max_call_depth}, "
        f"refund=1/{l.refund_quotient}, gas_limit={l.default_gas_limit}, "
        f"upgrade_delay={l.upgrade_delay_blocks}"
        "}"
    )


__all__ = [
    "FeatureFlags",
    "Limits",
    "EngineConfig",
    "load_config",
    "get_config",
    "summary",
]
