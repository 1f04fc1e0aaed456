"""
evm_engine.encoding.cbor - canonical CBOR encode/decode for the host boundary.

Entry-point payloads are CBOR maps with text keys. Encoding is canonical
(RFC 8949 §4.2.1 deterministic ordering) so identical arguments always yield
identical bytes; decoding is strict about the top-level shape and raises
`EngineError('ERR_ARGS')` on any malformed payload.

Public API
----------
- dumps_canonical(obj) -> bytes
- loads(data) -> Any
- loads_map(data, required=..., optional=...) -> dict
- Field checkers: req_bytes / req_uint / req_text / opt_bytes / opt_uint
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from io import BytesIO
from typing import Any, Dict, Iterable, Mapping, Optional

import cbor2

from evm_engine.errors import EngineError


def _canon_obj(obj: Any) -> Any:
    """Dataclasses → dicts, tuples → lists, recursively; dict keys must be text."""
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = asdict(obj)
    if isinstance(obj, dict):
        for k in obj.keys():
            if not isinstance(k, str):
                raise EngineError("ERR_ARGS", f"non-text map key {k!r}")
        return {k: _canon_obj(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_canon_obj(x) for x in obj]
    if isinstance(obj, (bytearray, memoryview)):
        return bytes(obj)
    return obj


def dumps_canonical(obj: Any) -> bytes:
    bio = BytesIO()
    cbor2.CBOREncoder(bio, canonical=True).encode(_canon_obj(obj))
    return bio.getvalue()


def loads(data: bytes) -> Any:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise EngineError("ERR_ARGS", "payload must be bytes")
    try:
        return cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, ValueError, EOFError) as e:
        raise EngineError("ERR_ARGS", f"invalid CBOR payload: {e}") from e


def loads_map(
    data: bytes,
    *,
    required: Iterable[str] = (),
    optional: Iterable[str] = (),
) -> Dict[str, Any]:
    """
    Decode a CBOR map and check its key set: every `required` key present and
    nothing outside `required ∪ optional`.
    """
    obj = loads(data)
    if not isinstance(obj, dict):
        raise EngineError("ERR_ARGS", "payload must be a CBOR map")
    req = set(required)
    allowed = req | set(optional)
    missing = req - obj.keys()
    if missing:
        raise EngineError("ERR_ARGS", f"missing fields: {sorted(missing)}")
    extra = set(obj.keys()) - allowed
    if extra:
        raise EngineError("ERR_ARGS", f"unexpected fields: {sorted(map(str, extra))}")
    return obj


# ----------------------------- field checkers --------------------------------


def req_bytes(m: Mapping[str, Any], key: str, n: Optional[int] = None) -> bytes:
    v = m.get(key)
    if not isinstance(v, (bytes, bytearray)):
        raise EngineError("ERR_ARGS", f"{key} must be a byte string")
    if n is not None and len(v) != n:
        raise EngineError("ERR_ARGS", f"{key} must be {n} bytes")
    return bytes(v)


def opt_bytes(m: Mapping[str, Any], key: str, default: bytes = b"",
              n: Optional[int] = None) -> bytes:
    if m.get(key) is None:
        return default
    return req_bytes(m, key, n)


def req_uint(m: Mapping[str, Any], key: str, *, bits: int = 256) -> int:
    v = m.get(key)
    if not isinstance(v, int) or isinstance(v, bool) or v < 0 or v >= (1 << bits):
        raise EngineError("ERR_ARGS", f"{key} must be an unsigned {bits}-bit integer")
    return v


def opt_uint(m: Mapping[str, Any], key: str, default: Optional[int] = None, *,
             bits: int = 256) -> Optional[int]:
    if m.get(key) is None:
        return default
    return req_uint(m, key, bits=bits)


def req_text(m: Mapping[str, Any], key: str) -> str:
    v = m.get(key)
    if not isinstance(v, str):
        raise EngineError("ERR_ARGS", f"{key} must be text")
    return v


__all__ = [
    "dumps_canonical",
    "loads",
    "loads_map",
    "req_bytes",
    "opt_bytes",
    "req_uint",
    "opt_uint",
    "req_text",
]
