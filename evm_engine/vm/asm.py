"""
evm_engine.vm.asm - a tiny two-pass assembler with labels.

Used to build the engine's built-in contracts (the bridged ERC-20 token) and
test fixtures without shipping opaque hex blobs.

Syntax (whitespace separated, `;` starts a comment):

    PUSH1 0x80         ; explicit-width push
    PUSH 1000          ; smallest push that fits (PUSH1 for 0)
    @loop              ; PUSH2 <offset of label 'loop'>
    loop:              ; define label at the current offset (emits nothing)
    JUMPDEST
    .raw 0xdeadbeef    ; raw bytes

Label references always assemble to PUSH2, so offsets are fixed after the
first pass.
"""

from __future__ import annotations

from typing import Dict, List, Tuple, Union

from .opcodes import OPCODE_BY_NAME

PUSH_BASE = 0x5F

Item = Tuple[str, Union[int, str, bytes, Tuple[int, int]]]


class AsmError(ValueError):
    pass


def _parse_int(tok: str) -> int:
    try:
        return int(tok, 0)
    except ValueError as e:
        raise AsmError(f"bad literal {tok!r}") from e


def _width(value: int) -> int:
    return max(1, (value.bit_length() + 7) // 8)


def _tokenize(source: str) -> List[str]:
    out: List[str] = []
    for line in source.splitlines():
        out.extend(line.split(";", 1)[0].split())
    return out


def _parse(source: str) -> List[Item]:
    items: List[Item] = []
    toks = _tokenize(source)
    i = 0
    while i < len(toks):
        tok = toks[i]
        up = tok.upper()
        if tok.endswith(":"):
            items.append(("label", tok[:-1]))
        elif tok.startswith("@"):
            items.append(("ref", tok[1:]))
        elif up == ".RAW":
            i += 1
            raw = toks[i] if i < len(toks) else ""
            items.append(("raw", bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)))
        elif up == "PUSH" or (up.startswith("PUSH") and up[4:].isdigit()):
            i += 1
            if i >= len(toks):
                raise AsmError(f"{tok} needs an operand")
            arg = toks[i]
            if arg.startswith("@"):
                items.append(("ref", arg[1:]))
            else:
                value = _parse_int(arg)
                n = _width(value) if up == "PUSH" else int(up[4:])
                if not 1 <= n <= 32 or _width(value) > n:
                    raise AsmError(f"{tok} cannot hold {arg}")
                items.append(("push", (n, value)))
        elif up in OPCODE_BY_NAME:
            items.append(("op", OPCODE_BY_NAME[up]))
        else:
            raise AsmError(f"unknown mnemonic {tok!r}")
        i += 1
    return items


def _size(item: Item) -> int:
    kind, v = item
    if kind == "label":
        return 0
    if kind == "ref":
        return 3
    if kind == "raw":
        return len(v)  # type: ignore[arg-type]
    if kind == "push":
        return 1 + v[0]  # type: ignore[index]
    return 1


def assemble(source: str) -> bytes:
    items = _parse(source)
    labels: Dict[str, int] = {}
    offset = 0
    for item in items:
        if item[0] == "label":
            name = str(item[1])
            if name in labels:
                raise AsmError(f"duplicate label {name!r}")
            labels[name] = offset
        offset += _size(item)

    out = bytearray()
    for kind, v in items:
        if kind == "op":
            out.append(int(v))
        elif kind == "push":
            n, value = v  # type: ignore[misc]
            out.append(PUSH_BASE + n)
            out.extend(value.to_bytes(n, "big"))
        elif kind == "ref":
            if v not in labels:
                raise AsmError(f"undefined label {v!r}")
            out.append(PUSH_BASE + 2)
            out.extend(labels[str(v)].to_bytes(2, "big"))
        elif kind == "raw":
            out.extend(v)  # type: ignore[arg-type]
    return bytes(out)


def deployer(runtime: bytes) -> bytes:
    """Init code that returns `runtime` as the deployed code."""
    if len(runtime) > 0xFFFF:
        raise AsmError("runtime too large for a PUSH2 length")
    prefix = assemble(f"PUSH2 {len(runtime)} DUP1 PUSH2 13 PUSH1 0 CODECOPY PUSH1 0 RETURN")
    return prefix + runtime


__all__ = ["assemble", "deployer", "AsmError"]
