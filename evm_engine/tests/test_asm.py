from __future__ import annotations

import pytest

from evm_engine.vm.asm import AsmError, assemble, deployer
from evm_engine.vm.opcodes import jumpdests


def test_push_widths():
    assert assemble("PUSH 0") == bytes([0x60, 0x00])
    assert assemble("PUSH 256") == bytes([0x61, 0x01, 0x00])
    assert assemble("PUSH4 1") == bytes([0x63, 0, 0, 0, 1])


def test_labels_resolve_to_push2():
    code = assemble("@end JUMP end: JUMPDEST")
    assert code == bytes([0x61, 0x00, 0x04, 0x56, 0x5B])
    assert jumpdests(code) == frozenset({4})


def test_comments_and_raw_bytes():
    assert assemble("STOP ; halt\n.raw 0xdead") == bytes([0x00, 0xDE, 0xAD])


@pytest.mark.parametrize("source", [
    "FROB",
    "PUSH1 256",
    "PUSH1",
    "@nowhere",
    "a: a:",
])
def test_errors(source):
    with pytest.raises(AsmError):
        assemble(source)


def test_deployer_prefix_is_thirteen_bytes():
    runtime = b"\x60\x01"
    init = deployer(runtime)
    assert len(init) == 13 + len(runtime)
    assert init.endswith(runtime)
