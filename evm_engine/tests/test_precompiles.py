from __future__ import annotations

import pytest
from eth_keys import keys
from py_ecc.optimized_bn128 import G2, field_modulus, normalize

from evm_engine.crypto import keccak256
from evm_engine.db.kv import MemoryKV
from evm_engine.errors import PrecompileError
from evm_engine.precompiles.base import PrecompileContext, precompile_address
from evm_engine.precompiles.blake2f import Blake2F
from evm_engine.precompiles.bn128 import EcAdd, EcMul, EcPairing
from evm_engine.precompiles.bridge import (EXIT_TO_ETH_TOPIC,
                                           EXIT_TO_ETHEREUM_ADDRESS,
                                           EXIT_TO_NEAR_ADDRESS,
                                           EXIT_TO_NEAR_TOPIC)
from evm_engine.precompiles.ecrecover import EcRecover
from evm_engine.precompiles.hashing import Identity, Ripemd160, Sha256
from evm_engine.precompiles.modexp import ModExp
from evm_engine.precompiles.registry import default_registry
from evm_engine.state.adapter import StateAdapter
from evm_engine.types.args import FunctionCallArgs, ViewCallArgs
from evm_engine.types.status import ExecStatus
from evm_engine.vm.asm import assemble

from .util import (ENGINE_ACCOUNT, PRIVATE_KEY, SENDER, account_address, deploy,
                   fund, word)

G1 = word(1) + word(2)
G1_DOUBLE = bytes.fromhex(
    "030644e72e131a029b85045b68181585d97816a916871ca8d3c208c16d87cfd3"
    "15ed738c0e0a7c92e7845f96b2ae9c0a68a6a449e3538fc7ff3ebf7a5a18a2c4"
)


@pytest.fixture
def ctx() -> PrecompileContext:
    return PrecompileContext(caller=b"\x01" * 20, address=b"\x02" * 20, value=0,
                             state=StateAdapter(MemoryKV()))


def test_registry_covers_istanbul_and_bridge():
    reg = default_registry()
    for n in range(1, 10):
        assert precompile_address(n) in reg
    assert EXIT_TO_NEAR_ADDRESS in reg
    assert EXIT_TO_ETHEREUM_ADDRESS in reg
    assert EXIT_TO_NEAR_ADDRESS not in default_registry(bridge=False)


def test_hashing(ctx):
    assert Sha256().run(b"", ctx).hex() == (
        "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855")
    assert Ripemd160().run(b"", ctx).hex() == (
        "000000000000000000000000" "9c1185a5c5e9fc54612808977ee8f548b2258d31")
    assert Identity().run(b"abc", ctx) == b"abc"
    assert Sha256().required_gas(b"x" * 33) == 60 + 24


def test_ecrecover_roundtrip(ctx):
    msg_hash = keccak256(b"hello")
    sig = keys.PrivateKey(PRIVATE_KEY).sign_msg_hash(msg_hash)
    data = msg_hash + word(sig.v + 27) + word(sig.r) + word(sig.s)
    assert EcRecover().run(data, ctx) == SENDER.rjust(32, b"\x00")


def test_ecrecover_bad_v_gives_empty_output(ctx):
    msg_hash = keccak256(b"hello")
    sig = keys.PrivateKey(PRIVATE_KEY).sign_msg_hash(msg_hash)
    assert EcRecover().run(msg_hash + word(29) + word(sig.r) + word(sig.s), ctx) == b""
    assert EcRecover().run(b"", ctx) == b""


def test_modexp(ctx):
    data = word(1) + word(1) + word(1) + b"\x03\x02\x05"
    assert ModExp().run(data, ctx) == b"\x04"
    assert ModExp().run(word(0) + word(0) + word(0), ctx) == b""


def test_bn128_add_mul_pairing(ctx):
    assert EcAdd().run(G1 + G1, ctx) == G1_DOUBLE
    assert EcMul().run(G1 + word(2), ctx) == G1_DOUBLE
    assert EcAdd().run(b"", ctx) == word(0) + word(0)
    assert EcPairing().run(b"", ctx) == word(1)


def _g2_bytes() -> bytes:
    x, y = normalize(G2)
    return b"".join(int(c).to_bytes(32, "big") for c in (*reversed(x.coeffs), *reversed(y.coeffs)))


def test_bn128_pairing_checks_product_of_pairs(ctx):
    neg_g1 = word(1) + word(field_modulus - 2)
    g2 = _g2_bytes()
    assert EcPairing().required_gas(G1 + g2 + neg_g1 + g2) == 45000 + 2 * 34000
    assert EcPairing().run(G1 + g2 + neg_g1 + g2, ctx) == word(1)
    assert EcPairing().run(G1 + g2, ctx) == word(0)


def test_bn128_pairing_rejects_ragged_input(ctx):
    with pytest.raises(PrecompileError):
        EcPairing().run(G1 + _g2_bytes()[:-1], ctx)


def test_bn128_rejects_point_off_curve(ctx):
    with pytest.raises(PrecompileError):
        EcAdd().run(word(1) + word(3) + G1, ctx)


def test_blake2f_eip152_vector(ctx):
    h = bytes.fromhex(
        "48c9bdf267e6096a3ba7ca8485ae67bb2bf894fe72f36e3cf1361d5f3af54fa5"
        "d182e6ad7f520e511f6c3e2b8c68059b6bbd41fbabd9831f79217e1319cde05b"
    )
    m = b"abc".ljust(128, b"\x00")
    t = (3).to_bytes(8, "little") + bytes(8)
    data = (12).to_bytes(4, "big") + h + m + t + b"\x01"
    assert Blake2F().required_gas(data) == 12
    assert Blake2F().run(data, ctx).hex() == (
        "ba80a53f981c4d0d6a2797b69f12f6e94c212f14685ac4b74b12bb6fdbffa2d1"
        "7d87c5392aab792dc252d5de4533cc9518d38aa8dbf1925ab92386edd4009923"
    )


# ---------------------------------------------------------------------------
# Through the engine
# ---------------------------------------------------------------------------


def test_precompile_out_of_gas_spends_everything(engine):
    limit = 21000 + 16 * 3 + 50
    out = engine.call(FunctionCallArgs(contract=precompile_address(2), input=b"abc",
                                       gas_limit=limit))
    assert out.status is ExecStatus.ERROR
    assert out.error == "OUT_OF_GAS"
    assert out.gas_used == limit


def test_exit_to_near_burns_value_and_logs(engine, host):
    me = account_address(ENGINE_ACCOUNT)
    fund(engine, host, (me, 1_000))
    out = engine.call(FunctionCallArgs(contract=EXIT_TO_NEAR_ADDRESS, input=b"bob.near",
                                       value=300))
    assert out.is_success, out
    assert engine.get_balance(me) == 700
    assert engine.get_balance(EXIT_TO_NEAR_ADDRESS) == 0
    (log,) = out.logs
    assert log.address == EXIT_TO_NEAR_ADDRESS
    assert log.topics == (EXIT_TO_NEAR_TOPIC, me.rjust(32, b"\x00"))


def test_exit_to_ethereum(engine, host):
    me = account_address(ENGINE_ACCOUNT)
    fund(engine, host, (me, 50))
    dest = b"\x42" * 20
    out = engine.call(FunctionCallArgs(contract=EXIT_TO_ETHEREUM_ADDRESS, input=dest, value=50))
    assert out.is_success
    assert out.logs[0].topics[0] == EXIT_TO_ETH_TOPIC
    assert out.logs[0].topics[2] == dest.rjust(32, b"\x00")
    assert engine.get_balance(me) == 0


@pytest.mark.parametrize("payload,value", [(b"bob.near", 0), (b"NOT VALID", 5)])
def test_exit_rejects_bad_requests(engine, host, payload, value):
    me = account_address(ENGINE_ACCOUNT)
    fund(engine, host, (me, 100))
    out = engine.call(FunctionCallArgs(contract=EXIT_TO_NEAR_ADDRESS, input=payload, value=value))
    assert out.status is ExecStatus.ERROR
    assert out.error == "PRECOMPILE_ERROR"
    assert engine.get_balance(me) == 100


def test_exit_in_static_context_fails(engine):
    out = engine.view(ViewCallArgs(sender=SENDER, address=EXIT_TO_NEAR_ADDRESS, input=b"bob.near"))
    assert out.status is ExecStatus.ERROR


def test_exit_through_delegatecall_fails(engine, host):
    me = account_address(ENGINE_ACCOUNT)
    fund(engine, host, (me, 100))
    relay = deploy(engine, assemble(
        f"PUSH1 0 PUSH1 0 PUSH1 0 PUSH1 0 PUSH20 0x{EXIT_TO_NEAR_ADDRESS.hex()} GAS DELEGATECALL "
        "PUSH1 0 SSTORE STOP"
    ))
    out = engine.call(FunctionCallArgs(contract=relay, value=5))
    assert out.is_success
    assert engine.get_storage_at(relay, word(0)) == word(0)
    assert engine.get_balance(relay) == 5
