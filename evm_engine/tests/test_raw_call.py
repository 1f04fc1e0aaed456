from __future__ import annotations

import pytest
import rlp

from evm_engine.encoding.abi import encode_call
from evm_engine.errors import EngineError
from evm_engine.meta.transaction import LegacyTransaction
from evm_engine.runtime.addresses import create_address
from evm_engine.types.status import ExecStatus
from evm_engine.vm.asm import deployer

from .util import CHAIN_ID, COUNTER, PRIVATE_KEY, SENDER, deploy, word


def tx(to, data=b"", *, nonce=0, gas_limit=1_000_000, value=0, chain_id=CHAIN_ID):
    unsigned = LegacyTransaction(nonce=nonce, gas_price=0, gas_limit=gas_limit, to=to,
                                 value=value, data=data)
    return unsigned.sign(PRIVATE_KEY, chain_id)


def test_eip155_reference_vector():
    t = LegacyTransaction(
        nonce=9, gas_price=20 * 10**9, gas_limit=21000, to=b"\x35" * 20,
        value=10**18, data=b"",
    )
    assert t.signing_hash(1).hex() == (
        "daf5a779ae972f972197303d7b574746c7ef83eadac0f2791ad23db92e4c8e53")
    signed = t.sign(b"\x46" * 32, 1)
    assert signed.v in (37, 38)
    assert signed.sender().hex() == "9d8a62f656a8d1615c1294fd71e9cfb3e4855a4f"
    assert LegacyTransaction.decode(signed.encode()) == signed


def test_raw_call_executes_and_bumps_nonce(engine):
    counter = deploy(engine, COUNTER)
    out = engine.raw_call(tx(counter, encode_call("increment()")).encode())
    assert out.is_success
    assert engine.get_nonce(SENDER) == 1
    assert engine.get_storage_at(counter, word(0)) == word(1)


def test_raw_deploy_uses_sender_nonce(engine):
    out = engine.raw_call(tx(None, deployer(COUNTER)).encode())
    assert out.is_success
    assert out.created_address == create_address(SENDER, 0)
    assert engine.get_nonce(SENDER) == 1
    assert engine.get_code(out.created_address) == COUNTER


def test_wrong_nonce_rejected(engine, host):
    before = host.kv.snapshot()
    with pytest.raises(EngineError) as e:
        engine.raw_call(tx(b"\x01" * 20, nonce=3).encode())
    assert e.value.code == "ERR_INCORRECT_NONCE"
    assert host.kv.snapshot() == before


def test_gas_limit_beyond_u64_rejected(engine, host):
    before = host.kv.snapshot()
    with pytest.raises(EngineError) as e:
        engine.raw_call(tx(b"\x01" * 20, gas_limit=2**64).encode())
    assert e.value.code == "ERR_INVALID_TRANSACTION"
    assert engine.get_nonce(SENDER) == 0
    assert host.kv.snapshot() == before


def test_replay_rejected(engine):
    raw = tx(b"\x09" * 20).encode()
    assert engine.raw_call(raw).is_success
    with pytest.raises(EngineError) as e:
        engine.raw_call(raw)
    assert e.value.code == "ERR_INCORRECT_NONCE"


def test_other_chain_rejected(engine):
    with pytest.raises(EngineError) as e:
        engine.raw_call(tx(b"\x01" * 20, chain_id=1).encode())
    assert e.value.code == "ERR_INVALID_CHAIN_ID"


def test_unprotected_transaction_rejected(engine):
    unsigned = LegacyTransaction(nonce=0, gas_price=0, gas_limit=100_000, to=b"\x01" * 20,
                                 value=0, data=b"")
    raw = rlp.encode([0, 0, 100_000, b"\x01" * 20, 0, b"", 27, 1, 1])
    assert unsigned.chain_id is None
    with pytest.raises(EngineError) as e:
        engine.raw_call(raw)
    assert e.value.code == "ERR_INVALID_CHAIN_ID"


@pytest.mark.parametrize("raw", [
    b"\xff\x00",
    rlp.encode([1, 2, 3]),
    rlp.encode([0, 0, 0, b"\x01" * 5, 0, b"", 37, 1, 1]),
])
def test_malformed_transaction(engine, raw):
    with pytest.raises(EngineError) as e:
        engine.raw_call(raw)
    assert e.value.code == "ERR_INVALID_TRANSACTION"


def test_failed_execution_still_consumes_nonce(engine):
    out = engine.raw_call(tx(b"\x01" * 20, b"", gas_limit=20_000).encode())
    assert out.status is ExecStatus.ERROR
    assert out.error == "OUT_OF_GAS"
    assert engine.get_nonce(SENDER) == 1
