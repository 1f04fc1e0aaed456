from __future__ import annotations

from dataclasses import replace

import pytest

from evm_engine.encoding.abi import encode_call
from evm_engine.errors import EngineError
from evm_engine.meta.verifier import meta_call_digest, recover_signer, sign_digest
from evm_engine.types.address import ZERO_ADDRESS
from evm_engine.types.args import MetaCallArgs
from evm_engine.types.status import ExecStatus

from .util import (CHAIN_ID, COUNTER, PRIVATE_KEY, SENDER, account_address,
                   acting_as, deploy, fund, word)

RELAYER = "relayer.test"


def make_meta(engine, contract, *, nonce=0, fee=10, fee_address=ZERO_ADDRESS,
              input=b"", chain_id=CHAIN_ID, verifying_contract=None, key=PRIVATE_KEY):
    unsigned = MetaCallArgs(
        sender=SENDER,
        nonce=nonce,
        fee_amount=fee,
        fee_address=fee_address,
        chain_id=chain_id,
        verifying_contract=verifying_contract or engine.address,
        contract_address=contract,
        value=0,
        input=input,
        signature=b"\x00" * 65,
    )
    return replace(unsigned, signature=sign_digest(key, meta_call_digest(unsigned)))


@pytest.fixture
def counter(engine, host):
    fund(engine, host, (SENDER, 1_000))
    return deploy(engine, COUNTER)


def test_signature_recovers_sender(engine, counter):
    args = make_meta(engine, counter)
    assert recover_signer(meta_call_digest(args), args.signature) == SENDER


def test_meta_call_runs_as_sender_and_pays_relayer(engine, host, counter):
    args = make_meta(engine, counter, input=encode_call("increment()"))
    with acting_as(host, RELAYER):
        out = engine.meta_call(args)
    assert out.is_success
    assert engine.get_storage_at(counter, word(0)) == word(1)
    assert engine.get_nonce(SENDER) == 1
    assert engine.get_balance(SENDER) == 990
    assert engine.get_balance(account_address(RELAYER)) == 10


def test_explicit_fee_address(engine, host, counter):
    collector = b"\x77" * 20
    args = make_meta(engine, counter, fee=25, fee_address=collector)
    with acting_as(host, RELAYER):
        engine.meta_call(args)
    assert engine.get_balance(collector) == 25
    assert engine.get_balance(account_address(RELAYER)) == 0


def test_replay_is_rejected(engine, host, counter):
    args = make_meta(engine, counter, input=encode_call("increment()"))
    engine.meta_call(args)
    before = host.kv.snapshot()
    with pytest.raises(EngineError) as e:
        engine.meta_call(args)
    assert e.value.code == "ERR_META_TX_NONCE_REUSED"
    assert host.kv.snapshot() == before


def test_future_nonce_is_rejected(engine, counter):
    with pytest.raises(EngineError) as e:
        engine.meta_call(make_meta(engine, counter, nonce=5))
    assert e.value.code == "ERR_INCORRECT_NONCE"


@pytest.mark.parametrize("field,value", [
    ("chain_id", 1),
    ("verifying_contract", b"\x01" * 20),
])
def test_foreign_domain_is_rejected(engine, counter, field, value):
    args = make_meta(engine, counter, **{field: value})
    with pytest.raises(EngineError) as e:
        engine.meta_call(args)
    assert e.value.code == "ERR_META_TX_DOMAIN"


def test_tampered_payload_fails_signature_check(engine, counter):
    args = replace(make_meta(engine, counter), input=b"\x01")
    with pytest.raises(EngineError) as e:
        engine.meta_call(args)
    assert e.value.code == "ERR_INVALID_SIGNATURE"


def test_malformed_signature(engine, counter):
    args = replace(make_meta(engine, counter), signature=b"\x00" * 65)
    with pytest.raises(EngineError) as e:
        engine.meta_call(args)
    assert e.value.code == "ERR_INVALID_SIGNATURE"


def test_fee_larger_than_balance(engine, counter):
    with pytest.raises(EngineError) as e:
        engine.meta_call(make_meta(engine, counter, fee=1_001))
    assert e.value.code == "ERR_INSUFFICIENT_FEE_BALANCE"
    assert engine.get_nonce(SENDER) == 0


def test_reverted_inner_call_still_consumes_nonce_and_fee(engine, host, counter):
    args = make_meta(engine, counter, input=encode_call("missing()"))
    with acting_as(host, RELAYER):
        out = engine.meta_call(args)
    assert out.status is ExecStatus.REVERT
    assert engine.get_nonce(SENDER) == 1
    assert engine.get_balance(account_address(RELAYER)) == 10


def test_cbor_roundtrip_of_signed_args(engine, counter):
    args = make_meta(engine, counter, input=b"\x01\x02")
    assert MetaCallArgs.from_cbor(args.to_cbor()) == args
