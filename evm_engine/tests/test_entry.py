from __future__ import annotations

import pytest

from evm_engine.encoding.abi import encode_call
from evm_engine.encoding.cbor import dumps_canonical, loads
from evm_engine.errors import EngineError
from evm_engine.runtime.engine import Engine
from evm_engine.runtime.entry import METHODS, invoke
from evm_engine.runtime.host import InMemoryHost
from evm_engine.types.args import (FunctionCallArgs, GetStorageAtArgs,
                                   NewCallArgs, SubmitResult)
from evm_engine.vm.asm import deployer

from .util import CHAIN_ID, COUNTER, ENGINE_ACCOUNT, OWNER, PROVER, word


def test_full_lifecycle_over_bytes(config):
    host = InMemoryHost(current_account_id=ENGINE_ACCOUNT, predecessor_account_id=ENGINE_ACCOUNT)
    engine = Engine(host, config=config)
    invoke(engine, "new", NewCallArgs(chain_id=CHAIN_ID, owner_id=OWNER,
                                      bridge_prover_id=PROVER).to_cbor())
    assert loads(invoke(engine, "get_owner")) == OWNER
    assert loads(invoke(engine, "get_chain_id")) == CHAIN_ID

    deployed = SubmitResult.from_cbor(invoke(engine, "deploy_code", dumps_canonical(deployer(COUNTER))))
    assert deployed.status == "success"
    counter = deployed.created_address
    assert counter is not None and deployed.output == counter

    res = SubmitResult.from_cbor(invoke(engine, "call", FunctionCallArgs(
        contract=counter, input=encode_call("increment()")).to_cbor()))
    assert res.status == "success"
    assert res.gas_used > 0

    raw = invoke(engine, "get_storage_at", GetStorageAtArgs(address=counter, key=word(0)).to_cbor())
    assert loads(raw) == word(1)
    assert loads(invoke(engine, "get_code", dumps_canonical(counter))) == COUNTER
    assert loads(invoke(engine, "get_upgrade_index")) is None


def test_entry_surface_lists_the_host_methods():
    assert {"new", "call", "view", "meta_call", "raw_call", "ft_on_transfer",
            "deploy_erc20_token", "stage_upgrade", "deploy_upgrade"} <= set(METHODS)


def test_unknown_method(engine):
    with pytest.raises(EngineError) as e:
        invoke(engine, "selfdestruct_engine")
    assert e.value.code == "ERR_UNKNOWN_METHOD"


@pytest.mark.parametrize("method,payload", [
    ("get_code", dumps_canonical("0x00")),
    ("get_code", dumps_canonical(b"\x01" * 19)),
    ("get_owner", dumps_canonical(1)),
    ("call", b"\xff\xff"),
    ("call", dumps_canonical({"contract": b"\x01" * 20, "surprise": 1})),
    ("deploy_erc20_token", dumps_canonical(b"token")),
])
def test_malformed_payloads(engine, method, payload):
    with pytest.raises(EngineError) as e:
        invoke(engine, method, payload)
    assert e.value.code == "ERR_ARGS"


def test_revert_status_on_the_wire(engine):
    counter = engine.deploy_code(deployer(COUNTER)).created_address
    res = SubmitResult.from_cbor(invoke(engine, "call", FunctionCallArgs(
        contract=counter, input=b"\x00\x00\x00\x00").to_cbor()))
    assert res.status == "revert"
    assert res.logs == ()
