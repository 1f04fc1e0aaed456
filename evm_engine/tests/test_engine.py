from __future__ import annotations

import logging

import pytest

from evm_engine.config import load_config
from evm_engine.errors import EngineError
from evm_engine.runtime.engine import Engine
from evm_engine.runtime.host import Host, InMemoryHost
from evm_engine.types.args import BeginBlockArgs, NewCallArgs
from evm_engine.version import __version__
from evm_engine.vm.asm import assemble

from .util import (CHAIN_ID, ENGINE_ACCOUNT, OWNER, PROVER, USER, acting_as,
                   call, deploy, fund, word)


def test_in_memory_host_satisfies_protocol(host):
    assert isinstance(host, Host)


def test_metadata(engine):
    assert engine.get_owner() == OWNER
    assert engine.get_bridge_provider() == PROVER
    assert engine.get_chain_id() == CHAIN_ID
    assert engine.get_version() == __version__


def test_new_only_once(engine):
    with pytest.raises(EngineError) as e:
        engine.new(NewCallArgs(chain_id=1, owner_id=OWNER, bridge_prover_id=PROVER))
    assert e.value.code == "ERR_ALREADY_INITIALIZED"
    assert engine.get_chain_id() == CHAIN_ID


def test_new_must_come_from_engine_account(config):
    host = InMemoryHost(current_account_id=ENGINE_ACCOUNT, predecessor_account_id=USER)
    with pytest.raises(EngineError) as e:
        Engine(host, config=config).new(
            NewCallArgs(chain_id=1, owner_id=OWNER, bridge_prover_id=PROVER))
    assert e.value.code == "ERR_NOT_ALLOWED"


def test_uninitialized_engine_refuses_execution(config):
    engine = Engine(InMemoryHost(), config=config)
    with pytest.raises(EngineError) as e:
        engine.deploy_code(b"")
    assert e.value.code == "ERR_NOT_INITIALIZED"


def test_upgrade_delay_defaults_to_config(config):
    host = InMemoryHost(current_account_id=ENGINE_ACCOUNT, predecessor_account_id=ENGINE_ACCOUNT)
    engine = Engine(host, config=config)
    engine.new(NewCallArgs(chain_id=1, owner_id=OWNER, bridge_prover_id=PROVER))
    with acting_as(host, OWNER):
        assert engine.stage_upgrade(b"x") == config.limits.upgrade_delay_blocks


def test_benchmark_methods_disabled_by_default():
    host = InMemoryHost(current_account_id=ENGINE_ACCOUNT, predecessor_account_id=ENGINE_ACCOUNT)
    engine = Engine(host, config=load_config(env={}))
    engine.new(NewCallArgs(chain_id=1, owner_id=OWNER, bridge_prover_id=PROVER))
    with acting_as(host, OWNER), pytest.raises(EngineError) as e:
        engine.begin_block(BeginBlockArgs(number=1))
    assert e.value.code == "ERR_BENCHMARK_DISABLED"


def test_benchmark_methods_are_owner_only(engine, host):
    with acting_as(host, USER), pytest.raises(EngineError) as e:
        engine.begin_block(BeginBlockArgs(number=1))
    assert e.value.code == "ERR_NOT_ALLOWED"


def test_begin_chain_sets_balances(engine, host):
    a, b = b"\x0a" * 20, b"\x0b" * 20
    fund(engine, host, (a, 10**18), (b, 1))
    assert engine.get_balance(a) == 10**18
    assert engine.get_balance(b) == 1


def test_begin_block_overrides_block_context(engine, host):
    probe = deploy(engine, assemble(
        "NUMBER PUSH1 0 SSTORE TIMESTAMP PUSH1 1 SSTORE COINBASE PUSH1 2 SSTORE STOP"))
    call(engine, probe)
    assert engine.get_storage_at(probe, word(0)) == word(host.block_index())

    coinbase = b"\xcb" * 20
    with acting_as(host, OWNER):
        engine.begin_block(BeginBlockArgs(number=9_999, timestamp=77, coinbase=coinbase))
    call(engine, probe)
    assert engine.get_storage_at(probe, word(0)) == word(9_999)
    assert engine.get_storage_at(probe, word(1)) == word(77)
    assert engine.get_storage_at(probe, word(2)) == coinbase.rjust(32, b"\x00")


def test_storage_key_must_be_32_bytes(engine):
    with pytest.raises(EngineError) as e:
        engine.get_storage_at(b"\x01" * 20, b"\x00")
    assert e.value.code == "ERR_ARGS"


def test_rejections_are_logged(engine, host, caplog):
    with caplog.at_level(logging.INFO, logger="evm_engine.runtime.engine"):
        with acting_as(host, USER), pytest.raises(EngineError):
            engine.stage_upgrade(b"x")
    assert any(r.getMessage() == "rejected" for r in caplog.records)


def test_unknown_account_reads_as_empty(engine):
    nobody = b"\x5a" * 20
    assert engine.get_balance(nobody) == 0
    assert engine.get_nonce(nobody) == 0
    assert engine.get_code(nobody) == b""
    assert engine.get_storage_at(nobody, word(1)) == word(0)
