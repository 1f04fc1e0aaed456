from __future__ import annotations

import pytest

from evm_engine.config import load_config
from evm_engine.runtime.engine import Engine
from evm_engine.runtime.host import InMemoryHost
from evm_engine.types.args import NewCallArgs

from .util import CHAIN_ID, ENGINE_ACCOUNT, OWNER, PROVER


@pytest.fixture
def config():
    return load_config(env={}, overrides={"benchmark": True})


@pytest.fixture
def host() -> InMemoryHost:
    return InMemoryHost(
        current_account_id=ENGINE_ACCOUNT,
        predecessor_account_id=ENGINE_ACCOUNT,
        block_index=100,
        block_timestamp=1_700_000_000,
    )


@pytest.fixture
def engine(host: InMemoryHost, config) -> Engine:
    e = Engine(host, config=config)
    e.new(NewCallArgs(
        chain_id=CHAIN_ID,
        owner_id=OWNER,
        bridge_prover_id=PROVER,
        upgrade_delay_blocks=5,
    ))
    return e
