from __future__ import annotations

import pytest

from evm_engine.db.kv import MemoryKV
from evm_engine.errors import EngineError
from evm_engine.upgrade.controller import CODE_KEY, CODE_STAGE_KEY, UpgradeController

from .util import OWNER, USER, acting_as

NEW_CODE = b"\x00asm-v2"


def test_stage_then_deploy_after_delay(engine, host):
    with acting_as(host, OWNER):
        unlock = engine.stage_upgrade(NEW_CODE)
        assert unlock == host.block_index() + 5
        assert engine.get_upgrade_index() == unlock

        with pytest.raises(EngineError) as e:
            engine.deploy_upgrade()
        assert e.value.code == "ERR_NOT_READY"
        assert host.deployed_code is None

        host.set_block(unlock)
        engine.deploy_upgrade()
    assert host.deployed_code == NEW_CODE
    assert engine.get_upgrade_index() is None
    assert host.kv.get(CODE_KEY) is None


def test_only_owner_may_stage_or_deploy(engine, host):
    with acting_as(host, USER):
        with pytest.raises(EngineError) as e:
            engine.stage_upgrade(NEW_CODE)
        assert e.value.code == "ERR_NOT_ALLOWED"
        with pytest.raises(EngineError):
            engine.deploy_upgrade()
    assert engine.get_upgrade_index() is None


def test_restaging_restarts_the_delay(engine, host):
    with acting_as(host, OWNER):
        engine.stage_upgrade(b"v1")
        host.advance(3)
        unlock = engine.stage_upgrade(b"v2")
        assert unlock == host.block_index() + 5
        host.set_block(unlock)
        engine.deploy_upgrade()
    assert host.deployed == [b"v2"]


def test_deploy_without_staged_code(engine, host):
    with acting_as(host, OWNER):
        with pytest.raises(EngineError) as e:
            engine.deploy_upgrade()
    assert e.value.code == "ERR_NO_UPGRADE"


def test_failed_host_deploy_keeps_the_pending_record():
    kv = MemoryKV()
    ctl = UpgradeController(kv, delay_blocks=0)
    ctl.stage(b"code", 10)

    def broken(code: bytes) -> None:
        raise RuntimeError("host refused")

    with pytest.raises(RuntimeError):
        ctl.deploy(10, broken)
    assert ctl.index() == 10
    assert kv.get(CODE_STAGE_KEY) is not None


def test_zero_delay_is_immediately_ready():
    ctl = UpgradeController(MemoryKV(), delay_blocks=0)
    assert ctl.stage(b"x", 42).is_ready(42)
    with pytest.raises(ValueError):
        UpgradeController(MemoryKV(), delay_blocks=-1)
