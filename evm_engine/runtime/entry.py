"""
evm_engine.runtime.entry - the byte-level host surface.

Hosts that speak bytes call `invoke(engine, method, payload)`. The payload is
decoded from CBOR (a map for structured arguments, a bare byte/text string for
single-value ones), the Engine method runs, and its result is CBOR-encoded:

    Executing methods  -> SubmitResult map
    Accessors          -> bare value (text, uint, bytes, or null)

Errors propagate as EngineError; unknown methods raise ERR_UNKNOWN_METHOD and
malformed payloads ERR_ARGS.
"""

from __future__ import annotations

from typing import Any, Callable, Dict

from evm_engine.encoding.cbor import dumps_canonical, loads
from evm_engine.errors import EngineError
from evm_engine.types.args import (BeginBlockArgs, BeginChainArgs,
                                   FtOnTransferArgs, FunctionCallArgs,
                                   GetStorageAtArgs, MetaCallArgs, NewCallArgs,
                                   SubmitResult, ViewCallArgs)
from evm_engine.types.outcome import ExecutionOutcome

from .engine import Engine

Handler = Callable[[Engine, bytes], Any]


def _none(payload: bytes) -> None:
    if payload and loads(payload) is not None:
        raise EngineError("ERR_ARGS", "method takes no arguments")


def _bytes(payload: bytes) -> bytes:
    v = loads(payload)
    if not isinstance(v, bytes):
        raise EngineError("ERR_ARGS", "expected a CBOR byte string")
    return v


def _address(payload: bytes) -> bytes:
    v = _bytes(payload)
    if len(v) != 20:
        raise EngineError("ERR_ARGS", "expected a 20-byte address")
    return v


def _text(payload: bytes) -> str:
    v = loads(payload)
    if not isinstance(v, str):
        raise EngineError("ERR_ARGS", "expected a CBOR text string")
    return v


def _no_args(fn: Callable[[Engine], Any]) -> Handler:
    def handler(engine: Engine, payload: bytes) -> Any:
        _none(payload)
        return fn(engine)
    return handler


METHODS: Dict[str, Handler] = {
    "new": lambda e, p: e.new(NewCallArgs.from_cbor(p)),
    "get_version": _no_args(Engine.get_version),
    "get_owner": _no_args(Engine.get_owner),
    "get_bridge_provider": _no_args(Engine.get_bridge_provider),
    "get_chain_id": _no_args(Engine.get_chain_id),
    "get_upgrade_index": _no_args(Engine.get_upgrade_index),
    "stage_upgrade": lambda e, p: e.stage_upgrade(_bytes(p)),
    "deploy_upgrade": _no_args(Engine.deploy_upgrade),
    "deploy_code": lambda e, p: e.deploy_code(_bytes(p)),
    "call": lambda e, p: e.call(FunctionCallArgs.from_cbor(p)),
    "raw_call": lambda e, p: e.raw_call(_bytes(p)),
    "meta_call": lambda e, p: e.meta_call(MetaCallArgs.from_cbor(p)),
    "view": lambda e, p: e.view(ViewCallArgs.from_cbor(p)),
    "get_code": lambda e, p: e.get_code(_address(p)),
    "get_balance": lambda e, p: e.get_balance(_address(p)),
    "get_nonce": lambda e, p: e.get_nonce(_address(p)),
    "get_storage_at": lambda e, p: _storage_at(e, GetStorageAtArgs.from_cbor(p)),
    "begin_chain": lambda e, p: e.begin_chain(BeginChainArgs.from_cbor(p)),
    "begin_block": lambda e, p: e.begin_block(BeginBlockArgs.from_cbor(p)),
    "ft_on_transfer": lambda e, p: e.ft_on_transfer(FtOnTransferArgs.from_cbor(p)),
    "deploy_erc20_token": lambda e, p: e.deploy_erc20_token(_text(p)),
    "get_erc20_from_nep141": lambda e, p: e.get_erc20_from_nep141(_text(p)),
    "get_nep141_from_erc20": lambda e, p: e.get_nep141_from_erc20(_address(p)),
}


def _storage_at(engine: Engine, args: GetStorageAtArgs) -> bytes:
    return engine.get_storage_at(args.address, args.key)


def invoke(engine: Engine, method: str, payload: bytes = b"") -> bytes:
    handler = METHODS.get(method)
    if handler is None:
        raise EngineError("ERR_UNKNOWN_METHOD", data={"method": method})
    result = handler(engine, payload)
    if isinstance(result, ExecutionOutcome):
        return SubmitResult.from_outcome(result).to_cbor()
    return dumps_canonical(result)


__all__ = ["invoke", "METHODS"]
