"""
evm_engine.runtime.engine - the host-facing entry points.

One `Engine` wraps one host. Every executing entry point follows the same
pipeline:

    1) load the engine state (chain id, owner, bridge provider, delay)
    2) open the transaction overlay on a fresh StateAdapter
    3) run the boundary checks and pre-call mutations (nonce, meta fee)
    4) charge intrinsic gas and hand the root message to the Dispatcher
    5) settle the refund, collect logs, commit the overlay (flushes to the
       host in one batch) or discard it for `view`

Boundary rejections raise EngineError *before* anything is flushed; the
transaction overlay is rolled back on any exception.

Example
-------
    from evm_engine.runtime.engine import Engine
    from evm_engine.runtime.host import InMemoryHost
    from evm_engine.types.args import NewCallArgs

    host = InMemoryHost(current_account_id="evm.test", predecessor_account_id="evm.test")
    engine = Engine(host)
    engine.new(NewCallArgs(chain_id=1313161554, owner_id="owner.test",
                           bridge_prover_id="prover.test"))
    outcome = engine.deploy_code(init_code)
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, TypeVar

from evm_engine.bridge.connector import FtTransferMessageData, mint_eth
from evm_engine.bridge.erc20 import Erc20Mapping, erc20_init_code
from evm_engine.config import EngineConfig, get_config
from evm_engine.db.kv import CONFIG
from evm_engine.encoding.abi import encode_call
from evm_engine.encoding.cbor import dumps_canonical, loads_map, req_text, req_uint
from evm_engine.errors import EngineError
from evm_engine.gas.meter import GasMeter
from evm_engine.gas.schedule import ISTANBUL, GasSchedule, load_gas_schedule
from evm_engine.logging import get_logger, trace_scope
from evm_engine.meta import verifier
from evm_engine.meta.transaction import LegacyTransaction
from evm_engine.precompiles.registry import PrecompileRegistry, default_registry
from evm_engine.state.adapter import StateAdapter
from evm_engine.types.address import (is_valid_account_id,
                                      near_account_to_evm_address, to_address,
                                      validate_eth_address)
from evm_engine.types.args import (BeginBlockArgs, BeginChainArgs,
                                   FtOnTransferArgs, FunctionCallArgs,
                                   MetaCallArgs, NewCallArgs, ViewCallArgs)
from evm_engine.types.balance import NEP141Wei
from evm_engine.types.context import BlockContext, TxContext
from evm_engine.types.outcome import EMPTY_DIFF, ExecutionOutcome
from evm_engine.types.status import ExecStatus
from evm_engine.upgrade.controller import UpgradeController
from evm_engine.version import __version__
from evm_engine.vm.env import ExecEnv
from evm_engine.vm.frame import CallKind, FrameResult, Message

from .addresses import create_address
from .dispatcher import Dispatcher
from .host import Host

log = get_logger("evm_engine.runtime.engine")

STATE_KEY = CONFIG.key(b"STATE")
BLOCK_KEY = CONFIG.key(b"BLOCK")

F = TypeVar("F", bound=Callable[..., Any])
PreCall = Callable[[StateAdapter], None]


def entry_point(fn: F) -> F:
    """Run the method in a trace scope and log boundary rejections."""

    @functools.wraps(fn)
    def wrapper(self: "Engine", *args: Any, **kwargs: Any) -> Any:
        with trace_scope(component="engine", method=fn.__name__):
            try:
                return fn(self, *args, **kwargs)
            except EngineError as e:
                log.info("rejected", extra={"code": e.code, "data": e.data})
                raise

    return wrapper  # type: ignore[return-value]


@dataclass(frozen=True)
class EngineState:
    chain_id: int
    owner_id: str
    bridge_prover_id: str
    upgrade_delay_blocks: int

    def to_cbor(self) -> bytes:
        return dumps_canonical({
            "chain_id": self.chain_id,
            "owner_id": self.owner_id,
            "bridge_prover_id": self.bridge_prover_id,
            "upgrade_delay_blocks": self.upgrade_delay_blocks,
        })

    @classmethod
    def from_cbor(cls, data: bytes) -> "EngineState":
        m = loads_map(data, required=("chain_id", "owner_id", "bridge_prover_id",
                                      "upgrade_delay_blocks"))
        return cls(
            chain_id=req_uint(m, "chain_id"),
            owner_id=req_text(m, "owner_id"),
            bridge_prover_id=req_text(m, "bridge_prover_id"),
            upgrade_delay_blocks=req_uint(m, "upgrade_delay_blocks", bits=64),
        )


class Engine:
    """
    Parameters
    ----------
    host : Host
        Storage, identity and block accessors.
    config : EngineConfig, optional
        Defaults to the process-wide `get_config()`.
    registry : PrecompileRegistry, optional
        Defaults to `default_registry()` (Istanbul set plus bridge exits).
    schedule : GasSchedule, optional
        Defaults to the schedule named by the config (Istanbul otherwise).
    """

    def __init__(
        self,
        host: Host,
        config: Optional[EngineConfig] = None,
        registry: Optional[PrecompileRegistry] = None,
        schedule: Optional[GasSchedule] = None,
    ) -> None:
        self.host = host
        self.config = config or get_config()
        self.registry = registry if registry is not None else default_registry()
        if schedule is None:
            path = self.config.gas_schedule_path
            schedule = load_gas_schedule(path) if path is not None else ISTANBUL
        self.schedule = schedule
        self.erc20 = Erc20Mapping(host.kv)

    # ------------------------------------------------------------------ #
    # Engine state & identities
    # ------------------------------------------------------------------ #

    def _read_state(self) -> Optional[EngineState]:
        raw = self.host.kv.get(STATE_KEY)
        return EngineState.from_cbor(raw) if raw is not None else None

    def _state(self) -> EngineState:
        st = self._read_state()
        if st is None:
            raise EngineError("ERR_NOT_INITIALIZED")
        return st

    def _write_state(self, st: EngineState) -> None:
        self.host.kv.put(STATE_KEY, st.to_cbor())

    def _require_owner(self, st: EngineState) -> None:
        if self.host.predecessor_account_id() != st.owner_id:
            raise EngineError("ERR_NOT_ALLOWED", data={"predecessor": self.host.predecessor_account_id()})

    def _require_benchmark(self) -> None:
        if not self.config.features.benchmark:
            raise EngineError("ERR_BENCHMARK_DISABLED")

    @property
    def address(self) -> bytes:
        """The engine's own EVM address (admin of bridged tokens, meta-tx verifying contract)."""
        return near_account_to_evm_address(self.host.current_account_id())

    def _predecessor_address(self) -> bytes:
        return near_account_to_evm_address(self.host.predecessor_account_id())

    def _upgrades(self, st: EngineState) -> UpgradeController:
        return UpgradeController(self.host.kv, delay_blocks=st.upgrade_delay_blocks)

    def _block_context(self, st: EngineState) -> BlockContext:
        raw = self.host.kv.get(BLOCK_KEY)
        if raw is not None:
            b = BeginBlockArgs.from_cbor(raw)
            return BlockContext(
                number=b.number,
                timestamp=b.timestamp,
                chain_id=st.chain_id,
                coinbase=b.coinbase,
                difficulty=b.difficulty,
                gas_limit=b.gas_limit,
                account_id=self.host.current_account_id(),
            )
        return BlockContext(
            number=self.host.block_index(),
            timestamp=self.host.block_timestamp(),
            chain_id=st.chain_id,
            account_id=self.host.current_account_id(),
        )

    # ------------------------------------------------------------------ #
    # Initialization & metadata
    # ------------------------------------------------------------------ #

    @entry_point
    def new(self, args: NewCallArgs) -> None:
        if self.host.predecessor_account_id() != self.host.current_account_id():
            raise EngineError("ERR_NOT_ALLOWED", "new must be called by the engine account")
        if self._read_state() is not None:
            raise EngineError("ERR_ALREADY_INITIALIZED")
        delay = args.upgrade_delay_blocks
        if delay is None:
            delay = self.config.limits.upgrade_delay_blocks
        self._write_state(EngineState(
            chain_id=args.chain_id,
            owner_id=args.owner_id,
            bridge_prover_id=args.bridge_prover_id,
            upgrade_delay_blocks=delay,
        ))
        log.info("initialized", extra={"chain_id": args.chain_id, "owner": args.owner_id})

    def get_version(self) -> str:
        return __version__

    @entry_point
    def get_owner(self) -> str:
        return self._state().owner_id

    @entry_point
    def get_bridge_provider(self) -> str:
        return self._state().bridge_prover_id

    @entry_point
    def get_chain_id(self) -> int:
        return self._state().chain_id

    # ------------------------------------------------------------------ #
    # Upgrades
    # ------------------------------------------------------------------ #

    @entry_point
    def get_upgrade_index(self) -> Optional[int]:
        return self._upgrades(self._state()).index()

    @entry_point
    def stage_upgrade(self, code: bytes) -> int:
        st = self._state()
        self._require_owner(st)
        return self._upgrades(st).stage(code, self.host.block_index()).unlock_index

    @entry_point
    def deploy_upgrade(self) -> None:
        st = self._state()
        self._require_owner(st)
        self._upgrades(st).deploy(self.host.block_index(), self.host.deploy_self)

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    @entry_point
    def deploy_code(self, init_code: bytes, *, gas_limit: Optional[int] = None) -> ExecutionOutcome:
        return self._execute(
            sender=self._predecessor_address(),
            to=None,
            value=0,
            data=bytes(init_code),
            gas_limit=gas_limit,
        )

    @entry_point
    def call(self, args: FunctionCallArgs) -> ExecutionOutcome:
        return self._execute(
            sender=self._predecessor_address(),
            to=args.contract,
            value=args.value,
            data=args.input,
            gas_limit=args.gas_limit,
        )

    @entry_point
    def raw_call(self, raw_tx: bytes) -> ExecutionOutcome:
        st = self._state()
        tx = LegacyTransaction.decode(raw_tx)
        if tx.chain_id != st.chain_id:
            raise EngineError("ERR_INVALID_CHAIN_ID", data={"chain_id": tx.chain_id})
        sender = tx.sender()

        def pre(state: StateAdapter) -> None:
            current = state.get_nonce(sender)
            if tx.nonce != current:
                raise EngineError("ERR_INCORRECT_NONCE", data={"nonce": tx.nonce, "current": current})
            # Creation bumps the nonce itself when deriving the new address.
            if not tx.is_create:
                state.increment_nonce(sender)

        return self._execute(
            sender=sender,
            to=tx.to,
            value=tx.value,
            data=tx.data,
            gas_limit=tx.gas_limit,
            gas_price=tx.gas_price,
            pre=pre,
        )

    @entry_point
    def meta_call(self, args: MetaCallArgs) -> ExecutionOutcome:
        st = self._state()
        relayer = self._predecessor_address()

        def pre(state: StateAdapter) -> None:
            verified = verifier.verify(
                args, chain_id=st.chain_id, verifying_contract=self.address, state=state
            )
            verifier.apply(verified, state, relayer=relayer)

        return self._execute(
            sender=args.sender,
            to=args.contract_address,
            value=args.value,
            data=args.input,
            gas_limit=args.gas_limit,
            pre=pre,
        )

    @entry_point
    def view(self, args: ViewCallArgs) -> ExecutionOutcome:
        return self._execute(
            sender=args.sender,
            to=args.address,
            value=args.amount,
            data=args.input,
            gas_limit=args.gas_limit,
            static=True,
        )

    def _execute(
        self,
        *,
        sender: bytes,
        to: Optional[bytes],
        value: int,
        data: bytes,
        gas_limit: Optional[int],
        gas_price: int = 0,
        static: bool = False,
        pre: Optional[PreCall] = None,
        require_success: Optional[str] = None,
    ) -> ExecutionOutcome:
        st = self._state()
        limits = self.config.limits
        limit = gas_limit if gas_limit is not None else limits.default_gas_limit

        state = StateAdapter(self.host.kv)
        env = ExecEnv(
            state=state,
            block=self._block_context(st),
            tx=TxContext(origin=sender, gas_price=gas_price),
            schedule=self.schedule,
        )
        tx = state.begin_overlay()
        try:
            if pre is not None:
                pre(state)

            if to is None:
                target = create_address(sender, state.get_nonce(sender))
                state.increment_nonce(sender)
                kind = CallKind.CREATE
            else:
                target = to
                kind = CallKind.STATICCALL if static else CallKind.CALL

            intrinsic = self.schedule.intrinsic_gas(data, is_create=to is None)
            if intrinsic > limit:
                result = FrameResult(False, b"", 0, error="OUT_OF_GAS")
            else:
                msg = Message(kind, sender, target, target, value, data,
                              limit - intrinsic, 0, is_static=static)
                dispatcher = Dispatcher(
                    env,
                    self.registry,
                    max_call_depth=limits.max_call_depth,
                    max_code_size=limits.max_code_size_bytes,
                )
                result = dispatcher.execute(msg)

            if require_success is not None and not result.success:
                raise EngineError(require_success, data={"error": result.error})

            meter = GasMeter(limit)
            meter.debit(limit - result.gas_left)
            refund = state.refund_total() if result.success else 0
            settlement = meter.settle(refund, quotient=limits.refund_quotient)
            logs = tuple(state.logs()) if result.success else ()

            if static:
                state.discard(tx)
                diff = EMPTY_DIFF
            else:
                diff = state.commit(tx)
        except Exception:
            if state.depth() >= tx:
                state.rollback_to(tx)
            raise

        if result.success:
            status = ExecStatus.SUCCESS
        elif result.reverted:
            status = ExecStatus.REVERT
        else:
            status = ExecStatus.ERROR
        created = result.created_address if kind.is_create and result.success else None
        outcome = ExecutionOutcome(
            status=status,
            gas_used=settlement.charged,
            output=created if created is not None else result.output,
            logs=logs,
            diff=diff,
            error=result.error,
            created_address=created,
        )
        log.debug(
            "executed",
            extra={"status": str(status), "gas_used": outcome.gas_used,
                   "error": result.error, "target": "0x" + target.hex()},
        )
        return outcome

    # ------------------------------------------------------------------ #
    # Read-only accessors
    # ------------------------------------------------------------------ #

    def _committed(self):
        return StateAdapter(self.host.kv).committed

    def get_code(self, address: bytes) -> bytes:
        return self._committed().get_code(to_address(address))

    def get_balance(self, address: bytes) -> int:
        return self._committed().get_balance(to_address(address))

    def get_nonce(self, address: bytes) -> int:
        return self._committed().get_nonce(to_address(address))

    def get_storage_at(self, address: bytes, key: bytes) -> bytes:
        if len(key) != 32:
            raise EngineError("ERR_ARGS", "storage key must be 32 bytes")
        value = self._committed().get_storage(to_address(address), int.from_bytes(key, "big"))
        return value.to_bytes(32, "big")

    # ------------------------------------------------------------------ #
    # Benchmark
    # ------------------------------------------------------------------ #

    @entry_point
    def begin_chain(self, args: BeginChainArgs) -> None:
        self._require_benchmark()
        st = self._state()
        self._require_owner(st)
        state = StateAdapter(self.host.kv)
        h = state.begin_overlay()
        for acc in args.genesis_alloc:
            state.set_balance(acc.address, acc.balance)
        state.commit(h)
        self._write_state(replace(st, chain_id=args.chain_id))
        log.info("chain started", extra={"chain_id": args.chain_id,
                                         "accounts": len(args.genesis_alloc)})

    @entry_point
    def begin_block(self, args: BeginBlockArgs) -> None:
        self._require_benchmark()
        self._require_owner(self._state())
        self.host.kv.put(BLOCK_KEY, args.to_cbor())

    # ------------------------------------------------------------------ #
    # Bridge
    # ------------------------------------------------------------------ #

    @entry_point
    def ft_on_transfer(self, args: FtOnTransferArgs) -> int:
        """
        NEP-141 transfer callback. Returns the amount the token should refund
        (always 0: the whole transfer is consumed).
        """
        st = self._state()
        token = self.host.predecessor_account_id()
        amount = NEP141Wei(args.amount)

        if token == st.bridge_prover_id:
            data = FtTransferMessageData.parse_on_transfer_message(args.msg)
            state = StateAdapter(self.host.kv)
            h = state.begin_overlay()
            try:
                receipt = mint_eth(state, data, amount)
            except Exception:
                state.discard(h)
                raise
            state.commit(h)
            log.info("eth minted", extra={"recipient": "0x" + receipt.recipient.hex(),
                                          "amount": receipt.recipient_amount.amount,
                                          "fee": receipt.fee.amount})
            return 0

        erc20 = self.erc20.get_erc20(token)
        if erc20 is None:
            raise EngineError("ERR_NOT_ALLOWED", "unknown token", data={"token": token})
        recipient_hex = args.msg[2:] if args.msg.startswith("0x") else args.msg
        recipient = validate_eth_address(recipient_hex)
        self._execute(
            sender=self.address,
            to=erc20,
            value=0,
            data=encode_call("mint(address,uint256)", ["address", "uint256"],
                             [recipient, amount.amount]),
            gas_limit=None,
            require_success="ERR_MINT_FAILED",
        )
        return 0

    @entry_point
    def deploy_erc20_token(self, nep141: str) -> bytes:
        if not is_valid_account_id(nep141):
            raise EngineError("ERR_INVALID_ACCOUNT_ID", data={"account_id": nep141})
        self.erc20.ensure_unregistered(nep141)
        outcome = self._execute(
            sender=self.address,
            to=None,
            value=0,
            data=erc20_init_code(self.address),
            gas_limit=None,
            require_success="ERR_DEPLOY_ERC20_FAILED",
        )
        if outcome.created_address is None:
            raise EngineError("ERR_DEPLOY_ERC20_FAILED", "no address created")
        self.erc20.register(nep141, outcome.created_address)
        log.info("erc20 deployed", extra={"nep141": nep141,
                                          "address": "0x" + outcome.created_address.hex()})
        return outcome.created_address

    @entry_point
    def get_erc20_from_nep141(self, nep141: str) -> bytes:
        addr = self.erc20.get_erc20(nep141)
        if addr is None:
            raise EngineError("ERR_NEP141_NOT_FOUND", data={"nep141": nep141})
        return addr

    @entry_point
    def get_nep141_from_erc20(self, erc20: bytes) -> str:
        nep141 = self.erc20.get_nep141(to_address(erc20))
        if nep141 is None:
            raise EngineError("ERR_ERC20_NOT_FOUND", data={"erc20": "0x" + bytes(erc20).hex()})
        return nep141


__all__ = ["Engine", "EngineState", "entry_point", "STATE_KEY", "BLOCK_KEY"]
