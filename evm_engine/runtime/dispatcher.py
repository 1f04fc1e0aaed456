"""
evm_engine.runtime.dispatcher - the explicit call/create frame stack.

`Dispatcher.execute(msg)` runs a root message to completion without native
recursion:

    open root frame
    loop:
        step = interpreter.run(top)
        Halt          -> finish top (commit/discard its overlay), resume parent
        CallRequest   -> build child message, open it (may finish immediately)
        CreateRequest -> derive address, bump creator nonce, open child
        VMError       -> fail top (all its gas spent), resume parent

Opening a frame performs the checks that happen *before* any child code runs:
depth bound, caller balance, overlay, value transfer, collision detection for
creations and the precompile short-circuit. A check failing there returns the
forwarded gas to the parent (depth/balance) or spends it (collision,
precompile failure).

Every frame owns exactly one overlay; frames and overlays are pushed and
popped together, so handles stay LIFO.
"""

from __future__ import annotations

from typing import List, Optional, Union

from evm_engine.errors import (CallDepthExceeded, CallError, CodeSizeExceeded,
                               CreateCollision, ExecError, InsufficientBalance,
                               OutOfGas, PrecompileError, StateAdapterError,
                               VMError)
from evm_engine.gas.meter import GasMeter
from evm_engine.logging import get_logger
from evm_engine.precompiles.base import PrecompileContext
from evm_engine.precompiles.registry import PrecompileRegistry
from evm_engine.vm import interpreter
from evm_engine.vm.env import ExecEnv
from evm_engine.vm.frame import (CallKind, CallRequest, CreateRequest, Frame,
                                 FrameResult, Halt, Message)
from evm_engine.vm.opcodes import jumpdests

from .addresses import create2_address, create_address

log = get_logger("evm_engine.runtime.dispatcher")

Opened = Union[Frame, FrameResult]


class Dispatcher:
    """
    Parameters
    ----------
    env : ExecEnv
        State adapter, block/tx context and gas schedule shared by all frames.
    registry : PrecompileRegistry
        Addresses answered natively instead of by bytecode.
    max_call_depth : int
        Deepest allowed frame (the root is depth 0).
    max_code_size : int
        Largest runtime code a creation may deposit.
    """

    def __init__(
        self,
        env: ExecEnv,
        registry: PrecompileRegistry,
        *,
        max_call_depth: int = 1024,
        max_code_size: int = 24576,
    ) -> None:
        self.env = env
        self.registry = registry
        self.max_call_depth = max_call_depth
        self.max_code_size = max_code_size

    # ------------------------------------------------------------------ #
    # Main loop
    # ------------------------------------------------------------------ #

    def execute(self, msg: Message) -> FrameResult:
        """Run `msg` and every frame it spawns; returns the root result."""
        opened = self._open(msg)
        if isinstance(opened, FrameResult):
            return opened

        stack: List[Frame] = [opened]

        while stack:
            frame = stack[-1]
            try:
                step = interpreter.run(self.env, frame)
            except VMError as e:
                result = self._fail(frame, e)
                stack.pop()
            else:
                if isinstance(step, Halt):
                    result = self._finish(frame, step)
                    stack.pop()
                else:
                    child = self._open_request(frame, step)
                    if isinstance(child, Frame):
                        stack.append(child)
                        continue
                    interpreter.resume(frame, child)
                    continue

            if not stack:
                return result
            interpreter.resume(stack[-1], result)

        raise StateAdapterError("frame stack emptied without a root result")

    # ------------------------------------------------------------------ #
    # Opening frames
    # ------------------------------------------------------------------ #

    def _open_request(self, parent: Frame, req: Union[CallRequest, CreateRequest]) -> Opened:
        depth = parent.depth + 1
        if isinstance(req, CreateRequest):
            return self._open_create_request(parent, req, depth)

        kind = req.kind
        gas = req.gas + req.stipend
        if kind is CallKind.CALL:
            msg = Message(kind, parent.address, req.code_address, req.code_address,
                          req.value, req.input, gas, depth, is_static=parent.is_static)
        elif kind is CallKind.CALLCODE:
            msg = Message(kind, parent.address, parent.address, req.code_address,
                          req.value, req.input, gas, depth, is_static=parent.is_static)
        elif kind is CallKind.DELEGATECALL:
            msg = Message(kind, parent.msg.caller, parent.address, req.code_address,
                          parent.msg.value, req.input, gas, depth,
                          is_static=parent.is_static, transfers_value=False)
        else:
            msg = Message(kind, parent.address, req.code_address, req.code_address,
                          0, req.input, gas, depth, is_static=True)
        return self._open(msg)

    def _open_create_request(self, parent: Frame, req: CreateRequest, depth: int) -> Opened:
        state = self.env.state
        creator = parent.address
        # Depth and balance failures happen before the creator nonce moves.
        if depth > self.max_call_depth:
            return self._reject(CallDepthExceeded(depth, self.max_call_depth), req.gas)
        available = state.get_balance(creator)
        if available < req.value:
            return self._reject(
                InsufficientBalance(address=creator, needed=req.value, available=available),
                req.gas,
            )

        nonce = state.get_nonce(creator)
        if req.kind is CallKind.CREATE2:
            target = create2_address(creator, req.salt or 0, req.init_code)
        else:
            target = create_address(creator, nonce)
        state.increment_nonce(creator)

        msg = Message(req.kind, creator, target, target, req.value, req.init_code,
                      req.gas, depth, salt=req.salt)
        return self._open(msg)

    def _open(self, msg: Message) -> Opened:
        state = self.env.state
        if msg.depth > self.max_call_depth:
            return self._reject(CallDepthExceeded(msg.depth, self.max_call_depth), msg.gas)
        if msg.transfers_value and msg.value:
            available = state.get_balance(msg.caller)
            if available < msg.value:
                return self._reject(
                    InsufficientBalance(address=msg.caller, needed=msg.value, available=available),
                    msg.gas,
                )

        handle = state.begin_overlay()

        if msg.kind.is_create:
            if state.has_code_or_nonce(msg.target):
                state.discard(handle)
                return self._spent(CreateCollision(msg.target), msg)
            state.set_nonce(msg.target, 1)

        if msg.transfers_value and msg.value and msg.caller != msg.target:
            state.transfer(msg.caller, msg.target, msg.value)

        if msg.kind.is_create:
            code = msg.data
        else:
            precompile = self.registry.get(msg.code_address)
            if precompile is not None:
                return self._run_precompile(precompile, msg, handle)
            code = state.get_code(msg.code_address)

        if not code:
            state.commit(handle)
            return FrameResult(True, b"", msg.gas,
                               created_address=msg.target if msg.kind.is_create else None)

        return Frame(
            msg=msg,
            code=code,
            jumpdests=jumpdests(code),
            meter=GasMeter(msg.gas),
            overlay=handle,
        )

    def _run_precompile(self, precompile, msg: Message, handle: int) -> FrameResult:
        state = self.env.state
        try:
            cost = precompile.required_gas(msg.data)
            if cost > msg.gas:
                raise OutOfGas(f"out of gas: {precompile.name}",
                               data={"needed": cost, "remaining": msg.gas})
            ctx = PrecompileContext(
                caller=msg.caller,
                address=msg.target,
                value=msg.value,
                state=state,
                is_static=msg.is_static,
            )
            output = precompile.run(msg.data, ctx)
        except (PrecompileError, VMError, InsufficientBalance) as e:
            state.discard(handle)
            return self._spent(e, msg)
        state.commit(handle)
        return FrameResult(True, output, msg.gas - cost)

    # ------------------------------------------------------------------ #
    # Closing frames
    # ------------------------------------------------------------------ #

    def _finish(self, frame: Frame, halt: Halt) -> FrameResult:
        state = self.env.state
        msg = frame.msg
        if halt.reverted:
            state.discard(frame.overlay)
            return FrameResult(False, halt.output, frame.meter.remaining)

        if not msg.kind.is_create:
            state.commit(frame.overlay)
            return FrameResult(True, halt.output, frame.meter.remaining)

        code = halt.output
        try:
            if len(code) > self.max_code_size:
                raise CodeSizeExceeded(len(code), self.max_code_size)
            frame.meter.debit(self.env.schedule.code_deposit * len(code), reason="code deposit")
        except (CodeSizeExceeded, OutOfGas) as e:
            return self._fail(frame, e)
        state.set_code(msg.target, code)
        state.commit(frame.overlay)
        return FrameResult(True, b"", frame.meter.remaining, created_address=msg.target)

    def _fail(self, frame: Frame, err: ExecError) -> FrameResult:
        """Exceptional halt: overlay dropped, every unit of frame gas spent."""
        self.env.state.discard(frame.overlay)
        frame.meter.consume_all()
        return self._spent(err, frame.msg, pc=frame.pc)

    def _spent(self, err: ExecError, msg: Message, *, pc: Optional[int] = None) -> FrameResult:
        log.debug(
            "frame failed",
            extra={
                "error": err.code,
                "depth": msg.depth,
                "kind": msg.kind.value,
                "address": "0x" + msg.target.hex(),
                "pc": pc,
            },
        )
        return FrameResult(False, b"", 0, error=err.code)

    def _reject(self, err: CallError, gas: int) -> FrameResult:
        """The frame never started; its whole budget goes back to the caller."""
        log.debug("frame rejected", extra={"error": err.code, "data": err.data})
        return FrameResult(False, b"", gas, error=err.code)


__all__ = ["Dispatcher"]
