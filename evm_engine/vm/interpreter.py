"""
evm_engine.vm.interpreter - the bytecode loop.

Design goals
------------
- Gas first: the static cost of an instruction (and the stack bounds) are
  checked before its handler runs; handlers bill dynamic costs before any
  side effect.
- No recursion: `run()` returns as soon as the frame halts *or* asks for a
  child frame. The dispatcher later calls `resume()` with the child's result
  and then `run()` again.
- Errors are exceptions (VMError subclasses). The dispatcher turns them into
  a failed frame; the interpreter never catches them.
"""

from __future__ import annotations

from evm_engine.errors import InvalidOpcode, StackOverflow, StackUnderflow
from evm_engine.types.address import address_to_word

from .env import ExecEnv
from .frame import CallRequest, CreateRequest, Frame, FrameResult, Halt, StepResult
from .opcodes import OPCODES, static_costs
from .stack import STACK_LIMIT


def run(env: ExecEnv, frame: Frame) -> StepResult:
    """Execute `frame` until it halts or issues a call/create request."""
    if frame.pending is not None:
        raise RuntimeError("frame is waiting for a child result; call resume() first")
    code = frame.code
    n_code = len(code)
    stack = frame.stack
    meter = frame.meter
    costs = static_costs(env.schedule)

    while True:
        pc = frame.pc
        if pc >= n_code:
            return Halt()
        opcode = code[pc]
        info = OPCODES[opcode]
        if info is None:
            raise InvalidOpcode(opcode, data={"pc": pc})
        depth = len(stack)
        if depth < info.stack_in:
            raise StackUnderflow(data={"op": info.name, "pc": pc})
        if depth - info.stack_in + info.stack_out > STACK_LIMIT:
            raise StackOverflow(data={"op": info.name, "pc": pc})
        meter.debit(costs[opcode], reason=info.name)
        frame.pc = pc + 1

        result = info.handler(env, frame)
        if result is None:
            continue
        if isinstance(result, (CallRequest, CreateRequest)):
            frame.pending = result
        return result


def resume(frame: Frame, result: FrameResult) -> None:
    """Feed a finished child's result back into the parent frame."""
    req = frame.pending
    if req is None:
        raise RuntimeError("frame has no pending request")
    frame.pending = None
    frame.meter.credit(result.gas_left)

    if isinstance(req, CallRequest):
        frame.return_data = result.output
        if req.ret_size and result.output:
            n = min(req.ret_size, len(result.output))
            frame.memory.write(req.ret_offset, result.output[:n])
        frame.stack.push(1 if result.success else 0)
        return

    # CREATE/CREATE2: return data is only kept when the init code reverted.
    if result.success and result.created_address is not None:
        frame.return_data = b""
        frame.stack.push(address_to_word(result.created_address))
    else:
        frame.return_data = result.output if result.reverted else b""
        frame.stack.push(0)


__all__ = ["run", "resume"]
