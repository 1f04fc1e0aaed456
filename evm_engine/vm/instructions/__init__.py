"""Instruction handlers, grouped by opcode range. Wired up in `evm_engine.vm.opcodes`."""
