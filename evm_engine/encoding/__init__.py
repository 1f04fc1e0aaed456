"""
evm_engine.encoding - wire helpers.

- cbor : canonical CBOR for entry-point arguments/results (cbor2)
- abi  : the small Solidity ABI subset the engine itself needs
"""
