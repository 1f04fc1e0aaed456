"""
evm_engine.meta.verifier - relayed (meta) call authentication.

A relayer submits a call on behalf of a user who signed a typed-data digest:

    domainSeparator = keccak(abi(EIP712Domain typehash, keccak(name), keccak(version),
                                 chainId, verifyingContract))
    structHash      = keccak(abi(MetaCall typehash, nonce, feeAmount, feeAddress,
                                 contractAddress, value, keccak(input)))
    digest          = keccak(0x19 0x01 ‖ domainSeparator ‖ structHash)

`verify()` never mutates state. Every rejection is an EngineError with a stable
code; `apply()` then consumes the nonce and pays the relayer inside the
caller's overlay, before the inner call runs.
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_keys import keys

from evm_engine.crypto import keccak256
from evm_engine.encoding.abi import encode
from evm_engine.errors import EngineError
from evm_engine.precompiles.ecrecover import recover_address
from evm_engine.state.adapter import StateAdapter
from evm_engine.types.address import ZERO_ADDRESS
from evm_engine.types.args import MetaCallArgs

DOMAIN_NAME = "EVM Engine"
DOMAIN_VERSION = "1"

EIP712_DOMAIN_TYPE = "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
META_CALL_TYPE = (
    "MetaCall(uint256 nonce,uint256 feeAmount,address feeAddress,"
    "address contractAddress,uint256 value,bytes input)"
)

EIP712_DOMAIN_TYPEHASH = keccak256(EIP712_DOMAIN_TYPE.encode("ascii"))
META_CALL_TYPEHASH = keccak256(META_CALL_TYPE.encode("ascii"))


def domain_separator(chain_id: int, verifying_contract: bytes) -> bytes:
    return keccak256(encode(
        ["bytes32", "bytes32", "bytes32", "uint256", "address"],
        [
            EIP712_DOMAIN_TYPEHASH,
            keccak256(DOMAIN_NAME.encode("utf-8")),
            keccak256(DOMAIN_VERSION.encode("utf-8")),
            chain_id,
            verifying_contract,
        ],
    ))


def struct_hash(args: MetaCallArgs) -> bytes:
    return keccak256(encode(
        ["bytes32", "uint256", "uint256", "address", "address", "uint256", "bytes32"],
        [
            META_CALL_TYPEHASH,
            args.nonce,
            args.fee_amount,
            args.fee_address,
            args.contract_address,
            args.value,
            keccak256(args.input),
        ],
    ))


def meta_call_digest(args: MetaCallArgs) -> bytes:
    """The 32-byte hash the sender signs."""
    return keccak256(
        b"\x19\x01"
        + domain_separator(args.chain_id, args.verifying_contract)
        + struct_hash(args)
    )


def recover_signer(digest: bytes, signature: bytes) -> bytes:
    """
    Recover the address behind a 65-byte `r ‖ s ‖ v` signature.

    Raises:
        EngineError('ERR_INVALID_SIGNATURE') for malformed or unrecoverable input.
    """
    if len(signature) != 65:
        raise EngineError("ERR_INVALID_SIGNATURE", "signature must be 65 bytes")
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    v = signature[64]
    if v >= 27:
        v -= 27
    signer = recover_address(digest, v, r, s)
    if signer is None:
        raise EngineError("ERR_INVALID_SIGNATURE", "signature does not recover")
    return signer


def sign_digest(private_key: bytes, digest: bytes) -> bytes:
    """65-byte `r ‖ s ‖ v` signature with v in {27, 28}."""
    sig = keys.PrivateKey(private_key).sign_msg_hash(digest)
    return sig.r.to_bytes(32, "big") + sig.s.to_bytes(32, "big") + bytes([sig.v + 27])


@dataclass(frozen=True)
class VerifiedMetaCall:
    sender: bytes
    args: MetaCallArgs

    def fee_recipient(self, relayer: bytes) -> bytes:
        """The explicit fee address, or the relayer when it is zero."""
        if self.args.fee_address == ZERO_ADDRESS:
            return relayer
        return self.args.fee_address


def verify(
    args: MetaCallArgs,
    *,
    chain_id: int,
    verifying_contract: bytes,
    state: StateAdapter,
) -> VerifiedMetaCall:
    """
    Authenticate a meta call against the engine's domain and the sender's account.

    Order of checks: signature, declared sender, domain, nonce, fee balance.
    """
    signer = recover_signer(meta_call_digest(args), args.signature)
    if signer != args.sender:
        raise EngineError("ERR_INVALID_SIGNATURE", "signer does not match sender")
    if args.chain_id != chain_id or args.verifying_contract != verifying_contract:
        raise EngineError("ERR_META_TX_DOMAIN", "domain does not match this engine")

    current = state.get_nonce(signer)
    if args.nonce < current:
        raise EngineError("ERR_META_TX_NONCE_REUSED", data={"nonce": args.nonce, "current": current})
    if args.nonce > current:
        raise EngineError("ERR_INCORRECT_NONCE", data={"nonce": args.nonce, "current": current})

    if state.get_balance(signer) < args.fee_amount:
        raise EngineError("ERR_INSUFFICIENT_FEE_BALANCE")
    return VerifiedMetaCall(sender=signer, args=args)


def apply(verified: VerifiedMetaCall, state: StateAdapter, *, relayer: bytes) -> None:
    """Consume the nonce and pay the fee (in the innermost overlay)."""
    state.increment_nonce(verified.sender)
    state.transfer(verified.sender, verified.fee_recipient(relayer), verified.args.fee_amount)


__all__ = [
    "DOMAIN_NAME",
    "DOMAIN_VERSION",
    "META_CALL_TYPE",
    "domain_separator",
    "struct_hash",
    "meta_call_digest",
    "recover_signer",
    "sign_digest",
    "VerifiedMetaCall",
    "verify",
    "apply",
]
