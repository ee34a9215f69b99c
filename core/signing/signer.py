"""
Signer: hash the canonical bytes and sign them under the exchange domain.

The 32-byte keccak digest of the canonical payload is wrapped in an EIP-712
``Agent`` message (the connection id) and signed with deterministic
RFC6979 ECDSA on secp256k1. ``v`` is reported as 27/28.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import keccak

from core.logging import get_logger
from core.signing.address import Address
from core.signing.encoder import CanonicalPayload, build_payload
from core.signing.keys import SigningKey
from core.trading.assets import AssetDirectory
from core.utils.exceptions import SigningError

logger = get_logger(__name__, component="signer")

DIGEST_LENGTH = 32

EXCHANGE_DOMAIN = {
    "chainId": 1337,
    "name": "Exchange",
    "verifyingContract": "0x0000000000000000000000000000000000000000",
    "version": "1",
}

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

AGENT_TYPE = [
    {"name": "source", "type": "string"},
    {"name": "connectionId", "type": "bytes32"},
]


@dataclass(frozen=True)
class Signature:
    r: int
    s: int
    v: int

    def to_dict(self) -> Dict[str, Any]:
        return {"r": hex(self.r), "s": hex(self.s), "v": self.v}

    @property
    def recovery_id(self) -> int:
        return self.v - 27


@dataclass(frozen=True)
class SignedRequest:
    """Everything the dispatcher needs; built once per submission."""

    action: Any
    wire_action: Dict[str, Any]
    nonce: int
    signature: Signature
    vault_address: Optional[Address] = None
    expires_after: Optional[int] = None
    signer: Optional[Address] = None


def action_hash(data: bytes) -> bytes:
    """keccak-256, applied once."""
    return keccak(data)


def agent_payload(digest: bytes, is_mainnet: bool = True) -> Dict[str, Any]:
    """EIP-712 typed data for the phantom agent carrying ``digest``."""
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != DIGEST_LENGTH:
        raise SigningError(f"digest must be {DIGEST_LENGTH} bytes")
    return {
        "domain": EXCHANGE_DOMAIN,
        "types": {
            "Agent": AGENT_TYPE,
            "EIP712Domain": EIP712_DOMAIN_TYPE,
        },
        "primaryType": "Agent",
        "message": {
            "source": "a" if is_mainnet else "b",
            "connectionId": bytes(digest),
        },
    }


def sign_digest(digest: bytes, key: SigningKey, is_mainnet: bool = True) -> Signature:
    """Deterministic: the same digest and key always give the same (r, s, v)."""
    signed = key.sign_typed_data(agent_payload(digest, is_mainnet))
    return Signature(r=int(signed.r), s=int(signed.s), v=int(signed.v))


def recover_address(signature: Signature, digest: bytes, is_mainnet: bool = True) -> Address:
    signable = encode_typed_data(full_message=agent_payload(digest, is_mainnet))
    recovered = Account.recover_message(
        signable, vrs=(signature.v, signature.r, signature.s)
    )
    return Address(bytes.fromhex(recovered[2:]))


def sign_payload(payload: CanonicalPayload, key: SigningKey, is_mainnet: bool = True,
                 action: Any = None, signer: Optional[Address] = None) -> SignedRequest:
    digest = action_hash(payload.data)
    signature = sign_digest(digest, key, is_mainnet)
    logger.debug(
        "Signed action",
        action_type=payload.wire.get("type"),
        nonce=payload.nonce,
        signer=(signer or key.address).to_hex(),
        digest="0x" + digest.hex(),
    )
    return SignedRequest(
        action=action,
        wire_action=payload.wire,
        nonce=payload.nonce,
        signature=signature,
        vault_address=payload.vault_address,
        expires_after=payload.expires_after,
        signer=signer or key.address,
    )


def sign_action(
    action: Any,
    nonce: int,
    key: SigningKey,
    directory: AssetDirectory,
    vault_address: Optional[Union[str, Address]] = None,
    expires_after: Optional[int] = None,
    is_mainnet: bool = True,
    strict_addresses: Optional[bool] = None,
    signer: Optional[Address] = None,
) -> SignedRequest:
    """Encode, hash and sign in one step."""
    payload = build_payload(
        action,
        nonce,
        directory,
        vault_address=vault_address,
        expires_after=expires_after,
        strict_addresses=strict_addresses,
    )
    return sign_payload(payload, key, is_mainnet, action=action, signer=signer)
