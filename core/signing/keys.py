"""
Secret key holder for secp256k1 signing keys.

The scalar lives in a bytearray so it can be wiped when the owning registry
is closed. It never appears in repr/str output and refuses to be pickled.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Union

from eth_account import Account
from eth_account.messages import encode_typed_data

from core.signing.address import Address
from core.utils.exceptions import InvalidKeyError, SigningError

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

KEY_LENGTH = 32

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def parse_key_material(material: Union[str, bytes, bytearray]) -> bytearray:
    """Validate raw key material and return it as a mutable buffer.

    Raises:
        InvalidKeyError: not hex, not exactly 32 bytes, or outside [1, n-1]
    """
    if isinstance(material, (bytes, bytearray)):
        raw = bytearray(material)
    elif isinstance(material, str):
        text = material.strip()
        if text[:2] in ("0x", "0X"):
            text = text[2:]
        if not text or not _HEX_RE.match(text):
            raise InvalidKeyError("private key must be a hex string")
        if len(text) != KEY_LENGTH * 2:
            raise InvalidKeyError(
                f"private key must be exactly {KEY_LENGTH} bytes, got {len(text) / 2:g} bytes"
            )
        raw = bytearray.fromhex(text)
    else:
        raise InvalidKeyError(f"private key must be str or bytes, got {type(material).__name__}")

    if len(raw) != KEY_LENGTH:
        raise InvalidKeyError(f"private key must be exactly {KEY_LENGTH} bytes, got {len(raw)} bytes")

    scalar = int.from_bytes(raw, "big")
    if not 0 < scalar < SECP256K1_N:
        raise InvalidKeyError("private key is not a valid secp256k1 scalar")
    return raw


class SigningKey:
    """A 32-byte secp256k1 secret and the address it derives."""

    __slots__ = ("_secret", "_address")

    def __init__(self, material: Union[str, bytes, bytearray]):
        self._secret = parse_key_material(material)
        self._address = Address(
            bytes.fromhex(Account.from_key(bytes(self._secret)).address[2:])
        )

    @classmethod
    def from_hex(cls, material: str) -> "SigningKey":
        return cls(material)

    @property
    def address(self) -> Address:
        """Address derived from the public key."""
        return self._address

    @property
    def is_wiped(self) -> bool:
        return not any(self._secret)

    def sign_typed_data(self, full_message: Dict[str, Any]):
        """Sign an EIP-712 payload; returns eth-account's SignedMessage."""
        if self.is_wiped:
            raise SigningError("signing key has been wiped")
        try:
            account = Account.from_key(bytes(self._secret))
            return account.sign_message(encode_typed_data(full_message=full_message))
        except (ValueError, TypeError) as e:
            raise SigningError(f"failed to sign typed data: {e}") from e

    def wipe(self) -> None:
        """Zero the secret in place."""
        for i in range(len(self._secret)):
            self._secret[i] = 0

    def __repr__(self) -> str:
        return f"SigningKey(address={self._address.to_hex()}, secret=<redacted>)"

    __str__ = __repr__

    def __reduce__(self):
        raise TypeError("SigningKey cannot be serialized")

    def __del__(self):
        secret = getattr(self, "_secret", None)
        if secret is not None:
            for i in range(len(secret)):
                secret[i] = 0
