"""
Address codec: normalizes externally supplied hex addresses to 20 bytes.

Strict mode accepts only ``0x`` followed by exactly 40 hex characters.
Lenient mode accepts any hex string and left-pads or keeps the trailing 20
bytes. Lenient mode can map two different inputs onto the same address, so
strict is the default and callers opt out per call with ``strict=False``.
"""

from __future__ import annotations

import re
import warnings
from typing import Optional, Union

from core.utils.exceptions import InvalidAddressError

ADDRESS_LENGTH = 20

_HEX_RE = re.compile(r"[0-9a-fA-F]*")

# Process-wide default; prefer the per-call ``strict`` argument
_strict_default = True


class Address:
    """Immutable 20-byte account address."""

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        raw = bytes(raw)
        if len(raw) != ADDRESS_LENGTH:
            raise InvalidAddressError(
                f"address must be exactly {ADDRESS_LENGTH} bytes, got {len(raw)} bytes",
                address=raw.hex(),
            )
        self._raw = raw

    @classmethod
    def zero(cls) -> "Address":
        return cls(bytes(ADDRESS_LENGTH))

    @property
    def raw(self) -> bytes:
        return self._raw

    def to_hex(self) -> str:
        return "0x" + self._raw.hex()

    def __bytes__(self) -> bytes:
        return self._raw

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return f"Address('{self.to_hex()}')"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self._raw == other._raw
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._raw)


def set_strict_address_default(strict: bool) -> None:
    """Deprecated: set the process-wide address mode.

    Concurrent callers relying on different modes race on this value; pass
    ``strict=`` to :func:`normalize_address` instead.
    """
    global _strict_default
    warnings.warn(
        "set_strict_address_default is deprecated; pass strict= per call",
        DeprecationWarning,
        stacklevel=2,
    )
    _strict_default = bool(strict)


def is_strict_address_default() -> bool:
    return _strict_default


def _strip_prefix(text: str) -> str:
    if text[:2] in ("0x", "0X"):
        return text[2:]
    return text


def normalize_address(text: Union[str, bytes, Address], strict: Optional[bool] = None) -> Address:
    """Convert a hex address into its 20-byte form.

    Args:
        text: ``0x``-prefixed hex string, raw bytes or an existing Address
        strict: Overrides the process-wide mode for this call when not None

    Raises:
        InvalidAddressError: empty input, non-hex characters, or wrong length
            in strict mode
    """
    if isinstance(text, Address):
        return text
    if strict is None:
        strict = _strict_default

    if isinstance(text, (bytes, bytearray)):
        data = bytes(text)
        if strict and len(data) != ADDRESS_LENGTH:
            raise InvalidAddressError(
                f"address must be exactly {ADDRESS_LENGTH} bytes (40 hex chars), "
                f"got {len(data)} bytes",
                address=data.hex(),
            )
        return Address(_fit(data))

    if not isinstance(text, str):
        raise InvalidAddressError(f"address must be a string, got {type(text).__name__}", address=text)

    if strict:
        if not text.startswith("0x") and not text.startswith("0X"):
            raise InvalidAddressError(
                f"address must be exactly {ADDRESS_LENGTH} bytes (40 hex chars) with 0x prefix, "
                f"got '{text}'",
                address=text,
            )
        body = text[2:]
        if not _HEX_RE.fullmatch(body):
            raise InvalidAddressError(f"address contains non-hex characters: '{text}'", address=text)
        if len(body) != ADDRESS_LENGTH * 2:
            raise InvalidAddressError(
                f"address must be exactly {ADDRESS_LENGTH} bytes (40 hex chars), "
                f"got {len(body)} hex chars",
                address=text,
            )
        return Address(bytes.fromhex(body))

    # Surrounding whitespace is tolerated only in lenient mode
    text = text.strip()
    body = _strip_prefix(text)
    if not body:
        raise InvalidAddressError("address must not be empty", address=text)
    if not _HEX_RE.fullmatch(body):
        raise InvalidAddressError(f"address contains non-hex characters: '{text}'", address=text)
    if len(body) % 2:
        body = "0" + body
    return Address(_fit(bytes.fromhex(body)))


def _fit(data: bytes) -> bytes:
    # >20 keeps the trailing bytes, <20 is left-padded with zeros
    if len(data) >= ADDRESS_LENGTH:
        return data[-ADDRESS_LENGTH:]
    return bytes(ADDRESS_LENGTH - len(data)) + data


def encode_address(address: Address) -> str:
    """Lowercase ``0x`` text form."""
    return address.to_hex()


def decode_address(text: str) -> Address:
    """Strict decode, the inverse of :func:`encode_address`."""
    return normalize_address(text, strict=True)
