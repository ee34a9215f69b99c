"""
Canonical encoder for signable actions.

The exchange re-derives these bytes from the decoded action and verifies the
signature against their hash, so every detail here is part of the signing
contract:

    msgpack(wire action)
    || nonce            8 bytes big-endian
    || vault flag       0x00 absent / 0x01 present
    || vault address    20 bytes, zero-filled when absent
    || expires_after    8 bytes big-endian, zero when absent

Wire actions are built with a fixed key order per variant, coins are
replaced by asset indexes, and quantities become integer lots at the
asset's precision, truncated toward zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, localcontext
from functools import singledispatch
from typing import Any, Dict, List, Optional, Union

import msgpack

from core.logging import get_logger
from core.signing.address import ADDRESS_LENGTH, Address, normalize_address
from core.trading.assets import AssetDirectory, AssetInfo
from core.trading.models import (
    BatchOrder,
    CancelOrder,
    LimitOrderType,
    ModifyOrder,
    OrderRequest,
    PlaceOrder,
    ScheduleCancel,
    Transfer,
    TriggerOrderType,
    UpdateIsolatedMargin,
    UpdateLeverage,
)
from core.utils.exceptions import InvalidActionError

logger = get_logger(__name__, component="encoder")

U64_MAX = (1 << 64) - 1
I64_MAX = (1 << 63) - 1

# Isolated margin amounts travel as integer micro-USD
USD_DECIMALS = 6

VAULT_ABSENT = b"\x00"
VAULT_PRESENT = b"\x01"


@dataclass(frozen=True)
class CanonicalPayload:
    """Wire form of an action plus the exact bytes that get hashed."""

    wire: Dict[str, Any]
    data: bytes
    nonce: int
    vault_address: Optional[Address] = None
    expires_after: Optional[int] = None


def to_lots(value: Decimal, decimals: int, field: str, signed: bool = False) -> int:
    """Scale to integer lots, truncating toward zero.

    A non-zero quantity that truncates to zero lots is rejected rather than
    silently sent as zero. Negative values are accepted only when ``signed``.
    """
    if not value.is_finite():
        raise InvalidActionError(f"{field} must be finite, got {value}", field=field, value=value)
    if value < 0 and not signed:
        raise InvalidActionError(f"{field} must be non-negative, got {value}", field=field, value=value)
    with localcontext() as ctx:
        ctx.prec = 80
        scaled = (value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN)
    lots = int(scaled)
    if value != 0 and lots == 0:
        raise InvalidActionError(
            f"{field}={value} is below the asset resolution of {decimals} decimals",
            field=field,
            value=value,
        )
    if abs(lots) > (I64_MAX if signed else U64_MAX):
        raise InvalidActionError(f"{field}={value} overflows 64-bit lots", field=field, value=value)
    return lots


def _order_type_wire(order_type: Union[LimitOrderType, TriggerOrderType], info: AssetInfo) -> Dict[str, Any]:
    if isinstance(order_type, LimitOrderType):
        return {"limit": {"tif": order_type.tif.value}}
    return {
        "trigger": {
            "isMarket": order_type.is_market,
            "triggerPx": to_lots(order_type.trigger_price, info.effective_price_decimals, "trigger_price"),
            "tpsl": order_type.tpsl.value,
        }
    }


def order_to_wire(order: OrderRequest, directory: AssetDirectory) -> Dict[str, Any]:
    info = directory.resolve(order.coin)
    wire: Dict[str, Any] = {
        "a": info.index,
        "b": order.is_buy,
        "p": to_lots(order.limit_price, info.effective_price_decimals, "limit_price"),
        "s": to_lots(order.size, info.size_decimals, "size"),
        "r": order.reduce_only,
        "t": _order_type_wire(order.order_type, info),
    }
    if order.cloid is not None:
        wire["c"] = order.cloid.to_raw()
    return wire


@singledispatch
def to_wire(action: Any, directory: AssetDirectory) -> Dict[str, Any]:
    """Map an action to its ordered wire structure."""
    raise InvalidActionError(
        f"Unsupported action type: {type(action).__name__}",
        field="type",
        value=type(action).__name__,
    )


def _order_action_wire(orders: List[Dict[str, Any]], action: Union[PlaceOrder, BatchOrder]) -> Dict[str, Any]:
    wire: Dict[str, Any] = {
        "type": "order",
        "orders": orders,
        "grouping": action.grouping.value,
    }
    if action.builder is not None:
        wire["builder"] = {"b": action.builder.address.to_hex(), "f": action.builder.fee}
    return wire


@to_wire.register
def _(action: PlaceOrder, directory: AssetDirectory) -> Dict[str, Any]:
    return _order_action_wire([order_to_wire(action, directory)], action)


@to_wire.register
def _(action: BatchOrder, directory: AssetDirectory) -> Dict[str, Any]:
    return _order_action_wire([order_to_wire(order, directory) for order in action.orders], action)


@to_wire.register
def _(action: CancelOrder, directory: AssetDirectory) -> Dict[str, Any]:
    info = directory.resolve(action.coin)
    if action.cloid is not None:
        return {
            "type": "cancelByCloid",
            "cancels": [{"asset": info.index, "cloid": action.cloid.to_raw()}],
        }
    return {"type": "cancel", "cancels": [{"a": info.index, "o": action.oid}]}


@to_wire.register
def _(action: ModifyOrder, directory: AssetDirectory) -> Dict[str, Any]:
    return {
        "type": "modify",
        "oid": action.oid if action.oid is not None else action.cloid.to_raw(),
        "order": order_to_wire(action.order, directory),
    }


@to_wire.register
def _(action: Transfer, directory: AssetDirectory) -> Dict[str, Any]:
    info = directory.resolve(action.asset)
    return {
        "type": "transfer",
        "destination": action.destination.to_hex(),
        "asset": info.index,
        "amount": to_lots(action.amount, info.size_decimals, "amount"),
    }


@to_wire.register
def _(action: UpdateLeverage, directory: AssetDirectory) -> Dict[str, Any]:
    info = directory.resolve(action.coin)
    return {
        "type": "updateLeverage",
        "asset": info.index,
        "isCross": action.is_cross,
        "leverage": action.leverage,
    }


@to_wire.register
def _(action: UpdateIsolatedMargin, directory: AssetDirectory) -> Dict[str, Any]:
    info = directory.resolve(action.coin)
    return {
        "type": "updateIsolatedMargin",
        "asset": info.index,
        "isBuy": action.is_buy,
        "ntli": to_lots(action.amount, USD_DECIMALS, "amount", signed=True),
    }


@to_wire.register
def _(action: ScheduleCancel, directory: AssetDirectory) -> Dict[str, Any]:
    wire: Dict[str, Any] = {"type": "scheduleCancel"}
    if action.time_ms is not None:
        wire["time"] = action.time_ms
    return wire


def encode_action(wire: Dict[str, Any]) -> bytes:
    """msgpack with insertion order preserved; maps are never re-sorted."""
    return msgpack.packb(wire, use_bin_type=True)


def _u64(value: int, field: str) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidActionError(f"{field} must be an integer", field=field, value=value)
    if value < 0 or value > U64_MAX:
        raise InvalidActionError(f"{field} must fit in an unsigned 64-bit integer", field=field, value=value)
    return value.to_bytes(8, "big")


def build_payload(
    action: Any,
    nonce: int,
    directory: AssetDirectory,
    vault_address: Optional[Union[str, Address]] = None,
    expires_after: Optional[int] = None,
    strict_addresses: Optional[bool] = None,
) -> CanonicalPayload:
    """Encode an action with its metadata.

    Raises:
        UnknownAssetError: a coin is missing from ``directory``
        InvalidActionError: quantities below resolution, nonce/expiry overflow
        InvalidAddressError: malformed vault address
    """
    wire = to_wire(action, directory)
    suffix = _u64(nonce, "nonce")

    vault = None
    if vault_address is None:
        suffix += VAULT_ABSENT + bytes(ADDRESS_LENGTH)
    else:
        vault = normalize_address(vault_address, strict=strict_addresses)
        suffix += VAULT_PRESENT + vault.raw

    suffix += _u64(0 if expires_after is None else expires_after, "expires_after")

    data = encode_action(wire) + suffix
    logger.debug(
        "Encoded action",
        action_type=wire["type"],
        nonce=nonce,
        vault_address=vault.to_hex() if vault else None,
        encoded_bytes=len(data),
    )
    return CanonicalPayload(
        wire=wire,
        data=data,
        nonce=nonce,
        vault_address=vault,
        expires_after=expires_after,
    )


def encode(
    action: Any,
    nonce: int,
    directory: AssetDirectory,
    vault_address: Optional[Union[str, Address]] = None,
    expires_after: Optional[int] = None,
    strict_addresses: Optional[bool] = None,
) -> bytes:
    """Canonical bytes for ``action``; equal inputs give identical output."""
    return build_payload(
        action,
        nonce,
        directory,
        vault_address=vault_address,
        expires_after=expires_after,
        strict_addresses=strict_addresses,
    ).data
