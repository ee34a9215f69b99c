from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from core.signing.address import Address, normalize_address
from core.utils.exceptions import InvalidActionError, InvalidAddressError

# Finest resolution the exchange accepts for any quantity
EXCHANGE_MAX_DECIMALS = 8

CLOID_LENGTH = 16

MAX_BUILDER_FEE = 1_000_000


class Cloid:
    """Client order id: opaque 16 bytes, written as 0x + 32 hex chars."""

    __slots__ = ("_raw",)

    def __init__(self, raw: str):
        if not isinstance(raw, str) or not raw.startswith("0x"):
            raise InvalidActionError("cloid is not a hex string", field="cloid", value=raw)
        body = raw[2:]
        if len(body) != CLOID_LENGTH * 2:
            raise InvalidActionError("cloid is not 16 bytes", field="cloid", value=raw)
        try:
            self._raw = bytes.fromhex(body)
        except ValueError:
            raise InvalidActionError("cloid is not a hex string", field="cloid", value=raw) from None

    @classmethod
    def from_str(cls, value: str) -> "Cloid":
        return cls(value)

    @classmethod
    def from_int(cls, value: int) -> "Cloid":
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidActionError("cloid must be an integer", field="cloid", value=value)
        if value < 0 or value >= 1 << (CLOID_LENGTH * 8):
            raise InvalidActionError("cloid does not fit in 16 bytes", field="cloid", value=value)
        return cls("0x" + value.to_bytes(CLOID_LENGTH, "big").hex())

    @classmethod
    def coerce(cls, value: Any) -> "Cloid":
        if isinstance(value, Cloid):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls.from_int(value)
        return cls(value)

    @property
    def raw(self) -> bytes:
        return self._raw

    def to_raw(self) -> str:
        return "0x" + self._raw.hex()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Cloid):
            return self._raw == other._raw
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._raw)

    def __str__(self) -> str:
        return self.to_raw()

    def __repr__(self) -> str:
        return f"Cloid('{self.to_raw()}')"


def validate_quantity(value: Decimal, field: str, allow_zero: bool = True) -> Decimal:
    """Finite, non-negative and representable at the exchange resolution."""
    if not value.is_finite():
        raise ValueError(f"{field} must be finite, got {value}")
    if value < 0 or (value == 0 and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        raise ValueError(f"{field} must be {qualifier}, got {value}")
    exponent = value.normalize().as_tuple().exponent
    if isinstance(exponent, int) and exponent < -EXCHANGE_MAX_DECIMALS:
        raise ValueError(
            f"{field}={value} has more than {EXCHANGE_MAX_DECIMALS} decimal places"
        )
    return value


class HypeBaseModel(BaseModel):
    """Immutable base for signable payloads.

    Any validation failure surfaces as InvalidActionError so nothing
    inconsistent reaches the encoder.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
        allow_inf_nan=False,
    )

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            loc = ".".join(str(p) for p in first.get("loc", ()))
            raise InvalidActionError(
                f"Invalid {type(self).__name__}: {first.get('msg', str(e))}"
                + (f" ({loc})" if loc else ""),
                field=loc or None,
                details={"errors": e.errors(include_url=False)},
            ) from e


class Tif(str, Enum):
    """Time in force for limit orders"""
    ALO = "Alo"
    IOC = "Ioc"
    GTC = "Gtc"


class TpSl(str, Enum):
    TAKE_PROFIT = "tp"
    STOP_LOSS = "sl"


class Grouping(str, Enum):
    NA = "na"
    NORMAL_TPSL = "normalTpsl"
    POSITION_TPSL = "positionTpsl"


class LimitOrderType(HypeBaseModel):
    kind: Literal["limit"] = "limit"
    tif: Tif = Tif.GTC


class TriggerOrderType(HypeBaseModel):
    kind: Literal["trigger"] = "trigger"
    trigger_price: Decimal
    is_market: bool
    tpsl: TpSl

    @field_validator("trigger_price")
    @classmethod
    def validate_trigger_price(cls, v: Decimal) -> Decimal:
        return validate_quantity(v, "trigger_price", allow_zero=False)


OrderType = Annotated[Union[LimitOrderType, TriggerOrderType], Field(discriminator="kind")]


def _coerce_cloid(value: Any) -> Optional[Cloid]:
    if value is None:
        return None
    try:
        return Cloid.coerce(value)
    except InvalidActionError as e:
        raise ValueError(e.message) from None


def _coerce_address(value: Any) -> Address:
    try:
        return normalize_address(value, strict=True)
    except InvalidAddressError as e:
        raise ValueError(e.message) from None


class OrderRequest(HypeBaseModel):
    """One order as the caller describes it, before asset resolution."""

    coin: str = Field(..., min_length=1)
    is_buy: bool
    size: Decimal
    limit_price: Decimal
    order_type: OrderType = Field(default_factory=LimitOrderType)
    reduce_only: bool = False
    cloid: Optional[Cloid] = None

    @field_validator("size")
    @classmethod
    def validate_size(cls, v: Decimal) -> Decimal:
        return validate_quantity(v, "size", allow_zero=False)

    @field_validator("limit_price")
    @classmethod
    def validate_limit_price(cls, v: Decimal) -> Decimal:
        return validate_quantity(v, "limit_price")

    @field_validator("cloid", mode="before")
    @classmethod
    def coerce_cloid(cls, v: Any) -> Optional[Cloid]:
        return _coerce_cloid(v)


class BuilderFee(HypeBaseModel):
    """Routes an order through a builder; ``fee`` is in tenths of a basis point."""

    address: Address
    fee: int = Field(..., ge=0, le=MAX_BUILDER_FEE)

    @field_validator("address", mode="before")
    @classmethod
    def coerce_address(cls, v: Any) -> Address:
        return _coerce_address(v)


class PlaceOrder(OrderRequest):
    action_type: ClassVar[str] = "order"

    grouping: Grouping = Grouping.NA
    builder: Optional[BuilderFee] = None


class BatchOrder(HypeBaseModel):
    action_type: ClassVar[str] = "order"

    orders: Tuple[OrderRequest, ...] = Field(..., min_length=1)
    grouping: Grouping = Grouping.NA
    builder: Optional[BuilderFee] = None


class _OrderReference(HypeBaseModel):
    oid: Optional[int] = Field(None, ge=0)
    cloid: Optional[Cloid] = None

    @field_validator("cloid", mode="before")
    @classmethod
    def coerce_cloid(cls, v: Any) -> Optional[Cloid]:
        return _coerce_cloid(v)

    @model_validator(mode="after")
    def validate_exactly_one_reference(self):
        if (self.oid is None) == (self.cloid is None):
            raise ValueError("exactly one of oid or cloid must identify the order")
        return self


class CancelOrder(_OrderReference):
    action_type: ClassVar[str] = "cancel"

    coin: str = Field(..., min_length=1)


class ModifyOrder(_OrderReference):
    action_type: ClassVar[str] = "modify"

    order: OrderRequest


class Transfer(HypeBaseModel):
    action_type: ClassVar[str] = "transfer"

    destination: Address
    amount: Decimal
    asset: str = Field(..., min_length=1)

    @field_validator("destination", mode="before")
    @classmethod
    def coerce_destination(cls, v: Any) -> Address:
        return _coerce_address(v)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return validate_quantity(v, "amount", allow_zero=False)


class UpdateLeverage(HypeBaseModel):
    action_type: ClassVar[str] = "updateLeverage"

    coin: str = Field(..., min_length=1)
    leverage: int = Field(..., ge=1)
    is_cross: bool = True


class UpdateIsolatedMargin(HypeBaseModel):
    """Adds margin to an isolated position, or removes it when ``amount`` is negative."""

    action_type: ClassVar[str] = "updateIsolatedMargin"

    coin: str = Field(..., min_length=1)
    amount: Decimal
    is_buy: bool = True

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        validate_quantity(abs(v), "amount", allow_zero=False)
        return v


class ScheduleCancel(HypeBaseModel):
    """Dead man's switch; ``time_ms=None`` clears a scheduled cancel."""

    action_type: ClassVar[str] = "scheduleCancel"

    time_ms: Optional[int] = Field(None, ge=0)


Action = Union[
    PlaceOrder,
    BatchOrder,
    CancelOrder,
    ModifyOrder,
    Transfer,
    UpdateLeverage,
    UpdateIsolatedMargin,
    ScheduleCancel,
]

ACTION_TYPES = (
    PlaceOrder,
    BatchOrder,
    CancelOrder,
    ModifyOrder,
    Transfer,
    UpdateLeverage,
    UpdateIsolatedMargin,
    ScheduleCancel,
)
