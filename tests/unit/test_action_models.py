from decimal import Decimal

import pytest
from pydantic import ValidationError

from core.signing.address import Address
from core.trading.models import (
    BatchOrder,
    BuilderFee,
    CancelOrder,
    Cloid,
    Grouping,
    LimitOrderType,
    ModifyOrder,
    OrderRequest,
    PlaceOrder,
    ScheduleCancel,
    Tif,
    TpSl,
    Transfer,
    TriggerOrderType,
    UpdateIsolatedMargin,
    UpdateLeverage,
)
from core.utils.exceptions import InvalidActionError


def test_place_order_defaults(btc_order):
    assert btc_order.action_type == "order"
    assert isinstance(btc_order.order_type, LimitOrderType)
    assert btc_order.order_type.tif is Tif.GTC
    assert btc_order.reduce_only is False
    assert btc_order.cloid is None
    assert btc_order.grouping is Grouping.NA


def test_actions_are_immutable(btc_order):
    with pytest.raises(ValidationError):
        btc_order.size = Decimal("1")


@pytest.mark.parametrize("field,value", [
    ("size", Decimal("0")),
    ("size", Decimal("-1")),
    ("size", Decimal("NaN")),
    ("size", Decimal("0.000000001")),
    ("limit_price", Decimal("-0.1")),
])
def test_invalid_quantities_are_rejected(field, value):
    kwargs = {"coin": "BTC", "is_buy": True, "size": Decimal("1"), "limit_price": Decimal("100")}
    kwargs[field] = value
    with pytest.raises(InvalidActionError) as exc_info:
        PlaceOrder(**kwargs)
    assert exc_info.value.field == field


def test_zero_limit_price_is_allowed():
    order = PlaceOrder(coin="BTC", is_buy=False, size=Decimal("1"), limit_price=Decimal("0"))
    assert order.limit_price == 0


def test_unknown_fields_are_rejected():
    with pytest.raises(InvalidActionError):
        PlaceOrder(coin="BTC", is_buy=True, size=Decimal("1"), limit_price=Decimal("1"), leverage=5)


def test_trigger_order_type_is_selected_by_kind():
    order = PlaceOrder(
        coin="ETH",
        is_buy=False,
        size=Decimal("1"),
        limit_price=Decimal("3000"),
        order_type={"kind": "trigger", "trigger_price": "2950", "is_market": True, "tpsl": "sl"},
        reduce_only=True,
    )
    assert isinstance(order.order_type, TriggerOrderType)
    assert order.order_type.tpsl is TpSl.STOP_LOSS
    assert order.order_type.trigger_price == Decimal("2950")


def test_cloid_forms():
    assert Cloid.from_int(1).to_raw() == "0x" + "0" * 31 + "1"
    assert Cloid.from_str("0x" + "ab" * 16) == Cloid("0x" + "AB" * 16)
    assert Cloid.coerce(1) == Cloid.from_int(1)

    for bad in ("0x1234", "ab" * 16, "0x" + "zz" * 16):
        with pytest.raises(InvalidActionError):
            Cloid(bad)
    with pytest.raises(InvalidActionError):
        Cloid.from_int(1 << 128)
    with pytest.raises(InvalidActionError):
        Cloid.from_int(-1)


def test_order_cloid_is_coerced_and_validated():
    order = OrderRequest(coin="BTC", is_buy=True, size=Decimal("1"), limit_price=Decimal("1"), cloid=7)
    assert order.cloid == Cloid.from_int(7)

    with pytest.raises(InvalidActionError):
        OrderRequest(coin="BTC", is_buy=True, size=Decimal("1"), limit_price=Decimal("1"), cloid="0x12")


def test_batch_order_requires_orders():
    with pytest.raises(InvalidActionError):
        BatchOrder(orders=())

    batch = BatchOrder(
        orders=[
            {"coin": "BTC", "is_buy": True, "size": "0.1", "limit_price": "60000"},
            {"coin": "ETH", "is_buy": False, "size": "1", "limit_price": "3000"},
        ],
        grouping=Grouping.NORMAL_TPSL,
    )
    assert [o.coin for o in batch.orders] == ["BTC", "ETH"]


@pytest.mark.parametrize("kwargs", [
    {},
    {"oid": 1, "cloid": 1},
])
def test_cancel_needs_exactly_one_reference(kwargs):
    with pytest.raises(InvalidActionError):
        CancelOrder(coin="BTC", **kwargs)


def test_cancel_and_modify_references():
    assert CancelOrder(coin="BTC", oid=42).oid == 42
    assert CancelOrder(coin="BTC", cloid=3).cloid == Cloid.from_int(3)

    modify = ModifyOrder(
        oid=42,
        order=OrderRequest(coin="BTC", is_buy=True, size=Decimal("1"), limit_price=Decimal("1")),
    )
    assert modify.action_type == "modify"

    with pytest.raises(InvalidActionError):
        CancelOrder(coin="BTC", oid=-1)


def test_transfer_destination_is_strict(test_address):
    transfer = Transfer(destination=test_address, amount=Decimal("12.5"), asset="USDC")
    assert isinstance(transfer.destination, Address)
    assert transfer.destination.to_hex() == test_address

    with pytest.raises(InvalidActionError):
        Transfer(destination="0x1234", amount=Decimal("1"), asset="USDC")
    with pytest.raises(InvalidActionError):
        Transfer(destination=test_address, amount=Decimal("0"), asset="USDC")


def test_leverage_and_schedule_cancel():
    assert UpdateLeverage(coin="BTC", leverage=10).is_cross is True
    with pytest.raises(InvalidActionError):
        UpdateLeverage(coin="BTC", leverage=0)

    assert ScheduleCancel().time_ms is None
    assert ScheduleCancel(time_ms=1_700_000_000_000).time_ms == 1_700_000_000_000
    with pytest.raises(InvalidActionError):
        ScheduleCancel(time_ms=-5)


def test_builder_fee_validation(vault_address):
    builder = BuilderFee(address=vault_address, fee=25)
    assert isinstance(builder.address, Address)

    with pytest.raises(InvalidActionError):
        BuilderFee(address="0x1234", fee=1)
    with pytest.raises(InvalidActionError):
        BuilderFee(address=vault_address, fee=-1)
    with pytest.raises(InvalidActionError):
        BuilderFee(address=vault_address, fee=1_000_001)

    order = PlaceOrder(
        coin="BTC",
        is_buy=True,
        size=Decimal("1"),
        limit_price=Decimal("1"),
        builder={"address": vault_address, "fee": 5},
    )
    assert order.builder == builder.model_copy(update={"fee": 5})


def test_update_isolated_margin_validation():
    assert UpdateIsolatedMargin(coin="BTC", amount=Decimal("-1.5")).amount == Decimal("-1.5")
    assert UpdateIsolatedMargin.action_type == "updateIsolatedMargin"

    for amount in ("0", "NaN", "0.000000001"):
        with pytest.raises(InvalidActionError):
            UpdateIsolatedMargin(coin="BTC", amount=Decimal(amount))
