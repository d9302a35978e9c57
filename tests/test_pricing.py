from datetime import datetime
from decimal import Decimal

import pytest

from order_engine.models import Coupon, DiscountType, Order, OrderItem
from order_engine.services.money import quantize, to_money
from order_engine.services.pricing import apply_order_totals, tax_from_gross, tax_from_net

RATE = Decimal("0.10")
NOW = datetime(2025, 10, 21, 12, 0)


def make_order(*lines, fee="0.00", discount=None) -> Order:
    return Order(
        no="ORD-20251021-0001",
        delivery_fee=Decimal(fee),
        discount_amount=Decimal(discount) if discount is not None else None,
        items=[
            OrderItem(product_id=i, product_name=f"Plat {i}", unit_price=Decimal(price), quantity=qty)
            for i, (price, qty) in enumerate(lines, start=1)
        ],
    )


def percentage_coupon(value="10.00", **kwargs) -> Coupon:
    return Coupon(
        code="BIENVENUE10",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal(value),
        usage_count=0,
        is_active=True,
        **kwargs,
    )


def test_tax_from_gross():
    breakdown = tax_from_gross(Decimal("110.00"), RATE)
    assert breakdown.net == Decimal("100.00")
    assert breakdown.tax == Decimal("10.00")
    assert breakdown.gross == Decimal("110.00")


def test_tax_from_net():
    breakdown = tax_from_net(Decimal("100.00"), RATE)
    assert breakdown.tax == Decimal("10.00")
    assert breakdown.gross == Decimal("110.00")


@pytest.mark.parametrize("amount", ["0.01", "9.99", "15.50", "33.33", "1234.56"])
def test_gross_net_roundtrip_within_two_cents(amount):
    split = tax_from_gross(Decimal(amount), RATE)
    assert split.net + split.tax == Decimal(amount)

    back = tax_from_net(split.net, RATE)
    assert abs(back.gross - Decimal(amount)) <= Decimal("0.02")


def test_money_rounds_half_up():
    assert quantize(Decimal("1.005")) == Decimal("1.01")
    assert quantize(Decimal("2.675")) == Decimal("2.68")
    assert to_money(0.1) == Decimal("0.10")
    assert to_money(None) == Decimal("0.00")


def test_totals_without_discount():
    order = make_order(("12.50", 2), ("5.00", 1), fee="5.00")
    apply_order_totals(order, RATE, NOW)

    assert [item.total for item in order.items] == [Decimal("25.00"), Decimal("5.00")]
    assert order.subtotal + order.tax_amount == Decimal("30.00")
    assert order.tax_amount == Decimal("2.73")
    assert order.discount_amount == Decimal("0.00")
    assert order.total == Decimal("35.00")


def test_coupon_discount_applies_to_items_and_fee():
    order = make_order(("30.00", 1), fee="5.00")
    order.coupon = percentage_coupon()
    apply_order_totals(order, RATE, NOW)

    assert order.discount_amount == Decimal("3.50")
    assert order.total == Decimal("31.50")


def test_coupon_overrides_manual_discount():
    order = make_order(("30.00", 1), fee="5.00", discount="10.00")
    order.coupon = percentage_coupon()
    apply_order_totals(order, RATE, NOW)

    assert order.discount_amount == Decimal("3.50")


def test_manual_discount_clamped_to_amount():
    order = make_order(("8.00", 1), fee="0.00", discount="20.00")
    apply_order_totals(order, RATE, NOW)

    assert order.discount_amount == Decimal("8.00")
    assert order.total == Decimal("0.00")


def test_fixed_coupon_never_makes_total_negative():
    order = make_order(("15.00", 1))
    order.coupon = Coupon(
        code="GROS",
        discount_type=DiscountType.FIXED,
        discount_value=Decimal("100.00"),
        usage_count=0,
        is_active=True,
    )
    apply_order_totals(order, RATE, NOW)

    assert order.discount_amount == Decimal("15.00")
    assert order.total == Decimal("0.00")


def test_coupon_no_longer_applicable_gives_no_discount():
    order = make_order(("30.00", 1), fee="5.00")
    order.coupon = percentage_coupon(valid_until=datetime(2025, 1, 1))
    apply_order_totals(order, RATE, NOW)

    assert order.discount_amount == Decimal("0.00")
    assert order.total == Decimal("35.00")


def test_apply_is_idempotent():
    order = make_order(("9.90", 3), ("4.20", 2), fee="5.00")
    order.coupon = percentage_coupon("15.00")

    apply_order_totals(order, RATE, NOW)
    first = (order.subtotal, order.tax_amount, order.discount_amount, order.total)
    apply_order_totals(order, RATE, NOW)

    assert (order.subtotal, order.tax_amount, order.discount_amount, order.total) == first


def test_usage_recorded_keeps_discount_of_order_holding_last_use():
    order = make_order(("30.00", 1), fee="5.00")
    order.coupon = percentage_coupon(usage_limit=1)
    order.coupon.usage_count = 1

    apply_order_totals(order, RATE, NOW)
    assert order.discount_amount == Decimal("0.00")

    apply_order_totals(order, RATE, NOW, usage_recorded=True)
    assert order.discount_amount == Decimal("3.50")
