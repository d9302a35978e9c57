"""
Pricing Engine

VAT decomposition and order-level totals. Menu prices include VAT
(gross), so the net subtotal and the tax are always split out of the
item totals, never the other way round.

Rounding:
    Every stored value is rounded half-up to cents at the point it is
    computed. Intermediate divisions keep full Decimal precision.

Example:
    >>> tax_from_gross(Decimal("110.00"), Decimal("0.10"))
    TaxBreakdown(net=Decimal('100.00'), tax=Decimal('10.00'), gross=Decimal('110.00'), rate=Decimal('0.10'))

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from order_engine.models import Order
from order_engine.services import coupons
from order_engine.services.money import MoneyLike, ZERO, quantize, to_decimal, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxBreakdown:
    """
    One amount expressed both ways.

    Attributes:
        net: Amount excluding VAT
        tax: VAT part
        gross: Amount including VAT
        rate: VAT rate used (e.g. 0.10)
    """
    net: Decimal
    tax: Decimal
    gross: Decimal
    rate: Decimal


def tax_from_gross(amount: MoneyLike, rate: MoneyLike) -> TaxBreakdown:
    """
    Split a VAT-inclusive amount into net and tax.

    ``gross`` is returned as given (rounded to cents); ``net + tax``
    equals it within one cent.
    """
    gross = quantize(amount)
    rate = to_decimal(rate)
    net = quantize(gross / (1 + rate))
    tax = quantize(gross - net)
    return TaxBreakdown(net=net, tax=tax, gross=gross, rate=rate)


def tax_from_net(amount: MoneyLike, rate: MoneyLike) -> TaxBreakdown:
    """Add VAT on top of a net amount."""
    net = quantize(amount)
    rate = to_decimal(rate)
    tax = quantize(net * rate)
    return TaxBreakdown(net=net, tax=tax, gross=net + tax, rate=rate)


def apply_order_totals(
    order: Order,
    rate: MoneyLike,
    now: Optional[datetime] = None,
    usage_recorded: bool = False,
) -> Order:
    """
    Recompute subtotal, tax, discount and total on an order in place.

    Steps:
        1. Recompute every line total from its snapshot price
        2. Split the gross item amount into net subtotal and VAT
        3. Discount: an attached coupon is re-evaluated against
           items + delivery fee and overrides any manual discount;
           otherwise a manual discount is clamped to that amount
        4. total = max(0, items + fee - discount)

    Calling it again on an unchanged order gives identical values.

    Args:
        order: Order whose items, fee and coupon are already set
        rate: VAT rate
        now: Instant used for coupon validity (defaults to now)
        usage_recorded: The order already counted as one coupon use
            (re-pricing a stored order)

    Returns:
        Order: The same order, for chaining
    """
    items_gross = ZERO
    for item in order.items:
        items_gross += item.recalculate_total()
    items_gross = quantize(items_gross)

    breakdown = tax_from_gross(items_gross, rate)
    order.subtotal = breakdown.net
    order.tax_amount = breakdown.tax

    delivery_fee = to_money(order.delivery_fee)
    order.delivery_fee = delivery_fee
    amount_before_discount = items_gross + delivery_fee

    if order.coupon is not None:
        discount = coupons.calculate_discount(
            order.coupon, amount_before_discount, now, usage_recorded=usage_recorded
        )
    else:
        discount = min(max(to_money(order.discount_amount), ZERO), amount_before_discount)
    order.discount_amount = discount

    order.total = max(quantize(amount_before_discount - discount), ZERO)

    logger.debug(
        f"Totals for {order.no}: items={items_gross} fee={delivery_fee} "
        f"discount={discount} total={order.total}"
    )
    return order
