"""
Coupon Engine

Eligibility and discount rules for coupons, evaluated fresh on every
call - there is no cached "valid" flag. Rules take the instant to
evaluate at, so the clock stays with the caller.

State checks, each building on the previous one:
    is_valid        active and inside the optional validity window
    can_be_used     valid and usage limit not reached
    can_be_applied  usable and order amount reaches the minimum

CouponService wraps the rules with repository lookups for the coupon
endpoints (validate a code against a cart amount, list active coupons).

Stored usage is only counted by CouponRepository.try_increment_usage,
atomically inside the transaction that stores the order.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from order_engine.core.clock import Clock, SystemClock
from order_engine.core.exceptions import CouponInvalidError, format_euros
from order_engine.models import Coupon, DiscountType
from order_engine.services.money import MoneyLike, ZERO, quantize, to_decimal

logger = logging.getLogger(__name__)

MSG_NOT_FOUND = "Code promo invalide"
MSG_INACTIVE = "Ce code promo n'est plus actif"
MSG_NOT_STARTED = "Ce code promo n'est pas encore valide"
MSG_EXPIRED = "Ce code promo a expiré"
MSG_EXHAUSTED = "Ce code promo n'est plus disponible"
MSG_MINIMUM = "Montant minimum de commande non atteint (minimum: {minimum})"


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def is_valid(coupon: Coupon, now: Optional[datetime] = None) -> bool:
    if not coupon.is_active:
        return False
    now = _now(now)
    if coupon.valid_from is not None and now < coupon.valid_from:
        return False
    if coupon.valid_until is not None and now > coupon.valid_until:
        return False
    return True


def can_be_used(
    coupon: Coupon,
    now: Optional[datetime] = None,
    usage_recorded: bool = False,
) -> bool:
    """
    ``usage_recorded`` is for re-pricing an order that already consumed
    one use: that use does not count against the limit.
    """
    if not is_valid(coupon, now):
        return False
    used = (coupon.usage_count or 0) - (1 if usage_recorded else 0)
    if coupon.usage_limit is not None and used >= coupon.usage_limit:
        return False
    return True


def can_be_applied(
    coupon: Coupon,
    amount: MoneyLike,
    now: Optional[datetime] = None,
    usage_recorded: bool = False,
) -> bool:
    if not can_be_used(coupon, now, usage_recorded):
        return False
    if coupon.min_order_amount is not None and to_decimal(amount) < coupon.min_order_amount:
        return False
    return True


def calculate_discount(
    coupon: Coupon,
    amount: MoneyLike,
    now: Optional[datetime] = None,
    usage_recorded: bool = False,
) -> Decimal:
    """
    Discount granted on ``amount``, rounded half-up to cents.

    Zero when the coupon cannot be applied. Never above
    ``max_discount`` (when set) nor above ``amount``.
    """
    amount = to_decimal(amount)
    if not can_be_applied(coupon, amount, now, usage_recorded):
        return ZERO

    value = to_decimal(coupon.discount_value)
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = amount * value / 100
    else:
        discount = value

    if coupon.max_discount is not None:
        discount = min(discount, to_decimal(coupon.max_discount))
    discount = min(discount, amount)

    return max(quantize(discount), ZERO)


def increment_usage(coupon: Coupon) -> Coupon:
    """
    Count one use on the in-memory object.

    For coupons that are not attached to a session. Persisted coupons
    go through CouponRepository.try_increment_usage instead, which
    refuses the use when the limit is already reached.
    """
    coupon.usage_count = (coupon.usage_count or 0) + 1
    return coupon


def rejection_reason(coupon: Coupon, amount: MoneyLike, now: Optional[datetime] = None) -> Optional[str]:
    """
    Customer-facing reason the coupon cannot be applied, or None.

    Checks run in the same order as the rules so the message names the
    first failing one.
    """
    now = _now(now)
    if not coupon.is_active:
        return MSG_INACTIVE
    if coupon.valid_from is not None and now < coupon.valid_from:
        return MSG_NOT_STARTED
    if coupon.valid_until is not None and now > coupon.valid_until:
        return MSG_EXPIRED
    if not can_be_used(coupon, now):
        return MSG_EXHAUSTED
    if not can_be_applied(coupon, amount, now):
        return MSG_MINIMUM.format(minimum=format_euros(coupon.min_order_amount))
    return None


def ensure_applicable(coupon: Optional[Coupon], amount: MoneyLike, now: Optional[datetime] = None) -> Coupon:
    """
    Return the coupon if it applies to ``amount``.

    Raises:
        CouponInvalidError: With the reason-specific message
    """
    if coupon is None:
        raise CouponInvalidError(MSG_NOT_FOUND)
    reason = rejection_reason(coupon, amount, now)
    if reason is not None:
        logger.info(f"Coupon {coupon.code} rejected: {reason}")
        raise CouponInvalidError(reason)
    return coupon


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


@dataclass
class CouponQuote:
    """Result of validating a code against an order amount."""
    coupon_id: int
    code: str
    discount_type: str
    discount_value: Decimal
    discount_amount: Decimal
    new_total: Decimal


class CouponService:
    """
    Coupon lookups for the API.

    Example:
        >>> service = CouponService(CouponRepository(session))
        >>> quote = await service.validate_code("bienvenue10", Decimal("35.00"))
        >>> quote.discount_amount
        Decimal('3.50')
    """

    def __init__(self, repository, clock: Optional[Clock] = None):
        self.repository = repository
        self.clock = clock or SystemClock()

    async def validate_code(self, code: str, order_amount: MoneyLike) -> CouponQuote:
        """
        Check a code against an order amount and quote the discount.

        Raises:
            CouponInvalidError: Unknown code or coupon not applicable
        """
        now = self.clock.now()
        amount = quantize(order_amount)

        coupon = await self.repository.find_by_code(normalize_code(code))
        ensure_applicable(coupon, amount, now)

        discount = calculate_discount(coupon, amount, now)
        return CouponQuote(
            coupon_id=coupon.id,
            code=coupon.code,
            discount_type=coupon.discount_type.value,
            discount_value=quantize(coupon.discount_value),
            discount_amount=discount,
            new_total=quantize(amount - discount),
        )

    async def list_active(self) -> list[dict]:
        """Active coupons with their live eligibility flags."""
        now = self.clock.now()
        coupons = await self.repository.list_active()
        return [
            {
                "id": c.id,
                "code": c.code,
                "description": c.description,
                "discount_type": c.discount_type.value,
                "discount_value": str(c.discount_value),
                "min_order_amount": str(c.min_order_amount) if c.min_order_amount is not None else None,
                "max_discount": str(c.max_discount) if c.max_discount is not None else None,
                "usage_limit": c.usage_limit,
                "usage_count": c.usage_count,
                "valid_from": c.valid_from.isoformat() if c.valid_from else None,
                "valid_until": c.valid_until.isoformat() if c.valid_until else None,
                "is_valid": is_valid(c, now),
                "can_be_used": can_be_used(c, now),
            }
            for c in coupons
        ]
