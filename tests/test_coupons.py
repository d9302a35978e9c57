from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from order_engine.core.clock import FixedClock
from order_engine.core.exceptions import CouponInvalidError
from order_engine.models import Coupon, DiscountType
from order_engine.services import coupons
from order_engine.services.coupons import CouponService
from order_engine.services.repositories import CouponRepository

NOW = datetime(2025, 10, 21, 12, 0)


def coupon(**overrides) -> Coupon:
    values = dict(
        code="BIENVENUE10",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10.00"),
        usage_count=0,
        is_active=True,
    )
    values.update(overrides)
    return Coupon(**values)


class TestRules:

    def test_active_coupon_without_window_is_valid(self):
        assert coupons.is_valid(coupon(), NOW)

    def test_inactive_coupon_is_not_valid(self):
        assert not coupons.is_valid(coupon(is_active=False), NOW)

    def test_window_bounds_are_inclusive(self):
        c = coupon(valid_from=NOW, valid_until=NOW)
        assert coupons.is_valid(c, NOW)
        assert not coupons.is_valid(c, NOW + timedelta(seconds=1))
        assert not coupons.is_valid(c, NOW - timedelta(seconds=1))

    def test_usage_limit(self):
        c = coupon(usage_limit=2, usage_count=1)
        assert coupons.can_be_used(c, NOW)
        c.usage_count = 2
        assert not coupons.can_be_used(c, NOW)
        assert coupons.can_be_used(c, NOW, usage_recorded=True)

    def test_minimum_amount(self):
        c = coupon(min_order_amount=Decimal("40.00"))
        assert not coupons.can_be_applied(c, Decimal("39.99"), NOW)
        assert coupons.can_be_applied(c, Decimal("40.00"), NOW)

    def test_increment_usage(self):
        c = coupon(usage_count=None)
        coupons.increment_usage(c)
        coupons.increment_usage(c)
        assert c.usage_count == 2


class TestDiscount:

    def test_percentage(self):
        assert coupons.calculate_discount(coupon(), Decimal("35.00"), NOW) == Decimal("3.50")

    def test_percentage_rounds_half_up(self):
        c = coupon(discount_value=Decimal("15.00"))
        assert coupons.calculate_discount(c, Decimal("10.10"), NOW) == Decimal("1.52")

    def test_percentage_capped_by_max_discount(self):
        c = coupon(discount_value=Decimal("50.00"), max_discount=Decimal("20.00"))
        assert coupons.calculate_discount(c, Decimal("100.00"), NOW) == Decimal("20.00")

    def test_fixed_never_exceeds_amount(self):
        c = coupon(discount_type=DiscountType.FIXED, discount_value=Decimal("50.00"))
        assert coupons.calculate_discount(c, Decimal("30.00"), NOW) == Decimal("30.00")

    def test_not_applicable_gives_zero(self):
        c = coupon(min_order_amount=Decimal("40.00"))
        assert coupons.calculate_discount(c, Decimal("35.00"), NOW) == Decimal("0.00")


class TestRejectionReason:

    @pytest.mark.parametrize(
        "overrides, expected",
        [
            ({"is_active": False}, coupons.MSG_INACTIVE),
            ({"valid_from": NOW + timedelta(days=1)}, coupons.MSG_NOT_STARTED),
            ({"valid_until": NOW - timedelta(days=1)}, coupons.MSG_EXPIRED),
            ({"usage_limit": 5, "usage_count": 5}, coupons.MSG_EXHAUSTED),
        ],
    )
    def test_reason_names_first_failing_rule(self, overrides, expected):
        assert coupons.rejection_reason(coupon(**overrides), Decimal("35.00"), NOW) == expected

    def test_minimum_reason_shows_minimum(self):
        c = coupon(min_order_amount=Decimal("40"))
        reason = coupons.rejection_reason(c, Decimal("35.00"), NOW)
        assert reason == "Montant minimum de commande non atteint (minimum: 40.00€)"

    def test_applicable_coupon_has_no_reason(self):
        assert coupons.rejection_reason(coupon(), Decimal("35.00"), NOW) is None

    def test_ensure_applicable_raises_for_missing_coupon(self):
        with pytest.raises(CouponInvalidError) as exc:
            coupons.ensure_applicable(None, Decimal("35.00"), NOW)
        assert exc.value.message == coupons.MSG_NOT_FOUND


class TestCouponService:

    async def test_validate_code_is_case_insensitive(self, session, make_coupon):
        await make_coupon(code="BIENVENUE10")
        service = CouponService(CouponRepository(session), clock=FixedClock(NOW))

        quote = await service.validate_code("  bienvenue10 ", Decimal("35.00"))

        assert quote.code == "BIENVENUE10"
        assert quote.discount_amount == Decimal("3.50")
        assert quote.new_total == Decimal("31.50")

    async def test_validate_unknown_code(self, session):
        service = CouponService(CouponRepository(session), clock=FixedClock(NOW))

        with pytest.raises(CouponInvalidError):
            await service.validate_code("NOPE", Decimal("35.00"))

    async def test_list_active_skips_inactive(self, session, make_coupon):
        await make_coupon(code="ACTIVE")
        await make_coupon(code="OFF", is_active=False)
        await make_coupon(code="USED", usage_limit=1, usage_count=1)
        service = CouponService(CouponRepository(session), clock=FixedClock(NOW))

        listed = {c["code"]: c for c in await service.list_active()}

        assert set(listed) == {"ACTIVE", "USED"}
        assert listed["ACTIVE"]["can_be_used"] is True
        assert listed["USED"]["can_be_used"] is False


class TestConditionalIncrement:

    async def test_increment_refused_at_limit(self, session, make_coupon):
        c = await make_coupon(usage_limit=1)
        repository = CouponRepository(session)

        assert await repository.try_increment_usage(c.id) is True
        assert await repository.try_increment_usage(c.id) is False

        await repository.refresh_usage(c)
        assert c.usage_count == 1

    async def test_increment_refused_when_inactive(self, session, make_coupon):
        c = await make_coupon(is_active=False)
        assert await CouponRepository(session).try_increment_usage(c.id) is False
