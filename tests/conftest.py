"""
Shared fixtures.

Every test gets its own in-memory SQLite database (aiosqlite), a clock
pinned to 2025-10-21 12:00 and a scripted random source, so order
numbers and coupon windows are deterministic.
"""

import os

# Before any order_engine import: settings are cached on first use
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"

import itertools
import uuid
from datetime import datetime
from decimal import Decimal

import pytest

from order_engine.core.clock import FixedClock
from order_engine.core.config import RestaurantSettings, get_settings
from order_engine.database import build_engine, build_session_maker, init_db
from order_engine.models import Coupon, DiscountType
from order_engine.services.cart import InMemoryCartProvider
from order_engine.services.geo import MockAddressValidator
from order_engine.services.order_factory import OrderFactory

NOW = datetime(2025, 10, 21, 12, 0, 0)


class SequenceRandom:
    """Random source replaying fixed values, then counting up from the last one."""

    def __init__(self, *values: int):
        last = values[-1] if values else 0
        self._values = itertools.chain(values, itertools.count(last + 1))

    def randint(self, a: int, b: int) -> int:
        return next(self._values)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def random_source() -> SequenceRandom:
    return SequenceRandom(427)


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def cart_store() -> dict:
    return {}


@pytest.fixture
def cart(cart_store) -> InMemoryCartProvider:
    return InMemoryCartProvider("test-session", store=cart_store)


@pytest.fixture
def validator() -> MockAddressValidator:
    return MockAddressValidator()


@pytest.fixture
def restaurant_settings() -> RestaurantSettings:
    return RestaurantSettings(get_settings())


@pytest.fixture
def factory(session, cart, validator, restaurant_settings, clock, random_source) -> OrderFactory:
    return OrderFactory(
        session,
        cart,
        validator,
        settings_provider=restaurant_settings,
        clock=clock,
        random_source=random_source,
    )


@pytest.fixture
def make_coupon(session):
    """Store a coupon; keyword arguments override the defaults."""

    async def _make(**overrides) -> Coupon:
        values = dict(
            code=f"TEST{uuid.uuid4().hex[:6].upper()}",
            description=None,
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("10.00"),
            min_order_amount=None,
            max_discount=None,
            usage_limit=None,
            usage_count=0,
            valid_from=None,
            valid_until=None,
            is_active=True,
            created_at=NOW,
            updated_at=None,
        )
        values.update(overrides)
        coupon = Coupon(**values)
        session.add(coupon)
        await session.commit()
        return coupon

    return _make
