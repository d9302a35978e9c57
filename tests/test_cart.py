import json
from decimal import Decimal

import pytest

from order_engine.services.cart import (
    CartLine,
    InMemoryCartProvider,
    RedisCartProvider,
    close_redis_client,
    get_redis_client,
)


class StoredCart:
    """Redis stand-in holding one cart document."""

    def __init__(self, document):
        self.raw = json.dumps(document)

    async def get(self, key):
        return self.raw


async def test_replace_and_read(cart):
    snapshot = await cart.replace([
        CartLine(id=1, name="Pizza", price=Decimal("12.00"), quantity=2),
        CartLine(id=2, name="Tiramisu", price=Decimal("6.50"), quantity=1),
    ])

    assert snapshot.total == Decimal("30.50")
    assert snapshot.item_count == 3
    assert (await cart.get_cart()).to_dict()["total"] == "30.50"


async def test_clear(cart):
    await cart.replace([CartLine(id=1, name="Pizza", price=Decimal("12.00"), quantity=1)])
    await cart.clear()

    assert (await cart.get_cart()).is_empty


async def test_sessions_are_isolated(cart_store):
    mine = InMemoryCartProvider("a", store=cart_store)
    theirs = InMemoryCartProvider("b", store=cart_store)
    await mine.replace([CartLine(id=1, name="Pizza", price=Decimal("12.00"), quantity=1)])

    assert (await theirs.get_cart()).is_empty


def test_line_from_dict():
    line = CartLine.from_dict({"id": "3", "name": "Soupe", "price": 7.5, "quantity": "2"})

    assert line == CartLine(id=3, name="Soupe", price=Decimal("7.50"), quantity=2)
    assert line.line_total == Decimal("15.00")


@pytest.mark.parametrize(
    "data",
    [
        {"id": 1, "name": "Pizza", "price": "12.00", "quantity": 0},
        {"id": 1, "name": "Pizza", "price": "12.00", "quantity": -2},
        {"id": 1, "name": "Pizza", "price": "-12.00", "quantity": 1},
        {"id": 1, "name": "Pizza", "price": "NaN", "quantity": 1},
        {"id": 1, "name": "Pizza", "price": "douze", "quantity": 1},
        {"id": 1, "name": "Pizza", "quantity": 1},
    ],
)
def test_line_from_dict_rejects_bad_lines(data):
    with pytest.raises(ValueError):
        CartLine.from_dict(data)


async def test_redis_cart_skips_bad_lines():
    provider = RedisCartProvider("s-1", client=StoredCart({"items": [
        {"id": 1, "name": "Pizza", "price": "12.00", "quantity": 2},
        {"id": 2, "name": "Tiramisu", "price": "6.50", "quantity": 0},
        {"id": 3, "name": "Café", "price": "2.00", "quantity": -1},
    ]}))

    snapshot = await provider.get_cart()

    assert [line.name for line in snapshot.items] == ["Pizza"]
    assert snapshot.total == Decimal("24.00")


async def test_redis_cart_unreadable_document():
    provider = RedisCartProvider("s-1", client=StoredCart(["not", "a", "cart"]))

    assert (await provider.get_cart()).is_empty


async def test_redis_carts_share_one_client():
    await close_redis_client()

    first = RedisCartProvider("a")
    second = RedisCartProvider("b")

    assert first._client is second._client is get_redis_client()

    await close_redis_client()
    assert get_redis_client() is not first._client
    await close_redis_client()
