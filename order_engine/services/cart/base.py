"""
Cart Provider Abstract Base Class

Defines the contract the order pipeline relies on to read and clear
the shopper's cart. Cart storage itself belongs to the menu/cart side
of the site; checkout only needs a consistent snapshot and a way to
empty the cart once the order is stored.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal

from order_engine.services.money import ZERO, quantize


@dataclass(frozen=True)
class CartLine:
    """
    One product line in the cart.

    Attributes:
        id: Menu item id
        name: Product name at the time it was added
        price: Unit price including VAT
        quantity: Number of units (positive)
    """
    id: int
    name: str
    price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return quantize(self.price * self.quantity)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        """
        Build a line from stored JSON.

        Raises:
            ValueError: Missing or malformed field, quantity below 1,
                or a price that is not a non-negative amount
        """
        try:
            line = cls(
                id=int(data["id"]),
                name=str(data["name"]),
                price=quantize(data["price"]),
                quantity=int(data["quantity"]),
            )
        except (KeyError, TypeError, ArithmeticError) as e:
            raise ValueError(f"Malformed cart line: {data!r}") from e
        if line.quantity < 1:
            raise ValueError(f"Cart line {line.id} has quantity {line.quantity}")
        if not line.price.is_finite() or line.price < 0:
            raise ValueError(f"Cart line {line.id} has price {line.price}")
        return line


@dataclass(frozen=True)
class CartSnapshot:
    """Immutable view of a cart at one instant."""
    items: list[CartLine] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return quantize(sum((line.line_total for line in self.items), ZERO))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_dict(self) -> dict:
        return {
            "items": [line.to_dict() for line in self.items],
            "total": str(self.total),
            "item_count": self.item_count,
        }


class BaseCartProvider(ABC):
    """
    Abstract base class for cart storage backends.

    One instance serves one shopper (cart session).
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the backend name (e.g., "memory", "redis")."""
        pass

    @abstractmethod
    async def get_cart(self) -> CartSnapshot:
        """Return the current cart contents."""
        pass

    @abstractmethod
    async def replace(self, lines: list[CartLine]) -> CartSnapshot:
        """Overwrite the cart with ``lines``."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Empty the cart."""
        pass
