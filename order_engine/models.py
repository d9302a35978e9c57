"""
SQLAlchemy Database Models

The order aggregate (Order + owned OrderItems), the Coupon entity it
references, and the idempotency records that deduplicate retried
checkouts.

Money columns are NUMERIC(10, 2) and map to decimal.Decimal.

Author: Khalil Bannouri
Version: 1.0.0
"""

from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Text,
    Enum,
    Boolean,
    ForeignKey,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from order_engine.database import Base
import enum


def _money_column(nullable: bool = False, default: str | None = "0.00") -> Column:
    return Column(
        Numeric(10, 2, asdecimal=True),
        nullable=nullable,
        default=Decimal(default) if default is not None else None,
    )


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DeliveryMode(str, enum.Enum):
    """Delivery mode - home delivery or pickup at the restaurant."""
    DELIVERY = "delivery"
    PICKUP = "pickup"


class PaymentMode(str, enum.Enum):
    """How the customer intends to pay (capture happens elsewhere)."""
    CARD = "card"
    CASH = "cash"
    VOUCHER = "voucher"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Order(Base):
    """
    Main Order table - the aggregate root.

    Owns its items (deleted with it) and references an optional coupon
    (kept when the order goes, nulled when the coupon goes).
    """
    __tablename__ = "orders"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Human-readable tracking number: ORD-YYYYMMDD-XXXX
    no = Column(String(20), nullable=False, unique=True, index=True)

    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    # =========================================================================
    # DELIVERY
    # =========================================================================
    delivery_mode = Column(
        Enum(DeliveryMode),
        default=DeliveryMode.DELIVERY,
        nullable=False,
    )
    delivery_address = Column(String(255), nullable=True)
    delivery_zip = Column(String(10), nullable=True)
    delivery_instructions = Column(Text, nullable=True)
    delivery_fee = _money_column()

    # =========================================================================
    # PAYMENT
    # =========================================================================
    payment_mode = Column(
        Enum(PaymentMode),
        default=PaymentMode.CARD,
        nullable=False,
    )

    # =========================================================================
    # PRICING (derived by the pricing engine, never set by hand)
    # =========================================================================
    subtotal = _money_column()
    tax_amount = _money_column()
    discount_amount = _money_column()
    total = _money_column()

    coupon_id = Column(
        Integer,
        ForeignKey("coupons.id", ondelete="SET NULL"),
        nullable=True,
    )

    # =========================================================================
    # CLIENT
    # =========================================================================
    client_first_name = Column(String(100), nullable=False)
    client_last_name = Column(String(100), nullable=False)
    client_phone = Column(String(20), nullable=False, index=True)
    client_email = Column(String(255), nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )
    coupon = relationship("Coupon", lazy="joined")

    @property
    def client_name(self) -> str:
        return f"{self.client_first_name} {self.client_last_name}".strip()

    def __repr__(self):
        return f"<Order {self.no} - {self.delivery_mode.value} - {self.client_name} - {self.status.value}>"


class OrderItem(Base):
    """
    One cart line frozen into an order.

    Name and unit price are copied from the cart at checkout, so the
    order keeps its historical prices whatever the menu does later.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(Integer, nullable=False)
    product_name = Column(String(255), nullable=False)
    unit_price = _money_column(default=None)
    quantity = Column(Integer, nullable=False)
    total = _money_column(default=None)

    order = relationship("Order", back_populates="items")

    def recalculate_total(self) -> Decimal:
        """Recompute the line total from the snapshot price."""
        self.total = (Decimal(self.unit_price) * self.quantity).quantize(Decimal("0.01"))
        return self.total

    def __repr__(self):
        return f"<OrderItem {self.product_name} x{self.quantity} @ {self.unit_price}>"


class Coupon(Base):
    """
    Discount rule, managed by staff and referenced by orders.

    usage_count only ever moves through the conditional increment in
    CouponRepository.try_increment_usage.
    """
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    discount_type = Column(Enum(DiscountType), nullable=False)
    discount_value = _money_column(default=None)
    min_order_amount = _money_column(nullable=True, default=None)
    max_discount = _money_column(nullable=True, default=None)
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    valid_from = Column(DateTime, nullable=True)
    valid_until = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    def __repr__(self):
        return f"<Coupon {self.code} - {self.discount_type.value} {self.discount_value}>"


class IdempotencyRecord(Base):
    """
    Maps a client Idempotency-Key to the order it produced.

    Written in the same transaction as the order, so a key is never
    recorded for an order that did not commit.
    """
    __tablename__ = "idempotency_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), nullable=False, unique=True, index=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<IdempotencyRecord {self.key} -> order #{self.order_id}>"
