"""
Order Factory

Turns the shopper's cart into a stored order. This is the only place
that writes orders: every collaborator (cart, address validator,
settings, clock, random source) is passed in, so the whole pipeline
runs unchanged against mocks in tests.

Pipeline (create_order):
    0. Idempotency-Key already seen -> return that order, nothing else
    1. Cart snapshot (empty -> EmptyCartError)
    2. Delivery: address required and within range, fee from the request
       or the settings. Pickup: no address, no fee
    3. Contact phone normalized
    4. Unique order number
    5. One OrderItem per cart line (name and price frozen)
    6. Optional coupon, checked against items + fee
    7. Totals from the pricing engine
    8. One transaction: order + items, coupon usage, idempotency record
    9. Cart cleared

Any failure before step 8 leaves nothing behind. Step 8 is all or
nothing.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from order_engine.core.clock import Clock, RandomSource, SystemClock, SystemRandom
from order_engine.core.config import RestaurantSettings, get_restaurant_settings, get_settings
from order_engine.core.exceptions import (
    CouponInvalidError,
    EmptyCartError,
    InvalidAddressError,
    InvalidStatusTransitionError,
    MissingAddressError,
    OrderEngineError,
    OrderNotFoundError,
    PersistenceError,
)
from order_engine.models import DeliveryMode, Order, OrderItem, OrderStatus
from order_engine.schemas import OrderCreate
from order_engine.services import coupons
from order_engine.services.cart.base import BaseCartProvider
from order_engine.services.geo.base import BaseAddressValidator
from order_engine.services.idempotency import MAX_KEY_LENGTH, IdempotencyGuard
from order_engine.services.money import ZERO, quantize
from order_engine.services.order_number import OrderNumberGenerator
from order_engine.services.phone import normalize_phone
from order_engine.services.pricing import apply_order_totals
from order_engine.services.repositories import (
    CouponRepository,
    IdempotencyRepository,
    OrderRepository,
)

logger = logging.getLogger(__name__)


# Terminal statuses have no outgoing edge
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new == current or new in ALLOWED_TRANSITIONS[current]


class OrderFactory:
    """
    Creates, reads and moves orders through their statuses.

    One instance per request: it holds the request's database session
    and cart. Without a cart (no cart session) every checkout is empty.

    Example:
        >>> factory = OrderFactory(session, cart, get_address_validator())
        >>> order = await factory.create_order(request, idempotency_key="abc-123")
        >>> order.no
        'ORD-20251021-0427'
    """

    def __init__(
        self,
        session: AsyncSession,
        cart_provider: Optional[BaseCartProvider],
        address_validator: BaseAddressValidator,
        settings_provider: Optional[RestaurantSettings] = None,
        clock: Optional[Clock] = None,
        random_source: Optional[RandomSource] = None,
        idempotency_ttl_seconds: Optional[int] = None,
        order_number_attempts: Optional[int] = None,
    ):
        settings = get_settings()
        self.session = session
        self.cart_provider = cart_provider
        self.address_validator = address_validator
        self.settings_provider = settings_provider or get_restaurant_settings()
        self.clock = clock or SystemClock()
        # Set by create_order: the returned order was stored by an earlier request
        self.replayed = False

        self.orders = OrderRepository(session)
        self.coupons = CouponRepository(session)
        self.idempotency = IdempotencyGuard(
            IdempotencyRepository(session),
            ttl_seconds=idempotency_ttl_seconds or settings.idempotency_ttl_seconds,
            clock=self.clock,
        )
        self.numbers = OrderNumberGenerator(
            clock=self.clock,
            random_source=random_source or SystemRandom(),
            max_attempts=order_number_attempts or settings.order_number_attempts,
        )

    # =========================================================================
    # CREATION
    # =========================================================================

    async def find_replay(self, idempotency_key: Optional[str]) -> Optional[Order]:
        """Order already created under this key, if the key is still live."""
        if not idempotency_key:
            return None
        order_id = await self.idempotency.lookup(idempotency_key)
        if order_id is None:
            return None
        return await self.orders.find(order_id)

    async def create_order(self, request: OrderCreate, idempotency_key: Optional[str] = None) -> Order:
        """
        Run the checkout pipeline for the current cart.

        Args:
            request: Delivery, contact, payment and discount data
            idempotency_key: Client-chosen key deduplicating retries

        Returns:
            Order: The stored order, or the one this key already produced
            (``self.replayed`` is then True)

        Raises:
            EmptyCartError: Cart has no items
            MissingAddressError: Delivery without an address
            InvalidAddressError: Address not found or out of range
            InvalidPhoneError: Phone matches no accepted format
            CouponInvalidError: Coupon unknown, not applicable, or used up
            PersistenceError: Storage failed; nothing was written
        """
        if idempotency_key is not None and len(idempotency_key) > MAX_KEY_LENGTH:
            raise OrderEngineError(f"Idempotency-Key trop long (maximum {MAX_KEY_LENGTH} caractères)")

        self.replayed = False
        replay = await self.find_replay(idempotency_key)
        if replay is not None:
            self.replayed = True
            return replay

        now = self.clock.now()

        if self.cart_provider is None:
            raise EmptyCartError()
        cart = await self.cart_provider.get_cart()
        if cart.is_empty:
            raise EmptyCartError()

        delivery_address, delivery_zip, delivery_instructions, delivery_fee = await self._resolve_delivery(request)
        phone = normalize_phone(request.client_phone)
        number = await self.numbers.generate(self.orders.number_exists)

        order = Order(
            no=number,
            status=OrderStatus.PENDING,
            delivery_mode=request.delivery_mode,
            delivery_address=delivery_address,
            delivery_zip=delivery_zip,
            delivery_instructions=delivery_instructions,
            delivery_fee=delivery_fee,
            payment_mode=request.payment_mode,
            client_first_name=request.client_first_name.strip(),
            client_last_name=request.client_last_name.strip(),
            client_phone=phone,
            client_email=request.client_email,
            created_at=now,
            updated_at=None,
            items=[
                OrderItem(
                    product_id=line.id,
                    product_name=line.name,
                    unit_price=quantize(line.price),
                    quantity=line.quantity,
                    total=line.line_total,
                )
                for line in cart.items
            ],
        )

        if request.coupon_id is not None:
            coupon = await self.coupons.find(request.coupon_id)
            coupons.ensure_applicable(coupon, cart.total + delivery_fee, now)
            order.coupon = coupon
            order.coupon_id = coupon.id
        else:
            order.discount_amount = request.discount_amount or ZERO

        apply_order_totals(order, self.settings_provider.get_vat_rate(), now)

        stored = await self._persist(order, idempotency_key)
        if stored is not order:
            # Concurrent request with the same key won
            self.replayed = True
            return stored

        try:
            await self.cart_provider.clear()
        except Exception as e:
            logger.error(f"Order {order.no} stored but cart {self.cart_provider.provider_name} not cleared: {e}")

        logger.info(
            f"Order {order.no} created: {len(order.items)} item(s), "
            f"{order.delivery_mode.value}, total {order.total}€"
        )
        return order

    async def _resolve_delivery(self, request: OrderCreate) -> tuple[Optional[str], Optional[str], Optional[str], Decimal]:
        """Address, zip, instructions and fee to store for the request's delivery mode."""
        if request.delivery_mode == DeliveryMode.PICKUP:
            return None, None, None, ZERO

        if not request.delivery_address:
            raise MissingAddressError()

        result = await self.address_validator.validate_address_for_delivery(
            request.delivery_address, request.delivery_zip
        )
        if not result.valid:
            logger.info(f"Address rejected ({result.error}, distance={result.distance})")
            raise InvalidAddressError(result.error, result.distance)

        if request.delivery_fee is not None:
            fee = quantize(request.delivery_fee)
        else:
            fee = quantize(self.settings_provider.get_delivery_fee())
        return request.delivery_address, request.delivery_zip, request.delivery_instructions, fee

    async def _persist(self, order: Order, idempotency_key: Optional[str]) -> Order:
        """
        Write order, coupon usage and idempotency record in one commit.

        Returns the order that owns ``idempotency_key`` when another
        request stored it first; ``order`` itself otherwise.
        """
        number = order.no
        try:
            await self.orders.add(order)

            if order.coupon is not None:
                if not await self.coupons.try_increment_usage(order.coupon.id):
                    logger.info(f"Coupon {order.coupon.code} used up before order {number} committed")
                    await self.session.rollback()
                    raise CouponInvalidError(coupons.MSG_EXHAUSTED)
                await self.coupons.refresh_usage(order.coupon)

            if idempotency_key:
                try:
                    await self.idempotency.remember(idempotency_key, order.id)
                except IntegrityError:
                    await self.session.rollback()
                    winner = await self.find_replay(idempotency_key)
                    if winner is None:
                        raise PersistenceError()
                    logger.info(f"Idempotency key {idempotency_key!r} taken concurrently by order {winner.no}")
                    return winner

            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to store order {number}: {e}")
            raise PersistenceError() from e

        return order

    # =========================================================================
    # LOOKUP & STATUS
    # =========================================================================

    async def get_order(self, order_id: int) -> Optional[Order]:
        return await self.orders.find(order_id)

    async def get_order_by_number(self, number: str) -> Optional[Order]:
        return await self.orders.find_by_number(number)

    async def update_order_status(self, order_id: int, new_status: OrderStatus) -> Order:
        """
        Move an order to ``new_status``.

        Setting the status it already has changes nothing.

        Raises:
            OrderNotFoundError: No such order
            InvalidStatusTransitionError: Edge not in ALLOWED_TRANSITIONS
            PersistenceError: Storage failed
        """
        order = await self.orders.find(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        current = order.status
        number = order.no
        if new_status == current:
            return order
        if not can_transition(current, new_status):
            raise InvalidStatusTransitionError(
                f"Impossible de passer la commande {number} de {current.value} à {new_status.value}"
            )

        order.status = new_status
        order.updated_at = self.clock.now()
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to update status of order {number}: {e}")
            raise PersistenceError() from e

        logger.info(f"Order {number}: {current.value} -> {new_status.value}")
        return order

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def recalculate_totals(self, order: Order) -> Order:
        """
        Re-apply pricing to a stored order, as of its creation date.

        The order's own coupon use is already counted, so it does not
        count against the coupon's limit here. The caller commits.
        """
        apply_order_totals(
            order,
            self.settings_provider.get_vat_rate(),
            now=order.created_at,
            usage_recorded=order.coupon_id is not None,
        )
        return order
