"""
Repositories

Async SQLAlchemy data access for orders, coupons and idempotency keys.
Repositories never commit: the caller owns the transaction, so the
order, its items, the coupon usage and the idempotency record land in
one atomic unit.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from order_engine.models import Coupon, IdempotencyRecord, Order

logger = logging.getLogger(__name__)


class OrderRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(self, order_id: int) -> Optional[Order]:
        return await self.session.get(Order, order_id)

    async def find_by_number(self, number: str) -> Optional[Order]:
        result = await self.session.execute(select(Order).where(Order.no == number))
        return result.scalar_one_or_none()

    async def number_exists(self, number: str) -> bool:
        result = await self.session.execute(
            select(func.count(Order.id)).where(Order.no == number)
        )
        return (result.scalar() or 0) > 0

    async def add(self, order: Order) -> Order:
        """Stage the order (and its items) and flush to get an id."""
        self.session.add(order)
        await self.session.flush()
        return order

    async def list_all(self) -> list[Order]:
        result = await self.session.execute(select(Order).order_by(Order.id))
        return list(result.scalars().unique().all())


class CouponRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(self, coupon_id: int) -> Optional[Coupon]:
        return await self.session.get(Coupon, coupon_id)

    async def find_by_code(self, code: str) -> Optional[Coupon]:
        result = await self.session.execute(select(Coupon).where(Coupon.code == code))
        return result.scalar_one_or_none()

    async def list_active(self) -> list[Coupon]:
        result = await self.session.execute(
            select(Coupon)
            .where(Coupon.is_active.is_(True))
            .order_by(Coupon.created_at.desc(), Coupon.id.desc())
        )
        return list(result.scalars().all())

    async def try_increment_usage(self, coupon_id: int) -> bool:
        """
        Count one use, only if the coupon still has uses left.

        Single conditional UPDATE: two concurrent checkouts cannot both
        take the last use, whatever they saw when they validated.

        Returns:
            bool: False when the coupon is inactive or exhausted
        """
        result = await self.session.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                Coupon.is_active.is_(True),
                (Coupon.usage_limit.is_(None)) | (Coupon.usage_count < Coupon.usage_limit),
            )
            .values(usage_count=Coupon.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        incremented = result.rowcount == 1
        logger.debug(f"Coupon #{coupon_id} usage increment: {'ok' if incremented else 'refused'}")
        return incremented

    async def refresh_usage(self, coupon: Coupon) -> Coupon:
        """Reload usage_count after try_increment_usage (the ORM copy is stale)."""
        await self.session.refresh(coupon, attribute_names=["usage_count"])
        return coupon


class IdempotencyRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_active(self, key: str, now: datetime) -> Optional[IdempotencyRecord]:
        result = await self.session.execute(
            select(IdempotencyRecord).where(
                IdempotencyRecord.key == key,
                IdempotencyRecord.expires_at > now,
            )
        )
        return result.scalar_one_or_none()

    async def delete_expired(self, key: str, now: datetime) -> None:
        await self.session.execute(
            delete(IdempotencyRecord).where(
                IdempotencyRecord.key == key,
                IdempotencyRecord.expires_at <= now,
            )
        )

    async def add(self, record: IdempotencyRecord) -> IdempotencyRecord:
        self.session.add(record)
        await self.session.flush()
        return record
