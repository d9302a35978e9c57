"""
Idempotency Guard

Recognizes a retried checkout by its Idempotency-Key and hands back
the order the first attempt created, instead of creating a second one.

A key is remembered in the same transaction as the order it maps to,
and keeps working for ``ttl_seconds``. After that the key may be
reused for a new submission.

Flow:
    order_id = await guard.lookup(key)           # before any work
    ...
    await guard.remember(key, order.id)          # inside the order transaction

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import timedelta
from typing import Optional

from order_engine.core.clock import Clock, SystemClock
from order_engine.models import IdempotencyRecord
from order_engine.services.repositories import IdempotencyRepository

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 255


class IdempotencyGuard:

    def __init__(
        self,
        repository: IdempotencyRepository,
        ttl_seconds: int,
        clock: Optional[Clock] = None,
    ):
        self.repository = repository
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock or SystemClock()

    async def lookup(self, key: str) -> Optional[int]:
        """Order id recorded for this key, if still within its window."""
        record = await self.repository.find_active(key, self.clock.now())
        if record is None:
            return None
        logger.info(f"Idempotency key {key!r} replayed -> order #{record.order_id}")
        return record.order_id

    async def remember(self, key: str, order_id: int) -> IdempotencyRecord:
        """
        Record key -> order. Must run inside the order's transaction.

        An expired record holding the same key is dropped first; a live
        one makes the insert fail on the unique index, which the caller
        treats as a concurrent duplicate.
        """
        now = self.clock.now()
        await self.repository.delete_expired(key, now)
        return await self.repository.add(
            IdempotencyRecord(
                key=key,
                order_id=order_id,
                created_at=now,
                expires_at=now + self.ttl,
            )
        )
