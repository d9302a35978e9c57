"""
Redis Cart Provider

Production cart storage. A cart is one JSON document at
``cart:{session_id}`` with a sliding expiry:

    {"items": [{"id": 12, "name": "Bouillabaisse", "price": "24.50", "quantity": 2}]}

Requirements:
    - REDIS_URL must point at a reachable Redis server
"""

import json
import logging
from functools import lru_cache
from typing import Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from order_engine.core.config import get_settings
from order_engine.services.cart.base import BaseCartProvider, CartLine, CartSnapshot

logger = logging.getLogger(__name__)

KEY_PREFIX = "cart:"


@lru_cache()
def get_redis_client() -> aioredis.Redis:
    """Shared client; its connection pool serves every cart session."""
    return aioredis.from_url(get_settings().redis_url, decode_responses=True)


async def close_redis_client() -> None:
    """Close the shared client's connections, if it was ever created."""
    if get_redis_client.cache_info().currsize:
        await get_redis_client().aclose()
        get_redis_client.cache_clear()


class RedisCartProvider(BaseCartProvider):

    def __init__(
        self,
        session_id: str,
        client: Optional[aioredis.Redis] = None,
        ttl_seconds: Optional[int] = None,
    ):
        settings = get_settings()
        self.session_id = session_id
        self._client = client or get_redis_client()
        self._ttl = ttl_seconds or settings.cart_ttl_seconds

    @property
    def provider_name(self) -> str:
        return "redis"

    @property
    def key(self) -> str:
        return f"{KEY_PREFIX}{self.session_id}"

    async def get_cart(self) -> CartSnapshot:
        raw = await self._client.get(self.key)
        if not raw:
            return CartSnapshot()
        try:
            items = list(json.loads(raw).get("items", []))
        except (ValueError, AttributeError, TypeError) as e:
            logger.error(f"Corrupted cart {self.key}: {e}")
            return CartSnapshot()

        lines = []
        for item in items:
            try:
                lines.append(CartLine.from_dict(item))
            except ValueError as e:
                logger.warning(f"Skipping line in cart {self.key}: {e}")
        return CartSnapshot(items=lines)

    async def replace(self, lines: list[CartLine]) -> CartSnapshot:
        payload = json.dumps({"items": [line.to_dict() for line in lines]})
        await self._client.set(self.key, payload, ex=self._ttl)
        return CartSnapshot(items=list(lines))

    async def clear(self) -> None:
        await self._client.delete(self.key)
        logger.debug(f"Redis cart {self.key} cleared")

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis: Health check failed - {e}")
            return False
