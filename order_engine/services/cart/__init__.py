"""
Cart Provider Factory

Returns the cart backend for one shopper session.
Selects in-memory or Redis storage based on ENV_MODE configuration.

Usage:
    from order_engine.services.cart import get_cart_provider

    cart = get_cart_provider(session_id)
    snapshot = await cart.get_cart()
"""

import logging

from order_engine.core.config import get_settings
from order_engine.services.cart.base import BaseCartProvider, CartLine, CartSnapshot
from order_engine.services.cart.mock import InMemoryCartProvider
from order_engine.services.cart.redis import RedisCartProvider, close_redis_client, get_redis_client

logger = logging.getLogger(__name__)


def get_cart_provider(session_id: str) -> BaseCartProvider:
    """
    Get the cart backend for ``session_id``.

    Returns:
        BaseCartProvider: InMemoryCartProvider in development,
        RedisCartProvider (sharing one Redis client) otherwise
    """
    settings = get_settings()

    if settings.is_development:
        return InMemoryCartProvider(session_id)
    return RedisCartProvider(session_id)


__all__ = [
    "get_cart_provider",
    "BaseCartProvider",
    "CartLine",
    "CartSnapshot",
    "InMemoryCartProvider",
    "RedisCartProvider",
    "get_redis_client",
    "close_redis_client",
]
