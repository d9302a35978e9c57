"""
In-Memory Cart Provider

Keeps carts in a process-local dict. Used in development mode and in
tests; carts vanish on restart.
"""

import logging
from typing import Optional

from order_engine.services.cart.base import BaseCartProvider, CartLine, CartSnapshot

logger = logging.getLogger(__name__)

_CARTS: dict[str, list[CartLine]] = {}


class InMemoryCartProvider(BaseCartProvider):

    def __init__(self, session_id: str, store: Optional[dict[str, list[CartLine]]] = None):
        self.session_id = session_id
        self._store = _CARTS if store is None else store

    @property
    def provider_name(self) -> str:
        return "memory"

    async def get_cart(self) -> CartSnapshot:
        return CartSnapshot(items=list(self._store.get(self.session_id, [])))

    async def replace(self, lines: list[CartLine]) -> CartSnapshot:
        self._store[self.session_id] = list(lines)
        logger.debug(f"Memory cart {self.session_id}: {len(lines)} line(s)")
        return await self.get_cart()

    async def clear(self) -> None:
        self._store.pop(self.session_id, None)
        logger.debug(f"Memory cart {self.session_id} cleared")
