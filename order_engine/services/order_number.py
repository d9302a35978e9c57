"""
Order number generation.

Format: ORD-{YYYYMMDD}-{4 digits}, e.g. ORD-20251021-0427. The date
comes from the injected clock and the suffix from the injected random
source. A candidate already taken is redrawn up to ``max_attempts``
times; the unique index on orders.no backs this up under races.
"""

import logging
import re
from typing import Awaitable, Callable, Optional

from order_engine.core.clock import Clock, RandomSource, SystemClock, SystemRandom
from order_engine.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

ORDER_NUMBER_PATTERN = re.compile(r"^ORD-\d{8}-\d{4}$")


class OrderNumberGenerator:

    def __init__(
        self,
        clock: Optional[Clock] = None,
        random_source: Optional[RandomSource] = None,
        max_attempts: int = 10,
    ):
        self.clock = clock or SystemClock()
        self.random_source = random_source or SystemRandom()
        self.max_attempts = max_attempts

    def candidate(self) -> str:
        date = self.clock.now().strftime("%Y%m%d")
        suffix = self.random_source.randint(1, 9999)
        return f"ORD-{date}-{suffix:04d}"

    async def generate(self, exists: Callable[[str], Awaitable[bool]]) -> str:
        """
        Draw a number not yet used according to ``exists``.

        Raises:
            PersistenceError: If every attempt collided
        """
        for attempt in range(1, self.max_attempts + 1):
            number = self.candidate()
            if not await exists(number):
                return number
            logger.warning(f"Order number {number} already taken (attempt {attempt})")

        raise PersistenceError(
            "Impossible de générer un numéro de commande unique, veuillez réessayer"
        )
