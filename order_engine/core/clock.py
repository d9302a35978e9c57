"""
Clock and Randomness Sources

The order pipeline never reads the wall clock or the global random
generator directly. Everything time- or chance-dependent takes one of
these, so tests can pin both.
"""

import random
from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


class SystemClock:
    """Naive local time, matching what the database stores."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """Clock frozen at a given instant (tests, replays)."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant


class SystemRandom:
    def __init__(self):
        self._rng = random.SystemRandom()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)
