import pytest

from order_engine.core.exceptions import PersistenceError
from order_engine.services.order_number import ORDER_NUMBER_PATTERN, OrderNumberGenerator

from conftest import SequenceRandom


def test_candidate_format(clock):
    generator = OrderNumberGenerator(clock=clock, random_source=SequenceRandom(42))
    number = generator.candidate()

    assert number == "ORD-20251021-0042"
    assert ORDER_NUMBER_PATTERN.match(number)


def test_consecutive_candidates_differ(clock):
    generator = OrderNumberGenerator(clock=clock, random_source=SequenceRandom(1, 9999))
    first, second = generator.candidate(), generator.candidate()

    assert first != second
    assert second == "ORD-20251021-9999"


def test_system_random_stays_in_format():
    generator = OrderNumberGenerator()
    for _ in range(50):
        assert ORDER_NUMBER_PATTERN.match(generator.candidate())


async def test_generate_skips_taken_numbers(clock):
    taken = {"ORD-20251021-0042", "ORD-20251021-0043"}
    generator = OrderNumberGenerator(clock=clock, random_source=SequenceRandom(42, 42, 43, 44))

    async def exists(number: str) -> bool:
        return number in taken

    assert await generator.generate(exists) == "ORD-20251021-0044"


async def test_generate_gives_up_after_max_attempts(clock):
    generator = OrderNumberGenerator(clock=clock, random_source=SequenceRandom(7), max_attempts=3)

    async def exists(number: str) -> bool:
        return True

    with pytest.raises(PersistenceError):
        await generator.generate(exists)
