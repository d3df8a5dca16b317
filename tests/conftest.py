"""
Pytest configuration and shared fixtures

Every generator built here runs on a frozen TestTimeProvider and a fixed
random source, so identifiers are fully reproducible. The provider's sleep
advances simulated time, which makes the exhaustion wait deterministic too.
"""

from collections.abc import Callable

import pytest

from orderlyid.clock import ORDERLY_EPOCH_MS, ClockSource, TestTimeProvider
from orderlyid.config import GeneratorConfig
from orderlyid.generator import OrderlyIdGenerator

from tests.helpers import FIXED_RANDOM, FIXED_TIMESTAMP


@pytest.fixture
def test_time() -> TestTimeProvider:
    """Frozen clock at FIXED_TIMESTAMP past the OrderlyID epoch"""
    return TestTimeProvider(ORDERLY_EPOCH_MS + FIXED_TIMESTAMP)


@pytest.fixture
def clock(test_time: TestTimeProvider) -> ClockSource:
    return ClockSource(test_time)


@pytest.fixture
def fixed_random() -> Callable[[int], int]:
    """Random source that always returns FIXED_RANDOM"""

    def random_bits(bits: int) -> int:
        assert bits == 60
        return FIXED_RANDOM

    return random_bits


@pytest.fixture
def make_generator(
    clock: ClockSource,
    test_time: TestTimeProvider,
    fixed_random: Callable[[int], int],
) -> Callable[..., OrderlyIdGenerator]:
    """
    Factory for deterministic generators

    Keyword arguments are GeneratorConfig fields; the regression policy
    defaults to 'fail' unless given.
    """

    def factory(**config: object) -> OrderlyIdGenerator:
        config.setdefault("clock_regression_policy", "fail")
        return OrderlyIdGenerator(
            GeneratorConfig(**config),
            clock,
            random_bits=fixed_random,
            sleep=test_time.sleep,
        )

    return factory
