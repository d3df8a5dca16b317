"""
Clock source for OrderlyID generation

Wraps a pluggable time provider and converts it to milliseconds since the
OrderlyID epoch. The clock remembers the last value it handed out so it can
report backward jumps, but it never refuses to answer: deciding what a
regression means is the generator's job.

Fun fact: NTP can legally step a clock backwards by minutes when it first
syncs. Leap second smearing is the gentle version of the same problem.
"""

import math
import time
from datetime import datetime, timezone
from typing import Protocol

from pydantic import BaseModel, Field

# 2020-01-01T00:00:00Z in Unix milliseconds
ORDERLY_EPOCH_MS = 1_577_836_800_000


class TimeProvider(Protocol):
    """Protocol for wall-clock sources - allows deterministic testing"""

    def unix_millis(self) -> int:
        """Return milliseconds since the Unix epoch"""
        ...


class RealTimeProvider:
    """Production time provider using the system clock"""

    def unix_millis(self) -> int:
        return time.time_ns() // 1_000_000


class TestTimeProvider:
    """
    Controllable time provider for deterministic tests

    Time only moves when told to. ``sleep`` advances simulated time instead
    of blocking, so it can be handed to a generator as its sleep function.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, initial_millis: int | None = None) -> None:
        """
        Initialize with optional fixed time

        Args:
            initial_millis: Starting Unix time in ms (defaults to the OrderlyID epoch)
        """
        self._current = ORDERLY_EPOCH_MS if initial_millis is None else initial_millis
        self.sleeps: list[float] = []

    def unix_millis(self) -> int:
        return self._current

    def set_millis(self, unix_millis: int) -> None:
        """Set current time to a specific Unix millisecond value"""
        self._current = unix_millis

    def set_datetime(self, dt: datetime) -> None:
        """Set current time from an aware datetime"""
        self._current = int(dt.timestamp() * 1000)

    def advance(self, millis: int = 1) -> None:
        """Move time forward"""
        self._current += millis

    def rewind(self, millis: int) -> None:
        """Move time backwards, simulating a clock step"""
        self._current -= millis

    def sleep(self, seconds: float) -> None:
        """Record the sleep and advance simulated time by at least 1 ms"""
        self.sleeps.append(seconds)
        self._current += max(1, math.ceil(seconds * 1000))


class ClockReading(BaseModel):
    """A single clock observation, with any backward movement noted"""

    millis: int = Field(..., description="Milliseconds since the OrderlyID epoch")
    previous: int | None = Field(
        default=None,
        description="Value returned by the previous read, if any",
    )
    regression_ms: int = Field(
        default=0,
        ge=0,
        description="How far the clock moved backwards since the previous read",
    )

    model_config = {"frozen": True}

    @property
    def regressed(self) -> bool:
        return self.regression_ms > 0


class ClockSource:
    """
    Millisecond clock relative to the OrderlyID epoch

    Not thread-safe on its own; the generator reads it under its lock.
    """

    def __init__(
        self,
        provider: TimeProvider | None = None,
        epoch_ms: int = ORDERLY_EPOCH_MS,
    ) -> None:
        self.provider: TimeProvider = provider or RealTimeProvider()
        self.epoch_ms = epoch_ms
        self._last_seen: int | None = None

    @property
    def last_seen(self) -> int | None:
        """Last value handed out, or None before the first read"""
        return self._last_seen

    def read(self) -> ClockReading:
        """
        Read the clock and report any backward movement

        The stored last-seen value is always updated to the new reading,
        even when it went backwards.
        """
        millis = self.provider.unix_millis() - self.epoch_ms
        previous = self._last_seen
        regression = previous - millis if previous is not None and millis < previous else 0
        self._last_seen = millis
        return ClockReading(millis=millis, previous=previous, regression_ms=regression)

    def now_millis(self) -> int:
        """Milliseconds since the OrderlyID epoch"""
        return self.read().millis


def epoch_millis_to_datetime(millis: int, epoch_ms: int = ORDERLY_EPOCH_MS) -> datetime:
    """Convert an OrderlyID timestamp field to an aware UTC datetime"""
    return datetime.fromtimestamp((millis + epoch_ms) / 1000, tz=timezone.utc)
