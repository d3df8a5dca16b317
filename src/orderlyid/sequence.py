"""
Per-millisecond sequence counter

Bounds how many identifiers one generator can issue inside a single
millisecond. The counter never wraps: once 4095 is reached it refuses until
the timestamp moves forward, so two identifiers from the same millisecond
can never share a sequence number.
"""

from orderlyid.errors import ClockRegression, SequenceExhausted

SEQUENCE_BITS = 12
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1


class SequenceCounter:
    """
    State machine over (last_timestamp, counter)

    Assumes single-threaded access. Share one instance between threads only
    behind a lock, as OrderlyIdGenerator does.
    """

    def __init__(self) -> None:
        self._last_timestamp = -1
        self._counter = 0

    @property
    def last_timestamp(self) -> int:
        """Timestamp of the last issued sequence (-1 before first use)"""
        return self._last_timestamp

    @property
    def counter(self) -> int:
        return self._counter

    def advance(self, timestamp: int) -> int:
        """
        Issue the next sequence number for a timestamp

        Args:
            timestamp: Milliseconds since the epoch for this generation

        Returns:
            Sequence number in 0..4095

        Raises:
            ClockRegression: If timestamp is older than the last one issued
            SequenceExhausted: If 4096 numbers were already issued for timestamp
        """
        if timestamp > self._last_timestamp:
            self._last_timestamp = timestamp
            self._counter = 0
            return 0

        if timestamp < self._last_timestamp:
            raise ClockRegression(observed=timestamp, last=self._last_timestamp)

        if self._counter >= MAX_SEQUENCE:
            # State untouched: the next call for this timestamp fails the same way
            raise SequenceExhausted(timestamp)

        self._counter += 1
        return self._counter
