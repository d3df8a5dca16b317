"""
OrderlyID generator

Orchestrates clock, sequence counter and configuration into identifiers.
Owns the two policies the lower layers only signal:

- Sequence exhaustion: wait for the next millisecond and retry, up to a
  configured number of attempts (tenacity), then fail with SequenceExhausted.
- Clock regression: 'fail' raises ClockRegression; 'clamp' reuses the last
  issued timestamp and keeps counting within it.

Each generator owns its counter state and a lock around the read-clock /
advance-counter step, so one instance can be shared between threads. The
exhaustion wait sleeps outside the lock.
"""

import secrets
import threading
import time
from collections.abc import Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from orderlyid import codec
from orderlyid.clock import ClockSource
from orderlyid.config import GeneratorConfig
from orderlyid.errors import ClockRegression, SequenceExhausted
from orderlyid.logging import get_logger
from orderlyid.metrics import (
    clock_regressions_total,
    generate_duration_seconds,
    ids_generated_total,
    sequence_exhausted_total,
    sequence_waits_total,
    track_duration,
)
from orderlyid.models import FLAG_PRIVACY, OrderlyFields, OrderlyId
from orderlyid.sequence import SequenceCounter

logger = get_logger(__name__)

RANDOM_BITS = 60

RandomSource = Callable[[int], int]


class OrderlyIdGenerator:
    """
    Issues OrderlyIds for one tenant/shard configuration

    Identifiers from one generator are strictly increasing by binary value
    as long as the clock moves forward or stands still. Nothing is promised
    across generators or processes.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        clock: ClockSource | None = None,
        *,
        random_bits: RandomSource | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        """
        Initialize generator

        Args:
            config: Defaults and policies
            clock: Clock source (defaults to the system clock)
            random_bits: Function returning n random bits (defaults to secrets.randbits)
            sleep: Sleep function used while waiting out sequence exhaustion
        """
        self.config = config
        self.clock = clock or ClockSource()
        self._random_bits = random_bits or secrets.randbits
        self._lock = threading.Lock()
        # Bucketed and exact timestamps run on separate counters so that
        # switching the privacy flag per call is not mistaken for a regression
        self._counters = {False: SequenceCounter(), True: SequenceCounter()}
        self._retrying = Retrying(
            retry=retry_if_exception_type(SequenceExhausted),
            stop=stop_after_attempt(config.max_exhaustion_retries + 1),
            wait=wait_fixed(config.exhaustion_backoff_ms / 1000.0),
            sleep=sleep or time.sleep,
            before_sleep=self._on_exhaustion_wait,
            reraise=True,
        )

        logger.debug(
            "Generator initialized",
            tenant=config.tenant,
            shard=config.shard,
            flags=config.flags,
            policy=config.clock_regression_policy,
        )

    @property
    def counter(self) -> SequenceCounter:
        """Counter for exact (non-bucketed) timestamps"""
        return self._counters[False]

    @track_duration(generate_duration_seconds)
    def generate(
        self,
        *,
        tenant: int | None = None,
        shard: int | None = None,
        flags: int | None = None,
        type_tag: str | None = None,
        checksum: bool | None = None,
    ) -> OrderlyId:
        """
        Issue the next identifier

        Arguments left as None fall back to the generator's configuration.

        Raises:
            FieldOverflow: tenant, shard or flags out of range, or reserved
                flag bits set
            UnsupportedVersion: flags name an unknown version
            InvalidTypeTag: type_tag is not a valid tag
            ClockRegression: clock went backwards under the 'fail' policy
            SequenceExhausted: no free sequence within the retry bound
        """
        config = self.config
        tenant = config.tenant if tenant is None else tenant
        shard = config.shard if shard is None else shard
        flags = config.flags if flags is None else flags
        type_tag = config.type_tag if type_tag is None else type_tag
        checksum = config.checksum_enabled if checksum is None else checksum

        # Reject bad input before a sequence number is spent on it
        codec.check_width("tenant", tenant)
        codec.check_width("shard", shard)
        codec.check_width("flags", flags)
        codec.check_reserved_flags(flags)
        codec.check_flags(flags)
        if type_tag is not None:
            codec.validate_type_tag(type_tag)

        privacy = bool(flags & FLAG_PRIVACY)
        try:
            timestamp, sequence, clamped = self._retrying.copy()(self._next_slot, privacy)
        except SequenceExhausted as exc:
            attempts = config.max_exhaustion_retries + 1
            sequence_exhausted_total.inc()
            logger.error(
                "Sequence exhausted, giving up",
                timestamp=exc.timestamp,
                attempts=attempts,
            )
            raise SequenceExhausted(exc.timestamp, attempts=attempts) from exc

        fields = OrderlyFields(
            timestamp=timestamp,
            flags=flags,
            tenant=tenant,
            sequence=sequence,
            shard=shard,
            random=self._random_bits(RANDOM_BITS),
        )
        raw = codec.pack(fields)
        text = codec.encode_raw(raw, type_tag=type_tag, checksum=checksum)
        ids_generated_total.labels(policy=config.clock_regression_policy).inc()
        return OrderlyId(fields=fields, raw=raw, text=text, type_tag=type_tag, clamped=clamped)

    def generate_many(self, count: int, **overrides: int | str | bool | None) -> list[OrderlyId]:
        """
        Issue count identifiers in order

        Args:
            count: Number of identifiers (>= 0)
            **overrides: Same keyword arguments as generate()
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        return [self.generate(**overrides) for _ in range(count)]  # type: ignore[arg-type]

    def _next_slot(self, privacy: bool) -> tuple[int, int, bool]:
        """One attempt at claiming (timestamp, sequence); returns clamped too"""
        with self._lock:
            reading = self.clock.read()
            timestamp = reading.millis
            codec.check_width("timestamp", timestamp)
            if privacy:
                timestamp -= timestamp % self.config.privacy_bucket_ms

            counter = self._counters[privacy]
            try:
                return timestamp, counter.advance(timestamp), False
            except ClockRegression as exc:
                policy = self.config.clock_regression_policy
                clock_regressions_total.labels(policy=policy).inc()
                logger.warning(
                    "Clock moved backwards",
                    observed=exc.observed,
                    last=exc.last,
                    regression_ms=exc.regression_ms,
                    clock_regression_ms=reading.regression_ms,
                    policy=policy,
                    privacy=privacy,
                )
                if policy == "fail":
                    raise
                return exc.last, counter.advance(exc.last), True

    def _on_exhaustion_wait(self, retry_state: RetryCallState) -> None:
        sequence_waits_total.inc()
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.debug(
            "Sequence exhausted, waiting for next millisecond",
            attempt=retry_state.attempt_number,
            timestamp=getattr(exception, "timestamp", None),
        )
