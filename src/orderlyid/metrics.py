"""
Prometheus metrics for OrderlyID generation and decoding.

Provides observability into issue rates, sequence pressure and clock health.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Histogram

# ============================================================================
# Generation Metrics
# ============================================================================

ids_generated_total = Counter(
    "orderlyid_generated_total",
    "Total number of identifiers issued",
    ["policy"],
)

generate_duration_seconds = Histogram(
    "orderlyid_generate_duration_seconds",
    "Duration of a single generate() call in seconds",
    buckets=(0.00001, 0.00005, 0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05),
)

# ============================================================================
# Sequence & Clock Metrics
# ============================================================================

sequence_waits_total = Counter(
    "orderlyid_sequence_waits_total",
    "Times a generator waited for the next millisecond after exhausting the sequence",
)

sequence_exhausted_total = Counter(
    "orderlyid_sequence_exhausted_total",
    "Times generation failed because the exhaustion wait bound was exceeded",
)

clock_regressions_total = Counter(
    "orderlyid_clock_regressions_total",
    "Clock regressions observed during generation",
    ["policy"],  # fail, clamp
)

# ============================================================================
# Decode Metrics
# ============================================================================

decode_failures_total = Counter(
    "orderlyid_decode_failures_total",
    "Total number of rejected identifiers on decode",
    ["reason"],  # malformed, checksum, version
)

P = ParamSpec("P")
R = TypeVar("R")


def track_duration(histogram: Histogram) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to observe call duration in a histogram.

    Args:
        histogram: Histogram receiving durations in seconds

    Returns:
        Decorated function that records its duration, successful or not
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                histogram.observe(time.perf_counter() - start)

        return wrapper

    return decorator
