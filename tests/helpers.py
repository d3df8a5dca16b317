"""
Test Helper Functions - Fixed scenario values and builders

The fixed scenario is T ms after the OrderlyID epoch with R as the random
field, tenant=42, shard=7, flags=0x01. The expected payloads and checksum
were worked out bit by bit from the layout, independently of the codec.
"""

import random

from orderlyid.models import OrderlyFields, make_flags

FIXED_TIMESTAMP = 123_456_789
FIXED_RANDOM = 0x0123456789ABCDE

# sequence 0 and sequence 1 at FIXED_TIMESTAMP / FIXED_RANDOM
FIXED_PAYLOAD = "0000epyd2m0g0ag0000704hmasw9nf6y"
FIXED_PAYLOAD_SEQ1 = "0000epyd2m0g0ag0200704hmasw9nf6y"
FIXED_CHECKSUM = "fc7b"


def fixed_fields(**overrides: int) -> OrderlyFields:
    """Builder for the fixed scenario fields, with optional overrides"""
    values = {
        "timestamp": FIXED_TIMESTAMP,
        "flags": 0x01,
        "tenant": 42,
        "sequence": 0,
        "shard": 7,
        "random": FIXED_RANDOM,
    }
    values.update(overrides)
    return OrderlyFields(**values)


def random_fields(rng: random.Random) -> OrderlyFields:
    """Builder for arbitrary valid fields"""
    return OrderlyFields(
        timestamp=rng.getrandbits(48),
        flags=make_flags(privacy=rng.random() < 0.5),
        tenant=rng.getrandbits(16),
        sequence=rng.getrandbits(12),
        shard=rng.getrandbits(16),
        random=rng.getrandbits(60),
    )
