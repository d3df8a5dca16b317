"""
OrderlyID - structured, sortable, distributed identifiers

160-bit identifiers carrying a millisecond timestamp, flags, tenant,
sequence, shard and random bits, with an order-preserving text form such as
``order_01h8n6qj3k9m2p4r6s8t0v2w4x6y8z0a``. Built for sharded and
multi-tenant systems where auto-increment, UUIDv4, ULID and Snowflake each
fall short in one way or another.

Fun fact: sorting these identifiers as plain strings gives the same order
as sorting them as 160-bit numbers, which is most of the point.
"""

from orderlyid.clock import (
    ORDERLY_EPOCH_MS,
    ClockReading,
    ClockSource,
    RealTimeProvider,
    TestTimeProvider,
    TimeProvider,
)
from orderlyid.codec import decode, encode, pack, unpack
from orderlyid.config import GeneratorConfig, load_config
from orderlyid.errors import (
    ChecksumMismatch,
    ClockRegression,
    FieldOverflow,
    InvalidTypeTag,
    MalformedText,
    OrderlyIdError,
    SequenceExhausted,
    TypeTagMismatch,
    UnsupportedVersion,
)
from orderlyid.generator import OrderlyIdGenerator
from orderlyid.models import DecodedId, OrderlyFields, OrderlyId, make_flags
from orderlyid.sequence import SequenceCounter

__version__ = "0.1.0"
__all__ = [
    # Generation
    "OrderlyIdGenerator",
    "GeneratorConfig",
    "load_config",
    # Codec
    "encode",
    "decode",
    "pack",
    "unpack",
    # Models
    "OrderlyFields",
    "OrderlyId",
    "DecodedId",
    "make_flags",
    # Clock & sequence
    "ORDERLY_EPOCH_MS",
    "ClockSource",
    "ClockReading",
    "TimeProvider",
    "RealTimeProvider",
    "TestTimeProvider",
    "SequenceCounter",
    # Errors
    "OrderlyIdError",
    "FieldOverflow",
    "SequenceExhausted",
    "ClockRegression",
    "ChecksumMismatch",
    "UnsupportedVersion",
    "MalformedText",
    "InvalidTypeTag",
    "TypeTagMismatch",
    "__version__",
]
