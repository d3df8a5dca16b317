"""
Value models for OrderlyID

Layout (160 bits, most significant first):

    timestamp:48 | flags:8 | tenant:16 | sequence:12 | shard:16 | random:60

The 20-byte binary value is the source of truth. Text is derived from it
and carries two extras that live outside the 160 bits: the caller's type
tag prefix and an optional checksum suffix.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from orderlyid.clock import epoch_millis_to_datetime

# (name, width) in packing order
FIELD_LAYOUT: tuple[tuple[str, int], ...] = (
    ("timestamp", 48),
    ("flags", 8),
    ("tenant", 16),
    ("sequence", 12),
    ("shard", 16),
    ("random", 60),
)

TOTAL_BITS = 160
RAW_LENGTH = TOTAL_BITS // 8

# Flags byte
FLAG_VERSION_MASK = 0x0F
FLAG_PRIVACY = 0x10
FLAG_RESERVED_MASK = 0xE0

CURRENT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({CURRENT_VERSION})
DEFAULT_FLAGS = CURRENT_VERSION


def make_flags(version: int = CURRENT_VERSION, privacy: bool = False) -> int:
    """Build a flags byte from its parts"""
    return (version & FLAG_VERSION_MASK) | (FLAG_PRIVACY if privacy else 0)


class OrderlyFields(BaseModel):
    """
    The six fields of an OrderlyID

    Values are plain ints; width checks happen in the codec at pack time so
    that overflow surfaces as FieldOverflow rather than a validation error.
    """

    timestamp: int = Field(..., description="Milliseconds since the OrderlyID epoch")
    flags: int = Field(default=DEFAULT_FLAGS, description="Version, privacy and reserved bits")
    tenant: int = Field(default=0, description="Tenant/namespace (0 = no tenant)")
    sequence: int = Field(default=0, description="Per-millisecond counter")
    shard: int = Field(default=0, description="Opaque routing hint")
    random: int = Field(default=0, description="60 random bits")

    model_config = {"frozen": True}

    @property
    def version(self) -> int:
        return self.flags & FLAG_VERSION_MASK

    @property
    def privacy(self) -> bool:
        """True when the timestamp was coarsened to a time bucket"""
        return bool(self.flags & FLAG_PRIVACY)

    @property
    def occurred_at(self) -> datetime | None:
        """
        Creation time as an aware UTC datetime

        None when the timestamp lies past year 9999, which 48 bits allow but
        datetime cannot represent.
        """
        try:
            return epoch_millis_to_datetime(self.timestamp)
        except (ValueError, OverflowError, OSError):
            return None


class DecodedId(BaseModel):
    """Result of decoding OrderlyID text"""

    fields: OrderlyFields
    raw: bytes = Field(..., description="20-byte big-endian binary value")
    type_tag: str | None = Field(default=None, description="Prefix before the underscore")
    checksum: str | None = Field(default=None, description="Verified checksum suffix")

    model_config = {"frozen": True}

    @property
    def value(self) -> int:
        return int.from_bytes(self.raw, "big")


class OrderlyId(BaseModel):
    """
    A generated identifier

    Compares by binary value, so sorting a list of OrderlyIds gives the same
    order as sorting their raw bytes or their text payloads.
    """

    fields: OrderlyFields
    raw: bytes = Field(..., description="20-byte big-endian binary value")
    text: str = Field(..., description="Canonical text form")
    type_tag: str | None = None
    clamped: bool = Field(
        default=False,
        description="Issued under the clamp policy after a clock regression",
    )

    model_config = {"frozen": True}

    @property
    def value(self) -> int:
        return int.from_bytes(self.raw, "big")

    def to_bytes(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.text

    def __lt__(self, other: "OrderlyId") -> bool:
        if not isinstance(other, OrderlyId):
            return NotImplemented
        return self.raw < other.raw

    def __le__(self, other: "OrderlyId") -> bool:
        if not isinstance(other, OrderlyId):
            return NotImplemented
        return self.raw <= other.raw

    def __gt__(self, other: "OrderlyId") -> bool:
        if not isinstance(other, OrderlyId):
            return NotImplemented
        return self.raw > other.raw

    def __ge__(self, other: "OrderlyId") -> bool:
        if not isinstance(other, OrderlyId):
            return NotImplemented
        return self.raw >= other.raw
