"""
Field codec: bit packing and the canonical text form

Text form::

    [<type_tag>_]<payload>[-<checksum>]

The payload is the 160-bit value in lowercase Crockford base-32, exactly 32
characters (160 = 32 x 5, no padding). The alphabet is in ascending ASCII
order, so comparing two payloads as strings gives the same answer as
comparing the binary values as numbers.

The checksum is CRC-16/XModem over the ASCII payload, rendered as four hex
digits. Any single-character substitution changes at most 8 contiguous bits,
and CRC-16 catches every burst of 16 bits or fewer.

Fun fact: Douglas Crockford dropped I, L, O and U from his alphabet - the
first three because they look like digits, U to avoid accidental obscenity.
"""

import binascii
import re

from orderlyid.errors import (
    ChecksumMismatch,
    FieldOverflow,
    InvalidTypeTag,
    MalformedText,
    TypeTagMismatch,
    UnsupportedVersion,
)
from orderlyid.metrics import decode_failures_total
from orderlyid.models import (
    FIELD_LAYOUT,
    FLAG_RESERVED_MASK,
    FLAG_VERSION_MASK,
    RAW_LENGTH,
    SUPPORTED_VERSIONS,
    TOTAL_BITS,
    DecodedId,
    OrderlyFields,
)

ALPHABET = "0123456789abcdefghjkmnpqrstvwxyz"
PAYLOAD_LENGTH = TOTAL_BITS // 5
CHECKSUM_LENGTH = 4
TAG_SEPARATOR = "_"
CHECKSUM_SEPARATOR = "-"

_DECODE_MAP = {char: index for index, char in enumerate(ALPHABET)}
_TYPE_TAG_RE = re.compile(r"[a-z][a-z0-9_]{0,31}")
_CHECKSUM_RE = re.compile(r"[0-9a-f]{4}")

if list(ALPHABET) != sorted(ALPHABET) or len(set(ALPHABET)) != 32:
    raise RuntimeError("base-32 alphabet must be 32 distinct characters in ascending order")


# ============================================================================
# Binary layer
# ============================================================================


_FIELD_WIDTHS = dict(FIELD_LAYOUT)


def check_width(name: str, value: int) -> None:
    """Raise FieldOverflow unless value fits the named field"""
    width = _FIELD_WIDTHS[name]
    if value < 0 or value >> width:
        raise FieldOverflow(name, value, width)


def check_reserved_flags(flags: int) -> None:
    """Raise FieldOverflow if any reserved flag bit is set"""
    if flags & FLAG_RESERVED_MASK:
        raise FieldOverflow(
            "flags",
            flags,
            _FIELD_WIDTHS["flags"],
            message=(
                f"Field flags=0x{flags:02x} sets reserved bits "
                f"0x{flags & FLAG_RESERVED_MASK:02x} (mask 0x{FLAG_RESERVED_MASK:02x} must be zero)"
            ),
        )


def check_flags(flags: int) -> None:
    """Raise UnsupportedVersion unless flags is a format this codec understands"""
    version = flags & FLAG_VERSION_MASK
    if flags & FLAG_RESERVED_MASK or version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersion(version, flags)


def pack(fields: OrderlyFields) -> bytes:
    """
    Pack fields into the 20-byte binary value

    Every field is range-checked before any bits are assembled.

    Raises:
        FieldOverflow: If a field is negative or wider than its slot, or
            reserved flag bits are set
        UnsupportedVersion: If the flags byte names an unknown version
    """
    for name, _ in FIELD_LAYOUT:
        check_width(name, getattr(fields, name))
    check_reserved_flags(fields.flags)
    check_flags(fields.flags)

    value = 0
    for name, width in FIELD_LAYOUT:
        value = (value << width) | getattr(fields, name)
    return value.to_bytes(RAW_LENGTH, "big")


def unpack(raw: bytes) -> OrderlyFields:
    """
    Split a 20-byte binary value into its fields

    Raises:
        MalformedText: If raw is not exactly 20 bytes
        UnsupportedVersion: If the flags byte is not a known format
    """
    if len(raw) != RAW_LENGTH:
        raise MalformedText(f"Binary value must be {RAW_LENGTH} bytes, got {len(raw)}")

    value = int.from_bytes(raw, "big")
    values: dict[str, int] = {}
    shift = TOTAL_BITS
    for name, width in FIELD_LAYOUT:
        shift -= width
        values[name] = (value >> shift) & ((1 << width) - 1)

    check_flags(values["flags"])
    return OrderlyFields(**values)


# ============================================================================
# Text layer
# ============================================================================


def encode_payload(raw: bytes) -> str:
    """Render the binary value as 32 base-32 characters"""
    value = int.from_bytes(raw, "big")
    chars = []
    for _ in range(PAYLOAD_LENGTH):
        value, index = divmod(value, 32)
        chars.append(ALPHABET[index])
    return "".join(reversed(chars))


def decode_payload(payload: str) -> bytes:
    """
    Parse 32 base-32 characters back into the binary value

    Case-insensitive; canonical output from encode_payload is lowercase.
    """
    if len(payload) != PAYLOAD_LENGTH:
        raise MalformedText(
            f"Payload must be {PAYLOAD_LENGTH} characters, got {len(payload)}"
        )
    value = 0
    for position, char in enumerate(payload.lower()):
        index = _DECODE_MAP.get(char)
        if index is None:
            raise MalformedText(f"Invalid character {char!r} at position {position}")
        value = (value << 5) | index
    return value.to_bytes(RAW_LENGTH, "big")


def compute_checksum(payload: str) -> str:
    """CRC-16/XModem of the canonical payload as four lowercase hex digits"""
    return f"{binascii.crc_hqx(payload.lower().encode('ascii'), 0):04x}"


def validate_type_tag(type_tag: str) -> str:
    if not _TYPE_TAG_RE.fullmatch(type_tag) or type_tag.endswith(TAG_SEPARATOR):
        raise InvalidTypeTag(type_tag)
    return type_tag


def encode_raw(raw: bytes, type_tag: str | None = None, checksum: bool = False) -> str:
    """Render an already-packed binary value as OrderlyID text"""
    payload = encode_payload(raw)
    text = payload
    if type_tag is not None:
        text = f"{validate_type_tag(type_tag)}{TAG_SEPARATOR}{payload}"
    if checksum:
        text = f"{text}{CHECKSUM_SEPARATOR}{compute_checksum(payload)}"
    return text


def encode(fields: OrderlyFields, type_tag: str | None = None, checksum: bool = False) -> str:
    """
    Encode fields as OrderlyID text

    Args:
        fields: The six identifier fields
        type_tag: Optional prefix such as "order" or "user"
        checksum: Append a checksum suffix over the payload

    Returns:
        Text like ``order_01h8n6qj3k9m2p4r6s8t0v2w4x6y8z0a-a1b2``

    Raises:
        FieldOverflow: If any field does not fit its width
        UnsupportedVersion: If flags name an unknown version
        InvalidTypeTag: If type_tag is not a valid tag
    """
    return encode_raw(pack(fields), type_tag=type_tag, checksum=checksum)


def decode(
    text: str,
    *,
    expected_type: str | None = None,
    require_checksum: bool = False,
) -> DecodedId:
    """
    Decode OrderlyID text back into fields

    Checks run outermost first: type tag, then checksum, then payload, then
    the flags version. The checksum is verified before any field is looked
    at, so a corrupted payload never decodes into plausible-looking fields.

    A payload character replaced by a separator (`_` or `-`) moves the split
    points, so that typo surfaces as MalformedText rather than
    ChecksumMismatch. Either way the text is rejected.

    Args:
        text: OrderlyID text
        expected_type: Reject identifiers whose tag differs from this one
        require_checksum: Reject identifiers without a checksum suffix

    Raises:
        MalformedText: Bad structure, length or alphabet (including
            InvalidTypeTag and TypeTagMismatch)
        ChecksumMismatch: Checksum suffix does not match the payload
        UnsupportedVersion: Flags name an unknown format version
    """
    try:
        return _decode(text, expected_type, require_checksum)
    except ChecksumMismatch:
        decode_failures_total.labels(reason="checksum").inc()
        raise
    except UnsupportedVersion:
        decode_failures_total.labels(reason="version").inc()
        raise
    except MalformedText:
        decode_failures_total.labels(reason="malformed").inc()
        raise


def _decode(text: str, expected_type: str | None, require_checksum: bool) -> DecodedId:
    if not isinstance(text, str) or not text:
        raise MalformedText("OrderlyID text must be a non-empty string")
    if not text.isascii():
        raise MalformedText("OrderlyID text must be ASCII")

    type_tag: str | None = None
    body = text
    if TAG_SEPARATOR in text:
        type_tag, _, body = text.rpartition(TAG_SEPARATOR)
        validate_type_tag(type_tag)

    if expected_type is not None and type_tag != expected_type:
        raise TypeTagMismatch(expected_type, type_tag)

    checksum: str | None = None
    payload = body
    if CHECKSUM_SEPARATOR in body:
        payload, _, checksum = body.partition(CHECKSUM_SEPARATOR)
        if not _CHECKSUM_RE.fullmatch(checksum.lower()):
            raise MalformedText(f"Checksum suffix must be {CHECKSUM_LENGTH} hex digits")
        checksum = checksum.lower()
    elif require_checksum:
        raise MalformedText("Checksum suffix required but missing")

    if checksum is not None:
        if len(payload) != PAYLOAD_LENGTH:
            raise MalformedText(
                f"Payload must be {PAYLOAD_LENGTH} characters, got {len(payload)}"
            )
        expected = compute_checksum(payload)
        if expected != checksum:
            raise ChecksumMismatch(expected=expected, actual=checksum)

    raw = decode_payload(payload)
    return DecodedId(fields=unpack(raw), raw=raw, type_tag=type_tag, checksum=checksum)
