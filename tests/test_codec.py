"""
Tests for the field codec

Covers bit layout, the order-preserving text encoding, type tags, checksums
and the order in which decode rejects bad input.
"""

import random

import pytest

from orderlyid.codec import (
    ALPHABET,
    PAYLOAD_LENGTH,
    compute_checksum,
    decode,
    decode_payload,
    encode,
    encode_payload,
    pack,
    unpack,
)
from orderlyid.errors import (
    ChecksumMismatch,
    FieldOverflow,
    InvalidTypeTag,
    MalformedText,
    TypeTagMismatch,
    UnsupportedVersion,
)
from orderlyid.models import FIELD_LAYOUT, OrderlyFields, make_flags
from tests.helpers import (
    FIXED_CHECKSUM,
    FIXED_PAYLOAD,
    FIXED_RANDOM,
    FIXED_TIMESTAMP,
    fixed_fields,
    random_fields,
)


# =============================================================================
# Bit layout
# =============================================================================


def test_layout_totals_160_bits() -> None:
    """Test that the six field widths add up to exactly 160 bits"""
    assert sum(width for _, width in FIELD_LAYOUT) == 160
    assert [name for name, _ in FIELD_LAYOUT] == [
        "timestamp",
        "flags",
        "tenant",
        "sequence",
        "shard",
        "random",
    ]


def test_pack_places_fields_most_significant_first() -> None:
    """Test each field lands at its fixed offset"""
    raw = pack(fixed_fields())
    value = int.from_bytes(raw, "big")

    assert len(raw) == 20
    assert value >> 112 == FIXED_TIMESTAMP
    assert (value >> 104) & 0xFF == 0x01
    assert (value >> 88) & 0xFFFF == 42
    assert (value >> 76) & 0xFFF == 0
    assert (value >> 60) & 0xFFFF == 7
    assert value & ((1 << 60) - 1) == FIXED_RANDOM


def test_pack_keeps_zero_fields() -> None:
    """Test an all-zero identifier (apart from the version) is still 20 bytes"""
    raw = pack(OrderlyFields(timestamp=0))
    assert raw == bytes(6) + b"\x01" + bytes(13)


def test_unpack_inverts_pack() -> None:
    """Test unpack(pack(f)) == f for field values at both extremes"""
    maximal = OrderlyFields(
        timestamp=(1 << 48) - 1,
        flags=make_flags(privacy=True),
        tenant=0xFFFF,
        sequence=0xFFF,
        shard=0xFFFF,
        random=(1 << 60) - 1,
    )
    for fields in (fixed_fields(), maximal, OrderlyFields(timestamp=0)):
        assert unpack(pack(fields)) == fields


@pytest.mark.parametrize(
    "field,value,width",
    [
        ("tenant", 65536, 16),
        ("shard", 70000, 16),
        ("sequence", 4096, 12),
        ("timestamp", 1 << 48, 48),
        ("random", 1 << 60, 60),
        ("flags", 256, 8),
        ("tenant", -1, 16),
    ],
)
def test_pack_rejects_overflowing_fields(field: str, value: int, width: int) -> None:
    """Test a field outside its width fails with FieldOverflow before packing"""
    with pytest.raises(FieldOverflow) as exc_info:
        pack(fixed_fields(**{field: value}))

    assert exc_info.value.field == field
    assert exc_info.value.value == value
    assert exc_info.value.width == width


def test_pack_rejects_reserved_flag_bits() -> None:
    """Test reserved flag bits are a caller error on encode"""
    with pytest.raises(FieldOverflow) as exc_info:
        pack(fixed_fields(flags=0x81))

    assert exc_info.value.field == "flags"
    assert exc_info.value.width == 8
    assert "reserved bits 0x80" in str(exc_info.value)


def test_pack_rejects_unknown_version() -> None:
    """Test flags naming version 2 are refused on encode"""
    with pytest.raises(UnsupportedVersion) as exc_info:
        pack(fixed_fields(flags=0x02))
    assert exc_info.value.version == 2


def test_unpack_rejects_wrong_length() -> None:
    with pytest.raises(MalformedText):
        unpack(b"\x00" * 19)


# =============================================================================
# Payload encoding
# =============================================================================


def test_alphabet_is_order_preserving() -> None:
    """Test the alphabet is 32 distinct characters in ascending ASCII order"""
    assert len(ALPHABET) == 32
    assert len(set(ALPHABET)) == 32
    assert list(ALPHABET) == sorted(ALPHABET)
    for excluded in "ilou":
        assert excluded not in ALPHABET


def test_payload_is_32_characters() -> None:
    assert PAYLOAD_LENGTH == 32
    assert len(encode_payload(bytes(20))) == 32
    assert encode_payload(bytes(20)) == "0" * 32
    assert encode_payload(b"\xff" * 20) == "z" * 32


def test_text_order_matches_numeric_order() -> None:
    """Test sorting payload strings gives the same order as sorting values"""
    rng = random.Random(1234)
    values = [rng.getrandbits(160) for _ in range(500)]
    # Neighbouring values stress the low digits
    values += [values[0] + 1, values[0] - 1, 0, (1 << 160) - 1]

    payloads = {value: encode_payload(value.to_bytes(20, "big")) for value in values}

    by_value = [payloads[value] for value in sorted(values)]
    assert sorted(payloads.values()) == by_value


def test_decode_payload_is_case_insensitive() -> None:
    """Test uppercase payloads decode to the same value"""
    assert decode_payload(FIXED_PAYLOAD.upper()) == decode_payload(FIXED_PAYLOAD)


@pytest.mark.parametrize("bad", ["", "0" * 31, "0" * 33, "0" * 31 + "u", "0" * 31 + "!"])
def test_decode_payload_rejects_bad_text(bad: str) -> None:
    with pytest.raises(MalformedText):
        decode_payload(bad)


# =============================================================================
# encode / decode
# =============================================================================


def test_encode_fixed_scenario() -> None:
    """Test the fixed scenario encodes to a known, reproducible string"""
    assert encode(fixed_fields()) == FIXED_PAYLOAD
    assert encode(fixed_fields(), type_tag="order") == f"order_{FIXED_PAYLOAD}"
    assert (
        encode(fixed_fields(), type_tag="payment", checksum=True)
        == f"payment_{FIXED_PAYLOAD}-{FIXED_CHECKSUM}"
    )


def test_checksum_is_crc16_xmodem() -> None:
    """Test the checksum against the CRC-16/XModem check value"""
    assert compute_checksum("123456789") == "31c3"
    assert compute_checksum(FIXED_PAYLOAD) == FIXED_CHECKSUM


def test_decode_fixed_scenario() -> None:
    """Test decoding yields tenant, shard, timestamp and sequence back"""
    decoded = decode(f"order_{FIXED_PAYLOAD}")

    assert decoded.type_tag == "order"
    assert decoded.checksum is None
    assert decoded.fields.tenant == 42
    assert decoded.fields.shard == 7
    assert decoded.fields.timestamp == FIXED_TIMESTAMP
    assert decoded.fields.sequence == 0
    assert decoded.fields.version == 1
    assert decoded.fields.privacy is False


def test_round_trip_fields() -> None:
    """Test decode(encode(f)).fields == f across random field tuples"""
    rng = random.Random(42)
    for _ in range(200):
        fields = random_fields(rng)
        for type_tag in (None, "user"):
            for checksum in (False, True):
                text = encode(fields, type_tag=type_tag, checksum=checksum)
                assert decode(text).fields == fields


def test_reencode_reproduces_text() -> None:
    """Test encode(decode(t)) == t with the same tag and checksum mode"""
    for text in (
        FIXED_PAYLOAD,
        f"order_{FIXED_PAYLOAD}",
        f"payment_{FIXED_PAYLOAD}-{FIXED_CHECKSUM}",
        f"line_item_{FIXED_PAYLOAD}",
    ):
        decoded = decode(text)
        assert (
            encode(decoded.fields, type_tag=decoded.type_tag, checksum=decoded.checksum is not None)
            == text
        )


def test_type_tag_not_stored_in_binary() -> None:
    """Test the same fields under different tags share one binary value"""
    assert decode(f"order_{FIXED_PAYLOAD}").raw == decode(f"user_{FIXED_PAYLOAD}").raw
    assert decode(f"order_{FIXED_PAYLOAD}").raw == pack(fixed_fields())


def test_tag_with_underscores() -> None:
    """Test a multi-word tag splits at the last underscore"""
    decoded = decode(f"line_item_{FIXED_PAYLOAD}")
    assert decoded.type_tag == "line_item"
    assert decoded.fields == fixed_fields()


@pytest.mark.parametrize(
    "tag", ["Order", "9lives", "order-id", "", "trailing_", "x" * 33, "order\n", "order\n\n"]
)
def test_encode_rejects_invalid_tag(tag: str) -> None:
    with pytest.raises(InvalidTypeTag):
        encode(fixed_fields(), type_tag=tag)


def test_decode_rejects_invalid_tag() -> None:
    """Test a bad tag is a MalformedText on decode"""
    with pytest.raises(MalformedText):
        decode(f"Order_{FIXED_PAYLOAD}")


def test_decode_expected_type() -> None:
    """Test expected_type accepts the right tag and rejects others"""
    assert decode(f"order_{FIXED_PAYLOAD}", expected_type="order").type_tag == "order"

    with pytest.raises(TypeTagMismatch) as exc_info:
        decode(f"user_{FIXED_PAYLOAD}", expected_type="order")
    assert exc_info.value.actual == "user"

    with pytest.raises(TypeTagMismatch):
        decode(FIXED_PAYLOAD, expected_type="order")


def test_decode_require_checksum() -> None:
    with pytest.raises(MalformedText):
        decode(f"order_{FIXED_PAYLOAD}", require_checksum=True)

    decoded = decode(f"order_{FIXED_PAYLOAD}-{FIXED_CHECKSUM}", require_checksum=True)
    assert decoded.checksum == FIXED_CHECKSUM


@pytest.mark.parametrize(
    "text",
    [
        "not-an-id",
        f"order_{FIXED_PAYLOAD}-",
        f"order_{FIXED_PAYLOAD}-abc",
        f"order_{FIXED_PAYLOAD}-xyz1",
        f"order_{FIXED_PAYLOAD[:-1]}",
        f"order_{FIXED_PAYLOAD}0",
        f"order_{FIXED_PAYLOAD[:-1]}é",
        f"order\n_{FIXED_PAYLOAD}",
        f"order_{FIXED_PAYLOAD}-{FIXED_CHECKSUM}\n",
        "order_",
    ],
)
def test_decode_rejects_malformed_text(text: str) -> None:
    with pytest.raises(MalformedText):
        decode(text)


def test_decode_rejects_non_string() -> None:
    with pytest.raises(MalformedText):
        decode(None)  # type: ignore[arg-type]


# =============================================================================
# Checksum
# =============================================================================


def test_every_single_character_substitution_is_caught() -> None:
    """Test substituting any payload character yields ChecksumMismatch"""
    text = f"payment_{FIXED_PAYLOAD}-{FIXED_CHECKSUM}"
    start = len("payment_")

    for position in range(start, start + PAYLOAD_LENGTH):
        for replacement in ALPHABET:
            if replacement == text[position]:
                continue
            corrupted = text[:position] + replacement + text[position + 1 :]
            with pytest.raises(ChecksumMismatch):
                decode(corrupted)


def test_separator_substitution_is_rejected() -> None:
    """Test a payload character typed as '_' or '-' still fails to decode"""
    text = f"payment_{FIXED_PAYLOAD}-{FIXED_CHECKSUM}"
    start = len("payment_")

    for position in range(start, start + PAYLOAD_LENGTH):
        for separator in "_-":
            corrupted = text[:position] + separator + text[position + 1 :]
            with pytest.raises(MalformedText):
                decode(corrupted)


def test_corrupted_checksum_is_caught() -> None:
    with pytest.raises(ChecksumMismatch) as exc_info:
        decode(f"payment_{FIXED_PAYLOAD}-0000")
    assert exc_info.value.expected == FIXED_CHECKSUM
    assert exc_info.value.actual == "0000"


def test_checksum_checked_before_fields() -> None:
    """Test a corrupted payload reports ChecksumMismatch, not a field error"""
    # 'z' in the flags position would otherwise be an unsupported version
    corrupted = FIXED_PAYLOAD[:10] + "z" + FIXED_PAYLOAD[11:]
    with pytest.raises(ChecksumMismatch):
        decode(f"{corrupted}-{FIXED_CHECKSUM}")
    with pytest.raises(UnsupportedVersion):
        decode(corrupted)


# =============================================================================
# Versions
# =============================================================================


def version_text(flags: int) -> str:
    """Encode the fixed fields with an arbitrary flags byte, bypassing pack"""
    value = int.from_bytes(pack(fixed_fields()), "big")
    value = (value & ~(0xFF << 104)) | (flags << 104)
    return encode_payload(value.to_bytes(20, "big"))


@pytest.mark.parametrize("flags", [0x00, 0x02, 0x0F, 0x12])
def test_decode_rejects_unknown_version(flags: int) -> None:
    """Test unknown version bits fail with UnsupportedVersion"""
    with pytest.raises(UnsupportedVersion) as exc_info:
        decode(version_text(flags))
    assert exc_info.value.version == flags & 0x0F


def test_decode_rejects_reserved_bits() -> None:
    """Test reserved bits are treated as an unknown format"""
    with pytest.raises(UnsupportedVersion):
        decode(version_text(0x21))


def test_occurred_at_beyond_datetime_range() -> None:
    """Test the largest 48-bit timestamp decodes, without a datetime"""
    latest = fixed_fields(timestamp=(1 << 48) - 1)
    decoded = decode(encode(latest))

    assert decoded.fields.timestamp == (1 << 48) - 1
    assert decoded.fields.occurred_at is None
    assert fixed_fields().occurred_at is not None


def test_decode_accepts_privacy_flag() -> None:
    decoded = decode(version_text(0x11))
    assert decoded.fields.privacy is True
    assert decoded.fields.version == 1
