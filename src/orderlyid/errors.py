"""
Exception hierarchy for OrderlyID

Every failure the codec or generator can produce is a subclass of
OrderlyIdError, so callers can catch the whole family in one place and
still branch on the precise kind when they need to.

Fun fact: Snowflake's original design simply refused to issue IDs while the
clock ran backwards. We make that a choice instead of a surprise.
"""


class OrderlyIdError(Exception):
    """Base exception for all OrderlyID errors"""

    pass


class FieldOverflow(OrderlyIdError):
    """Raised when a field value does not fit its fixed bit width"""

    def __init__(self, field: str, value: int, width: int, message: str | None = None) -> None:
        self.field = field
        self.value = value
        self.width = width
        super().__init__(
            message
            or f"Field {field}={value} does not fit in {width} bits "
            f"(allowed 0..{(1 << width) - 1})"
        )


class SequenceExhausted(OrderlyIdError):
    """
    Raised when the 12-bit sequence is used up within one millisecond

    The generator retries this internally by waiting for the next
    millisecond; callers only see it once the configured bound is exceeded.
    """

    def __init__(self, timestamp: int, attempts: int | None = None) -> None:
        self.timestamp = timestamp
        self.attempts = attempts
        message = f"Sequence exhausted at timestamp {timestamp}"
        if attempts is not None:
            message += f" after {attempts} attempts"
        super().__init__(message)


class ClockRegression(OrderlyIdError):
    """Raised when the observed timestamp is older than the last issued one"""

    def __init__(self, observed: int, last: int) -> None:
        self.observed = observed
        self.last = last
        self.regression_ms = last - observed
        super().__init__(
            f"Clock moved backwards by {self.regression_ms} ms "
            f"(observed {observed}, last issued {last})"
        )


class ChecksumMismatch(OrderlyIdError):
    """Raised when the checksum suffix does not match the payload"""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Checksum mismatch: expected {expected}, got {actual}")


class UnsupportedVersion(OrderlyIdError):
    """Raised when the flags byte names a format version we cannot decode"""

    def __init__(self, version: int, flags: int) -> None:
        self.version = version
        self.flags = flags
        super().__init__(f"Unsupported format version {version} (flags=0x{flags:02x})")


class MalformedText(OrderlyIdError):
    """Raised when text is not structurally a valid OrderlyID"""

    pass


class InvalidTypeTag(MalformedText):
    """Raised when a type tag is not a lowercase ASCII identifier"""

    def __init__(self, type_tag: str) -> None:
        self.type_tag = type_tag
        super().__init__(
            f"Invalid type tag {type_tag!r}: expected lowercase letters, digits "
            "or underscores, starting with a letter (max 32 chars)"
        )


class TypeTagMismatch(MalformedText):
    """Raised when a decoded type tag is not the one the caller expected"""

    def __init__(self, expected: str, actual: str | None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected type tag {expected!r}, got {actual!r}")
