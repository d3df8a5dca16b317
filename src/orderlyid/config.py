"""
Generator configuration

One GeneratorConfig per generator. The clock regression policy has no
default on purpose: every deployment states whether a backwards clock fails
the call or clamps to the last issued timestamp, and a single generator
never mixes the two.
"""

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from orderlyid.codec import validate_type_tag
from orderlyid.errors import OrderlyIdError
from orderlyid.models import (
    DEFAULT_FLAGS,
    FLAG_PRIVACY,
    FLAG_RESERVED_MASK,
    FLAG_VERSION_MASK,
    SUPPORTED_VERSIONS,
)

ClockRegressionPolicy = Literal["fail", "clamp"]


class GeneratorConfig(BaseModel):
    """Defaults and policies for an OrderlyIdGenerator"""

    tenant: int = Field(
        default=0,
        ge=0,
        le=0xFFFF,
        description="Tenant/namespace stamped on every identifier (0 = no tenant)",
    )

    shard: int = Field(
        default=0,
        ge=0,
        le=0xFFFF,
        description="Routing/shard hint stamped on every identifier",
    )

    flags: int = Field(
        default=DEFAULT_FLAGS,
        ge=0,
        le=0xFF,
        description="Flags byte: version bits, privacy bit, reserved bits (zero)",
    )

    type_tag: str | None = Field(
        default=None,
        description="Default text prefix, e.g. 'order' or 'user'",
    )

    checksum_enabled: bool = Field(
        default=False,
        description="Append a checksum suffix to generated text",
    )

    clock_regression_policy: ClockRegressionPolicy = Field(
        ...,
        description="'fail' raises ClockRegression; 'clamp' reuses the last issued timestamp",
    )

    privacy_bucket_ms: int = Field(
        default=1000,
        ge=1,
        description="Timestamp granularity when the privacy flag is set",
    )

    max_exhaustion_retries: int = Field(
        default=1000,
        ge=0,
        description="Retries while waiting for the next millisecond before failing",
    )

    exhaustion_backoff_ms: float = Field(
        default=0.1,
        ge=0.0,
        description="Sleep between exhaustion retries",
    )

    model_config = {"frozen": True}

    @field_validator("flags")
    @classmethod
    def validate_flags(cls, v: int) -> int:
        if v & FLAG_RESERVED_MASK:
            raise ValueError(f"reserved flag bits must be zero (flags=0x{v:02x})")
        version = v & FLAG_VERSION_MASK
        if version not in SUPPORTED_VERSIONS:
            raise ValueError(f"unsupported format version {version}")
        return v

    @field_validator("type_tag")
    @classmethod
    def validate_tag(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            return validate_type_tag(v)
        except OrderlyIdError as exc:
            raise ValueError(str(exc)) from exc

    @property
    def privacy(self) -> bool:
        return bool(self.flags & FLAG_PRIVACY)


def load_config(path: str | Path) -> GeneratorConfig:
    """
    Load a GeneratorConfig from a JSON file

    Args:
        path: JSON file with GeneratorConfig keys

    Returns:
        Validated configuration
    """
    with open(path, encoding="utf-8") as f:
        return GeneratorConfig.model_validate(json.load(f))
