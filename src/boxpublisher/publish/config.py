"""Publish configuration.

PublishConfig is frozen (immutable) and validated once, before anything is
uploaded. configure() reports every problem at once, including an
inaccessible bucket, instead of failing on the first one.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from boxpublisher.storage.base import MIN_PART_SIZE, ObjectStoreError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from boxpublisher.storage.base import ObjectStore

DEFAULT_ACL = "public-read"
DEFAULT_STORAGE_CLASS = "STANDARD"

CANNED_ACLS = frozenset(
    {
        "private",
        "public-read",
        "public-read-write",
        "authenticated-read",
        "aws-exec-read",
        "bucket-owner-read",
        "bucket-owner-full-control",
    }
)

STORAGE_CLASSES = frozenset(
    {
        "STANDARD",
        "REDUCED_REDUNDANCY",
        "STANDARD_IA",
        "ONEZONE_IA",
        "INTELLIGENT_TIERING",
        "GLACIER",
        "GLACIER_IR",
        "DEEP_ARCHIVE",
    }
)

REGION_PATTERN = re.compile(r"^[a-z]{2}(-gov)?-[a-z]+-\d+$")


class ConfigurationError(Exception):
    """Raised when configuration is invalid; carries every problem found."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        msg = "Invalid publish configuration:\n" + "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(msg)


class PublishConfig(BaseModel):
    """Box publish configuration (frozen)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    region: str = Field(description="Region of the bucket (e.g., eu-west-1)")
    bucket: str = Field(min_length=1, description="Bucket receiving boxes and the manifest")
    manifest: str = Field(min_length=1, description="Key of the manifest document")
    box_name: str = Field(min_length=1, description="Box name written into a new manifest")
    box_dir: str = Field(min_length=1, description="Key prefix for box files")
    version: str | None = Field(
        default=None,
        description="Explicit version; the next minor version is used when unset",
    )
    acl: str = Field(default=DEFAULT_ACL, description="Canned ACL for box and manifest")
    storage_class: str = Field(default=DEFAULT_STORAGE_CLASS, description="Box storage class")
    cloudfront: str | None = Field(default=None, description="CDN host serving the bucket")
    signed_expiry: timedelta | None = Field(
        default=None, description="Validity of presigned box URLs"
    )
    part_size: int | None = Field(
        default=None, ge=MIN_PART_SIZE, description="Multipart part size in bytes"
    )
    concurrency: int | None = Field(default=None, ge=1, description="Parts uploaded at once")

    # Credential knobs, passed through to the store factory untouched
    access_key_id: str | None = Field(default=None, repr=False)
    secret_key: str | None = Field(default=None, repr=False)
    session_token: str | None = Field(default=None, repr=False)
    profile: str | None = None
    credentials: str | None = Field(default=None, description="Shared credentials file")

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        if not REGION_PATTERN.match(v):
            raise ValueError(f"{v!r} is not a valid region name")
        return v

    @field_validator("box_dir")
    @classmethod
    def strip_box_dir(cls, v: str) -> str:
        stripped = v.strip("/")
        if not stripped:
            raise ValueError("box_dir must not be empty")
        return stripped

    @field_validator("version", "cloudfront")
    @classmethod
    def empty_as_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("acl")
    @classmethod
    def validate_acl(cls, v: str) -> str:
        if v not in CANNED_ACLS:
            raise ValueError(f"unknown ACL {v!r}, expected one of {sorted(CANNED_ACLS)}")
        return v

    @field_validator("storage_class")
    @classmethod
    def validate_storage_class(cls, v: str) -> str:
        if v not in STORAGE_CLASSES:
            raise ValueError(
                f"unknown storage class {v!r}, expected one of {sorted(STORAGE_CLASSES)}"
            )
        return v

    @field_validator("signed_expiry")
    @classmethod
    def validate_signed_expiry(cls, v: timedelta | None) -> timedelta | None:
        if v is not None and v.total_seconds() <= 0:
            raise ValueError("signed_expiry must be positive")
        return v

    @model_validator(mode="after")
    def exclusive_url_knobs(self) -> PublishConfig:
        if self.cloudfront and self.signed_expiry is not None:
            raise ValueError("cloudfront and signed_expiry are mutually exclusive")
        return self


def format_validation_errors(error: ValidationError) -> list[str]:
    """Render pydantic errors as one line per problem."""
    lines: list[str] = []
    for item in error.errors():
        field_path = ".".join(str(p) for p in item["loc"])
        if item["type"] == "missing":
            lines.append(f"{field_path} must be set")
        elif field_path:
            lines.append(f"{field_path}: {item['msg']}")
        else:
            lines.append(str(item["msg"]))
    return lines


def configure(
    raw: Mapping[str, Any],
    store_factory: Callable[[PublishConfig], ObjectStore],
) -> tuple[PublishConfig, ObjectStore]:
    """Validate raw settings and check bucket access.

    Args:
        raw: Settings mapping (from YAML and/or command-line flags).
        store_factory: Builds the object store for a valid config.

    Returns:
        Tuple of (config, store).

    Raises:
        ConfigurationError: With every problem found.
    """
    try:
        config = PublishConfig.model_validate(dict(raw))
    except ValidationError as e:
        raise ConfigurationError(format_validation_errors(e)) from e

    try:
        store = store_factory(config)
        store.head_bucket()
    except ObjectStoreError as e:
        msg = (
            f"Unable to access the bucket {config.bucket}: {e}. "
            "Make sure your credentials are valid and have sufficient permissions"
        )
        raise ConfigurationError([msg]) from e
    return config, store
