"""Object store capability consumed by the upload pipeline and publisher.

A store is bound to one bucket. Implementations translate their backend's
errors into ObjectStoreError / ObjectNotFoundError so callers never see
backend-specific exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import timedelta

MIB = 1024 * 1024

# S3 multipart limits
MIN_PART_SIZE = 5 * MIB
MAX_UPLOAD_PARTS = 10_000


class ObjectStoreError(Exception):
    """Raised when an object store operation fails."""

    def __init__(self, message: str, *, bucket: str | None = None, key: str | None = None) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.key = key


class ObjectNotFoundError(ObjectStoreError):
    """Raised when a key does not exist in the bucket."""


@dataclass(frozen=True)
class CompletedPart:
    """Acknowledged part of a multipart upload.

    Attributes:
        part_number: 1-based sequence number.
        etag: Entity tag returned by the store.
        size: Number of bytes in the part.
    """

    part_number: int
    etag: str
    size: int


class ObjectStore(ABC):
    """Abstract object store bound to a single bucket."""

    default_part_size: int = 8 * MIB
    max_upload_parts: int = MAX_UPLOAD_PARTS

    @property
    @abstractmethod
    def bucket(self) -> str:
        """Bucket this store writes to."""
        ...

    @property
    @abstractmethod
    def region(self) -> str:
        """Region of the bucket."""
        ...

    @abstractmethod
    def head_bucket(self) -> None:
        """Check that the bucket exists and is accessible.

        Raises:
            ObjectStoreError: If the bucket cannot be accessed.
        """
        ...

    @abstractmethod
    def get_object(self, key: str) -> bytes:
        """Read a whole object.

        Raises:
            ObjectNotFoundError: If the key does not exist.
        """
        ...

    @abstractmethod
    def put_object(
        self,
        key: str,
        body: bytes | BinaryIO,
        *,
        acl: str,
        content_type: str | None = None,
        storage_class: str | None = None,
    ) -> None:
        """Write a whole object in a single request."""
        ...

    @abstractmethod
    def create_multipart_upload(self, key: str, *, acl: str, storage_class: str | None = None) -> str:
        """Start a multipart upload and return its upload id."""
        ...

    @abstractmethod
    def upload_part(self, key: str, upload_id: str, part_number: int, body: bytes) -> str:
        """Upload one part and return its etag."""
        ...

    @abstractmethod
    def complete_multipart_upload(
        self, key: str, upload_id: str, parts: Sequence[CompletedPart]
    ) -> None:
        """Join uploaded parts, listed in part number order, into the object."""
        ...

    @abstractmethod
    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        """Discard a multipart upload and its uploaded parts."""
        ...

    @abstractmethod
    def presign(self, key: str, expires_in: timedelta) -> str:
        """Generate a time-limited GET URL for a key."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(bucket={self.bucket!r}, region={self.region!r})"
