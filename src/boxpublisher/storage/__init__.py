"""Object store capability and its implementations."""

from boxpublisher.storage.base import (
    MAX_UPLOAD_PARTS,
    MIB,
    MIN_PART_SIZE,
    CompletedPart,
    ObjectNotFoundError,
    ObjectStore,
    ObjectStoreError,
)
from boxpublisher.storage.memory import InMemoryObjectStore
from boxpublisher.storage.s3 import S3ObjectStore, build_s3_client

__all__ = [
    "MAX_UPLOAD_PARTS",
    "MIB",
    "MIN_PART_SIZE",
    "CompletedPart",
    "InMemoryObjectStore",
    "ObjectNotFoundError",
    "ObjectStore",
    "ObjectStoreError",
    "S3ObjectStore",
    "build_s3_client",
]
