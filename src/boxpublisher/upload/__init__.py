"""Resilient box upload pipeline (single put or retried multipart)."""

from boxpublisher.upload.metrics import UploadMetrics
from boxpublisher.upload.retry import RetryPolicy
from boxpublisher.upload.uploader import (
    DEFAULT_CONCURRENCY,
    DEFAULT_MULTIPART_THRESHOLD,
    BoxUploader,
    PartSource,
    PartUploadError,
    UploaderConfig,
    UploadError,
    plan_parts,
)

__all__ = [
    "DEFAULT_CONCURRENCY",
    "DEFAULT_MULTIPART_THRESHOLD",
    "BoxUploader",
    "PartSource",
    "PartUploadError",
    "RetryPolicy",
    "UploadError",
    "UploadMetrics",
    "UploaderConfig",
    "plan_parts",
]
