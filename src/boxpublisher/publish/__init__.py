"""
Box publishing.

Validates a built box, uploads it, and records it in the manifest.
"""

from __future__ import annotations

from boxpublisher.publish.artifact import (
    BoxArtifact,
    InvalidArtifactError,
    ManifestArtifact,
    provider_from_builder_name,
    validate_box_artifact,
)
from boxpublisher.publish.config import ConfigurationError, PublishConfig, configure
from boxpublisher.publish.orchestrator import BoxPublisher
from boxpublisher.publish.status import LoggingStatusSink, NullStatusSink, StatusSink
from boxpublisher.publish.urls import (
    CdnUrl,
    PlainUrl,
    PresignedUrl,
    UrlPolicy,
    generate_s3_url,
    url_policy_from_config,
)

__all__ = [
    "BoxArtifact",
    "BoxPublisher",
    "CdnUrl",
    "ConfigurationError",
    "InvalidArtifactError",
    "LoggingStatusSink",
    "ManifestArtifact",
    "NullStatusSink",
    "PlainUrl",
    "PresignedUrl",
    "PublishConfig",
    "StatusSink",
    "UrlPolicy",
    "configure",
    "generate_s3_url",
    "provider_from_builder_name",
    "url_policy_from_config",
    "validate_box_artifact",
]
