"""Public URL policies for published objects.

Exactly one policy is chosen from the configuration:
- PlainUrl: path-style bucket URL
- CdnUrl: https://{cdn host}/{key}
- PresignedUrl: time-limited signed GET URL
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta  # noqa: TC003 - dataclass field type
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from boxpublisher.publish.config import PublishConfig
    from boxpublisher.storage.base import ObjectStore

US_EAST_1 = "us-east-1"


def generate_s3_url(region: str, bucket: str, key: str) -> str:
    """Path-style public URL of an S3 object."""
    if region == US_EAST_1:
        return f"https://s3.amazonaws.com/{bucket}/{key}"
    return f"https://s3-{region}.amazonaws.com/{bucket}/{key}"


@dataclass(frozen=True)
class PlainUrl:
    """Unsigned bucket URL."""

    def resolve(self, store: ObjectStore, key: str) -> str:
        return generate_s3_url(store.region, store.bucket, key)


@dataclass(frozen=True)
class CdnUrl:
    """URL under a CDN host that fronts the bucket."""

    host: str

    def resolve(self, store: ObjectStore, key: str) -> str:
        host = self.host.removeprefix("https://").removeprefix("http://").rstrip("/")
        return f"https://{host}/{key}"


@dataclass(frozen=True)
class PresignedUrl:
    """Signed URL valid for expires_in."""

    expires_in: timedelta

    def resolve(self, store: ObjectStore, key: str) -> str:
        return store.presign(key, self.expires_in)


UrlPolicy = PlainUrl | CdnUrl | PresignedUrl


def url_policy_from_config(config: PublishConfig) -> UrlPolicy:
    """Policy for box URLs."""
    if config.signed_expiry is not None:
        return PresignedUrl(expires_in=config.signed_expiry)
    if config.cloudfront:
        return CdnUrl(host=config.cloudfront)
    return PlainUrl()


def manifest_url_policy(config: PublishConfig) -> UrlPolicy:
    """Policy for the manifest URL; never presigned."""
    if config.cloudfront:
        return CdnUrl(host=config.cloudfront)
    return PlainUrl()
