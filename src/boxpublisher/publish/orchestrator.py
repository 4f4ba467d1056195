"""
Box publisher.

Publishes one box and records it in the manifest. Steps run in order and the
first failure aborts the rest; nothing already done is rolled back:

1. validate the input artifact
2. resolve the version (explicit, or next minor of the current manifest)
3. checksum the box
4. upload the box to {box_dir}/{version}/{basename}
5. fetch the manifest (a missing manifest starts an empty one)
6. add the provider entry (duplicate version+provider is fatal)
7. overwrite the manifest
8. return the manifest URL

The manifest read-modify-write is not conditional: two publishes racing on the
same manifest key can lose one update. Publishes to one manifest must be
serialized by the caller.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from boxpublisher.publish.artifact import BoxArtifact, ManifestArtifact, validate_box_artifact
from boxpublisher.publish.status import NullStatusSink, StatusSink
from boxpublisher.publish.urls import manifest_url_policy, url_policy_from_config
from boxpublisher.registry.checksum import compute_file_sha256
from boxpublisher.registry.manifest import (
    CHECKSUM_TYPE_SHA256,
    Manifest,
    Provider,
    dumps_manifest,
    loads_manifest,
)
from boxpublisher.storage.base import ObjectNotFoundError
from boxpublisher.upload.uploader import DEFAULT_CONCURRENCY, BoxUploader, UploaderConfig

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from boxpublisher.publish.config import PublishConfig
    from boxpublisher.storage.base import ObjectStore
    from boxpublisher.upload.metrics import UploadMetrics

logger = logging.getLogger(__name__)

MANIFEST_CONTENT_TYPE = "application/json"


class BoxPublisher:
    """
    Publishes boxes to an object store and maintains the manifest.

    Usage:
        config, store = configure(raw, store_factory)
        publisher = BoxPublisher(config, store, status=LoggingStatusSink())
        result = publisher.publish(BoxArtifact.from_box_file("out/base.box", "virtualbox"))
        print(result.url)
    """

    def __init__(
        self,
        config: PublishConfig,
        store: ObjectStore,
        *,
        status: StatusSink | None = None,
        uploader: BoxUploader | None = None,
        metrics: UploadMetrics | None = None,
        checksum_fn: Callable[[Path], str] = compute_file_sha256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._store = store
        self._status = status or NullStatusSink()
        self._uploader = uploader or BoxUploader(
            store,
            UploaderConfig(
                part_size=config.part_size,
                concurrency=config.concurrency or DEFAULT_CONCURRENCY,
            ),
            metrics=metrics,
        )
        self._checksum_fn = checksum_fn
        self._clock = clock
        self._box_url_policy = url_policy_from_config(config)
        self._manifest_url_policy = manifest_url_policy(config)

    def publish(self, artifact: BoxArtifact) -> ManifestArtifact:
        """Publish a box and return the manifest location.

        Raises:
            InvalidArtifactError: If the artifact is not a single .box file.
            OSError: If the box cannot be read.
            UploadError: If the box upload fails.
            ObjectStoreError: If the manifest cannot be read or written.
            ManifestValidationError: If the stored manifest is malformed.
            DuplicateProviderError: If the version already has this provider.
        """
        box = validate_box_artifact(artifact)
        provider = artifact.provider
        config = self._config

        self._status.say(
            f"Preparing to upload box for '{provider}' provider to S3 bucket '{config.bucket}'"
        )
        box_size = box.stat().st_size
        self._status.message(f"Box to upload: {box} ({box_size} bytes)")

        version = self.resolve_version()

        box_key = f"{config.box_dir}/{version}/{box.name}"
        logger.info(
            "Publishing box",
            extra={
                "bucket": config.bucket,
                "key": box_key,
                "provider": provider,
                "box_version": version,
            },
        )

        self._status.message("Generating checksum")
        checksum = self._checksum_fn(box)
        self._status.message(f"Checksum is {checksum}")

        uploader_config = self._uploader.config
        self._status.message(
            f"Uploading box to S3: {box_key}, "
            f"PartSize: {self._uploader.part_size_for(box_size)}, "
            f"Concurrency: {uploader_config.concurrency}"
        )
        start = self._clock()
        self._uploader.upload(box, box_key, acl=config.acl, storage_class=config.storage_class)
        elapsed = self._clock() - start
        self._status.message(f"Box upload took: {elapsed:.1f}s")

        self._status.message("Fetching latest manifest")
        manifest = self.fetch_manifest()

        self._status.message(f"Adding {provider} {version} box to manifest")
        url = self._box_url_policy.resolve(self._store, box_key)
        manifest.add(
            version,
            Provider(name=provider, url=url, checksum=checksum, checksum_type=CHECKSUM_TYPE_SHA256),
        )

        self._status.message(f"Uploading the manifest: {config.manifest}")
        self.put_manifest(manifest)

        manifest_url = self._manifest_url_policy.resolve(self._store, config.manifest)
        logger.info(
            "Published box",
            extra={
                "bucket": config.bucket,
                "provider": provider,
                "box_version": version,
                "upload_s": round(elapsed, 3),
            },
        )
        return ManifestArtifact(url=manifest_url)

    def resolve_version(self) -> str:
        """Explicit version from config, else the manifest's next version."""
        if self._config.version:
            version = self._config.version
            self._status.message(f"Using {version} as new version")
            return version

        version = str(self.fetch_manifest().next_version())
        self._status.message(f"No version defined, using {version} as new version")
        return version

    def fetch_manifest(self) -> Manifest:
        """Current manifest, or an empty one named after the box if none exists."""
        key = self._config.manifest
        try:
            content = self._store.get_object(key)
        except ObjectNotFoundError:
            logger.info(
                "No manifest found, starting a new one",
                extra={"bucket": self._config.bucket, "key": key},
            )
            return Manifest(name=self._config.box_name)

        manifest = loads_manifest(content, default_name=self._config.box_name)
        logger.debug(
            "Fetched manifest",
            extra={"key": key, "version_count": len(manifest.versions)},
        )
        return manifest

    def put_manifest(self, manifest: Manifest) -> None:
        """Overwrite the manifest document."""
        self._store.put_object(
            self._config.manifest,
            dumps_manifest(manifest),
            acl=self._config.acl,
            content_type=MANIFEST_CONTENT_TYPE,
        )
        logger.info(
            "Wrote manifest",
            extra={
                "bucket": self._config.bucket,
                "key": self._config.manifest,
                "version_count": len(manifest.versions),
            },
        )
