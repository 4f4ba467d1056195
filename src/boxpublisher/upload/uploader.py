"""Box upload pipeline.

Small boxes go up in a single put. Boxes above the multipart threshold are
split into fixed-size parts that are uploaded on a bounded thread pool:

1. create_multipart_upload
2. each part is read from its own byte offset and uploaded, retrying the
   same offset on failure up to RetryPolicy.max_attempts
3. complete_multipart_upload with parts sorted by part number

If any part exhausts its attempts the upload is aborted and never completed.
"""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from boxpublisher.storage.base import MIB, CompletedPart, ObjectStoreError
from boxpublisher.upload.retry import PartAttempts, RetryPolicy

if TYPE_CHECKING:
    from boxpublisher.storage.base import ObjectStore
    from boxpublisher.upload.metrics import UploadMetrics

logger = logging.getLogger(__name__)

DEFAULT_MULTIPART_THRESHOLD = 100 * MIB
DEFAULT_CONCURRENCY = 5


class UploadError(Exception):
    """Raised when a box cannot be uploaded."""

    def __init__(self, message: str, *, bucket: str, key: str) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.key = key


class PartUploadError(UploadError):
    """Raised when a multipart part fails on every attempt."""

    def __init__(
        self, message: str, *, bucket: str, key: str, part_number: int, attempts: int
    ) -> None:
        super().__init__(message, bucket=bucket, key=key)
        self.part_number = part_number
        self.attempts = attempts


@dataclass(frozen=True)
class UploaderConfig:
    """Upload tunables.

    Attributes:
        part_size: Multipart part size in bytes (store default when None).
        concurrency: Parts in flight at once.
        multipart_threshold: Boxes larger than this use multipart upload.
        retry: Per-part retry policy.
    """

    part_size: int | None = None
    concurrency: int = DEFAULT_CONCURRENCY
    multipart_threshold: int = DEFAULT_MULTIPART_THRESHOLD
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        if self.part_size is not None and self.part_size <= 0:
            raise ValueError(f"part_size must be > 0, got {self.part_size}")
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.multipart_threshold < 0:
            raise ValueError(f"multipart_threshold must be >= 0, got {self.multipart_threshold}")


@dataclass(frozen=True)
class PartPlan:
    """Byte range of one part."""

    part_number: int
    offset: int
    size: int


class PartSource:
    """Shared read handle; every read seeks to an absolute offset first."""

    def __init__(self, fileobj: BinaryIO) -> None:
        self._file = fileobj
        self._lock = threading.Lock()

    def read_part(self, offset: int, size: int) -> bytes:
        with self._lock:
            self._file.seek(offset)
            return self._file.read(size)


def plan_parts(total_size: int, part_size: int) -> list[PartPlan]:
    """Split total_size bytes into 1-numbered parts of part_size bytes."""
    plans: list[PartPlan] = []
    offset = 0
    part_number = 1
    while offset < total_size:
        size = min(part_size, total_size - offset)
        plans.append(PartPlan(part_number=part_number, offset=offset, size=size))
        offset += size
        part_number += 1
    return plans


class BoxUploader:
    """Uploads a local box file to an object store key.

    Usage:
        uploader = BoxUploader(store, UploaderConfig(part_size=16 * MIB, concurrency=4))
        uploader.upload(Path("output/base.box"), "base/0.1.0/base.box",
                        acl="public-read", storage_class="STANDARD")
    """

    def __init__(
        self,
        store: ObjectStore,
        config: UploaderConfig | None = None,
        *,
        metrics: UploadMetrics | None = None,
    ) -> None:
        self._store = store
        self._config = config or UploaderConfig()
        self._metrics = metrics

    @property
    def config(self) -> UploaderConfig:
        return self._config

    def part_size_for(self, total_size: int) -> int:
        """Part size for a box, grown when the part count would exceed the store limit."""
        part_size = self._config.part_size or self._store.default_part_size
        max_parts = self._store.max_upload_parts
        if math.ceil(total_size / part_size) > max_parts:
            part_size = math.ceil(total_size / max_parts)
        return part_size

    def upload(
        self, path: Path | str, key: str, *, acl: str, storage_class: str | None = None
    ) -> None:
        """Upload a box file.

        Raises:
            OSError: If the file cannot be read.
            UploadError: If the store rejects the upload.
        """
        path = Path(path)
        size = path.stat().st_size
        with path.open("rb") as f:
            self.upload_fileobj(f, key, size, acl=acl, storage_class=storage_class)

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        size: int,
        *,
        acl: str,
        storage_class: str | None = None,
    ) -> None:
        """Upload the first `size` bytes of a seekable binary file object.

        Reads start at offset 0 regardless of the current position.

        Raises:
            OSError: If the file cannot be read.
            UploadError: If the store rejects the upload.
        """
        try:
            if size > self._config.multipart_threshold:
                self._upload_multipart(fileobj, key, size, acl=acl, storage_class=storage_class)
            else:
                self._upload_single(fileobj, key, size, acl=acl, storage_class=storage_class)
        except Exception:
            if self._metrics:
                self._metrics.record_failure()
            raise

    def _upload_single(
        self, fileobj: BinaryIO, key: str, size: int, *, acl: str, storage_class: str | None
    ) -> None:
        logger.info(
            "Uploading box in a single request",
            extra={"bucket": self._store.bucket, "key": key, "size_bytes": size},
        )
        body = PartSource(fileobj).read_part(0, size)
        try:
            self._store.put_object(key, body, acl=acl, storage_class=storage_class)
        except ObjectStoreError as e:
            msg = f"Failed to upload s3://{self._store.bucket}/{key}: {e}"
            raise UploadError(msg, bucket=self._store.bucket, key=key) from e
        if self._metrics:
            self._metrics.record_single_put(len(body))

    def _upload_multipart(
        self, fileobj: BinaryIO, key: str, size: int, *, acl: str, storage_class: str | None
    ) -> None:
        bucket = self._store.bucket
        part_size = self.part_size_for(size)
        plans = plan_parts(size, part_size)
        logger.info(
            "Uploading box in parts",
            extra={
                "bucket": bucket,
                "key": key,
                "size_bytes": size,
                "part_size": part_size,
                "part_count": len(plans),
                "concurrency": self._config.concurrency,
            },
        )

        try:
            upload_id = self._store.create_multipart_upload(
                key, acl=acl, storage_class=storage_class
            )
        except ObjectStoreError as e:
            msg = f"Failed to start multipart upload for s3://{bucket}/{key}: {e}"
            raise UploadError(msg, bucket=bucket, key=key) from e

        source = PartSource(fileobj)
        try:
            parts = self._upload_parts(source, key, upload_id, plans)
        except Exception:
            self._abort(key, upload_id)
            raise

        try:
            self._store.complete_multipart_upload(key, upload_id, parts)
        except ObjectStoreError as e:
            self._abort(key, upload_id)
            msg = f"Failed to complete multipart upload for s3://{bucket}/{key}: {e}"
            raise UploadError(msg, bucket=bucket, key=key) from e

        if self._metrics:
            self._metrics.record_multipart_complete()

    def _upload_parts(
        self, source: PartSource, key: str, upload_id: str, plans: list[PartPlan]
    ) -> list[CompletedPart]:
        """Upload all parts and return them in part number order."""
        with ThreadPoolExecutor(
            max_workers=self._config.concurrency, thread_name_prefix="box-part"
        ) as pool:
            futures = [
                pool.submit(self._upload_part, source, key, upload_id, plan) for plan in plans
            ]
            done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
            for future in not_done:
                future.cancel()
            for future in futures:
                if future in done and future.exception() is not None:
                    raise future.exception()  # type: ignore[misc]

        # all futures are done at this point; sort by sequence, not completion
        completed = [f.result() for f in futures]
        return sorted(completed, key=lambda p: p.part_number)

    def _upload_part(
        self, source: PartSource, key: str, upload_id: str, plan: PartPlan
    ) -> CompletedPart:
        retry = self._config.retry
        attempts = PartAttempts(part_number=plan.part_number)
        while True:
            attempts.record_attempt()
            body = source.read_part(plan.offset, plan.size)
            try:
                etag = self._store.upload_part(key, upload_id, plan.part_number, body)
            except ObjectStoreError as e:
                attempts.record_error(e)
                if not retry.can_retry(attempts.attempt):
                    msg = (
                        f"Part {plan.part_number} of s3://{self._store.bucket}/{key} failed "
                        f"after {attempts.attempt} attempts: {e}"
                    )
                    raise PartUploadError(
                        msg,
                        bucket=self._store.bucket,
                        key=key,
                        part_number=plan.part_number,
                        attempts=attempts.attempt,
                    ) from e
                logger.warning(
                    "Part upload failed, retrying",
                    extra={
                        "key": key,
                        "part_number": plan.part_number,
                        "attempt": attempts.attempt,
                        "offset": plan.offset,
                        "delay_s": retry.delay_s,
                        "error": str(e),
                    },
                )
                if self._metrics:
                    self._metrics.record_retry()
                retry.wait()
                continue

            if self._metrics:
                self._metrics.record_part(len(body))
            return CompletedPart(part_number=plan.part_number, etag=etag, size=len(body))

    def _abort(self, key: str, upload_id: str) -> None:
        """Abort a multipart upload; failures are logged, not raised."""
        logger.warning(
            "Aborting multipart upload",
            extra={"bucket": self._store.bucket, "key": key, "upload_id": upload_id},
        )
        try:
            self._store.abort_multipart_upload(key, upload_id)
        except ObjectStoreError as e:
            logger.error(
                "Failed to abort multipart upload",
                extra={"bucket": self._store.bucket, "key": key, "upload_id": upload_id, "error": str(e)},
            )
