"""In-memory object store for dry runs and tests."""

from __future__ import annotations

import hashlib
import threading
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, BinaryIO

from boxpublisher.storage.base import ObjectNotFoundError, ObjectStore, ObjectStoreError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import timedelta

    from boxpublisher.storage.base import CompletedPart


@dataclass
class StoredObject:
    """Object body plus the metadata it was written with."""

    body: bytes
    acl: str
    content_type: str | None = None
    storage_class: str | None = None


@dataclass
class _PendingUpload:
    key: str
    acl: str
    storage_class: str | None
    parts: dict[int, bytes] = field(default_factory=dict)


class InMemoryObjectStore(ObjectStore):
    """Dict-backed store that behaves like a single S3 bucket.

    Thread-safe: multipart parts may be uploaded from worker threads.
    """

    def __init__(
        self,
        bucket: str = "boxes",
        region: str = "us-east-1",
        *,
        default_part_size: int | None = None,
        accessible: bool = True,
    ) -> None:
        self._bucket = bucket
        self._region = region
        self._accessible = accessible
        self._lock = threading.Lock()
        self.objects: dict[str, StoredObject] = {}
        self.pending: dict[str, _PendingUpload] = {}
        self.aborted: list[str] = []
        if default_part_size is not None:
            self.default_part_size = default_part_size

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def region(self) -> str:
        return self._region

    def head_bucket(self) -> None:
        if not self._accessible:
            msg = f"Bucket {self._bucket} is not accessible"
            raise ObjectStoreError(msg, bucket=self._bucket)

    def get_object(self, key: str) -> bytes:
        with self._lock:
            stored = self.objects.get(key)
        if stored is None:
            msg = f"GetObject failed: s3://{self._bucket}/{key} not found"
            raise ObjectNotFoundError(msg, bucket=self._bucket, key=key)
        return stored.body

    def put_object(
        self,
        key: str,
        body: bytes | BinaryIO,
        *,
        acl: str,
        content_type: str | None = None,
        storage_class: str | None = None,
    ) -> None:
        data = body if isinstance(body, bytes) else body.read()
        with self._lock:
            self.objects[key] = StoredObject(
                body=data, acl=acl, content_type=content_type, storage_class=storage_class
            )

    def create_multipart_upload(self, key: str, *, acl: str, storage_class: str | None = None) -> str:
        upload_id = uuid.uuid4().hex
        with self._lock:
            self.pending[upload_id] = _PendingUpload(key=key, acl=acl, storage_class=storage_class)
        return upload_id

    def _pending_upload(self, key: str, upload_id: str) -> _PendingUpload:
        upload = self.pending.get(upload_id)
        if upload is None or upload.key != key:
            msg = f"No such multipart upload {upload_id} for {key}"
            raise ObjectStoreError(msg, bucket=self._bucket, key=key)
        return upload

    def upload_part(self, key: str, upload_id: str, part_number: int, body: bytes) -> str:
        with self._lock:
            self._pending_upload(key, upload_id).parts[part_number] = bytes(body)
        return f'"{hashlib.md5(body).hexdigest()}"'  # noqa: S324 - etag, not security

    def complete_multipart_upload(
        self, key: str, upload_id: str, parts: Sequence[CompletedPart]
    ) -> None:
        with self._lock:
            upload = self._pending_upload(key, upload_id)
            numbers = [p.part_number for p in parts]
            if numbers != sorted(numbers):
                msg = f"Parts must be listed in ascending order, got {numbers}"
                raise ObjectStoreError(msg, bucket=self._bucket, key=key)
            missing = [n for n in numbers if n not in upload.parts]
            if missing:
                msg = f"Parts {missing} were never uploaded"
                raise ObjectStoreError(msg, bucket=self._bucket, key=key)
            body = b"".join(upload.parts[n] for n in numbers)
            self.objects[key] = StoredObject(
                body=body, acl=upload.acl, storage_class=upload.storage_class
            )
            del self.pending[upload_id]

    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        with self._lock:
            self._pending_upload(key, upload_id)
            del self.pending[upload_id]
            self.aborted.append(upload_id)

    def presign(self, key: str, expires_in: timedelta) -> str:
        expires = int(expires_in.total_seconds())
        return f"https://{self._bucket}.s3.amazonaws.com/{key}?X-Amz-Expires={expires}"
