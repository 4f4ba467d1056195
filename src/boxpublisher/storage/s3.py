"""S3 object store adapter built on boto3.

Credentials are resolved once when the client is built:
- static keys when both access_key_id and secret_key are given
- a shared credentials file and/or profile when either is given
- otherwise the default boto3 chain (environment, instance profile, ...)
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, BinaryIO

import boto3
import botocore.session
from botocore.exceptions import BotoCoreError, ClientError

from boxpublisher.storage.base import ObjectNotFoundError, ObjectStore, ObjectStoreError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import timedelta

    from boxpublisher.storage.base import CompletedPart

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


def build_s3_client(
    region: str,
    *,
    access_key_id: str | None = None,
    secret_key: str | None = None,
    session_token: str | None = None,
    profile: str | None = None,
    credentials_file: str | None = None,
) -> Any:
    """Build an S3 client using the first matching credential source.

    Args:
        region: AWS region name.
        access_key_id: Static access key id.
        secret_key: Static secret access key.
        session_token: Optional session token for static keys.
        profile: Shared credentials profile name.
        credentials_file: Path to a shared credentials file.

    Returns:
        boto3 S3 client.

    Raises:
        ObjectStoreError: If the credential source cannot be loaded
            (e.g. unknown profile).
    """
    try:
        if access_key_id and secret_key:
            logger.debug("Using static credentials", extra={"region": region})
            session = boto3.session.Session(
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_key,
                aws_session_token=session_token or os.environ.get("AWS_SESSION_TOKEN"),
                region_name=region,
            )
        elif profile or credentials_file:
            logger.debug(
                "Using shared credentials", extra={"region": region, "profile_name": profile}
            )
            core_session = botocore.session.get_session()
            if credentials_file:
                core_session.set_config_variable("credentials_file", credentials_file)
            session = boto3.session.Session(
                botocore_session=core_session, profile_name=profile, region_name=region
            )
        else:
            logger.debug("Using default credential chain", extra={"region": region})
            session = boto3.session.Session(region_name=region)
        return session.client("s3")
    except BotoCoreError as e:
        msg = f"Unable to load AWS credentials: {e}"
        raise ObjectStoreError(msg) from e


class S3ObjectStore(ObjectStore):
    """Object store backed by an S3 bucket.

    Usage::

        store = S3ObjectStore(bucket="boxes", region="eu-west-1")
        store.head_bucket()
        store.put_object("base/manifest.json", b"{}", acl="private")
    """

    def __init__(self, bucket: str, region: str, *, client: Any = None) -> None:
        self._bucket = bucket
        self._region = region
        self._client = client if client is not None else build_s3_client(region)

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def region(self) -> str:
        return self._region

    def _error(self, action: str, key: str | None, err: Exception) -> ObjectStoreError:
        """Translate a botocore error into a store error."""
        where = f"s3://{self._bucket}/{key}" if key else f"s3://{self._bucket}"
        if isinstance(err, ClientError):
            code = str(err.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES:
                return ObjectNotFoundError(
                    f"{action} failed: {where} not found", bucket=self._bucket, key=key
                )
        return ObjectStoreError(f"{action} failed for {where}: {err}", bucket=self._bucket, key=key)

    def head_bucket(self) -> None:
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except (ClientError, BotoCoreError) as e:
            raise self._error("HeadBucket", None, e) from e

    def get_object(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            body = response["Body"]
            try:
                data: bytes = body.read()
            finally:
                body.close()
        except (ClientError, BotoCoreError) as e:
            raise self._error("GetObject", key, e) from e
        return data

    def put_object(
        self,
        key: str,
        body: bytes | BinaryIO,
        *,
        acl: str,
        content_type: str | None = None,
        storage_class: str | None = None,
    ) -> None:
        params: dict[str, Any] = {"Bucket": self._bucket, "Key": key, "Body": body, "ACL": acl}
        if content_type:
            params["ContentType"] = content_type
        if storage_class:
            params["StorageClass"] = storage_class
        try:
            self._client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise self._error("PutObject", key, e) from e

    def create_multipart_upload(self, key: str, *, acl: str, storage_class: str | None = None) -> str:
        params: dict[str, Any] = {"Bucket": self._bucket, "Key": key, "ACL": acl}
        if storage_class:
            params["StorageClass"] = storage_class
        try:
            response = self._client.create_multipart_upload(**params)
        except (ClientError, BotoCoreError) as e:
            raise self._error("CreateMultipartUpload", key, e) from e
        upload_id: str = response["UploadId"]
        return upload_id

    def upload_part(self, key: str, upload_id: str, part_number: int, body: bytes) -> str:
        try:
            response = self._client.upload_part(
                Bucket=self._bucket,
                Key=key,
                UploadId=upload_id,
                PartNumber=part_number,
                Body=body,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._error(f"UploadPart {part_number}", key, e) from e
        etag: str = response["ETag"]
        return etag

    def complete_multipart_upload(
        self, key: str, upload_id: str, parts: Sequence[CompletedPart]
    ) -> None:
        try:
            self._client.complete_multipart_upload(
                Bucket=self._bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={
                    "Parts": [{"ETag": p.etag, "PartNumber": p.part_number} for p in parts]
                },
            )
        except (ClientError, BotoCoreError) as e:
            raise self._error("CompleteMultipartUpload", key, e) from e

    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        try:
            self._client.abort_multipart_upload(Bucket=self._bucket, Key=key, UploadId=upload_id)
        except (ClientError, BotoCoreError) as e:
            raise self._error("AbortMultipartUpload", key, e) from e

    def presign(self, key: str, expires_in: timedelta) -> str:
        try:
            url: str = self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=int(expires_in.total_seconds()),
            )
        except (ClientError, BotoCoreError) as e:
            raise self._error("Presign", key, e) from e
        return url
