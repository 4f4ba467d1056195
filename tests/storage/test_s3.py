"""Tests for the boto3 S3 adapter using botocore's Stubber."""

from __future__ import annotations

import io
from datetime import timedelta
from typing import Any

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from boxpublisher.storage import (
    CompletedPart,
    ObjectNotFoundError,
    ObjectStoreError,
    S3ObjectStore,
    build_s3_client,
)


@pytest.fixture
def client() -> Any:
    return boto3.client(
        "s3",
        region_name="eu-west-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def store(client: Any) -> S3ObjectStore:
    return S3ObjectStore(bucket="boxes", region="eu-west-1", client=client)


class TestS3ObjectStore:
    """Tests for S3ObjectStore."""

    def test_head_bucket_ok(self, client: Any, store: S3ObjectStore) -> None:
        """Accessible bucket passes."""
        with Stubber(client) as stub:
            stub.add_response("head_bucket", {}, {"Bucket": "boxes"})
            store.head_bucket()
            stub.assert_no_pending_responses()

    def test_head_bucket_forbidden(self, client: Any, store: S3ObjectStore) -> None:
        """403 becomes ObjectStoreError naming the bucket."""
        with Stubber(client) as stub:
            stub.add_client_error("head_bucket", service_error_code="403", http_status_code=403)
            with pytest.raises(ObjectStoreError) as exc_info:
                store.head_bucket()

        assert not isinstance(exc_info.value, ObjectNotFoundError)
        assert exc_info.value.bucket == "boxes"

    def test_get_object(self, client: Any, store: S3ObjectStore) -> None:
        """Returns the object body."""
        body = StreamingBody(io.BytesIO(b'{"name": "x"}'), len(b'{"name": "x"}'))
        with Stubber(client) as stub:
            stub.add_response(
                "get_object", {"Body": body}, {"Bucket": "boxes", "Key": "base/manifest.json"}
            )
            assert store.get_object("base/manifest.json") == b'{"name": "x"}'

    def test_get_object_no_such_key(self, client: Any, store: S3ObjectStore) -> None:
        """NoSuchKey becomes ObjectNotFoundError."""
        with Stubber(client) as stub:
            stub.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
            with pytest.raises(ObjectNotFoundError) as exc_info:
                store.get_object("base/manifest.json")

        assert exc_info.value.key == "base/manifest.json"

    def test_get_object_other_error(self, client: Any, store: S3ObjectStore) -> None:
        """Other errors are not treated as not found."""
        with Stubber(client) as stub:
            stub.add_client_error(
                "get_object", service_error_code="AccessDenied", http_status_code=403
            )
            with pytest.raises(ObjectStoreError) as exc_info:
                store.get_object("base/manifest.json")

        assert not isinstance(exc_info.value, ObjectNotFoundError)

    def test_put_object_params(self, client: Any, store: S3ObjectStore) -> None:
        """ACL, content type and storage class are forwarded."""
        with Stubber(client) as stub:
            stub.add_response(
                "put_object",
                {"ETag": '"abc"'},
                {
                    "Bucket": "boxes",
                    "Key": "base/manifest.json",
                    "Body": ANY,
                    "ACL": "public-read",
                    "ContentType": "application/json",
                    "StorageClass": "STANDARD",
                },
            )
            store.put_object(
                "base/manifest.json",
                b"{}",
                acl="public-read",
                content_type="application/json",
                storage_class="STANDARD",
            )
            stub.assert_no_pending_responses()

    def test_multipart_calls(self, client: Any, store: S3ObjectStore) -> None:
        """Create, upload part and complete map to the S3 API."""
        with Stubber(client) as stub:
            stub.add_response(
                "create_multipart_upload",
                {"UploadId": "up-1"},
                {"Bucket": "boxes", "Key": "b.box", "ACL": "private", "StorageClass": "STANDARD"},
            )
            stub.add_response(
                "upload_part",
                {"ETag": '"e1"'},
                {"Bucket": "boxes", "Key": "b.box", "UploadId": "up-1", "PartNumber": 1, "Body": ANY},
            )
            stub.add_response(
                "complete_multipart_upload",
                {},
                {
                    "Bucket": "boxes",
                    "Key": "b.box",
                    "UploadId": "up-1",
                    "MultipartUpload": {"Parts": [{"ETag": '"e1"', "PartNumber": 1}]},
                },
            )

            upload_id = store.create_multipart_upload("b.box", acl="private", storage_class="STANDARD")
            etag = store.upload_part("b.box", upload_id, 1, b"data")
            store.complete_multipart_upload("b.box", upload_id, [CompletedPart(1, etag, 4)])
            stub.assert_no_pending_responses()

        assert upload_id == "up-1"
        assert etag == '"e1"'

    def test_upload_part_error(self, client: Any, store: S3ObjectStore) -> None:
        """Part failures become ObjectStoreError naming the part."""
        with Stubber(client) as stub:
            stub.add_client_error("upload_part", service_error_code="SlowDown", http_status_code=503)
            with pytest.raises(ObjectStoreError, match="UploadPart 3"):
                store.upload_part("b.box", "up-1", 3, b"data")

    def test_presign(self, store: S3ObjectStore) -> None:
        """Presigned URL targets the key and is signed."""
        url = store.presign("base/0.1.0/base.box", timedelta(minutes=10))

        assert url.startswith("https://")
        assert "base/0.1.0/base.box" in url
        assert "Signature" in url


class TestBuildS3Client:
    """Tests for credential resolution."""

    def test_static_credentials(self) -> None:
        """Static keys are used when both are given."""
        client = build_s3_client("eu-west-1", access_key_id="AKID", secret_key="SECRET")
        creds = client._request_signer._credentials

        assert creds.access_key == "AKID"
        assert creds.secret_key == "SECRET"
        assert client.meta.region_name == "eu-west-1"

    def test_shared_credentials_file(self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        """A credentials file and profile are used when given."""
        creds_file = tmp_path / "credentials"
        creds_file.write_text(
            "[publisher]\naws_access_key_id = FILEKEY\naws_secret_access_key = FILESECRET\n"
        )
        monkeypatch.delenv("AWS_SHARED_CREDENTIALS_FILE", raising=False)

        client = build_s3_client(
            "us-east-1", profile="publisher", credentials_file=str(creds_file)
        )

        assert client._request_signer._credentials.access_key == "FILEKEY"
