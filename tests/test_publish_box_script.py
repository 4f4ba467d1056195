"""
Tests for scripts/publish_box.py settings handling and exit codes.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from boxpublisher.publish import ConfigurationError
from boxpublisher.storage import InMemoryObjectStore, ObjectStoreError
from scripts import publish_box
from scripts.publish_box import build_parser, load_config_file, main, merge_settings

if TYPE_CHECKING:
    from pathlib import Path


class TestLoadConfigFile:
    """Tests for load_config_file."""

    def test_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "publish.yaml"
        path.write_text("region: eu-west-1\nbucket: boxes\nconcurrency: 4\n")

        assert load_config_file(path) == {
            "region": "eu-west-1",
            "bucket": "boxes",
            "concurrency": 4,
        }

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "publish.yaml"
        path.write_text("")

        assert load_config_file(path) == {}

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "publish.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            load_config_file(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "publish.yaml"
        path.write_text("region: [unclosed\n")

        with pytest.raises(ConfigurationError, match="invalid YAML"):
            load_config_file(path)


class TestMergeSettings:
    """Tests for merge_settings."""

    def test_flags_override_file(self) -> None:
        args = build_parser().parse_args(
            ["--box", "b.box", "--provider", "virtualbox", "--bucket", "cli-bucket", "--concurrency", "8"]
        )

        merged = merge_settings({"bucket": "file-bucket", "region": "eu-west-1"}, args)

        assert merged == {"bucket": "cli-bucket", "region": "eu-west-1", "concurrency": 8}

    def test_unset_flags_ignored(self) -> None:
        args = build_parser().parse_args(["--box", "b.box", "--provider", "virtualbox"])

        assert merge_settings({"acl": "private"}, args) == {"acl": "private"}


class TestMain:
    """Tests for main exit codes."""

    def test_missing_settings_exit_2(self, tmp_path: Path) -> None:
        box = tmp_path / "b.box"
        box.write_bytes(b"box")

        assert main(["--box", str(box), "--provider", "virtualbox"]) == 2

    def test_bad_config_file_exit_2(self, tmp_path: Path) -> None:
        box = tmp_path / "b.box"
        box.write_bytes(b"box")

        code = main(
            ["--config", str(tmp_path / "absent.yaml"), "--box", str(box), "--provider", "virtualbox"]
        )

        assert code == 2


class TestMainPublish:
    """Tests for main with an in-memory store in place of S3."""

    SETTINGS = [
        "--region", "us-east-1",
        "--bucket", "boxes",
        "--manifest", "base/manifest.json",
        "--box-name", "acme/base",
        "--box-dir", "base",
    ]  # fmt: skip

    def test_publish_exit_0(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A successful publish prints the manifest URL and exits 0."""
        box = tmp_path / "b.box"
        box.write_bytes(b"box")
        store = InMemoryObjectStore(bucket="boxes")
        monkeypatch.setattr(publish_box, "s3_store_factory", lambda config: store)

        code = main([*self.SETTINGS, "--box", str(box), "--provider", "vmware"])

        assert code == 0
        assert "Vagrant manifest url: https://s3.amazonaws.com/boxes/base/manifest.json" in (
            capsys.readouterr().out
        )
        assert store.get_object("base/0.1.0/b.box") == b"box"

    def test_upload_failure_exit_1(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A store failure during publish exits 1 and writes no manifest."""

        class RejectingStore(InMemoryObjectStore):
            def put_object(self, key, body, *, acl, content_type=None, storage_class=None):  # type: ignore[no-untyped-def]
                raise ObjectStoreError("AccessDenied", bucket=self.bucket, key=key)

        box = tmp_path / "b.box"
        box.write_bytes(b"box")
        store = RejectingStore(bucket="boxes")
        monkeypatch.setattr(publish_box, "s3_store_factory", lambda config: store)

        code = main([*self.SETTINGS, "--box", str(box), "--provider", "virtualbox"])

        assert code == 1
        assert store.objects == {}

    def test_invalid_box_exit_2(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A file that is not a .box exits 2."""
        disk = tmp_path / "disk.vmdk"
        disk.write_bytes(b"disk")
        monkeypatch.setattr(
            publish_box, "s3_store_factory", lambda config: InMemoryObjectStore(bucket="boxes")
        )

        assert main([*self.SETTINGS, "--box", str(disk), "--provider", "virtualbox"]) == 2
