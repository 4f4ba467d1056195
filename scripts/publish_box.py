#!/usr/bin/env python3
"""
Publish a Vagrant box to S3 and update its manifest.

Settings come from an optional YAML file, overridden by command-line flags.

Usage:
    python scripts/publish_box.py --config publish.yaml --box output/base.box --provider virtualbox
    python scripts/publish_box.py --region eu-west-1 --bucket boxes --manifest base/manifest.json \\
        --box-name acme/base --box-dir base --box output/base.box --provider vmware

Exit codes: 0 published, 1 publish failed, 2 invalid configuration or input.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from boxpublisher.logging_config import setup_logging
from boxpublisher.publish import (
    BoxArtifact,
    BoxPublisher,
    ConfigurationError,
    InvalidArtifactError,
    LoggingStatusSink,
    PublishConfig,
    configure,
)
from boxpublisher.registry.manifest import ManifestError
from boxpublisher.storage import ObjectStoreError, S3ObjectStore, build_s3_client
from boxpublisher.upload import UploadError, UploadMetrics

logger = logging.getLogger(__name__)

# flag dest -> config key
CONFIG_FLAGS: tuple[str, ...] = (
    "region",
    "bucket",
    "manifest",
    "box_name",
    "box_dir",
    "version",
    "acl",
    "storage_class",
    "cloudfront",
    "signed_expiry",
    "part_size",
    "concurrency",
    "profile",
    "credentials",
)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load a YAML settings file as a dict (empty file -> {})."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError([f"{path}: {e.strerror or e}"]) from e
    except yaml.YAMLError as e:
        raise ConfigurationError([f"{path}: invalid YAML: {e}"]) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError([f"{path}: top level must be a mapping"])
    return data


def merge_settings(file_settings: dict[str, Any], args: argparse.Namespace) -> dict[str, Any]:
    """Overlay flags that were given on top of file settings."""
    merged = dict(file_settings)
    for name in CONFIG_FLAGS:
        value = getattr(args, name, None)
        if value is not None:
            merged[name] = value
    return merged


def s3_store_factory(config: PublishConfig) -> S3ObjectStore:
    """Build the S3 store with the configured credentials."""
    client = build_s3_client(
        config.region,
        access_key_id=config.access_key_id,
        secret_key=config.secret_key,
        session_token=config.session_token,
        profile=config.profile,
        credentials_file=config.credentials,
    )
    return S3ObjectStore(bucket=config.bucket, region=config.region, client=client)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Publish a Vagrant box to S3 and update its manifest.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--config", type=Path, help="YAML settings file")
    parser.add_argument("--box", type=Path, required=True, help="Path to the .box file")
    parser.add_argument(
        "--provider",
        required=True,
        help="Builder the box was built with (e.g. virtualbox, vmware)",
    )

    # Settings (override the YAML file)
    parser.add_argument("--region", help="Bucket region")
    parser.add_argument("--bucket", help="Bucket name")
    parser.add_argument("--manifest", help="Manifest key")
    parser.add_argument("--box-name", dest="box_name", help="Box name for a new manifest")
    parser.add_argument("--box-dir", dest="box_dir", help="Key prefix for box files")
    parser.add_argument("--version", help="Explicit box version (default: next minor)")
    parser.add_argument("--acl", help="Canned ACL (default: public-read)")
    parser.add_argument("--storage-class", dest="storage_class", help="Storage class")
    parser.add_argument("--cloudfront", help="CDN host serving the bucket")
    parser.add_argument(
        "--signed-expiry",
        dest="signed_expiry",
        type=int,
        help="Presign box URLs for this many seconds",
    )
    parser.add_argument("--part-size", dest="part_size", type=int, help="Part size in bytes")
    parser.add_argument("--concurrency", type=int, help="Parts uploaded at once")
    parser.add_argument("--profile", help="Shared credentials profile")
    parser.add_argument("--credentials", help="Shared credentials file")

    # Logging
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level.upper(), json_format=args.log_json)

    try:
        file_settings = load_config_file(args.config) if args.config else {}
        config, store = configure(merge_settings(file_settings, args), s3_store_factory)
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    publisher = BoxPublisher(
        config,
        store,
        status=LoggingStatusSink(),
        metrics=UploadMetrics(),
    )

    try:
        result = publisher.publish(BoxArtifact.from_box_file(args.box, args.provider))
    except InvalidArtifactError as e:
        logger.error(str(e))
        return 2
    except (OSError, UploadError, ObjectStoreError, ManifestError) as e:
        logger.error("Publish failed: %s", e)
        return 1

    print(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
