"""Vagrant box manifest model.

The manifest is a single JSON document listing every published version of a
named box and, per version, one entry per provider:

    {
        "name": "acme/base",
        "versions": [
            {
                "version": "0.1.0",
                "providers": [
                    {
                        "name": "virtualbox",
                        "url": "https://s3.amazonaws.com/boxes/base/0.1.0/base.box",
                        "checksum_type": "sha256",
                        "checksum": "abc123..."
                    }
                ]
            }
        ]
    }

The document is always rewritten whole; order of versions and providers is
preserved across load/save.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import orjson

from boxpublisher.registry.version import SemVer, latest_version, next_version

CHECKSUM_TYPE_SHA256 = "sha256"


class ManifestError(Exception):
    """Base exception for manifest operations."""


class ManifestValidationError(ManifestError):
    """Raised when a manifest document is malformed."""


class DuplicateProviderError(ManifestError):
    """Raised when a provider is already published for a version."""

    def __init__(self, provider: str, version: str) -> None:
        super().__init__(f"{provider} box already exists in manifest for version {version}")
        self.provider = provider
        self.version = version


@dataclass
class Provider:
    """Single provider build of a box version.

    Attributes:
        name: Provider name (e.g. "virtualbox", "vmware_desktop").
        url: Download URL of the box file.
        checksum: Hex digest of the box file.
        checksum_type: Digest algorithm, always "sha256" here.
    """

    name: str
    url: str
    checksum: str
    checksum_type: str = CHECKSUM_TYPE_SHA256

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "url": self.url,
            "checksum_type": self.checksum_type,
            "checksum": self.checksum,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Provider:
        """Create from dictionary."""
        return cls(
            name=data["name"],
            url=data.get("url", ""),
            checksum=data.get("checksum", ""),
            checksum_type=data.get("checksum_type", CHECKSUM_TYPE_SHA256),
        )


@dataclass
class BoxVersion:
    """One release line of a box with its provider builds."""

    version: str
    providers: list[Provider] = field(default_factory=list)

    def get_provider(self, name: str) -> Provider | None:
        """Get provider by name."""
        for provider in self.providers:
            if provider.name == name:
                return provider
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "providers": [p.to_dict() for p in self.providers],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BoxVersion:
        """Create from dictionary."""
        return cls(
            version=data["version"],
            providers=[Provider.from_dict(p) for p in data.get("providers") or []],
        )


@dataclass
class Manifest:
    """Index of all published versions of a named box.

    Attributes:
        name: Box name, the manifest's identity.
        versions: Versions in insertion order.
    """

    name: str
    versions: list[BoxVersion] = field(default_factory=list)

    def get_version(self, version: str) -> BoxVersion | None:
        """Get version entry by exact string match."""
        for entry in self.versions:
            if entry.version == version:
                return entry
        return None

    @property
    def version_strings(self) -> list[str]:
        """All version strings in manifest order."""
        return [v.version for v in self.versions]

    def add(self, version: str, provider: Provider) -> None:
        """Add a provider build under a version.

        Appends to an existing version entry or creates a new one.

        Raises:
            DuplicateProviderError: If the version already has a provider with
                the same name. The manifest is left unchanged.
        """
        entry = self.get_version(version)
        if entry is None:
            self.versions.append(BoxVersion(version=version, providers=[provider]))
            return

        if entry.get_provider(provider.name) is not None:
            raise DuplicateProviderError(provider.name, version)
        entry.providers.append(provider)

    def latest_version(self) -> SemVer:
        """Highest semantic version in the manifest, 0.0.0 when there is none."""
        return latest_version(self.version_strings)

    def next_version(self) -> SemVer:
        """Latest version with minor bumped and patch reset."""
        return next_version(self.version_strings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "versions": [v.to_dict() for v in self.versions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, default_name: str = "") -> Manifest:
        """Create from dictionary.

        Null version/provider lists are read as empty.
        """
        return cls(
            name=data.get("name") or default_name,
            versions=[BoxVersion.from_dict(v) for v in data.get("versions") or []],
        )


def dumps_manifest(manifest: Manifest) -> bytes:
    """Serialize a manifest to JSON bytes."""
    return orjson.dumps(manifest.to_dict(), option=orjson.OPT_INDENT_2)


def loads_manifest(content: bytes | str, *, default_name: str = "") -> Manifest:
    """Parse a manifest document.

    Args:
        content: Raw JSON document.
        default_name: Name to use when the document has none.

    Returns:
        Parsed Manifest.

    Raises:
        ManifestValidationError: If the document is not valid JSON or lacks
            required fields.
    """
    try:
        data = orjson.loads(content)
    except orjson.JSONDecodeError as e:
        msg = f"Manifest is not valid JSON: {e}"
        raise ManifestValidationError(msg) from e

    if not isinstance(data, dict):
        msg = f"Manifest must be a JSON object, got {type(data).__name__}"
        raise ManifestValidationError(msg)

    try:
        return Manifest.from_dict(data, default_name=default_name)
    except (KeyError, TypeError, AttributeError) as e:
        msg = f"Malformed manifest document: {e!r}"
        raise ManifestValidationError(msg) from e
