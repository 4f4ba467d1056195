"""Box manifest registry.

- Manifest model with versions and providers
- Semantic version ordering and auto-bump
- Streaming SHA256 checksums
"""

from boxpublisher.registry.checksum import compute_file_sha256
from boxpublisher.registry.manifest import (
    CHECKSUM_TYPE_SHA256,
    BoxVersion,
    DuplicateProviderError,
    Manifest,
    ManifestError,
    ManifestValidationError,
    Provider,
    dumps_manifest,
    loads_manifest,
)
from boxpublisher.registry.version import (
    SemVer,
    latest_version,
    next_version,
    parse_semver,
)

__all__ = [
    "CHECKSUM_TYPE_SHA256",
    "BoxVersion",
    "DuplicateProviderError",
    "Manifest",
    "ManifestError",
    "ManifestValidationError",
    "Provider",
    "SemVer",
    "compute_file_sha256",
    "dumps_manifest",
    "latest_version",
    "loads_manifest",
    "next_version",
    "parse_semver",
]
