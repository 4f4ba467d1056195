"""Publish input and result artifacts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

VAGRANT_BUILDER_IDS = frozenset({"mitchellh.post-processor.vagrant", "vagrant"})
BOX_EXTENSION = ".box"
MANIFEST_BUILDER_ID = "boxpublisher.post-processor.s3"

# builder name -> Vagrant provider name; unknown names pass through
_PROVIDER_NAMES: dict[str, str] = {
    "aws": "aws",
    "digitalocean": "digitalocean",
    "virtualbox": "virtualbox",
    "vmware": "vmware_desktop",
    "parallels": "parallels",
}


class InvalidArtifactError(Exception):
    """Raised when the input is not a single box from the vagrant post-processor."""


def provider_from_builder_name(name: str) -> str:
    """Map a builder name to the Vagrant provider it produces."""
    return _PROVIDER_NAMES.get(name, name)


@dataclass(frozen=True)
class BoxArtifact:
    """Box produced by the build.

    Attributes:
        builder_id: Id of the producer (must be the vagrant post-processor).
        id: Builder name the box was built with (e.g. "virtualbox").
        files: Produced files; the first one is the box.
    """

    builder_id: str
    id: str
    files: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_box_file(cls, path: Path | str, provider: str) -> BoxArtifact:
        """Wrap a local .box file built for `provider`."""
        return cls(builder_id="vagrant", id=provider, files=(str(path),))

    @property
    def box_path(self) -> Path:
        return Path(self.files[0])

    @property
    def provider(self) -> str:
        return provider_from_builder_name(self.id)


def validate_box_artifact(artifact: BoxArtifact) -> Path:
    """Check the artifact is a single box file and return its path.

    Raises:
        InvalidArtifactError: On an unknown producer or a non-.box file.
    """
    if artifact.builder_id not in VAGRANT_BUILDER_IDS:
        msg = (
            "Unknown artifact type, requires box from vagrant post-processor: "
            f"{artifact.builder_id}"
        )
        raise InvalidArtifactError(msg)

    if not artifact.files or not artifact.files[0].endswith(BOX_EXTENSION):
        msg = f"Unknown files in artifact from vagrant post-processor: {list(artifact.files)}"
        raise InvalidArtifactError(msg)

    return artifact.box_path


@dataclass(frozen=True)
class ManifestArtifact:
    """Result of a publish: where the manifest can be fetched."""

    url: str
    builder_id: str = MANIFEST_BUILDER_ID

    def files(self) -> list[str]:
        return []

    def __str__(self) -> str:
        return f"Vagrant manifest url: {self.url}"
