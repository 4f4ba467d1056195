"""Tests for the box manifest model."""

from __future__ import annotations

import copy
import json

import pytest

from boxpublisher.registry.manifest import (
    BoxVersion,
    DuplicateProviderError,
    Manifest,
    ManifestValidationError,
    Provider,
    dumps_manifest,
    loads_manifest,
)
from boxpublisher.registry.version import SemVer


def _provider(name: str = "virtualbox", checksum: str = "aa" * 32) -> Provider:
    return Provider(name=name, url=f"https://example.com/{name}.box", checksum=checksum)


@pytest.fixture
def manifest() -> Manifest:
    """Manifest with two versions."""
    return Manifest(
        name="acme/base",
        versions=[
            BoxVersion(version="0.1.0", providers=[_provider("virtualbox")]),
            BoxVersion(version="0.2.0", providers=[_provider("vmware_desktop")]),
        ],
    )


class TestManifestAdd:
    """Tests for Manifest.add."""

    def test_new_version_creates_entry(self) -> None:
        """Unseen version creates one entry with one provider."""
        m = Manifest(name="acme/base")

        m.add("0.1.0", _provider())

        assert len(m.versions) == 1
        assert m.versions[0].version == "0.1.0"
        assert [p.name for p in m.versions[0].providers] == ["virtualbox"]

    def test_existing_version_appends_provider(self, manifest: Manifest) -> None:
        """Existing version gets the provider appended, other versions untouched."""
        before_other = copy.deepcopy(manifest.versions[1])

        manifest.add("0.1.0", _provider("vmware_desktop"))

        assert [p.name for p in manifest.versions[0].providers] == [
            "virtualbox",
            "vmware_desktop",
        ]
        assert manifest.versions[1] == before_other
        assert len(manifest.versions) == 2

    def test_duplicate_provider_fails_without_mutation(self, manifest: Manifest) -> None:
        """Same version and provider name is rejected and nothing changes."""
        snapshot = copy.deepcopy(manifest)

        with pytest.raises(DuplicateProviderError) as exc_info:
            manifest.add("0.1.0", _provider("virtualbox", checksum="bb" * 32))

        assert exc_info.value.provider == "virtualbox"
        assert exc_info.value.version == "0.1.0"
        assert "virtualbox" in str(exc_info.value)
        assert "0.1.0" in str(exc_info.value)
        assert manifest == snapshot

    def test_second_add_same_pair_fails(self) -> None:
        """Adding the same pair twice fails the second time only."""
        m = Manifest(name="acme/base")
        m.add("1.0.0", _provider(checksum="aa" * 32))
        after_first = copy.deepcopy(m)

        with pytest.raises(DuplicateProviderError):
            m.add("1.0.0", _provider(checksum="cc" * 32))

        assert m == after_first

    def test_version_match_is_exact(self) -> None:
        """Version strings 1.0 and 1.0.0 are different versions."""
        m = Manifest(name="acme/base")
        m.add("1.0.0", _provider())
        m.add("1.0", _provider())

        assert m.version_strings == ["1.0.0", "1.0"]


class TestManifestVersions:
    """Tests for latest/next version on the manifest."""

    def test_empty_manifest(self) -> None:
        """Empty manifest: latest 0.0.0, next 0.1.0."""
        m = Manifest(name="acme/base")

        assert m.latest_version() == SemVer(0, 0, 0)
        assert str(m.next_version()) == "0.1.0"

    def test_latest_version(self) -> None:
        """Latest over 0.0.1, 0.0.2, 0.1.0 is 0.1.0."""
        m = Manifest(name="acme/base")
        for v in ("0.0.1", "0.0.2", "0.1.0"):
            m.add(v, _provider())

        assert str(m.latest_version()) == "0.1.0"

    def test_next_version_ignores_unparseable(self) -> None:
        """Non-semver versions do not affect next_version."""
        m = Manifest(name="acme/base")
        m.add("1.2.7", _provider())
        m.add("snapshot", _provider())

        assert str(m.next_version()) == "1.3.0"

    @pytest.mark.parametrize("bad_version", [None, 2])
    def test_next_version_skips_non_string_versions(self, bad_version: object) -> None:
        """Stored entries with null or numeric versions are skipped."""
        document = {
            "name": "acme/base",
            "versions": [
                {"version": bad_version, "providers": []},
                {"version": "1.2.7", "providers": []},
            ],
        }
        m = loads_manifest(json.dumps(document).encode())

        assert str(m.next_version()) == "1.3.0"


class TestSerialization:
    """Tests for dumps_manifest / loads_manifest."""

    def test_round_trip_preserves_order(self, manifest: Manifest) -> None:
        """Serialize then parse gives an equal manifest in the same order."""
        manifest.add("0.1.0", _provider("parallels"))

        loaded = loads_manifest(dumps_manifest(manifest))

        assert loaded == manifest
        assert loaded.version_strings == ["0.1.0", "0.2.0"]
        assert [p.name for p in loaded.versions[0].providers] == ["virtualbox", "parallels"]

    def test_document_shape(self, manifest: Manifest) -> None:
        """Serialized document uses the Vagrant manifest field names."""
        data = json.loads(dumps_manifest(manifest))

        assert data["name"] == "acme/base"
        provider = data["versions"][0]["providers"][0]
        assert set(provider) == {"name", "url", "checksum_type", "checksum"}
        assert provider["checksum_type"] == "sha256"

    def test_null_lists_read_as_empty(self) -> None:
        """null versions/providers are treated as empty."""
        loaded = loads_manifest(
            b'{"name": "acme/base", "versions": [{"version": "0.1.0", "providers": null}]}'
        )
        assert loaded.versions[0].providers == []

        assert loads_manifest(b'{"name": "x", "versions": null}').versions == []

    def test_missing_name_uses_default(self) -> None:
        """A document without a name takes the default name."""
        loaded = loads_manifest(b'{"versions": []}', default_name="acme/base")

        assert loaded.name == "acme/base"

    def test_invalid_json_raises(self) -> None:
        """Invalid JSON raises ManifestValidationError."""
        with pytest.raises(ManifestValidationError, match="not valid JSON"):
            loads_manifest(b"{not json")

    def test_non_object_raises(self) -> None:
        """A JSON array is not a manifest."""
        with pytest.raises(ManifestValidationError, match="JSON object"):
            loads_manifest(b"[]")

    def test_version_without_version_field_raises(self) -> None:
        """Version entries must carry a version string."""
        with pytest.raises(ManifestValidationError, match="Malformed"):
            loads_manifest(b'{"name": "x", "versions": [{"providers": []}]}')
