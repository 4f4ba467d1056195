"""Streaming file checksums."""

from __future__ import annotations

import hashlib
from pathlib import Path

CHUNK_SIZE = 1024 * 1024


def compute_file_sha256(filepath: Path | str) -> str:
    """Compute SHA256 hash of a file.

    The file is read in chunks through its own handle, which is closed
    before returning.

    Args:
        filepath: Path to file.

    Returns:
        Hex-encoded SHA256 hash (64 chars).

    Raises:
        FileNotFoundError: If file doesn't exist.
    """
    hasher = hashlib.sha256()
    with Path(filepath).open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()
