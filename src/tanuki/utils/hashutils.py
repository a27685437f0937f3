"""Hashing utilities."""

from __future__ import annotations

from pathlib import Path

import xxhash

CHECKSUM_ALGORITHM = "xxh3-128"


def file_xxh3(path: Path, *, chunk_size: int = 1024 * 1024) -> str:
    """Return the XXH3 128-bit hash of *path*."""

    hasher = xxhash.xxh3_128()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def checksum_file(path: Path) -> str:
    """Return the content checksum of *path* with the algorithm as a prefix."""

    return f"{CHECKSUM_ALGORITHM}-{file_xxh3(path)}"


def revision_digest(payload: bytes) -> str:
    """Short content digest used to build document revisions."""

    return xxhash.xxh3_64_hexdigest(payload)
