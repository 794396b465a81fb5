"""SHA-256 content digests for chunk verification."""

from __future__ import annotations

import hashlib


def digest(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of *data*.

    The empty buffer has a well-defined digest like any other input.
    """
    return hashlib.sha256(data).hexdigest()


def verify(data: bytes, expected: str) -> bool:
    """Return True if *data* hashes to *expected*."""
    return digest(data) == expected.lower()
