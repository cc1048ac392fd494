"""Digest computation over raw bytes.

A manifest's digest is the SHA-256 of the exact bytes read from its file,
never of a re-encoding of the decoded structure. Two files that decode to
the same manifest but differ in whitespace or key order have different
digests.
"""

from __future__ import annotations

import hashlib
import io
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from pathlib import Path

CHUNK_SIZE = 64 * 1024


class HashingReader(io.RawIOBase):
    """Pass-through reader feeding every byte it returns into SHA-256."""

    def __init__(self, source: BinaryIO) -> None:
        super().__init__()
        self._source = source
        self._hasher = hashlib.sha256()
        self.bytes_read = 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        data = self._source.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        self._hasher.update(data)
        self.bytes_read += n
        return n

    def hexdigest(self) -> str:
        """Hex digest of all bytes returned so far."""
        return self._hasher.hexdigest()


def read_with_digest(source: BinaryIO) -> tuple[bytes, str]:
    """Consume a byte source once, hashing while reading.

    Args:
        source: Binary stream positioned at the start of the content.

    Returns:
        Tuple of (all bytes read, hex-encoded SHA-256 of those bytes).
    """
    reader = HashingReader(source)
    buffered = io.BufferedReader(reader, buffer_size=CHUNK_SIZE)
    data = buffered.read()
    return data, reader.hexdigest()


def compute_file_sha256(filepath: Path) -> str:
    """Compute SHA256 hash of a file.

    Args:
        filepath: Path to file.

    Returns:
        Hex-encoded SHA256 hash (64 chars).

    Raises:
        FileNotFoundError: If file doesn't exist.
    """
    hasher = hashlib.sha256()
    with filepath.open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def sha256_digest(data: bytes) -> str:
    """Return "sha256:<hex>" for in-memory content."""
    return f"sha256:{hashlib.sha256(data).hexdigest()}"
