"""Tests for digest computation."""

from __future__ import annotations

import hashlib
import io
from typing import TYPE_CHECKING

import pytest

from modelrepo.registry.digest import (
    HashingReader,
    compute_file_sha256,
    read_with_digest,
    sha256_digest,
)

if TYPE_CHECKING:
    from pathlib import Path


class TestReadWithDigest:
    """Tests for read_with_digest."""

    def test_returns_bytes_and_hash(self) -> None:
        """Known input, known digest."""
        data, digest = read_with_digest(io.BytesIO(b"hello world"))
        assert data == b"hello world"
        assert digest == "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"

    def test_empty_source(self) -> None:
        """Empty input hashes to the empty digest."""
        data, digest = read_with_digest(io.BytesIO(b""))
        assert data == b""
        assert digest == hashlib.sha256(b"").hexdigest()

    def test_large_source_hashed_once(self) -> None:
        """Content spanning many chunks hashes the same as hashing it whole."""
        payload = bytes(range(256)) * 2000
        data, digest = read_with_digest(io.BytesIO(payload))
        assert data == payload
        assert digest == hashlib.sha256(payload).hexdigest()

    def test_whitespace_changes_digest(self) -> None:
        """Digest tracks raw bytes, not decoded structure."""
        _, compact = read_with_digest(io.BytesIO(b'{"a":1,"b":2}'))
        _, spaced = read_with_digest(io.BytesIO(b'{"a": 1, "b": 2}'))
        _, reordered = read_with_digest(io.BytesIO(b'{"b":2,"a":1}'))
        assert len({compact, spaced, reordered}) == 3


class TestHashingReader:
    """Tests for HashingReader."""

    def test_partial_reads_accumulate(self) -> None:
        """Short reads add up to the whole content."""
        reader = HashingReader(io.BytesIO(b"abcdef"))
        assert reader.read(2) == b"ab"
        assert reader.read(10) == b"cdef"
        assert reader.read(1) == b""
        assert reader.bytes_read == 6
        assert reader.hexdigest() == hashlib.sha256(b"abcdef").hexdigest()

    def test_hash_covers_only_bytes_read(self) -> None:
        """Unread bytes are not hashed."""
        reader = HashingReader(io.BytesIO(b"abcdef"))
        reader.read(3)
        assert reader.hexdigest() == hashlib.sha256(b"abc").hexdigest()


class TestComputeFileSha256:
    """Tests for compute_file_sha256."""

    def test_matches_stream_digest(self, tmp_path: Path) -> None:
        """File and stream hashing agree."""
        path = tmp_path / "blob"
        path.write_bytes(b"model weights")
        _, digest = read_with_digest(io.BytesIO(b"model weights"))
        assert compute_file_sha256(path) == digest

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            compute_file_sha256(tmp_path / "nonexistent")


def test_sha256_digest_prefix() -> None:
    """In-memory digests carry the sha256: prefix."""
    assert sha256_digest(b"x") == "sha256:" + hashlib.sha256(b"x").hexdigest()
