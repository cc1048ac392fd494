"""Content-addressed blob storage.

Blobs are stored flat under the blobs root as ``sha256-<hex>``; the digest
form ``sha256:<hex>`` used in manifests maps onto that filename.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path

from modelrepo.registry.digest import compute_file_sha256, sha256_digest
from modelrepo.registry.errors import BlobNotFoundError, InvalidDigestError, StoreIOError
from modelrepo.registry.layer import Layer

logger = logging.getLogger(__name__)

BLOB_DIGEST_PATTERN = re.compile(r"^sha256[:-](?P<hex>[0-9a-fA-F]{64})$")


class BlobStore:
    """Flat directory of blobs addressed by SHA-256 digest."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path(self, digest: str) -> Path:
        """Resolve a digest to its blob path.

        Raises:
            InvalidDigestError: If digest is not sha256:<64 hex>.
        """
        match = BLOB_DIGEST_PATTERN.match(digest)
        if not match:
            msg = f"Invalid blob digest: {digest!r}"
            raise InvalidDigestError(msg)
        return self.root / f"sha256-{match.group('hex').lower()}"

    def exists(self, digest: str) -> bool:
        """Check whether a blob is present."""
        return self.path(digest).is_file()

    def write(self, data: bytes, media_type: str) -> Layer:
        """Store content and return the layer describing it.

        Writes to a temporary file in the blobs root and renames it into
        place, so a reader never sees a partial blob. An existing blob is
        kept only if its content still hashes to its name.
        """
        digest = sha256_digest(data)
        target = self.path(digest)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            if not self._verified(target, digest):
                fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-blob-")
                try:
                    with os.fdopen(fd, "wb") as f:
                        f.write(data)
                    os.replace(tmp_name, target)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
        except OSError as e:
            msg = f"Failed to write blob {digest}: {e}"
            raise StoreIOError(msg) from e

        return Layer(media_type=media_type, digest=digest, size=len(data))

    def _verified(self, target: Path, digest: str) -> bool:
        if not target.is_file():
            return False
        try:
            actual = compute_file_sha256(target)
        except FileNotFoundError:
            return False
        if actual == digest.split(":", 1)[1]:
            return True
        logger.warning("Replacing corrupt blob", extra={"digest": digest})
        return False

    def remove(self, digest: str) -> None:
        """Delete a blob.

        Raises:
            BlobNotFoundError: If the blob does not exist.
            InvalidDigestError: If digest is malformed.
            StoreIOError: On any other filesystem failure.
        """
        blob_path = self.path(digest)
        try:
            blob_path.unlink()
        except FileNotFoundError as e:
            msg = f"Blob not found: {digest}"
            raise BlobNotFoundError(msg) from e
        except OSError as e:
            msg = f"Failed to remove blob {digest}: {e}"
            raise StoreIOError(msg) from e
        logger.debug("Removed blob", extra={"digest": digest})
