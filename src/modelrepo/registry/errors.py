"""Error kinds raised by the manifest registry.

Callers branch on the class, never on the message:
- UnqualifiedNameError / InvalidNameError: caller error, never retried
- ManifestNotFoundError / BlobNotFoundError: normal negative result
- CorruptManifestError: file exists but does not decode, never repaired
- StoreIOError: any other filesystem failure
- ProtectedManifestError: mutation of a built-in (synthetic) manifest
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modelrepo.registry.names import ModelName


class ManifestError(Exception):
    """Base exception for manifest registry operations."""


class UnqualifiedNameError(ManifestError):
    """Raised when a name is missing its namespace, repository or tag."""

    def __init__(self, name: ModelName) -> None:
        self.name = name
        super().__init__(f"name is not fully qualified: {name}")


class InvalidNameError(ManifestError):
    """Raised when a name or store path does not have a valid shape."""


class ManifestNotFoundError(ManifestError):
    """Raised when no manifest file exists for a name."""


class CorruptManifestError(ManifestError):
    """Raised when a manifest file exists but fails to decode."""


class StoreIOError(ManifestError):
    """Raised for filesystem failures other than not-found."""


class ProtectedManifestError(ManifestError):
    """Raised when removing a manifest that has no backing file."""


class OperationCancelledError(ManifestError):
    """Raised when a cancellation token fires or its deadline passes."""


class BlobError(ManifestError):
    """Base exception for blob store operations."""


class BlobNotFoundError(BlobError):
    """Raised when a blob is absent from the blob store."""


class InvalidDigestError(BlobError):
    """Raised when a digest does not match the sha256:<hex> format."""
