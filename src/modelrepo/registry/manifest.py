"""Manifest value type and on-disk format.

manifest.json format:
    {
        "schemaVersion": 2,
        "mediaType": "application/vnd.docker.distribution.manifest.v2+json",
        "config": {"mediaType": "...", "digest": "sha256:...", "size": 10},
        "layers": [
            {"mediaType": "...", "digest": "sha256:...", "size": 2048},
            ...
        ]
    }

The digest is never stored in the file; it is derived from the file bytes
on every read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from modelrepo.registry.errors import CorruptManifestError
from modelrepo.registry.layer import MEDIA_TYPE_MANIFEST, Layer

if TYPE_CHECKING:
    from collections.abc import Iterable

    from modelrepo.registry.fileinfo import FileInfo

MANIFEST_SCHEMA_VERSION = 2


class ManifestDocument(BaseModel):
    """Decoded manifest.json content."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    schema_version: int = Field(alias="schemaVersion")
    media_type: str = Field(alias="mediaType")
    config: Layer
    layers: tuple[Layer, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk key order."""
        return {
            "schemaVersion": self.schema_version,
            "mediaType": self.media_type,
            "config": self.config.to_dict(),
            "layers": [layer.to_dict() for layer in self.layers],
        }


@dataclass(frozen=True)
class Manifest:
    """Model manifest with provenance.

    Attributes:
        schema_version: Manifest schema version (always 2).
        media_type: Manifest media type.
        config: Config layer.
        layers: Data layers in on-disk order.
        digest: Hex SHA-256 of the raw file bytes, empty for built-in models.
        source_path: Absolute path of the backing file, empty for built-in models.
        file_info: Metadata of the backing file or a synthetic stand-in.
        is_synthetic: True for built-in models with no backing file.
    """

    schema_version: int
    media_type: str
    config: Layer
    layers: tuple[Layer, ...] = ()
    digest: str = ""
    source_path: str = ""
    file_info: FileInfo | None = field(default=None, compare=False)
    is_synthetic: bool = False

    @classmethod
    def from_document(
        cls,
        document: ManifestDocument,
        *,
        digest: str,
        source_path: str,
        file_info: FileInfo,
    ) -> Manifest:
        """Build a file-backed manifest from decoded content."""
        return cls(
            schema_version=document.schema_version,
            media_type=document.media_type,
            config=document.config,
            layers=tuple(document.layers),
            digest=digest,
            source_path=source_path,
            file_info=file_info,
            is_synthetic=False,
        )

    @classmethod
    def synthetic(
        cls,
        config: Layer,
        layers: Iterable[Layer],
        *,
        file_info: FileInfo,
    ) -> Manifest:
        """Build a manifest that has no file on disk."""
        return cls(
            schema_version=MANIFEST_SCHEMA_VERSION,
            media_type=MEDIA_TYPE_MANIFEST,
            config=config,
            layers=tuple(layers),
            digest="",
            source_path="",
            file_info=file_info,
            is_synthetic=True,
        )

    @property
    def size(self) -> int:
        """Total bytes of config plus all layers."""
        return self.config.size + sum(layer.size for layer in self.layers)

    def all_layers(self) -> tuple[Layer, ...]:
        """Data layers followed by the config layer."""
        return (*self.layers, self.config)

    def get_layer(self, media_type: str) -> Layer | None:
        """Get the first data layer with a media type."""
        for layer in self.layers:
            if layer.media_type == media_type:
                return layer
        return None

    def references(self, digest: str) -> bool:
        """Check whether any layer, config included, has this digest."""
        return any(layer.digest == digest for layer in self.all_layers())


def encode_manifest(config: Layer, layers: Iterable[Layer]) -> bytes:
    """Serialize a manifest deterministically.

    Args:
        config: Config layer.
        layers: Data layers in order.

    Returns:
        Compact JSON bytes with a trailing newline.
    """
    document = ManifestDocument(
        schema_version=MANIFEST_SCHEMA_VERSION,
        media_type=MEDIA_TYPE_MANIFEST,
        config=config,
        layers=tuple(layers),
    )
    return orjson.dumps(document.to_dict(), option=orjson.OPT_APPEND_NEWLINE)


def decode_manifest(data: bytes) -> ManifestDocument:
    """Decode manifest.json bytes.

    Args:
        data: Raw file content.

    Returns:
        Decoded ManifestDocument.

    Raises:
        CorruptManifestError: If the bytes are not a well-formed manifest.
    """
    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        msg = f"Manifest is not valid JSON: {e}"
        raise CorruptManifestError(msg) from e

    if not isinstance(payload, dict):
        msg = f"Manifest must be a JSON object, got {type(payload).__name__}"
        raise CorruptManifestError(msg)

    try:
        return ManifestDocument.model_validate(payload)
    except ValidationError as e:
        msg = f"Manifest does not match schema: {e.error_count()} error(s)"
        raise CorruptManifestError(msg) from e
