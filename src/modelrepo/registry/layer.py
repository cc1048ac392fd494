"""Layer value type.

A layer describes one content-addressed blob referenced by a manifest:
    {"mediaType": "...", "digest": "sha256:<hex>", "size": N}
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Media types
MEDIA_TYPE_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
MEDIA_TYPE_CONFIG = "application/vnd.modelrepo.image.config"
MEDIA_TYPE_MODEL = "application/vnd.modelrepo.image.model"
MEDIA_TYPE_TEMPLATE = "application/vnd.modelrepo.image.template"
MEDIA_TYPE_SYSTEM = "application/vnd.modelrepo.image.system"
MEDIA_TYPE_PARAMS = "application/vnd.modelrepo.image.params"
MEDIA_TYPE_LICENSE = "application/vnd.modelrepo.image.license"
MEDIA_TYPE_ADAPTER = "application/vnd.modelrepo.image.adapter"
MEDIA_TYPE_PROJECTOR = "application/vnd.modelrepo.image.projector"
MEDIA_TYPE_BUILTIN_MODEL = "application/vnd.modelrepo.image.builtinmodel"

DIGEST_PATTERN = re.compile(r"^[a-z0-9]+:[a-fA-F0-9]+$")


class Layer(BaseModel):
    """Single content-addressed blob reference.

    Attributes:
        media_type: Blob semantics (config, weights, template, ...).
        digest: "<algorithm>:<hex>" content hash, empty for unset layers.
        size: Blob length in bytes.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    media_type: str = Field(alias="mediaType")
    digest: str = ""
    size: int = Field(default=0, ge=0)

    @field_validator("digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        """Digest must be empty or <algorithm>:<hex>."""
        if v and not DIGEST_PATTERN.match(v):
            raise ValueError(f"digest must be <algorithm>:<hex>, got {v!r}")
        return v

    def to_dict(self) -> dict[str, str | int]:
        """Convert to the on-disk key order: mediaType, digest, size."""
        return {
            "mediaType": self.media_type,
            "digest": self.digest,
            "size": self.size,
        }
