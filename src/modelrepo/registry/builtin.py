"""Built-in models served without manifest files.

Built-in models (e.g. an on-device foundation model) have no blobs on disk.
Their manifests are fabricated on demand with digests derived from the model
name, so the same model has the same identity across restarts.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import orjson
from pydantic import BaseModel, ConfigDict, Field

from modelrepo.registry.fileinfo import SyntheticFileInfo
from modelrepo.registry.layer import (
    MEDIA_TYPE_BUILTIN_MODEL,
    MEDIA_TYPE_CONFIG,
    MEDIA_TYPE_TEMPLATE,
    Layer,
)
from modelrepo.registry.manifest import Manifest
from modelrepo.registry.names import ModelName, resolve

logger = logging.getLogger(__name__)

# Namespace prefix hashed together with the model name
FAKE_DIGEST_PREFIX = "builtin:"

CHATML_TEMPLATE = (
    "{{ if .System }}<|im_start|>system\n"
    "{{ .System }}<|im_end|>\n"
    "{{ end }}{{ if .Prompt }}<|im_start|>user\n"
    "{{ .Prompt }}<|im_end|>\n"
    "<|im_start|>assistant\n"
    "{{ end }}{{ .Response }}<|im_end|>"
)


class RootFS(BaseModel):
    """Root filesystem descriptor of the config blob."""

    type: str = "layers"
    diff_ids: list[str] = Field(default_factory=list)


class ModelConfig(BaseModel):
    """Config blob describing a model's format and family."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_format: str = ""
    model_family: str = ""
    model_families: list[str] = Field(default_factory=list)
    model_type: str = ""
    file_type: str = ""
    os: str = "linux"
    architecture: str = "amd64"
    rootfs: RootFS = Field(default_factory=RootFS)

    def to_json(self) -> bytes:
        """Serialize with stable key order."""
        return orjson.dumps(self.model_dump())


@dataclass(frozen=True)
class BuiltinModel:
    """Description of a built-in model.

    Attributes:
        name: Display name, parsed with default namespace and tag.
        family: Model family recorded in the config blob.
        template: Chat template served as the template layer.
        weights_size: Placeholder size of the weights layer in bytes.
    """

    name: str
    family: str
    template: str = CHATML_TEMPLATE
    weights_size: int = 1024 * 1024

    def __post_init__(self) -> None:
        if not ModelName.parse(self.name).is_valid():
            raise ValueError(f"Invalid built-in model name: {self.name!r}")
        if self.weights_size < 0:
            raise ValueError(f"weights_size must be >= 0, got {self.weights_size}")

    @property
    def model_name(self) -> ModelName:
        return ModelName.parse(self.name)

    def model_config_blob(self) -> ModelConfig:
        return ModelConfig(
            model_format=self.family,
            model_family=self.family,
            model_families=[self.family],
            model_type=self.family,
            file_type=self.family,
        )


DEFAULT_BUILTIN_MODELS: tuple[BuiltinModel, ...] = (BuiltinModel(name="apple", family="apple"),)


def fake_digest(name: str) -> str:
    """Derive a stable "sha256:<hex>" digest from a model name."""
    return f"sha256:{hashlib.sha256((FAKE_DIGEST_PREFIX + name).encode()).hexdigest()}"


def build_builtin_manifest(model: BuiltinModel, *, mod_time: datetime) -> Manifest:
    """Fabricate the manifest of one built-in model."""
    digest = fake_digest(model.name)
    config_layer = Layer(
        media_type=MEDIA_TYPE_CONFIG,
        digest=digest,
        size=len(model.model_config_blob().to_json()),
    )
    layers = (
        Layer(media_type=MEDIA_TYPE_BUILTIN_MODEL, digest=digest, size=model.weights_size),
        Layer(
            media_type=MEDIA_TYPE_TEMPLATE,
            digest=digest,
            size=len(model.template.encode("utf-8")),
        ),
    )
    size = config_layer.size + sum(layer.size for layer in layers)
    file_info = SyntheticFileInfo(
        name=resolve(model.model_name),
        size=size,
        mode=0o644,
        mod_time=mod_time,
    )
    return Manifest.synthetic(config_layer, layers, file_info=file_info)


def provide_builtin_manifests(
    enabled: bool,
    models: tuple[BuiltinModel, ...] = DEFAULT_BUILTIN_MODELS,
) -> dict[ModelName, Manifest]:
    """Fabricate manifests for built-in models.

    Args:
        enabled: Built-in model switch. When False nothing is built.
        models: Built-in models to fabricate.

    Returns:
        Dict of name to synthetic Manifest, empty when disabled.
    """
    if not enabled:
        return {}

    mod_time = datetime.now(UTC)
    manifests: dict[ModelName, Manifest] = {}
    for model in models:
        manifests[model.model_name] = build_builtin_manifest(model, mod_time=mod_time)
        logger.info("Registered built-in model", extra={"model": model.name})
    return manifests
