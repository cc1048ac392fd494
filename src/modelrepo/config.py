"""
Store configuration.

Everything the store depends on is passed in explicitly; the environment is
read only by StoreConfig.from_env(), once, at startup.

Environment:
    MODELREPO_MODELS: store root (default ~/.modelrepo/models)
    MODELREPO_ENABLE_BUILTIN_MODELS: "1"/"true" to serve built-in models
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from modelrepo.registry.builtin import DEFAULT_BUILTIN_MODELS, BuiltinModel

ENV_MODELS_DIR = "MODELREPO_MODELS"
ENV_ENABLE_BUILTIN_MODELS = "MODELREPO_ENABLE_BUILTIN_MODELS"

DEFAULT_MODELS_DIR = Path("~/.modelrepo/models")

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class StoreConfig:
    """Manifest store configuration."""

    # Store root; manifests/ and blobs/ live beneath it
    root: Path = field(default_factory=lambda: DEFAULT_MODELS_DIR.expanduser())

    # Serve built-in models alongside manifests on disk
    builtin_models_enabled: bool = False

    builtin_models: tuple[BuiltinModel, ...] = DEFAULT_BUILTIN_MODELS

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root).expanduser())

        names = [m.model_name for m in self.builtin_models]
        if len(names) != len(set(names)):
            raise ValueError(f"builtin_models contains duplicate names: {names}")

    @property
    def manifests_dir(self) -> Path:
        return self.root / "manifests"

    @property
    def blobs_dir(self) -> Path:
        return self.root / "blobs"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> StoreConfig:
        """Build config from environment variables.

        Args:
            environ: Mapping to read instead of os.environ.
        """
        env = os.environ if environ is None else environ
        root = env.get(ENV_MODELS_DIR, "").strip()
        return cls(
            root=Path(root) if root else DEFAULT_MODELS_DIR.expanduser(),
            builtin_models_enabled=_parse_bool(env.get(ENV_ENABLE_BUILTIN_MODELS, "")),
        )
