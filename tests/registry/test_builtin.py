"""Tests for built-in (synthetic) model manifests."""

from __future__ import annotations

import hashlib

import pytest

from modelrepo.registry.builtin import (
    CHATML_TEMPLATE,
    DEFAULT_BUILTIN_MODELS,
    BuiltinModel,
    fake_digest,
    provide_builtin_manifests,
)
from modelrepo.registry.fileinfo import FileInfo
from modelrepo.registry.layer import (
    MEDIA_TYPE_BUILTIN_MODEL,
    MEDIA_TYPE_CONFIG,
    MEDIA_TYPE_TEMPLATE,
)
from modelrepo.registry.names import ModelName, resolve


class TestFakeDigest:
    """Tests for fake_digest."""

    def test_derived_from_namespaced_name(self) -> None:
        """Digest is sha256 of 'builtin:' + name."""
        expected = hashlib.sha256(b"builtin:apple").hexdigest()
        assert fake_digest("apple") == f"sha256:{expected}"

    def test_stable(self) -> None:
        """Same name, same digest."""
        assert fake_digest("apple") == fake_digest("apple")

    def test_distinct_per_name(self) -> None:
        """Different names, different digests."""
        assert fake_digest("apple") != fake_digest("pear")


class TestProvideBuiltinManifests:
    """Tests for provide_builtin_manifests."""

    def test_disabled_returns_empty(self) -> None:
        """Nothing is fabricated when switched off."""
        assert provide_builtin_manifests(False) == {}

    def test_default_model_name(self) -> None:
        """The default set is library/apple:latest."""
        manifests = provide_builtin_manifests(True)
        assert list(manifests) == [ModelName("library", "apple", "latest")]

    def test_manifest_shape(self) -> None:
        """Synthetic manifests have no file or digest."""
        manifest = provide_builtin_manifests(True)[ModelName("library", "apple", "latest")]

        assert manifest.is_synthetic
        assert manifest.source_path == ""
        assert manifest.config.media_type == MEDIA_TYPE_CONFIG
        assert [layer.media_type for layer in manifest.layers] == [
            MEDIA_TYPE_BUILTIN_MODEL,
            MEDIA_TYPE_TEMPLATE,
        ]
        assert all(layer.digest == fake_digest("apple") for layer in manifest.all_layers())

    def test_layer_sizes(self) -> None:
        """Weights use the placeholder size, template its byte length."""
        manifest = provide_builtin_manifests(True)[ModelName("library", "apple", "latest")]
        weights, template = manifest.layers
        assert weights.size == 1024 * 1024
        assert template.size == len(CHATML_TEMPLATE.encode("utf-8"))
        assert manifest.config.size > 0

    def test_file_info_stand_in(self) -> None:
        """Synthetic file info satisfies the FileInfo surface."""
        name = ModelName("library", "apple", "latest")
        manifest = provide_builtin_manifests(True)[name]
        info = manifest.file_info

        assert isinstance(info, FileInfo)
        assert info.name == resolve(name)
        assert info.size == manifest.size
        assert info.mode == 0o644
        assert not info.is_dir
        assert info.mod_time.tzinfo is not None

    def test_identity_stable_across_calls(self) -> None:
        """Same layers every time; only mod_time may differ."""
        first = provide_builtin_manifests(True)
        second = provide_builtin_manifests(True)
        assert first == second

    def test_custom_models(self) -> None:
        """Configured models are all fabricated."""
        models = (
            BuiltinModel(name="acme/tiny:v1", family="tiny", template="{{ .Prompt }}", weights_size=0),
            *DEFAULT_BUILTIN_MODELS,
        )
        manifests = provide_builtin_manifests(True, models)
        tiny = manifests[ModelName("acme", "tiny", "v1")]
        assert tiny.layers[0].size == 0
        assert tiny.layers[1].size == len("{{ .Prompt }}")
        assert len(manifests) == 2


class TestBuiltinModel:
    """Tests for BuiltinModel validation."""

    def test_invalid_name(self) -> None:
        """Names with too many segments are rejected."""
        with pytest.raises(ValueError, match="Invalid built-in model name"):
            BuiltinModel(name="a/b/c", family="x")

    def test_negative_weights_size(self) -> None:
        """weights_size must not be negative."""
        with pytest.raises(ValueError, match="weights_size"):
            BuiltinModel(name="x", family="x", weights_size=-1)

    def test_config_blob(self) -> None:
        """Config blob records the family."""
        config = BuiltinModel(name="apple", family="apple").model_config_blob()
        assert config.model_family == "apple"
        assert config.model_families == ["apple"]
        assert config.rootfs.type == "layers"
