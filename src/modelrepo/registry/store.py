"""Filesystem-backed manifest store.

Layout under the store root:
    manifests/{namespace}/{repository}/{tag}/manifest.json
    blobs/sha256-<hex>

Writes go to a sibling temporary file that is renamed into place, and
writers to the same manifest are serialized, so readers see either the old
or the new file, never a partial one. Readers take no locks.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from modelrepo.metrics import StoreMetrics
from modelrepo.registry.blobs import BlobStore
from modelrepo.registry.builtin import provide_builtin_manifests
from modelrepo.registry.digest import read_with_digest
from modelrepo.registry.errors import (
    BlobNotFoundError,
    CorruptManifestError,
    ManifestError,
    ManifestNotFoundError,
    OperationCancelledError,
    ProtectedManifestError,
    StoreIOError,
)
from modelrepo.registry.fileinfo import StatFileInfo
from modelrepo.registry.manifest import Manifest, decode_manifest, encode_manifest
from modelrepo.registry.names import ModelName, parse_name_from_path, resolve
from modelrepo.registry.prune import prune_empty_dirs

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from modelrepo.cancellation import CancelToken
    from modelrepo.config import StoreConfig
    from modelrepo.registry.layer import Layer

logger = logging.getLogger(__name__)

# Prefix of in-flight manifest writes; never listed
TMP_PREFIX = ".tmp-manifest-"

# namespace/repository/tag/leaf
MANIFEST_GLOB = "*/*/*/*"

# Writer locks are striped by path hash so the set stays bounded
LOCK_STRIPES = 64

# A concurrent prune may remove a freshly created parent before the temp
# file lands in it
WRITE_ATTEMPTS = 5


def _check(cancel: CancelToken | None) -> None:
    if cancel is not None:
        cancel.check()


class ManifestStore:
    """Get, put, list and remove manifests by model name."""

    def __init__(
        self,
        config: StoreConfig,
        *,
        blobs: BlobStore | None = None,
        metrics: StoreMetrics | None = None,
    ) -> None:
        """
        Initialize store.

        Args:
            config: Store configuration (root, built-in model switch).
            blobs: Blob store for layer removal. Defaults to config.blobs_dir.
            metrics: Prometheus counters. Defaults to a private registry.
        """
        self._config = config
        self._blobs = blobs or BlobStore(config.blobs_dir)
        self._metrics = metrics or StoreMetrics()
        self._locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def manifests_dir(self) -> Path:
        return self._config.manifests_dir

    @property
    def blobs(self) -> BlobStore:
        return self._blobs

    def path_for(self, name: ModelName) -> Path:
        """Absolute manifest path for a name.

        Raises:
            UnqualifiedNameError: If any name part is missing.
            InvalidNameError: If a name part is malformed.
        """
        return self.manifests_dir / resolve(name)

    @contextmanager
    def _writer_lock(self, key: str) -> Iterator[None]:
        with self._locks[hash(key) % LOCK_STRIPES]:
            yield

    def _is_builtin(self, name: ModelName) -> bool:
        if not self._config.builtin_models_enabled:
            return False
        return any(m.model_name == name for m in self._config.builtin_models)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, name: ModelName, *, cancel: CancelToken | None = None) -> Manifest:
        """Read and decode the manifest for a name.

        The digest is the SHA-256 of every byte read from the file.

        Raises:
            UnqualifiedNameError: If the name is not fully qualified.
            ManifestNotFoundError: If no manifest file exists.
            CorruptManifestError: If the file does not decode.
            StoreIOError: On other filesystem failures.
        """
        path = self.path_for(name)
        _check(cancel)
        manifest = self._read(path)
        self._metrics.manifests_read.inc()
        return manifest

    def _read(self, path: Path) -> Manifest:
        try:
            with path.open("rb") as f:
                file_info = StatFileInfo.from_fd(path.name, f.fileno())
                data, digest = read_with_digest(f)
        except FileNotFoundError as e:
            msg = f"Manifest not found: {path}"
            raise ManifestNotFoundError(msg) from e
        except OSError as e:
            msg = f"Failed to read manifest {path}: {e}"
            raise StoreIOError(msg) from e

        try:
            document = decode_manifest(data)
        except CorruptManifestError as e:
            msg = f"Corrupt manifest {path}: {e}"
            raise CorruptManifestError(msg) from e

        return Manifest.from_document(
            document,
            digest=digest,
            source_path=str(path.absolute()),
            file_info=file_info,
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def put(
        self,
        name: ModelName,
        config: Layer,
        layers: Iterable[Layer],
        *,
        cancel: CancelToken | None = None,
    ) -> None:
        """Write the manifest for a name, replacing any existing one.

        Args:
            name: Fully qualified model name.
            config: Config layer.
            layers: Data layers, order preserved.
            cancel: Optional cancellation token.

        Raises:
            UnqualifiedNameError: If the name is not fully qualified.
            ValueError: If a layer has an empty digest.
            InvalidDigestError: If a layer digest does not address a blob.
            StoreIOError: On filesystem failures.
        """
        path = self.path_for(name)
        layers = tuple(layers)
        for layer in (config, *layers):
            if not layer.digest:
                raise ValueError(f"Layer {layer.media_type!r} has an empty digest")
            self._blobs.path(layer.digest)

        data = encode_manifest(config, layers)

        with self._writer_lock(str(path)):
            _check(cancel)
            try:
                self._write_atomic(path, data)
            except OSError as e:
                msg = f"Failed to write manifest {path}: {e}"
                raise StoreIOError(msg) from e

        self._metrics.manifests_written.inc()
        logger.info("Wrote manifest", extra={"model": str(name), "layer_count": len(layers)})

    def _write_atomic(self, path: Path, data: bytes) -> None:
        for attempt in range(1, WRITE_ATTEMPTS + 1):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=TMP_PREFIX)
                break
            except (FileNotFoundError, FileExistsError):
                if attempt == WRITE_ATTEMPTS:
                    raise
                logger.debug("Manifest directory pruned during write, retrying", extra={"path": str(path)})

        # The temp file keeps the directory non-empty until the rename
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # List
    # ------------------------------------------------------------------

    def list(
        self,
        tolerant: bool,
        *,
        cancel: CancelToken | None = None,
    ) -> dict[ModelName, Manifest]:
        """Enumerate all manifests.

        Args:
            tolerant: Skip unreadable entries with a warning instead of
                failing on the first one.
            cancel: Optional cancellation token, checked per entry.

        Returns:
            Dict of name to Manifest. Built-in models, when enabled,
            replace real manifests with the same name.

        Raises:
            ManifestError: First bad entry, when tolerant is False.
            OperationCancelledError: If the token fires, in either mode.
        """
        manifests = self._scan(tolerant, cancel=cancel)

        enabled = self._config.builtin_models_enabled
        logger.debug("Checked built-in models", extra={"enabled": enabled})
        for name, manifest in provide_builtin_manifests(enabled, self._config.builtin_models).items():
            if name in manifests:
                logger.debug("Built-in model overrides manifest", extra={"model": str(name)})
            manifests[name] = manifest

        return manifests

    def _scan(self, tolerant: bool, *, cancel: CancelToken | None) -> dict[ModelName, Manifest]:
        root = self.manifests_dir
        _check(cancel)
        try:
            matches = sorted(root.glob(MANIFEST_GLOB))
        except OSError as e:
            msg = f"Failed to list manifests under {root}: {e}"
            raise StoreIOError(msg) from e

        manifests: dict[ModelName, Manifest] = {}
        for match in matches:
            _check(cancel)
            if match.name.startswith(TMP_PREFIX):
                continue

            rel = match.relative_to(root).as_posix()
            try:
                loaded = self._load_entry(match, rel)
            except OperationCancelledError:
                raise
            except ManifestError as e:
                if not tolerant:
                    e.add_note(f"while listing {rel}")
                    raise
                logger.warning("Skipping bad manifest", extra={"path": rel, "error": str(e)})
                self._metrics.manifests_skipped.inc()
                continue

            if loaded is not None:
                name, manifest = loaded
                manifests[name] = manifest

        return manifests

    def _load_entry(self, match: Path, rel: str) -> tuple[ModelName, Manifest] | None:
        try:
            if match.is_dir():
                return None
        except OSError as e:
            msg = f"Failed to stat {match}: {e}"
            raise StoreIOError(msg) from e

        name = parse_name_from_path(rel)
        manifest = self._read(match)
        self._metrics.manifests_read.inc()
        return name, manifest

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def remove(self, name: ModelName, *, cancel: CancelToken | None = None) -> None:
        """Delete the manifest file for a name and prune empty directories.

        Layer blobs are left alone; see remove_layers().

        Raises:
            UnqualifiedNameError: If the name is not fully qualified.
            ProtectedManifestError: If the name is served by a built-in model.
            ManifestNotFoundError: If no manifest file exists.
            StoreIOError: On filesystem failures, pruning included.
        """
        path = self.path_for(name)
        if self._is_builtin(name):
            msg = f"Built-in model {name} has no manifest file to remove"
            raise ProtectedManifestError(msg)
        self._remove_file(path, cancel=cancel)
        logger.info("Removed manifest", extra={"model": str(name)})

    def remove_manifest(self, manifest: Manifest, *, cancel: CancelToken | None = None) -> None:
        """Delete the backing file of a loaded manifest.

        Raises:
            ProtectedManifestError: If the manifest is synthetic.
            ManifestNotFoundError: If the file is already gone.
            StoreIOError: On filesystem failures.
        """
        if manifest.is_synthetic or not manifest.source_path:
            raise ProtectedManifestError("Synthetic manifest has no file to remove")
        self._remove_file(Path(manifest.source_path), cancel=cancel)
        logger.info("Removed manifest", extra={"path": manifest.source_path})

    def _remove_file(self, path: Path, *, cancel: CancelToken | None) -> None:
        with self._writer_lock(str(path)):
            _check(cancel)
            try:
                path.unlink()
            except FileNotFoundError as e:
                msg = f"Manifest not found: {path}"
                raise ManifestNotFoundError(msg) from e
            except OSError as e:
                msg = f"Failed to remove manifest {path}: {e}"
                raise StoreIOError(msg) from e

        self._metrics.manifests_removed.inc()
        prune_empty_dirs(self.manifests_dir, cancel=cancel)

    def remove_layers(self, manifest: Manifest, *, cancel: CancelToken | None = None) -> None:
        """Delete the layer blobs of a manifest.

        A blob still referenced by another manifest on disk is kept. Blobs
        that are already gone are skipped. Every digest is checked before
        any blob is deleted, so a malformed digest removes nothing.

        Raises:
            ProtectedManifestError: If the manifest is synthetic.
            InvalidDigestError: If a layer digest does not address a blob.
            StoreIOError: On filesystem failures. Blobs after the failing
                one are left in place.
        """
        if manifest.is_synthetic:
            raise ProtectedManifestError("Synthetic manifest has no layers to remove")

        digests = list(dict.fromkeys(layer.digest for layer in manifest.all_layers() if layer.digest))
        if not digests:
            return
        for digest in digests:
            self._blobs.path(digest)

        # Unreadable manifests must not block deleting freshly orphaned layers
        others = [
            m
            for m in self._scan(True, cancel=cancel).values()
            if m.source_path != manifest.source_path
        ]

        for digest in digests:
            _check(cancel)
            if any(m.references(digest) for m in others):
                logger.debug("Layer still referenced", extra={"digest": digest})
                self._metrics.layers_retained.inc()
                continue
            try:
                self._blobs.remove(digest)
            except BlobNotFoundError:
                logger.debug("Layer does not exist", extra={"digest": digest})
                self._metrics.layers_missing.inc()
                continue
            self._metrics.layers_removed.inc()
