"""Content-addressable manifest registry.

- Model names resolved to manifest paths and back
- Manifests of content-addressed layers, fingerprinted by raw-byte digest
- Filesystem store with tolerant listing and built-in model injection
"""

from modelrepo.registry.blobs import BlobStore
from modelrepo.registry.builtin import (
    DEFAULT_BUILTIN_MODELS,
    BuiltinModel,
    ModelConfig,
    fake_digest,
    provide_builtin_manifests,
)
from modelrepo.registry.digest import (
    HashingReader,
    compute_file_sha256,
    read_with_digest,
    sha256_digest,
)
from modelrepo.registry.errors import (
    BlobError,
    BlobNotFoundError,
    CorruptManifestError,
    InvalidDigestError,
    InvalidNameError,
    ManifestError,
    ManifestNotFoundError,
    OperationCancelledError,
    ProtectedManifestError,
    StoreIOError,
    UnqualifiedNameError,
)
from modelrepo.registry.fileinfo import FileInfo, StatFileInfo, SyntheticFileInfo
from modelrepo.registry.layer import Layer
from modelrepo.registry.manifest import (
    MANIFEST_SCHEMA_VERSION,
    Manifest,
    ManifestDocument,
    decode_manifest,
    encode_manifest,
)
from modelrepo.registry.names import (
    MANIFEST_FILENAME,
    ModelName,
    parse_name_from_path,
    resolve,
)
from modelrepo.registry.prune import prune_empty_dirs
from modelrepo.registry.store import ManifestStore

__all__ = [
    "DEFAULT_BUILTIN_MODELS",
    "MANIFEST_FILENAME",
    "MANIFEST_SCHEMA_VERSION",
    "BlobError",
    "BlobNotFoundError",
    "BlobStore",
    "BuiltinModel",
    "CorruptManifestError",
    "FileInfo",
    "HashingReader",
    "InvalidDigestError",
    "InvalidNameError",
    "Layer",
    "Manifest",
    "ManifestDocument",
    "ManifestError",
    "ManifestNotFoundError",
    "ManifestStore",
    "ModelConfig",
    "ModelName",
    "OperationCancelledError",
    "ProtectedManifestError",
    "StatFileInfo",
    "StoreIOError",
    "SyntheticFileInfo",
    "UnqualifiedNameError",
    "compute_file_sha256",
    "decode_manifest",
    "encode_manifest",
    "fake_digest",
    "parse_name_from_path",
    "prune_empty_dirs",
    "provide_builtin_manifests",
    "read_with_digest",
    "resolve",
    "sha256_digest",
]
