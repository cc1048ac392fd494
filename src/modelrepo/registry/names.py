"""Model names and their store paths.

Name format:
    [namespace/]repository[:tag]

Example:
    library/demo:latest

A fully qualified name maps to a manifest file under the store's
manifests root:
    {namespace}/{repository}/{tag}/manifest.json
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath, PureWindowsPath

from modelrepo.registry.errors import InvalidNameError, UnqualifiedNameError

DEFAULT_NAMESPACE = "library"
DEFAULT_TAG = "latest"

# Leaf file holding the JSON-encoded manifest
MANIFEST_FILENAME = "manifest.json"

# A single name part: starts with alnum or underscore, max 80 chars.
# Dots are allowed inside a part but "." and ".." can never match.
PART_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,79}$")

NAME_PATTERN = re.compile(
    r"^"
    r"(?:(?P<namespace>[^/:]*)/)?"  # namespace: optional, before the slash
    r"(?P<repository>[^/:]*)"  # repository
    r"(?::(?P<tag>[^/:]*))?"  # tag: optional, after the colon
    r"$"
)


@dataclass(frozen=True, order=True)
class ModelName:
    """Hierarchical model identifier.

    Attributes:
        namespace: Owner namespace (e.g., "library").
        repository: Model repository (e.g., "demo").
        tag: Version tag (e.g., "latest").

    Empty strings mark missing parts.
    """

    namespace: str = ""
    repository: str = ""
    tag: str = ""

    def __str__(self) -> str:
        """Return the display form namespace/repository:tag."""
        return f"{self.namespace}/{self.repository}:{self.tag}"

    @classmethod
    def parse(cls, text: str) -> ModelName:
        """Parse a display name, filling default namespace and tag.

        Args:
            text: Name like "demo", "library/demo" or "library/demo:v1".

        Returns:
            ModelName. Unparseable input yields an empty (invalid) name.
        """
        match = NAME_PATTERN.match(text.strip())
        if not match:
            return cls()
        return cls(
            namespace=match.group("namespace") or DEFAULT_NAMESPACE,
            repository=match.group("repository") or "",
            tag=match.group("tag") or DEFAULT_TAG,
        )

    @property
    def parts(self) -> tuple[str, str, str]:
        """Name parts in path order."""
        return (self.namespace, self.repository, self.tag)

    def is_fully_qualified(self) -> bool:
        """Check that namespace, repository and tag are all present."""
        return all(self.parts)

    def is_valid(self) -> bool:
        """Check that the name is fully qualified and every part is well formed."""
        return self.is_fully_qualified() and all(PART_PATTERN.match(p) for p in self.parts)


def resolve(name: ModelName) -> str:
    """Resolve a name to its manifest path relative to the manifests root.

    Args:
        name: Fully qualified model name.

    Returns:
        POSIX relative path "{namespace}/{repository}/{tag}/manifest.json".

    Raises:
        UnqualifiedNameError: If any part is missing.
        InvalidNameError: If a part is malformed.
    """
    if not name.is_fully_qualified():
        raise UnqualifiedNameError(name)
    if not name.is_valid():
        msg = f"Invalid model name: {name}"
        raise InvalidNameError(msg)
    return PurePosixPath(*name.parts, MANIFEST_FILENAME).as_posix()


def parse_name_from_path(relative_path: str) -> ModelName:
    """Reconstruct a name from a manifest path relative to the manifests root.

    Inverse of resolve(): accepts POSIX or native separators.

    Args:
        relative_path: Path like "library/demo/latest/manifest.json".

    Returns:
        Validated ModelName.

    Raises:
        InvalidNameError: If the path does not have the
            namespace/repository/tag/manifest.json shape.
    """
    parts = PureWindowsPath(relative_path).parts if "\\" in relative_path else None
    if parts is None:
        parts = PurePosixPath(relative_path).parts

    if len(parts) != 4 or parts[3] != MANIFEST_FILENAME:
        msg = f"Invalid manifest path: {relative_path!r}"
        raise InvalidNameError(msg)

    name = ModelName(namespace=parts[0], repository=parts[1], tag=parts[2])
    if not name.is_valid():
        msg = f"Invalid manifest path: {relative_path!r}"
        raise InvalidNameError(msg)
    return name
