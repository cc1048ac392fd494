"""File metadata capability.

Manifests carry a FileInfo describing their backing entry. Real manifests
use StatFileInfo (an os.stat view); built-in manifests use SyntheticFileInfo
so consumers that treat a manifest as file-backed keep working.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path


@runtime_checkable
class FileInfo(Protocol):
    """Name, size, mode and modification time of a manifest entry."""

    @property
    def name(self) -> str: ...

    @property
    def size(self) -> int: ...

    @property
    def mode(self) -> int: ...

    @property
    def mod_time(self) -> datetime: ...

    @property
    def is_dir(self) -> bool: ...


@dataclass(frozen=True)
class StatFileInfo:
    """FileInfo backed by an os.stat_result."""

    name: str
    stat_result: os.stat_result

    @classmethod
    def from_path(cls, path: Path) -> StatFileInfo:
        """Stat a path without following a final symlink."""
        return cls(name=path.name, stat_result=path.lstat())

    @classmethod
    def from_fd(cls, name: str, fd: int) -> StatFileInfo:
        """Stat an already opened file descriptor."""
        return cls(name=name, stat_result=os.fstat(fd))

    @property
    def size(self) -> int:
        return self.stat_result.st_size

    @property
    def mode(self) -> int:
        return stat.S_IMODE(self.stat_result.st_mode)

    @property
    def mod_time(self) -> datetime:
        return datetime.fromtimestamp(self.stat_result.st_mtime, tz=UTC)

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.stat_result.st_mode)


@dataclass(frozen=True)
class SyntheticFileInfo:
    """Fabricated FileInfo for manifests with no file on disk."""

    name: str
    size: int
    mode: int = 0o644
    mod_time: datetime = datetime.fromtimestamp(0, tz=UTC)
    is_dir: bool = False
