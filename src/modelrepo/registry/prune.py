"""Removal of empty directories left behind by deletes."""

from __future__ import annotations

import errno
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from modelrepo.registry.errors import StoreIOError

if TYPE_CHECKING:
    from modelrepo.cancellation import CancelToken

logger = logging.getLogger(__name__)

# rmdir on a directory that gained an entry; EEXIST on some platforms
_NOT_EMPTY = frozenset({errno.ENOTEMPTY, errno.EEXIST})


def prune_empty_dirs(
    root: str | Path,
    *,
    keep_root: bool = True,
    cancel: CancelToken | None = None,
) -> int:
    """Remove empty directories below root, deepest first.

    Symlinks are neither followed nor removed. A directory that still holds
    files after its children are pruned is kept.

    Safe to run while other threads write or prune under the same root: a
    directory that vanishes or gains an entry mid-prune is skipped.

    Args:
        root: Directory to prune.
        keep_root: Keep root itself even when it ends up empty.
        cancel: Optional cancellation token, checked per directory.

    Returns:
        Number of directories removed.

    Raises:
        StoreIOError: On filesystem failures other than a vanished entry.
    """
    root = Path(root)
    try:
        return _prune(root, is_root=True, keep_root=keep_root, cancel=cancel)
    except OSError as e:
        msg = f"Failed to prune {root}: {e}"
        raise StoreIOError(msg) from e


def _prune(path: Path, *, is_root: bool, keep_root: bool, cancel: CancelToken | None) -> int:
    if cancel is not None:
        cancel.check()

    try:
        if path.is_symlink() or not path.is_dir():
            return 0
        children = list(os.scandir(path))
    except FileNotFoundError:
        return 0

    removed = 0
    for entry in children:
        if entry.is_dir(follow_symlinks=False):
            removed += _prune(Path(entry.path), is_root=False, keep_root=keep_root, cancel=cancel)

    if is_root and keep_root:
        return removed

    try:
        if any(path.iterdir()):
            return removed
        path.rmdir()
    except FileNotFoundError:
        return removed
    except OSError as e:
        if e.errno in _NOT_EMPTY:
            return removed
        raise
    logger.debug("Pruned empty directory", extra={"path": str(path)})
    return removed + 1
