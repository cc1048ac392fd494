"""Tests for empty directory pruning."""

from __future__ import annotations

import errno
import os
from pathlib import Path

import pytest

from modelrepo.cancellation import CancelToken
from modelrepo.registry.errors import OperationCancelledError, StoreIOError
from modelrepo.registry.prune import prune_empty_dirs


class TestPruneEmptyDirs:
    """Tests for prune_empty_dirs."""

    def test_removes_nested_empty_dirs(self, tmp_path: Path) -> None:
        """Empty chains are removed deepest first."""
        (tmp_path / "a" / "b" / "c").mkdir(parents=True)
        removed = prune_empty_dirs(tmp_path)
        assert removed == 3
        assert list(tmp_path.iterdir()) == []

    def test_keeps_root(self, tmp_path: Path) -> None:
        """The root survives by default."""
        root = tmp_path / "root"
        (root / "a").mkdir(parents=True)
        prune_empty_dirs(root)
        assert root.is_dir()

    def test_drops_root_when_asked(self, tmp_path: Path) -> None:
        """keep_root=False removes an empty root."""
        root = tmp_path / "root"
        (root / "a").mkdir(parents=True)
        prune_empty_dirs(root, keep_root=False)
        assert not root.exists()

    def test_keeps_dirs_with_files(self, tmp_path: Path) -> None:
        """Directories holding files stay."""
        (tmp_path / "a" / "b").mkdir(parents=True)
        (tmp_path / "a" / "empty").mkdir()
        (tmp_path / "a" / "b" / "manifest.json").write_text("{}")

        prune_empty_dirs(tmp_path)

        assert (tmp_path / "a" / "b" / "manifest.json").exists()
        assert not (tmp_path / "a" / "empty").exists()

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_not_followed(self, tmp_path: Path) -> None:
        """Symlinked directories are left alone."""
        target = tmp_path / "target"
        (target / "inner").mkdir(parents=True)
        root = tmp_path / "root"
        root.mkdir()
        (root / "link").symlink_to(target, target_is_directory=True)

        prune_empty_dirs(root)

        assert (root / "link").is_symlink()
        assert (target / "inner").is_dir()

    def test_missing_root_is_noop(self, tmp_path: Path) -> None:
        """A missing root prunes nothing."""
        assert prune_empty_dirs(tmp_path / "missing") == 0

    def test_cancelled_token_stops(self, tmp_path: Path) -> None:
        """A cancelled token stops before removing anything."""
        (tmp_path / "a").mkdir()
        token = CancelToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            prune_empty_dirs(tmp_path, cancel=token)
        assert (tmp_path / "a").exists()


class TestPruneRaces:
    """Pruning alongside concurrent writers and pruners."""

    def test_directory_vanishing_mid_prune(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A directory another pruner already removed is skipped."""
        (tmp_path / "x" / "r1").mkdir(parents=True)
        real_iterdir = Path.iterdir

        def gone(self: Path):
            if self.name == "r1":
                os.rmdir(self)
            return real_iterdir(self)

        monkeypatch.setattr(Path, "iterdir", gone)

        assert prune_empty_dirs(tmp_path) == 1
        assert not (tmp_path / "x").exists()

    def test_directory_refilled_before_rmdir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A directory that gains an entry after the emptiness check is kept."""
        (tmp_path / "a").mkdir()

        def refilled(self: Path) -> None:
            raise OSError(errno.ENOTEMPTY, "Directory not empty", str(self))

        monkeypatch.setattr(Path, "rmdir", refilled)

        assert prune_empty_dirs(tmp_path) == 0
        assert (tmp_path / "a").is_dir()

    def test_real_failure_raises_store_io(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Errors other than a vanished or refilled directory propagate."""
        (tmp_path / "a").mkdir()

        def denied(self: Path) -> None:
            raise PermissionError(errno.EACCES, "Permission denied", str(self))

        monkeypatch.setattr(Path, "rmdir", denied)

        with pytest.raises(StoreIOError, match="Failed to prune"):
            prune_empty_dirs(tmp_path)
