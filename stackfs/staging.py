"""Lease-guarded materialization of a store onto the host filesystem.

A :class:`StagedFileSystem` is handed out by :meth:`FileSystem.reify`. It
exposes the backing store's content as real paths under a temporary staging
directory, fetching each path from the backing store the first time it is
touched. Nothing flows back until :meth:`StagedFileSystem.commit` walks the
staging tree (including files created there by native tools) and writes every
entry into the backing store. :meth:`StagedFileSystem.release` deletes the
staging directory and frees the lease; it never commits on its own.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO

from .base import FileSystem, OpenState, StatefulFileSystem
from .disk import HardDisk, PARTIAL_SUFFIX, translate_os_errors
from .exceptions import AlreadyClosed
from .fileutils import copy_stream, makedirs
from .paths import FilePath

logger = logging.getLogger(__name__)


class StagedFileSystem(StatefulFileSystem):
    """Lease handle exposing a backing store as native paths."""

    def __init__(self, backing: FileSystem, root: Path, token: object) -> None:
        super().__init__()
        self.backing = backing
        self.local_root = Path(root)
        self.committed = False
        self._token = token
        self._local = HardDisk(self.local_root).open()
        self._fetched: set[FilePath] = set()
        self.state = OpenState.OPEN

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    # ------------------------------------------------------------------
    # Lease operations
    # ------------------------------------------------------------------
    def to_local_path(self, path: str | FilePath, *, deep: bool = False) -> Path:
        """Return the host path of ``path``, fetching it first if needed.

        With ``deep=True`` the whole backing subtree below ``path`` is fetched.
        """
        target = self._resolve(path)
        if deep:
            self._materialize_tree(target)
        else:
            self._materialize(target, create_parents=True)
        return self._local.local_path(target)

    def commit(self) -> None:
        """Write every staged folder and file back into the backing store."""
        self._check_open()
        logger.debug("Committing %s into %r", self.local_root, self.backing)
        with self.backing._bypass(self._token):
            for dirpath, dirnames, filenames in os.walk(self.local_root):
                dirnames.sort()
                folder = FilePath(Path(dirpath).relative_to(self.local_root).parts)
                makedirs(self.backing, folder)
                for name in sorted(filenames):
                    if name.endswith(PARTIAL_SUFFIX):
                        continue
                    self._write_back(Path(dirpath) / name, folder.child(name))
        self.committed = True

    def release(self) -> None:
        """Delete the staging directory and free the lease. Idempotent."""
        if self.state is OpenState.CLOSED:
            return
        self.state = OpenState.CLOSED
        if not self.committed:
            logger.debug("Releasing %s without commit; local changes are lost", self.local_root)
        try:
            self._discard_staging()
        finally:
            self.backing._release_lease(self._token)

    def close(self) -> None:
        if self.state is OpenState.CLOSED:
            raise AlreadyClosed("Lease has already been released")
        self.release()

    # ------------------------------------------------------------------
    # Primitives run against the staging directory
    # ------------------------------------------------------------------
    def _ls(self, path: FilePath) -> list[str]:
        self._materialize(path)
        names = set(self._local.ls(path))
        names.update(self._pending_names(path))
        return sorted(names)

    def _is_dir(self, path: FilePath) -> bool:
        self._materialize(path)
        return self._local.is_dir(path)

    def _is_file(self, path: FilePath) -> bool:
        self._materialize(path)
        return self._local.is_file(path)

    def _size(self, path: FilePath) -> int:
        self._materialize(path)
        return self._local.size(path)

    def _open_write(self, path: FilePath) -> BinaryIO:
        self._local.mkdir(path.parent)
        self._fetched.add(path)
        return self._local.open_write(path)

    def _open_read(self, path: FilePath) -> BinaryIO:
        self._materialize(path)
        return self._local.open_read(path)

    def _mkdir(self, path: FilePath) -> None:
        self._local.mkdir(path)
        self._fetched.add(path)

    def _rmdir(self, path: FilePath) -> None:
        self._materialize(path)
        self._local.rmdir(path)

    def _remove(self, path: FilePath) -> None:
        self._materialize(path)
        self._local.remove(path)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    def _materialize(self, path: FilePath, *, create_parents: bool = False) -> None:
        """Fetch ``path`` once; an absent path only gets its local parents."""
        if path in self._fetched:
            return
        if self._local.local_path(path).exists():
            self._fetched.add(path)
            return
        with self.backing._bypass(self._token):
            if self.backing.is_dir(path):
                self._local.mkdir(path)
            elif self.backing.is_file(path):
                self._local.mkdir(path.parent)
                with self.backing.open_read(path) as source, self._local.open_write(path) as sink:
                    copy_stream(source, sink)
            elif create_parents:
                self._local.mkdir(path.parent)
            else:
                return
        self._fetched.add(path)

    def _pending_names(self, path: FilePath) -> list[str]:
        """Backing children of ``path`` that have not been fetched or removed yet."""
        with self.backing._bypass(self._token):
            names = self.backing.ls(path) if self.backing.is_dir(path) else []
        return [name for name in names if path.child(name) not in self._fetched]

    def _materialize_tree(self, path: FilePath) -> None:
        self._materialize(path)
        with self.backing._bypass(self._token):
            if not self.backing.is_dir(path):
                return
            names = self.backing.ls(path)
        for name in names:
            self._materialize_tree(path.child(name))

    def _write_back(self, source_path: Path, target: FilePath) -> None:
        with translate_os_errors(source_path), open(source_path, "rb") as source:
            with self.backing.open_write(target) as sink:
                copy_stream(source, sink)

    def _discard_staging(self) -> None:
        with translate_os_errors(self.local_root):
            shutil.rmtree(self.local_root)


class DirectStagedFileSystem(StagedFileSystem):
    """Lease handle for a store whose content already is a host directory.

    Paths map straight onto the backing directory, so there is nothing to
    fetch, :meth:`commit` has nothing to copy and :meth:`release` keeps the
    directory.
    """

    def __init__(self, backing: HardDisk, token: object) -> None:
        super().__init__(backing, backing.root, token)

    def commit(self) -> None:
        self._check_open()
        self.committed = True

    def _materialize(self, path: FilePath, *, create_parents: bool = False) -> None:
        pass

    def _pending_names(self, path: FilePath) -> list[str]:
        return []

    def _materialize_tree(self, path: FilePath) -> None:
        pass

    def _discard_staging(self) -> None:
        pass


__all__ = ["StagedFileSystem", "DirectStagedFileSystem"]
