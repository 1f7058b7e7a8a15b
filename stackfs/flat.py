"""Hierarchical namespace over a store that only keeps flat file names."""

from __future__ import annotations

import logging
from typing import BinaryIO

from .base import FileSystem, OpenState
from .exceptions import UnderlyingError
from .memory import RamDisk
from .nodes import FileNode
from .paths import ROOT, FilePath

logger = logging.getLogger(__name__)


def to_flat_name(path: FilePath) -> str:
    """Hex encoding of the absolute path text, safe as a single file name."""
    return str(path).encode("utf-8").hex()


def from_flat_name(name: str) -> FilePath:
    try:
        return FilePath.parse(bytes.fromhex(name).decode("utf-8"))
    except ValueError as exc:
        raise UnderlyingError(f"{name!r} is not a flattened path") from exc


class FlatFileSystem(RamDisk):
    """Stores every file of the tree as one entry in the root of ``fs``.

    The folder structure is kept in memory and rebuilt from the inner
    listing on :meth:`open`, so only folders holding files survive a reopen.
    """

    def __init__(self, fs: FileSystem) -> None:
        super().__init__()
        self.fs = fs

    def __repr__(self) -> str:
        return f"FlatFileSystem({self.fs!r})"

    def open(self) -> "FlatFileSystem":
        if self.state is OpenState.OPEN:
            return self
        super().open()
        self.fs.open()
        names = [name for name in self.fs.ls(ROOT) if self.fs.is_file(ROOT.child(name))]
        for name in names:
            self.tree.create_file(from_flat_name(name))
        logger.debug("Loaded %d flattened files from %r", len(names), self.fs)
        return self

    def close(self) -> None:
        super().close()
        self.fs.close()

    @staticmethod
    def _inner_path(path: FilePath) -> FilePath:
        return ROOT.child(to_flat_name(path))

    def _size(self, path: FilePath) -> int:
        self._locate_file(path)
        return self.fs.size(self._inner_path(path))

    def _open_write(self, path: FilePath) -> BinaryIO:
        self.tree.create_file(path)
        return self.fs.open_write(self._inner_path(path))

    def _open_read(self, path: FilePath) -> BinaryIO:
        self._locate_file(path)
        return self.fs.open_read(self._inner_path(path))

    def _rmdir(self, path: FilePath) -> None:
        handle = self._locate_folder(path)
        for file_path, node in list(self.tree.walk(handle)):
            if isinstance(node, FileNode):
                self.fs.remove(self._inner_path(file_path))
        self.tree.delete(handle)

    def _remove(self, path: FilePath) -> None:
        self._locate_file(path)
        self.fs.remove(self._inner_path(path))
        super()._remove(path)


__all__ = ["FlatFileSystem", "to_flat_name", "from_flat_name"]
