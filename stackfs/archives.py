"""Stores serialized into, or read from, a zip container."""

from __future__ import annotations

import io
import logging
import os
import zipfile
from typing import BinaryIO

from .base import FileSystem, OpenState
from .disk import translate_os_errors
from .exceptions import UnderlyingError, Unsupported
from .memory import RamDisk
from .nodes import FileNode, FolderNode
from .paths import FilePath, as_path

logger = logging.getLogger(__name__)


class PersistentFileSystem(RamDisk):
    """A RAM disk loaded from ``filename`` of ``fs`` on open and saved back on close.

    ``fs`` must already be open. A missing file starts an empty store.
    """

    def __init__(self, fs: FileSystem, filename: str | FilePath) -> None:
        super().__init__()
        self.fs = fs
        self.filename = as_path(filename)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.fs!r}, {str(self.filename)!r})"

    def load(self, source: BinaryIO) -> None:
        raise NotImplementedError

    def save(self, sink: BinaryIO) -> None:
        raise NotImplementedError

    def open(self) -> "PersistentFileSystem":
        if self.state is OpenState.OPEN:
            return self
        super().open()
        if self.fs.is_file(self.filename):
            logger.debug("Loading %s from %r", self.filename, self.fs)
            with self.fs.open_read(self.filename) as source:
                self.load(source)
        return self

    def close(self) -> None:
        if self.state is OpenState.OPEN:
            logger.debug("Saving %s into %r", self.filename, self.fs)
            with self.fs.open_write(self.filename) as sink:
                self.save(sink)
        super().close()


class ZipArchive(PersistentFileSystem):
    """Persists the whole tree as a deflated zip file."""

    def load(self, source: BinaryIO) -> None:
        data = source.read()
        if not data:
            return
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                for info in archive.infolist():
                    path = _entry_path(info.filename)
                    if not path.parts:
                        continue
                    if info.is_dir():
                        self.tree.create_folder(path)
                    else:
                        self.tree.set_contents(self.tree.create_file(path), archive.read(info))
        except zipfile.BadZipFile as exc:
            raise UnderlyingError(f"{self.filename} is not a zip archive: {exc}") from exc

    def save(self, sink: BinaryIO) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path, node in self.tree.walk():
                if not path.parts:
                    continue
                name = "/".join(path.parts)
                if isinstance(node, FolderNode):
                    archive.writestr(name + "/", b"")
                elif isinstance(node, FileNode):
                    archive.writestr(name, node.contents)
        sink.write(buffer.getvalue())


class ReadZipFile(RamDisk):
    """Read-only view of a zip file on the host.

    Only the directory of the archive is loaded on open; file content is
    decompressed when a file is read.
    """

    def __init__(self, source: str | os.PathLike[str]) -> None:
        super().__init__()
        self.source = source
        self._archive: zipfile.ZipFile | None = None
        self._entries: dict[FilePath, zipfile.ZipInfo] = {}

    def __repr__(self) -> str:
        return f"ReadZipFile({os.fspath(self.source)!r})"

    def open(self) -> "ReadZipFile":
        if self.state is OpenState.UNINITIALIZED:
            self._load()
        super().open()
        return self

    def close(self) -> None:
        super().close()
        if self._archive is not None:
            self._archive.close()

    def _load(self) -> None:
        try:
            with translate_os_errors(self.source):
                self._archive = zipfile.ZipFile(self.source)
        except zipfile.BadZipFile as exc:
            raise UnderlyingError(f"{os.fspath(self.source)} is not a zip archive") from exc
        for info in self._archive.infolist():
            path = _entry_path(info.filename)
            if not path.parts:
                continue
            if info.is_dir():
                self.tree.create_folder(path)
            else:
                self.tree.create_file(path)
                self._entries[path] = info
        logger.debug("Indexed %d entries of %s", len(self._entries), self.source)

    def _size(self, path: FilePath) -> int:
        self._locate_file(path)
        return self._entries[path].file_size

    def _open_read(self, path: FilePath) -> BinaryIO:
        self._locate_file(path)
        assert self._archive is not None
        return self._archive.open(self._entries[path])  # type: ignore[return-value]

    def _open_write(self, path: FilePath) -> BinaryIO:
        raise Unsupported(f"Cannot write {path}: zip archives are read-only")

    def _mkdir(self, path: FilePath) -> None:
        raise Unsupported(f"Cannot create {path}: zip archives are read-only")

    def _rmdir(self, path: FilePath) -> None:
        raise Unsupported(f"Cannot delete {path}: zip archives are read-only")

    def _remove(self, path: FilePath) -> None:
        raise Unsupported(f"Cannot delete {path}: zip archives are read-only")


def _entry_path(name: str) -> FilePath:
    """Absolute store path of an archive member; climbing segments are clamped."""
    return FilePath(FilePath.parse(name).parts)


__all__ = ["PersistentFileSystem", "ZipArchive", "ReadZipFile"]
