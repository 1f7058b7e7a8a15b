"""Helpers built only on the public store operations."""

from __future__ import annotations

import io
import re
from collections.abc import Iterator
from typing import BinaryIO

from .base import FileSystem, OpenState
from .exceptions import FileSystemError, NodeNotFound
from .paths import FilePath, as_path

CHUNK_SIZE = 64 * 1024


def copy_stream(source: BinaryIO, sink: BinaryIO, *, chunk_size: int = CHUNK_SIZE) -> int:
    copied = 0
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return copied
        sink.write(chunk)
        copied += len(chunk)


def read_bytes(fs: FileSystem, path: str | FilePath) -> bytes:
    with fs.open_read(path) as source:
        return source.read()


def write_bytes(fs: FileSystem, path: str | FilePath, data: bytes) -> None:
    with fs.open_write(path) as sink:
        sink.write(data)


def discard_sink(sink: BinaryIO) -> None:
    """Close ``sink`` without committing it when the sink supports aborting."""
    abort = getattr(sink, "abort", None)
    if callable(abort):
        abort()
    else:
        sink.close()


def makedirs(fs: FileSystem, path: str | FilePath) -> None:
    """Create ``path`` and its missing ancestors one level at a time."""
    target = as_path(path)
    current = FilePath((), target.absolute)
    for part in target.parts:
        current = current.child(part)
        if not fs.is_dir(current):
            fs.mkdir(current)


def _absolute(fs: FileSystem, path: str | FilePath) -> FilePath:
    return FilePath.parse(fs.pwd()).join(path)


def walk_files(fs: FileSystem, path: str | FilePath = "/") -> Iterator[FilePath]:
    """Yield every file below ``path``, files of a folder before its subfolders."""
    base = _absolute(fs, path)
    folders: list[FilePath] = []
    for name in fs.ls(base):
        child = base.child(name)
        if fs.is_dir(child):
            folders.append(child)
        else:
            yield child
    for folder in folders:
        yield from walk_files(fs, folder)


def total_size(fs: FileSystem, path: str | FilePath = "/") -> int:
    return sum(fs.size(file_path) for file_path in walk_files(fs, path))


def copy_tree(source: FileSystem, target: FileSystem, path: str | FilePath = "/") -> None:
    """Copy the folder ``path`` of ``source`` to the same location in ``target``."""
    base = _absolute(source, path)
    makedirs(target, base)
    for name in source.ls(base):
        child = base.child(name)
        if source.is_dir(child):
            copy_tree(source, target, child)
            continue
        with source.open_read(child) as reader, target.open_write(child) as writer:
            copy_stream(reader, writer)


def ls_matching(fs: FileSystem, path: str | FilePath | None, pattern: str) -> list[str]:
    regex = re.compile(pattern)
    return [name for name in fs.ls(path) if regex.fullmatch(name)]


class _DependentStream(io.RawIOBase):
    """Forwards to ``raw`` and closes ``fs`` once the stream is closed."""

    def __init__(self, raw: BinaryIO, fs: FileSystem | None) -> None:
        self._raw = raw
        self._fs = fs

    def readable(self) -> bool:
        return self._raw.readable()

    def writable(self) -> bool:
        return self._raw.writable()

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        data = self._raw.read(len(buffer))
        count = len(data)
        buffer[:count] = data
        return count

    def write(self, data: bytes) -> int:  # type: ignore[override]
        self._raw.write(data)
        return memoryview(data).nbytes

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._raw.close()
        finally:
            super().close()
            if self._fs is not None:
                self._fs.close()


class FileProxy:
    """Handle on a single existing file of ``fs``.

    A store that has never been opened is opened by the stream and closed
    again when that stream is closed. An already open store is left open.
    """

    def __init__(self, fs: FileSystem, path: str | FilePath) -> None:
        self.fs = fs
        self.path = as_path(path)

    def __repr__(self) -> str:
        return f"FileProxy({self.fs!r}, {str(self.path)!r})"

    def _attach(self) -> FileSystem | None:
        owned = getattr(self.fs, "state", None) is OpenState.UNINITIALIZED
        if owned:
            self.fs.open()
        if not self.fs.is_file(self.path):
            if owned:
                self.fs.close()
            raise NodeNotFound(f"No such file: {self.path}")
        return self.fs if owned else None

    def open_read(self) -> BinaryIO:
        owner = self._attach()
        try:
            raw = self.fs.open_read(self.path)
        except FileSystemError:
            if owner is not None:
                owner.close()
            raise
        return _DependentStream(raw, owner)  # type: ignore[return-value]

    def open_write(self) -> BinaryIO:
        owner = self._attach()
        try:
            raw = self.fs.open_write(self.path)
        except FileSystemError:
            if owner is not None:
                owner.close()
            raise
        return _DependentStream(raw, owner)  # type: ignore[return-value]


__all__ = [
    "CHUNK_SIZE",
    "copy_stream",
    "read_bytes",
    "write_bytes",
    "makedirs",
    "walk_files",
    "total_size",
    "copy_tree",
    "ls_matching",
    "discard_sink",
    "FileProxy",
]
