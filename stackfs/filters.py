"""Pass-through decorator and the policies built directly on it."""

from __future__ import annotations

from typing import BinaryIO

from .base import FileSystem
from .exceptions import Unauthorized
from .paths import ROOT, FilePath, as_path


class FilterFileSystem(FileSystem):
    """Forwards every operation unchanged to ``fs``.

    Policies subclass this and override only the operations they alter, so
    decorators stack in any order. ``open``/``close`` are forwarded as well;
    the inner store's state machine stays authoritative.
    """

    def __init__(self, fs: FileSystem) -> None:
        self.fs = fs

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.fs!r})"

    def _inner(self) -> FileSystem:
        self._check_not_reified()
        return self.fs

    def open(self) -> "FilterFileSystem":
        self.fs.open()
        return self

    def close(self) -> None:
        self.fs.close()

    def ls(self, path: str | FilePath | None = None) -> list[str]:
        return self._inner().ls(path)

    def is_dir(self, path: str | FilePath) -> bool:
        return self._inner().is_dir(path)

    def is_file(self, path: str | FilePath) -> bool:
        return self._inner().is_file(path)

    def size(self, path: str | FilePath) -> int:
        return self._inner().size(path)

    def open_write(self, path: str | FilePath) -> BinaryIO:
        return self._inner().open_write(path)

    def open_read(self, path: str | FilePath) -> BinaryIO:
        return self._inner().open_read(path)

    def chdir(self, path: str | FilePath) -> None:
        self._inner().chdir(path)

    def pushd(self, path: str | FilePath) -> None:
        self._inner().pushd(path)

    def popd(self) -> None:
        self._inner().popd()

    def mkdir(self, path: str | FilePath) -> None:
        self._inner().mkdir(path)

    def rmdir(self, path: str | FilePath) -> None:
        self._inner().rmdir(path)

    def remove(self, path: str | FilePath) -> None:
        self._inner().remove(path)

    def pwd(self) -> str:
        return self._inner().pwd()


class ReadOnlyFileSystem(FilterFileSystem):
    """Rejects every mutation with :class:`Unauthorized`."""

    def open_write(self, path: str | FilePath) -> BinaryIO:
        raise Unauthorized(f"Cannot write {path}: file system is read-only")

    def mkdir(self, path: str | FilePath) -> None:
        raise Unauthorized(f"Cannot create {path}: file system is read-only")

    def rmdir(self, path: str | FilePath) -> None:
        raise Unauthorized(f"Cannot delete {path}: file system is read-only")

    def remove(self, path: str | FilePath) -> None:
        raise Unauthorized(f"Cannot delete {path}: file system is read-only")


class Chroot(FilterFileSystem):
    """Confines every path under ``root`` of the inner store.

    The working directory is not stored here: it is derived from the inner
    store's cwd on each call, so navigation done through either object is
    seen by both. Paths climbing above the root are clamped to it.
    """

    def __init__(self, fs: FileSystem, root: str | FilePath) -> None:
        super().__init__(fs)
        root = as_path(root)
        self.root = FilePath(root.parts)

    def __repr__(self) -> str:
        return f"Chroot({self.fs!r}, {str(self.root)!r})"

    def _local_cwd(self) -> FilePath:
        inner_cwd = FilePath.parse(self._inner().pwd())
        if inner_cwd.is_within(self.root):
            return FilePath(inner_cwd.relative_to(self.root).parts)
        return ROOT

    def _confine(self, path: str | FilePath | None) -> FilePath:
        local = self._local_cwd()
        if path is not None:
            local = local.join(path)
        return self.root.join(FilePath(local.parts, absolute=False))

    def pwd(self) -> str:
        return str(self._local_cwd())

    def ls(self, path: str | FilePath | None = None) -> list[str]:
        return self._inner().ls(self._confine(path))

    def is_dir(self, path: str | FilePath) -> bool:
        return self._inner().is_dir(self._confine(path))

    def is_file(self, path: str | FilePath) -> bool:
        return self._inner().is_file(self._confine(path))

    def size(self, path: str | FilePath) -> int:
        return self._inner().size(self._confine(path))

    def open_write(self, path: str | FilePath) -> BinaryIO:
        return self._inner().open_write(self._confine(path))

    def open_read(self, path: str | FilePath) -> BinaryIO:
        return self._inner().open_read(self._confine(path))

    def chdir(self, path: str | FilePath) -> None:
        self._inner().chdir(self._confine(path))

    def pushd(self, path: str | FilePath) -> None:
        self._inner().pushd(self._confine(path))

    def mkdir(self, path: str | FilePath) -> None:
        self._inner().mkdir(self._confine(path))

    def rmdir(self, path: str | FilePath) -> None:
        self._inner().rmdir(self._confine(path))

    def remove(self, path: str | FilePath) -> None:
        self._inner().remove(self._confine(path))


__all__ = ["FilterFileSystem", "ReadOnlyFileSystem", "Chroot"]
