"""The store contract and the open/close state machine shared by backends."""

from __future__ import annotations

import contextlib
import io
import logging
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from .exceptions import AlreadyClosed, LeaseConflict, NotOpen, UnderlyingError
from .paths import ROOT, FilePath

if TYPE_CHECKING:  # pragma: no cover
    from .staging import StagedFileSystem

logger = logging.getLogger(__name__)

STAGING_PREFIX = "stackfs-reified-"


class OpenState(Enum):
    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    CLOSED = "closed"


class FileSystem(ABC):
    """Uniform set of file and folder operations honoured by every store.

    Paths may be given as strings or :class:`FilePath` instances; relative
    paths resolve against the store's current directory. Streams returned by
    :meth:`open_read` and :meth:`open_write` belong to the caller, and written
    content is only committed when the sink is closed.

    Every store can also be reified (see :meth:`reify`): while a lease is
    outstanding, the store rejects direct calls with :class:`LeaseConflict`
    and only the lease handle may reach it.
    """

    _lease: object | None = None
    _bypass_depth: int = 0

    @abstractmethod
    def open(self) -> "FileSystem": ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def ls(self, path: str | FilePath | None = None) -> list[str]: ...

    @abstractmethod
    def is_dir(self, path: str | FilePath) -> bool: ...

    @abstractmethod
    def is_file(self, path: str | FilePath) -> bool: ...

    @abstractmethod
    def size(self, path: str | FilePath) -> int: ...

    @abstractmethod
    def open_write(self, path: str | FilePath) -> BinaryIO: ...

    @abstractmethod
    def open_read(self, path: str | FilePath) -> BinaryIO: ...

    @abstractmethod
    def chdir(self, path: str | FilePath) -> None: ...

    @abstractmethod
    def pushd(self, path: str | FilePath) -> None: ...

    @abstractmethod
    def popd(self) -> None: ...

    @abstractmethod
    def mkdir(self, path: str | FilePath) -> None: ...

    @abstractmethod
    def rmdir(self, path: str | FilePath) -> None: ...

    @abstractmethod
    def remove(self, path: str | FilePath) -> None: ...

    @abstractmethod
    def pwd(self) -> str: ...

    def __enter__(self) -> "FileSystem":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Reification lease
    # ------------------------------------------------------------------
    def reify(self, *, prefix: str = STAGING_PREFIX) -> "StagedFileSystem":
        """Expose this store as a real directory tree under a single lease."""
        from .staging import StagedFileSystem

        token = self._acquire_lease()
        try:
            root = Path(tempfile.mkdtemp(prefix=prefix))
        except OSError as exc:
            self._release_lease(token)
            raise UnderlyingError(f"Cannot create staging directory: {exc}") from exc
        logger.debug("Reified %r into %s", self, root)
        return StagedFileSystem(self, root, token)

    @property
    def reified(self) -> bool:
        return self._lease is not None

    def _acquire_lease(self) -> object:
        if self._lease is not None:
            raise LeaseConflict("File system is already reified")
        token = object()
        self._lease = token
        return token

    def _release_lease(self, token: object) -> None:
        if self._lease is not token:
            raise LeaseConflict("Invalid lease token")
        self._lease = None

    def _check_not_reified(self) -> None:
        if self._lease is not None and self._bypass_depth == 0:
            raise LeaseConflict("File system is reified; use its lease handle")

    @contextlib.contextmanager
    def _bypass(self, token: object) -> Iterator[None]:
        if self._lease is not token:
            raise LeaseConflict("Invalid lease token")
        self._bypass_depth += 1
        try:
            yield
        finally:
            self._bypass_depth -= 1


class StatefulFileSystem(FileSystem):
    """Implements the state machine, the cwd and the directory stack once.

    Subclasses only provide the primitives (``_ls``, ``_is_dir`` ...), which
    always receive absolute, normalized paths.
    """

    def __init__(self) -> None:
        self.state = OpenState.UNINITIALIZED
        self._cwd = ROOT
        self._dir_stack: list[FilePath] = []

    def open(self) -> "StatefulFileSystem":
        if self.state is OpenState.CLOSED:
            raise AlreadyClosed("File system has already been closed")
        self.state = OpenState.OPEN
        return self

    def close(self) -> None:
        if self.state is OpenState.CLOSED:
            raise AlreadyClosed("File system has already been closed")
        if self.state is OpenState.UNINITIALIZED:
            raise NotOpen("File system is not open")
        self.state = OpenState.CLOSED

    def _check_open(self) -> None:
        if self.state is not OpenState.OPEN:
            raise NotOpen("File system is not open")
        self._check_not_reified()

    def _resolve(self, path: str | FilePath | None) -> FilePath:
        self._check_open()
        if path is None:
            return self._cwd
        return self._cwd.join(path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def pwd(self) -> str:
        self._check_open()
        return str(self._cwd)

    def chdir(self, path: str | FilePath) -> None:
        target = self._resolve(path)
        self._dir_stack.append(self._cwd)
        self._cwd = target

    def pushd(self, path: str | FilePath) -> None:
        self.chdir(path)

    def popd(self) -> None:
        self._check_open()
        self._cwd = self._dir_stack.pop() if self._dir_stack else ROOT

    def ls(self, path: str | FilePath | None = None) -> list[str]:
        return self._ls(self._resolve(path))

    def is_dir(self, path: str | FilePath) -> bool:
        return self._is_dir(self._resolve(path))

    def is_file(self, path: str | FilePath) -> bool:
        return self._is_file(self._resolve(path))

    def size(self, path: str | FilePath) -> int:
        return self._size(self._resolve(path))

    def open_write(self, path: str | FilePath) -> BinaryIO:
        return self._open_write(self._resolve(path))

    def open_read(self, path: str | FilePath) -> BinaryIO:
        return self._open_read(self._resolve(path))

    def mkdir(self, path: str | FilePath) -> None:
        self._mkdir(self._resolve(path))

    def rmdir(self, path: str | FilePath) -> None:
        self._rmdir(self._resolve(path))

    def remove(self, path: str | FilePath) -> None:
        self._remove(self._resolve(path))

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------
    @abstractmethod
    def _ls(self, path: FilePath) -> list[str]: ...

    @abstractmethod
    def _is_dir(self, path: FilePath) -> bool: ...

    @abstractmethod
    def _is_file(self, path: FilePath) -> bool: ...

    @abstractmethod
    def _size(self, path: FilePath) -> int: ...

    @abstractmethod
    def _open_write(self, path: FilePath) -> BinaryIO: ...

    @abstractmethod
    def _open_read(self, path: FilePath) -> BinaryIO: ...

    @abstractmethod
    def _mkdir(self, path: FilePath) -> None: ...

    @abstractmethod
    def _rmdir(self, path: FilePath) -> None: ...

    @abstractmethod
    def _remove(self, path: FilePath) -> None: ...


class _NullSink(io.RawIOBase):
    def writable(self) -> bool:
        return True

    def write(self, data: bytes) -> int:  # type: ignore[override]
        return memoryview(data).nbytes


class NoopFileSystem(StatefulFileSystem):
    """A store that holds nothing: listings are empty and writes vanish."""

    def _ls(self, path: FilePath) -> list[str]:
        return []

    def _is_dir(self, path: FilePath) -> bool:
        return False

    def _is_file(self, path: FilePath) -> bool:
        return False

    def _size(self, path: FilePath) -> int:
        return 0

    def _open_write(self, path: FilePath) -> BinaryIO:
        return _NullSink()  # type: ignore[return-value]

    def _open_read(self, path: FilePath) -> BinaryIO:
        return io.BytesIO(b"")

    def _mkdir(self, path: FilePath) -> None:
        pass

    def _rmdir(self, path: FilePath) -> None:
        pass

    def _remove(self, path: FilePath) -> None:
        pass


__all__ = [
    "FileSystem",
    "StatefulFileSystem",
    "NoopFileSystem",
    "OpenState",
    "STAGING_PREFIX",
]
