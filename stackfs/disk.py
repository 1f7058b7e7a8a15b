"""Stores backed by a directory of the host filesystem."""

from __future__ import annotations

import contextlib
import io
import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from .base import STAGING_PREFIX, StatefulFileSystem
from .exceptions import NodeNotFound, UnderlyingError, WrongNodeKind
from .paths import FilePath

if TYPE_CHECKING:  # pragma: no cover
    from .staging import DirectStagedFileSystem

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".stackfs-part"


@contextlib.contextmanager
def translate_os_errors(path: object) -> Iterator[None]:
    """Re-raise native ``OSError``s as store errors, keeping the cause."""
    try:
        yield
    except FileNotFoundError as exc:
        raise NodeNotFound(f"No such file or directory: {path}") from exc
    except (NotADirectoryError, IsADirectoryError, FileExistsError) as exc:
        raise WrongNodeKind(f"Wrong kind of node at {path}: {exc.strerror}") from exc
    except OSError as exc:
        raise UnderlyingError(f"I/O error on {path}: {exc}") from exc


class _AtomicFileWriter(io.BufferedWriter):
    """Writes to a sibling temporary file and moves it in place on close."""

    def __init__(self, target: Path) -> None:
        fd, temp_name = tempfile.mkstemp(
            dir=target.parent, prefix=f".{target.name}.", suffix=PARTIAL_SUFFIX
        )
        super().__init__(io.FileIO(fd, "wb"))
        self._target = target
        self._temp = Path(temp_name)

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
            os.replace(self._temp, self._target)
        except OSError as exc:
            self._temp.unlink(missing_ok=True)
            raise UnderlyingError(f"Cannot commit {self._target}: {exc}") from exc

    def abort(self) -> None:
        """Close and delete the temporary file; the target is left untouched."""
        if self.closed:
            return
        try:
            super().close()
        except OSError as exc:
            raise UnderlyingError(f"Cannot discard {self._temp}: {exc}") from exc
        finally:
            self._temp.unlink(missing_ok=True)


class HardDisk(StatefulFileSystem):
    """Store rooted at a host directory; every path stays under ``root``."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        super().__init__()
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.root)!r})"

    def local_path(self, path: FilePath) -> Path:
        return self.root.joinpath(*path.parts)

    def reify(self, *, prefix: str = STAGING_PREFIX) -> "DirectStagedFileSystem":
        """Identity reification: the content already lives on the host."""
        from .staging import DirectStagedFileSystem

        return DirectStagedFileSystem(self, self._acquire_lease())

    def _ls(self, path: FilePath) -> list[str]:
        target = self.local_path(path)
        with translate_os_errors(path):
            return sorted(entry.name for entry in target.iterdir() if not _is_partial(entry))

    def _is_dir(self, path: FilePath) -> bool:
        return self.local_path(path).is_dir()

    def _is_file(self, path: FilePath) -> bool:
        return self.local_path(path).is_file()

    def _size(self, path: FilePath) -> int:
        target = self.local_path(path)
        if target.is_dir():
            raise WrongNodeKind(f"{path} is a directory")
        with translate_os_errors(path):
            return target.stat().st_size

    def _open_write(self, path: FilePath) -> BinaryIO:
        target = self.local_path(path)
        if not path.parts or target.is_dir():
            raise WrongNodeKind(f"A directory named {path} already exists")
        with translate_os_errors(path):
            target.parent.mkdir(parents=True, exist_ok=True)
            return _AtomicFileWriter(target)  # type: ignore[return-value]

    def _open_read(self, path: FilePath) -> BinaryIO:
        target = self.local_path(path)
        with translate_os_errors(path):
            return open(target, "rb")

    def _mkdir(self, path: FilePath) -> None:
        with translate_os_errors(path):
            self.local_path(path).mkdir(parents=True, exist_ok=True)

    def _rmdir(self, path: FilePath) -> None:
        target = self.local_path(path)
        if not target.is_dir():
            if target.exists():
                raise WrongNodeKind(f"{path} is not a directory")
            raise NodeNotFound(f"No such directory: {path}")
        with translate_os_errors(path):
            if path.parts:
                shutil.rmtree(target)
                return
            for entry in target.iterdir():
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()

    def _remove(self, path: FilePath) -> None:
        target = self.local_path(path)
        if target.is_dir():
            raise WrongNodeKind(f"{path} is not a file")
        with translate_os_errors(path):
            target.unlink()


class TempFolder(HardDisk):
    """A :class:`HardDisk` on a fresh temporary directory, deleted on close."""

    def __init__(self, prefix: str = "stackfs-", *, delete_on_close: bool = True) -> None:
        super().__init__(tempfile.mkdtemp(prefix=prefix))
        self.delete_on_close = delete_on_close

    def close(self) -> None:
        super().close()
        if self.delete_on_close:
            logger.debug("Deleting temporary folder %s", self.root)
            with translate_os_errors(self.root):
                shutil.rmtree(self.root)


def _is_partial(entry: Path) -> bool:
    return entry.name.endswith(PARTIAL_SUFFIX)


__all__ = ["HardDisk", "TempFolder", "PARTIAL_SUFFIX", "translate_os_errors"]
