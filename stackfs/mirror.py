"""Replication of one namespace across several stores."""

from __future__ import annotations

import io
import logging
from collections.abc import Callable
from typing import BinaryIO

from .base import FileSystem
from .exceptions import FileSystemError, NodeNotFound, ReplicationError
from .fileutils import discard_sink
from .paths import FilePath

logger = logging.getLogger(__name__)


class _MirrorWriter(io.RawIOBase):
    """Copies every write to one sink per replica."""

    def __init__(self, sinks: list[tuple[FileSystem, BinaryIO]]) -> None:
        self._sinks = sinks

    def writable(self) -> bool:
        return True

    def write(self, data: bytes) -> int:  # type: ignore[override]
        applied: list[FileSystem] = []
        for replica, sink in self._sinks:
            try:
                sink.write(data)
            except FileSystemError as exc:
                if not applied:
                    raise
                raise ReplicationError(
                    f"Write failed on {replica!r} after {len(applied)} replica(s)",
                    applied=applied,
                ) from exc
            applied.append(replica)
        return memoryview(data).nbytes

    def close(self) -> None:
        if self.closed:
            return
        super().close()
        applied: list[FileSystem] = []
        failure: tuple[FileSystem, FileSystemError] | None = None
        for replica, sink in self._sinks:
            try:
                sink.close()
            except FileSystemError as exc:
                if failure is None:
                    failure = (replica, exc)
                continue
            applied.append(replica)
        if failure is None:
            return
        replica, exc = failure
        if not applied:
            raise exc
        logger.warning("Committing a mirrored file failed on %r", replica)
        raise ReplicationError(
            f"Commit failed on {replica!r}; {len(applied)} replica(s) applied it",
            applied=applied,
        ) from exc

    def abort(self) -> None:
        if self.closed:
            return
        super().close()
        for _, sink in self._sinks:
            discard_sink(sink)


class Mirror(FileSystem):
    """Keeps ``replicas`` in step.

    Mutations fan out to every replica in order. Queries ask the replicas in
    the same order and answer from the first one that has the path, so the
    namespaces read as one merged tree. A fan-out that fails after some
    replicas already changed raises :class:`ReplicationError`.
    """

    def __init__(self, *replicas: FileSystem) -> None:
        if not replicas:
            raise ValueError("Mirror needs at least one replica")
        self.replicas = list(replicas)

    def __repr__(self) -> str:
        inner = ", ".join(repr(replica) for replica in self.replicas)
        return f"Mirror({inner})"

    def _fan_out(self, operation: Callable[[FileSystem], object], label: str) -> None:
        self._check_not_reified()
        self._replicate(operation, label)

    def _replicate(self, operation: Callable[[FileSystem], object], label: str) -> None:
        applied: list[FileSystem] = []
        for replica in self.replicas:
            try:
                operation(replica)
            except FileSystemError as exc:
                if not applied:
                    raise
                logger.warning(
                    "%s failed on %r after %d replica(s) applied it", label, replica, len(applied)
                )
                raise ReplicationError(
                    f"{label} failed on {replica!r} after {len(applied)} replica(s)",
                    applied=applied,
                ) from exc
            applied.append(replica)

    def _first_with_file(self, path: str | FilePath) -> FileSystem:
        self._check_not_reified()
        for replica in self.replicas:
            if replica.is_file(path):
                return replica
        # Let the primary replica report the precise error kind.
        return self.replicas[0]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def open(self) -> "Mirror":
        self._replicate(lambda replica: replica.open(), "open")
        return self

    def close(self) -> None:
        errors: list[FileSystemError] = []
        for replica in self.replicas:
            try:
                replica.close()
            except FileSystemError as exc:
                errors.append(exc)
        if errors:
            raise errors[0]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def ls(self, path: str | FilePath | None = None) -> list[str]:
        self._check_not_reified()
        names: dict[str, None] = {}
        found = False
        for replica in self.replicas:
            if path is not None and not replica.is_dir(path):
                continue
            found = True
            names.update(dict.fromkeys(replica.ls(path)))
        if not found:
            raise NodeNotFound(f"No such directory: {path}")
        return list(names)

    def is_dir(self, path: str | FilePath) -> bool:
        self._check_not_reified()
        return any(replica.is_dir(path) for replica in self.replicas)

    def is_file(self, path: str | FilePath) -> bool:
        self._check_not_reified()
        return any(replica.is_file(path) for replica in self.replicas)

    def size(self, path: str | FilePath) -> int:
        return self._first_with_file(path).size(path)

    def open_read(self, path: str | FilePath) -> BinaryIO:
        return self._first_with_file(path).open_read(path)

    def pwd(self) -> str:
        self._check_not_reified()
        return self.replicas[0].pwd()

    # ------------------------------------------------------------------
    # Mutations and navigation
    # ------------------------------------------------------------------
    def open_write(self, path: str | FilePath) -> BinaryIO:
        self._check_not_reified()
        sinks: list[tuple[FileSystem, BinaryIO]] = []
        try:
            for replica in self.replicas:
                sinks.append((replica, replica.open_write(path)))
        except FileSystemError as exc:
            for _, sink in sinks:
                discard_sink(sink)
            if not sinks:
                raise
            raise ReplicationError(
                f"Cannot open {path} on every replica", applied=[replica for replica, _ in sinks]
            ) from exc
        return _MirrorWriter(sinks)  # type: ignore[return-value]

    def mkdir(self, path: str | FilePath) -> None:
        self._fan_out(lambda replica: replica.mkdir(path), f"mkdir {path}")

    def rmdir(self, path: str | FilePath) -> None:
        self._fan_out(lambda replica: replica.rmdir(path), f"rmdir {path}")

    def remove(self, path: str | FilePath) -> None:
        self._fan_out(lambda replica: replica.remove(path), f"remove {path}")

    def chdir(self, path: str | FilePath) -> None:
        self._fan_out(lambda replica: replica.chdir(path), f"chdir {path}")

    def pushd(self, path: str | FilePath) -> None:
        self._fan_out(lambda replica: replica.pushd(path), f"pushd {path}")

    def popd(self) -> None:
        self._fan_out(lambda replica: replica.popd(), "popd")


__all__ = ["Mirror"]
