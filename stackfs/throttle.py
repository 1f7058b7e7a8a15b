"""Bandwidth and capacity limits for a wrapped store."""

from __future__ import annotations

import enum
import io
import logging
import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO

from .base import FileSystem
from .disk import HardDisk
from .exceptions import CapacityExceeded, NotOpen, ThrottleInterrupted
from .fileutils import discard_sink, total_size
from .filters import FilterFileSystem
from .paths import FilePath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThrottleLimits:
    """``speed_limit`` in bytes per second, ``size_limit`` in bytes; ``None`` is unlimited."""

    speed_limit: int | None = None
    size_limit: int | None = None


def sleep_time_ms(transferred: int, max_rate: int | None, elapsed_ms: float) -> float:
    """Milliseconds to wait so that ``transferred`` bytes average at most ``max_rate``/s."""
    if not max_rate or transferred <= 0:
        return 0.0
    return max(0.0, transferred / max_rate * 1000 - elapsed_ms)


class _Throttle:
    def __init__(self, max_rate: int | None, interrupted: threading.Event) -> None:
        self.max_rate = max_rate
        self.transferred = 0
        self._started = time.monotonic()
        self._interrupted = interrupted

    def wait(self) -> None:
        if self.max_rate is None:
            return
        if self._interrupted.is_set():
            raise ThrottleInterrupted("Throttled transfer was interrupted")
        elapsed_ms = (time.monotonic() - self._started) * 1000
        delay = sleep_time_ms(self.transferred, self.max_rate, elapsed_ms)
        if delay <= 0:
            return
        logger.debug("Throttling transfer for %.1f ms", delay)
        if self._interrupted.wait(delay / 1000):
            raise ThrottleInterrupted("Throttled transfer was interrupted")

    def record(self, count: int) -> None:
        self.transferred += count


class ThrottledReader(io.RawIOBase):
    def __init__(self, raw: BinaryIO, throttle: _Throttle) -> None:
        self._raw = raw
        self._throttle = throttle

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        self._throttle.wait()
        data = self._raw.read(len(buffer))
        count = len(data)
        buffer[:count] = data
        self._throttle.record(count)
        return count

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._raw.close()
        finally:
            super().close()


class ThrottledWriter(io.RawIOBase):
    """Rate-limited sink that charges every write against a shared allowance.

    ``reserve`` is called with the size of each write before it reaches the
    raw sink and raises :class:`CapacityExceeded` to refuse it. A refused
    write leaves the bytes of earlier calls in place; they are committed when
    the sink is closed. ``on_abort`` gets back the bytes charged so far when
    the sink is discarded instead.
    """

    def __init__(
        self,
        raw: BinaryIO,
        throttle: _Throttle,
        *,
        reserve: Callable[[int], None] | None = None,
        on_abort: Callable[[int], None] | None = None,
    ) -> None:
        self._raw = raw
        self._throttle = throttle
        self._reserve = reserve
        self._on_abort = on_abort
        self.bytes_written = 0

    def writable(self) -> bool:
        return True

    def write(self, data: bytes) -> int:  # type: ignore[override]
        count = memoryview(data).nbytes
        self._throttle.wait()
        if self._reserve is not None:
            self._reserve(count)
        self._raw.write(data)
        self.bytes_written += count
        self._throttle.record(count)
        return count

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._raw.close()
        finally:
            super().close()

    def abort(self) -> None:
        if self.closed:
            return
        try:
            discard_sink(self._raw)
        finally:
            super().close()
            if self._on_abort is not None:
                self._on_abort(self.bytes_written)


class ThrottledFileSystem(FilterFileSystem):
    """Caps the transfer rate of every stream and the total size of the store.

    The used size is measured once, when the decorator is built, or on the
    first :meth:`open` if the inner store was not open yet. From then on it
    is a running total: every write through any open sink is charged as it
    happens, and deletions through this decorator give their size back.
    """

    def __init__(self, fs: FileSystem, limits: ThrottleLimits | None = None) -> None:
        super().__init__(fs)
        self.limits = limits or ThrottleLimits()
        self.used: int | None = None
        self._interrupted = threading.Event()
        if self.limits.size_limit is not None:
            try:
                self.used = total_size(fs)
            except NotOpen:
                logger.debug("%r is not open; measuring its size on open", fs)

    def open(self) -> "ThrottledFileSystem":
        super().open()
        self._measure()
        return self

    def interrupt(self) -> None:
        """Abort pending and future throttle waits of the streams open right now.

        Streams opened afterwards are throttled normally.
        """
        interrupted, self._interrupted = self._interrupted, threading.Event()
        interrupted.set()

    def _measure(self) -> int:
        if self.used is None:
            self.used = total_size(self.fs) if self.limits.size_limit is not None else 0
        return self.used

    def _reserve(self, count: int) -> None:
        used = self._measure()
        limit = self.limits.size_limit
        if limit is not None and used + count > limit:
            logger.warning(
                "Refusing %d byte write: %d of %d bytes left", count, limit - used, limit
            )
            raise CapacityExceeded(
                f"Writing {count} bytes would exceed the size limit ({limit - used} bytes left)"
            )
        self.used = used + count

    def _throttle(self) -> _Throttle:
        return _Throttle(self.limits.speed_limit, self._interrupted)

    def open_read(self, path: str | FilePath) -> BinaryIO:
        raw = self._inner().open_read(path)
        return ThrottledReader(raw, self._throttle())  # type: ignore[return-value]

    def open_write(self, path: str | FilePath) -> BinaryIO:
        inner = self._inner()
        if self.limits.size_limit is None:
            return ThrottledWriter(inner.open_write(path), self._throttle())  # type: ignore[return-value]
        used = self._measure()
        previous = inner.size(path) if inner.is_file(path) else 0
        raw = inner.open_write(path)
        # The old content is replaced on close, so its size is credited up front.
        self.used = used - previous

        def restore(charged: int) -> None:
            self.used = self._measure() - charged + previous

        return ThrottledWriter(  # type: ignore[return-value]
            raw, self._throttle(), reserve=self._reserve, on_abort=restore
        )

    def remove(self, path: str | FilePath) -> None:
        inner = self._inner()
        if self.limits.size_limit is None:
            inner.remove(path)
            return
        used = self._measure()
        freed = inner.size(path)
        inner.remove(path)
        self.used = used - freed

    def rmdir(self, path: str | FilePath) -> None:
        inner = self._inner()
        if self.limits.size_limit is None:
            inner.rmdir(path)
            return
        used = self._measure()
        freed = total_size(inner, path)
        inner.rmdir(path)
        self.used = used - freed


class FloppySize(enum.Enum):
    """Capacities of the floppy presets, in bytes."""

    F_360 = 360 * 1024
    F_720 = 720 * 1024


class FloppyDisk(ThrottledFileSystem):
    """A host directory capped at the capacity of a floppy disk."""

    def __init__(
        self,
        root: str | os.PathLike[str],
        size: FloppySize = FloppySize.F_720,
        *,
        speed_limit: int | None = None,
    ) -> None:
        super().__init__(HardDisk(root), ThrottleLimits(speed_limit, size.value))
        self.size_preset = size

    def __repr__(self) -> str:
        return f"FloppyDisk({os.fspath(self.fs.root)!r}, {self.size_preset})"


__all__ = [
    "FloppyDisk",
    "FloppySize",
    "ThrottleLimits",
    "ThrottledFileSystem",
    "ThrottledReader",
    "ThrottledWriter",
    "sleep_time_ms",
]
