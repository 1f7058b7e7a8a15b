"""Decorators applying a reversible transform to whole file payloads.

The transforms here are not chunkable, so a sink buffers everything and
encodes on close, and a source decodes the full payload on its first read.
"""

from __future__ import annotations

import base64
import binascii
import io
import zlib
from collections.abc import Callable
from typing import BinaryIO

from .base import FileSystem
from .exceptions import UnderlyingError
from .fileutils import discard_sink
from .filters import FilterFileSystem
from .paths import FilePath

Transform = Callable[[bytes], bytes]


class TransformingReader(io.RawIOBase):
    def __init__(self, raw: BinaryIO, transform: Transform) -> None:
        self._raw = raw
        self._transform = transform
        self._decoded: io.BytesIO | None = None

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        if self._decoded is None:
            try:
                payload = self._raw.read()
            finally:
                self._raw.close()
            self._decoded = io.BytesIO(self._transform(payload))
        return self._decoded.readinto(buffer)

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._decoded is None:
                self._raw.close()
        finally:
            super().close()


class TransformingWriter(io.RawIOBase):
    def __init__(self, raw: BinaryIO, transform: Transform) -> None:
        self._raw = raw
        self._transform = transform
        self._buffer = io.BytesIO()

    def writable(self) -> bool:
        return True

    def write(self, data: bytes) -> int:  # type: ignore[override]
        return self._buffer.write(data)

    def close(self) -> None:
        if self.closed:
            return
        super().close()
        payload = self._transform(self._buffer.getvalue())
        try:
            self._raw.write(payload)
        finally:
            self._raw.close()

    def abort(self) -> None:
        if self.closed:
            return
        super().close()
        discard_sink(self._raw)


class TransformFileSystem(FilterFileSystem):
    """Stores ``encode(content)`` in the inner store and reads back ``decode``.

    :meth:`size` reports the decoded size, which needs a full read.
    """

    def encode(self, data: bytes) -> bytes:
        raise NotImplementedError

    def decode(self, data: bytes) -> bytes:
        raise NotImplementedError

    def open_write(self, path: str | FilePath) -> BinaryIO:
        raw = self._inner().open_write(path)
        return TransformingWriter(raw, self.encode)  # type: ignore[return-value]

    def open_read(self, path: str | FilePath) -> BinaryIO:
        raw = self._inner().open_read(path)
        return TransformingReader(raw, self.decode)  # type: ignore[return-value]

    def size(self, path: str | FilePath) -> int:
        inner = self._inner()
        # Fail with the inner store's error kind for folders and missing paths.
        inner.size(path)
        with inner.open_read(path) as source:
            return len(self.decode(source.read()))


class BufferedFileSystem(TransformFileSystem):
    """Identity transform: streams are fully buffered in memory."""

    def encode(self, data: bytes) -> bytes:
        return data

    def decode(self, data: bytes) -> bytes:
        return data

    def size(self, path: str | FilePath) -> int:
        return self._inner().size(path)


class Base64FileSystem(TransformFileSystem):
    def encode(self, data: bytes) -> bytes:
        return base64.b64encode(data)

    def decode(self, data: bytes) -> bytes:
        try:
            return base64.b64decode(data, validate=True)
        except binascii.Error as exc:
            raise UnderlyingError(f"Stored content is not valid base64: {exc}") from exc


class CompressedFileSystem(TransformFileSystem):
    """zlib-compresses file content at ``level``."""

    def __init__(self, fs: FileSystem, level: int = zlib.Z_DEFAULT_COMPRESSION) -> None:
        super().__init__(fs)
        self.level = level

    def encode(self, data: bytes) -> bytes:
        return zlib.compress(data, self.level)

    def decode(self, data: bytes) -> bytes:
        try:
            return zlib.decompress(data)
        except zlib.error as exc:
            raise UnderlyingError(f"Stored content is not zlib data: {exc}") from exc


__all__ = [
    "TransformFileSystem",
    "BufferedFileSystem",
    "Base64FileSystem",
    "CompressedFileSystem",
    "TransformingReader",
    "TransformingWriter",
]
