"""Exception hierarchy shared by every store and decorator."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .base import FileSystem


class FileSystemError(Exception):
    """Base class for all stackfs errors."""


class NotOpen(FileSystemError):
    """Operation attempted on a store that is not in the open state."""


class AlreadyClosed(FileSystemError):
    """Store (or lease handle) has already been closed."""


class NodeNotFound(FileSystemError):
    pass


class WrongNodeKind(FileSystemError):
    """A file was found where a folder was expected, or the reverse."""


class Unauthorized(FileSystemError):
    """Operation blocked by a policy decorator."""


class CapacityExceeded(FileSystemError):
    pass


class Unsupported(FileSystemError):
    """Operation is meaningless for this backend."""


class LeaseConflict(FileSystemError):
    """Store is already reified, or was accessed outside its lease handle."""


class UnderlyingError(FileSystemError):
    """Wraps a native I/O failure; the original error is chained."""


class ThrottleInterrupted(FileSystemError):
    pass


class ReplicationError(FileSystemError):
    """A mirrored mutation failed after some replicas had already applied it."""

    def __init__(self, message: str, *, applied: Sequence["FileSystem"]) -> None:
        super().__init__(message)
        self.applied = list(applied)


__all__ = [
    "FileSystemError",
    "NotOpen",
    "AlreadyClosed",
    "NodeNotFound",
    "WrongNodeKind",
    "Unauthorized",
    "CapacityExceeded",
    "Unsupported",
    "LeaseConflict",
    "UnderlyingError",
    "ThrottleInterrupted",
    "ReplicationError",
]
