"""stackfs package: one file-system contract over stackable stores."""

from .archives import PersistentFileSystem, ReadZipFile, ZipArchive
from .base import FileSystem, NoopFileSystem, OpenState, StatefulFileSystem
from .disk import HardDisk, TempFolder
from .exceptions import (
    AlreadyClosed,
    CapacityExceeded,
    FileSystemError,
    LeaseConflict,
    NodeNotFound,
    NotOpen,
    ReplicationError,
    ThrottleInterrupted,
    Unauthorized,
    UnderlyingError,
    Unsupported,
    WrongNodeKind,
)
from .filters import Chroot, FilterFileSystem, ReadOnlyFileSystem
from .flat import FlatFileSystem
from .memory import RamDisk
from .mirror import Mirror
from .paths import ROOT, FilePath
from .staging import DirectStagedFileSystem, StagedFileSystem
from .throttle import FloppyDisk, FloppySize, ThrottledFileSystem, ThrottleLimits
from .transform import (
    Base64FileSystem,
    BufferedFileSystem,
    CompressedFileSystem,
    TransformFileSystem,
)

__all__ = [
    "FilePath",
    "ROOT",
    "FileSystem",
    "StatefulFileSystem",
    "OpenState",
    "NoopFileSystem",
    "RamDisk",
    "HardDisk",
    "TempFolder",
    "FlatFileSystem",
    "PersistentFileSystem",
    "ZipArchive",
    "ReadZipFile",
    "FilterFileSystem",
    "ReadOnlyFileSystem",
    "Chroot",
    "Mirror",
    "TransformFileSystem",
    "BufferedFileSystem",
    "Base64FileSystem",
    "CompressedFileSystem",
    "ThrottledFileSystem",
    "ThrottleLimits",
    "FloppyDisk",
    "FloppySize",
    "StagedFileSystem",
    "DirectStagedFileSystem",
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
