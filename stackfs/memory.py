"""In-memory store backed by a :class:`NodeTree`."""

from __future__ import annotations

import io
from typing import BinaryIO

from .base import StatefulFileSystem
from .exceptions import NodeNotFound, WrongNodeKind
from .nodes import FileNode, FolderNode, NodeTree
from .paths import FilePath


class _MemoryWriter(io.BytesIO):
    """Buffers written bytes and swaps them into the file node on close."""

    def __init__(self, tree: NodeTree, path: FilePath, *, created: bool = False) -> None:
        super().__init__()
        self._tree = tree
        self._path = path
        self._created = created

    def close(self) -> None:
        if not self.closed:
            contents = self.getvalue()
            self._tree.set_contents(self._tree.create_file(self._path), contents)
        super().close()

    def abort(self) -> None:
        """Close without committing; a file created for this sink is removed again."""
        if self.closed:
            return
        if self._created:
            handle = self._tree.locate(self._path)
            if handle is not None:
                self._tree.delete(handle)
        super().close()


class RamDisk(StatefulFileSystem):
    """Hierarchical store living entirely in process memory."""

    def __init__(self) -> None:
        super().__init__()
        self.tree = NodeTree()

    def _locate_folder(self, path: FilePath) -> int:
        handle = self.tree.locate(path)
        if handle is None:
            raise NodeNotFound(f"No such directory: {path}")
        if not isinstance(self.tree.node(handle), FolderNode):
            raise WrongNodeKind(f"{path} is not a directory")
        return handle

    def _locate_file(self, path: FilePath) -> FileNode:
        handle = self.tree.locate(path)
        if handle is None:
            raise NodeNotFound(f"No such file: {path}")
        node = self.tree.node(handle)
        if not isinstance(node, FileNode):
            raise WrongNodeKind(f"{path} is not a file")
        return node

    def _ls(self, path: FilePath) -> list[str]:
        return [child.name for child in self.tree.children(self._locate_folder(path))]

    def _is_dir(self, path: FilePath) -> bool:
        handle = self.tree.locate(path)
        return handle is not None and isinstance(self.tree.node(handle), FolderNode)

    def _is_file(self, path: FilePath) -> bool:
        handle = self.tree.locate(path)
        return handle is not None and isinstance(self.tree.node(handle), FileNode)

    def _size(self, path: FilePath) -> int:
        return len(self._locate_file(path).contents)

    def _open_write(self, path: FilePath) -> BinaryIO:
        created = self.tree.locate(path) is None
        self.tree.create_file(path)
        return _MemoryWriter(self.tree, path, created=created)

    def _open_read(self, path: FilePath) -> BinaryIO:
        return io.BytesIO(self._locate_file(path).contents)

    def _mkdir(self, path: FilePath) -> None:
        self.tree.create_folder(path)

    def _rmdir(self, path: FilePath) -> None:
        self.tree.delete(self._locate_folder(path))

    def _remove(self, path: FilePath) -> None:
        handle = self.tree.locate(path)
        if handle is None or not isinstance(self.tree.node(handle), FileNode):
            if handle is not None:
                raise WrongNodeKind(f"{path} is not a file")
            raise NodeNotFound(f"No such file: {path}")
        self.tree.delete(handle)


__all__ = ["RamDisk"]
