"""Folder and file nodes kept in an arena addressed by integer handles."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .exceptions import NodeNotFound, WrongNodeKind
from .paths import ROOT, FilePath

ROOT_HANDLE = 0


@dataclass
class Node:
    name: str
    parent: int | None = None


@dataclass
class FolderNode(Node):
    children: dict[str, int] = field(default_factory=dict)


@dataclass
class FileNode(Node):
    contents: bytes = b""


class NodeTree:
    """Hierarchy of uniquely named folder and file nodes.

    The tree owns every node; a node's ``parent`` is only the handle of the
    folder holding it. Handles stay valid until the node is deleted.
    """

    def __init__(self) -> None:
        self._nodes: dict[int, Node] = {ROOT_HANDLE: FolderNode(name="")}
        self._next_handle = ROOT_HANDLE + 1

    def __contains__(self, handle: int) -> bool:
        return handle in self._nodes

    def node(self, handle: int) -> Node:
        try:
            return self._nodes[handle]
        except KeyError as exc:
            raise NodeNotFound(f"Stale node handle {handle}") from exc

    def children(self, handle: int) -> list[Node]:
        folder = self.node(handle)
        if not isinstance(folder, FolderNode):
            raise WrongNodeKind(f"{self.path_of(handle)} is not a folder")
        return [self._nodes[child] for child in folder.children.values()]

    def locate(self, path: FilePath) -> int | None:
        handle = ROOT_HANDLE
        for part in path.parts:
            current = self._nodes[handle]
            if not isinstance(current, FolderNode):
                return None
            child = current.children.get(part)
            if child is None:
                return None
            handle = child
        return handle

    def create_folder(self, path: FilePath) -> int:
        """Walk ``path``, creating missing folders; fails on an intermediate file."""
        handle = ROOT_HANDLE
        for part in path.parts:
            folder = self._nodes[handle]
            assert isinstance(folder, FolderNode)
            child = folder.children.get(part)
            if child is None:
                child = self._attach(handle, FolderNode(name=part))
            elif not isinstance(self._nodes[child], FolderNode):
                raise WrongNodeKind(f"Invalid path {path}: {part} is a file")
            handle = child
        return handle

    def create_file(self, path: FilePath) -> int:
        """Create or reuse the file at ``path``, creating parent folders."""
        if not path.parts:
            raise WrongNodeKind("Cannot create a file at the root")
        parent = self.create_folder(path.parent)
        folder = self._nodes[parent]
        assert isinstance(folder, FolderNode)
        existing = folder.children.get(path.name)
        if existing is None:
            return self._attach(parent, FileNode(name=path.name))
        if not isinstance(self._nodes[existing], FileNode):
            raise WrongNodeKind(f"A folder named {path} already exists")
        return existing

    def set_contents(self, handle: int, contents: bytes) -> None:
        node = self.node(handle)
        if not isinstance(node, FileNode):
            raise WrongNodeKind(f"{self.path_of(handle)} is not a file")
        node.contents = contents

    def delete(self, handle: int) -> None:
        """Remove a node and its whole subtree; deleting the root empties it."""
        node = self.node(handle)
        if node.parent is None:
            assert isinstance(node, FolderNode)
            for child in list(node.children.values()):
                self._discard(child)
            node.children.clear()
            return
        parent = self._nodes[node.parent]
        assert isinstance(parent, FolderNode)
        del parent.children[node.name]
        self._discard(handle)

    def clear(self) -> None:
        self.delete(ROOT_HANDLE)

    def path_of(self, handle: int) -> FilePath:
        segments: list[str] = []
        node = self.node(handle)
        while node.parent is not None:
            segments.append(node.name)
            node = self._nodes[node.parent]
        return FilePath(reversed(segments))

    def walk(self, handle: int = ROOT_HANDLE) -> Iterator[tuple[FilePath, Node]]:
        """Yield ``(path, node)`` pairs depth-first, parents before children."""
        start = self.node(handle)

        def _walk(path: FilePath, node: Node) -> Iterator[tuple[FilePath, Node]]:
            yield (path, node)
            if isinstance(node, FolderNode):
                for name, child in node.children.items():
                    yield from _walk(path.child(name), self._nodes[child])

        return _walk(self.path_of(handle) if handle != ROOT_HANDLE else ROOT, start)

    def _attach(self, parent: int, node: Node) -> int:
        folder = self._nodes[parent]
        assert isinstance(folder, FolderNode)
        handle = self._next_handle
        self._next_handle += 1
        node.parent = parent
        self._nodes[handle] = node
        folder.children[node.name] = handle
        return handle

    def _discard(self, handle: int) -> None:
        node = self._nodes.pop(handle)
        if isinstance(node, FolderNode):
            for child in node.children.values():
                self._discard(child)


__all__ = ["Node", "FolderNode", "FileNode", "NodeTree", "ROOT_HANDLE"]
