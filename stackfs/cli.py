"""Command-line interface for inspecting a directory or zip archive."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .archives import ReadZipFile
from .base import FileSystem
from .disk import HardDisk
from .exceptions import FileSystemError
from .fileutils import read_bytes, total_size
from .filters import Chroot, ReadOnlyFileSystem
from .paths import FilePath


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("source", help="Host directory or .zip archive to open.")
    parser.add_argument(
        "--chroot",
        metavar="DIR",
        help="Confine every path under DIR of the source.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log store activity to stderr.",
    )


def _build_store(source: str, chroot: str | None) -> FileSystem:
    store: FileSystem
    if Path(source).suffix.lower() == ".zip":
        store = ReadZipFile(source)
    else:
        store = ReadOnlyFileSystem(HardDisk(source))
    if chroot:
        store = Chroot(store, chroot)
    return store


def _run_ls(store: FileSystem, args: argparse.Namespace) -> int:
    for name in sorted(store.ls(args.path)):
        suffix = "/" if store.is_dir(FilePath.parse(args.path).child(name)) else ""
        sys.stdout.write(f"{name}{suffix}\n")
    return 0


def _run_cat(store: FileSystem, args: argparse.Namespace) -> int:
    sys.stdout.write(read_bytes(store, args.path).decode("utf-8", errors="replace"))
    return 0


def _run_du(store: FileSystem, args: argparse.Namespace) -> int:
    if store.is_file(args.path):
        size = store.size(args.path)
    else:
        size = total_size(store, args.path)
    sys.stdout.write(f"{size}\t{args.path}\n")
    return 0


def _run_tree(store: FileSystem, args: argparse.Namespace) -> int:
    lines: list[str] = []

    def render(directory: FilePath, prefix: str = "") -> None:
        entries = sorted(
            (directory.child(name) for name in store.ls(directory)),
            key=lambda path: (not store.is_dir(path), path.name),
        )
        for idx, entry in enumerate(entries):
            last = idx == len(entries) - 1
            connector = "└──" if last else "├──"
            if store.is_dir(entry):
                lines.append(f"{prefix}{connector} {entry.name}/")
                render(entry, prefix + ("    " if last else "│   "))
            else:
                lines.append(f"{prefix}{connector} {entry.name}")

    root = FilePath.parse(store.pwd()).join(args.path)
    render(root)
    sys.stdout.write("\n".join([str(root)] + lines) + "\n")
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="stackfs")
    subparsers = parser.add_subparsers(dest="command_name", required=True)

    ls_parser = subparsers.add_parser("ls", help="List a folder")
    _add_common_flags(ls_parser)
    ls_parser.add_argument("path", nargs="?", default="/", help="Folder to list")
    ls_parser.set_defaults(func=_run_ls)

    cat_parser = subparsers.add_parser("cat", help="Print a file")
    _add_common_flags(cat_parser)
    cat_parser.add_argument("path", help="File to print")
    cat_parser.set_defaults(func=_run_cat)

    du_parser = subparsers.add_parser("du", help="Report the total size of a path")
    _add_common_flags(du_parser)
    du_parser.add_argument("path", nargs="?", default="/", help="File or folder to measure")
    du_parser.set_defaults(func=_run_du)

    tree_parser = subparsers.add_parser("tree", help="Render a folder as a tree")
    _add_common_flags(tree_parser)
    tree_parser.add_argument("path", nargs="?", default="/", help="Folder to render")
    tree_parser.set_defaults(func=_run_tree)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    store = _build_store(args.source, args.chroot)
    try:
        with store:
            exit_code = args.func(store, args)
    except FileSystemError as exc:
        sys.stderr.write(f"stackfs: {exc}\n")
        exit_code = 1
    raise SystemExit(exit_code)


__all__ = ["main"]
