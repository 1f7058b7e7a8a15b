import io

import pytest

from stackfs import NodeNotFound, OpenState, RamDisk, ZipArchive
from stackfs.fileutils import (
    FileProxy,
    copy_stream,
    copy_tree,
    discard_sink,
    ls_matching,
    makedirs,
    read_bytes,
    total_size,
    walk_files,
    write_bytes,
)

from conftest import SCENARIO_FILES, SCENARIO_SIZE


def test_walk_files_lists_files_before_descending(populated):
    assert [str(path) for path in walk_files(populated)] == [
        "/e.txt",
        "/abc/a.txt",
        "/abc/b.txt",
        "/def/e.txt",
        "/def/ghi/c.txt",
        "/def/ghi/d.txt",
    ]


def test_walk_files_resolves_relative_folders(populated):
    populated.chdir("/def")
    assert [str(path) for path in walk_files(populated, "ghi")] == [
        "/def/ghi/c.txt",
        "/def/ghi/d.txt",
    ]


def test_total_size(populated):
    assert total_size(populated) == SCENARIO_SIZE
    assert total_size(populated, "/def") == 38
    assert total_size(populated, "/jkl") == 0


def test_copy_tree_reproduces_folders_and_files(populated):
    with RamDisk() as target:
        copy_tree(populated, target)
        assert target.is_dir("/jkl")
        for path in SCENARIO_FILES:
            assert read_bytes(target, path) == path.encode()


def test_copy_stream_counts_bytes():
    sink = io.BytesIO()
    assert copy_stream(io.BytesIO(b"x" * 100), sink, chunk_size=7) == 100
    assert sink.getvalue() == b"x" * 100


def test_ls_matching_uses_full_matches(populated):
    assert ls_matching(populated, "/", r".*\.txt") == ["e.txt"]
    assert sorted(ls_matching(populated, "/abc", r"[ab]\.txt")) == ["a.txt", "b.txt"]
    assert ls_matching(populated, "/abc", r"a") == []


def test_makedirs_creates_missing_levels(ram_disk):
    makedirs(ram_disk, "/one/two/three")
    makedirs(ram_disk, "/one/two")
    assert ram_disk.is_dir("/one/two/three")


def test_file_proxy_opens_and_closes_an_unopened_store():
    store = RamDisk()
    store.open()
    write_bytes(store, "/note.txt", b"note")
    proxy = FileProxy(store, "/note.txt")
    with proxy.open_read() as source:
        assert source.read() == b"note"
    assert store.state is OpenState.OPEN

    fresh = ZipArchive(store, "/bundle.zip")
    with fresh:
        write_bytes(fresh, "/inside.txt", b"zipped")
    reopened = ZipArchive(store, "/bundle.zip")
    with FileProxy(reopened, "/inside.txt").open_read() as source:
        assert reopened.state is OpenState.OPEN
        assert source.read() == b"zipped"
    assert reopened.state is OpenState.CLOSED


def test_file_proxy_writes_replace_the_file(populated):
    proxy = FileProxy(populated, "/abc/a.txt")
    with proxy.open_write() as sink:
        sink.write(b"proxied")
    assert read_bytes(populated, "/abc/a.txt") == b"proxied"


def test_file_proxy_needs_an_existing_file(populated):
    with pytest.raises(NodeNotFound):
        FileProxy(populated, "/abc").open_read()
    with pytest.raises(NodeNotFound):
        FileProxy(populated, "/missing.txt").open_write()
    unopened = RamDisk()
    with pytest.raises(NodeNotFound):
        FileProxy(unopened, "/missing.txt").open_read()
    assert unopened.state is OpenState.CLOSED


def test_discard_sink_aborts_or_closes():
    with RamDisk() as store:
        write_bytes(store, "/kept.txt", b"kept")
        sink = store.open_write("/kept.txt")
        sink.write(b"dropped")
        discard_sink(sink)
        assert read_bytes(store, "/kept.txt") == b"kept"
    plain = io.BytesIO()
    discard_sink(plain)
    assert plain.closed
