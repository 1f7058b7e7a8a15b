import pytest

from stackfs import OpenState, RamDisk
from stackfs.fileutils import write_bytes

SCENARIO_FOLDERS = ["/jkl"]
SCENARIO_FILES = [
    "/abc/a.txt",
    "/abc/b.txt",
    "/def/ghi/c.txt",
    "/def/ghi/d.txt",
    "/def/e.txt",
    "/e.txt",
]
# Each file holds its own path, so the tree weighs 64 bytes.
SCENARIO_SIZE = sum(len(path) for path in SCENARIO_FILES)


def populate(fs):
    for folder in SCENARIO_FOLDERS:
        fs.mkdir(folder)
    for path in SCENARIO_FILES:
        write_bytes(fs, path, path.encode())
    return fs


@pytest.fixture
def ram_disk():
    fs = RamDisk().open()
    yield fs
    if fs.state is OpenState.OPEN:
        fs.close()


@pytest.fixture
def populated(ram_disk):
    return populate(ram_disk)
