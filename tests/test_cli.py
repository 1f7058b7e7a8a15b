import zipfile

import pytest

from stackfs import HardDisk
from stackfs.cli import main

from conftest import SCENARIO_SIZE, populate


@pytest.fixture
def source_dir(tmp_path):
    root = tmp_path / "source"
    root.mkdir()
    with HardDisk(root) as disk:
        populate(disk)
    return root


def run(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def test_cli_ls_marks_folders(source_dir, capsys):
    assert run(["ls", str(source_dir)]) == 0
    captured = capsys.readouterr()
    assert captured.out.splitlines() == ["abc/", "def/", "e.txt", "jkl/"]


def test_cli_cat_prints_file(source_dir, capsys):
    assert run(["cat", str(source_dir), "/def/e.txt"]) == 0
    assert capsys.readouterr().out == "/def/e.txt"


def test_cli_du_sums_sizes(source_dir, capsys):
    assert run(["du", str(source_dir)]) == 0
    assert capsys.readouterr().out == f"{SCENARIO_SIZE}\t/\n"
    assert run(["du", str(source_dir), "/abc/a.txt"]) == 0
    assert capsys.readouterr().out == "10\t/abc/a.txt\n"


def test_cli_tree_renders_connectors(source_dir, capsys):
    assert run(["tree", str(source_dir), "/def"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "/def",
        "├── ghi/",
        "│   ├── c.txt",
        "│   └── d.txt",
        "└── e.txt",
    ]


def test_cli_chroot(source_dir, capsys):
    assert run(["ls", str(source_dir), "--chroot", "/def"]) == 0
    assert capsys.readouterr().out.splitlines() == ["e.txt", "ghi/"]


def test_cli_reads_zip_archives(tmp_path, capsys):
    archive_path = tmp_path / "bundle.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr("docs/readme.txt", "hello from zip")
    assert run(["cat", str(archive_path), "docs/readme.txt"]) == 0
    assert capsys.readouterr().out == "hello from zip"


def test_cli_reports_store_errors(source_dir, capsys):
    assert run(["cat", str(source_dir), "/missing.txt"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("stackfs: ")


def test_cli_never_writes_to_the_source(source_dir):
    before = sorted(path.name for path in source_dir.rglob("*"))
    assert run(["tree", str(source_dir)]) == 0
    assert sorted(path.name for path in source_dir.rglob("*")) == before
