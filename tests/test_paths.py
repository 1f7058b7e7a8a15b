import random

import pytest

from stackfs import ROOT, FilePath

SEGMENTS = ["a", "b", "c", "dir", "file.txt", "..", ".", "", "  "]


def reference_normalize(segments, absolute):
    stack = []
    for segment in segments:
        if not segment.strip() or segment == ".":
            continue
        if segment == "..":
            if stack and stack[-1] != "..":
                stack.pop()
            elif not absolute:
                stack.append("..")
            continue
        stack.append(segment)
    return tuple(stack)


def test_parse_absolute_and_relative():
    path = FilePath.parse("/a/b/c.txt")
    assert path.is_absolute()
    assert path.parts == ("a", "b", "c.txt")
    assert str(path) == "/a/b/c.txt"

    relative = FilePath.parse("a/./b//c")
    assert not relative.is_absolute()
    assert relative.parts == ("a", "b", "c")
    assert str(relative) == "a/b/c"


def test_empty_text_is_root():
    assert FilePath.parse("") == ROOT
    assert FilePath.parse("   ") == ROOT
    assert FilePath.parse("/") == ROOT
    assert ROOT.is_root


def test_parent_markers_cancel_or_stay():
    assert FilePath.parse("a/b/..").parts == ("a",)
    assert FilePath.parse("../a/b").parts == ("..", "a", "b")
    assert FilePath.parse("a/../../b").parts == ("..", "b")
    assert FilePath.parse("/../a") == FilePath.parse("/a")
    assert FilePath.parse("/a/../..") == ROOT


def test_dot_is_not_kept_as_a_placeholder():
    here = FilePath.parse(".")
    assert here.parts == ()
    assert not here.is_absolute()
    assert here.join("../baz") == FilePath.parse("../baz")


def test_join_resolves_relative_and_replaces_on_absolute():
    base = FilePath.parse("/abc")
    assert base.join("../def/ghi/") == FilePath.parse("/def/ghi")
    assert base.join("/xyz") == FilePath.parse("/xyz")
    assert base / "x" / "y" == FilePath.parse("/abc/x/y")
    assert FilePath.parse("a").join("b/../c") == FilePath.parse("a/c")


def test_equality_includes_the_absolute_flag():
    assert FilePath.parse("/a") != FilePath.parse("a")
    assert FilePath(("a", "b")) == FilePath.parse("/a/b")
    assert len({FilePath.parse("/a/b"), FilePath.parse("/a/./b/")}) == 1


def test_name_parent_and_child():
    path = FilePath.parse("/docs/readme.md")
    assert path.name == "readme.md"
    assert path.parent == FilePath.parse("/docs")
    assert path.parent.child("other.md") == FilePath.parse("/docs/other.md")
    assert ROOT.parent == ROOT
    assert ROOT.name == ""


def test_relative_to_and_is_within():
    path = FilePath.parse("/def/ghi/c.txt")
    base = FilePath.parse("/def")
    assert path.is_within(base)
    assert path.relative_to(base) == FilePath.parse("ghi/c.txt")
    assert not FilePath.parse("/define").is_within(base)
    with pytest.raises(ValueError):
        FilePath.parse("/abc").relative_to(base)


@pytest.mark.parametrize("seed", range(25))
def test_trailing_parent_markers_cancel_as_many_segments(seed):
    rng = random.Random(seed)
    names = [f"{rng.choice('abcdefgh')}{index}" for index in range(rng.randint(1, 8))]
    count = rng.randint(0, len(names))
    base = FilePath(names)
    joined = base.join(FilePath([".."] * count, absolute=False))
    assert joined.parts == tuple(names[: len(names) - count])


@pytest.mark.parametrize("seed", range(25))
def test_parse_matches_reference_normalizer(seed):
    rng = random.Random(seed)
    segments = [rng.choice(SEGMENTS) for _ in range(rng.randint(0, 12))]
    absolute = rng.random() < 0.5
    text = ("/" if absolute else "") + "/".join(segments)
    stripped = text.strip()
    expected_absolute = stripped == "" or stripped.startswith("/")
    path = FilePath.parse(text)
    assert path.is_absolute() == expected_absolute
    assert path.parts == reference_normalize(segments, expected_absolute)


@pytest.mark.parametrize("seed", range(25))
def test_join_matches_normalized_concatenation(seed):
    rng = random.Random(seed)
    head = [rng.choice(SEGMENTS) for _ in range(rng.randint(0, 6))]
    tail = [rng.choice(SEGMENTS) for _ in range(rng.randint(1, 6))]
    base = FilePath(head)
    joined = base.join(FilePath(tail, absolute=False))
    assert joined.parts == reference_normalize(head + tail, absolute=True)
