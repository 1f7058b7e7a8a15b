"""Structured, immutable paths and their normalization rules."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

SLASH = "/"
UP = ".."
DOT = "."


def simplify(parts: Iterable[str], *, absolute: bool) -> tuple[str, ...]:
    """Normalize path segments with a single stack rule.

    Empty, whitespace-only and ``.`` segments are dropped. ``..`` cancels the
    nearest preceding concrete segment; when there is none it is kept in
    place for a relative path and dropped for an absolute one (the parent of
    the root is the root).
    """
    stack: list[str] = []
    for part in parts:
        if not part.strip() or part == DOT:
            continue
        if part == UP:
            if stack and stack[-1] != UP:
                stack.pop()
            elif not absolute:
                stack.append(UP)
            continue
        stack.append(part)
    return tuple(stack)


@dataclass(frozen=True)
class FilePath:
    """Ordered sequence of segments plus an absolute/relative flag."""

    parts: tuple[str, ...]
    absolute: bool

    def __init__(self, parts: Iterable[str] = (), absolute: bool = True) -> None:
        object.__setattr__(self, "parts", simplify(parts, absolute=absolute))
        object.__setattr__(self, "absolute", absolute)

    @classmethod
    def parse(cls, text: str) -> "FilePath":
        text = text.strip()
        return cls(text.split(SLASH), absolute=text == "" or text.startswith(SLASH))

    def is_absolute(self) -> bool:
        return self.absolute

    @property
    def is_root(self) -> bool:
        return self.absolute and not self.parts

    @property
    def name(self) -> str:
        return self.parts[-1] if self.parts else ""

    @property
    def parent(self) -> "FilePath":
        if not self.parts:
            return self
        return FilePath(self.parts[:-1], self.absolute)

    def join(self, other: "str | FilePath") -> "FilePath":
        """Resolve ``other`` against this path; absolute arguments win."""
        other = as_path(other)
        if other.absolute:
            return other
        return FilePath(self.parts + other.parts, self.absolute)

    __truediv__ = join

    def child(self, name: str) -> "FilePath":
        return FilePath(self.parts + (name,), self.absolute)

    def is_within(self, base: "FilePath") -> bool:
        if self.absolute != base.absolute or len(self.parts) < len(base.parts):
            return False
        return self.parts[: len(base.parts)] == base.parts

    def relative_to(self, base: "FilePath") -> "FilePath":
        if not self.is_within(base):
            raise ValueError(f"{self} is not within {base}")
        return FilePath(self.parts[len(base.parts) :], absolute=False)

    def __str__(self) -> str:
        body = SLASH.join(self.parts)
        return SLASH + body if self.absolute else body

    def __repr__(self) -> str:
        return f"FilePath({str(self)!r})"


ROOT = FilePath((), absolute=True)


def as_path(value: str | FilePath) -> FilePath:
    if isinstance(value, FilePath):
        return value
    return FilePath.parse(value)


__all__ = ["FilePath", "ROOT", "SLASH", "UP", "DOT", "as_path", "simplify"]
