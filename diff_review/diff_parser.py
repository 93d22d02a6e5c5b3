"""Unified diff parsing into per-file patches with new-side line numbers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

DEV_NULL = "/dev/null"

_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


@dataclass(slots=True)
class DiffLine:
    """One body line of a hunk."""

    kind: Literal["context", "add", "delete"]
    content: str
    old_lineno: int | None
    new_lineno: int | None


@dataclass(slots=True)
class DiffHunk:
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[DiffLine] = field(default_factory=list)


@dataclass(slots=True)
class FilePatch:
    """All hunks touching one file."""

    old_path: str | None = None
    new_path: str | None = None
    hunks: list[DiffHunk] = field(default_factory=list)
    is_binary: bool = False

    @property
    def path(self) -> str:
        for candidate in (self.new_path, self.old_path):
            if candidate and candidate != DEV_NULL:
                return candidate
        return "<unknown>"

    @property
    def is_new_file(self) -> bool:
        return self.old_path == DEV_NULL

    @property
    def is_deleted_file(self) -> bool:
        return self.new_path == DEV_NULL

    def added_lines(self) -> list[tuple[int, str]]:
        """``(new line number, content)`` for every added line."""
        return [
            (line.new_lineno, line.content)
            for hunk in self.hunks
            for line in hunk.lines
            if line.kind == "add" and line.new_lineno is not None
        ]

    def added_text(self) -> str:
        return "\n".join(content for _, content in self.added_lines())


def parse_unified_diff(diff_text: str) -> list[FilePatch]:
    """Split unified diff text into :class:`FilePatch` records.

    Accepts ``git diff`` output as well as plain ``diff -u`` output without
    ``diff --git`` headers. Malformed hunk headers raise ``ValueError``.
    """
    patches: list[FilePatch] = []
    patch: FilePatch | None = None
    hunk: DiffHunk | None = None
    old_no = new_no = 0

    for raw in diff_text.splitlines():
        if raw.startswith("diff --git "):
            patch = _git_header_patch(raw)
            patches.append(patch)
            hunk = None
            continue

        # A ``---`` line only opens a header outside of a hunk body.
        if raw.startswith("--- ") and (hunk is None or _hunk_done(hunk)):
            if patch is None or patch.hunks:
                patch = FilePatch()
                patches.append(patch)
            patch.old_path = _header_path(raw[4:])
            hunk = None
            continue

        if raw.startswith("+++ ") and hunk is None and patch is not None:
            patch.new_path = _header_path(raw[4:])
            continue

        if raw.startswith("Binary files ") and patch is not None:
            patch.is_binary = True
            continue

        if raw.startswith("@@"):
            if patch is None:
                patch = FilePatch()
                patches.append(patch)
            hunk = _parse_hunk_header(raw)
            patch.hunks.append(hunk)
            old_no, new_no = hunk.old_start, hunk.new_start
            continue

        if hunk is None or raw.startswith("\\"):
            continue

        marker, content = raw[:1], raw[1:]
        if marker == "+":
            hunk.lines.append(DiffLine("add", content, None, new_no))
            new_no += 1
        elif marker == "-":
            hunk.lines.append(DiffLine("delete", content, old_no, None))
            old_no += 1
        elif marker == " " or (raw == "" and not _hunk_done(hunk)):
            hunk.lines.append(DiffLine("context", content, old_no, new_no))
            old_no += 1
            new_no += 1

    return patches


def _hunk_done(hunk: DiffHunk) -> bool:
    old_seen = sum(1 for line in hunk.lines if line.kind != "add")
    new_seen = sum(1 for line in hunk.lines if line.kind != "delete")
    return old_seen >= hunk.old_count and new_seen >= hunk.new_count


def _parse_hunk_header(header: str) -> DiffHunk:
    match = _HUNK_RE.match(header)
    if match is None:
        raise ValueError(f"Invalid hunk header: {header}")
    old_start, old_count, new_start, new_count = match.groups()
    return DiffHunk(
        old_start=int(old_start),
        old_count=int(old_count) if old_count is not None else 1,
        new_start=int(new_start),
        new_count=int(new_count) if new_count is not None else 1,
    )


def _git_header_patch(header: str) -> FilePatch:
    parts = header.split(" ")
    old_path = _strip_prefix(parts[2]) if len(parts) > 2 else None
    new_path = _strip_prefix(parts[3]) if len(parts) > 3 else None
    return FilePatch(old_path=old_path, new_path=new_path)


def _header_path(value: str) -> str:
    return _strip_prefix(value.split("\t", 1)[0].strip())


def _strip_prefix(path: str) -> str:
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path
