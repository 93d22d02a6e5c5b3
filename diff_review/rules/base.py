"""Detector protocol and raw issue model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from diff_review.intent import FileIntent


class MatchType(StrEnum):
    """How reliable the mechanism that produced a match is."""

    EXACT = "exact"
    AST = "ast"
    REGEX = "regex"
    KEYWORD = "keyword"


class IssueSource(StrEnum):
    BUILTIN = "builtin"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class RawIssue:
    """An unscored candidate problem found on one line by one detector."""

    message: str
    suggestion: str | None = None
    rule_id: str | None = None
    tags: frozenset[str] = frozenset()
    match_type: MatchType | None = None
    source: IssueSource = IssueSource.BUILTIN
    language: str | None = None


@dataclass(frozen=True, slots=True)
class LineContext:
    """One changed line plus what is known about its file."""

    path: str
    line_number: int
    content: str
    language: str
    file_intent: FileIntent


class Detector(Protocol):
    """Protocol for per-line issue detectors."""

    detector_id: str

    def detect(self, line: LineContext) -> list[RawIssue]:
        """Return candidate issues for one changed line."""
