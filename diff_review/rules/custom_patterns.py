"""Repository-defined regex and keyword patterns from config."""

from __future__ import annotations

import re

from diff_review.config import CustomPattern
from diff_review.rules.base import IssueSource, LineContext, MatchType, RawIssue


class CustomPatternsDetector:
    """Apply ``[[patterns]]`` entries from the repository config."""

    detector_id = "custom_patterns"

    def __init__(self, patterns: list[CustomPattern] | None = None) -> None:
        self._patterns = list(patterns or [])
        self._compiled = {
            index: re.compile(pattern.regex)
            for index, pattern in enumerate(self._patterns)
            if pattern.regex is not None
        }

    def detect(self, line: LineContext) -> list[RawIssue]:
        issues: list[RawIssue] = []
        lowered = line.content.lower()
        for index, pattern in enumerate(self._patterns):
            if pattern.languages and line.language not in pattern.languages:
                continue
            if line.file_intent.allows(pattern.rule_id):
                continue

            compiled = self._compiled.get(index)
            if compiled is not None:
                if not compiled.search(line.content):
                    continue
                match_type = MatchType.REGEX
            else:
                if not pattern.keyword or pattern.keyword.lower() not in lowered:
                    continue
                match_type = MatchType.KEYWORD

            issues.append(
                RawIssue(
                    message=pattern.message,
                    suggestion=pattern.suggestion,
                    rule_id=pattern.rule_id,
                    tags=frozenset(pattern.tags),
                    match_type=match_type,
                    source=IssueSource.CUSTOM,
                    language=line.language if pattern.languages else None,
                )
            )
        return issues
