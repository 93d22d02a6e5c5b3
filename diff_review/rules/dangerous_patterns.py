"""Language-gated dangerous code-pattern detector."""

from __future__ import annotations

import re

from diff_review.languages import JS_FAMILY
from diff_review.rules.base import IssueSource, LineContext, MatchType, RawIssue

_EVAL_RE = re.compile(r"\beval\s*\(")
_INNER_HTML_RE = re.compile(r"\.innerHTML\s*=")
_TEXT_CONTENT_RE = re.compile(r"\.textContent\s*=")
_FORMATTED_QUERY_RE = re.compile(r"execute\s*\(\s*[\"'].*%s")
_FSTRING_QUERY_RE = re.compile(r"execute\s*\(\s*f[\"']")


class DangerousPatternsDetector:
    """Finds dynamic evaluation, raw HTML injection and formatted SQL."""

    detector_id = "dangerous_patterns"

    def detect(self, line: LineContext) -> list[RawIssue]:
        content = line.content
        issues: list[RawIssue] = []

        if line.language in JS_FAMILY:
            if _EVAL_RE.search(content):
                issues.append(
                    _issue(
                        "Use of eval() detected - potential security risk",
                        "Avoid eval() and use safer alternatives",
                        rule_id="dangerous-eval",
                        tags={"security", "vulnerability"},
                    )
                )
            if _INNER_HTML_RE.search(content) and not _TEXT_CONTENT_RE.search(content):
                issues.append(
                    _issue(
                        "Use of innerHTML detected - potential XSS vulnerability",
                        "Consider using textContent or sanitize the HTML first",
                        rule_id="xss-vulnerability",
                        tags={"security", "vulnerability", "xss"},
                    )
                )

        if line.language == "python":
            if _FORMATTED_QUERY_RE.search(content) or _FSTRING_QUERY_RE.search(content):
                issues.append(
                    _issue(
                        "Potential SQL injection vulnerability",
                        "Use parameterized queries instead of string formatting",
                        rule_id="sql-injection",
                        tags={"security", "vulnerability", "injection"},
                    )
                )

        return issues


def _issue(message: str, suggestion: str, *, rule_id: str, tags: set[str]) -> RawIssue:
    return RawIssue(
        message=message,
        suggestion=suggestion,
        rule_id=rule_id,
        tags=frozenset(tags),
        match_type=MatchType.REGEX,
        source=IssueSource.BUILTIN,
    )
