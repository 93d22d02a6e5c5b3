"""Leaked-credential detector."""

from __future__ import annotations

import re

from diff_review.rules.base import IssueSource, LineContext, MatchType, RawIssue

SECRET_TAGS = frozenset({"security", "vulnerability", "secrets"})
SECRET_SUGGESTION = "Use environment variables or a secure secret management system"

SECRET_PATTERNS = (
    (
        re.compile(r"(api[_-]?key|apikey)\s*=\s*['\"][^'\"]+['\"]", re.IGNORECASE),
        "Potential hardcoded API key detected",
    ),
    (
        re.compile(r"(password|passwd|pwd)\s*=\s*['\"][^'\"]+['\"]", re.IGNORECASE),
        "Potential hardcoded password detected",
    ),
    (
        re.compile(r"(secret|token)\s*=\s*['\"][^'\"]+['\"]", re.IGNORECASE),
        "Potential hardcoded secret detected",
    ),
    (
        re.compile(r"-----BEGIN (RSA |)PRIVATE KEY-----"),
        "Private key found in code",
    ),
)


class SecretsDetector:
    """Flags credentials assigned as string literals and PEM private keys."""

    detector_id = "hardcoded_secrets"

    def detect(self, line: LineContext) -> list[RawIssue]:
        issues: list[RawIssue] = []
        for pattern, message in SECRET_PATTERNS:
            if pattern.search(line.content):
                issues.append(
                    RawIssue(
                        message=message,
                        suggestion=SECRET_SUGGESTION,
                        rule_id="hardcoded-secrets",
                        tags=SECRET_TAGS,
                        match_type=MatchType.REGEX,
                        source=IssueSource.BUILTIN,
                    )
                )
        return issues
