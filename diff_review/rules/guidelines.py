"""Rule-driven detector for free-text review guidelines.

Each rule's prose is mapped to canonical checks when the rule set is built
(see :func:`diff_review.ruleset.canonical_checks`). Category rules only drive
the debug-print and commented-out-code checks and only when flagged as
patterns; language-bucket rules drive the declaration and string-building
checks for the file's language.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import replace

from diff_review.languages import JS_FAMILY
from diff_review.rules.base import IssueSource, LineContext, MatchType, RawIssue
from diff_review.ruleset import (
    CHECK_NO_COMMENTED_CODE,
    CHECK_NO_CONSOLE,
    CHECK_NO_VAR,
    CHECK_PREFER_TEMPLATE,
    Rule,
    RuleSet,
)

CATEGORY_CHECKS = (CHECK_NO_CONSOLE, CHECK_NO_COMMENTED_CODE)
LANGUAGE_CHECKS = (CHECK_NO_VAR, CHECK_PREFER_TEMPLATE)

# File-intent exception that disables a check outright.
CHECK_EXCEPTIONS = {CHECK_NO_CONSOLE: "console.log"}

_CONSOLE_LOG_RE = re.compile(r"console\.log\(")
_PRINT_RE = re.compile(r"\bprint\(")
_PY_COMMENTED_CODE_RE = re.compile(r"^\s*#\s*[a-z_]\w*\s*[=(]")
_C_COMMENTED_CODE_RE = re.compile(r"^\s*//\s*[a-z_]\w*\s*[=(]")
_VAR_RE = re.compile(r"\bvar\s+\w+")
_CONCAT_RE = re.compile(r"['\"][^'\"]*\+[^'\"]*['\"]")


def _check_console(line: LineContext) -> RawIssue | None:
    if line.language in JS_FAMILY and _CONSOLE_LOG_RE.search(line.content):
        return RawIssue(
            message="console.log() statement found in production code",
            suggestion="Remove console.log() statements before merging",
            rule_id="no-console",
            tags=frozenset({"style", "production-only"}),
            match_type=MatchType.REGEX,
        )
    if line.language == "python" and _PRINT_RE.search(line.content):
        return RawIssue(
            message="print() statement found in production code",
            suggestion="Remove print() statements before merging or use proper logging",
            rule_id="no-print",
            tags=frozenset({"style", "production-only"}),
            match_type=MatchType.REGEX,
        )
    return None


def _check_commented_code(line: LineContext) -> RawIssue | None:
    pattern = _PY_COMMENTED_CODE_RE if line.language == "python" else _C_COMMENTED_CODE_RE
    if not pattern.search(line.content):
        return None
    return RawIssue(
        message="Commented-out code detected",
        suggestion="Remove unused commented code",
        rule_id="no-commented-code",
        tags=frozenset({"maintainability"}),
        match_type=MatchType.REGEX,
    )


def _check_var(line: LineContext) -> RawIssue | None:
    if line.language not in JS_FAMILY or not _VAR_RE.search(line.content):
        return None
    return RawIssue(
        message='Use of "var" detected',
        suggestion="Use const or let instead of var",
        rule_id="no-var",
        tags=frozenset({"style", "modern-syntax"}),
        match_type=MatchType.REGEX,
    )


def _check_template(line: LineContext) -> RawIssue | None:
    if line.language not in JS_FAMILY or not _CONCAT_RE.search(line.content):
        return None
    return RawIssue(
        message="String concatenation with + detected",
        suggestion="Consider using template literals instead",
        rule_id="prefer-template-literal",
        tags=frozenset({"style", "modern-syntax"}),
        match_type=MatchType.REGEX,
    )


STRUCTURAL_CHECKS: dict[str, Callable[[LineContext], RawIssue | None]] = {
    CHECK_NO_CONSOLE: _check_console,
    CHECK_NO_COMMENTED_CODE: _check_commented_code,
    CHECK_NO_VAR: _check_var,
    CHECK_PREFER_TEMPLATE: _check_template,
}


class GuidelinesDetector:
    """Applies structural checks selected by the rule set's guideline text."""

    detector_id = "guidelines"

    def __init__(self, rule_set: RuleSet) -> None:
        self._rule_set = rule_set
        self._category_rules = [rule for _, rule in rule_set.category_rules() if rule.is_pattern]

    def detect(self, line: LineContext) -> list[RawIssue]:
        issues: list[RawIssue] = []
        for rule in self._category_rules:
            issue = _apply_rule(rule, line, allowed=CATEGORY_CHECKS)
            if issue is not None:
                issues.append(replace(issue, source=IssueSource.CUSTOM))

        for rule in self._rule_set.rules_for_language(line.language):
            issue = _apply_rule(rule, line, allowed=LANGUAGE_CHECKS)
            if issue is not None:
                issues.append(replace(issue, source=IssueSource.BUILTIN, language=line.language))
        return issues


def _apply_rule(
    rule: Rule,
    line: LineContext,
    *,
    allowed: tuple[str, ...],
) -> RawIssue | None:
    for check in rule.checks:
        if check not in allowed:
            continue
        exception = CHECK_EXCEPTIONS.get(check)
        if exception is not None and line.file_intent.allows(exception):
            # Hard suppression: the whole rule is skipped for this file.
            return None
        issue = STRUCTURAL_CHECKS[check](line)
        if issue is not None:
            return issue
    return None
