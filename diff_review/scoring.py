"""Confidence scoring for raw issues.

A confidence value is the clamped sum of four independent sub-scores:

* pattern-match strength (0-30): how reliable the match mechanism is,
* context appropriateness (0-30): whether the issue makes sense for the file,
* rule specificity (0-20): team rules outrank generic built-ins,
* historical accuracy (0-20): observed precision of the rule, when known.

Historical accuracy is read from an immutable snapshot of a
:class:`RuleAccuracyStore`, taken once per review run. Feedback updates the
store and only affects later runs.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from diff_review.intent import FileIntent
from diff_review.rules.base import IssueSource, MatchType, RawIssue

HIGH_ACCURACY_RULES = frozenset(
    {
        "sql-injection",
        "xss-vulnerability",
        "hardcoded-secrets",
        "null-reference",
        "undefined-variable",
    }
)
MEDIUM_ACCURACY_RULES = frozenset({"function-length", "complexity", "no-console", "no-var"})

DEBUG_PRINT_RULES = frozenset({"no-console", "no-print"})
MAGIC_NUMBER_RULES = frozenset({"magic-numbers"})

MATCH_TYPE_POINTS = {
    MatchType.EXACT: 25,
    MatchType.AST: 25,
    MatchType.REGEX: 20,
    MatchType.KEYWORD: 10,
}


@dataclass(frozen=True, slots=True)
class RuleAccuracy:
    """Feedback counts for one rule."""

    correct: int = 0
    false_positive: int = 0

    @property
    def total(self) -> int:
        return self.correct + self.false_positive


@dataclass(frozen=True, slots=True)
class ScoringContext:
    """File-level facts the context sub-score depends on."""

    path: str
    language: str
    line_number: int
    is_test_file: bool = False
    is_config_file: bool = False
    is_migration_file: bool = False
    file_type: str = "production"

    @classmethod
    def for_line(
        cls,
        file_intent: FileIntent,
        *,
        language: str,
        line_number: int,
    ) -> ScoringContext:
        return cls(
            path=file_intent.path,
            language=language,
            line_number=line_number,
            is_test_file=file_intent.is_test_file,
            is_config_file=file_intent.is_config_file,
            is_migration_file=file_intent.is_migration_file,
            file_type=file_intent.type.value,
        )


class RuleAccuracyStore:
    """Process-wide per-rule feedback counts, safe to share across threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._history: dict[str, RuleAccuracy] = {}

    def record_feedback(self, rule_id: str, was_correct: bool) -> RuleAccuracy:
        """Atomically add one feedback observation and return the new counts."""
        with self._lock:
            current = self._history.get(rule_id, RuleAccuracy())
            if was_correct:
                updated = RuleAccuracy(current.correct + 1, current.false_positive)
            else:
                updated = RuleAccuracy(current.correct, current.false_positive + 1)
            self._history[rule_id] = updated
            return updated

    def snapshot(self) -> Mapping[str, RuleAccuracy]:
        """Read-only copy of the current counts."""
        with self._lock:
            return MappingProxyType(dict(self._history))

    def clear(self) -> None:
        with self._lock:
            self._history.clear()


class ConfidenceScorer:
    """Scores raw issues against an accuracy snapshot."""

    def __init__(self, history: Mapping[str, RuleAccuracy] | None = None) -> None:
        self._history: Mapping[str, RuleAccuracy] = MappingProxyType(dict(history or {}))

    def score(self, issue: RawIssue, context: ScoringContext) -> int:
        total = (
            score_pattern_match(issue)
            + score_context(issue, context)
            + score_rule_type(issue)
            + score_history(issue.rule_id, self._history)
        )
        return max(0, min(100, total))


def score_pattern_match(issue: RawIssue) -> int:
    if "security" in issue.tags:
        return 30
    if issue.match_type is None:
        return 15
    return MATCH_TYPE_POINTS.get(issue.match_type, 15)


def score_context(issue: RawIssue, context: ScoringContext) -> int:
    if context.is_test_file and "production-only" in issue.tags:
        return 0
    if (context.is_test_file or "debug" in context.path) and issue.rule_id in DEBUG_PRINT_RULES:
        return 5
    if context.is_config_file and issue.rule_id in MAGIC_NUMBER_RULES:
        return 0
    if context.is_migration_file and "raw-sql" in issue.tags:
        return 5
    if issue.language is None:
        return 20
    if issue.language == context.language:
        return 30
    return 10


def score_rule_type(issue: RawIssue) -> int:
    if issue.source is IssueSource.CUSTOM:
        return 20
    if issue.language:
        return 15
    if "security" in issue.tags:
        return 18
    return 10


def score_history(rule_id: str | None, history: Mapping[str, RuleAccuracy]) -> int:
    if not rule_id:
        return 10
    accuracy = history.get(rule_id)
    if accuracy is not None and accuracy.total > 0:
        return math.floor(20 * accuracy.correct / accuracy.total)
    if rule_id in HIGH_ACCURACY_RULES:
        return 18
    if rule_id in MEDIUM_ACCURACY_RULES:
        return 14
    return 10


def confidence_emoji(confidence: int) -> str:
    if confidence >= 90:
        return "🎯"
    if confidence >= 75:
        return "✅"
    if confidence >= 60:
        return "⚠️"
    return "❔"


def confidence_label(confidence: int) -> str:
    if confidence >= 90:
        return "Very High"
    if confidence >= 75:
        return "High"
    if confidence >= 60:
        return "Medium"
    return "Low"
