"""Confidence scoring tests."""

from __future__ import annotations

import threading

from diff_review.intent import classify_file
from diff_review.languages import detect_language
from diff_review.rules.base import IssueSource, MatchType, RawIssue
from diff_review.scoring import (
    ConfidenceScorer,
    RuleAccuracy,
    RuleAccuracyStore,
    ScoringContext,
    confidence_emoji,
    confidence_label,
    score_context,
    score_history,
    score_pattern_match,
    score_rule_type,
)


def test_pattern_match_points() -> None:
    assert score_pattern_match(_issue(tags={"security"}, match_type=MatchType.KEYWORD)) == 30
    assert score_pattern_match(_issue(match_type=MatchType.EXACT)) == 25
    assert score_pattern_match(_issue(match_type=MatchType.AST)) == 25
    assert score_pattern_match(_issue(match_type=MatchType.REGEX)) == 20
    assert score_pattern_match(_issue(match_type=MatchType.KEYWORD)) == 10
    assert score_pattern_match(_issue(match_type=None)) == 15


def test_context_soft_suppression_in_test_files() -> None:
    test_ctx = _context("src/app.test.js")
    assert score_context(_issue(tags={"production-only"}), test_ctx) == 0
    assert score_context(_issue(rule_id="no-console"), test_ctx) == 5
    assert score_context(_issue(rule_id="no-print"), _context("src/debug/trace.py")) == 5


def test_context_config_and_migration_rules() -> None:
    assert score_context(_issue(rule_id="magic-numbers"), _context("config/app.js")) == 0
    assert score_context(_issue(tags={"raw-sql"}), _context("db/migrations/1.sql")) == 5


def test_context_language_fit() -> None:
    ctx = _context("src/app.js")
    assert score_context(_issue(language=None), ctx) == 20
    assert score_context(_issue(language="javascript"), ctx) == 30
    assert score_context(_issue(language="python"), ctx) == 10


def test_rule_type_points() -> None:
    assert score_rule_type(_issue(source=IssueSource.CUSTOM, language="python")) == 20
    assert score_rule_type(_issue(language="python", tags={"security"})) == 15
    assert score_rule_type(_issue(tags={"security"})) == 18
    assert score_rule_type(_issue()) == 10


def test_history_uses_observed_accuracy_when_present() -> None:
    history = {"hardcoded-secrets": RuleAccuracy(correct=3, false_positive=1)}
    assert score_history("hardcoded-secrets", history) == 15
    assert score_history("sql-injection", {}) == 18
    assert score_history("no-var", {}) == 14
    assert score_history("custom-rule", {}) == 10
    assert score_history(None, {}) == 10
    assert score_history("no-var", {"no-var": RuleAccuracy()}) == 14


def test_scorer_sums_subscores() -> None:
    secret = _issue(
        rule_id="hardcoded-secrets",
        tags={"security", "vulnerability"},
        match_type=MatchType.REGEX,
    )
    assert ConfidenceScorer().score(secret, _context("src/app.js")) == 86

    console = _issue(
        rule_id="no-console",
        tags={"style", "production-only"},
        match_type=MatchType.REGEX,
        source=IssueSource.CUSTOM,
    )
    assert ConfidenceScorer().score(console, _context("src/app.js")) == 74
    assert ConfidenceScorer().score(console, _context("src/app.test.js")) == 54


def test_scorer_reads_a_snapshot() -> None:
    store = RuleAccuracyStore()
    store.record_feedback("hardcoded-secrets", True)
    scorer = ConfidenceScorer(store.snapshot())

    store.record_feedback("hardcoded-secrets", False)
    store.record_feedback("hardcoded-secrets", False)

    issue = _issue(rule_id="hardcoded-secrets", tags={"security"}, match_type=MatchType.REGEX)
    assert scorer.score(issue, _context("src/app.js")) == 30 + 20 + 18 + 20
    refreshed = ConfidenceScorer(store.snapshot())
    assert refreshed.score(issue, _context("src/app.js")) == 30 + 20 + 18 + 6


def test_store_feedback_is_atomic_across_threads() -> None:
    store = RuleAccuracyStore()

    def record(correct: bool) -> None:
        for _ in range(200):
            store.record_feedback("no-var", correct)

    threads = [threading.Thread(target=record, args=(index % 2 == 0,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.snapshot()["no-var"] == RuleAccuracy(correct=800, false_positive=800)
    store.clear()
    assert dict(store.snapshot()) == {}


def test_confidence_emoji_and_label_thresholds() -> None:
    assert [confidence_emoji(value) for value in (95, 90, 89, 75, 74, 60, 59)] == [
        "🎯",
        "🎯",
        "✅",
        "✅",
        "⚠️",
        "⚠️",
        "❔",
    ]
    assert confidence_label(90) == "Very High"
    assert confidence_label(75) == "High"
    assert confidence_label(60) == "Medium"
    assert confidence_label(10) == "Low"


def _issue(
    *,
    rule_id: str | None = "rule",
    tags: set[str] | None = None,
    match_type: MatchType | None = None,
    source: IssueSource = IssueSource.BUILTIN,
    language: str | None = None,
) -> RawIssue:
    return RawIssue(
        message="message",
        rule_id=rule_id,
        tags=frozenset(tags or ()),
        match_type=match_type,
        source=source,
        language=language,
    )


def _context(path: str) -> ScoringContext:
    return ScoringContext.for_line(
        classify_file(path), language=detect_language(path), line_number=1
    )