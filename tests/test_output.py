"""Output rendering tests."""

from __future__ import annotations

import json

import click

from diff_review.categorizer import Category, compute_stats
from diff_review.output import (
    render_finding_body,
    render_human,
    render_json,
    render_markdown,
    should_fail,
    visible_findings,
)
from diff_review.review import Finding, ReviewResult, build_summary


def test_finding_body_with_suggestion() -> None:
    finding = _finding(confidence=92, suggestion="Use environment variables")
    assert render_finding_body(finding) == (
        "🔴 **BUG** 🎯 (Confidence: 92%)\n\n"
        "Potential hardcoded API key detected\n"
        "\n💡 **Suggestion**: Use environment variables"
    )


def test_finding_body_without_suggestion() -> None:
    finding = _finding(confidence=61, suggestion=None)
    assert render_finding_body(finding) == (
        "🔴 **BUG** ⚠️ (Confidence: 61%)\n\nPotential hardcoded API key detected\n"
    )


def test_visible_findings_and_fail_threshold() -> None:
    bug = _finding(confidence=90)
    suggestion = _finding(confidence=40, category=Category.SUGGESTION)

    assert visible_findings([bug, suggestion], 50) == [bug]
    assert should_fail([suggestion], "suggestion") is True
    assert should_fail([suggestion], "refactor") is False
    assert should_fail([bug], "refactor") is True
    assert should_fail([bug], None) is False


def test_render_human_lists_findings_and_hidden_count() -> None:
    result = _result([_finding(confidence=90), _finding(confidence=30, line=7)])
    text = click.unstyle(render_human(result, min_confidence=50))

    assert text.splitlines()[0] == "2 finding(s): 2 bug, 0 refactor, 0 suggestion"
    assert "1 finding(s) below confidence 50 hidden" in text
    assert "src/app.js:3 [hardcoded-secrets]" in text
    assert "src/app.js:7" not in text
    assert "(90% Very High)" in text


def test_render_markdown_includes_summary_and_bodies() -> None:
    finding = _finding(confidence=80)
    text = render_markdown(_result([finding]))

    assert text.startswith("## Code Review Summary")
    assert "### `src/app.js` line 3\n\n" + render_finding_body(finding) in text


def test_render_json_payload() -> None:
    result = _result([_finding(confidence=80), _finding(confidence=20)], partial=True)
    payload = json.loads(render_json(result, input_source="stdin", min_confidence=50))

    assert [item["confidence"] for item in payload["findings"]] == [80]
    assert payload["findings"][0]["body"].startswith("🔴 **BUG** ✅")
    assert payload["stats"]["total"] == 2
    assert payload["partial"] is True
    assert payload["pr_intent"] is None
    assert payload["categories"]["BUG"]["color"] == "#ff4444"
    assert payload["meta"]["input_source"] == "stdin"
    assert payload["meta"]["generated_at"].endswith("Z")


def _result(findings: list[Finding], *, partial: bool = False) -> ReviewResult:
    stats = compute_stats(findings)
    return ReviewResult(
        findings=findings,
        summary=build_summary(findings, stats),
        stats=stats,
        partial=partial,
    )


def _finding(
    *,
    confidence: int,
    suggestion: str | None = "Use environment variables",
    category: Category = Category.BUG,
    line: int = 3,
) -> Finding:
    emoji, sort_order = {Category.BUG: ("🔴", 1), Category.SUGGESTION: ("🔵", 3)}[category]
    return Finding(
        path="src/app.js",
        line=line,
        message="Potential hardcoded API key detected",
        suggestion=suggestion,
        severity="critical" if category is Category.BUG else "low",
        confidence=confidence,
        category=category,
        emoji=emoji,
        sort_order=sort_order,
        rule_id="hardcoded-secrets",
    )
