"""Rendering of review results."""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

import click

from diff_review import __version__
from diff_review.categorizer import (
    CATEGORY_SORT_ORDER,
    Category,
    category_color,
    category_description,
)
from diff_review.review import Finding, ReviewResult
from diff_review.scoring import confidence_emoji, confidence_label

_CATEGORY_FG = {
    Category.BUG: "red",
    Category.REFACTOR: "yellow",
    Category.SUGGESTION: "blue",
}


def render_finding_body(finding: Finding) -> str:
    """Comment body handed to posting collaborators; keep byte-for-byte stable."""
    body = (
        f"{finding.emoji} **{finding.category}** {confidence_emoji(finding.confidence)} "
        f"(Confidence: {finding.confidence}%)\n\n{finding.message}\n"
    )
    if finding.suggestion:
        body += f"\n💡 **Suggestion**: {finding.suggestion}"
    return body


def visible_findings(findings: Iterable[Finding], min_confidence: int = 0) -> list[Finding]:
    return [finding for finding in findings if finding.confidence >= min_confidence]


def should_fail(findings: Iterable[Finding], fail_on: str | None) -> bool:
    """True when any finding is at or above the ``fail_on`` category priority."""
    if fail_on is None:
        return False
    threshold = CATEGORY_SORT_ORDER[Category(fail_on.upper())]
    return any(finding.sort_order <= threshold for finding in findings)


def render_human(result: ReviewResult, *, min_confidence: int = 0) -> str:
    """Compact colorized listing for terminals."""
    shown = visible_findings(result.findings, min_confidence)
    stats = result.stats
    headline = (
        f"{stats.total} finding(s): {stats.bugs} bug, "
        f"{stats.refactors} refactor, {stats.suggestions} suggestion"
    )
    lines = [click.style(headline, bold=True)]
    if result.partial:
        lines.append(click.style("Review timed out; results are partial.", fg="yellow"))
    if len(shown) < len(result.findings):
        hidden = len(result.findings) - len(shown)
        lines.append(f"{hidden} finding(s) below confidence {min_confidence} hidden")

    for finding in shown:
        label = click.style(f"{finding.category:<10}", fg=_CATEGORY_FG[finding.category], bold=True)
        lines.append(
            f"{label} {finding.path}:{finding.line} "
            f"[{finding.rule_id or '-'}] {finding.message} "
            f"({finding.confidence}% {confidence_label(finding.confidence)})"
        )
        if finding.suggestion:
            lines.append(f"           suggestion: {finding.suggestion}")
    return "\n".join(lines)


def render_markdown(result: ReviewResult, *, min_confidence: int = 0) -> str:
    """Summary followed by one section per visible finding."""
    sections = [result.summary]
    for finding in visible_findings(result.findings, min_confidence):
        heading = f"### `{finding.path}` line {finding.line}"
        sections.append(f"{heading}\n\n{render_finding_body(finding)}")
    return "\n\n".join(sections) + "\n"


def build_json_payload(
    result: ReviewResult,
    *,
    input_source: str,
    min_confidence: int = 0,
) -> dict[str, Any]:
    """Stable JSON payload for CI and posting automation."""
    shown = visible_findings(result.findings, min_confidence)
    return {
        "findings": [
            {**finding.to_dict(), "body": render_finding_body(finding)} for finding in shown
        ],
        "summary": result.summary,
        "stats": result.stats.to_dict(),
        "categories": {
            category.value: {
                "description": category_description(category),
                "color": category_color(category),
            }
            for category in Category
        },
        "pr_intent": result.pr_intent.to_dict() if result.pr_intent is not None else None,
        "files": {
            path: {
                "type": intent.type.value,
                "purpose": intent.purpose,
                "strictness": intent.strictness,
            }
            for path, intent in result.file_intents.items()
        },
        "partial": result.partial,
        "meta": {
            "generated_at": datetime.now(tz=UTC)
            .replace(microsecond=0)
            .isoformat()
            .replace("+00:00", "Z"),
            "input_source": input_source,
            "min_confidence": min_confidence,
            "version": __version__,
        },
    }


def render_json(result: ReviewResult, *, input_source: str, min_confidence: int = 0) -> str:
    payload = build_json_payload(result, input_source=input_source, min_confidence=min_confidence)
    return json.dumps(payload, sort_keys=True, ensure_ascii=False)
