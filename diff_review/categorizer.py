"""Bug / refactor / suggestion categorization."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, TypeVar


class Category(StrEnum):
    BUG = "BUG"
    REFACTOR = "REFACTOR"
    SUGGESTION = "SUGGESTION"


BUG_TAGS = frozenset(
    {
        "security",
        "vulnerability",
        "injection",
        "xss",
        "csrf",
        "logic-error",
        "null-reference",
        "undefined",
        "crash",
        "exception",
        "error",
        "race-condition",
        "deadlock",
        "leak",
        "memory-leak",
        "resource-leak",
        "type-error",
        "incorrect-operator",
        "wrong-comparison",
    }
)
BUG_RULE_IDS = frozenset(
    {
        "sql-injection",
        "xss-vulnerability",
        "hardcoded-secrets",
        "insecure-random",
        "path-traversal",
        "command-injection",
        "xxe-vulnerability",
    }
)
REFACTOR_TAGS = frozenset(
    {
        "complexity",
        "duplication",
        "dry-violation",
        "performance",
        "n+1-query",
        "inefficient-algorithm",
        "maintainability",
        "naming",
        "unclear-code",
        "documentation",
        "missing-docs",
        "coverage",
        "missing-tests",
        "design-pattern",
        "coupling",
        "cohesion",
    }
)
REFACTOR_RULE_IDS = frozenset(
    {
        "function-length",
        "function-complexity",
        "code-duplication",
        "nested-loops",
        "missing-error-handling",
        "unused-variable",
        "unused-import",
    }
)

CRITICAL_BUG_TAGS = frozenset({"security", "vulnerability"})
HIGH_BUG_TAGS = frozenset({"crash", "exception", "logic-error", "null-reference"})
HIGH_REFACTOR_TAGS = frozenset({"performance", "n+1-query", "missing-error-handling"})

CATEGORY_EMOJI = {
    Category.BUG: "🔴",
    Category.REFACTOR: "🟡",
    Category.SUGGESTION: "🔵",
}
CATEGORY_SORT_ORDER = {
    Category.BUG: 1,
    Category.REFACTOR: 2,
    Category.SUGGESTION: 3,
}
CATEGORY_COLORS = {
    Category.BUG: "#ff4444",
    Category.REFACTOR: "#ffaa00",
    Category.SUGGESTION: "#4444ff",
}
CATEGORY_DESCRIPTIONS = {
    Category.BUG: "Must fix - potential errors, security issues, or crashes",
    Category.REFACTOR: "Should fix - impacts maintainability or performance",
    Category.SUGGESTION: "Nice to have - style improvements and best practices",
}
SEVERITIES = ("critical", "high", "medium", "low")


@dataclass(frozen=True, slots=True)
class CategoryInfo:
    """Category assignment for one issue."""

    category: Category
    severity: str
    emoji: str
    sort_order: int


@dataclass(frozen=True, slots=True)
class CategoryStats:
    """Counts per category and per severity."""

    total: int = 0
    bugs: int = 0
    refactors: int = 0
    suggestions: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "bugs": self.bugs,
            "refactors": self.refactors,
            "suggestions": self.suggestions,
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
        }


def categorize(tags: Iterable[str], rule_id: str | None) -> CategoryInfo:
    """Assign a category from an issue's tags and rule id.

    Bug signals are checked before refactor signals, so an issue matching both
    tables is always a bug.
    """
    tag_set = frozenset(tags)
    if tag_set & BUG_TAGS or rule_id in BUG_RULE_IDS:
        return _info(Category.BUG, _bug_severity(tag_set))
    if tag_set & REFACTOR_TAGS or rule_id in REFACTOR_RULE_IDS:
        return _info(Category.REFACTOR, _refactor_severity(tag_set))
    return _info(Category.SUGGESTION, "low")


class Categorized(Protocol):
    @property
    def sort_order(self) -> int: ...

    @property
    def confidence(self) -> int: ...

    @property
    def category(self) -> Category: ...

    @property
    def severity(self) -> str: ...


T = TypeVar("T", bound=Categorized)


def sort_categorized(items: Iterable[T]) -> list[T]:
    """Canonical presentation order: category priority, then confidence."""
    return sorted(items, key=lambda item: (item.sort_order, -item.confidence))


def compute_stats(items: Sequence[Categorized]) -> CategoryStats:
    by_category = {category: 0 for category in Category}
    by_severity = {severity: 0 for severity in SEVERITIES}
    for item in items:
        by_category[item.category] += 1
        if item.severity in by_severity:
            by_severity[item.severity] += 1
    return CategoryStats(
        total=len(items),
        bugs=by_category[Category.BUG],
        refactors=by_category[Category.REFACTOR],
        suggestions=by_category[Category.SUGGESTION],
        **by_severity,
    )


def categorize_multiple(items: Iterable[T]) -> tuple[list[T], CategoryStats]:
    """Sort already-categorized items and compute their statistics."""
    ordered = sort_categorized(items)
    return (ordered, compute_stats(ordered))


def category_description(category: Category | str) -> str:
    try:
        return CATEGORY_DESCRIPTIONS[Category(category)]
    except ValueError:
        return ""


def category_color(category: Category | str) -> str:
    try:
        return CATEGORY_COLORS[Category(category)]
    except ValueError:
        return "#888888"


def _info(category: Category, severity: str) -> CategoryInfo:
    return CategoryInfo(
        category=category,
        severity=severity,
        emoji=CATEGORY_EMOJI[category],
        sort_order=CATEGORY_SORT_ORDER[category],
    )


def _bug_severity(tags: frozenset[str]) -> str:
    if tags & CRITICAL_BUG_TAGS:
        return "critical"
    if tags & HIGH_BUG_TAGS:
        return "high"
    return "medium"


def _refactor_severity(tags: frozenset[str]) -> str:
    if tags & HIGH_REFACTOR_TAGS:
        return "high"
    return "medium"

