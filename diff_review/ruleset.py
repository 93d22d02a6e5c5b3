"""Review rule sets: types, canonical checks and markdown rule files.

A rule file is a markdown document. ``##`` headings open a category bucket,
``###`` headings open a language bucket (closed again by the next ``##``), and
``- `` list items are rules. Free text under ``## Review Tone`` becomes the
closing line of every review summary.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from diff_review.log import get_logger

logger = get_logger(__name__)

RULE_FILENAMES = (
    ".reviewrc.md",
    "review-instructions.md",
    ".mcp/instructions.md",
    ".github/review-instructions.md",
)

TONE_CATEGORY = "review tone"

CHECK_NO_CONSOLE = "no-console"
CHECK_NO_COMMENTED_CODE = "no-commented-code"
CHECK_NO_VAR = "no-var"
CHECK_PREFER_TEMPLATE = "prefer-template"
UNRECOGNIZED = "unrecognized"

PATTERN_KEYWORDS = (
    "check for",
    "ensure",
    "verify",
    "look for",
    "flag",
    "must",
    "should not",
    "avoid",
)

_CHECKBOX_RE = re.compile(r"^\[[ xX]\]\s*")


def _mentions_console(text: str) -> bool:
    return "console.log" in text or "print statement" in text


def _mentions_commented_code(text: str) -> bool:
    return "commented-out code" in text


def _mentions_var(text: str) -> bool:
    return "avoid" in text and "var" in text


def _mentions_template(text: str) -> bool:
    return "template literal" in text


# Ordered: a rule text mentioning several checks is tried in this order.
CHECK_KEYWORDS = (
    (_mentions_console, CHECK_NO_CONSOLE),
    (_mentions_commented_code, CHECK_NO_COMMENTED_CODE),
    (_mentions_var, CHECK_NO_VAR),
    (_mentions_template, CHECK_PREFER_TEMPLATE),
)


def canonical_checks(text: str) -> tuple[str, ...]:
    """Map free-text guideline prose to the structural checks it asks for."""
    lowered = text.lower()
    checks = tuple(check for predicate, check in CHECK_KEYWORDS if predicate(lowered))
    return checks or (UNRECOGNIZED,)


def is_pattern_rule(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in PATTERN_KEYWORDS)


def rule_severity(text: str) -> str:
    lowered = text.lower()
    if "security" in lowered or "vulnerability" in lowered or "must" in lowered:
        return "critical"
    if "should" in lowered or "ensure" in lowered or "verify" in lowered:
        return "warning"
    return "info"


@dataclass(frozen=True, slots=True)
class Rule:
    """One guideline entry from a rule file."""

    text: str
    is_pattern: bool = False
    severity: str = "info"
    checks: tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "checks", canonical_checks(self.text))

    @classmethod
    def from_text(cls, raw: str) -> Rule:
        text = _CHECKBOX_RE.sub("", raw.strip())
        return cls(text=text, is_pattern=is_pattern_rule(text), severity=rule_severity(text))

    @property
    def is_recognized(self) -> bool:
        return self.checks != (UNRECOGNIZED,)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "is_pattern": self.is_pattern,
            "severity": self.severity,
            "checks": list(self.checks),
        }


@dataclass(frozen=True, slots=True)
class RuleSet:
    """Parsed review rules, read-only once built."""

    categories: dict[str, tuple[Rule, ...]] = field(default_factory=dict)
    language_specific: dict[str, tuple[Rule, ...]] = field(default_factory=dict)
    global_rules: tuple[Rule, ...] = ()
    tone: str = ""
    source: str | None = None

    def category_rules(self) -> list[tuple[str, Rule]]:
        return [(category, rule) for category, rules in self.categories.items() for rule in rules]

    def rules_for_language(self, language: str) -> list[Rule]:
        """Rules from every language bucket naming ``language``.

        Bucket names may group languages with ``/``, e.g.
        ``javascript/typescript`` applies to both members.
        """
        wanted = language.lower()
        selected: list[Rule] = []
        for bucket, rules in self.language_specific.items():
            members = {part.strip() for part in bucket.split("/")}
            if wanted in members:
                selected.extend(rules)
        return selected

    def to_dict(self) -> dict[str, Any]:
        return {
            "categories": {
                name: [rule.to_dict() for rule in rules] for name, rules in self.categories.items()
            },
            "language_specific": {
                name: [rule.to_dict() for rule in rules]
                for name, rules in self.language_specific.items()
            },
            "global": [rule.to_dict() for rule in self.global_rules],
            "tone": self.tone,
            "source": self.source,
        }


def parse_rules_markdown(content: str, *, source: str | None = None) -> RuleSet:
    """Parse a markdown rule document into a :class:`RuleSet`."""
    categories: dict[str, list[Rule]] = {}
    languages: dict[str, list[Rule]] = {}
    global_rules: list[Rule] = []
    tone_parts: list[str] = []

    current_category: str | None = None
    current_language: str | None = None
    in_code_block = False

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith("```"):
            in_code_block = not in_code_block
            continue
        if in_code_block:
            continue

        if line.startswith("## "):
            current_category = line[3:].strip().lower()
            current_language = None
            categories.setdefault(current_category, [])
            continue

        if line.startswith("### "):
            current_language = line[4:].strip().lower()
            languages.setdefault(current_language, [])
            continue

        if line.startswith("- "):
            rule = Rule.from_text(line[2:])
            if current_language is not None:
                languages[current_language].append(rule)
            elif current_category is not None:
                categories[current_category].append(rule)
            else:
                global_rules.append(rule)
            continue

        if current_category == TONE_CATEGORY and not line.startswith("#"):
            tone_parts.append(line)

    return RuleSet(
        categories={name: tuple(rules) for name, rules in categories.items()},
        language_specific={name: tuple(rules) for name, rules in languages.items()},
        global_rules=tuple(global_rules),
        tone=" ".join(tone_parts),
        source=source,
    )


def find_rules_file(root: Path) -> Path | None:
    """Return the first conventional rule file under ``root``."""
    for name in RULE_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_rule_set(repo: Path, rules_path: Path | None = None) -> RuleSet:
    """Load rules from an explicit path, a discovered file, or the defaults."""
    repo = repo.resolve()
    if rules_path is not None:
        resolved = rules_path if rules_path.is_absolute() else repo / rules_path
        if not resolved.is_file():
            raise ValueError(f"Rules file does not exist: {resolved}")
        return _read_rule_file(resolved)

    discovered = find_rules_file(repo)
    if discovered is not None:
        return _read_rule_file(discovered)

    logger.debug("No rule file found under %s; using default rules", repo)
    return default_rule_set()


def default_rule_set() -> RuleSet:
    return parse_rules_markdown(DEFAULT_RULES_MARKDOWN, source="builtin")


def merge_rule_sets(*rule_sets: RuleSet) -> RuleSet:
    """Concatenate rule buckets in order; the last non-empty tone wins."""
    categories: dict[str, list[Rule]] = {}
    languages: dict[str, list[Rule]] = {}
    global_rules: list[Rule] = []
    tone = ""
    sources: list[str] = []

    for rule_set in rule_sets:
        for name, rules in rule_set.categories.items():
            categories.setdefault(name, []).extend(rules)
        for name, rules in rule_set.language_specific.items():
            languages.setdefault(name, []).extend(rules)
        global_rules.extend(rule_set.global_rules)
        if rule_set.tone:
            tone = rule_set.tone
        if rule_set.source:
            sources.append(rule_set.source)

    return RuleSet(
        categories={name: tuple(rules) for name, rules in categories.items()},
        language_specific={name: tuple(rules) for name, rules in languages.items()},
        global_rules=tuple(global_rules),
        tone=tone,
        source=", ".join(sources) or None,
    )


def iter_all_rules(rule_set: RuleSet) -> Iterable[tuple[str, Rule]]:
    """Yield ``(bucket, rule)`` pairs across every bucket."""
    for category, rule in rule_set.category_rules():
        yield (category, rule)
    for language, rules in rule_set.language_specific.items():
        for rule in rules:
            yield (f"### {language}", rule)
    for rule in rule_set.global_rules:
        yield ("global", rule)


def _read_rule_file(path: Path) -> RuleSet:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ValueError(f"Could not read rules file {path}: {exc}") from exc
    return parse_rules_markdown(content, source=str(path))


DEFAULT_RULES_MARKDOWN = "\n".join(
    [
        "# Code Review Rules",
        "",
        "## Security",
        "- Check for hardcoded secrets, API keys and passwords",
        "- Verify user input is validated before use",
        "- Flag SQL built from string formatting",
        "",
        "## Code Quality",
        "- Avoid leaving console.log statements in production code",
        "- Flag commented-out code blocks",
        "- Functions should stay small and focused",
        "",
        "## Error Handling",
        "- Ensure errors are handled or propagated, never swallowed",
        "",
        "## Language Specific",
        "",
        "### JavaScript/TypeScript",
        "- Avoid var declarations; use const or let",
        "- Prefer template literals over string concatenation",
        "",
        "### Python",
        "- Follow PEP 8 naming conventions",
        "",
        "## Review Tone",
        "Be constructive and specific. Explain why a change is needed.",
        "",
    ]
)
