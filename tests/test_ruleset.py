"""Tests for rule-file parsing, discovery and rule canonicalization."""

from __future__ import annotations

from pathlib import Path

import pytest

from diff_review.ruleset import (
    CHECK_NO_COMMENTED_CODE,
    CHECK_NO_CONSOLE,
    CHECK_NO_VAR,
    CHECK_PREFER_TEMPLATE,
    UNRECOGNIZED,
    Rule,
    RuleSet,
    canonical_checks,
    default_rule_set,
    find_rules_file,
    iter_all_rules,
    load_rule_set,
    merge_rule_sets,
    parse_rules_markdown,
)

RULES_MD = """# Team Rules

- Keep pull requests small

## Security
- [ ] Check for hardcoded credentials
- [x] Must validate all user input

```markdown
## Not A Category
- not a rule
```

## Code Quality
- Avoid console.log in production code

### JavaScript/TypeScript
- Avoid var declarations
- Prefer template literals

## Review Tone
Be kind.
Explain the why.
"""


def test_parse_rules_markdown_buckets() -> None:
    rule_set = parse_rules_markdown(RULES_MD, source="RULES.md")

    assert list(rule_set.categories) == ["security", "code quality", "review tone"]
    assert [rule.text for rule in rule_set.categories["security"]] == [
        "Check for hardcoded credentials",
        "Must validate all user input",
    ]
    assert [rule.text for rule in rule_set.global_rules] == ["Keep pull requests small"]
    assert [rule.text for rule in rule_set.language_specific["javascript/typescript"]] == [
        "Avoid var declarations",
        "Prefer template literals",
    ]
    assert "not a category" not in rule_set.categories
    assert rule_set.tone == "Be kind. Explain the why."
    assert rule_set.source == "RULES.md"


def test_category_heading_closes_language_bucket() -> None:
    rule_set = parse_rules_markdown("### Python\n- Use type hints\n## Style\n- Flag long lines\n")
    assert [rule.text for rule in rule_set.language_specific["python"]] == ["Use type hints"]
    assert [rule.text for rule in rule_set.categories["style"]] == ["Flag long lines"]


def test_rule_from_text_pattern_flag_and_severity() -> None:
    must = Rule.from_text("[x] Must avoid SQL built by hand")
    assert must.text == "Must avoid SQL built by hand"
    assert must.is_pattern is True
    assert must.severity == "critical"

    should = Rule.from_text("Functions should be short")
    assert should.is_pattern is False
    assert should.severity == "warning"

    plain = Rule.from_text("Prefer small modules")
    assert plain.severity == "info"
    assert plain.is_recognized is False


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("No console.log in production", (CHECK_NO_CONSOLE,)),
        ("Remove print statements", (CHECK_NO_CONSOLE,)),
        ("Flag commented-out code", (CHECK_NO_COMMENTED_CODE,)),
        ("Avoid var", (CHECK_NO_VAR,)),
        ("Use template literals", (CHECK_PREFER_TEMPLATE,)),
        ("Avoid var and console.log", (CHECK_NO_CONSOLE, CHECK_NO_VAR)),
        ("Write good code", (UNRECOGNIZED,)),
    ],
)
def test_canonical_checks(text: str, expected: tuple[str, ...]) -> None:
    assert canonical_checks(text) == expected


def test_rules_for_language_expands_groups() -> None:
    rule_set = parse_rules_markdown(
        "### JavaScript/TypeScript\n- Avoid var\n### TypeScript\n- Prefer template literals\n"
    )
    assert [rule.text for rule in rule_set.rules_for_language("javascript")] == ["Avoid var"]
    assert [rule.text for rule in rule_set.rules_for_language("typescript")] == [
        "Avoid var",
        "Prefer template literals",
    ]
    assert rule_set.rules_for_language("python") == []


def test_find_rules_file_order(tmp_path: Path) -> None:
    assert find_rules_file(tmp_path) is None

    _write(tmp_path / ".github" / "review-instructions.md", "- a\n")
    assert find_rules_file(tmp_path) == tmp_path / ".github" / "review-instructions.md"

    _write(tmp_path / ".reviewrc.md", "- b\n")
    assert find_rules_file(tmp_path) == tmp_path / ".reviewrc.md"


def test_load_rule_set_discovers_and_falls_back(tmp_path: Path) -> None:
    assert load_rule_set(tmp_path) == default_rule_set()

    _write(tmp_path / "review-instructions.md", "## Style\n- Flag commented-out code\n")
    loaded = load_rule_set(tmp_path)
    assert list(loaded.categories) == ["style"]
    assert loaded.source == str((tmp_path / "review-instructions.md").resolve())


def test_load_rule_set_explicit_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Rules file does not exist"):
        load_rule_set(tmp_path, Path("missing.md"))


def test_default_rule_set_maps_to_checks() -> None:
    rule_set = default_rule_set()
    checks = {check for _, rule in iter_all_rules(rule_set) for check in rule.checks}
    expected = {CHECK_NO_CONSOLE, CHECK_NO_COMMENTED_CODE, CHECK_NO_VAR, CHECK_PREFER_TEMPLATE}
    assert expected <= checks
    assert rule_set.tone


def test_merge_rule_sets_concatenates_and_keeps_last_tone() -> None:
    first = parse_rules_markdown("## Style\n- Avoid var\n## Review Tone\nFirst.\n", source="a")
    second = parse_rules_markdown("## Style\n- Flag commented-out code\n", source="b")
    third = parse_rules_markdown("## Review Tone\nThird.\n", source="c")

    merged = merge_rule_sets(first, second, third)
    assert [rule.text for rule in merged.categories["style"]] == [
        "Avoid var",
        "Flag commented-out code",
    ]
    assert merged.tone == "Third."
    assert merged.source == "a, b, c"
    assert merge_rule_sets() == RuleSet()


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
