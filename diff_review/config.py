"""Configuration loading for diff-review."""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILENAMES = (".diff-review.toml", "diff-review.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("diff_review", "diff-review")

OUTPUT_FORMATS = {"human", "json", "markdown"}
FAIL_ON_CHOICES = {"bug", "refactor", "suggestion"}


@dataclass(slots=True)
class CustomPattern:
    """A repository-defined line pattern, matched by regex or keyword."""

    rule_id: str
    message: str
    regex: str | None = None
    keyword: str | None = None
    suggestion: str | None = None
    tags: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "message": self.message,
            "regex": self.regex,
            "keyword": self.keyword,
            "suggestion": self.suggestion,
            "tags": list(self.tags),
            "languages": list(self.languages),
        }


@dataclass(slots=True)
class ReviewConfig:
    """Run-level limits for the review pipeline."""

    max_files: int = 50
    workers: int = 1
    timeout_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_files": self.max_files,
            "workers": self.workers,
            "timeout_seconds": self.timeout_seconds,
        }


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    format: str = "human"
    min_confidence: int = 0
    fail_on: str | None = None
    rules_file: str | None = None
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    detector_enable: list[str] | None = None
    detector_disable: list[str] = field(default_factory=list)
    patterns: list[CustomPattern] = field(default_factory=list)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    log_level: str = "WARNING"
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "min_confidence": self.min_confidence,
            "fail_on": self.fail_on,
            "rules_file": self.rules_file,
            "include": list(self.include),
            "exclude": list(self.exclude),
            "detectors": {
                "enable": list(self.detector_enable) if self.detector_enable is not None else None,
                "disable": list(self.detector_disable),
            },
            "patterns": [pattern.to_dict() for pattern in self.patterns],
            "review": self.review.to_dict(),
            "log_level": self.log_level,
            "source": self.source,
        }


def load_app_config(repo: Path, config_path: Path | None = None) -> AppConfig:
    """Load config from explicit path or repository-local files with precedence."""
    repo = repo.resolve()
    if config_path is not None:
        resolved = config_path if config_path.is_absolute() else (repo / config_path)
        if not resolved.exists():
            raise ValueError(f"Config file does not exist: {resolved}")
        mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
        return _from_mapping(mapping, source=str(resolved))

    for filename in CONFIG_FILENAMES:
        resolved = repo / filename
        if resolved.exists():
            mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
            return _from_mapping(mapping, source=str(resolved))

    pyproject_path = repo / PYPROJECT_FILENAME
    if pyproject_path.exists():
        mapping = _extract_config_mapping(_load_toml(pyproject_path), source_path=pyproject_path)
        if mapping:
            return _from_mapping(mapping, source=str(pyproject_path))

    return AppConfig()


def default_config_template() -> str:
    """Return a starter config template."""
    return "\n".join(
        [
            'format = "human"',
            "min_confidence = 60",
            'fail_on = "bug"',
            '# rules_file = ".reviewrc.md"',
            'include = ["src/**"]',
            'exclude = ["docs/**"]',
            'log_level = "WARNING"',
            "",
            "[detectors]",
            '# enable = ["hardcoded_secrets", "dangerous_patterns", "guidelines"]',
            "disable = []",
            "",
            "[review]",
            "max_files = 50",
            "workers = 4",
            "timeout_seconds = 30",
            "",
            "[[patterns]]",
            'rule_id = "no-debugger"',
            'regex = "\\\\bdebugger\\\\b"',
            'message = "debugger statement left in code"',
            'suggestion = "Remove debugger statements before merging"',
            'tags = ["style", "production-only"]',
            'languages = ["javascript", "typescript"]',
            "",
            "[[patterns]]",
            'rule_id = "todo-marker"',
            'keyword = "FIXME"',
            'message = "FIXME marker added"',
            'tags = ["maintainability"]',
            "",
        ]
    )


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as file_obj:
            loaded = tomllib.load(file_obj)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _extract_config_mapping(loaded: dict[str, Any], *, source_path: Path) -> dict[str, Any]:
    tool_section = _find_pyproject_tool_section(loaded)
    if source_path.name == PYPROJECT_FILENAME:
        return tool_section if tool_section is not None else {}
    return tool_section if tool_section is not None else loaded


def _find_pyproject_tool_section(loaded: dict[str, Any]) -> dict[str, Any] | None:
    tool = loaded.get("tool")
    if not isinstance(tool, dict):
        return None
    for key in PYPROJECT_TOOL_KEYS:
        section = tool.get(key)
        if isinstance(section, dict):
            return section
    return None


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    detectors_mapping = _as_table(mapping.get("detectors"), "detectors")
    review_mapping = _as_table(mapping.get("review"), "review")

    format_value = str(mapping.get("format", "human")).lower()
    if format_value not in OUTPUT_FORMATS:
        format_value = "human"

    min_confidence = _as_int(mapping.get("min_confidence", 0), "min_confidence")
    if not 0 <= min_confidence <= 100:
        raise ValueError("min_confidence must be between 0 and 100")

    raw_fail_on = mapping.get("fail_on")
    fail_on = None if raw_fail_on is None else _as_choice(raw_fail_on, FAIL_ON_CHOICES, "fail_on")

    raw_rules_file = mapping.get("rules_file")
    rules_file = None if raw_rules_file is None else _as_str(raw_rules_file, "rules_file")

    return AppConfig(
        format=format_value,
        min_confidence=min_confidence,
        fail_on=fail_on,
        rules_file=rules_file,
        include=_as_str_list(mapping.get("include"), "include"),
        exclude=_as_str_list(mapping.get("exclude"), "exclude"),
        detector_enable=_as_str_list_or_none(detectors_mapping.get("enable"), "detectors.enable"),
        detector_disable=_as_str_list(detectors_mapping.get("disable"), "detectors.disable"),
        patterns=_parse_patterns(mapping.get("patterns")),
        review=_parse_review_config(review_mapping),
        log_level=_as_str(mapping.get("log_level", "WARNING"), "log_level").upper(),
        source=source,
    )


def _parse_review_config(value: dict[str, Any]) -> ReviewConfig:
    max_files = _as_int(value.get("max_files", 50), "review.max_files")
    if max_files <= 0:
        raise ValueError("review.max_files must be > 0")
    workers = _as_int(value.get("workers", 1), "review.workers")
    if workers <= 0:
        raise ValueError("review.workers must be > 0")

    raw_timeout = value.get("timeout_seconds")
    timeout: float | None = None
    if raw_timeout is not None:
        timeout = _as_float(raw_timeout, "review.timeout_seconds")
        if timeout <= 0:
            raise ValueError("review.timeout_seconds must be > 0")

    return ReviewConfig(max_files=max_files, workers=workers, timeout_seconds=timeout)


def _parse_patterns(value: Any) -> list[CustomPattern]:
    items = _as_table_list(value, "patterns")
    parsed: list[CustomPattern] = []
    for index, item in enumerate(items):
        field_name = f"patterns[{index}]"
        regex = item.get("regex")
        keyword = item.get("keyword")
        if (regex is None) == (keyword is None):
            raise ValueError(f"{field_name} must define exactly one of regex or keyword")
        if regex is not None:
            regex = _as_str(regex, f"{field_name}.regex")
            try:
                re.compile(regex)
            except re.error as exc:
                raise ValueError(f"{field_name}.regex is not a valid pattern: {exc}") from exc
        if keyword is not None:
            keyword = _as_str(keyword, f"{field_name}.keyword")

        raw_suggestion = item.get("suggestion")
        parsed.append(
            CustomPattern(
                rule_id=_as_str(
                    item.get("rule_id", f"custom-pattern-{index}"),
                    f"{field_name}.rule_id",
                ),
                message=_as_str(item.get("message"), f"{field_name}.message"),
                regex=regex,
                keyword=keyword,
                suggestion=(
                    None
                    if raw_suggestion is None
                    else _as_str(raw_suggestion, f"{field_name}.suggestion")
                ),
                tags=tuple(_as_str_list(item.get("tags"), f"{field_name}.tags")),
                languages=tuple(
                    language.lower()
                    for language in _as_str_list(item.get("languages"), f"{field_name}.languages")
                ),
            )
        )
    return parsed


def _as_table(value: Any, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be a table/object")
    return value


def _as_table_list(value: Any, field_name: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ValueError(f"{field_name} must be a list of tables")
    return value


def _as_str_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{field_name} must be a list of strings")
    return list(value)


def _as_str_list_or_none(value: Any, field_name: str) -> list[str] | None:
    if value is None:
        return None
    return _as_str_list(value, field_name)


def _as_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a string")
    return value


def _as_choice(value: Any, allowed: set[str], field_name: str) -> str:
    normalized = _as_str(value, field_name).lower()
    if normalized not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ValueError(f"{field_name} must be one of: {choices}")
    return normalized


def _as_int(raw: Any, field_name: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"{field_name} must be an integer")
    return raw


def _as_float(raw: Any, field_name: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"{field_name} must be a number")
    return float(raw)
