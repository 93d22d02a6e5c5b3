"""File, change and function intent classification.

File intent decides which checks apply to a file and how strict a review of it
should be. Change intent is derived from pull-request metadata (conventional
commit title plus labels) and describes what a reviewer should expect to see.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import PurePosixPath
from typing import Any


class FileType(StrEnum):
    PRODUCTION = "production"
    TEST = "test"
    MOCK = "mock"
    CONFIG = "config"
    MIGRATION = "migration"
    SCRIPT = "script"
    TYPES = "types"
    BUILD = "build"


class ChangeType(StrEnum):
    FEATURE = "feature"
    FIX = "fix"
    REFACTOR = "refactor"
    PERF = "perf"
    DOCS = "docs"
    TEST = "test"
    STYLE = "style"
    CHORE = "chore"
    BUILD = "build"
    CI = "ci"
    GENERAL = "general"


@dataclass(frozen=True, slots=True)
class FileProfile:
    """Static review thresholds attached to a file type."""

    allowed_exceptions: frozenset[str]
    strictness: str
    max_function_length: int
    max_complexity: int


@dataclass(frozen=True, slots=True)
class FileIntent:
    """Role of a file within the change under review."""

    path: str
    type: FileType
    purpose: str | None
    allowed_exceptions: frozenset[str]
    strictness: str
    max_function_length: int
    max_complexity: int

    @property
    def is_production(self) -> bool:
        return self.type is FileType.PRODUCTION

    @property
    def is_test_file(self) -> bool:
        return self.type is FileType.TEST

    @property
    def is_config_file(self) -> bool:
        return self.type is FileType.CONFIG

    @property
    def is_migration_file(self) -> bool:
        return self.type is FileType.MIGRATION

    def allows(self, pattern: str) -> bool:
        """Return True when ``pattern`` is an accepted exception for this file."""
        return pattern in self.allowed_exceptions


@dataclass(frozen=True, slots=True)
class PRIntent:
    """Declared purpose of a change set."""

    change_type: ChangeType = ChangeType.GENERAL
    scope: str | None = None
    description: str = ""
    expect_tests: bool = False
    expect_docs: bool = False
    expect_benchmarks: bool = False
    allow_large_diffs: bool = False
    skip_checks: bool = False
    require_migration_guide: bool = False
    focus_areas: tuple[str, ...] = ()
    strictness: str = "normal"
    urgent: bool = False
    draft: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "change_type": self.change_type.value,
            "scope": self.scope,
            "description": self.description,
            "expect_tests": self.expect_tests,
            "expect_docs": self.expect_docs,
            "expect_benchmarks": self.expect_benchmarks,
            "allow_large_diffs": self.allow_large_diffs,
            "skip_checks": self.skip_checks,
            "require_migration_guide": self.require_migration_guide,
            "focus_areas": list(self.focus_areas),
            "strictness": self.strictness,
            "urgent": self.urgent,
            "draft": self.draft,
        }


@dataclass(frozen=True, slots=True)
class FunctionIntent:
    """Purpose inferred from a function name."""

    name: str
    purpose: str = "general"
    expect_validation: bool = False
    expect_error_handling: bool = False
    allow_lower_standards: bool = False


_TEST_SUFFIX_RE = re.compile(r"\.(test|spec)\.(js|ts|jsx|tsx|py|java|go|rb)$")
_RC_FILE_RE = re.compile(r"^\.?[a-z]*rc\.(js|json|yaml|yml)$")
_CONFIG_SUFFIX_RE = re.compile(r"\.(config|conf)\.(js|ts|json)$")
_CONFIG_DIR_RE = re.compile(r"^(config|configuration)/")
_DATED_MIGRATION_RE = re.compile(r"\d{4}_\d{2}_\d{2}_.*\.(js|sql|py)")
_SCRIPT_DIR_RE = re.compile(r"^scripts?/")
_SHELL_SUFFIX_RE = re.compile(r"\.(sh|bash)$")
_BUILD_TOOL_RE = re.compile(r"^(webpack|vite|rollup|babel)\.")


def _is_test_path(path: str) -> bool:
    name = PurePosixPath(path).name
    return (
        bool(_TEST_SUFFIX_RE.search(path))
        or "__tests__/" in path
        or "/tests/" in path
        or path.startswith("tests/")
        or (name.startswith("test_") and name.endswith(".py"))
        or name.endswith("_test.py")
        or name.endswith("_test.go")
    )


def _is_mock_path(path: str) -> bool:
    return "__mocks__/" in path or "__fixtures__/" in path


def _is_config_path(path: str) -> bool:
    return (
        bool(_RC_FILE_RE.match(path))
        or bool(_CONFIG_SUFFIX_RE.search(path))
        or bool(_CONFIG_DIR_RE.match(path))
        or path == ".env"
        or path.endswith(".env.example")
    )


def _is_migration_path(path: str) -> bool:
    return (
        "/migrations/" in path
        or "/migrate/" in path
        or bool(_DATED_MIGRATION_RE.search(path))
    )


def _is_script_path(path: str) -> bool:
    return bool(_SCRIPT_DIR_RE.match(path)) or bool(_SHELL_SUFFIX_RE.search(path))


def _is_types_path(path: str) -> bool:
    return path.endswith(".d.ts") or "/types/" in path


def _is_build_path(path: str) -> bool:
    return bool(_BUILD_TOOL_RE.match(path))


# First match wins; most specific predicates come first.
FILE_TYPE_PREDICATES: tuple[tuple[Callable[[str], bool], FileType], ...] = (
    (_is_test_path, FileType.TEST),
    (_is_mock_path, FileType.MOCK),
    (_is_config_path, FileType.CONFIG),
    (_is_migration_path, FileType.MIGRATION),
    (_is_script_path, FileType.SCRIPT),
    (_is_types_path, FileType.TYPES),
    (_is_build_path, FileType.BUILD),
)

FILE_PROFILES: dict[FileType, FileProfile] = {
    FileType.PRODUCTION: FileProfile(frozenset(), "strict", 50, 10),
    FileType.TEST: FileProfile(
        frozenset(
            {
                "console.log",
                "console.debug",
                "magic-numbers",
                "any-type",
                "mock-data",
                "hardcoded-values",
            }
        ),
        "lenient",
        100,
        15,
    ),
    FileType.MOCK: FileProfile(
        frozenset({"console.log", "magic-numbers", "unused-variables", "hardcoded-values"}),
        "lenient",
        150,
        20,
    ),
    FileType.CONFIG: FileProfile(
        frozenset({"magic-numbers", "no-validation", "hardcoded-values"}),
        "moderate",
        200,
        5,
    ),
    FileType.MIGRATION: FileProfile(
        frozenset({"raw-sql", "no-rollback", "magic-numbers"}),
        "moderate",
        200,
        15,
    ),
    FileType.SCRIPT: FileProfile(
        frozenset({"console.log", "process.exit", "magic-numbers"}),
        "lenient",
        100,
        12,
    ),
    FileType.TYPES: FileProfile(frozenset({"no-implementation", "any-type"}), "strict", 50, 5),
    FileType.BUILD: FileProfile(frozenset({"magic-numbers", "require-calls"}), "moderate", 150, 15),
}

DEBUG_MARKERS = ("// DEBUG", "// TEMPORARY", "# DEBUG", "# TEMPORARY")
EXPERIMENTAL_MARKERS = ("// EXPERIMENTAL", "# EXPERIMENTAL")


def normalize_path(path: str) -> str:
    return path.lower().replace("\\", "/")


def detect_file_type(path: str) -> FileType:
    """Return the first file type whose predicate matches the normalized path."""
    normalized = normalize_path(path)
    for predicate, file_type in FILE_TYPE_PREDICATES:
        if predicate(normalized):
            return file_type
    return FileType.PRODUCTION


def detect_file_purpose(path: str, content: str | None) -> str | None:
    """Secondary debug/experimental tag from marker comments."""
    if not content:
        return None
    if any(marker in content for marker in DEBUG_MARKERS):
        return "debug"
    if any(marker in content for marker in EXPERIMENTAL_MARKERS) or "experiment" in path:
        return "experimental"
    return None


def classify_file(path: str, content: str | None = None) -> FileIntent:
    """Classify a file's role from its path and, secondarily, its content."""
    file_type = detect_file_type(path)
    profile = FILE_PROFILES[file_type]
    return FileIntent(
        path=path,
        type=file_type,
        purpose=detect_file_purpose(path, content),
        allowed_exceptions=profile.allowed_exceptions,
        strictness=profile.strictness,
        max_function_length=profile.max_function_length,
        max_complexity=profile.max_complexity,
    )


_CONVENTIONAL_TITLE_RE = re.compile(
    r"^(feat|fix|refactor|perf|docs|test|chore|style|build|ci)(?:\(([^)]+)\))?:\s*(.+)",
    re.IGNORECASE,
)

_TITLE_TYPES: dict[str, ChangeType] = {
    "feat": ChangeType.FEATURE,
    "fix": ChangeType.FIX,
    "refactor": ChangeType.REFACTOR,
    "perf": ChangeType.PERF,
    "docs": ChangeType.DOCS,
    "test": ChangeType.TEST,
    "chore": ChangeType.CHORE,
    "style": ChangeType.STYLE,
    "build": ChangeType.BUILD,
    "ci": ChangeType.CI,
}

# Expectation flags and focus areas set by each conventional-commit type.
CHANGE_TYPE_BUNDLES: dict[ChangeType, dict[str, Any]] = {
    ChangeType.FEATURE: {
        "expect_tests": True,
        "expect_docs": True,
        "focus_areas": ("functionality", "edge-cases", "error-handling"),
    },
    ChangeType.FIX: {
        "expect_tests": True,
        "focus_areas": ("correctness", "regression", "edge-cases"),
    },
    ChangeType.REFACTOR: {
        "allow_large_diffs": True,
        "focus_areas": ("behavior-preservation", "no-logic-change", "maintainability"),
    },
    ChangeType.PERF: {
        "expect_benchmarks": True,
        "focus_areas": ("performance", "benchmarks", "algorithmic-complexity"),
    },
    ChangeType.DOCS: {
        "skip_checks": True,
        "focus_areas": ("documentation-quality",),
    },
    ChangeType.TEST: {"focus_areas": ("test-coverage", "test-quality")},
    ChangeType.STYLE: {"focus_areas": ("consistency", "formatting")},
    ChangeType.CHORE: {"strictness": "lenient"},
}


def classify_change(
    title: str | None,
    body: str | None = None,
    labels: Iterable[str | Mapping[str, Any]] | None = None,
) -> PRIntent:
    """Derive change intent from a pull-request title, body and labels.

    Never raises: malformed metadata falls back to a ``general`` intent.
    """
    _ = body
    title_text = title if isinstance(title, str) else ""
    fields: dict[str, Any] = {"description": title_text}

    match = _CONVENTIONAL_TITLE_RE.match(title_text)
    if match is not None:
        raw_type, scope, description = match.groups()
        change_type = _TITLE_TYPES[raw_type.lower()]
        fields["change_type"] = change_type
        fields["scope"] = scope
        fields["description"] = description
        fields.update(CHANGE_TYPE_BUNDLES.get(change_type, {}))

    focus_areas = list(fields.pop("focus_areas", ()))
    draft = False
    for name in _label_names(labels):
        if "breaking" in name:
            fields["require_migration_guide"] = True
            focus_areas.append("breaking-changes")
        if "security" in name:
            focus_areas.append("security")
            fields["strictness"] = "strict"
        if "hotfix" in name or "urgent" in name:
            fields["urgent"] = True
        if "wip" in name or "draft" in name:
            draft = True

    if draft:
        fields["draft"] = True
        fields["strictness"] = "lenient"

    return PRIntent(focus_areas=tuple(focus_areas), **fields)


def _label_names(labels: Iterable[str | Mapping[str, Any]] | None) -> list[str]:
    if labels is None or isinstance(labels, (str, bytes)):
        return []
    names: list[str] = []
    try:
        for label in labels:
            if isinstance(label, str):
                names.append(label.lower())
            elif isinstance(label, Mapping) and isinstance(label.get("name"), str):
                names.append(label["name"].lower())
    except TypeError:
        return []
    return names


_FUNCTION_PURPOSES: tuple[tuple[Callable[[str], bool], dict[str, Any]], ...] = (
    (
        lambda name: name.startswith(("debug", "temp", "tmp")),
        {"purpose": "debug", "allow_lower_standards": True},
    ),
    (
        lambda name: name.startswith("experiment") or "test" in name,
        {"purpose": "experimental", "allow_lower_standards": True},
    ),
    (
        lambda name: name.startswith(("validate", "check", "verify")),
        {"purpose": "validation", "expect_validation": True, "expect_error_handling": True},
    ),
    (
        lambda name: name.startswith(("sanitize", "clean", "escape")),
        {"purpose": "sanitization", "expect_validation": True},
    ),
    (
        lambda name: name.startswith(("mock", "stub", "fake")),
        {"purpose": "test-helper", "allow_lower_standards": True},
    ),
)


def classify_function(name: str) -> FunctionIntent:
    """Infer a function's purpose from its name.

    Later entries in the purpose table override earlier ones, so
    ``stubTestData`` is a test helper rather than experimental.
    """
    lowered = name.lower()
    fields: dict[str, Any] = {}
    for predicate, updates in _FUNCTION_PURPOSES:
        if predicate(lowered):
            fields.update(updates)
    return FunctionIntent(name=name, **fields)


def context_summary(file_intent: FileIntent, pr_intent: PRIntent | None = None) -> str:
    """Short human description of the review context."""
    parts: list[str] = []
    if not file_intent.is_production:
        parts.append(f"{file_intent.type.value} file")
    if pr_intent is not None and pr_intent.change_type is not ChangeType.GENERAL:
        parts.append(f"{pr_intent.change_type.value} PR")
    if file_intent.strictness == "lenient":
        parts.append("lenient rules")
    elif file_intent.strictness == "strict":
        parts.append("strict rules")
    return ", ".join(parts) or "standard review"
