"""File-extension based language detection."""

from __future__ import annotations

from pathlib import PurePosixPath

UNKNOWN_LANGUAGE = "unknown"

EXTENSION_LANGUAGES: dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "go": "go",
    "rb": "ruby",
    "php": "php",
    "cs": "csharp",
    "cpp": "cpp",
    "c": "c",
    "rs": "rust",
    "swift": "swift",
    "kt": "kotlin",
    "md": "markdown",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "xml": "xml",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "sql": "sql",
    "sh": "shell",
    "bash": "shell",
}

JS_FAMILY = frozenset({"javascript", "typescript"})


def detect_language(path: str) -> str:
    """Map a file path to a language name, or ``unknown``."""
    suffix = PurePosixPath(path.replace("\\", "/")).suffix.lower()
    return EXTENSION_LANGUAGES.get(suffix.lstrip("."), UNKNOWN_LANGUAGE)
