"""Thin wrappers around the git CLI."""

from __future__ import annotations

from pathlib import Path
from subprocess import CalledProcessError, run

from diff_review.log import get_logger

logger = get_logger(__name__)


class GitError(RuntimeError):
    """A git command exited with a non-zero status."""


def get_working_tree_diff(repo: Path) -> str:
    """Unstaged and staged changes against HEAD."""
    return _git(repo, "diff", "--no-color", "HEAD")


def get_diff_between(repo: Path, base: str, head: str) -> str:
    return _git(repo, "diff", "--no-color", f"{base}...{head}")


def get_file_at_revision(repo: Path, revision: str, path: str) -> str | None:
    """File content at ``revision``, or None when git cannot show it."""
    try:
        return _git(repo, "show", f"{revision}:{path}")
    except GitError as exc:
        logger.debug("Could not read %s at %s: %s", path, revision, exc)
        return None


def read_worktree_file(repo: Path, path: str) -> str | None:
    """File content from the working tree, or None when unreadable."""
    target = repo / path
    try:
        return target.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Could not read %s: %s", target, exc)
        return None


def _git(repo: Path, *args: str) -> str:
    command = ["git", *args]
    logger.debug("Running %s in %s", " ".join(command), repo)
    try:
        completed = run(command, cwd=repo, check=True, capture_output=True, text=True)
    except CalledProcessError as exc:
        message = (exc.stderr or "").strip() or f"{' '.join(command)} exited with {exc.returncode}"
        raise GitError(message) from exc
    except FileNotFoundError as exc:
        raise GitError("git executable not found") from exc
    return completed.stdout
