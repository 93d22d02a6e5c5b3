"""Reviews driven by real git repositories."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest
from typer.testing import CliRunner

from diff_review.cli import app
from diff_review.git import GitError, get_file_at_revision, get_working_tree_diff
from tests.helpers_git import commit_files, init_repo, write_files

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

runner = CliRunner()


def test_review_working_tree_changes(tmp_path: Path) -> None:
    repo = init_repo(tmp_path, {"src/app.js": "const a = 1;\n"})
    write_files(repo, {"src/app.js": 'const a = 1;\nvar b = 2;\nconst apiKey = "sk-live-abc";\n'})

    result = runner.invoke(app, ["review", "--repo", str(repo), "--format", "json"])
    assert result.exit_code == 0, result.output

    payload = json.loads(result.stdout)
    assert [(item["rule_id"], item["line"]) for item in payload["findings"]] == [
        ("hardcoded-secrets", 3),
        ("no-var", 2),
    ]
    assert payload["meta"]["input_source"] == "git_working_tree"


def test_review_commit_range_reads_head_revision(tmp_path: Path) -> None:
    repo = init_repo(tmp_path, {"src/app.js": "const a = 1;\n"})
    commit_files(repo, {"src/app.js": "const a = 1;\neval(input);\n"}, "add eval")
    write_files(repo, {"src/app.js": "const a = 1;\n"})

    result = runner.invoke(
        app,
        ["review", "--repo", str(repo), "--base", "HEAD~1", "--head", "HEAD", "--format", "json"],
    )
    assert result.exit_code == 0, result.output

    payload = json.loads(result.stdout)
    assert [(item["rule_id"], item["line"]) for item in payload["findings"]] == [
        ("dangerous-eval", 2)
    ]
    assert payload["meta"]["input_source"] == "git_range"


def test_missing_revision_content_is_none(tmp_path: Path) -> None:
    repo = init_repo(tmp_path, {"README.md": "hello\n"})

    assert get_file_at_revision(repo, "HEAD", "README.md") == "hello\n"
    assert get_file_at_revision(repo, "HEAD", "missing.txt") is None


def test_outside_a_repository_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(GitError):
        get_working_tree_diff(tmp_path)

    result = runner.invoke(app, ["review", "--repo", str(tmp_path)])
    assert result.exit_code == 2
