"""CLI entrypoint for diff-review."""

from __future__ import annotations

import fnmatch
import json
import sys
from pathlib import Path
from typing import Annotated

import typer

from diff_review import __version__
from diff_review.config import (
    FAIL_ON_CHOICES,
    OUTPUT_FORMATS,
    AppConfig,
    default_config_template,
    load_app_config,
)
from diff_review.diff_parser import FilePatch, parse_unified_diff
from diff_review.git import (
    GitError,
    get_diff_between,
    get_file_at_revision,
    get_working_tree_diff,
    read_worktree_file,
)
from diff_review.intent import classify_change, classify_file, classify_function, context_summary
from diff_review.log import get_logger, setup_logging
from diff_review.output import (
    render_human,
    render_json,
    render_markdown,
    should_fail,
    visible_findings,
)
from diff_review.review import ChangedLine, PRMeta, Reviewer, ReviewFile
from diff_review.rules import Detector, build_detectors, list_detector_info
from diff_review.ruleset import RuleSet, iter_all_rules, load_rule_set

logger = get_logger(__name__)

app = typer.Typer(
    name="diff-review",
    no_args_is_help=True,
    help="Review diffs against team rules and report confidence-scored findings.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
) -> None:
    """Root command callback."""
    _ = version
    setup_logging()


@app.command("review")
def review_command(
    diff_file: Annotated[Path | None, typer.Option(help="Path to unified diff file.")] = None,
    stdin: Annotated[bool, typer.Option(help="Read unified diff from stdin.")] = False,
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    base: Annotated[str | None, typer.Option(help="Base git revision.")] = None,
    head: Annotated[str | None, typer.Option(help="Head git revision.")] = None,
    title: Annotated[str | None, typer.Option(help="Pull request title.")] = None,
    body: Annotated[str | None, typer.Option(help="Pull request description.")] = None,
    label: Annotated[list[str] | None, typer.Option(help="Pull request label.")] = None,
    rules: Annotated[Path | None, typer.Option(help="Markdown rule file.")] = None,
    format: Annotated[
        str | None,
        typer.Option(help="Output format: human|json|markdown.", show_default="human"),
    ] = None,
    min_confidence: Annotated[
        int | None, typer.Option(help="Hide findings below this confidence.")
    ] = None,
    fail_on: Annotated[
        str | None, typer.Option(help="Exit nonzero on findings of this category or worse.")
    ] = None,
    include: Annotated[list[str] | None, typer.Option(help="Include glob pattern.")] = None,
    exclude: Annotated[list[str] | None, typer.Option(help="Exclude glob pattern.")] = None,
    workers: Annotated[int | None, typer.Option(help="Files analyzed in parallel.")] = None,
    timeout: Annotated[float | None, typer.Option(help="Run timeout in seconds.")] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Review a diff and print findings."""
    app_config = _load_config_or_raise(repo, config_file)
    output_format = _choice_or_default(
        value=format, default=app_config.format, allowed=OUTPUT_FORMATS, field_name="--format"
    )
    threshold = min_confidence if min_confidence is not None else app_config.min_confidence
    if not 0 <= threshold <= 100:
        raise typer.BadParameter("must be between 0 and 100", param_hint="--min-confidence")
    resolved_fail_on = (
        _choice_or_default(
            value=fail_on, default="", allowed=FAIL_ON_CHOICES, field_name="--fail-on"
        )
        if fail_on is not None
        else app_config.fail_on
    )

    if diff_file and stdin:
        raise typer.BadParameter("Use either --diff-file or --stdin, not both.")
    if (base is None) ^ (head is None):
        raise typer.BadParameter("Provide both --base and --head together.")

    rule_set = _load_rules_or_raise(repo, rules, app_config)
    detectors = _build_detectors_or_raise(rule_set, app_config)

    try:
        diff_text, input_source = _resolve_diff_input(
            diff_file=diff_file, stdin=stdin, repo=repo, base=base, head=head
        )
    except GitError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        patches = parse_unified_diff(diff_text)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="diff") from exc

    patches = _filter_patches(
        patches,
        includes=include if include is not None else app_config.include,
        excludes=exclude if exclude is not None else app_config.exclude,
    )
    max_files = app_config.review.max_files
    if len(patches) > max_files:
        logger.warning("Reviewing the first %d of %d changed files", max_files, len(patches))
        patches = patches[:max_files]

    files = [
        _review_file(patch, repo=repo, revision=head, input_source=input_source)
        for patch in patches
    ]
    pr_meta = None
    if title or body or label:
        pr_meta = PRMeta(title=title or "", body=body or "", labels=tuple(label or ()))

    try:
        reviewer = Reviewer(rule_set, pr_meta=pr_meta, detectors=detectors)
        result = reviewer.analyze(
            files,
            workers=workers if workers is not None else app_config.review.workers,
            timeout=timeout if timeout is not None else app_config.review.timeout_seconds,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if output_format == "json":
        typer.echo(render_json(result, input_source=input_source, min_confidence=threshold))
    elif output_format == "markdown":
        typer.echo(render_markdown(result, min_confidence=threshold))
    else:
        typer.echo(render_human(result, min_confidence=threshold))

    if should_fail(visible_findings(result.findings, threshold), resolved_fail_on):
        raise typer.Exit(code=1)


@app.command("rules")
def rules_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    rules: Annotated[Path | None, typer.Option(help="Markdown rule file.")] = None,
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show the parsed rule set and the checks each rule maps to."""
    output_format = _choice_or_default(
        value=format, default="human", allowed={"human", "json"}, field_name="--format"
    )
    app_config = _load_config_or_raise(repo, config_file)
    rule_set = _load_rules_or_raise(repo, rules, app_config)

    if output_format == "json":
        typer.echo(json.dumps(rule_set.to_dict(), sort_keys=True))
        return

    lines = [f"Rules from {rule_set.source or 'defaults'}:"]
    for bucket, rule in iter_all_rules(rule_set):
        checks = ", ".join(rule.checks)
        marker = "pattern" if rule.is_pattern else "note"
        lines.append(f"- [{bucket}] {rule.text} ({rule.severity}, {marker}; checks: {checks})")
    if rule_set.tone:
        lines.append(f"Tone: {rule_set.tone}")
    typer.echo("\n".join(lines))


@app.command("detectors")
def detectors_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """List available detectors and whether config enables them."""
    output_format = _choice_or_default(
        value=format, default="human", allowed={"human", "json"}, field_name="--format"
    )
    app_config = _load_config_or_raise(repo, config_file)
    active = _build_detectors_or_raise(RuleSet(), app_config)
    active_ids = {detector.detector_id for detector in active}
    info = list_detector_info()

    if output_format == "json":
        payload = {
            "detectors": [
                {
                    "detector_id": item.detector_id,
                    "name": item.name,
                    "description": item.description,
                    "languages": list(item.languages),
                    "enabled": item.detector_id in active_ids,
                }
                for item in info
            ],
            "meta": {"config_source": app_config.source},
        }
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = ["Available detectors:"]
    for item in info:
        status = "enabled" if item.detector_id in active_ids else "disabled"
        lines.append(f"- {item.detector_id} [{status}] - {item.description}")
    typer.echo("\n".join(lines))


@app.command("intent")
def intent_command(
    paths: Annotated[list[str] | None, typer.Argument(help="File paths to classify.")] = None,
    title: Annotated[str | None, typer.Option(help="Pull request title.")] = None,
    label: Annotated[list[str] | None, typer.Option(help="Pull request label.")] = None,
    function: Annotated[list[str] | None, typer.Option(help="Function name to classify.")] = None,
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """Show how files, a PR title/labels and function names are classified."""
    output_format = _choice_or_default(
        value=format, default="human", allowed={"human", "json"}, field_name="--format"
    )
    pr_intent = classify_change(title, None, label) if (title or label) else None
    file_intents = [classify_file(path) for path in paths or []]
    function_intents = [classify_function(name) for name in function or []]

    if output_format == "json":
        payload = {
            "files": [
                {
                    "path": intent.path,
                    "type": intent.type.value,
                    "strictness": intent.strictness,
                    "allowed_exceptions": sorted(intent.allowed_exceptions),
                    "summary": context_summary(intent, pr_intent),
                }
                for intent in file_intents
            ],
            "pr": pr_intent.to_dict() if pr_intent is not None else None,
            "functions": [
                {
                    "name": intent.name,
                    "purpose": intent.purpose,
                    "allow_lower_standards": intent.allow_lower_standards,
                }
                for intent in function_intents
            ],
        }
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines: list[str] = []
    if pr_intent is not None:
        focus = ", ".join(pr_intent.focus_areas) or "none"
        lines.append(
            f"PR: {pr_intent.change_type.value} ({pr_intent.strictness}); focus: {focus}"
        )
    for intent in file_intents:
        lines.append(f"{intent.path}: {context_summary(intent, pr_intent)}")
    for function_intent in function_intents:
        lines.append(f"{function_intent.name}(): {function_intent.purpose}")
    typer.echo("\n".join(lines) or "Nothing to classify.")


@app.command("config")
def config_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = _choice_or_default(
        value=format, default="human", allowed={"human", "json"}, field_name="--format"
    )
    app_config = _load_config_or_raise(repo, config_file)
    active = _build_detectors_or_raise(RuleSet(), app_config)
    payload = app_config.to_dict()
    payload["active_detector_ids"] = [detector.detector_id for detector in active]

    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = [
        "Resolved configuration:",
        f"- source: {payload['source'] or 'defaults'}",
        f"- format: {payload['format']}",
        f"- min_confidence: {payload['min_confidence']}",
        f"- fail_on: {payload['fail_on']}",
        f"- rules_file: {payload['rules_file']}",
        f"- include: {payload['include']}",
        f"- exclude: {payload['exclude']}",
        f"- review: {payload['review']}",
        f"- patterns: {[pattern['rule_id'] for pattern in payload['patterns']]}",
        f"- active_detector_ids: {payload['active_detector_ids']}",
    ]
    typer.echo("\n".join(lines))


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Output path for starter config TOML.")] = Path(
        ".diff-review.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite if file already exists."),
    ] = False,
) -> None:
    """Create a starter repository config file."""
    out_path = out.resolve()
    if out_path.exists() and not force:
        raise typer.BadParameter(
            f"Refusing to overwrite existing file: {out_path}. Use --force to overwrite."
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {out_path}")


def main() -> None:
    """Console script entrypoint."""
    app()


def _resolve_diff_input(
    *,
    diff_file: Path | None,
    stdin: bool,
    repo: Path,
    base: str | None,
    head: str | None,
) -> tuple[str, str]:
    if diff_file is not None:
        try:
            return (diff_file.read_text(encoding="utf-8"), f"diff_file:{diff_file}")
        except OSError as exc:
            raise typer.BadParameter(str(exc), param_hint="--diff-file") from exc

    if stdin:
        return (sys.stdin.read(), "stdin")

    if base is not None and head is not None:
        return (get_diff_between(repo, base, head), "git_range")

    return (get_working_tree_diff(repo), "git_working_tree")


def _filter_patches(
    patches: list[FilePatch], *, includes: list[str], excludes: list[str]
) -> list[FilePatch]:
    selected: list[FilePatch] = []
    for patch in patches:
        if patch.is_deleted_file or patch.is_binary:
            continue
        path = patch.path
        if includes and not any(fnmatch.fnmatch(path, pattern) for pattern in includes):
            continue
        if excludes and any(fnmatch.fnmatch(path, pattern) for pattern in excludes):
            continue
        selected.append(patch)
    return selected


def _review_file(
    patch: FilePatch, *, repo: Path, revision: str | None, input_source: str
) -> ReviewFile:
    path = patch.path
    if revision is not None:
        content = get_file_at_revision(repo, revision, path)
    else:
        content = read_worktree_file(repo, path)

    if content is None:
        if input_source.startswith("git"):
            logger.warning("%s: full content unavailable, reviewing added lines only", path)
        content = patch.added_text()

    return ReviewFile(
        path=path,
        content=content,
        changed_lines=tuple(
            ChangedLine(line=number, content=text) for number, text in patch.added_lines()
        ),
    )


def _load_config_or_raise(repo: Path, config_file: Path | None = None) -> AppConfig:
    try:
        app_config = load_app_config(repo, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc
    setup_logging(app_config.log_level)
    return app_config


def _load_rules_or_raise(repo: Path, rules: Path | None, app_config: AppConfig) -> RuleSet:
    rules_path = rules
    if rules_path is None and app_config.rules_file is not None:
        rules_path = Path(app_config.rules_file)
    try:
        return load_rule_set(repo, rules_path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--rules") from exc


def _build_detectors_or_raise(rule_set: RuleSet, app_config: AppConfig) -> list[Detector]:
    try:
        return build_detectors(
            rule_set,
            enabled_ids=app_config.detector_enable,
            disabled_ids=app_config.detector_disable,
            custom_patterns=app_config.patterns,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config.detectors") from exc


def _choice_or_default(
    *,
    value: str | None,
    default: str,
    allowed: set[str],
    field_name: str,
) -> str:
    resolved = (value or default).lower()
    if resolved not in allowed:
        choices = ", ".join(sorted(allowed))
        raise typer.BadParameter(f"{field_name} must be one of: {choices}", param_hint=field_name)
    return resolved
