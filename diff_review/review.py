"""Review orchestration: detect, score, categorize and summarize findings."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any

from diff_review.categorizer import Category, CategoryStats, categorize, categorize_multiple
from diff_review.intent import FileIntent, PRIntent, classify_change, classify_file
from diff_review.languages import detect_language
from diff_review.log import get_logger
from diff_review.rules import Detector, LineContext, build_detectors
from diff_review.ruleset import RuleSet
from diff_review.scoring import ConfidenceScorer, RuleAccuracyStore, ScoringContext

logger = get_logger(__name__)

SUMMARY_HEADING = "## Code Review Summary"
DEFAULT_TONE = "Please review the comments below."


@dataclass(frozen=True, slots=True)
class ChangedLine:
    """A changed line number and its new content."""

    line: int
    content: str


@dataclass(frozen=True, slots=True)
class ReviewFile:
    """File content plus the lines changed in it.

    ``changed_lines=None`` treats every line of ``content`` as changed.
    """

    path: str
    content: str = ""
    changed_lines: tuple[ChangedLine, ...] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ReviewFile:
        raw_lines = data.get("changed_lines", data.get("changedLines"))
        changed: tuple[ChangedLine, ...] | None = None
        if raw_lines is not None:
            changed = tuple(
                item
                if isinstance(item, ChangedLine)
                else ChangedLine(line=int(item["line"]), content=str(item["content"]))
                for item in raw_lines
            )
        return cls(
            path=str(data["path"]),
            content=str(data.get("content") or ""),
            changed_lines=changed,
        )

    def lines_to_review(self) -> list[ChangedLine]:
        if self.changed_lines is not None:
            return list(self.changed_lines)
        return [
            ChangedLine(line=number, content=text)
            for number, text in enumerate(self.content.split("\n"), start=1)
        ]


@dataclass(frozen=True, slots=True)
class PRMeta:
    """Pull-request metadata supplied by the hosting-provider collaborator."""

    title: str = ""
    body: str = ""
    labels: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PRMeta:
        labels: list[str] = []
        for label in data.get("labels") or ():
            if isinstance(label, str):
                labels.append(label)
            elif isinstance(label, Mapping) and isinstance(label.get("name"), str):
                labels.append(label["name"])
        return cls(
            title=data.get("title") if isinstance(data.get("title"), str) else "",
            body=data.get("body") if isinstance(data.get("body"), str) else "",
            labels=tuple(labels),
        )


@dataclass(frozen=True, slots=True)
class Finding:
    """A scored, categorized issue on one line of one file."""

    path: str
    line: int
    message: str
    suggestion: str | None
    severity: str
    confidence: int
    category: Category
    emoji: str
    sort_order: int
    rule_id: str | None = None
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "line": self.line,
            "message": self.message,
            "suggestion": self.suggestion,
            "severity": self.severity,
            "confidence": self.confidence,
            "category": self.category.value,
            "emoji": self.emoji,
            "sort_order": self.sort_order,
            "rule_id": self.rule_id,
            "tags": list(self.tags),
        }


@dataclass(slots=True)
class ReviewResult:
    """Output of one review run."""

    findings: list[Finding]
    summary: str
    stats: CategoryStats
    pr_intent: PRIntent | None = None
    file_intents: dict[str, FileIntent] = field(default_factory=dict)
    partial: bool = False


@dataclass(slots=True)
class _FileReview:
    intent: FileIntent
    findings: list[Finding]


class Reviewer:
    """Runs the detection pipeline for one rule set and optional PR context."""

    def __init__(
        self,
        rule_set: RuleSet,
        *,
        pr_meta: PRMeta | Mapping[str, Any] | None = None,
        accuracy_store: RuleAccuracyStore | None = None,
        detectors: list[Detector] | None = None,
    ) -> None:
        if rule_set is None:
            raise ValueError("A RuleSet is required to run a review; got None.")
        if not isinstance(rule_set, RuleSet):
            raise TypeError(f"rule_set must be a RuleSet, got {type(rule_set).__name__}")

        self.rule_set = rule_set
        self.accuracy_store = accuracy_store or RuleAccuracyStore()
        self.detectors = detectors if detectors is not None else build_detectors(rule_set)
        self.pr_intent = _classify_pr(pr_meta)

    def analyze(
        self,
        files: Iterable[ReviewFile | Mapping[str, Any]],
        *,
        workers: int = 1,
        timeout: float | None = None,
    ) -> ReviewResult:
        """Review every file and return sorted findings plus a summary.

        With ``workers > 1`` or a ``timeout`` files are analyzed on a thread
        pool. Files still pending when the timeout expires are dropped and the
        result is marked ``partial``.
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {timeout}")

        review_files = [_coerce_file(item) for item in files]
        scorer = ConfidenceScorer(self.accuracy_store.snapshot())

        if workers == 1 and timeout is None:
            reviews = [self._review_file(item, scorer) for item in review_files]
            partial = False
        else:
            reviews, partial = self._review_parallel(review_files, scorer, workers, timeout)

        collected: list[Finding] = []
        file_intents: dict[str, FileIntent] = {}
        for review in reviews:
            if review is None:
                continue
            file_intents[review.intent.path] = review.intent
            collected.extend(review.findings)

        findings, stats = categorize_multiple(collected)
        return ReviewResult(
            findings=findings,
            summary=build_summary(findings, stats, tone=self.rule_set.tone),
            stats=stats,
            pr_intent=self.pr_intent,
            file_intents=file_intents,
            partial=partial,
        )

    def record_feedback(self, rule_id: str, was_correct: bool) -> None:
        """Feed reviewer verdicts back into the accuracy store for later runs."""
        self.accuracy_store.record_feedback(rule_id, was_correct)

    def _review_parallel(
        self,
        files: list[ReviewFile],
        scorer: ConfidenceScorer,
        workers: int,
        timeout: float | None,
    ) -> tuple[list[_FileReview | None], bool]:
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="diff-review")
        try:
            futures: list[Future[_FileReview]] = [
                executor.submit(self._review_file, item, scorer) for item in files
            ]
            done, pending = wait(futures, timeout=timeout)
            for future in pending:
                future.cancel()
            if pending:
                logger.warning(
                    "Review timed out after %ss; %d of %d file(s) not analyzed",
                    timeout,
                    len(pending),
                    len(files),
                )
            # Collect in input order so parallelism never affects output order.
            reviews = [future.result() if future in done else None for future in futures]
            return (reviews, bool(pending))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _review_file(self, review_file: ReviewFile, scorer: ConfidenceScorer) -> _FileReview:
        language = detect_language(review_file.path)
        intent = classify_file(review_file.path, review_file.content)
        findings: list[Finding] = []

        for changed in review_file.lines_to_review():
            line = LineContext(
                path=review_file.path,
                line_number=changed.line,
                content=changed.content,
                language=language,
                file_intent=intent,
            )
            context = ScoringContext.for_line(intent, language=language, line_number=changed.line)
            for detector in self.detectors:
                for issue in detector.detect(line):
                    info = categorize(issue.tags, issue.rule_id)
                    findings.append(
                        Finding(
                            path=review_file.path,
                            line=changed.line,
                            message=issue.message,
                            suggestion=issue.suggestion,
                            severity=info.severity,
                            confidence=scorer.score(issue, context),
                            category=info.category,
                            emoji=info.emoji,
                            sort_order=info.sort_order,
                            rule_id=issue.rule_id,
                            tags=tuple(sorted(issue.tags)),
                        )
                    )

        logger.debug(
            "%s: %s file (%s), %d finding(s)",
            review_file.path,
            intent.type.value,
            language,
            len(findings),
        )
        return _FileReview(intent=intent, findings=findings)


def analyze(
    files: Iterable[ReviewFile | Mapping[str, Any]],
    rule_set: RuleSet,
    pr_meta: PRMeta | Mapping[str, Any] | None = None,
    *,
    accuracy_store: RuleAccuracyStore | None = None,
    workers: int = 1,
    timeout: float | None = None,
) -> ReviewResult:
    """Review ``files`` against ``rule_set`` in a single call."""
    reviewer = Reviewer(rule_set, pr_meta=pr_meta, accuracy_store=accuracy_store)
    return reviewer.analyze(files, workers=workers, timeout=timeout)


def build_summary(findings: Sequence[Finding], stats: CategoryStats, *, tone: str = "") -> str:
    """Render the run summary posted alongside the findings."""
    parts = [f"{SUMMARY_HEADING}\n\n"]
    if not findings:
        parts.append("✅ No issues found. Code looks good!\n")
    else:
        parts.append(f"Found {stats.total} issue(s):\n\n")
        if stats.bugs:
            parts.append(f"🔴 **{stats.bugs} Bugs** - Must fix before merge\n")
        if stats.refactors:
            parts.append(f"🟡 **{stats.refactors} Refactors** - Should fix for quality\n")
        if stats.suggestions:
            parts.append(f"🔵 **{stats.suggestions} Suggestions** - Nice to have\n")
        parts.append("\n")
        if stats.critical:
            parts.append(f"⚠️ {stats.critical} critical issue(s)\n")
        parts.append(f"\n📊 Average confidence: {average_confidence(findings)}%\n")

    parts.append("\n" + (tone or DEFAULT_TONE))
    return "".join(parts)


def average_confidence(findings: Sequence[Finding]) -> int:
    """Mean confidence rounded half up; 0 for no findings."""
    if not findings:
        return 0
    mean = sum(finding.confidence for finding in findings) / len(findings)
    return math.floor(mean + 0.5)


def _classify_pr(pr_meta: PRMeta | Mapping[str, Any] | None) -> PRIntent | None:
    if pr_meta is None:
        return None
    if isinstance(pr_meta, Mapping):
        pr_meta = PRMeta.from_mapping(pr_meta)
    if not isinstance(pr_meta, PRMeta):
        return classify_change("")
    return classify_change(pr_meta.title, pr_meta.body, pr_meta.labels)


def _coerce_file(item: ReviewFile | Mapping[str, Any]) -> ReviewFile:
    if isinstance(item, ReviewFile):
        return item
    return ReviewFile.from_mapping(item)
