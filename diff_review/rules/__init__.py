"""Detectors package."""

from collections.abc import Callable
from dataclasses import dataclass

from diff_review.config import CustomPattern
from diff_review.rules.base import Detector, IssueSource, LineContext, MatchType, RawIssue
from diff_review.rules.custom_patterns import CustomPatternsDetector
from diff_review.rules.dangerous_patterns import DangerousPatternsDetector
from diff_review.rules.guidelines import GuidelinesDetector
from diff_review.rules.secrets import SecretsDetector
from diff_review.ruleset import RuleSet

__all__ = [
    "Detector",
    "DetectorInfo",
    "IssueSource",
    "LineContext",
    "MatchType",
    "RawIssue",
    "build_detectors",
    "list_detector_info",
]


@dataclass(frozen=True, slots=True)
class DetectorInfo:
    """Detector metadata for listing and selection."""

    detector_id: str
    name: str
    description: str
    languages: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class _DetectorSpec:
    detector_id: str
    factory: Callable[[], Detector]
    name: str
    description: str
    languages: tuple[str, ...]


def build_detectors(
    rule_set: RuleSet,
    *,
    enabled_ids: list[str] | None = None,
    disabled_ids: list[str] | None = None,
    custom_patterns: list[CustomPattern] | None = None,
) -> list[Detector]:
    """Instantiate detectors in registry order, applying enable/disable lists."""
    specs = _ordered_detector_specs(rule_set, custom_patterns)
    registry = {spec.detector_id: spec for spec in specs}

    requested = set(enabled_ids or []) | set(disabled_ids or [])
    unknown = [detector_id for detector_id in requested if detector_id not in registry]
    if unknown:
        raise ValueError(f"Unknown detector ids: {', '.join(sorted(unknown))}")

    disabled = set(disabled_ids or [])
    enabled = set(enabled_ids) if enabled_ids is not None else set(registry)
    return [
        spec.factory()
        for spec in specs
        if spec.detector_id in enabled and spec.detector_id not in disabled
    ]


def list_detector_info() -> list[DetectorInfo]:
    """Return metadata for every registered detector."""
    return [
        DetectorInfo(
            detector_id=spec.detector_id,
            name=spec.name,
            description=spec.description,
            languages=spec.languages,
        )
        for spec in _ordered_detector_specs(RuleSet(), None)
    ]


def _ordered_detector_specs(
    rule_set: RuleSet,
    custom_patterns: list[CustomPattern] | None,
) -> list[_DetectorSpec]:
    return [
        _spec(SecretsDetector, SecretsDetector, languages=()),
        _spec(
            DangerousPatternsDetector,
            DangerousPatternsDetector,
            languages=("javascript", "typescript", "python"),
        ),
        _spec(GuidelinesDetector, lambda: GuidelinesDetector(rule_set), languages=()),
        _spec(
            CustomPatternsDetector,
            lambda: CustomPatternsDetector(custom_patterns),
            languages=(),
        ),
    ]


def _spec(
    detector_cls: type,
    factory: Callable[[], Detector],
    *,
    languages: tuple[str, ...],
) -> _DetectorSpec:
    return _DetectorSpec(
        detector_id=detector_cls.detector_id,
        factory=factory,
        name=detector_cls.__name__,
        description=(detector_cls.__doc__ or "").strip(),
        languages=languages,
    )
