"""Composite quality scoring and verdict mapping.

No shared state; scoring a single work never touches I/O. Batches log a
summary line.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

import structlog

from curation_tournament.models import Metrics, MetricWeights, Verdict, Work
from curation_tournament.services.judge.curators import get_curator

logger = structlog.get_logger()

METRIC_NAMES = ("cultural", "technical", "conceptual", "emotional", "innovation")

# Lower bounds, checked top-down.
VERDICT_THRESHOLDS: tuple[tuple[int, Verdict], ...] = (
    (95, Verdict.MASTERWORK),
    (85, Verdict.INCLUDE),
    (70, Verdict.MAYBE),
)

NEEDS_DEVELOPMENT = "needs-development"


@dataclass(frozen=True)
class ScoreResult:
    """Composite score with its verdict and any flags."""

    score: int
    verdict: Verdict
    flags: list[str] = field(default_factory=list)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def score(metrics: Metrics, weights: MetricWeights | None = None) -> int:
    """Compute the weighted composite of the five metrics.

    Weights are applied as given and never renormalized, so weights that do
    not sum to 1 can push the result outside [0, 100]. Callers that need a
    bounded score must pass weights summing to 1.

    Args:
        metrics: The five sub-scores.
        weights: Per-metric weights; equal weighting (0.2 each) if omitted.

    Returns:
        Weighted sum rounded to the nearest integer (halves round up).
    """
    weights = weights or MetricWeights()
    total = sum(getattr(metrics, name) * getattr(weights, name) for name in METRIC_NAMES)
    return _round_half_up(total)


def verdict(composite: int) -> Verdict:
    """Map a composite score to its verdict."""
    for lower_bound, label in VERDICT_THRESHOLDS:
        if composite >= lower_bound:
            return label
    return Verdict.EXCLUDE


def score_work(
    metrics: Metrics,
    weights: MetricWeights | None = None,
    curator: str | None = None,
) -> ScoreResult:
    """Score metrics and derive the verdict.

    Args:
        metrics: The five sub-scores.
        weights: Explicit weights. Takes precedence over ``curator``.
        curator: Curator persona whose weights to use when ``weights`` is None.

    Returns:
        ScoreResult with score, verdict and flags.
    """
    if weights is None and curator is not None:
        weights = get_curator(curator, action="score").weights
    composite = score(metrics, weights)
    label = verdict(composite)
    flags = [NEEDS_DEVELOPMENT] if label is Verdict.EXCLUDE else []
    return ScoreResult(score=composite, verdict=label, flags=flags)


def apply_score(
    work: Work,
    weights: MetricWeights | None = None,
    curator: str | None = None,
) -> Work:
    """Return a scored copy of ``work``; the input is left untouched."""
    if work.metrics is None:
        msg = f"Work {work.id} has no metrics to score"
        raise ValueError(msg)
    result = score_work(work.metrics, weights, curator)
    return work.model_copy(update={"score": result.score, "verdict": result.verdict})


@dataclass(frozen=True)
class BatchScore:
    """Outcome of scoring a batch of works in one pass.

    Attributes:
        name: Display name of the batch.
        curator: Curator whose weights were used, if any.
        works: Scored copies, in input order. Works without metrics are
            passed through unscored.
        skipped: IDs of works that had no metrics.
    """

    name: str
    curator: str | None
    works: list[Work]
    skipped: list[str] = field(default_factory=list)

    @property
    def total_works(self) -> int:
        return len(self.works)

    @property
    def completed_works(self) -> int:
        return self.total_works - len(self.skipped)

    def verdict_counts(self) -> dict[Verdict, int]:
        """Number of scored works per verdict, every verdict present."""
        counts = dict.fromkeys(Verdict, 0)
        for work in self.works:
            if work.verdict is not None:
                counts[work.verdict] += 1
        return counts


def score_works(
    works: Sequence[Work],
    weights: MetricWeights | None = None,
    curator: str | None = None,
    name: str | None = None,
) -> BatchScore:
    """Score every work of a batch with the same weights.

    Args:
        works: Works to score; each ID may appear once.
        weights: Explicit weights. Takes precedence over ``curator``.
        curator: Curator persona whose weights to use when ``weights`` is None.
        name: Batch name. Defaults to ``"<CURATOR> Batch <date>"``.

    Raises:
        ValueError: If a work ID is repeated.
        UnknownCuratorError: If the curator is unknown.
    """
    seen: set[str] = set()
    for work in works:
        if work.id in seen:
            msg = f"Work {work.id} appears more than once in the batch"
            raise ValueError(msg)
        seen.add(work.id)

    if weights is None and curator is not None:
        weights = get_curator(curator, action="score").weights
    if curator is not None:
        curator = curator.strip().lower()

    scored: list[Work] = []
    skipped: list[str] = []
    for work in works:
        if work.metrics is None:
            skipped.append(work.id)
            scored.append(work.model_copy())
            continue
        scored.append(apply_score(work, weights))

    if name is None:
        label = curator.upper() if curator else "Default"
        name = f"{label} Batch {date.today().isoformat()}"

    logger.info(
        "batch_scored",
        name=name,
        curator=curator,
        works=len(scored),
        skipped=len(skipped),
    )
    return BatchScore(name=name, curator=curator, works=scored, skipped=skipped)
