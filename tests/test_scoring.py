"""Tests for composite scoring and verdicts."""

from datetime import date

import pydantic
import pytest

from curation_tournament.core.errors import UnknownCuratorError
from curation_tournament.models import Metrics, MetricWeights, Verdict, Work
from curation_tournament.services.scoring import (
    NEEDS_DEVELOPMENT,
    apply_score,
    score,
    score_work,
    score_works,
    verdict,
)


def _metrics(cultural=90, technical=80, conceptual=70, emotional=60, innovation=50) -> Metrics:
    return Metrics(
        cultural=cultural,
        technical=technical,
        conceptual=conceptual,
        emotional=emotional,
        innovation=innovation,
    )


class TestScore:
    """Tests for the weighted composite."""

    def test_equal_weights(self):
        """Default weights average the five metrics."""
        assert score(_metrics()) == 70

    def test_all_high_is_masterwork(self):
        """Five 96s score 96 and map to MASTERWORK."""
        result = score_work(_metrics(96, 96, 96, 96, 96))
        assert result.score == 96
        assert result.verdict is Verdict.MASTERWORK

    def test_half_rounds_up(self):
        """x.5 rounds up rather than to even."""
        weights = MetricWeights(
            cultural=0.5, technical=0, conceptual=0, emotional=0, innovation=0
        )
        assert score(_metrics(cultural=85), weights) == 43

    def test_weights_not_renormalized(self):
        """Weights summing above 1 push the score past 100."""
        weights = MetricWeights(
            cultural=1, technical=1, conceptual=1, emotional=1, innovation=1
        )
        assert score(_metrics(100, 100, 100, 100, 100), weights) == 500

    def test_deterministic(self):
        """Same input, same output."""
        assert score_work(_metrics()) == score_work(_metrics())

    def test_out_of_range_metric_rejected(self):
        """Metrics above 100 fail validation."""
        with pytest.raises(pydantic.ValidationError):
            _metrics(cultural=101)


class TestVerdict:
    """Tests for verdict thresholds."""

    @pytest.mark.parametrize(
        ("composite", "expected"),
        [
            (100, Verdict.MASTERWORK),
            (95, Verdict.MASTERWORK),
            (94, Verdict.INCLUDE),
            (85, Verdict.INCLUDE),
            (84, Verdict.MAYBE),
            (70, Verdict.MAYBE),
            (69, Verdict.EXCLUDE),
            (0, Verdict.EXCLUDE),
        ],
    )
    def test_thresholds(self, composite, expected):
        assert verdict(composite) is expected

    def test_exclude_flags_needs_development(self):
        """EXCLUDE carries the needs-development flag, others carry none."""
        assert score_work(_metrics(10, 10, 10, 10, 10)).flags == [NEEDS_DEVELOPMENT]
        assert score_work(_metrics()).flags == []


class TestCuratorWeights:
    """Tests for persona-weighted scoring."""

    def test_sue_weights(self):
        result = score_work(_metrics(), curator="sue")
        assert result.score == 70
        assert result.verdict is Verdict.MAYBE

    def test_nina_weights(self):
        """NINA favours emotion, so the same metrics score lower."""
        result = score_work(_metrics(), curator="nina")
        assert result.score == 66
        assert result.verdict is Verdict.EXCLUDE

    def test_explicit_weights_win(self):
        """Explicit weights take precedence over the curator's."""
        result = score_work(_metrics(), weights=MetricWeights(), curator="nina")
        assert result.score == 70

    def test_unknown_curator(self):
        with pytest.raises(UnknownCuratorError) as exc_info:
            score_work(_metrics(), curator="bob")
        assert exc_info.value.action == "score"


class TestApplyScore:
    """Tests for scoring Work records."""

    def test_returns_scored_copy(self):
        """The input work is not mutated."""
        work = Work(id="w1", title="Dawn", metrics=_metrics())
        scored = apply_score(work)

        assert scored.score == 70
        assert scored.verdict is Verdict.MAYBE
        assert scored.is_scored
        assert work.score is None
        assert work.verdict is None

    def test_requires_metrics(self):
        with pytest.raises(ValueError, match="no metrics"):
            apply_score(Work(id="w1", title="Dawn"))


class TestScoreWorks:
    """Tests for scoring a batch of works."""

    def _works(self) -> list[Work]:
        return [
            Work(id="w1", title="Dawn", metrics=_metrics()),
            Work(id="w2", title="Dusk", metrics=_metrics(96, 96, 96, 96, 96)),
            Work(id="w3", title="Draft"),
            Work(id="w4", title="Noise", metrics=_metrics(10, 10, 10, 10, 10)),
        ]

    def test_scores_in_input_order(self):
        works = self._works()
        batch = score_works(works, name="Spring")

        assert batch.name == "Spring"
        assert [w.id for w in batch.works] == ["w1", "w2", "w3", "w4"]
        assert [w.score for w in batch.works] == [70, 96, None, 10]
        assert all(w.score is None for w in works)

    def test_unscored_works_are_skipped(self):
        batch = score_works(self._works())

        assert batch.skipped == ["w3"]
        assert batch.total_works == 4
        assert batch.completed_works == 3

    def test_verdict_counts(self):
        counts = score_works(self._works()).verdict_counts()

        assert counts == {
            Verdict.MASTERWORK: 1,
            Verdict.INCLUDE: 0,
            Verdict.MAYBE: 1,
            Verdict.EXCLUDE: 1,
        }

    def test_default_name_uses_curator(self):
        batch = score_works(self._works(), curator=" Nina ")

        assert batch.curator == "nina"
        assert batch.name == f"NINA Batch {date.today().isoformat()}"

    def test_curator_weights_match_single_scoring(self):
        batch = score_works(self._works(), curator="sue")
        expected = score_work(_metrics(), curator="sue")

        assert batch.works[0].score == expected.score
        assert batch.works[0].verdict is expected.verdict

    def test_duplicate_ids_rejected(self):
        works = [Work(id="w1", title="A", metrics=_metrics())] * 2
        with pytest.raises(ValueError, match="more than once"):
            score_works(works)

    def test_unknown_curator(self):
        with pytest.raises(UnknownCuratorError) as exc_info:
            score_works(self._works(), curator="bob")
        assert exc_info.value.action == "score"
