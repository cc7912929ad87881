"""
Confidence Score Calculator Tests.

Covers:
- Empty input and full-clean input anchors
- Each component formula (agreement, consistency, cross-validation, completeness)
- Source weights from a reliability tracker
- Weight validation
- Property-based bounds
"""

import pytest
from hypothesis import given, settings as hyp_settings
from hypothesis import strategies as st

from conftest import fatal_result, make_alert, make_result
from veritas.engine.confidence import (
    ScoreWeights,
    calculate_veritas_confidence_score,
    data_source_agreement,
    get_confidence_level,
    get_confidence_recommendation,
    is_sufficient_confidence,
    logical_consistency,
)
from veritas.exceptions import ConfigurationError
from veritas.schemas.scoring import ConfidenceLevel
from veritas.schemas.validation import AlertSeverity, Discrepancy, Domain, SourceReading


def _all_domains(confidence: float = 100.0, **kwargs) -> dict:
    return {d: make_result(confidence=confidence, **kwargs) for d in Domain}


class TestAnchors:

    def test_empty_input_scores_30(self):
        """Only logical consistency (100 × 0.3) contributes."""
        score = calculate_veritas_confidence_score({})
        assert score.overall_score == 30
        assert score.data_source_agreement == 0
        assert score.logical_consistency == 100
        assert score.cross_validation_success == 0
        assert score.completeness == 0
        assert score.confidence_level == ConfidenceLevel.POOR
        assert score.explanation

    def test_all_clean_scores_100(self):
        score = calculate_veritas_confidence_score(_all_domains(passed=["a", "b"]))
        assert score.overall_score == 100
        assert score.confidence_level == ConfidenceLevel.EXCELLENT

    def test_none_entries_are_absent(self):
        score = calculate_veritas_confidence_score({Domain.MARKET: make_result(), Domain.NEWS: None})
        assert score.completeness == 25
        assert score.breakdown.news == 0

    def test_aliases_accepted(self):
        score = calculate_veritas_confidence_score({"onChain": make_result(confidence=80)})
        assert score.breakdown.on_chain == 80


class TestComponents:

    def test_logical_consistency(self):
        assert logical_consistency(0) == 100
        assert logical_consistency(1) == 50
        assert logical_consistency(2) == 0
        assert logical_consistency(8) == 0

    def test_fatal_alerts_drive_consistency(self):
        results = {Domain.MARKET: fatal_result(), Domain.SOCIAL: fatal_result(Domain.SOCIAL)}
        score = calculate_veritas_confidence_score(results)
        assert score.logical_consistency == 0

    @pytest.mark.parametrize("count,expected", [(1, 25), (2, 50), (3, 75), (4, 100)])
    def test_completeness(self, count, expected):
        domains = list(Domain)[:count]
        score = calculate_veritas_confidence_score({d: make_result() for d in domains})
        assert score.completeness == expected

    def test_cross_validation_ratio(self):
        results = {Domain.MARKET: make_result(passed=["a", "b", "c"], failed=["d", "e", "f"])}
        assert calculate_veritas_confidence_score(results).cross_validation_success == 50

    def test_cross_validation_no_checks(self):
        score = calculate_veritas_confidence_score({Domain.MARKET: make_result()})
        assert score.cross_validation_success == 100

    def test_agreement_single_domain(self):
        assert data_source_agreement([42.0]) == 100

    def test_agreement_spread(self):
        assert data_source_agreement([100, 20, 90, 30]) < 70

    def test_agreement_close(self):
        assert data_source_agreement([92, 90, 91, 93]) > 90

    def test_breakdown(self):
        results = {Domain.MARKET: make_result(confidence=80), Domain.SOCIAL: make_result(confidence=60)}
        breakdown = calculate_veritas_confidence_score(results).breakdown
        assert breakdown.market == 80
        assert breakdown.social == 60
        assert breakdown.on_chain == 0
        assert breakdown.news == 0


class TestSourceWeights:

    def _disc_result(self):
        disc = Discrepancy(
            metric="price",
            sources=[SourceReading(name="A", value=100), SourceReading(name="B", value=110)],
            variance=9.5,
            threshold=1.5,
            exceeded=True,
        )
        return {Domain.MARKET: make_result(discrepancies=[disc])}

    def test_empty_without_tracker(self):
        assert calculate_veritas_confidence_score(self._disc_result()).source_weights == {}

    def test_weights_from_tracker(self, tracker):
        for _ in range(3):
            tracker.update("A", "deviation")
        weights = calculate_veritas_confidence_score(self._disc_result(), tracker).source_weights
        assert weights == {"A": 0.5, "B": 1.0}

    def test_failing_tracker_skips_source(self):
        class Flaky:
            def weight_for(self, name):
                if name == "A":
                    raise RuntimeError("lookup failed")
                return 2.0

        weights = calculate_veritas_confidence_score(self._disc_result(), Flaky()).source_weights
        assert weights == {"B": 1.0}


class TestWeightsAndLevels:

    def test_default_weights_valid(self):
        ScoreWeights()

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ConfigurationError):
            ScoreWeights(agreement=0.5, consistency=0.3, cross_validation=0.2, completeness=0.1)

    def test_negative_weight_rejected(self):
        with pytest.raises(ConfigurationError):
            ScoreWeights(agreement=1.1, consistency=-0.1, cross_validation=0.0, completeness=0.0)

    def test_custom_weights(self):
        weights = ScoreWeights(agreement=0.0, consistency=1.0, cross_validation=0.0, completeness=0.0)
        assert calculate_veritas_confidence_score({}, weights=weights).overall_score == 100

    @pytest.mark.parametrize("value,level", [
        (95, ConfidenceLevel.EXCELLENT),
        (90, ConfidenceLevel.EXCELLENT),
        (85, ConfidenceLevel.GOOD),
        (72, ConfidenceLevel.ACCEPTABLE),
        (60, ConfidenceLevel.FAIR),
        (59, ConfidenceLevel.POOR),
    ])
    def test_levels(self, value, level):
        assert get_confidence_level(value) == level

    def test_sufficiency_and_recommendation(self):
        low = calculate_veritas_confidence_score({})
        assert not is_sufficient_confidence(low)
        assert "poor" in get_confidence_recommendation(low).lower()
        assert is_sufficient_confidence(75, minimum=70)

    def test_explanation_mentions_inconsistency(self):
        results = {Domain.MARKET: make_result(alerts=[make_alert(severity=AlertSeverity.FATAL)])}
        assert "inconsistenc" in calculate_veritas_confidence_score(results).explanation


class TestConfidencePropertyBased:

    @given(
        confidences=st.lists(
            st.one_of(st.floats(min_value=-50, max_value=500), st.just(float("nan"))),
            min_size=0,
            max_size=4,
        ),
        fatal=st.integers(min_value=0, max_value=5),
        passed=st.integers(min_value=0, max_value=10),
        failed=st.integers(min_value=0, max_value=10),
    )
    @hyp_settings(max_examples=200)
    def test_score_always_bounded(self, confidences, fatal, passed, failed):
        results = {}
        for domain, conf in zip(list(Domain), confidences):
            results[domain] = make_result(
                confidence=conf,
                alerts=[make_alert(domain, AlertSeverity.FATAL, f"f{i}") for i in range(fatal)],
                passed=[f"p{i}" for i in range(passed)],
                failed=[f"x{i}" for i in range(failed)],
            )
        score = calculate_veritas_confidence_score(results)
        assert 0 <= score.overall_score <= 100
        for component in (
            score.data_source_agreement,
            score.logical_consistency,
            score.cross_validation_success,
            score.completeness,
        ):
            assert 0 <= component <= 100
        assert score.completeness in (0, 25, 50, 75, 100)

    def test_nan_confidence_clamped_to_zero(self):
        result = make_result(confidence=float("nan"))
        assert result.confidence == 0
        score = calculate_veritas_confidence_score({Domain.MARKET: result})
        assert score.breakdown.market == 0
        assert 0 <= score.overall_score <= 100
