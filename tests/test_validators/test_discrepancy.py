"""
Discrepancy Detector Tests.
"""

import pytest
from hypothesis import given, settings as hyp_settings
from hypothesis import strategies as st

from veritas.schemas.validation import Discrepancy, SourceReading
from veritas.validators.discrepancy import (
    PRICE_THRESHOLD,
    SENTIMENT_THRESHOLD,
    VOLUME_THRESHOLD,
    DiscrepancyDetector,
    detect_discrepancy,
    spread_percent,
    suggest_action,
)


class TestSpread:

    def test_identical_values(self):
        assert spread_percent([5.0, 5.0, 5.0]) == 0

    def test_simple_spread(self):
        # (110 − 90) / 100 × 100
        assert spread_percent([90.0, 110.0]) == pytest.approx(20.0)

    def test_zero_mean(self):
        assert spread_percent([-1.0, 1.0]) == 100

    def test_clamped(self):
        assert spread_percent([1.0, 1000.0]) == 100

    def test_single_value(self):
        assert spread_percent([42.0]) == 0


class TestDetect:

    def test_fewer_than_two_readings(self):
        assert detect_discrepancy("price", [("A", 100.0)]) is None
        assert detect_discrepancy("price", []) is None

    def test_price_threshold(self):
        disc = detect_discrepancy("price", [("A", 100.0), ("B", 101.0)])
        assert disc.threshold == PRICE_THRESHOLD
        assert not disc.exceeded

        disc = detect_discrepancy("price", [("A", 100.0), ("B", 103.0)])
        assert disc.exceeded
        assert disc.source_names == ["A", "B"]

    def test_domain_thresholds(self):
        assert detect_discrepancy("volume_24h", [("A", 1), ("B", 1)]).threshold == VOLUME_THRESHOLD
        assert detect_discrepancy("sentiment", [("A", 1), ("B", 1)]).threshold == SENTIMENT_THRESHOLD

    def test_accepts_source_readings(self):
        disc = detect_discrepancy(
            "price",
            [SourceReading(name="A", value=10), SourceReading(name="B", value=10)],
        )
        assert disc.variance == 0

    def test_detector_overrides(self):
        detector = DiscrepancyDetector({"price": 5.0})
        assert not detector.detect("price", [("A", 100.0), ("B", 103.0)]).exceeded
        assert detector.detect("volume_24h", [("A", 1), ("B", 2)]).threshold == VOLUME_THRESHOLD


class TestSuggestAction:

    def _disc(self, metric: str, exceeded: bool = True) -> Discrepancy:
        return Discrepancy(
            metric=metric,
            sources=[SourceReading(name="A", value=1), SourceReading(name="B", value=2)],
            variance=50,
            threshold=10,
            exceeded=exceeded,
        )

    def test_within_threshold(self):
        assert suggest_action(self._disc("price", exceeded=False)).startswith("No action needed")

    @pytest.mark.parametrize("metric,fragment", [
        ("price", "liquid"),
        ("volume_24h", "wash trading"),
        ("sentiment", "sample size"),
        ("market_to_chain_consistency", "on-chain"),
        ("custom_metric", "custom_metric"),
    ])
    def test_metric_guidance(self, metric, fragment):
        assert fragment in suggest_action(self._disc(metric))


class TestDiscrepancyPropertyBased:

    @given(values=st.lists(st.floats(min_value=-1e12, max_value=1e12), min_size=2, max_size=6))
    @hyp_settings(max_examples=200)
    def test_variance_bounded(self, values):
        disc = detect_discrepancy("price", [(f"s{i}", v) for i, v in enumerate(values)])
        assert 0 <= disc.variance <= 100
        assert disc.exceeded == (disc.variance > disc.threshold)
