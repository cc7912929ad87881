"""
Discrepancy Detector — percentage spread across sources.

    variance = (max − min) / |mean| × 100, clamped to [0, 100]

Fewer than two readings cannot disagree, so no discrepancy is produced.
"""

from typing import Iterable, Optional

from veritas.schemas.validation import Discrepancy, SourceReading, clamp_percent

# ── Thresholds (percent) ───────────────────────────────────────────────

PRICE_THRESHOLD: float = 1.5
VOLUME_THRESHOLD: float = 10.0
SENTIMENT_THRESHOLD: float = 30.0

DEFAULT_THRESHOLDS: dict[str, float] = {
    "price": PRICE_THRESHOLD,
    "volume_24h": VOLUME_THRESHOLD,
    "volume": VOLUME_THRESHOLD,
    "sentiment": SENTIMENT_THRESHOLD,
    "sentiment_score": SENTIMENT_THRESHOLD,
}


def spread_percent(values: list[float]) -> float:
    """Max-min spread relative to the mean, as a percent in [0, 100]."""
    if len(values) < 2:
        return 0.0
    hi, lo = max(values), min(values)
    if hi == lo:
        return 0.0
    mean = sum(values) / len(values)
    if mean == 0:
        return 100.0
    return clamp_percent((hi - lo) / abs(mean) * 100.0)


def detect_discrepancy(
    metric: str,
    readings: Iterable[SourceReading | tuple[str, float]],
    threshold: Optional[float] = None,
) -> Optional[Discrepancy]:
    """
    Compare one metric across sources.

    Args:
        metric: Metric name ("price", "volume_24h", "sentiment", ...)
        readings: SourceReading objects or (name, value) pairs
        threshold: Percent threshold; defaults to the metric's domain threshold

    Returns:
        A Discrepancy, or None with fewer than two readings.
    """
    sources = [
        r if isinstance(r, SourceReading) else SourceReading(name=r[0], value=r[1])
        for r in readings
    ]
    if len(sources) < 2:
        return None

    if threshold is None:
        threshold = DEFAULT_THRESHOLDS.get(metric, PRICE_THRESHOLD)

    variance = spread_percent([s.value for s in sources])
    return Discrepancy(
        metric=metric,
        sources=sources,
        variance=variance,
        threshold=threshold,
        exceeded=variance > threshold,
    )


class DiscrepancyDetector:
    """Stateless detector with per-metric threshold overrides."""

    def __init__(self, thresholds: Optional[dict[str, float]] = None):
        self.thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}

    def detect(
        self,
        metric: str,
        readings: Iterable[SourceReading | tuple[str, float]],
    ) -> Optional[Discrepancy]:
        return detect_discrepancy(metric, readings, self.thresholds.get(metric))


def suggest_action(discrepancy: Discrepancy) -> str:
    """Human guidance for resolving a discrepancy."""
    if not discrepancy.exceeded:
        return "No action needed - discrepancy within acceptable threshold"

    names = ", ".join(discrepancy.source_names)
    metric = discrepancy.metric
    if metric == "price":
        return f"Price sources disagree ({names}). Prefer the most liquid exchange and re-fetch."
    if metric.startswith("volume"):
        return f"Volume sources disagree ({names}). Check for wash trading or differing exchange coverage."
    if metric.startswith("sentiment"):
        return f"Sentiment sources disagree ({names}). Weight by sample size before relying on the score."
    if metric == "market_to_chain_consistency":
        return "Exchange flows do not match reported market volume. Verify on-chain data coverage."
    if metric == "news_onchain_divergence":
        return "News sentiment contradicts on-chain flows. Monitor closely for a narrative shift."
    return f"Review {metric} data from {names} and use the most reliable source"
