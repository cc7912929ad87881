"""
News Validator.

Checks headline availability, agreement of headline sentiment across
outlets, and divergence between news tone and on-chain flows:

- > 70% bearish headlines while wallets accumulate (net flow > 0)
- > 70% bullish headlines while wallets distribute (net flow < 0)
"""

from collections import defaultdict
from typing import Any, Optional

import structlog

from veritas.schemas.inputs import NewsArticle, NewsSnapshot
from veritas.schemas.validation import (
    Alert,
    AlertSeverity,
    Discrepancy,
    Domain,
    SourceReading,
    ValidationResult,
)
from veritas.validators.base import Validator, build_result
from veritas.validators.discrepancy import DiscrepancyDetector, suggest_action

logger = structlog.get_logger(__name__)

DIVERGENCE_SHARE: float = 70.0
WARNING_PENALTY: float = 15.0


def sentiment_shares(articles: list[NewsArticle]) -> tuple[float, float]:
    """(bullish %, bearish %) of headlines."""
    if not articles:
        return 0.0, 0.0
    total = len(articles)
    bullish = sum(1 for a in articles if a.sentiment.lower() == "bullish")
    bearish = sum(1 for a in articles if a.sentiment.lower() == "bearish")
    return bullish / total * 100.0, bearish / total * 100.0


def detect_divergence(
    articles: list[NewsArticle],
    net_flow: Optional[float],
) -> Optional[str]:
    """Return the divergence type, or None when news and flows agree."""
    if net_flow is None or not articles:
        return None
    bullish, bearish = sentiment_shares(articles)
    if bearish > DIVERGENCE_SHARE and net_flow > 0:
        return "bearish_news_accumulation"
    if bullish > DIVERGENCE_SHARE and net_flow < 0:
        return "bullish_news_distribution"
    return None


class NewsValidator(Validator):
    domain = Domain.NEWS

    def __init__(self, detector: DiscrepancyDetector | None = None):
        self.detector = detector or DiscrepancyDetector()

    async def validate(self, symbol: str, data: Any) -> ValidationResult:
        snapshot = data if isinstance(data, NewsSnapshot) else NewsSnapshot.model_validate(data)
        return self.check(symbol, snapshot)

    def check(self, symbol: str, snapshot: NewsSnapshot) -> ValidationResult:
        articles = snapshot.articles

        # ── 1. Availability ───────────────────────────────────────────
        if not articles:
            return build_result(
                confidence=0.0,
                alerts=[Alert(
                    severity=AlertSeverity.WARNING,
                    type=Domain.NEWS,
                    message=f"No news articles available for {symbol}",
                    recommendation="Proceed without news context",
                )],
                failed_checks=["news_availability"],
            )

        alerts: list[Alert] = []
        discrepancies: list[Discrepancy] = []
        passed = ["news_availability"]
        failed: list[str] = []

        # ── 2. Cross-outlet sentiment ─────────────────────────────────
        by_source: dict[str, list[float]] = defaultdict(list)
        for article in articles:
            by_source[article.source].append(article.sentiment_score)
        readings = [(src, sum(v) / len(v)) for src, v in by_source.items()]
        disc = self.detector.detect("sentiment", readings)
        if disc is not None:
            discrepancies.append(disc)
            if disc.exceeded:
                alerts.append(Alert(
                    severity=AlertSeverity.WARNING,
                    type=Domain.NEWS,
                    message=f"News sentiment varies across outlets: {disc.variance:.0f}% spread",
                    affected_sources=disc.source_names,
                    recommendation=suggest_action(disc),
                ))
                failed.append("news_sentiment_consistency")
            else:
                passed.append("news_sentiment_consistency")

        # ── 3. News vs on-chain divergence ────────────────────────────
        if snapshot.onchain_net_flow is not None:
            divergence = detect_divergence(articles, snapshot.onchain_net_flow)
            if divergence is None:
                passed.append("news_onchain_alignment")
            else:
                bullish, bearish = sentiment_shares(articles)
                share = bearish if divergence == "bearish_news_accumulation" else bullish
                tone = "bearish" if divergence == "bearish_news_accumulation" else "bullish"
                action = "accumulating" if snapshot.onchain_net_flow > 0 else "distributing"
                div = Discrepancy(
                    metric="news_onchain_divergence",
                    sources=[
                        SourceReading(name="News", value=share),
                        SourceReading(name="On-Chain", value=snapshot.onchain_net_flow),
                    ],
                    variance=share,
                    threshold=DIVERGENCE_SHARE,
                    exceeded=True,
                )
                discrepancies.append(div)
                alerts.append(Alert(
                    severity=AlertSeverity.WARNING,
                    type=Domain.NEWS,
                    message=(
                        f"News-OnChain Divergence: {share:.0f}% {tone} news "
                        f"but wallets are {action} (net flow: {snapshot.onchain_net_flow:+.2f})"
                    ),
                    affected_sources=["News", "On-Chain"],
                    recommendation=suggest_action(div),
                ))
                failed.append("news_onchain_alignment")
                logger.info("news_onchain_divergence", symbol=symbol, divergence=divergence)

        total = len(passed) + len(failed)
        quality = len(passed) / total * 100.0 - WARNING_PENALTY * len(alerts)
        return build_result(
            confidence=quality,
            alerts=alerts,
            discrepancies=discrepancies,
            passed_checks=passed,
            failed_checks=failed,
        )
