"""
Market Data Validator.

Cross-checks price and 24h volume quotes from several exchanges /
aggregators. Quality is source coverage minus spread penalties:

    quality = coverage × 100 − min(price_spread, 30) − min(volume_spread / 2, 20)
"""

from typing import Any

import structlog

from veritas.schemas.inputs import MarketSnapshot
from veritas.schemas.validation import Alert, AlertSeverity, Domain, ValidationResult
from veritas.validators.base import Validator, build_result
from veritas.validators.discrepancy import DiscrepancyDetector, suggest_action

logger = structlog.get_logger(__name__)

MAX_PRICE_PENALTY: float = 30.0
MAX_VOLUME_PENALTY: float = 20.0


class MarketDataValidator(Validator):
    domain = Domain.MARKET

    def __init__(self, detector: DiscrepancyDetector | None = None):
        self.detector = detector or DiscrepancyDetector()

    async def validate(self, symbol: str, data: Any) -> ValidationResult:
        snapshot = data if isinstance(data, MarketSnapshot) else MarketSnapshot.model_validate(data)
        return self.check(symbol, snapshot)

    def check(self, symbol: str, snapshot: MarketSnapshot) -> ValidationResult:
        alerts: list[Alert] = []
        passed: list[str] = []
        failed: list[str] = []
        quotes = snapshot.quotes

        # ── 1. Availability ───────────────────────────────────────────
        if not quotes:
            return build_result(
                confidence=0.0,
                alerts=[Alert(
                    severity=AlertSeverity.FATAL,
                    type=Domain.MARKET,
                    message=f"No market data available for {symbol}",
                    recommendation="Cannot proceed without price data - retry market fetch",
                )],
                failed_checks=["market_data_availability"],
            )
        passed.append("market_data_availability")

        # ── 2. Logical impossibility: non-positive price ─────────────
        bad = [q.source for q in quotes if q.price <= 0]
        if bad:
            logger.warning("market_impossible_price", symbol=symbol, sources=bad)
            return build_result(
                confidence=0.0,
                alerts=[Alert(
                    severity=AlertSeverity.FATAL,
                    type=Domain.MARKET,
                    message="Fatal Market Data Error: non-positive price reported",
                    affected_sources=bad,
                    recommendation="Discarding market data - a traded asset cannot have a price <= 0",
                )],
                passed_checks=passed,
                failed_checks=["price_sanity_check"],
            )
        passed.append("price_sanity_check")

        discrepancies = []

        # ── 3. Price consistency ──────────────────────────────────────
        price_spread = 0.0
        price_disc = self.detector.detect("price", [(q.source, q.price) for q in quotes])
        if price_disc is not None:
            discrepancies.append(price_disc)
            price_spread = price_disc.variance
            if price_disc.exceeded:
                alerts.append(Alert(
                    severity=AlertSeverity.WARNING,
                    type=Domain.MARKET,
                    message=(
                        f"Price discrepancy detected: {price_disc.variance:.2f}% variance "
                        f"(threshold {price_disc.threshold}%)"
                    ),
                    affected_sources=price_disc.source_names,
                    recommendation=suggest_action(price_disc),
                ))
                failed.append("price_consistency")
            else:
                passed.append("price_consistency")

        # ── 4. Volume consistency ─────────────────────────────────────
        volume_spread = 0.0
        volumes = [(q.source, q.volume_24h) for q in quotes if q.volume_24h > 0]
        volume_disc = self.detector.detect("volume_24h", volumes)
        if volume_disc is not None:
            discrepancies.append(volume_disc)
            volume_spread = volume_disc.variance
            if volume_disc.exceeded:
                alerts.append(Alert(
                    severity=AlertSeverity.WARNING,
                    type=Domain.MARKET,
                    message=f"Volume discrepancy detected: {volume_disc.variance:.2f}% variance",
                    affected_sources=volume_disc.source_names,
                    recommendation=suggest_action(volume_disc),
                ))
                failed.append("volume_consistency")
            else:
                passed.append("volume_consistency")

        expected = max(snapshot.expected_sources, 1)
        coverage = min(len(quotes) / expected, 1.0)
        quality = (
            coverage * 100.0
            - min(price_spread, MAX_PRICE_PENALTY)
            - min(volume_spread / 2.0, MAX_VOLUME_PENALTY)
        )

        logger.debug(
            "market_validation_complete",
            symbol=symbol,
            sources=len(quotes),
            price_spread=round(price_spread, 3),
            quality=round(quality, 1),
        )
        return build_result(
            confidence=quality,
            alerts=alerts,
            discrepancies=discrepancies,
            passed_checks=passed,
            failed_checks=failed,
        )
