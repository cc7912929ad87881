"""
Test fixtures for Veritas tests.

Provides:
- ValidationResult factories (clean, warning, fatal)
- Scriptable async validators (delay / raise / return)
- Isolated ValidationMonitor and SourceReliabilityTracker instances
- Sample domain snapshots
"""

import asyncio
from typing import Any, Optional

import pytest

from veritas.engine.reliability import SourceReliabilityTracker
from veritas.monitoring.metrics import ValidationMonitor
from veritas.schemas.inputs import (
    MarketSnapshot,
    NewsArticle,
    NewsSnapshot,
    OnChainSnapshot,
    PriceQuote,
    SocialSnapshot,
)
from veritas.schemas.validation import (
    Alert,
    AlertSeverity,
    DataQualitySummary,
    Discrepancy,
    Domain,
    ValidationResult,
)
from veritas.validators.base import Validator


# ── Result Factories ───────────────────────────────────────────────────


def make_result(
    confidence: float = 100.0,
    alerts: Optional[list[Alert]] = None,
    discrepancies: Optional[list[Discrepancy]] = None,
    passed: Optional[list[str]] = None,
    failed: Optional[list[str]] = None,
) -> ValidationResult:
    alerts = alerts or []
    return ValidationResult(
        is_valid=not any(a.is_fatal for a in alerts),
        confidence=confidence,
        alerts=alerts,
        discrepancies=discrepancies or [],
        data_quality_summary=DataQualitySummary(
            overall_score=confidence,
            passed_checks=passed or [],
            failed_checks=failed or [],
        ),
    )


def make_alert(
    domain: Domain = Domain.MARKET,
    severity: AlertSeverity = AlertSeverity.WARNING,
    message: str = "test alert",
    sources: Optional[list[str]] = None,
) -> Alert:
    return Alert(
        severity=severity,
        type=domain,
        message=message,
        affected_sources=sources or [],
        recommendation="",
    )


def fatal_result(domain: Domain = Domain.MARKET, message: str = "impossible data") -> ValidationResult:
    return make_result(
        confidence=0.0,
        alerts=[make_alert(domain, AlertSeverity.FATAL, message)],
        failed=["impossibility_check"],
    )


# ── Scriptable Validators ──────────────────────────────────────────────


class StubValidator(Validator):
    """Async validator that sleeps, then returns a result or raises."""

    def __init__(
        self,
        domain: Domain,
        result: Optional[ValidationResult] = None,
        delay: float = 0.0,
        error: Optional[BaseException] = None,
    ):
        self.domain = domain
        self.result = result if result is not None else make_result(passed=[f"{domain.value}_check"])
        self.delay = delay
        self.error = error
        self.calls = 0
        self.finished = asyncio.Event()

    async def validate(self, symbol: str, data: Any) -> ValidationResult:
        self.calls += 1
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return self.result
        finally:
            self.finished.set()


def stub_validators(**overrides: StubValidator) -> dict[Domain, Validator]:
    """One quick clean validator per domain, with per-domain overrides."""
    validators: dict[Domain, Validator] = {d: StubValidator(d) for d in Domain}
    for key, validator in overrides.items():
        validators[Domain.parse(key)] = validator
    return validators


ALL_INPUTS: dict[str, Any] = {
    "market": {"quotes": []},
    "social": {"mention_count": 10},
    "onChain": {"market_volume_24h": 1.0},
    "news": {"articles": []},
}


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def monitor():
    mon = ValidationMonitor(max_records=100)
    yield mon
    mon.clear_metrics()


@pytest.fixture
def tracker():
    t = SourceReliabilityTracker()
    yield t
    t.reset()


@pytest.fixture
def market_snapshot():
    return MarketSnapshot(quotes=[
        PriceQuote(source="CoinMarketCap", price=95_000.0, volume_24h=30_000_000_000),
        PriceQuote(source="CoinGecko", price=95_100.0, volume_24h=31_000_000_000),
        PriceQuote(source="Kraken", price=94_950.0, volume_24h=30_500_000_000),
    ])


@pytest.fixture
def social_snapshot():
    return SocialSnapshot(mention_count=1200, sentiment_score=65.0)


@pytest.fixture
def onchain_snapshot():
    return OnChainSnapshot(
        market_volume_24h=30_000_000_000,
        exchange_deposits=2_500_000_000,
        exchange_withdrawals=3_500_000_000,
        transaction_count=350_000,
    )


@pytest.fixture
def news_snapshot():
    return NewsSnapshot(articles=[
        NewsArticle(source="CoinDesk", title="Bitcoin rallies", sentiment="bullish", sentiment_score=70),
        NewsArticle(source="Decrypt", title="Bitcoin steady", sentiment="neutral", sentiment_score=60),
    ])
