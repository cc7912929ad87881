"""
On-Chain Validator.

Compares exchange flows with reported market volume. Exchange flows
normally sit at 10-30% of 24h volume; anything far outside that band
suggests incomplete on-chain coverage.

Consistency banding on ratio = flows / volume:
    0.10 – 0.30  → 100
    0.05 – 0.10  → 80
    0.30 – 0.50  → 80
    < 0.05       → ratio × 1000
    > 0.50       → 100 − (ratio − 0.5) × 50
"""

from typing import Any

import structlog

from veritas.schemas.inputs import OnChainSnapshot
from veritas.schemas.validation import (
    Alert,
    AlertSeverity,
    Discrepancy,
    Domain,
    SourceReading,
    ValidationResult,
    clamp_percent,
)
from veritas.validators.base import Validator, build_result

logger = structlog.get_logger(__name__)

HIGH_VOLUME_USD: float = 20_000_000_000
CONSISTENCY_FLOOR: float = 50.0
NO_VOLUME_CONFIDENCE: float = 50.0


def consistency_score(market_volume: float, total_flows: float) -> float:
    """Market-to-chain consistency in [0, 100]. 50 (neutral) without volume."""
    if market_volume <= 0:
        return NO_VOLUME_CONFIDENCE
    ratio = total_flows / market_volume
    if 0.1 <= ratio <= 0.3:
        score = 100.0
    elif 0.05 <= ratio < 0.1 or 0.3 < ratio <= 0.5:
        score = 80.0
    elif ratio < 0.05:
        score = ratio * 1000.0
    else:
        score = 100.0 - (ratio - 0.5) * 50.0
    return clamp_percent(score)


def flow_sentiment(net_flow: float) -> str:
    """Net withdrawals are accumulation (bullish), net deposits distribution."""
    if net_flow > 5:
        return "bullish"
    if net_flow < -5:
        return "bearish"
    return "neutral"


class OnChainValidator(Validator):
    domain = Domain.ONCHAIN

    async def validate(self, symbol: str, data: Any) -> ValidationResult:
        snapshot = data if isinstance(data, OnChainSnapshot) else OnChainSnapshot.model_validate(data)
        return self.check(symbol, snapshot)

    def check(self, symbol: str, snapshot: OnChainSnapshot) -> ValidationResult:
        flows = snapshot.total_flows
        volume = snapshot.market_volume_24h

        if volume <= 0:
            return build_result(
                confidence=NO_VOLUME_CONFIDENCE,
                alerts=[Alert(
                    severity=AlertSeverity.WARNING,
                    type=Domain.ONCHAIN,
                    message="Market volume data unavailable - cannot validate on-chain consistency",
                    affected_sources=list(snapshot.sources),
                    recommendation="Partial validation only - some checks could not be performed",
                )],
                failed_checks=["market_to_chain_consistency"],
            )

        # ── 1. Impossibility checks ───────────────────────────────────
        fatal: list[Alert] = []
        if volume > HIGH_VOLUME_USD and flows == 0:
            fatal.append(Alert(
                severity=AlertSeverity.FATAL,
                type=Domain.ONCHAIN,
                message="Fatal On-Chain Data Error: Market volume disconnected from on-chain flows",
                affected_sources=[*snapshot.sources, "Market Data"],
                recommendation=(
                    "On-chain flow data is unreliable or incomplete - "
                    "cannot analyze accumulation/distribution"
                ),
            ))
        if snapshot.transaction_count == 0 and flows > 0:
            fatal.append(Alert(
                severity=AlertSeverity.FATAL,
                type=Domain.ONCHAIN,
                message="Fatal On-Chain Data Error: Exchange flows reported with zero transactions",
                affected_sources=list(snapshot.sources),
                recommendation="Discarding on-chain data - flows require transactions",
            ))
        if fatal:
            logger.warning("onchain_impossible_data", symbol=symbol, volume=volume, flows=flows)
            return build_result(
                confidence=0.0,
                alerts=fatal,
                failed_checks=["market_to_chain_consistency", "impossibility_check"],
            )

        # ── 2. Market-to-chain consistency ────────────────────────────
        score = consistency_score(volume, flows)
        consistent = score >= CONSISTENCY_FLOOR
        alerts: list[Alert] = []
        discrepancies: list[Discrepancy] = []
        if not consistent:
            alerts.append(Alert(
                severity=AlertSeverity.WARNING,
                type=Domain.ONCHAIN,
                message=f"Low market-to-chain consistency: {score:.0f}%",
                affected_sources=[*snapshot.sources, "Market Data"],
                recommendation=(
                    "On-chain data may be incomplete - treat the "
                    f"{flow_sentiment(snapshot.net_flow)} flow signal with caution"
                ),
            ))
            discrepancies.append(Discrepancy(
                metric="market_to_chain_consistency",
                sources=[
                    SourceReading(name="Market Volume", value=volume),
                    SourceReading(name="Exchange Flows", value=flows),
                ],
                variance=100.0 - score,
                threshold=CONSISTENCY_FLOOR,
                exceeded=True,
            ))

        logger.debug(
            "onchain_validation_complete",
            symbol=symbol,
            consistency=round(score, 1),
        )
        return build_result(
            confidence=score,
            alerts=alerts,
            discrepancies=discrepancies,
            passed_checks=["impossibility_check"] + (["market_to_chain_consistency"] if consistent else []),
            failed_checks=[] if consistent else ["market_to_chain_consistency"],
        )
