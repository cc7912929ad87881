"""
Social Sentiment Validator.

Catches the impossible case (sentiment without any mentions) and
cross-checks the primary aggregator's sentiment against other sources.
"""

from typing import Any

import structlog

from veritas.schemas.inputs import SocialSnapshot
from veritas.schemas.validation import Alert, AlertSeverity, Domain, ValidationResult
from veritas.validators.base import Validator, build_result
from veritas.validators.discrepancy import DiscrepancyDetector, suggest_action

logger = structlog.get_logger(__name__)

WARNING_PENALTY: float = 15.0


class SocialSentimentValidator(Validator):
    domain = Domain.SOCIAL

    def __init__(self, detector: DiscrepancyDetector | None = None):
        self.detector = detector or DiscrepancyDetector()

    async def validate(self, symbol: str, data: Any) -> ValidationResult:
        snapshot = data if isinstance(data, SocialSnapshot) else SocialSnapshot.model_validate(data)
        return self.check(symbol, snapshot)

    def check(self, symbol: str, snapshot: SocialSnapshot) -> ValidationResult:
        alerts: list[Alert] = []
        passed: list[str] = []
        failed: list[str] = []

        # ── 1. Impossibility: sentiment without mentions ─────────────
        has_distribution = snapshot.distribution is not None and snapshot.distribution.total > 0
        if snapshot.mention_count == 0 and (snapshot.sentiment_score != 0 or has_distribution):
            logger.warning(
                "social_impossible_sentiment",
                symbol=symbol,
                sentiment=snapshot.sentiment_score,
            )
            return build_result(
                confidence=0.0,
                alerts=[Alert(
                    severity=AlertSeverity.FATAL,
                    type=Domain.SOCIAL,
                    message="Fatal Social Data Error: Zero mentions but non-zero sentiment detected",
                    affected_sources=[snapshot.source],
                    recommendation="Discarding social data - cannot have sentiment without mentions",
                )],
                failed_checks=["social_impossibility_check"],
            )
        passed.append("social_impossibility_check")

        # ── 2. Cross-source sentiment ─────────────────────────────────
        discrepancies = []
        if snapshot.cross_readings:
            readings = [(snapshot.source, snapshot.sentiment_score)]
            readings += [(r.source, r.score) for r in snapshot.cross_readings]
            disc = self.detector.detect("sentiment", readings)
            if disc is not None:
                discrepancies.append(disc)
                if disc.exceeded:
                    others = ", ".join(
                        f"{r.source} ({r.score:.0f})" for r in snapshot.cross_readings
                    )
                    alerts.append(Alert(
                        severity=AlertSeverity.WARNING,
                        type=Domain.SOCIAL,
                        message=(
                            f"Social Sentiment Mismatch: {snapshot.source} "
                            f"({snapshot.sentiment_score:.0f}) vs {others}"
                        ),
                        affected_sources=disc.source_names,
                        recommendation=suggest_action(disc),
                    ))
                    failed.append("sentiment_consistency")
                else:
                    passed.append("sentiment_consistency")
        else:
            passed.append("sentiment_single_source")

        total = len(passed) + len(failed)
        pass_rate = len(passed) / total * 100.0 if total else 100.0
        warnings = sum(1 for a in alerts if a.severity == AlertSeverity.WARNING)
        quality = pass_rate - WARNING_PENALTY * warnings

        return build_result(
            confidence=quality,
            alerts=alerts,
            discrepancies=discrepancies,
            passed_checks=passed,
            failed_checks=failed,
        )
