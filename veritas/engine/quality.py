"""
Data Quality Report.

Aggregates all domain results into one report: grouped alerts and
discrepancies, an overall quality score, prioritised recommendations, and
guidance on whether analysis can proceed.

Scoring:
    100 − 50 × fatal − 10 × warning − 5 × exceeded thresholds
        + 10 × (present domains / 4), clamped to [0, 100]
"""

import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Mapping, Optional

import structlog

from veritas.alerting.generator import dedupe_alerts
from veritas.schemas.scoring import (
    DataQualityReport,
    GuidanceConfidence,
    Recommendation,
    RecommendationCategory,
    RecommendationPriority,
    ReliabilityGuidance,
    ReliabilityLevel,
)
from veritas.schemas.validation import (
    DOMAIN_ORDER,
    Alert,
    AlertSeverity,
    Discrepancy,
    Domain,
    ValidationResult,
)

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

FATAL_PENALTY: int = 50
WARNING_PENALTY: int = 10
EXCEEDED_PENALTY: int = 5
COMPLETENESS_BONUS: float = 10.0
PROCEED_THRESHOLD: int = 60
LOW_QUALITY_THRESHOLD: int = 70

_PRIORITY_ORDER = {
    RecommendationPriority.HIGH: 0,
    RecommendationPriority.MEDIUM: 1,
    RecommendationPriority.LOW: 2,
}

_STRENGTHS = {
    "price_consistency": "Price data consistent across sources",
    "volume_consistency": "Volume data consistent across sources",
    "sentiment_consistency": "Social sentiment validated across multiple sources",
    "market_to_chain_consistency": "On-chain data aligns with market activity",
    "news_onchain_alignment": "News sentiment consistent with on-chain flows",
}

_WEAKNESSES = {
    "price_consistency": "Price discrepancies detected across sources",
    "volume_consistency": "Volume discrepancies detected across sources",
    "sentiment_consistency": "Social sentiment divergence detected",
    "market_to_chain_consistency": "On-chain data inconsistent with market activity",
    "social_impossibility_check": "Social data contains logical impossibilities",
    "news_onchain_alignment": "News sentiment diverges from on-chain flows",
}


def _unique(items) -> list:
    return list(dict.fromkeys(items))


def calculate_quality_score(
    alerts: list[Alert],
    discrepancies: list[Discrepancy],
    domains_present: int,
) -> int:
    fatal = sum(1 for a in alerts if a.severity == AlertSeverity.FATAL)
    warnings = sum(1 for a in alerts if a.severity == AlertSeverity.WARNING)
    exceeded = sum(1 for d in discrepancies if d.exceeded)
    score = (
        100
        - FATAL_PENALTY * fatal
        - WARNING_PENALTY * warnings
        - EXCEEDED_PENALTY * exceeded
        + COMPLETENESS_BONUS * domains_present / len(DOMAIN_ORDER)
    )
    return max(0, min(100, math.floor(score + 0.5)))


def generate_recommendations(
    alerts: list[Alert],
    discrepancies: list[Discrepancy],
    domains_present: int,
) -> list[Recommendation]:
    recs: list[Recommendation] = []

    fatal = [a for a in alerts if a.is_fatal]
    if fatal:
        recs.append(Recommendation(
            priority=RecommendationPriority.HIGH,
            category=RecommendationCategory.ACTION_REQUIRED,
            title="Critical Data Quality Issues Detected",
            description=f"{len(fatal)} fatal error(s) detected that prevent reliable analysis.",
            action="Review fatal errors immediately. Do not proceed with analysis until resolved.",
            affected_sources=_unique(s for a in fatal for s in a.affected_sources),
            related_alerts=[a.message for a in fatal],
        ))

    price = [d for d in discrepancies if d.metric == "price" and d.exceeded]
    if price:
        worst = max(d.variance for d in price)
        recs.append(Recommendation(
            priority=RecommendationPriority.HIGH if worst > 5 else RecommendationPriority.MEDIUM,
            category=RecommendationCategory.DATA_QUALITY,
            title="Price Discrepancy Detected",
            description=f"Price variance of {worst:.2f}% detected across data sources.",
            action="Weight sources by trust score and investigate source reliability.",
            affected_sources=_unique(n for d in price for n in d.source_names),
        ))

    volume = [d for d in discrepancies if d.metric.startswith("volume") and d.exceeded]
    if volume:
        recs.append(Recommendation(
            priority=RecommendationPriority.MEDIUM,
            category=RecommendationCategory.DATA_QUALITY,
            title="Volume Discrepancy Detected",
            description="Trading volume varies significantly across data sources.",
            action="Use a weighted average for final volume. Monitor for data source issues.",
            affected_sources=_unique(n for d in volume for n in d.source_names),
        ))

    for domain, title, fatal_action, warn_action in (
        (
            Domain.SOCIAL,
            "Social Sentiment Data Issues",
            "Social data discarded due to logical impossibility. Do not use for analysis.",
            "Review social sentiment data carefully. Cross-validation shows divergence.",
        ),
        (
            Domain.ONCHAIN,
            "On-Chain Data Inconsistency",
            "On-chain data unreliable. Cannot make accumulation/distribution claims.",
            "Use on-chain data with caution. Market-to-chain consistency is low.",
        ),
    ):
        domain_alerts = [a for a in alerts if a.type == domain]
        if not domain_alerts:
            continue
        has_fatal = any(a.is_fatal for a in domain_alerts)
        recs.append(Recommendation(
            priority=RecommendationPriority.HIGH if has_fatal else RecommendationPriority.MEDIUM,
            category=RecommendationCategory.DATA_QUALITY,
            title=title,
            description=f"{len(domain_alerts)} issue(s) detected in {domain.value} data.",
            action=fatal_action if has_fatal else warn_action,
            affected_sources=_unique(s for a in domain_alerts for s in a.affected_sources),
        ))

    if domains_present < 3:
        recs.append(Recommendation(
            priority=RecommendationPriority.MEDIUM,
            category=RecommendationCategory.DATA_QUALITY,
            title="Incomplete Data Coverage",
            description=f"Only {domains_present} out of {len(DOMAIN_ORDER)} data types available.",
            action="Analysis may be limited. Consider waiting for more data sources to become available.",
        ))

    flagged = _unique(s for a in alerts for s in a.affected_sources)
    if len(flagged) >= 2:
        recs.append(Recommendation(
            priority=RecommendationPriority.LOW,
            category=RecommendationCategory.SOURCE_RELIABILITY,
            title="Multiple Source Reliability Issues",
            description=f"{len(flagged)} data sources showing reliability issues.",
            action="Monitor source reliability scores. Consider alternative data sources if issues persist.",
            affected_sources=flagged,
        ))

    return sorted(recs, key=lambda r: _PRIORITY_ORDER[r.priority])


def generate_reliability_guidance(
    overall_score: int,
    alerts: list[Alert],
    passed_checks: list[str],
    failed_checks: list[str],
    domains_present: int,
) -> ReliabilityGuidance:
    fatal = sum(1 for a in alerts if a.is_fatal)
    warnings = sum(1 for a in alerts if a.severity == AlertSeverity.WARNING)

    if overall_score >= 90:
        reliability = ReliabilityLevel.EXCELLENT
    elif overall_score >= 75:
        reliability = ReliabilityLevel.GOOD
    elif overall_score >= 60:
        reliability = ReliabilityLevel.FAIR
    elif overall_score >= 40:
        reliability = ReliabilityLevel.POOR
    else:
        reliability = ReliabilityLevel.CRITICAL

    if overall_score >= 85 and fatal == 0:
        confidence = GuidanceConfidence.HIGH
    elif overall_score >= 70 and fatal == 0:
        confidence = GuidanceConfidence.MEDIUM
    elif overall_score >= 50:
        confidence = GuidanceConfidence.LOW
    else:
        confidence = GuidanceConfidence.VERY_LOW

    warning_lines: list[str] = []
    if fatal:
        warning_lines.append(f"{fatal} fatal error(s) detected - analysis reliability severely compromised")
    if warnings:
        warning_lines.append(f"{warnings} warning(s) detected - data quality issues present")
    if overall_score < LOW_QUALITY_THRESHOLD:
        warning_lines.append(f"Overall data quality below recommended threshold ({LOW_QUALITY_THRESHOLD}%)")

    strengths = [text for check, text in _STRENGTHS.items() if check in passed_checks]
    if domains_present == len(DOMAIN_ORDER):
        strengths.append("Complete data coverage across all data types")

    weaknesses = [text for check, text in _WEAKNESSES.items() if check in failed_checks]
    if domains_present < 3:
        weaknesses.append("Incomplete data coverage - missing data types")

    return ReliabilityGuidance(
        overall_reliability=reliability,
        can_proceed_with_analysis=fatal == 0 and overall_score >= PROCEED_THRESHOLD,
        confidence_level=confidence,
        warnings=warning_lines,
        strengths=strengths,
        weaknesses=weaknesses,
    )


def generate_data_quality_summary(
    results_by_domain: Mapping[Domain, Optional[ValidationResult]],
    validation_duration: Optional[float] = None,
) -> DataQualityReport:
    """
    Build the run-level data quality report.

    Args:
        results_by_domain: Domain → ValidationResult; None entries are absent
        validation_duration: Run duration in milliseconds, if known
    """
    present = {d: results_by_domain[d] for d in DOMAIN_ORDER if results_by_domain.get(d) is not None}

    alerts = dedupe_alerts(a for r in present.values() for a in r.alerts)
    discrepancies = [d for r in present.values() for d in r.discrepancies]
    passed = _unique(c for r in present.values() for c in r.data_quality_summary.passed_checks)
    failed = _unique(c for r in present.values() for c in r.data_quality_summary.failed_checks)

    by_type: dict[str, list[Alert]] = defaultdict(list)
    by_severity: dict[str, list[Alert]] = defaultdict(list)
    for alert in alerts:
        by_type[alert.type.value].append(alert)
        by_severity[alert.severity.value].append(alert)

    by_metric: dict[str, list[Discrepancy]] = defaultdict(list)
    for disc in discrepancies:
        by_metric[disc.metric].append(disc)

    score = calculate_quality_score(alerts, discrepancies, len(present))

    def quality(domain: Domain) -> float:
        result = present.get(domain)
        return result.data_quality_summary.overall_score if result is not None else 0.0

    report = DataQualityReport(
        overall_score=score,
        market_data_quality=quality(Domain.MARKET),
        social_data_quality=quality(Domain.SOCIAL),
        on_chain_data_quality=quality(Domain.ONCHAIN),
        news_data_quality=quality(Domain.NEWS),
        passed_checks=passed,
        failed_checks=failed,
        alerts_by_type=dict(by_type),
        alerts_by_severity=dict(by_severity),
        total_alerts=len(alerts),
        critical_alerts=len(by_severity.get(AlertSeverity.FATAL.value, [])),
        discrepancies_by_metric=dict(by_metric),
        total_discrepancies=len(discrepancies),
        exceeded_thresholds=sum(1 for d in discrepancies if d.exceeded),
        recommendations=generate_recommendations(alerts, discrepancies, len(present)),
        reliability_guidance=generate_reliability_guidance(score, alerts, passed, failed, len(present)),
        generated_at=datetime.now(timezone.utc),
        validation_duration=validation_duration,
    )
    logger.debug(
        "data_quality_report_generated",
        score=score,
        alerts=len(alerts),
        discrepancies=len(discrepancies),
    )
    return report
