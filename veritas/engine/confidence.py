"""
Veritas Confidence Score Calculator.

Folds per-domain validation results into one bounded, deterministic trust
score. Pure and synchronous; never raises.

Components (default weights):
    data_source_agreement     40%   spread of per-domain confidences
    logical_consistency       30%   100 − 50 × fatal alerts
    cross_validation_success  20%   passed / (passed + failed) checks
    completeness              10%   25 per present domain

    overall = round(Σ weight_i × component_i), clamped to [0, 100]
"""

import math
import statistics
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional

import structlog

from veritas.engine.reliability import ReliabilityTracker
from veritas.exceptions import ConfigurationError
from veritas.schemas.scoring import ConfidenceLevel, ConfidenceScore, DomainBreakdown
from veritas.schemas.validation import DOMAIN_ORDER, Domain, ValidationResult, clamp_percent

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

FATAL_PENALTY: float = 50.0
COMPLETENESS_PER_DOMAIN: float = 25.0
VARIANCE_DIVISOR: float = 25.0
WEIGHT_TOLERANCE: float = 1e-9

LEVEL_THRESHOLDS: tuple[tuple[int, ConfidenceLevel], ...] = (
    (90, ConfidenceLevel.EXCELLENT),
    (80, ConfidenceLevel.GOOD),
    (70, ConfidenceLevel.ACCEPTABLE),
    (60, ConfidenceLevel.FAIR),
)


@dataclass(frozen=True)
class ScoreWeights:
    """Component weights. Must sum to 1.0."""
    agreement: float = 0.4
    consistency: float = 0.3
    cross_validation: float = 0.2
    completeness: float = 0.1

    def __post_init__(self):
        values = (self.agreement, self.consistency, self.cross_validation, self.completeness)
        if any(v < 0 or not math.isfinite(v) for v in values):
            raise ConfigurationError(f"Score weights must be finite and non-negative: {values}")
        total = sum(values)
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ConfigurationError(f"Score weights must sum to 1.0, got {total:.6f}")


DEFAULT_WEIGHTS = ScoreWeights()


# ── Components ────────────────────────────────────────────────────────────


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def data_source_agreement(confidences: list[float]) -> float:
    """
    Agreement between domain confidences.

    0 with no domains, 100 with one, otherwise
    max(0, 100 − population_variance / 25).
    """
    if not confidences:
        return 0.0
    if len(confidences) == 1:
        return 100.0
    variance = statistics.pvariance(confidences)
    return clamp_percent(100.0 - variance / VARIANCE_DIVISOR)


def logical_consistency(fatal_count: int) -> float:
    return clamp_percent(100.0 - FATAL_PENALTY * fatal_count)


def cross_validation_success(passed: int, failed: int, domains_present: int) -> float:
    if domains_present == 0:
        return 0.0
    total = passed + failed
    if total == 0:
        return 100.0
    return clamp_percent(passed / total * 100.0)


def completeness(domains_present: int) -> float:
    return clamp_percent(COMPLETENESS_PER_DOMAIN * domains_present)


# ── Level & Guidance ──────────────────────────────────────────────────────


def get_confidence_level(score: float) -> ConfidenceLevel:
    for floor, level in LEVEL_THRESHOLDS:
        if score >= floor:
            return level
    return ConfidenceLevel.POOR


def is_sufficient_confidence(score: ConfidenceScore | float, minimum: float = 60) -> bool:
    value = score.overall_score if isinstance(score, ConfidenceScore) else score
    return value >= minimum


def get_confidence_recommendation(score: ConfidenceScore) -> str:
    overall = score.overall_score
    if overall >= 90:
        return "Data quality is excellent. Analysis results are highly reliable."
    if overall >= 80:
        return "Data quality is good. Analysis results are reliable with minor caveats."
    if overall >= 70:
        return "Data quality is acceptable. Review alerts before making decisions."
    if overall >= 60:
        return "Data quality is fair. Use analysis results with caution and verify key findings."
    return "Data quality is poor. Analysis results may be unreliable. Consider waiting for better data."


def _explain(
    overall: int,
    level: ConfidenceLevel,
    agreement: float,
    fatal_count: int,
    passed: int,
    failed: int,
    domains_present: int,
) -> str:
    parts = [f"Overall confidence is {level.value} ({overall}/100)."]

    if domains_present == 0:
        parts.append("No validation data was available.")
        return " ".join(parts)

    if agreement >= 80:
        parts.append("Data sources show strong agreement.")
    elif agreement >= 60:
        parts.append("Data sources show moderate agreement with some discrepancies.")
    else:
        parts.append("Data sources show significant disagreement.")

    if fatal_count == 0:
        parts.append("No logical inconsistencies detected.")
    else:
        parts.append(f"{fatal_count} critical data inconsistenc{'y' if fatal_count == 1 else 'ies'} detected.")

    total = passed + failed
    if total:
        parts.append(f"{passed} of {total} validation checks passed.")

    if domains_present < len(DOMAIN_ORDER):
        parts.append(f"Data from {domains_present} of {len(DOMAIN_ORDER)} sources available.")
    else:
        parts.append("All data sources available.")
    return " ".join(parts)


# ── Calculator ────────────────────────────────────────────────────────────


def _source_weights(
    results: list[ValidationResult],
    tracker: Optional[ReliabilityTracker],
) -> dict[str, float]:
    if tracker is None:
        return {}
    weights: dict[str, float] = {}
    for result in results:
        for disc in result.discrepancies:
            for name in disc.source_names:
                if name in weights:
                    continue
                try:
                    weight = float(tracker.weight_for(name))
                except Exception as exc:
                    logger.warning("source_weight_lookup_failed", source=name, error=str(exc))
                    continue
                if math.isnan(weight):
                    continue
                weights[name] = max(0.0, min(1.0, weight))
    return weights


def _normalise(results_by_domain: Mapping[object, Optional[ValidationResult]]) -> dict[Domain, ValidationResult]:
    out: dict[Domain, ValidationResult] = {}
    for key, result in results_by_domain.items():
        if result is None:
            continue
        try:
            out[Domain.parse(key)] = result
        except ValueError:
            logger.warning("unknown_domain_ignored", domain=str(key))
    return out


def calculate_veritas_confidence_score(
    results_by_domain: Mapping[object, Optional[ValidationResult]],
    reliability_tracker: Optional[ReliabilityTracker] = None,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> ConfidenceScore:
    """
    Compute the composite confidence score.

    Args:
        results_by_domain: Domain (or alias) → ValidationResult; None entries are absent
        reliability_tracker: Optional source weighting for discrepancy sources
        weights: Component weights

    Returns:
        ConfidenceScore with every component in [0, 100]
    """
    results = _normalise(results_by_domain or {})
    present = [results[d] for d in DOMAIN_ORDER if d in results]

    confidences = [r.confidence for r in present]
    fatal_count = sum(len(r.fatal_alerts) for r in present)
    passed = sum(len(r.data_quality_summary.passed_checks) for r in present)
    failed = sum(len(r.data_quality_summary.failed_checks) for r in present)

    agreement = data_source_agreement(confidences)
    consistency = logical_consistency(fatal_count)
    cross = cross_validation_success(passed, failed, len(present))
    complete = completeness(len(present))

    weighted = (
        weights.agreement * agreement
        + weights.consistency * consistency
        + weights.cross_validation * cross
        + weights.completeness * complete
    )
    overall = max(0, min(100, _round_half_up(weighted)))
    level = get_confidence_level(overall)

    def conf(domain: Domain) -> float:
        result = results.get(domain)
        return result.confidence if result is not None else 0.0

    score = ConfidenceScore(
        overall_score=overall,
        data_source_agreement=agreement,
        logical_consistency=consistency,
        cross_validation_success=cross,
        completeness=complete,
        breakdown=DomainBreakdown(
            market=conf(Domain.MARKET),
            social=conf(Domain.SOCIAL),
            on_chain=conf(Domain.ONCHAIN),
            news=conf(Domain.NEWS),
        ),
        source_weights=_source_weights(present, reliability_tracker),
        confidence_level=level,
        explanation=_explain(overall, level, agreement, fatal_count, passed, failed, len(present)),
    )
    logger.debug(
        "confidence_score_calculated",
        overall=overall,
        agreement=round(agreement, 2),
        consistency=consistency,
        cross_validation=round(cross, 2),
        completeness=complete,
    )
    return score
