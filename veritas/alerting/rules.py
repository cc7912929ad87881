"""
Operational Alert Rules — evaluated against aggregated monitoring metrics.

Pipeline:
1. Build the rule set from an AlertRuleConfig (thresholds)
2. Extract each rule's metric from AggregatedMetrics
3. Evaluate the rule predicate (threshold + minimum sample size)
4. Return one AlertEvaluation per rule, triggered or not

Pure: no state, no I/O. Dispatching triggered rules is the caller's job.
"""

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Optional

import structlog

from veritas.config import Settings, settings
from veritas.exceptions import ConfigurationError
from veritas.monitoring.metrics import AggregatedMetrics

logger = structlog.get_logger(__name__)


class RuleSeverity(StrEnum):
    WARNING = "warning"
    CRITICAL = "critical"


# ── Configuration ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AlertRuleConfig:
    """Thresholds for the operational alert rules."""
    error_rate_threshold: float = 50.0          # success rate (%) below which we alert
    min_samples: int = 5
    slow_validation_ms: float = 15000.0
    min_average_confidence: float = 60.0
    fatal_alert_rate_threshold: float = 0.5     # fatal alerts per validation

    def __post_init__(self):
        if not 0 <= self.error_rate_threshold <= 100:
            raise ConfigurationError(
                f"error_rate_threshold must be in [0, 100], got {self.error_rate_threshold}"
            )
        if self.min_samples < 0:
            raise ConfigurationError(f"min_samples must be >= 0, got {self.min_samples}")
        if not math.isfinite(self.slow_validation_ms) or self.slow_validation_ms <= 0:
            raise ConfigurationError(
                f"slow_validation_ms must be positive, got {self.slow_validation_ms}"
            )
        if not 0 <= self.min_average_confidence <= 100:
            raise ConfigurationError(
                f"min_average_confidence must be in [0, 100], got {self.min_average_confidence}"
            )
        if self.fatal_alert_rate_threshold < 0:
            raise ConfigurationError(
                f"fatal_alert_rate_threshold must be >= 0, got {self.fatal_alert_rate_threshold}"
            )

    @classmethod
    def from_settings(cls, current: Optional[Settings] = None) -> "AlertRuleConfig":
        s = current or settings
        return cls(
            error_rate_threshold=s.alert_error_rate_threshold,
            min_samples=s.alert_min_samples,
            slow_validation_ms=s.alert_slow_validation_ms,
            min_average_confidence=s.alert_min_average_confidence,
            fatal_alert_rate_threshold=s.alert_fatal_rate_threshold,
        )


DEFAULT_ALERT_CONFIG = AlertRuleConfig()


# ── Rules ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AlertRule:
    id: str
    description: str
    predicate: Callable[[AggregatedMetrics], bool]
    metric: Callable[[AggregatedMetrics], Optional[float]]
    threshold_value: float
    severity: RuleSeverity = RuleSeverity.WARNING


@dataclass(frozen=True)
class AlertEvaluation:
    rule: AlertRule
    triggered: bool
    actual_value: Optional[float]
    message: str


def _fatal_rate(m: AggregatedMetrics) -> float:
    return m.fatal_alerts / m.total_validations if m.total_validations else 0.0


def build_alert_rules(config: AlertRuleConfig = DEFAULT_ALERT_CONFIG) -> list[AlertRule]:
    def enough(m: AggregatedMetrics) -> bool:
        return m.total_validations >= config.min_samples

    return [
        AlertRule(
            id="high-error-rate",
            description="Validation success rate dropped below threshold",
            predicate=lambda m: enough(m) and m.success_rate < config.error_rate_threshold,
            metric=lambda m: m.success_rate,
            threshold_value=config.error_rate_threshold,
            severity=RuleSeverity.CRITICAL,
        ),
        AlertRule(
            id="slow-validation",
            description="Average validation duration exceeds threshold",
            predicate=lambda m: m.average_duration > config.slow_validation_ms,
            metric=lambda m: m.average_duration,
            threshold_value=config.slow_validation_ms,
        ),
        AlertRule(
            id="low-average-confidence",
            description="Average confidence score below floor",
            predicate=lambda m: (
                enough(m)
                and m.average_confidence_score is not None
                and m.average_confidence_score < config.min_average_confidence
            ),
            metric=lambda m: m.average_confidence_score,
            threshold_value=config.min_average_confidence,
        ),
        AlertRule(
            id="fatal-alert-spike",
            description="Fatal data alerts per validation above threshold",
            predicate=lambda m: enough(m) and _fatal_rate(m) > config.fatal_alert_rate_threshold,
            metric=_fatal_rate,
            threshold_value=config.fatal_alert_rate_threshold,
            severity=RuleSeverity.CRITICAL,
        ),
    ]


def _message(rule: AlertRule, triggered: bool, value: Optional[float]) -> str:
    state = "TRIGGERED" if triggered else "ok"
    actual = "n/a" if value is None else f"{value:.2f}"
    return f"[{rule.id}] {state}: {rule.description} (actual {actual}, threshold {rule.threshold_value:.2f})"


def evaluate_alert_rules(
    metrics: AggregatedMetrics,
    config: AlertRuleConfig = DEFAULT_ALERT_CONFIG,
) -> list[AlertEvaluation]:
    """
    Evaluate every operational rule against aggregated metrics.

    Returns:
        One AlertEvaluation per rule, in rule order
    """
    evaluations: list[AlertEvaluation] = []
    for rule in build_alert_rules(config):
        raw = rule.metric(metrics)
        value = None if raw is None else float(raw)
        triggered = bool(rule.predicate(metrics))
        evaluations.append(AlertEvaluation(
            rule=rule,
            triggered=triggered,
            actual_value=value,
            message=_message(rule, triggered, value),
        ))
        if triggered:
            logger.warning(
                "operational_alert_triggered",
                rule_id=rule.id,
                actual_value=value,
                threshold=rule.threshold_value,
                severity=rule.severity.value,
            )
    return evaluations


def triggered_rules(evaluations: list[AlertEvaluation]) -> list[AlertEvaluation]:
    return [e for e in evaluations if e.triggered]
