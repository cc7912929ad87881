"""Run-level alert generation and operational alert rules."""

from veritas.alerting.generator import dedupe_alerts, discrepancy_alert, generate_alerts
from veritas.alerting.rules import (
    DEFAULT_ALERT_CONFIG,
    AlertEvaluation,
    AlertRule,
    AlertRuleConfig,
    RuleSeverity,
    build_alert_rules,
    evaluate_alert_rules,
    triggered_rules,
)

__all__ = [
    "AlertEvaluation",
    "AlertRule",
    "AlertRuleConfig",
    "DEFAULT_ALERT_CONFIG",
    "RuleSeverity",
    "build_alert_rules",
    "dedupe_alerts",
    "discrepancy_alert",
    "evaluate_alert_rules",
    "generate_alerts",
    "triggered_rules",
]
