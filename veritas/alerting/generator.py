"""
Alert Generator — run-level alerts from validator results.

1. Validator alerts pass through unchanged (fatal impossibility alerts
   are raised inside validators and surface here as-is).
2. Every exceeded discrepancy adds one warning naming the metric and the
   disagreeing sources.
3. Output is deduplicated on (type, severity, message), fatal first.
"""

from typing import Iterable, Mapping, Optional

import structlog

from veritas.schemas.validation import (
    DOMAIN_ORDER,
    Alert,
    AlertSeverity,
    Discrepancy,
    Domain,
    ValidationResult,
)
from veritas.validators.discrepancy import suggest_action

logger = structlog.get_logger(__name__)

_SEVERITY_RANK = {AlertSeverity.FATAL: 0, AlertSeverity.WARNING: 1}


def discrepancy_alert(domain: Domain, discrepancy: Discrepancy) -> Alert:
    names = ", ".join(discrepancy.source_names)
    return Alert(
        severity=AlertSeverity.WARNING,
        type=domain,
        message=(
            f"{discrepancy.metric} discrepancy across {names}: "
            f"{discrepancy.variance:.2f}% exceeds {discrepancy.threshold}% threshold"
        ),
        affected_sources=discrepancy.source_names,
        recommendation=suggest_action(discrepancy),
    )


def dedupe_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Drop repeats of (type, severity, message) and order fatal first (stable)."""
    seen: set[tuple[str, str, str]] = set()
    unique: list[Alert] = []
    for alert in alerts:
        key = (alert.type.value, alert.severity.value, alert.message)
        if key in seen:
            continue
        seen.add(key)
        unique.append(alert)
    return sorted(unique, key=lambda a: _SEVERITY_RANK[a.severity])


def generate_alerts(results_by_domain: Mapping[Domain, Optional[ValidationResult]]) -> list[Alert]:
    """Collect validator alerts plus one warning per exceeded discrepancy."""
    collected: list[Alert] = []
    ordered = [d for d in DOMAIN_ORDER if results_by_domain.get(d) is not None]
    for domain in ordered:
        result = results_by_domain[domain]
        collected.extend(result.alerts)
        for disc in result.discrepancies:
            if disc.exceeded:
                collected.append(discrepancy_alert(domain, disc))

    alerts = dedupe_alerts(collected)
    if alerts:
        logger.debug(
            "alerts_generated",
            total=len(alerts),
            fatal=sum(1 for a in alerts if a.is_fatal),
        )
    return alerts
