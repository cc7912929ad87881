"""
Validation Result Schemas.

Defines the per-domain contract every validator returns: alerts,
cross-source discrepancies, and a per-validator quality summary.
"""

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Enums ──────────────────────────────────────────────────────────────


class Domain(StrEnum):
    MARKET = "market"
    SOCIAL = "social"
    ONCHAIN = "onchain"
    NEWS = "news"

    @classmethod
    def parse(cls, value: "str | Domain") -> "Domain":
        """Accept enum members, canonical values, and camel/snake aliases."""
        if isinstance(value, Domain):
            return value
        key = str(value).strip().lower().replace("_", "").replace("-", "")
        return cls(key)


# Schedule order (and breakdown order). Completion order may differ.
DOMAIN_ORDER: tuple[Domain, ...] = (
    Domain.MARKET,
    Domain.SOCIAL,
    Domain.ONCHAIN,
    Domain.NEWS,
)


class AlertSeverity(StrEnum):
    WARNING = "warning"     # Sources disagree / data is suspect
    FATAL = "fatal"         # Data is self-contradictory


def clamp_percent(value: float) -> float:
    """Clamp a percentage-like value to [0, 100]."""
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(100.0, float(value)))


# ── Alerts & Discrepancies ─────────────────────────────────────────────


class Alert(BaseModel):
    """A data-quality alert raised by a validator or the alert generator."""
    model_config = ConfigDict(frozen=True)

    severity: AlertSeverity
    type: Domain
    message: str
    affected_sources: list[str] = Field(default_factory=list)
    recommendation: str = ""

    @property
    def is_fatal(self) -> bool:
        return self.severity == AlertSeverity.FATAL


class SourceReading(BaseModel):
    """One source's reading of a metric."""
    model_config = ConfigDict(frozen=True)

    name: str
    value: float


class Discrepancy(BaseModel):
    """
    Disagreement between sources reporting the same metric.

    variance is the percentage spread across sources, clamped to [0, 100].
    """
    model_config = ConfigDict(frozen=True)

    metric: str
    sources: list[SourceReading]
    variance: float
    threshold: float
    exceeded: bool

    @field_validator("variance")
    @classmethod
    def _clamp_variance(cls, v: float) -> float:
        return clamp_percent(v)

    @property
    def source_names(self) -> list[str]:
        return [s.name for s in self.sources]


# ── Validation Result ──────────────────────────────────────────────────


class DataQualitySummary(BaseModel):
    """Per-validator quality summary."""
    model_config = ConfigDict(frozen=True)

    overall_score: float = 0.0
    passed_checks: list[str] = Field(default_factory=list)
    failed_checks: list[str] = Field(default_factory=list)

    @field_validator("overall_score")
    @classmethod
    def _clamp_score(cls, v: float) -> float:
        return clamp_percent(v)


class ValidationResult(BaseModel):
    """
    Output of one validator run for one domain.

    Immutable: consumed once by the orchestrator, discarded after scoring.
    """
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    confidence: float               # 0-100
    alerts: list[Alert] = Field(default_factory=list)
    discrepancies: list[Discrepancy] = Field(default_factory=list)
    data_quality_summary: DataQualitySummary = Field(default_factory=DataQualitySummary)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return clamp_percent(v)

    @property
    def fatal_alerts(self) -> list[Alert]:
        return [a for a in self.alerts if a.is_fatal]

    @property
    def has_fatal_alert(self) -> bool:
        return any(a.is_fatal for a in self.alerts)

    @property
    def first_fatal_message(self) -> Optional[str]:
        fatal = self.fatal_alerts
        return fatal[0].message if fatal else None
