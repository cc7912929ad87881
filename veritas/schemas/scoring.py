"""
Confidence Score & Data Quality Report Schemas.
"""

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from veritas.schemas.validation import Alert, Discrepancy


class ConfidenceLevel(StrEnum):
    EXCELLENT = "excellent"     # >= 90
    GOOD = "good"               # >= 80
    ACCEPTABLE = "acceptable"   # >= 70
    FAIR = "fair"               # >= 60
    POOR = "poor"


class DomainBreakdown(BaseModel):
    """Per-domain validator confidence (0 when the domain is absent)."""
    model_config = ConfigDict(frozen=True)

    market: float = 0.0
    social: float = 0.0
    on_chain: float = 0.0
    news: float = 0.0


class ConfidenceScore(BaseModel):
    """
    Composite trust score for one orchestration run.

    overall = round(0.4·agreement + 0.3·consistency + 0.2·cross_validation + 0.1·completeness)
    """
    model_config = ConfigDict(frozen=True)

    overall_score: int                      # 0-100
    data_source_agreement: float            # 40% weight
    logical_consistency: float              # 30% weight
    cross_validation_success: float         # 20% weight
    completeness: float                     # 10% weight
    breakdown: DomainBreakdown
    source_weights: dict[str, float] = Field(default_factory=dict)
    confidence_level: ConfidenceLevel
    explanation: str


# ── Data Quality Report ────────────────────────────────────────────────


class RecommendationPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationCategory(StrEnum):
    DATA_QUALITY = "data_quality"
    SOURCE_RELIABILITY = "source_reliability"
    ACTION_REQUIRED = "action_required"


class Recommendation(BaseModel):
    priority: RecommendationPriority
    category: RecommendationCategory
    title: str
    description: str
    action: str
    affected_sources: list[str] = Field(default_factory=list)
    related_alerts: list[str] = Field(default_factory=list)


class ReliabilityLevel(StrEnum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


class GuidanceConfidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


class ReliabilityGuidance(BaseModel):
    overall_reliability: ReliabilityLevel
    can_proceed_with_analysis: bool
    confidence_level: GuidanceConfidence
    warnings: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class DataQualityReport(BaseModel):
    """Run-level data quality summary aggregated across all domains."""
    overall_score: int = 0
    market_data_quality: float = 0.0
    social_data_quality: float = 0.0
    on_chain_data_quality: float = 0.0
    news_data_quality: float = 0.0
    passed_checks: list[str] = Field(default_factory=list)
    failed_checks: list[str] = Field(default_factory=list)

    alerts_by_type: dict[str, list[Alert]] = Field(default_factory=dict)
    alerts_by_severity: dict[str, list[Alert]] = Field(default_factory=dict)
    total_alerts: int = 0
    critical_alerts: int = 0

    discrepancies_by_metric: dict[str, list[Discrepancy]] = Field(default_factory=dict)
    total_discrepancies: int = 0
    exceeded_thresholds: int = 0

    recommendations: list[Recommendation] = Field(default_factory=list)
    reliability_guidance: Optional[ReliabilityGuidance] = None

    generated_at: Optional[datetime] = None
    validation_duration: Optional[float] = None    # milliseconds
