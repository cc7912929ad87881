"""Veritas data contracts."""

from veritas.schemas.inputs import (
    MarketSnapshot,
    NewsArticle,
    NewsSnapshot,
    OnChainSnapshot,
    PriceQuote,
    SentimentDistribution,
    SentimentReading,
    SocialSnapshot,
)
from veritas.schemas.orchestration import OrchestrationResult, ProgressUpdate, StepStatus
from veritas.schemas.scoring import (
    ConfidenceLevel,
    ConfidenceScore,
    DataQualityReport,
    DomainBreakdown,
    Recommendation,
    ReliabilityGuidance,
)
from veritas.schemas.validation import (
    DOMAIN_ORDER,
    Alert,
    AlertSeverity,
    DataQualitySummary,
    Discrepancy,
    Domain,
    SourceReading,
    ValidationResult,
    clamp_percent,
)

__all__ = [
    "Alert",
    "AlertSeverity",
    "ConfidenceLevel",
    "ConfidenceScore",
    "DataQualityReport",
    "DataQualitySummary",
    "Discrepancy",
    "Domain",
    "DomainBreakdown",
    "DOMAIN_ORDER",
    "MarketSnapshot",
    "NewsArticle",
    "NewsSnapshot",
    "OnChainSnapshot",
    "OrchestrationResult",
    "PriceQuote",
    "ProgressUpdate",
    "Recommendation",
    "ReliabilityGuidance",
    "SentimentDistribution",
    "SentimentReading",
    "SocialSnapshot",
    "SourceReading",
    "StepStatus",
    "ValidationResult",
    "clamp_percent",
]
