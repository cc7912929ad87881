"""Orchestration, confidence scoring, data quality and source reliability."""

from veritas.engine.confidence import (
    DEFAULT_WEIGHTS,
    ScoreWeights,
    calculate_veritas_confidence_score,
    get_confidence_level,
    get_confidence_recommendation,
    is_sufficient_confidence,
)
from veritas.engine.orchestrator import (
    CancellationToken,
    OrchestratorConfig,
    StepOutcome,
    ValidationOrchestrator,
    get_status_message,
    is_sufficient_for_analysis,
    orchestrate_validation,
)
from veritas.engine.quality import generate_data_quality_summary
from veritas.engine.reliability import ReliabilityTracker, SourceReliabilityTracker

__all__ = [
    "CancellationToken",
    "DEFAULT_WEIGHTS",
    "OrchestratorConfig",
    "ReliabilityTracker",
    "ScoreWeights",
    "SourceReliabilityTracker",
    "StepOutcome",
    "ValidationOrchestrator",
    "calculate_veritas_confidence_score",
    "generate_data_quality_summary",
    "get_confidence_level",
    "get_confidence_recommendation",
    "get_status_message",
    "is_sufficient_confidence",
    "is_sufficient_for_analysis",
    "orchestrate_validation",
]
