"""
Validator contract.

A validator receives already-fetched data for one domain and returns a
ValidationResult. Known failure modes (missing data, impossible data) are
expressed as alerts; anything else may raise and is converted into a failed
step by the orchestrator.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from veritas.schemas.validation import (
    Alert,
    DataQualitySummary,
    Discrepancy,
    Domain,
    ValidationResult,
)


class Validator(ABC):
    """Async validator for a single data domain. Must not mutate shared state."""

    domain: Domain

    @abstractmethod
    async def validate(self, symbol: str, data: Any) -> ValidationResult:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(domain={self.domain.value})"


def build_result(
    confidence: float,
    alerts: Optional[list[Alert]] = None,
    discrepancies: Optional[list[Discrepancy]] = None,
    passed_checks: Optional[list[str]] = None,
    failed_checks: Optional[list[str]] = None,
    quality_score: Optional[float] = None,
) -> ValidationResult:
    """
    Assemble a ValidationResult.

    is_valid is derived (no fatal alerts). quality_score defaults to the
    confidence. Both are clamped to [0, 100] by the schema.
    """
    alerts = alerts or []
    return ValidationResult(
        is_valid=not any(a.is_fatal for a in alerts),
        confidence=confidence,
        alerts=alerts,
        discrepancies=discrepancies or [],
        data_quality_summary=DataQualitySummary(
            overall_score=confidence if quality_score is None else quality_score,
            passed_checks=passed_checks or [],
            failed_checks=failed_checks or [],
        ),
    )
