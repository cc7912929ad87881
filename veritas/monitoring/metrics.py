"""
Validation Monitoring — rolling operational-health metrics.

A bounded, time-windowed store of per-run records, safe to share across
threads and event loops. The module-level ``veritas_monitoring`` instance is
the process-wide surface; tests build isolated ``ValidationMonitor`` objects.
"""

import threading
from collections import Counter, deque
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from pydantic import BaseModel, Field, field_validator

from veritas.config import settings
from veritas.exceptions import ConfigurationError
from veritas.schemas.orchestration import OrchestrationResult

logger = structlog.get_logger(__name__)

DEFAULT_MAX_RECORDS: int = 1000
DEFAULT_WINDOW: timedelta = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValidationMetricRecord(BaseModel):
    """One validation run as seen by monitoring."""
    timestamp: datetime = Field(default_factory=_utcnow)
    symbol: str
    validation_type: str = "orchestration"
    success: bool
    duration: float = 0.0                       # milliseconds
    confidence_score: Optional[float] = None
    alert_count: int = 0
    fatal_alert_count: int = 0
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class AggregatedMetrics(BaseModel):
    """Window aggregate. Every field has a default so partial metrics can be built."""
    total_validations: int = 0
    successful_validations: int = 0
    failed_validations: int = 0
    success_rate: float = 100.0                 # percent
    average_duration: float = 0.0               # milliseconds
    average_confidence_score: Optional[float] = None   # None when no record is scored
    total_alerts: int = 0
    fatal_alerts: int = 0
    error_breakdown: dict[str, int] = Field(default_factory=dict)
    symbols_validated: list[str] = Field(default_factory=list)


class ValidationMonitor:
    """
    Thread-safe bounded metric store.

    Records older than ``window`` are evicted on every write and read; the
    oldest records are dropped once ``max_records`` is reached.
    """

    def __init__(
        self,
        max_records: int = DEFAULT_MAX_RECORDS,
        window: timedelta = DEFAULT_WINDOW,
    ):
        if max_records <= 0:
            raise ConfigurationError(f"max_records must be positive, got {max_records}")
        if window <= timedelta(0):
            raise ConfigurationError(f"window must be positive, got {window}")
        self.max_records = max_records
        self.window = window
        self._records: deque[ValidationMetricRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls) -> "ValidationMonitor":
        return cls(
            max_records=settings.monitor_max_records,
            window=timedelta(hours=settings.monitor_window_hours),
        )

    def _evict(self, now: datetime) -> None:
        cutoff = now - self.window
        if any(r.timestamp < cutoff for r in self._records):
            self._records = deque(
                (r for r in self._records if r.timestamp >= cutoff),
                maxlen=self.max_records,
            )

    def record_validation(self, record: ValidationMetricRecord) -> None:
        with self._lock:
            self._records.append(record)
            self._evict(_utcnow())
        if not record.success:
            logger.info(
                "validation_failure_recorded",
                symbol=record.symbol,
                error_type=record.error_type,
            )

    def record_orchestration(
        self,
        result: OrchestrationResult,
        validation_type: str = "orchestration",
    ) -> ValidationMetricRecord:
        """Convert an orchestration result into a metric record and store it."""
        error_type = None
        if result.timed_out:
            error_type = "timeout"
        elif result.halted:
            error_type = "fatal_alert"
        elif result.errors:
            error_type = "validator_error"

        record = ValidationMetricRecord(
            timestamp=result.end_time,
            symbol=result.symbol,
            validation_type=validation_type,
            success=result.success,
            duration=result.duration,
            confidence_score=float(result.confidence_score.overall_score),
            alert_count=len(result.alerts),
            fatal_alert_count=sum(1 for a in result.alerts if a.is_fatal),
            error_type=error_type,
            error_message=result.halt_reason or (result.errors[0] if result.errors else None),
        )
        self.record_validation(record)
        return record

    def get_aggregated_metrics(self, now: Optional[datetime] = None) -> AggregatedMetrics:
        now = now or _utcnow()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        with self._lock:
            self._evict(now)
            records = list(self._records)

        total = len(records)
        if total == 0:
            return AggregatedMetrics()

        successful = sum(1 for r in records if r.success)
        scored = [r.confidence_score for r in records if r.confidence_score is not None]
        errors = Counter(r.error_type for r in records if r.error_type)

        return AggregatedMetrics(
            total_validations=total,
            successful_validations=successful,
            failed_validations=total - successful,
            success_rate=successful / total * 100.0,
            average_duration=sum(r.duration for r in records) / total,
            average_confidence_score=sum(scored) / len(scored) if scored else None,
            total_alerts=sum(r.alert_count for r in records),
            fatal_alerts=sum(r.fatal_alert_count for r in records),
            error_breakdown=dict(errors),
            symbols_validated=sorted({r.symbol for r in records}),
        )

    def get_symbol_metrics(self, symbol: str, limit: int = 50) -> list[ValidationMetricRecord]:
        """Most recent records for one symbol, newest first."""
        with self._lock:
            matching = [r for r in self._records if r.symbol == symbol]
        return list(reversed(matching))[:limit]

    def clear_metrics(self) -> None:
        with self._lock:
            self._records.clear()
        logger.debug("validation_metrics_cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


# Process-wide monitor
veritas_monitoring = ValidationMonitor.from_settings()
