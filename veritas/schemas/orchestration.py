"""
Orchestration Result Schemas.

OrchestrationResult is the single, always-resolved output of a Veritas run.
"""

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from veritas.schemas.scoring import ConfidenceScore, DataQualityReport
from veritas.schemas.validation import Alert, Domain, ValidationResult


class StepStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"         # Still pending when the run stopped

    @property
    def is_settled(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.TIMED_OUT)


class ProgressUpdate(BaseModel):
    """Emitted after each step settles."""
    symbol: str
    step: Domain
    status: StepStatus
    progress: float             # 0-100
    completed_steps: list[Domain] = Field(default_factory=list)


class OrchestrationResult(BaseModel):
    symbol: str
    success: bool = False
    completed: bool = False
    halted: bool = False
    timed_out: bool = False
    halt_reason: Optional[str] = None
    progress: float = 0.0
    current_step: Optional[Domain] = None

    completed_steps: list[Domain] = Field(default_factory=list)     # completion order
    step_statuses: dict[Domain, StepStatus] = Field(default_factory=dict)
    results: dict[Domain, ValidationResult] = Field(default_factory=dict)
    alerts: list[Alert] = Field(default_factory=list)

    confidence_score: ConfidenceScore
    data_quality_summary: DataQualityReport

    start_time: datetime
    end_time: datetime
    duration: float = 0.0       # milliseconds
    errors: list[str] = Field(default_factory=list)

    @property
    def overall_score(self) -> int:
        return self.confidence_score.overall_score
