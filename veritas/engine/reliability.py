"""
Source Reliability Tracking.

Keeps per-source validation history and turns it into a trust weight the
confidence calculator attaches to each source it saw in a discrepancy.

Trust weight bands (reliability = passes / validations × 100):
    ≥ 90 → 1.0    ≥ 80 → 0.9    ≥ 70 → 0.8
    ≥ 60 → 0.7    ≥ 50 → 0.6    else 0.5
Unknown sources get full trust (1.0).

State is in-memory only.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Mapping, Optional, Protocol, runtime_checkable

import structlog

from veritas.schemas.validation import ValidationResult

logger = structlog.get_logger(__name__)

DEFAULT_MAX_HISTORY: int = 100
RELIABLE_THRESHOLD: float = 90.0
UNRELIABLE_THRESHOLD: float = 70.0

_WEIGHT_BANDS: tuple[tuple[float, float], ...] = (
    (90.0, 1.0),
    (80.0, 0.9),
    (70.0, 0.8),
    (60.0, 0.7),
    (50.0, 0.6),
)
MIN_TRUST_WEIGHT: float = 0.5


@runtime_checkable
class ReliabilityTracker(Protocol):
    """Anything that can weight a source by name."""

    def weight_for(self, source_name: str) -> float:
        ...


class Outcome(StrEnum):
    PASS = "pass"
    FAIL = "fail"
    DEVIATION = "deviation"


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: datetime
    outcome: Outcome
    deviation: Optional[float] = None


@dataclass
class SourceScore:
    source_name: str
    reliability_score: float = 100.0
    total_validations: int = 0
    successful_validations: int = 0
    deviation_count: int = 0
    trust_weight: float = 1.0
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ReliabilitySummary:
    total_sources: int
    average_reliability: float
    reliable_sources: int
    unreliable_sources: int
    total_validations: int


def trust_weight(reliability: float) -> float:
    for floor, weight in _WEIGHT_BANDS:
        if reliability >= floor:
            return weight
    return MIN_TRUST_WEIGHT


class SourceReliabilityTracker:
    """In-memory per-source reliability with bounded history."""

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        self.max_history = max_history
        self._scores: dict[str, SourceScore] = {}
        self._history: dict[str, deque[HistoryEntry]] = {}

    def update(
        self,
        source_name: str,
        outcome: Outcome | str,
        deviation: Optional[float] = None,
    ) -> SourceScore:
        """Record one validation outcome for a source."""
        outcome = Outcome(outcome)
        score = self._scores.get(source_name) or SourceScore(source_name=source_name)

        score.total_validations += 1
        if outcome == Outcome.PASS:
            score.successful_validations += 1
        elif outcome == Outcome.DEVIATION:
            score.deviation_count += 1

        score.reliability_score = score.successful_validations / score.total_validations * 100.0
        score.trust_weight = trust_weight(score.reliability_score)
        score.last_updated = datetime.now(timezone.utc)
        self._scores[source_name] = score

        history = self._history.setdefault(source_name, deque(maxlen=self.max_history))
        history.append(HistoryEntry(timestamp=score.last_updated, outcome=outcome, deviation=deviation))
        return score

    def ingest_results(self, results: Mapping[object, ValidationResult]) -> int:
        """
        Feed one run's validator results into the tracker.

        Sources in an exceeded discrepancy record a deviation, sources in a
        discrepancy within threshold record a pass, sources named by a fatal
        alert record a fail. Returns the number of updates.
        """
        updates = 0
        for result in results.values():
            for disc in result.discrepancies:
                outcome = Outcome.DEVIATION if disc.exceeded else Outcome.PASS
                for name in disc.source_names:
                    self.update(name, outcome, disc.variance if disc.exceeded else None)
                    updates += 1
            for alert in result.fatal_alerts:
                for name in alert.affected_sources:
                    self.update(name, Outcome.FAIL)
                    updates += 1
        return updates

    # ── Queries ───────────────────────────────────────────────────────

    def weight_for(self, source_name: str) -> float:
        score = self._scores.get(source_name)
        return score.trust_weight if score is not None else 1.0

    def get_score(self, source_name: str) -> Optional[SourceScore]:
        return self._scores.get(source_name)

    def all_scores(self) -> list[SourceScore]:
        return sorted(self._scores.values(), key=lambda s: s.reliability_score, reverse=True)

    def unreliable_sources(self, threshold: float = UNRELIABLE_THRESHOLD) -> list[str]:
        return [s.source_name for s in self._scores.values() if s.reliability_score < threshold]

    def reliable_sources(self, threshold: float = RELIABLE_THRESHOLD) -> list[str]:
        return [s.source_name for s in self._scores.values() if s.reliability_score >= threshold]

    def history(self, source_name: str) -> list[HistoryEntry]:
        return list(self._history.get(source_name, ()))

    def summary(self) -> ReliabilitySummary:
        scores = list(self._scores.values())
        if not scores:
            return ReliabilitySummary(0, 0.0, 0, 0, 0)
        return ReliabilitySummary(
            total_sources=len(scores),
            average_reliability=sum(s.reliability_score for s in scores) / len(scores),
            reliable_sources=sum(1 for s in scores if s.reliability_score >= RELIABLE_THRESHOLD),
            unreliable_sources=sum(1 for s in scores if s.reliability_score < UNRELIABLE_THRESHOLD),
            total_validations=sum(s.total_validations for s in scores),
        )

    def reset_source(self, source_name: str) -> None:
        self._scores.pop(source_name, None)
        self._history.pop(source_name, None)

    def reset(self) -> None:
        self._scores.clear()
        self._history.clear()
        logger.debug("reliability_tracker_reset")
