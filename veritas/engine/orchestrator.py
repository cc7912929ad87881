"""
Veritas Validation Orchestrator.

Runs one validator per available domain concurrently under a per-step
timeout and a shared global deadline, then folds whatever settled into a
confidence score, alerts and a data quality report.

Guarantees:
- orchestrate_validation() always resolves; it never raises
- a fatal alert halts the run early (halt_on_fatal)
- the global deadline bounds wall-clock time; partial results are returned
- completed_steps is completion order, not schedule order

Cancellation is non-strict: once the run's CancellationToken is set (deadline,
halt, or run end) late validator outcomes are observed and discarded. The
validator work itself is never aborted.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

import structlog

from veritas.alerting.generator import generate_alerts
from veritas.config import Settings, settings
from veritas.engine.confidence import calculate_veritas_confidence_score
from veritas.engine.quality import generate_data_quality_summary
from veritas.engine.reliability import ReliabilityTracker, SourceReliabilityTracker
from veritas.exceptions import (
    ConfigurationError,
    ErrorCode,
    FatalDataError,
    GlobalDeadlineExceeded,
    ValidatorError,
    ValidatorTimeout,
    VeritasError,
)
from veritas.monitoring.metrics import ValidationMonitor
from veritas.schemas.orchestration import OrchestrationResult, ProgressUpdate, StepStatus
from veritas.schemas.validation import DOMAIN_ORDER, Domain, ValidationResult
from veritas.validators import Validator, default_validators

logger = structlog.get_logger(__name__)

LATE_RESULT_POLICIES = ("discard", "report")

ProgressCallback = Callable[[ProgressUpdate], Union[None, Awaitable[None]]]
LateResultCallback = Callable[[Domain, ValidationResult], None]


# ── Configuration ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OrchestratorConfig:
    timeout_ms: int = 5000                  # per step
    global_deadline_ms: int = 15000         # whole run
    halt_on_fatal: bool = True
    late_result_policy: str = "discard"     # discard | report
    on_late_result: Optional[LateResultCallback] = None

    def __post_init__(self):
        if self.timeout_ms <= 0:
            raise ConfigurationError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.global_deadline_ms <= 0:
            raise ConfigurationError(
                f"global_deadline_ms must be positive, got {self.global_deadline_ms}"
            )
        if self.late_result_policy not in LATE_RESULT_POLICIES:
            raise ConfigurationError(
                f"late_result_policy must be one of {LATE_RESULT_POLICIES}, "
                f"got {self.late_result_policy!r}"
            )

    @classmethod
    def from_settings(cls, current: Optional[Settings] = None, **overrides: Any) -> "OrchestratorConfig":
        s = current or settings
        values: dict[str, Any] = {
            "timeout_ms": s.step_timeout_ms,
            "global_deadline_ms": s.global_deadline_ms,
            "halt_on_fatal": s.halt_on_fatal,
            "late_result_policy": s.late_result_policy,
        }
        values.update(overrides)
        return cls(**values)


# ── Run Internals ─────────────────────────────────────────────────────────


class CancellationToken:
    """Set once; after that, late step outcomes are ignored."""

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str) -> None:
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason


@dataclass(frozen=True)
class StepOutcome:
    """Tagged result of one step: ok carries a result, err carries an error."""
    domain: Domain
    ok: bool
    duration_ms: float
    result: Optional[ValidationResult] = None
    error: Optional[VeritasError] = None

    @property
    def status(self) -> StepStatus:
        if self.ok:
            return StepStatus.COMPLETED
        if isinstance(self.error, ValidatorTimeout):
            return StepStatus.TIMED_OUT
        return StepStatus.FAILED


@dataclass
class _RunState:
    symbol: str
    token: CancellationToken = field(default_factory=CancellationToken)
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    abandoned: set[Domain] = field(default_factory=set)


# ── Orchestrator ──────────────────────────────────────────────────────────


class ValidationOrchestrator:
    """
    Concurrent validator runner with deadline, halt-on-fatal and scoring.

    One instance can serve many runs; per-run state lives in _RunState.
    """

    def __init__(
        self,
        validators: Optional[Mapping[Union[Domain, str], Validator]] = None,
        config: Optional[OrchestratorConfig] = None,
        reliability_tracker: Optional[ReliabilityTracker] = None,
        monitor: Optional[ValidationMonitor] = None,
    ):
        source = default_validators() if validators is None else validators
        self.validators: dict[Domain, Validator] = {Domain.parse(k): v for k, v in source.items()}
        self.config = config or OrchestratorConfig()
        self.reliability_tracker = reliability_tracker
        self.monitor = monitor
        # Strong references to in-flight tasks so they are not garbage collected
        self._inflight: set[asyncio.Task] = set()

    async def run(
        self,
        symbol: str,
        inputs_by_domain: Mapping[Union[Domain, str], Any],
        on_progress: Optional[ProgressCallback] = None,
    ) -> OrchestrationResult:
        start_time = datetime.now(timezone.utc)
        started = time.perf_counter()
        state = _RunState(symbol=symbol)

        errors: list[str] = []
        statuses: dict[Domain, StepStatus] = {}
        results: dict[Domain, ValidationResult] = {}
        completed_steps: list[Domain] = []
        eligible: list[Domain] = []
        step_tasks: dict[Domain, asyncio.Task] = {}
        halted = timed_out = False
        halt_reason: Optional[str] = None
        current_step: Optional[Domain] = None

        logger.info("veritas_orchestration_started", symbol=symbol)

        try:
            data = self._eligible_inputs(inputs_by_domain, errors)
            eligible = list(data)

            for domain in eligible:
                statuses[domain] = StepStatus.RUNNING
                task = asyncio.create_task(
                    self._run_step(state, domain, self.validators[domain], data[domain])
                )
                step_tasks[domain] = task
                self._track(task)

            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.config.global_deadline_ms / 1000.0
            pending = set(eligible)

            while pending:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    timed_out = True
                    break
                try:
                    outcome: StepOutcome = await asyncio.wait_for(state.queue.get(), remaining)
                except asyncio.TimeoutError:
                    timed_out = True
                    break

                domain = outcome.domain
                pending.discard(domain)
                completed_steps.append(domain)
                statuses[domain] = outcome.status
                current_step = domain

                if outcome.ok:
                    results[domain] = outcome.result
                    if self.config.halt_on_fatal and outcome.result.has_fatal_alert:
                        halted = True
                        halt_reason = FatalDataError(
                            domain.value, outcome.result.first_fatal_message
                        ).message
                        logger.warning(
                            "veritas_halted_on_fatal",
                            symbol=symbol,
                            step=domain.value,
                            reason=halt_reason,
                        )
                else:
                    errors.append(str(outcome.error))
                    logger.warning(
                        "veritas_step_failed",
                        symbol=symbol,
                        step=domain.value,
                        status=outcome.status.value,
                        **outcome.error.to_dict(),
                    )

                await self._emit_progress(on_progress, state, domain, outcome.status,
                                          completed_steps, len(eligible))
                if halted:
                    break

            if timed_out:
                halted = True
                waiting = [d.value for d in eligible if d in pending]
                deadline_error = GlobalDeadlineExceeded(self.config.global_deadline_ms, waiting)
                halt_reason = deadline_error.message
                errors.append(str(deadline_error))
                logger.warning(
                    "veritas_global_deadline_exceeded",
                    symbol=symbol,
                    pending=waiting,
                    deadline_ms=self.config.global_deadline_ms,
                )

            for domain in pending:
                statuses[domain] = StepStatus.SKIPPED
        except Exception as exc:
            logger.exception("veritas_orchestration_error", symbol=symbol, error=str(exc))
            errors.append(str(VeritasError(f"Orchestration failed: {exc}", cause=exc)))
        finally:
            state.token.cancel("deadline" if timed_out else "halt" if halted else "run_end")
            for task in step_tasks.values():
                if not task.done():
                    task.cancel()

        completed = all(statuses.get(d, StepStatus.PENDING).is_settled for d in eligible)
        progress = len(completed_steps) / len(eligible) * 100.0 if eligible else 100.0

        result = self._finalise(
            symbol=symbol,
            start_time=start_time,
            started=started,
            completed=completed,
            halted=halted,
            timed_out=timed_out,
            halt_reason=halt_reason,
            progress=progress,
            current_step=current_step,
            completed_steps=completed_steps,
            statuses=statuses,
            results=results,
            errors=errors,
        )
        logger.info(
            "veritas_orchestration_finished",
            symbol=symbol,
            success=result.success,
            completed=result.completed,
            halted=result.halted,
            timed_out=result.timed_out,
            overall_score=result.overall_score,
            duration_ms=round(result.duration, 1),
            errors=len(result.errors),
        )
        return result

    # ── Steps ─────────────────────────────────────────────────────────

    def _eligible_inputs(
        self,
        inputs: Mapping[Union[Domain, str], Any],
        errors: list[str],
    ) -> dict[Domain, Any]:
        """Non-None inputs with a registered validator, in schedule order."""
        present: dict[Domain, Any] = {}
        for key, value in (inputs or {}).items():
            if value is None:
                continue
            try:
                domain = Domain.parse(key)
            except ValueError:
                errors.append(f"Unknown validation domain: {key}")
                continue
            if domain not in self.validators:
                errors.append(str(ValidatorError(
                    domain.value,
                    "no validator registered",
                    error_code=ErrorCode.VALIDATOR_MISSING,
                )))
                continue
            present[domain] = value
        return {d: present[d] for d in DOMAIN_ORDER if d in present}

    @staticmethod
    async def _invoke(validator: Validator, symbol: str, data: Any) -> ValidationResult:
        result = await validator.validate(symbol, data)
        if not isinstance(result, ValidationResult):
            raise TypeError(f"validator returned {type(result).__name__}, expected ValidationResult")
        return result

    async def _run_step(
        self,
        state: _RunState,
        domain: Domain,
        validator: Validator,
        data: Any,
    ) -> None:
        started = time.perf_counter()
        inner = asyncio.create_task(self._invoke(validator, state.symbol, data))
        self._track(inner)
        inner.add_done_callback(lambda task: self._on_validator_done(state, domain, task))

        done, _ = await asyncio.wait({inner}, timeout=self.config.timeout_ms / 1000.0)
        elapsed = (time.perf_counter() - started) * 1000.0

        if inner not in done:
            state.abandoned.add(domain)
            outcome = StepOutcome(
                domain=domain,
                ok=False,
                duration_ms=elapsed,
                error=ValidatorTimeout(domain.value, self.config.timeout_ms),
            )
        elif inner.cancelled():
            outcome = StepOutcome(
                domain=domain,
                ok=False,
                duration_ms=elapsed,
                error=ValidatorError(domain.value, "validator was cancelled"),
            )
        elif inner.exception() is not None:
            exc = inner.exception()
            outcome = StepOutcome(
                domain=domain,
                ok=False,
                duration_ms=elapsed,
                error=ValidatorError(domain.value, str(exc) or type(exc).__name__, cause=exc),
            )
        else:
            outcome = StepOutcome(domain=domain, ok=True, duration_ms=elapsed, result=inner.result())

        state.queue.put_nowait(outcome)

    def _on_validator_done(self, state: _RunState, domain: Domain, task: asyncio.Task) -> None:
        """Runs for every validator task; only acts on outcomes nobody will read."""
        if task.cancelled():
            return
        exc = task.exception()
        if not (state.token.is_cancelled or domain in state.abandoned):
            return

        if exc is not None:
            logger.debug(
                "late_validator_error_discarded",
                symbol=state.symbol,
                step=domain.value,
                error=str(exc),
            )
            return

        result: ValidationResult = task.result()
        if self.config.late_result_policy == "report" and result.has_fatal_alert:
            logger.warning(
                "late_fatal_alert",
                symbol=state.symbol,
                step=domain.value,
                message=result.first_fatal_message,
            )
            if self.config.on_late_result is not None:
                try:
                    self.config.on_late_result(domain, result)
                except Exception as cb_exc:
                    logger.error(
                        "late_result_callback_failed",
                        symbol=state.symbol,
                        step=domain.value,
                        error=str(cb_exc),
                    )
            return

        logger.debug("late_result_discarded", symbol=state.symbol, step=domain.value)

    def _track(self, task: asyncio.Task) -> None:
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _emit_progress(
        self,
        on_progress: Optional[ProgressCallback],
        state: _RunState,
        domain: Domain,
        status: StepStatus,
        completed_steps: list[Domain],
        eligible_count: int,
    ) -> None:
        if on_progress is None:
            return
        update = ProgressUpdate(
            symbol=state.symbol,
            step=domain,
            status=status,
            progress=len(completed_steps) / eligible_count * 100.0,
            completed_steps=list(completed_steps),
        )
        try:
            maybe = on_progress(update)
            if inspect.isawaitable(maybe):
                await maybe
        except Exception as exc:
            logger.warning("progress_callback_failed", symbol=state.symbol, error=str(exc))

    # ── Scoring ───────────────────────────────────────────────────────

    def _finalise(
        self,
        *,
        symbol: str,
        start_time: datetime,
        started: float,
        completed: bool,
        halted: bool,
        timed_out: bool,
        halt_reason: Optional[str],
        progress: float,
        current_step: Optional[Domain],
        completed_steps: list[Domain],
        statuses: dict[Domain, StepStatus],
        results: dict[Domain, ValidationResult],
        errors: list[str],
    ) -> OrchestrationResult:
        duration = (time.perf_counter() - started) * 1000.0

        confidence = calculate_veritas_confidence_score(results, self.reliability_tracker)
        try:
            alerts = generate_alerts(results)
            quality = generate_data_quality_summary(results, validation_duration=duration)
        except Exception as exc:
            logger.exception("veritas_scoring_error", symbol=symbol, error=str(exc))
            errors.append(str(VeritasError(f"Scoring failed: {exc}", error_code=ErrorCode.SCORING_ERROR)))
            alerts = []
            quality = generate_data_quality_summary({}, validation_duration=duration)

        if isinstance(self.reliability_tracker, SourceReliabilityTracker):
            try:
                self.reliability_tracker.ingest_results(results)
            except Exception as exc:
                logger.warning("reliability_update_failed", symbol=symbol, error=str(exc))

        result = OrchestrationResult(
            symbol=symbol,
            success=completed and not halted,
            completed=completed,
            halted=halted,
            timed_out=timed_out,
            halt_reason=halt_reason,
            progress=progress,
            current_step=current_step,
            completed_steps=completed_steps,
            step_statuses=statuses,
            results=results,
            alerts=alerts,
            confidence_score=confidence,
            data_quality_summary=quality,
            start_time=start_time,
            end_time=datetime.now(timezone.utc),
            duration=duration,
            errors=errors,
        )

        if self.monitor is not None:
            try:
                self.monitor.record_orchestration(result)
            except Exception as exc:
                logger.warning("monitor_record_failed", symbol=symbol, error=str(exc))
        return result


# ── Module API ────────────────────────────────────────────────────────────


async def orchestrate_validation(
    symbol: str,
    inputs_by_domain: Mapping[Union[Domain, str], Any],
    config: Optional[OrchestratorConfig] = None,
    *,
    validators: Optional[Mapping[Union[Domain, str], Validator]] = None,
    reliability_tracker: Optional[ReliabilityTracker] = None,
    monitor: Optional[ValidationMonitor] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> OrchestrationResult:
    """
    Validate all available domains for a symbol and score the result.

    Args:
        symbol: Instrument symbol, e.g. "BTC"
        inputs_by_domain: Domain (or alias) → already-fetched data; None = absent
        config: Timeouts, deadline, halt and late-result policy
        validators: Domain → Validator; defaults to one per domain
        reliability_tracker: Source weighting; fed with results after scoring
        monitor: Records the run when given
        on_progress: Called after each step settles

    Returns:
        OrchestrationResult (never raises)
    """
    orchestrator = ValidationOrchestrator(
        validators=validators,
        config=config,
        reliability_tracker=reliability_tracker,
        monitor=monitor,
    )
    return await orchestrator.run(symbol, inputs_by_domain, on_progress=on_progress)


def is_sufficient_for_analysis(result: OrchestrationResult, minimum_confidence: float = 60) -> bool:
    """Completed, confident enough, and the quality report allows proceeding."""
    if not result.completed:
        return False
    if result.confidence_score.overall_score < minimum_confidence:
        return False
    guidance = result.data_quality_summary.reliability_guidance
    if guidance is not None and not guidance.can_proceed_with_analysis:
        return False
    return True


def get_status_message(result: OrchestrationResult) -> str:
    if result.timed_out:
        return (
            f"Validation timed out after {result.duration:.0f}ms. "
            f"Partial results available ({result.progress:.0f}% complete)."
        )
    if result.halted:
        return f"Validation halted: {result.halt_reason}"
    if not result.completed:
        return f"Validation incomplete ({result.progress:.0f}% complete)"

    score = result.confidence_score.overall_score
    level = result.confidence_score.confidence_level.value
    if score >= 60:
        return f"Validation complete with {level} confidence ({score}%)"
    return f"Validation complete with poor confidence ({score}%). Use caution."
