"""
Validation Orchestrator Tests.

Covers:
- Clean concurrent runs and completion order
- Absent, unknown, and unregistered domains
- Per-step timeouts and the global deadline
- Halt on fatal (mid-run and on the final step)
- Validators that raise
- Late result policies (discard / report)
- Progress callbacks, monitoring, reliability feed
- is_sufficient_for_analysis / get_status_message
"""

import asyncio

import pytest

from conftest import ALL_INPUTS, StubValidator, fatal_result, make_result, stub_validators
from veritas.engine.orchestrator import (
    CancellationToken,
    OrchestratorConfig,
    StepOutcome,
    ValidationOrchestrator,
    get_status_message,
    is_sufficient_for_analysis,
    orchestrate_validation,
)
from veritas.exceptions import ConfigurationError, ValidatorTimeout
from veritas.schemas.orchestration import StepStatus
from veritas.schemas.validation import Discrepancy, Domain, SourceReading

FAST = OrchestratorConfig(timeout_ms=200, global_deadline_ms=1000)


class TestOrchestratorConfig:

    def test_defaults(self):
        config = OrchestratorConfig()
        assert config.timeout_ms == 5000
        assert config.global_deadline_ms == 15000
        assert config.halt_on_fatal is True
        assert config.late_result_policy == "discard"

    @pytest.mark.parametrize("kwargs", [
        {"timeout_ms": 0},
        {"global_deadline_ms": -1},
        {"late_result_policy": "retry"},
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ConfigurationError):
            OrchestratorConfig(**kwargs)

    def test_from_settings_overrides(self):
        config = OrchestratorConfig.from_settings(timeout_ms=123)
        assert config.timeout_ms == 123


class TestRunInternals:

    def test_cancellation_token_sets_once(self):
        token = CancellationToken()
        assert not token.is_cancelled
        token.cancel("halt")
        token.cancel("deadline")
        assert token.is_cancelled
        assert token.reason == "halt"

    def test_step_outcome_status(self):
        ok = StepOutcome(domain=Domain.MARKET, ok=True, duration_ms=1.0, result=make_result())
        late = StepOutcome(
            domain=Domain.MARKET, ok=False, duration_ms=1.0, error=ValidatorTimeout("market", 10)
        )
        assert ok.status == StepStatus.COMPLETED
        assert late.status == StepStatus.TIMED_OUT


class TestCleanRuns:

    @pytest.mark.asyncio
    async def test_all_domains_clean(self):
        result = await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=stub_validators())
        assert result.success
        assert result.completed
        assert not result.halted
        assert not result.timed_out
        assert result.progress == 100
        assert set(result.completed_steps) == set(Domain)
        assert set(result.results) == set(Domain)
        assert result.errors == []
        assert result.confidence_score.overall_score == 100
        assert all(s == StepStatus.COMPLETED for s in result.step_statuses.values())

    @pytest.mark.asyncio
    async def test_completion_order_not_schedule_order(self):
        validators = stub_validators(
            market=StubValidator(Domain.MARKET, delay=0.08),
            social=StubValidator(Domain.SOCIAL, delay=0.01),
            onchain=StubValidator(Domain.ONCHAIN, delay=0.05),
            news=StubValidator(Domain.NEWS, delay=0.03),
        )
        result = await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=validators)
        assert result.completed_steps == [Domain.SOCIAL, Domain.NEWS, Domain.ONCHAIN, Domain.MARKET]

    @pytest.mark.asyncio
    async def test_steps_run_concurrently(self):
        validators = {d: StubValidator(d, delay=0.1) for d in Domain}
        result = await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=validators)
        assert result.completed
        assert result.duration < 350

    @pytest.mark.asyncio
    async def test_absent_domains_skipped(self):
        inputs = {"market": {"quotes": []}, "social": None}
        result = await orchestrate_validation("BTC", inputs, FAST, validators=stub_validators())
        assert result.completed
        assert result.completed_steps == [Domain.MARKET]
        assert Domain.SOCIAL not in result.step_statuses
        assert result.errors == []
        assert result.confidence_score.completeness == 25

    @pytest.mark.asyncio
    async def test_nothing_eligible(self):
        result = await orchestrate_validation("BTC", {}, FAST, validators=stub_validators())
        assert result.completed
        assert result.success
        assert result.progress == 100
        assert result.confidence_score.overall_score == 30

    @pytest.mark.asyncio
    async def test_missing_validator_reported(self):
        validators = {Domain.MARKET: StubValidator(Domain.MARKET)}
        result = await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=validators)
        assert result.completed_steps == [Domain.MARKET]
        assert len(result.errors) == 3
        assert all("no validator registered" in e for e in result.errors)

    @pytest.mark.asyncio
    async def test_unknown_domain_reported(self):
        result = await orchestrate_validation(
            "BTC", {"weather": {}}, FAST, validators=stub_validators()
        )
        assert result.errors == ["Unknown validation domain: weather"]


class TestFailures:

    @pytest.mark.asyncio
    async def test_all_validators_raise_still_resolves(self):
        validators = {d: StubValidator(d, error=RuntimeError(f"{d.value} down")) for d in Domain}
        result = await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=validators)
        assert result.completed
        assert result.results == {}
        assert len(result.errors) == 4
        assert all(s == StepStatus.FAILED for s in result.step_statuses.values())
        assert 0 <= result.confidence_score.overall_score <= 100

    @pytest.mark.asyncio
    async def test_one_validator_raises(self):
        validators = stub_validators(news=StubValidator(Domain.NEWS, error=ValueError("bad feed")))
        result = await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=validators)
        assert result.completed
        assert Domain.NEWS not in result.results
        assert Domain.NEWS in result.completed_steps
        assert result.step_statuses[Domain.NEWS] == StepStatus.FAILED
        assert any("bad feed" in e for e in result.errors)
        assert result.confidence_score.breakdown.news == 0

    @pytest.mark.asyncio
    async def test_step_timeout(self):
        validators = stub_validators(social=StubValidator(Domain.SOCIAL, delay=0.5))
        config = OrchestratorConfig(timeout_ms=50, global_deadline_ms=1000)
        result = await orchestrate_validation("BTC", ALL_INPUTS, config, validators=validators)
        assert result.completed
        assert not result.timed_out
        assert result.step_statuses[Domain.SOCIAL] == StepStatus.TIMED_OUT
        assert Domain.SOCIAL not in result.results
        assert any("timed out" in e for e in result.errors)

    @pytest.mark.asyncio
    async def test_global_deadline(self):
        validators = stub_validators(
            market=StubValidator(Domain.MARKET, delay=0.5),
            social=StubValidator(Domain.SOCIAL, delay=0.5),
        )
        config = OrchestratorConfig(timeout_ms=2000, global_deadline_ms=100)
        result = await orchestrate_validation("BTC", ALL_INPUTS, config, validators=validators)
        assert result.timed_out
        assert result.halted
        assert not result.completed
        assert not result.success
        assert set(result.results) == {Domain.ONCHAIN, Domain.NEWS}
        assert result.progress == 50
        assert result.step_statuses[Domain.MARKET] == StepStatus.SKIPPED
        assert result.duration < 400
        assert "timed out" in get_status_message(result)


class TestHaltOnFatal:

    @pytest.mark.asyncio
    async def test_fatal_halts_run(self):
        validators = stub_validators(
            market=StubValidator(Domain.MARKET, result=fatal_result(Domain.MARKET, "price <= 0")),
            social=StubValidator(Domain.SOCIAL, delay=0.2),
        )
        result = await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=validators)
        assert result.halted
        assert not result.completed
        assert not result.success
        assert "price <= 0" in result.halt_reason
        assert Domain.SOCIAL not in result.results
        assert result.step_statuses[Domain.SOCIAL] == StepStatus.SKIPPED
        assert result.alerts[0].is_fatal
        assert get_status_message(result).startswith("Validation halted")

    @pytest.mark.asyncio
    async def test_fatal_on_last_step_still_completed(self):
        validators = {Domain.MARKET: StubValidator(Domain.MARKET, result=fatal_result())}
        result = await orchestrate_validation(
            "BTC", {"market": {}}, FAST, validators=validators
        )
        assert result.halted
        assert result.completed
        assert not result.success

    @pytest.mark.asyncio
    async def test_halt_disabled(self):
        validators = stub_validators(market=StubValidator(Domain.MARKET, result=fatal_result()))
        config = OrchestratorConfig(timeout_ms=200, global_deadline_ms=1000, halt_on_fatal=False)
        result = await orchestrate_validation("BTC", ALL_INPUTS, config, validators=validators)
        assert not result.halted
        assert result.completed
        assert set(result.results) == set(Domain)
        assert result.confidence_score.logical_consistency == 50


class TestLateResults:

    @pytest.mark.asyncio
    async def test_late_result_discarded(self):
        slow = StubValidator(Domain.SOCIAL, delay=0.15, result=fatal_result(Domain.SOCIAL))
        validators = stub_validators(social=slow)
        config = OrchestratorConfig(timeout_ms=30, global_deadline_ms=1000)
        result = await orchestrate_validation("BTC", ALL_INPUTS, config, validators=validators)
        snapshot = result.model_dump()

        await asyncio.wait_for(slow.finished.wait(), 1.0)
        await asyncio.sleep(0)
        assert Domain.SOCIAL not in result.results
        assert not result.halted
        assert result.model_dump() == snapshot

    @pytest.mark.asyncio
    async def test_late_fatal_reported(self):
        seen = []
        slow = StubValidator(Domain.SOCIAL, delay=0.15, result=fatal_result(Domain.SOCIAL, "late"))
        config = OrchestratorConfig(
            timeout_ms=30,
            global_deadline_ms=1000,
            late_result_policy="report",
            on_late_result=lambda domain, res: seen.append((domain, res.first_fatal_message)),
        )
        result = await orchestrate_validation(
            "BTC", ALL_INPUTS, config, validators=stub_validators(social=slow)
        )
        await asyncio.wait_for(slow.finished.wait(), 1.0)
        await asyncio.sleep(0.01)
        assert seen == [(Domain.SOCIAL, "late")]
        assert not result.halted
        assert Domain.SOCIAL not in result.results

    @pytest.mark.asyncio
    async def test_timed_out_work_not_aborted(self):
        slow = StubValidator(Domain.NEWS, delay=0.1)
        config = OrchestratorConfig(timeout_ms=20, global_deadline_ms=1000)
        await orchestrate_validation("BTC", ALL_INPUTS, config, validators=stub_validators(news=slow))
        await asyncio.wait_for(slow.finished.wait(), 1.0)
        assert slow.calls == 1


class TestIntegrations:

    @pytest.mark.asyncio
    async def test_progress_callback(self):
        updates = []
        result = await orchestrate_validation(
            "BTC", ALL_INPUTS, FAST, validators=stub_validators(), on_progress=updates.append
        )
        assert [u.progress for u in updates] == [25, 50, 75, 100]
        assert [u.step for u in updates] == result.completed_steps

    @pytest.mark.asyncio
    async def test_failing_progress_callback_is_ignored(self):
        def boom(update):
            raise RuntimeError("ui gone")

        result = await orchestrate_validation(
            "BTC", ALL_INPUTS, FAST, validators=stub_validators(), on_progress=boom
        )
        assert result.success

    @pytest.mark.asyncio
    async def test_run_recorded_in_monitor(self, monitor):
        await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=stub_validators(), monitor=monitor)
        metrics = monitor.get_aggregated_metrics()
        assert metrics.total_validations == 1
        assert metrics.success_rate == 100
        assert metrics.symbols_validated == ["BTC"]

    @pytest.mark.asyncio
    async def test_no_monitor_no_record(self, monitor):
        await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=stub_validators())
        assert len(monitor) == 0

    @pytest.mark.asyncio
    async def test_reliability_fed_after_scoring(self, tracker):
        disc = Discrepancy(
            metric="price",
            sources=[SourceReading(name="A", value=100), SourceReading(name="B", value=120)],
            variance=18.0,
            threshold=1.5,
            exceeded=True,
        )
        validators = stub_validators(
            market=StubValidator(Domain.MARKET, result=make_result(discrepancies=[disc]))
        )
        result = await orchestrate_validation(
            "BTC", ALL_INPUTS, FAST, validators=validators, reliability_tracker=tracker
        )
        # Weights reflect the tracker state before this run was ingested
        assert result.confidence_score.source_weights == {"A": 1.0, "B": 1.0}
        assert tracker.get_score("A").deviation_count == 1

    @pytest.mark.asyncio
    async def test_orchestrator_reusable(self):
        orchestrator = ValidationOrchestrator(validators=stub_validators(), config=FAST)
        first = await orchestrator.run("BTC", ALL_INPUTS)
        second = await orchestrator.run("ETH", ALL_INPUTS)
        assert first.success and second.success
        assert second.symbol == "ETH"


class TestAnalysisHelpers:

    @pytest.mark.asyncio
    async def test_sufficient_for_analysis(self):
        result = await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=stub_validators())
        assert is_sufficient_for_analysis(result)
        assert not is_sufficient_for_analysis(result, minimum_confidence=101)
        assert get_status_message(result) == "Validation complete with excellent confidence (100%)"

    @pytest.mark.asyncio
    async def test_insufficient_when_halted(self):
        validators = stub_validators(market=StubValidator(Domain.MARKET, result=fatal_result()))
        result = await orchestrate_validation("BTC", ALL_INPUTS, FAST, validators=validators)
        assert not is_sufficient_for_analysis(result)
