"""
Integration tests for the full estimation pipeline.

Resolvers, gateway, prompt templates, reference tables and report synthesis
run together against a scripted oracle. The slow test at the bottom runs one
estimation against the live Claude oracle.
"""

import pytest

from cost_estimator.coordinator import EstimationCoordinator
from cost_estimator.models.config import SystemParams
from cost_estimator.models.costs import CostEstimateReport
from cost_estimator.models.user_input import Currency
from cost_estimator.task_runner import EstimationTaskRunner
from cost_estimator.utils.llm_helpers import ClaudeOracle
from cost_estimator.utils.source_validation import validate_source_url
from cost_estimator.utils.task_store import TaskState


def pipeline_params(strategy: str = "sequential", fee_mode: str = "reference") -> SystemParams:
    return SystemParams(
        gateway={"backoff_seconds": 0},
        execution={"strategy": strategy, "one_time_fee_mode": fee_mode},
    )


def assert_report_consistent(report: CostEstimateReport) -> None:
    summary = report.summary
    for item in (summary.total_annual_cost, summary.total_monthly_cost, summary.total_cost):
        assert item.range.min <= item.amount <= item.range.max
    assert summary.total_monthly_cost.amount == pytest.approx(
        summary.total_annual_cost.amount / 12, abs=1
    )
    assert summary.total_cost.duration == report.tuition.program_duration
    assert len(report.recommendations) >= 3
    assert len(report.sources) == len(set(report.sources))


class TestScriptedPipeline:
    """End-to-end runs with a scripted oracle."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", ["sequential", "parallel"])
    async def test_us_graduate_run(self, make_oracle, request_data, strategy):
        # Arrange
        coordinator = EstimationCoordinator(make_oracle(), pipeline_params(strategy))

        # Act
        report = await coordinator.run(request_data)

        # Assert
        assert isinstance(report, CostEstimateReport)
        assert_report_consistent(report)
        assert report.tuition.is_estimate is False
        assert report.summary.currency == Currency.USD
        assert "https://web.mit.edu/tuition" in report.sources

    @pytest.mark.asyncio
    async def test_currency_mismatch_falls_back_to_reference_data(
        self, make_oracle, request_data
    ):
        # Arrange
        request = {
            **request_data,
            "country": "UK",
            "university": "University of Oxford",
            "lifestyle": "economy",
            "accommodation": "dorm",
        }
        coordinator = EstimationCoordinator(make_oracle(), pipeline_params())

        # Act
        report = await coordinator.run(request)

        # Assert
        assert_report_consistent(report)
        assert report.summary.currency == Currency.GBP
        assert report.tuition.is_estimate is True
        assert report.tuition.confidence == 0.3
        assert report.living_costs.total.currency == Currency.GBP

    @pytest.mark.asyncio
    async def test_unavailable_oracle_still_produces_report(self, make_oracle, request_data):
        # Arrange
        oracle = make_oracle(fail_all=True)
        coordinator = EstimationCoordinator(oracle, pipeline_params("parallel"))

        # Act
        report = await coordinator.run(request_data)

        # Assert
        assert_report_consistent(report)
        assert report.tuition.confidence == 0.3
        assert report.other_costs.health_insurance is None
        assert report.recommendations
        assert any(validate_source_url(source) for source in report.sources)

    @pytest.mark.asyncio
    async def test_amortized_fee_mode_spreads_one_time_costs(self, make_oracle, request_data):
        reference = await EstimationCoordinator(make_oracle(), pipeline_params()).run(
            request_data
        )
        amortized = await EstimationCoordinator(
            make_oracle(), pipeline_params(fee_mode="amortized")
        ).run(request_data)

        assert amortized.summary.total_annual_cost.amount < reference.summary.total_annual_cost.amount

    @pytest.mark.asyncio
    async def test_background_run_through_task_runner(self, make_oracle, request_data):
        # Arrange
        params = pipeline_params("parallel")
        runner = EstimationTaskRunner(
            lambda cid: EstimationCoordinator(make_oracle(), params, cid), params=params
        )

        # Act
        task_id = runner.submit(request_data, timeout=30)
        status = await runner.wait(task_id)

        # Assert
        assert status.state == TaskState.COMPLETED
        assert status.progress.step == "complete"
        assert isinstance(status.result, CostEstimateReport)


@pytest.mark.slow
@pytest.mark.integration
class TestLiveOracle:
    """Runs against the real oracle. Requires ANTHROPIC_API_KEY."""

    @pytest.mark.asyncio
    async def test_live_estimation(self, request_data):
        # Arrange
        params = SystemParams.load()
        oracle = ClaudeOracle(
            model=params.oracle.model, search_max_turns=params.oracle.search_max_turns
        )
        coordinator = EstimationCoordinator(oracle, params)

        # Act
        report = await coordinator.run_with_timeout(request_data, timeout=300)

        # Assert
        assert isinstance(report, CostEstimateReport)
        assert_report_consistent(report)
        assert report.summary.currency == Currency.USD
