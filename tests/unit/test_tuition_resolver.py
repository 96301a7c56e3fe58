"""
Unit tests for the tuition resolver.
"""

import pytest
from structlog.testing import capture_logs

from cost_estimator.agents.tuition import (
    TuitionResolver,
    program_duration,
    whole_program_total,
)
from cost_estimator.data.reference import UniversityNotFoundError
from cost_estimator.models.config import SystemParams
from cost_estimator.models.user_input import UserInput


def official(**changes):
    answer = {
        "total_tuition": 120000,
        "currency": "USD",
        "program_duration_years": 2,
        "pricing_basis": "total",
        "units_required": None,
        "source_url": "https://web.mit.edu/tuition",
        "is_estimate": False,
        "confidence": 0.92,
    }
    answer.update(changes)
    return answer


class TestHelpers:
    """Test cases for duration and pricing-basis helpers."""

    def test_duration_prefers_oracle_value(self, user_input):
        assert program_duration(1.5, user_input) == 1.5

    def test_duration_uses_user_hint(self, request_data):
        user_input = UserInput.model_validate({**request_data, "programDuration": 3})

        assert program_duration(None, user_input) == 3

    @pytest.mark.parametrize("raw", [None, 0, -2, "unknown", 25])
    def test_duration_defaults_by_country_and_level(self, user_input, raw):
        # US graduate default
        assert program_duration(raw, user_input) == 2

    @pytest.mark.parametrize(
        "basis, expected",
        [("total", 60000), ("annual", 120000), ("per_year", 120000), ("semester", 240000)],
    )
    def test_whole_program_total(self, basis, expected):
        assert whole_program_total(60000, basis, 2) == expected

    @pytest.mark.parametrize("basis", ["per credit", "per module", "monthly"])
    def test_untrusted_basis(self, basis):
        assert whole_program_total(1500, basis, 2) is None

    @pytest.mark.parametrize("basis", ["per credit", "per_unit", "module", "credit hour"])
    def test_per_unit_basis_multiplied_by_units(self, basis):
        assert whole_program_total(1500, basis, 2, units_required=48) == 72000

    @pytest.mark.parametrize("units", [None, 0, "unknown"])
    def test_per_unit_basis_needs_units(self, units):
        assert whole_program_total(1500, "per credit", 2, units_required=units) is None


class TestTuitionResolver:
    """Test cases for TuitionResolver.resolve."""

    @pytest.mark.asyncio
    async def test_official_figure(self, make_oracle, make_gateway, params, user_input):
        # Arrange
        resolver = TuitionResolver(make_gateway(make_oracle()), params)

        # Act
        record = await resolver.resolve(user_input)

        # Assert
        assert record.total == 120000
        assert record.program_duration == 2
        assert record.is_estimate is False
        assert record.confidence == pytest.approx(0.92)
        assert record.source == "https://web.mit.edu/tuition"

    @pytest.mark.asyncio
    async def test_annual_figure_converted_to_program_total(
        self, make_oracle, make_gateway, params, user_input
    ):
        # Arrange
        oracle = make_oracle(
            answers={"total_tuition": official(total_tuition=60000, pricing_basis="annual")}
        )
        resolver = TuitionResolver(make_gateway(oracle), params)

        # Act
        record = await resolver.resolve(user_input)

        # Assert
        assert record.total == 120000
        assert record.annual == 60000

    @pytest.mark.asyncio
    async def test_per_credit_official_figure_kept(
        self, make_oracle, make_gateway, params, user_input
    ):
        # Arrange
        oracle = make_oracle(
            answers={
                "total_tuition": official(
                    total_tuition=1500,
                    pricing_basis="per credit",
                    units_required=66,
                    confidence=0.95,
                )
            }
        )
        resolver = TuitionResolver(make_gateway(oracle), params)

        # Act
        record = await resolver.resolve(user_input)

        # Assert
        assert record.total == 99000
        assert record.is_estimate is False
        assert record.confidence == pytest.approx(0.95)
        assert record.source == "https://web.mit.edu/tuition"
        assert oracle.extraction_calls("estimated_total_tuition") == 0

    @pytest.mark.asyncio
    async def test_third_party_source_is_flagged(
        self, make_oracle, make_gateway, params, user_input
    ):
        # Arrange
        source = "https://www.univstats.com/tuition/mit"
        oracle = make_oracle(answers={"total_tuition": official(source_url=source)})

        # Act
        with capture_logs() as logs:
            resolver = TuitionResolver(make_gateway(oracle), params)
            record = await resolver.resolve(user_input)

        # Assert
        assert record.source == source
        assert any(
            log["event"] == "Official tuition source outside university domain" for log in logs
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes",
        [
            {"confidence": 0.6},
            {"is_estimate": True},
            {"source_url": "https://example.com/tuition"},
            {"source_url": "Official website"},
            {"currency": "EUR"},
            {"pricing_basis": "per credit"},
            {"total_tuition": 0},
        ],
    )
    async def test_unusable_official_escalates_to_estimate(
        self, make_oracle, make_gateway, params, user_input, changes
    ):
        # Arrange
        oracle = make_oracle(answers={"total_tuition": official(**changes)})
        resolver = TuitionResolver(make_gateway(oracle), params)

        # Act
        record = await resolver.resolve(user_input)

        # Assert
        assert record.is_estimate is True
        assert record.total == 110000
        assert 0.4 <= record.confidence <= 0.6
        assert oracle.extraction_calls("estimated_total_tuition") >= 1

    @pytest.mark.asyncio
    async def test_estimate_confidence_clamped(self, make_oracle, make_gateway, params, user_input):
        # Arrange
        oracle = make_oracle(answers={"total_tuition": official(confidence=0.3)})
        resolver = TuitionResolver(make_gateway(oracle), params)

        # Act
        record = await resolver.resolve(user_input)

        # Assert
        assert record.confidence == 0.6

    @pytest.mark.asyncio
    async def test_static_band_when_oracle_fails(self, make_oracle, make_gateway, params, user_input):
        # Arrange
        resolver = TuitionResolver(make_gateway(make_oracle(fail_all=True)), params)

        # Act
        record = await resolver.resolve(user_input)

        # Assert
        # MIT is private: 65000 per year x 2 graduate years
        assert record.total == 130000
        assert record.program_duration == 2
        assert record.confidence == 0.3
        assert record.is_estimate is True
        assert "private" in record.source

    @pytest.mark.asyncio
    async def test_static_band_uses_duration_hint(
        self, make_oracle, make_gateway, params, request_data
    ):
        # Arrange
        user_input = UserInput.model_validate(
            {**request_data, "university": "UCLA", "programDuration": 1.5}
        )
        resolver = TuitionResolver(make_gateway(make_oracle(fail_all=True)), params)

        # Act
        record = await resolver.resolve(user_input)

        # Assert
        assert record.total == 45000 * 1.5
        assert record.program_duration == 1.5

    @pytest.mark.asyncio
    async def test_unknown_university_fails_fast(
        self, make_oracle, make_gateway, params, request_data
    ):
        # Arrange
        oracle = make_oracle()
        user_input = UserInput.model_validate({**request_data, "university": "Unknown U"})
        resolver = TuitionResolver(make_gateway(oracle), params)

        # Act / Assert
        with pytest.raises(UniversityNotFoundError):
            await resolver.resolve(user_input)
        assert oracle.calls == []

    @pytest.mark.asyncio
    async def test_unreachable_source_escalates_when_verification_enabled(
        self, make_oracle, make_gateway, user_input, mocker
    ):
        # Arrange
        params = SystemParams(
            gateway={"backoff_seconds": 0},
            execution={"verify_source_urls": True},
        )
        mocker.patch(
            "cost_estimator.agents.tuition.check_url_reachable", return_value=False
        )
        resolver = TuitionResolver(make_gateway(make_oracle()), params)

        # Act
        record = await resolver.resolve(user_input)

        # Assert
        assert record.is_estimate is True

    @pytest.mark.asyncio
    async def test_search_uses_configured_search_model(
        self, make_oracle, make_gateway, user_input
    ):
        # Arrange
        params = SystemParams(
            gateway={"backoff_seconds": 0}, oracle={"search_model": "search-model"}
        )
        oracle = make_oracle()
        resolver = TuitionResolver(make_gateway(oracle), params)

        # Act
        await resolver.resolve(user_input)

        # Assert
        search_calls = [c for c in oracle.calls if c["web_search"]]
        assert search_calls
        assert all(c["model"] == "search-model" for c in search_calls)
