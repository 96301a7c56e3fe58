"""
Unit tests for the ancillary fee resolver.
"""

import pytest

from cost_estimator.agents.other_costs import OtherCostsResolver
from cost_estimator.models.user_input import UserInput


def application_answer(**changes):
    answer = {
        "application_fee": 75,
        "currency": "USD",
        "source_url": "https://gradadmissions.mit.edu/apply",
        "confidence": 0.85,
    }
    answer.update(changes)
    return answer


def insurance_answer(**changes):
    answer = {
        "insurance_fee": 3800,
        "currency": "USD",
        "source_url": "https://health.mit.edu/insurance",
        "is_mandatory": True,
        "confidence": 0.8,
    }
    answer.update(changes)
    return answer


class TestOtherCostsResolver:
    """Test cases for OtherCostsResolver.resolve."""

    @pytest.mark.asyncio
    async def test_all_fees_found(self, make_oracle, make_gateway, params, user_input):
        # Arrange
        resolver = OtherCostsResolver(make_gateway(make_oracle()), params)

        # Act
        fees = await resolver.resolve(user_input)

        # Assert
        assert fees.application_fee.amount == 75
        assert fees.visa_fee.amount == 350
        assert fees.visa_fee.confidence == 0.9
        assert fees.health_insurance.amount == 3800
        assert fees.one_time_total == 75 + 350 + 3800

    @pytest.mark.asyncio
    async def test_visa_fee_needs_no_oracle(self, make_oracle, make_gateway, params, request_data):
        # Arrange
        user_input = UserInput.model_validate(
            {**request_data, "country": "AU", "university": "Monash University"}
        )
        resolver = OtherCostsResolver(make_gateway(make_oracle(fail_all=True)), params)

        # Act
        fees = await resolver.resolve(user_input)

        # Assert
        assert fees.visa_fee.amount == 650
        assert fees.visa_fee.source == "https://immi.homeaffairs.gov.au"
        assert fees.currency.value == "AUD"

    @pytest.mark.asyncio
    async def test_general_search_used_when_exact_program_rejected(
        self, make_oracle, make_gateway, params, user_input
    ):
        # Arrange
        oracle = make_oracle(
            answers={
                "application_fee": [
                    application_answer(confidence=0.5),
                    application_answer(application_fee=90, confidence=0.7),
                ]
            }
        )
        resolver = OtherCostsResolver(make_gateway(oracle), params)

        # Act
        fees = await resolver.resolve(user_input)

        # Assert
        assert fees.application_fee.amount == 90
        assert oracle.extraction_calls("application_fee") == 2

    @pytest.mark.asyncio
    async def test_application_fee_cited_off_university_domain_rejected(
        self, make_oracle, make_gateway, params, user_input
    ):
        # Arrange
        oracle = make_oracle(
            answers={
                "application_fee": [
                    application_answer(source_url="https://www.gradschoolhub.com/mit-fees"),
                    application_answer(application_fee=90),
                ]
            }
        )
        resolver = OtherCostsResolver(make_gateway(oracle), params)

        # Act
        fees = await resolver.resolve(user_input)

        # Assert
        assert fees.application_fee.amount == 90
        assert fees.application_fee.source == "https://gradadmissions.mit.edu/apply"

    @pytest.mark.asyncio
    async def test_static_application_fee_as_last_resort(
        self, make_oracle, make_gateway, params, user_input
    ):
        # Arrange
        oracle = make_oracle(answers={"application_fee": application_answer(confidence=0.6)})
        resolver = OtherCostsResolver(make_gateway(oracle), params)

        # Act
        fees = await resolver.resolve(user_input)

        # Assert
        # US graduate table value
        assert fees.application_fee.amount == 110
        assert fees.application_fee.confidence == 0.5

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes",
        [
            {"confidence": 0.7},
            {"confidence": 0.5},
            {"source_url": "Student health office"},
            {"source_url": "https://placeholder.edu/insurance"},
            {"insurance_fee": 0},
            {"currency": "EUR"},
            {"is_mandatory": False},
        ],
    )
    async def test_health_insurance_omitted_without_confident_source(
        self, make_oracle, make_gateway, params, user_input, changes
    ):
        # Arrange
        oracle = make_oracle(answers={"insurance_fee": insurance_answer(**changes)})
        resolver = OtherCostsResolver(make_gateway(oracle), params)

        # Act
        fees = await resolver.resolve(user_input)

        # Assert
        assert fees.health_insurance is None
        assert fees.one_time_total == fees.application_fee.amount + fees.visa_fee.amount

    @pytest.mark.asyncio
    async def test_total_oracle_failure(self, make_oracle, make_gateway, params, user_input):
        # Arrange
        resolver = OtherCostsResolver(make_gateway(make_oracle(fail_all=True)), params)

        # Act
        fees = await resolver.resolve(user_input)

        # Assert
        assert fees.application_fee.amount == 110
        assert fees.visa_fee.amount == 350
        assert fees.health_insurance is None

    def test_fallback_dataset(self, make_oracle, make_gateway, params, user_input):
        resolver = OtherCostsResolver(make_gateway(make_oracle()), params)

        fees = resolver.fallback(user_input)

        assert fees.health_insurance is None
        assert fees.one_time_total == 110 + 350
