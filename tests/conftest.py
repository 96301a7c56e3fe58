"""
Shared test fixtures.

FakeOracle stands in for the Claude oracle. It routes each prompt by content:
- extraction prompts are answered from the scripted answers, chosen by the
  schema key that identifies the extraction (e.g. "total_tuition")
- recommendation prompts get a JSON array of strings
- every other prompt is a free-text search and gets search_text
"""

import asyncio
import copy
import json
from typing import Any, Callable, Optional

import pytest

from cost_estimator.models.config import SystemParams
from cost_estimator.models.user_input import UserInput
from cost_estimator.utils.oracle_gateway import OracleGateway

EXTRACT_MARKER = "Extract data according to this schema"
RECOMMENDATION_MARKER = "personalized recommendations"

DEFAULT_ANSWERS: dict[str, Any] = {
    "total_tuition": {
        "total_tuition": 120000,
        "currency": "USD",
        "program_duration_years": 2,
        "pricing_basis": "total",
        "units_required": None,
        "source_url": "https://web.mit.edu/tuition",
        "is_estimate": False,
        "confidence": 0.92,
    },
    "estimated_total_tuition": {
        "estimated_total_tuition": 110000,
        "currency": "USD",
        "program_duration_years": 2,
        "comparable_institutions": ["Stanford University"],
        "reasoning": "Comparable private universities charge about 55000 per year",
        "source": "https://www.stanford.edu/tuition",
        "confidence": 0.9,
    },
    "cityCentre1Beds": {
        "currency": "USD",
        "source": "https://www.numbeo.com/cost-of-living/in/Cambridge",
        "cityCentre1Beds": {"average": 2800, "range": {"min": 2400, "max": 3200}},
        "outsideCityCentre1Beds": {"average": 2100, "range": {"min": 1800, "max": 2500}},
        "cityCentre3Beds": {"average": 5000, "range": {"min": 4200, "max": 5900}},
        "outsideCityCentre3Beds": {"average": 3500, "range": {"min": 3000, "max": 4200}},
    },
    "monthly_cost_excluding_rent": {
        "monthly_cost_excluding_rent": 1500,
        "range": {"min": 1200, "max": 1800},
        "currency": "USD",
        "source": "https://www.numbeo.com/cost-of-living/in/Cambridge",
        "confidence": 0.7,
    },
    "application_fee": {
        "application_fee": 75,
        "currency": "USD",
        "source_url": "https://gradadmissions.mit.edu/apply",
        "confidence": 0.85,
    },
    "insurance_fee": {
        "insurance_fee": 3800,
        "currency": "USD",
        "source_url": "https://health.mit.edu/insurance",
        "is_mandatory": True,
        "confidence": 0.8,
    },
}

DEFAULT_RECOMMENDATIONS = [
    "Apply for departmental research assistantships.",
    "Open a local bank account to avoid foreign transaction fees.",
    "Buy used textbooks or use the library reserve collection.",
    "Plan travel home outside peak holiday season.",
]


class FakeOracle:
    """Scripted CostOracle.

    Args:
        answers: Extraction answers by schema key; a value may be a dict
            (sent as JSON), a raw string, an Exception (raised) or a list of
            those (consumed one per call, last one repeated)
        search_text: Answer to free-text search prompts
        recommendations: Answer to the recommendation prompt (list, raw
            string or Exception)
        fail_all: Raise on every call
        fail_on: Raise ConnectionError when any of these substrings is in the prompt
        delay: Seconds to sleep before answering
    """

    def __init__(
        self,
        answers: Optional[dict[str, Any]] = None,
        search_text: str = "Research notes from official pages.",
        recommendations: Any = None,
        fail_all: bool = False,
        fail_on: tuple[str, ...] = (),
        delay: float = 0.0,
    ) -> None:
        self.answers = copy.deepcopy(DEFAULT_ANSWERS)
        if answers:
            self.answers.update(answers)
        self.search_text = search_text
        self.recommendations = (
            DEFAULT_RECOMMENDATIONS if recommendations is None else recommendations
        )
        self.fail_all = fail_all
        self.fail_on = fail_on
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def ask(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        web_search: bool = False,
        model: Optional[str] = None,
    ) -> str:
        self.calls.append({"prompt": prompt, "web_search": web_search, "model": model})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_all:
            raise ConnectionError("oracle unavailable")
        for marker in self.fail_on:
            if marker in prompt:
                raise ConnectionError(f"oracle failed for {marker}")

        if EXTRACT_MARKER in prompt:
            for key, answer in self.answers.items():
                if f'"{key}"' in prompt:
                    return self._render(self._next(key, answer))
            raise ValueError("No scripted extraction answer")

        if RECOMMENDATION_MARKER in prompt:
            return self._render(self.recommendations)

        return self.search_text

    def _next(self, key: str, answer: Any) -> Any:
        if isinstance(answer, list) and answer:
            if len(answer) > 1:
                self.answers[key] = answer[1:]
            return answer[0]
        return answer

    @staticmethod
    def _render(answer: Any) -> str:
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, str):
            return answer
        return json.dumps(answer)

    def extraction_calls(self, key: str) -> int:
        return sum(
            1
            for call in self.calls
            if EXTRACT_MARKER in call["prompt"] and f'"{key}"' in call["prompt"]
        )


@pytest.fixture
def make_oracle() -> Callable[..., FakeOracle]:
    return FakeOracle


@pytest.fixture
def params() -> SystemParams:
    """Defaults with no retry backoff."""
    return SystemParams(gateway={"max_attempts": 2, "backoff_seconds": 0.0})


@pytest.fixture
def make_gateway(params: SystemParams) -> Callable[[Any], OracleGateway]:
    def factory(oracle: Any) -> OracleGateway:
        return OracleGateway.from_params(oracle, params, correlation_id="test-run")

    return factory


@pytest.fixture
def request_data() -> dict[str, Any]:
    return {
        "country": "US",
        "university": "MIT",
        "program": "Computer Science",
        "level": "graduate",
        "lifestyle": "standard",
        "accommodation": "shared",
        "locationPreference": "cityCentre",
    }


@pytest.fixture
def user_input(request_data: dict[str, Any]) -> UserInput:
    return UserInput.model_validate(request_data)
