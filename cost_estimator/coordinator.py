"""
Estimation Coordinator

Orchestrates one estimation run:
1. Validation gate (no oracle call on invalid input)
2. Tuition, accommodation, living-cost and fee resolvers
3. Report synthesis

Resolvers run sequentially (default) or concurrently with a settle-all
barrier. A resolver that raises is replaced by its emergency dataset while
the others keep their real values. Progress is reported through an optional
callback whose exceptions are logged and ignored.
"""

import asyncio
import uuid
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from cost_estimator.agents.accommodation import AccommodationResolver
from cost_estimator.agents.living_cost import LivingCostResolver, merge_living
from cost_estimator.agents.other_costs import OtherCostsResolver
from cost_estimator.agents.report import ReportSynthesizer
from cost_estimator.agents.tuition import TuitionResolver
from cost_estimator.data.reference import UniversityNotFoundError, find_university
from cost_estimator.models.config import ExecutionStrategy, SystemParams
from cost_estimator.models.costs import (
    AccommodationCost,
    CostEstimateReport,
    EstimationProgress,
    EstimationStep,
    NonRentLivingCost,
    OtherCosts,
    TuitionRecord,
    ValidationResult,
)
from cost_estimator.models.user_input import REQUIRED_FIELDS, UserInput
from cost_estimator.utils.llm_helpers import CostOracle
from cost_estimator.utils.logger import get_logger
from cost_estimator.utils.oracle_gateway import OracleGateway

ProgressCallback = Callable[[EstimationProgress], Any]
EstimationResult = Union[CostEstimateReport, ValidationResult]


class EstimationError(Exception):
    """Base class for estimation run failures."""

    pass


class EstimationTimeoutError(EstimationError):
    """Raised when a run exceeds its time budget. No partial report is returned."""

    pass


def _camel(field: str) -> str:
    head, *rest = field.split("_")
    return head + "".join(part.title() for part in rest)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_request(
    request: Union[UserInput, Mapping[str, Any]],
) -> tuple[ValidationResult, Optional[UserInput]]:
    """Validation gate.

    Reports every missing required field at once, invalid enum values and
    unknown universities.

    Returns:
        (result, parsed UserInput or None when invalid)
    """
    if isinstance(request, UserInput):
        user_input: Optional[UserInput] = request
        missing: list[str] = []
        errors: list[str] = []
    else:
        missing = [
            field
            for field in REQUIRED_FIELDS
            if _is_blank(request.get(field, request.get(_camel(field))))
        ]
        errors = [f"Missing required field: {field}" for field in missing]
        user_input = None
        try:
            user_input = UserInput.model_validate(dict(request))
        except ValidationError as e:
            for error in e.errors():
                field = to_snake(str(error["loc"][0])) if error["loc"] else "input"
                if field in missing:
                    continue
                errors.append(f"Invalid value for {field}: {error['msg']}")

    if user_input is not None:
        try:
            find_university(user_input.country, user_input.university)
        except UniversityNotFoundError as e:
            errors.append(str(e))
            user_input = None

    if errors:
        return ValidationResult(is_valid=False, errors=errors, missing_fields=missing), None
    return ValidationResult(is_valid=True), user_input


class EstimationCoordinator:
    """Runs the full estimation pipeline for one request."""

    def __init__(
        self,
        oracle: CostOracle,
        params: Optional[SystemParams] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.params = params or SystemParams()
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.logger = get_logger(
            correlation_id=self.correlation_id,
            phase="coordination",
            component="estimation_coordinator",
        )

        self.gateway = OracleGateway.from_params(oracle, self.params, self.correlation_id)
        self.tuition = TuitionResolver(self.gateway, self.params, self.correlation_id)
        self.accommodation = AccommodationResolver(
            self.gateway, self.params, self.correlation_id
        )
        self.living = LivingCostResolver(self.gateway, self.params, self.correlation_id)
        self.other_costs = OtherCostsResolver(self.gateway, self.params, self.correlation_id)
        self.report = ReportSynthesizer(self.gateway, self.params, self.correlation_id)

    async def run(
        self,
        request: Union[UserInput, Mapping[str, Any]],
        on_progress: Optional[ProgressCallback] = None,
    ) -> EstimationResult:
        """
        Validate the request and produce a report.

        Returns:
            CostEstimateReport, or ValidationResult when the request is invalid
        """
        validation, user_input = validate_request(request)
        if user_input is None:
            self.logger.warning(
                "Request failed validation",
                errors=validation.errors,
                missing_fields=validation.missing_fields,
            )
            return validation

        self.logger.info(
            "Estimation started",
            university=user_input.university,
            country=user_input.country.value,
            strategy=self.params.execution.strategy.value,
        )

        if self.params.execution.strategy is ExecutionStrategy.PARALLEL:
            tuition, accommodation, living, fees = await self._resolve_parallel(
                user_input, on_progress
            )
        else:
            tuition, accommodation, living, fees = await self._resolve_sequential(
                user_input, on_progress
            )

        self._emit(on_progress, "report", 90, "Generating report and recommendations")
        report = await self.report.synthesize(
            user_input, tuition, merge_living(living, accommodation), fees
        )
        self._emit(on_progress, "complete", 100, "Estimation complete")

        self.logger.info(
            "Estimation completed",
            total_cost=report.summary.total_cost.amount,
            currency=report.summary.currency.value,
        )
        return report

    async def run_with_timeout(
        self,
        request: Union[UserInput, Mapping[str, Any]],
        on_progress: Optional[ProgressCallback] = None,
        timeout: Optional[float] = None,
    ) -> EstimationResult:
        """
        Run with a time budget, cancelling in-flight oracle calls on expiry.

        Raises:
            EstimationTimeoutError: If the run does not finish within timeout seconds
        """
        budget = timeout if timeout is not None else self.params.timeouts.estimation_run
        try:
            return await asyncio.wait_for(self.run(request, on_progress), timeout=budget)
        except asyncio.TimeoutError:
            self.logger.error("Estimation timed out", timeout=budget)
            raise EstimationTimeoutError(
                f"Estimation did not complete within {budget} seconds"
            ) from None

    async def _resolve_sequential(
        self, user_input: UserInput, on_progress: Optional[ProgressCallback]
    ) -> tuple[TuitionRecord, AccommodationCost, NonRentLivingCost, OtherCosts]:
        self._emit(on_progress, "tuition", 10, "Researching tuition")
        tuition = await self._settle(
            "tuition", self.tuition.resolve(user_input), self.tuition.fallback, user_input
        )
        self._emit(on_progress, "tuition", 30, "Tuition resolved")

        self._emit(on_progress, "living", 40, "Researching living costs")
        accommodation = await self._settle(
            "accommodation",
            self.accommodation.resolve(user_input),
            self.accommodation.fallback,
            user_input,
        )
        living = await self._settle(
            "living", self.living.resolve(user_input), self.living.fallback, user_input
        )
        self._emit(on_progress, "living", 60, "Living costs resolved")

        self._emit(on_progress, "other", 70, "Researching application, visa and insurance fees")
        fees = await self._settle(
            "other_costs",
            self.other_costs.resolve(user_input),
            self.other_costs.fallback,
            user_input,
        )
        self._emit(on_progress, "other", 80, "Fees resolved")

        return tuition, accommodation, living, fees

    async def _resolve_parallel(
        self, user_input: UserInput, on_progress: Optional[ProgressCallback]
    ) -> tuple[TuitionRecord, AccommodationCost, NonRentLivingCost, OtherCosts]:
        self._emit(on_progress, "tuition", 10, "Researching all cost components")

        results = await asyncio.gather(
            self.tuition.resolve(user_input),
            self.accommodation.resolve(user_input),
            self.living.resolve(user_input),
            self.other_costs.resolve(user_input),
            return_exceptions=True,
        )

        tuition = self._recover("tuition", results[0], self.tuition.fallback, user_input)
        self._emit(on_progress, "tuition", 30, "Tuition resolved")
        accommodation = self._recover(
            "accommodation", results[1], self.accommodation.fallback, user_input
        )
        living = self._recover("living", results[2], self.living.fallback, user_input)
        self._emit(on_progress, "living", 60, "Living costs resolved")
        fees = self._recover("other_costs", results[3], self.other_costs.fallback, user_input)
        self._emit(on_progress, "other", 80, "Fees resolved")

        return tuition, accommodation, living, fees

    async def _settle(self, name: str, pending, fallback, user_input: UserInput):
        """Await a resolver, substituting its emergency dataset on failure."""
        try:
            return await pending
        except asyncio.CancelledError:
            raise
        except Exception as e:
            return self._recover(name, e, fallback, user_input)

    def _recover(self, name: str, result, fallback, user_input: UserInput):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            self.logger.error(
                "Resolver failed, using emergency data",
                resolver=name,
                error_type=type(result).__name__,
                reason=str(result)[:200],
            )
            return fallback(user_input)
        return result

    def _emit(
        self,
        on_progress: Optional[ProgressCallback],
        step: EstimationStep,
        progress: int,
        message: str,
    ) -> None:
        if on_progress is None:
            return
        try:
            on_progress(EstimationProgress(step=step, progress=progress, message=message))
        except Exception as e:
            self.logger.warning(
                "Progress callback raised, ignoring",
                step=step,
                progress=progress,
                error=str(e),
            )
