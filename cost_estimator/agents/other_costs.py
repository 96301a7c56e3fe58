"""Ancillary Fee Resolver.

Runs three lookups concurrently:
- Application fee: exact-program search on the official site, then a general
  search; each accepted only above the application-fee confidence threshold
  and only when cited from the university's own domain.
  The static country/level table is the last resort.
- Visa fee: static table, no oracle call.
- Health insurance: kept only when the plan is mandatory, with high
  confidence and a validated official source; otherwise omitted from the
  result.
"""

import asyncio
from typing import Any, Optional

from cost_estimator.data.reference import (
    APPLICATION_FEES,
    VISA_FEES,
    UniversityEntry,
    currency_for,
    find_university,
)
from cost_estimator.models.config import SystemParams
from cost_estimator.models.costs import FeeItem, OtherCosts
from cost_estimator.models.user_input import UserInput
from cost_estimator.utils.amounts import parse_amount, parse_positive_amount
from cost_estimator.utils.confidence import normalize_confidence
from cost_estimator.utils.logger import get_logger
from cost_estimator.utils.oracle_gateway import OracleGateway
from cost_estimator.utils.prompt_loader import render_prompt
from cost_estimator.utils.source_validation import (
    matches_official_domain,
    validate_source_url,
)

APPLICATION_SCHEMA: dict[str, Any] = {
    "application_fee": 90,
    "currency": "USD",
    "source_url": "https://www.university.edu/admissions/apply",
    "confidence": 0.8,
}

INSURANCE_SCHEMA: dict[str, Any] = {
    "insurance_fee": 3500,
    "currency": "USD",
    "source_url": "https://www.university.edu/health-insurance",
    "is_mandatory": True,
    "confidence": 0.8,
}

VISA_CONFIDENCE = 0.9
STATIC_APPLICATION_CONFIDENCE = 0.5


class OtherCostsResolver:
    """Resolves application, visa and health-insurance fees for a request."""

    def __init__(
        self,
        gateway: OracleGateway,
        params: Optional[SystemParams] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.gateway = gateway
        self.params = params or SystemParams()
        self.correlation_id = correlation_id
        self.logger = get_logger(
            correlation_id=correlation_id,
            phase="other",
            component="other_costs_resolver",
        )

    async def resolve(self, user_input: UserInput) -> OtherCosts:
        entry = find_university(user_input.country, user_input.university)

        application_fee, visa_fee, health_insurance = await asyncio.gather(
            self._application_fee(user_input, entry),
            self._visa_fee(user_input),
            self._health_insurance(user_input, entry),
        )

        if health_insurance is None:
            self.logger.info(
                "Health insurance omitted, no confident official source",
                university=entry.name,
            )

        self.logger.info(
            "Other costs resolved",
            application_fee=application_fee.amount,
            visa_fee=visa_fee.amount,
            has_insurance=health_insurance is not None,
        )
        return OtherCosts(
            application_fee=application_fee,
            visa_fee=visa_fee,
            health_insurance=health_insurance,
            currency=currency_for(user_input.country),
        )

    def fallback(self, user_input: UserInput) -> OtherCosts:
        """Static application and visa fees; insurance omitted."""
        return OtherCosts(
            application_fee=self._static_application_fee(user_input),
            visa_fee=self._static_visa_fee(user_input),
            health_insurance=None,
            currency=currency_for(user_input.country),
        )

    def _static_application_fee(self, user_input: UserInput) -> FeeItem:
        return FeeItem(
            amount=APPLICATION_FEES[user_input.country][user_input.level],
            source=(
                f"Typical {user_input.level.value} application fee "
                f"in {user_input.country.value}"
            ),
            confidence=STATIC_APPLICATION_CONFIDENCE,
        )

    def _static_visa_fee(self, user_input: UserInput) -> FeeItem:
        amount, source = VISA_FEES[user_input.country]
        return FeeItem(amount=amount, source=source, confidence=VISA_CONFIDENCE)

    async def _visa_fee(self, user_input: UserInput) -> FeeItem:
        return self._static_visa_fee(user_input)

    def _accept(
        self, data: dict[str, Any], user_input: UserInput, amount_key: str, threshold: float
    ) -> bool:
        """Currency matches, amount usable, confidence above threshold, real source."""
        if str(data["currency"]).upper() != currency_for(user_input.country).value:
            return False
        if parse_amount(data[amount_key]) is None:
            return False
        confidence = normalize_confidence(
            data["confidence"], default=0.0, correlation_id=self.correlation_id
        )
        return confidence > threshold and validate_source_url(data["source_url"])

    async def _application_fee(
        self, user_input: UserInput, entry: UniversityEntry
    ) -> FeeItem:
        threshold = self.params.confidence_thresholds.application_fee

        for exact_program in (True, False):
            prompt = render_prompt(
                "fees/application_search.j2",
                correlation_id=self.correlation_id,
                exact_program=exact_program,
                university=entry.name,
                website=entry.website,
                program=user_input.program,
                level=user_input.level.value,
                currency=currency_for(user_input.country).value,
            )
            description = "program application fee" if exact_program else "general application fee"
            research = await self.gateway.safe_search(
                prompt,
                fallback="",
                model=self.params.oracle.search_model,
                description=description,
            )
            if not research:
                continue

            data = await self.gateway.resolve_with_fallback(
                research,
                APPLICATION_SCHEMA,
                fallback=None,
                accept=lambda d: self._accept(d, user_input, "application_fee", threshold)
                and parse_amount(d["application_fee"]) >= 0
                and matches_official_domain(d["source_url"], entry.website),
                description=description,
            )
            if data is not None:
                return FeeItem(
                    amount=parse_amount(data["application_fee"]),
                    source=data["source_url"],
                    confidence=normalize_confidence(data["confidence"]),
                )

        self.logger.warning(
            "Using static application fee",
            resolver="other_costs",
            country=user_input.country.value,
            level=user_input.level.value,
        )
        return self._static_application_fee(user_input)

    async def _health_insurance(
        self, user_input: UserInput, entry: UniversityEntry
    ) -> Optional[FeeItem]:
        prompt = render_prompt(
            "fees/insurance_search.j2",
            correlation_id=self.correlation_id,
            university=entry.name,
            website=entry.website,
            level=user_input.level.value,
            country=user_input.country.value,
            currency=currency_for(user_input.country).value,
        )
        research = await self.gateway.safe_search(
            prompt,
            fallback="",
            model=self.params.oracle.search_model,
            description="health insurance",
        )
        if not research:
            return None

        threshold = self.params.confidence_thresholds.health_insurance
        data = await self.gateway.resolve_with_fallback(
            research,
            INSURANCE_SCHEMA,
            fallback=None,
            accept=lambda d: self._accept(d, user_input, "insurance_fee", threshold)
            and parse_positive_amount(d["insurance_fee"]) is not None
            and d["is_mandatory"] is True,
            description="health insurance",
        )
        if data is None:
            return None

        return FeeItem(
            amount=parse_positive_amount(data["insurance_fee"]),
            source=data["source_url"],
            confidence=normalize_confidence(data["confidence"]),
        )
