"""Non-accommodation living-cost resolver.

Monthly cost of living excluding rent for the target city. The oracle's
stated range is used when it contains the figure; otherwise the range is
+/-20% of the figure. Fallback: per-country baseline x lifestyle multiplier.
"""

from typing import Any, Optional

from cost_estimator.data.reference import (
    LIFESTYLE_MULTIPLIERS,
    LIVING_BASELINES,
    currency_for,
    numbeo_url,
    resolve_city,
)
from cost_estimator.models.config import SystemParams
from cost_estimator.models.costs import (
    AccommodationCost,
    AmountWithRange,
    CostRange,
    LivingCosts,
    NonRentLivingCost,
)
from cost_estimator.models.user_input import UserInput
from cost_estimator.utils.amounts import parse_positive_amount
from cost_estimator.utils.confidence import normalize_confidence
from cost_estimator.utils.logger import get_logger
from cost_estimator.utils.oracle_gateway import OracleGateway
from cost_estimator.utils.prompt_loader import render_prompt
from cost_estimator.utils.source_validation import validate_source_url

LIVING_SCHEMA: dict[str, Any] = {
    "monthly_cost_excluding_rent": 1200,
    "range": {"min": 1000, "max": 1450},
    "currency": "USD",
    "source": "https://www.numbeo.com/cost-of-living/in/Boston",
    "confidence": 0.7,
}

RANGE_SPREAD = 0.2
FALLBACK_CONFIDENCE = 0.4
UNCITED_CONFIDENCE = 0.5


def spread_range(amount: float, spread: float = RANGE_SPREAD) -> CostRange:
    return CostRange(
        min=round(amount * (1 - spread), 2), max=round(amount * (1 + spread), 2)
    )


def merge_living(
    non_rent: NonRentLivingCost, accommodation: AccommodationCost
) -> LivingCosts:
    """Combine the non-rent figure and the rent estimate into LivingCosts."""
    sources: list[str] = []
    for source in (non_rent.source, accommodation.source):
        if source and source not in sources:
            sources.append(source)

    confidences = [
        c for c in (non_rent.confidence, accommodation.confidence) if c is not None
    ]
    return LivingCosts(
        total=AmountWithRange(amount=non_rent.amount, range=non_rent.range),
        accommodation=accommodation,
        currency=non_rent.currency,
        sources=sources,
        confidence=min(confidences) if confidences else None,
    )


class LivingCostResolver:
    """Resolves the monthly non-rent living cost for a request."""

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
            phase="living",
            component="living_cost_resolver",
        )

    async def resolve(self, user_input: UserInput) -> NonRentLivingCost:
        city = resolve_city(user_input)
        currency = currency_for(user_input.country)

        prompt = render_prompt(
            "living/cost_search.j2",
            correlation_id=self.correlation_id,
            city=city,
            country=user_input.country.value,
            currency=currency.value,
            lifestyle=user_input.lifestyle.value,
            diet=user_input.diet.value if user_input.diet else None,
            transportation=(
                user_input.transportation.value if user_input.transportation else None
            ),
            index_url=numbeo_url(city),
        )
        research = await self.gateway.safe_search(
            prompt,
            fallback="",
            model=self.params.oracle.search_model,
            description="living cost",
        )
        data = None
        if research:
            data = await self.gateway.safe_extract(
                research, LIVING_SCHEMA, fallback=None, description="living cost"
            )

        cost = self._from_answer(data, user_input, city) if data is not None else None
        if cost is None:
            self.logger.warning(
                "Using static living-cost baseline",
                resolver="living",
                country=user_input.country.value,
                lifestyle=user_input.lifestyle.value,
            )
            cost = self.fallback(user_input)

        self.logger.info(
            "Living cost resolved", amount=cost.amount, confidence=cost.confidence
        )
        return cost

    def fallback(self, user_input: UserInput) -> NonRentLivingCost:
        amount = round(
            LIVING_BASELINES[user_input.country]
            * LIFESTYLE_MULTIPLIERS[user_input.lifestyle],
            2,
        )
        return NonRentLivingCost(
            amount=amount,
            range=spread_range(amount),
            currency=currency_for(user_input.country),
            source=(
                f"Static {user_input.lifestyle.value} cost-of-living baseline "
                f"for {user_input.country.value}"
            ),
            confidence=FALLBACK_CONFIDENCE,
        )

    def _from_answer(
        self, data: dict[str, Any], user_input: UserInput, city: str
    ) -> Optional[NonRentLivingCost]:
        currency = currency_for(user_input.country)
        if str(data["currency"]).upper() != currency.value:
            self.logger.warning(
                "Living cost currency mismatch",
                expected=currency.value,
                received=data["currency"],
            )
            return None

        amount = parse_positive_amount(data["monthly_cost_excluding_rent"])
        if amount is None:
            return None
        amount = round(amount, 2)

        cost_range = spread_range(amount)
        stated = data["range"]
        if isinstance(stated, dict):
            low = parse_positive_amount(stated.get("min"))
            high = parse_positive_amount(stated.get("max"))
            if low is not None and high is not None and low <= amount <= high:
                cost_range = CostRange(min=low, max=high)

        confidence = normalize_confidence(
            data["confidence"],
            default=0.6,
            context="living cost",
            correlation_id=self.correlation_id,
        )
        source = str(data["source"] or "")
        if not validate_source_url(source):
            self.logger.warning("Living cost answer cites no usable source", source=source[:200])
            source = f"Cost-of-living figures for {city} (source not cited)"
            confidence = min(confidence, UNCITED_CONFIDENCE)

        return NonRentLivingCost(
            amount=amount,
            range=cost_range,
            currency=currency,
            source=source,
            confidence=confidence,
        )
