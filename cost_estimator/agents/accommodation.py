"""Accommodation Resolver.

Derives the monthly rent range for the requested housing type from a rent
index of four categories (1-bedroom and 3-bedroom, in and outside the city
centre):

- dormitory: 1-bedroom x 0.7
- shared: 1-bedroom / 2
- studio: 1-bedroom
- apartment: 3-bedroom

The scaling applies to both range bounds. Any failure falls back to the
static country / location / type table.
"""

from typing import Any, Optional

from cost_estimator.data.reference import (
    accommodation_baseline,
    currency_for,
    numbeo_url,
    resolve_city,
)
from cost_estimator.models.config import SystemParams
from cost_estimator.models.costs import AccommodationCost, CostRange
from cost_estimator.models.user_input import (
    AccommodationType,
    LocationPreference,
    UserInput,
)
from cost_estimator.utils.amounts import parse_positive_amount, round_half_up
from cost_estimator.utils.logger import get_logger
from cost_estimator.utils.oracle_gateway import OracleGateway
from cost_estimator.utils.prompt_loader import render_prompt
from cost_estimator.utils.source_validation import validate_source_url

RENT_SCHEMA: dict[str, Any] = {
    "currency": "USD",
    "source": "https://www.numbeo.com/cost-of-living/in/Boston",
    "cityCentre1Beds": {"average": 2800, "range": {"min": 2400, "max": 3200}},
    "outsideCityCentre1Beds": {"average": 2100, "range": {"min": 1800, "max": 2500}},
    "cityCentre3Beds": {"average": 5000, "range": {"min": 4200, "max": 5900}},
    "outsideCityCentre3Beds": {"average": 3500, "range": {"min": 3000, "max": 4200}},
}

INDEX_CONFIDENCE = 0.8
UNCITED_CONFIDENCE = 0.5
FALLBACK_CONFIDENCE = 0.4

# housing type -> (bedrooms, scale factor, explanation)
SCALING: dict[AccommodationType, tuple[int, float, str]] = {
    AccommodationType.DORMITORY: (1, 0.7, "dormitory estimated at 70% of a 1-bedroom rent"),
    AccommodationType.SHARED: (1, 0.5, "shared housing estimated as half of a 1-bedroom rent"),
    AccommodationType.STUDIO: (1, 1.0, "studio priced as a 1-bedroom apartment"),
    AccommodationType.APARTMENT: (3, 1.0, "apartment priced as a 3-bedroom apartment"),
}

_LOCATION_TEXT = {
    LocationPreference.CITY_CENTRE: "in the city centre",
    LocationPreference.OUTSIDE_CITY_CENTRE: "outside the city centre",
}


def category_key(location: LocationPreference, bedrooms: int) -> str:
    return f"{location.value}{bedrooms}Beds"


def scale_range(low: float, high: float, factor: float) -> CostRange:
    return CostRange(min=round_half_up(low * factor), max=round_half_up(high * factor))


class AccommodationResolver:
    """Resolves the monthly rent range for a request."""

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
            component="accommodation_resolver",
        )

    async def resolve(self, user_input: UserInput) -> AccommodationCost:
        city = resolve_city(user_input)
        currency = currency_for(user_input.country)

        prompt = render_prompt(
            "accommodation/rent_search.j2",
            correlation_id=self.correlation_id,
            city=city,
            country=user_input.country.value,
            currency=currency.value,
            index_url=numbeo_url(city),
        )
        research = await self.gateway.safe_search(
            prompt,
            fallback="",
            model=self.params.oracle.search_model,
            description="rent index",
        )
        data = None
        if research:
            data = await self.gateway.safe_extract(
                research, RENT_SCHEMA, fallback=None, description="rent index"
            )

        cost = self._from_index(data, user_input, city) if data is not None else None
        if cost is None:
            self.logger.warning(
                "Using static accommodation baseline",
                resolver="accommodation",
                country=user_input.country.value,
                accommodation=user_input.accommodation.value,
            )
            cost = self.fallback(user_input)

        self.logger.info(
            "Accommodation resolved",
            min=cost.monthly_range.min,
            max=cost.monthly_range.max,
            confidence=cost.confidence,
        )
        return cost

    def fallback(self, user_input: UserInput) -> AccommodationCost:
        location = user_input.location_preference
        accommodation = user_input.accommodation
        return AccommodationCost(
            monthly_range=accommodation_baseline(
                user_input.country, location, accommodation
            ),
            currency=currency_for(user_input.country),
            source=f"Static accommodation baseline for {user_input.country.value}",
            confidence=FALLBACK_CONFIDENCE,
            reasoning=(
                f"Typical {accommodation.value} rent {_LOCATION_TEXT[location]} "
                f"for international students in {user_input.country.value}"
            ),
        )

    def _from_index(
        self, data: dict[str, Any], user_input: UserInput, city: str
    ) -> Optional[AccommodationCost]:
        currency = currency_for(user_input.country)
        if str(data["currency"]).upper() != currency.value:
            self.logger.warning(
                "Rent index currency mismatch",
                expected=currency.value,
                received=data["currency"],
            )
            return None

        bedrooms, factor, explanation = SCALING[user_input.accommodation]
        key = category_key(user_input.location_preference, bedrooms)
        category = data.get(key)
        bounds = category.get("range") if isinstance(category, dict) else None
        if not isinstance(bounds, dict):
            self.logger.warning("Rent category missing range", category=key)
            return None

        low = parse_positive_amount(bounds.get("min"))
        high = parse_positive_amount(bounds.get("max"))
        if low is None or high is None or low > high:
            self.logger.warning("Rent category range unusable", category=key, range=bounds)
            return None

        source = str(data["source"] or "")
        confidence = INDEX_CONFIDENCE
        if not validate_source_url(source):
            self.logger.warning("Rent index answer cites no usable source", source=source[:200])
            source = f"Rent index figures for {city} (source not cited)"
            confidence = UNCITED_CONFIDENCE

        location_text = _LOCATION_TEXT[user_input.location_preference]
        return AccommodationCost(
            monthly_range=scale_range(low, high, factor),
            currency=currency,
            source=source,
            confidence=confidence,
            reasoning=(
                f"Based on {bedrooms}-bedroom rents {location_text} in {city}; "
                f"{explanation}"
            ),
        )
