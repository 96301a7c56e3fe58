"""Tuition Resolver.

Resolves the whole-program tuition for one request through three paths:
1. Official figure: web search of the university's site, then structured
   extraction. Kept only when the source is a real URL, the figure is not an
   estimate and confidence reaches the official threshold.
2. Market estimate: comparable-institution reasoning, confidence clamped to
   the estimate band.
3. Static band: per-country / per-level / public-private annual band times
   the program duration.

Confidence semantics:
- 0.9-1.0: exact official figure
- 0.7-0.8: official but approximate
- 0.4-0.6: reasoned estimate
- 0.3: static table
"""

from typing import Any, Optional

from cost_estimator.data.reference import (
    DEFAULT_DURATIONS,
    TUITION_BANDS,
    UniversityEntry,
    currency_for,
    find_university,
    resolve_city,
)
from cost_estimator.models.config import SystemParams
from cost_estimator.models.costs import TuitionRecord
from cost_estimator.models.user_input import UserInput
from cost_estimator.utils.amounts import parse_positive_amount
from cost_estimator.utils.confidence import clamp_confidence, normalize_confidence
from cost_estimator.utils.logger import get_logger
from cost_estimator.utils.oracle_gateway import OracleGateway
from cost_estimator.utils.prompt_loader import render_prompt
from cost_estimator.utils.source_validation import (
    check_url_reachable,
    matches_official_domain,
    validate_source_url,
)

OFFICIAL_SCHEMA: dict[str, Any] = {
    "total_tuition": 90000,
    "currency": "USD",
    "program_duration_years": 2,
    "pricing_basis": "total",
    "units_required": None,
    "source_url": "https://www.university.edu/tuition-and-fees",
    "is_estimate": False,
    "confidence": 0.9,
}

ESTIMATE_SCHEMA: dict[str, Any] = {
    "estimated_total_tuition": 80000,
    "currency": "USD",
    "program_duration_years": 2,
    "comparable_institutions": ["Comparable University"],
    "reasoning": "Comparable public universities charge about 40000 per year",
    "source": "https://www.comparable-university.edu/tuition",
    "confidence": 0.5,
}

# pricing basis -> periods per program year
_PRICING_PERIODS = {
    "total": None,
    "program": None,
    "annual": 1,
    "year": 1,
    "per year": 1,
    "yearly": 1,
    "semester": 2,
    "per semester": 2,
}

_PER_UNIT_BASES = {
    "credit",
    "per credit",
    "credit hour",
    "per credit hour",
    "unit",
    "per unit",
    "module",
    "per module",
}

MAX_DURATION_YEARS = 10.0


def program_duration(raw: Any, user_input: UserInput) -> float:
    """Oracle duration if usable, else the user's hint, else the country default.

    Always > 0.
    """
    years = parse_positive_amount(raw)
    if years is not None and years <= MAX_DURATION_YEARS:
        return years
    if user_input.program_duration:
        return user_input.program_duration
    return DEFAULT_DURATIONS[user_input.country][user_input.level]


def whole_program_total(
    amount: float, pricing_basis: Any, duration: float, units_required: Any = None
) -> Optional[float]:
    """Convert a quoted figure to a whole-program sum.

    Per-credit, per-unit and per-module prices are multiplied by the units
    required to graduate. Returns None when those units are missing or the
    basis is unknown.
    """
    basis = str(pricing_basis or "total").strip().lower().replace("_", " ")
    if basis in _PER_UNIT_BASES:
        units = parse_positive_amount(units_required)
        return amount * units if units is not None else None
    if basis not in _PRICING_PERIODS:
        return None
    periods = _PRICING_PERIODS[basis]
    if periods is None:
        return amount
    return amount * periods * duration


class TuitionResolver:
    """Resolves whole-program tuition for a request."""

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
            phase="tuition",
            component="tuition_resolver",
        )

    async def resolve(self, user_input: UserInput) -> TuitionRecord:
        """Resolve tuition, escalating official -> estimate -> static band.

        Raises:
            UniversityNotFoundError: If the university is not in the directory
        """
        entry = find_university(user_input.country, user_input.university)

        record = await self._official(user_input, entry)
        if record is None:
            record = await self._estimate(user_input, entry)
        if record is None:
            self.logger.warning(
                "Using static tuition band",
                resolver="tuition",
                university=entry.name,
            )
            record = self.fallback(user_input)

        self.logger.info(
            "Tuition resolved",
            university=entry.name,
            total=record.total,
            duration=record.program_duration,
            confidence=record.confidence,
            is_estimate=record.is_estimate,
        )
        return record

    def fallback(self, user_input: UserInput) -> TuitionRecord:
        """Static band x duration at static-table confidence."""
        entry = find_university(user_input.country, user_input.university)
        annual = TUITION_BANDS[user_input.country][user_input.level][
            entry.institution_type
        ]
        duration = program_duration(None, user_input)
        return TuitionRecord(
            total=annual * duration,
            currency=currency_for(user_input.country),
            program_duration=duration,
            source=(
                f"Static {entry.institution_type.value} university "
                f"{user_input.level.value} tuition band for {user_input.country.value}"
            ),
            is_estimate=True,
            confidence=self.params.tuition_confidence.static_table,
        )

    def _prompt_context(self, user_input: UserInput, entry: UniversityEntry) -> dict:
        return {
            "university": entry.name,
            "website": entry.website,
            "program": user_input.program,
            "level": user_input.level.value,
            "country": user_input.country.value,
            "city": resolve_city(user_input),
            "currency": currency_for(user_input.country).value,
            "institution_type": entry.institution_type.value,
        }

    async def _official(
        self, user_input: UserInput, entry: UniversityEntry
    ) -> Optional[TuitionRecord]:
        prompt = render_prompt(
            "tuition/official_search.j2",
            correlation_id=self.correlation_id,
            **self._prompt_context(user_input, entry),
        )
        research = await self.gateway.safe_search(
            prompt,
            fallback="",
            model=self.params.oracle.search_model,
            description="official tuition",
        )
        if not research:
            return None

        data = await self.gateway.safe_extract(
            research, OFFICIAL_SCHEMA, fallback=None, description="official tuition"
        )
        if data is None:
            return None

        expected_currency = currency_for(user_input.country)
        if str(data["currency"]).upper() != expected_currency.value:
            self.logger.warning(
                "Official tuition currency mismatch, escalating",
                expected=expected_currency.value,
                received=data["currency"],
            )
            return None

        amount = parse_positive_amount(data["total_tuition"])
        if amount is None:
            self.logger.warning("Official tuition amount unusable", raw=data["total_tuition"])
            return None

        duration = program_duration(data["program_duration_years"], user_input)
        total = whole_program_total(
            amount, data["pricing_basis"], duration, data["units_required"]
        )
        if total is None:
            self.logger.warning(
                "Untrusted pricing basis, escalating",
                pricing_basis=data["pricing_basis"],
            )
            return None

        source = str(data["source_url"] or "")
        if not validate_source_url(source):
            self.logger.warning("Official tuition source rejected", source=source[:200])
            return None
        if self.params.execution.verify_source_urls and not await check_url_reachable(
            source, timeout=self.params.timeouts.url_check
        ):
            self.logger.warning("Official tuition source unreachable", source=source)
            return None

        confidence = normalize_confidence(
            data["confidence"],
            default=0.0,
            context="official tuition",
            correlation_id=self.correlation_id,
        )
        threshold = self.params.confidence_thresholds.official_tuition
        if data["is_estimate"] is True or confidence < threshold:
            self.logger.info(
                "Official tuition not confident enough, escalating to estimate",
                confidence=confidence,
                threshold=threshold,
                is_estimate=data["is_estimate"],
            )
            return None

        if not matches_official_domain(source, entry.website):
            self.logger.info(
                "Official tuition source outside university domain",
                source=source,
                website=entry.website,
            )

        return TuitionRecord(
            total=round(total, 2),
            currency=expected_currency,
            program_duration=duration,
            source=source,
            is_estimate=False,
            confidence=confidence,
        )

    async def _estimate(
        self, user_input: UserInput, entry: UniversityEntry
    ) -> Optional[TuitionRecord]:
        prompt = render_prompt(
            "tuition/estimate_search.j2",
            correlation_id=self.correlation_id,
            **self._prompt_context(user_input, entry),
        )
        research = await self.gateway.safe_search(
            prompt,
            fallback="",
            model=self.params.oracle.search_model,
            description="tuition estimate",
        )
        if not research:
            return None

        data = await self.gateway.safe_extract(
            research, ESTIMATE_SCHEMA, fallback=None, description="tuition estimate"
        )
        if data is None:
            return None

        expected_currency = currency_for(user_input.country)
        if str(data["currency"]).upper() != expected_currency.value:
            self.logger.warning(
                "Estimated tuition currency mismatch",
                expected=expected_currency.value,
                received=data["currency"],
            )
            return None

        total = parse_positive_amount(data["estimated_total_tuition"])
        if total is None:
            return None

        bands = self.params.tuition_confidence
        confidence = clamp_confidence(
            normalize_confidence(
                data["confidence"],
                default=bands.estimate_min,
                context="tuition estimate",
                correlation_id=self.correlation_id,
            ),
            low=bands.estimate_min,
            high=bands.estimate_max,
        )

        source = str(data["source"] or "")
        if not validate_source_url(source):
            source = f"Market estimate based on comparable institutions in {user_input.country.value}"

        return TuitionRecord(
            total=round(total, 2),
            currency=expected_currency,
            program_duration=program_duration(data["program_duration_years"], user_input),
            source=source,
            is_estimate=True,
            confidence=confidence,
        )
