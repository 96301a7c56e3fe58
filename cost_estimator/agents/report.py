"""Report Synthesizer.

Derives the annual, monthly and whole-program aggregates from the resolved
records, generates recommendations and collects sources.

With living_monthly = non-rent total + rent range midpoint and
one_time = application + visa + insurance (0 if absent):

    annual  = tuition / duration + living_monthly x 12 + one_time
    monthly = tuition / duration / 12 + living_monthly + one_time / 12
    total   = tuition + living_monthly x 12 x duration + one_time

Amounts are rounded half-up and each band is [round(a x 0.9), round(a x 1.1)]
of the rounded amount. In amortized fee mode one-time fees are spread over
the program instead, so annual x duration == total.
"""

import json
from typing import Optional

from cost_estimator.data.reference import resolve_city
from cost_estimator.models.config import OneTimeFeeMode, SystemParams
from cost_estimator.models.costs import (
    CostAggregate,
    CostBreakdown,
    CostEstimateReport,
    CostRange,
    CostSummary,
    LivingCosts,
    OtherCosts,
    TotalProgramCost,
    TuitionRecord,
)
from cost_estimator.models.user_input import AccommodationType, Lifestyle, UserInput
from cost_estimator.utils.amounts import round_half_up
from cost_estimator.utils.llm_helpers import extract_json_from_markdown
from cost_estimator.utils.logger import get_logger
from cost_estimator.utils.oracle_gateway import OracleGateway
from cost_estimator.utils.prompt_loader import render_prompt

MIN_RECOMMENDATIONS = 3
MAX_RECOMMENDATIONS = 8
BAND_LOW = 0.9
BAND_HIGH = 1.1

INSURANCE_RECOMMENDATION = (
    "Verify the health insurance requirements for international students with "
    "the university and the immigration authority, and budget for a compliant plan."
)

COUNTRY_TIPS = [
    "Apply early for university scholarships and assistantships open to international students.",
    "Check the work rights attached to your student visa before relying on part-time income.",
]

# Suggestions shown for each housing choice; never repeat the chosen type
ACCOMMODATION_TIPS: dict[AccommodationType, str] = {
    AccommodationType.DORMITORY: (
        "Apply for on-campus housing as soon as admission is confirmed, since dormitory places fill early."
    ),
    AccommodationType.SHARED: (
        "Compare university-run residences with your shared housing option, as they often include utilities."
    ),
    AccommodationType.STUDIO: (
        "Sharing a flat with other students could cut your rent roughly in half compared with a studio."
    ),
    AccommodationType.APARTMENT: (
        "Renting a room in a shared flat instead of a whole apartment would substantially lower rent."
    ),
}

LIFESTYLE_TIPS: dict[Lifestyle, str] = {
    Lifestyle.ECONOMY: "Use student discounts for transport, software and museums to keep an economy budget on track.",
    Lifestyle.STANDARD: "Track spending for the first two months to find where your budget can be trimmed.",
    Lifestyle.COMFORTABLE: "Set a monthly cap for dining out and travel, the categories that grow fastest with a comfortable lifestyle.",
}

DATA_QUALITY_TIP = (
    "Confirm the tuition figure with the university's admissions office, since it is an estimate."
)
GENERAL_DATA_TIP = (
    "Re-check fees with official sources before paying, as they change every academic year."
)


def aggregate(amount: float) -> CostAggregate:
    rounded = round_half_up(amount)
    return CostAggregate(amount=rounded, range=band(rounded))


def band(rounded_amount: int) -> CostRange:
    return CostRange(
        min=round_half_up(rounded_amount * BAND_LOW),
        max=round_half_up(rounded_amount * BAND_HIGH),
    )


def compute_summary(
    tuition: TuitionRecord,
    living: LivingCosts,
    fees: OtherCosts,
    fee_mode: OneTimeFeeMode = OneTimeFeeMode.REFERENCE,
) -> CostSummary:
    """Derive the three aggregates and the annual breakdown."""
    duration = tuition.program_duration
    tuition_annual = tuition.total / duration
    living_monthly = living.monthly_all_in
    one_time = fees.one_time_total

    if fee_mode is OneTimeFeeMode.AMORTIZED:
        other_annual = one_time / duration
        annual = tuition_annual + living_monthly * 12 + other_annual
        monthly = annual / 12
        total = annual * duration
    else:
        other_annual = one_time
        annual = tuition_annual + living_monthly * 12 + one_time
        monthly = tuition_annual / 12 + living_monthly + one_time / 12
        total = tuition.total + living_monthly * 12 * duration + one_time

    total_rounded = round_half_up(total)
    return CostSummary(
        total_annual_cost=aggregate(annual),
        total_monthly_cost=aggregate(monthly),
        total_cost=TotalProgramCost(
            amount=total_rounded, range=band(total_rounded), duration=duration
        ),
        currency=tuition.currency,
        breakdown=CostBreakdown(
            tuition=round_half_up(tuition_annual),
            living=round_half_up(living_monthly * 12),
            other=round_half_up(other_annual),
        ),
    )


def collect_sources(
    tuition: TuitionRecord, living: LivingCosts, fees: OtherCosts
) -> list[str]:
    """Every non-empty source, deduplicated in first-seen order."""
    candidates = [tuition.source, *living.sources, living.accommodation.source]
    candidates.append(fees.application_fee.source)
    candidates.append(fees.visa_fee.source)
    if fees.health_insurance is not None:
        candidates.append(fees.health_insurance.source)

    sources: list[str] = []
    for source in candidates:
        if source and source.strip() and source not in sources:
            sources.append(source)
    return sources


def parse_recommendations(response: str) -> Optional[list[str]]:
    """Parse a JSON string array, tolerating markdown fences.

    Returns None unless at least MIN_RECOMMENDATIONS non-empty strings are
    present; extra items beyond MAX_RECOMMENDATIONS are dropped.
    """
    try:
        items = json.loads(extract_json_from_markdown(response))
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(items, list):
        return None

    cleaned = [item.strip() for item in items if isinstance(item, str) and item.strip()]
    if len(cleaned) < MIN_RECOMMENDATIONS:
        return None
    return cleaned[:MAX_RECOMMENDATIONS]


def static_recommendations(user_input: UserInput, tuition: TuitionRecord) -> list[str]:
    """Categorical tips: country, accommodation, lifestyle, data quality."""
    recommendations = list(COUNTRY_TIPS)
    recommendations.append(ACCOMMODATION_TIPS[user_input.accommodation])
    recommendations.append(LIFESTYLE_TIPS[user_input.lifestyle])
    recommendations.append(DATA_QUALITY_TIP if tuition.is_estimate else GENERAL_DATA_TIP)
    return recommendations


class ReportSynthesizer:
    """Builds the final CostEstimateReport."""

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
            phase="report",
            component="report_synthesizer",
        )

    async def synthesize(
        self,
        user_input: UserInput,
        tuition: TuitionRecord,
        living: LivingCosts,
        fees: OtherCosts,
    ) -> CostEstimateReport:
        summary = compute_summary(
            tuition, living, fees, self.params.execution.one_time_fee_mode
        )
        recommendations = await self.recommendations(user_input, tuition, living, fees, summary)

        report = CostEstimateReport(
            user_input=user_input,
            tuition=tuition,
            living_costs=living,
            other_costs=fees,
            summary=summary,
            recommendations=recommendations,
            sources=collect_sources(tuition, living, fees),
        )
        self.logger.info(
            "Report synthesized",
            total_cost=summary.total_cost.amount,
            annual_cost=summary.total_annual_cost.amount,
            recommendations=len(recommendations),
            sources=len(report.sources),
        )
        return report

    async def recommendations(
        self,
        user_input: UserInput,
        tuition: TuitionRecord,
        living: LivingCosts,
        fees: OtherCosts,
        summary: CostSummary,
    ) -> list[str]:
        has_insurance = fees.health_insurance is not None
        prompt = render_prompt(
            "report/recommendations.j2",
            correlation_id=self.correlation_id,
            university=user_input.university,
            city=resolve_city(user_input),
            country=user_input.country.value,
            program=user_input.program,
            level=user_input.level.value,
            lifestyle=user_input.lifestyle.value,
            accommodation=user_input.accommodation.value,
            location_preference=user_input.location_preference.value,
            currency=summary.currency.value,
            tuition_total=round_half_up(tuition.total),
            tuition_is_estimate=tuition.is_estimate,
            duration=tuition.program_duration,
            living_monthly=round_half_up(living.monthly_all_in),
            total_cost=summary.total_cost.amount,
            has_insurance=has_insurance,
        )
        response = await self.gateway.safe_search(
            prompt, fallback="", web_search=False, description="recommendations"
        )

        recommendations = parse_recommendations(response) if response else None
        if recommendations is None:
            self.logger.warning(
                "Using static recommendations", resolver="report"
            )
            recommendations = static_recommendations(user_input, tuition)

        if not has_insurance and INSURANCE_RECOMMENDATION not in recommendations:
            recommendations.append(INSURANCE_RECOMMENDATION)
        return recommendations
