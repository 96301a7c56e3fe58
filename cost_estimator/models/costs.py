"""
Cost Models

Pydantic models for resolver outputs, the merged financial record and the
final report. Field names serialize in camelCase so the report JSON keeps the
shape consumed by existing front-ends (programDuration, monthlyRange,
healthInsurance, totalAnnualCost, ...).
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import ConfigDict, Field, model_validator

from cost_estimator.models.user_input import CamelModel, Currency, UserInput


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CostRange(CamelModel):
    """Inclusive {min, max} range of a monetary amount."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(..., ge=0)
    max: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_ordering(self) -> "CostRange":
        if self.min > self.max:
            raise ValueError(f"range min ({self.min}) must not exceed max ({self.max})")
        return self

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


class AmountWithRange(CamelModel):
    """Point amount with the range it was taken from."""

    model_config = ConfigDict(frozen=True)

    amount: float = Field(..., ge=0)
    range: CostRange

    @model_validator(mode="after")
    def check_amount_in_range(self) -> "AmountWithRange":
        if not self.range.min <= self.amount <= self.range.max:
            raise ValueError(
                f"amount {self.amount} outside range "
                f"[{self.range.min}, {self.range.max}]"
            )
        return self


class TuitionRecord(CamelModel):
    """Whole-program tuition produced once per run by the tuition resolver.

    Attributes:
        total: Whole-program tuition (never per year, semester or credit)
        currency: Currency of the total
        program_duration: Program length in years, always > 0
        source: URL or description of where the figure came from
        is_estimate: True unless the figure is an official published amount
        confidence: 0.9-1.0 exact official, 0.7-0.8 approximate official,
            0.4-0.6 reasoned estimate, 0.3 static table
        last_updated: When the figure was resolved
    """

    model_config = ConfigDict(frozen=True)

    total: float = Field(..., ge=0)
    currency: Currency
    program_duration: float = Field(..., gt=0)
    source: str
    is_estimate: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    last_updated: datetime = Field(default_factory=utc_now)

    @property
    def annual(self) -> float:
        return self.total / self.program_duration


class AccommodationCost(CamelModel):
    """Monthly rent range for the chosen housing type and location."""

    model_config = ConfigDict(frozen=True)

    monthly_range: CostRange
    currency: Currency
    source: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    reasoning: Optional[str] = None


class NonRentLivingCost(CamelModel):
    """Aggregate monthly living cost excluding rent for the target city."""

    model_config = ConfigDict(frozen=True)

    amount: float = Field(..., ge=0)
    range: CostRange
    currency: Currency
    source: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_amount_in_range(self) -> "NonRentLivingCost":
        if not self.range.min <= self.amount <= self.range.max:
            raise ValueError(
                f"amount {self.amount} outside range "
                f"[{self.range.min}, {self.range.max}]"
            )
        return self


class LivingCosts(CamelModel):
    """Monthly living costs: non-rent total plus the embedded rent estimate."""

    model_config = ConfigDict(frozen=True)

    total: AmountWithRange
    accommodation: AccommodationCost
    currency: Currency
    period: Literal["monthly"] = "monthly"
    sources: list[str] = Field(default_factory=list)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @property
    def monthly_all_in(self) -> float:
        """Non-rent total plus the midpoint of the rent range."""
        return self.total.amount + self.accommodation.monthly_range.midpoint


class FeeItem(CamelModel):
    """One-time fee with provenance."""

    model_config = ConfigDict(frozen=True)

    amount: float = Field(..., ge=0)
    source: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class OtherCosts(CamelModel):
    """Application, visa and (optionally) health-insurance fees.

    health_insurance is None when no high-confidence official source was
    found; aggregation treats that as zero cost.
    """

    model_config = ConfigDict(frozen=True)

    application_fee: FeeItem
    visa_fee: FeeItem
    health_insurance: Optional[FeeItem] = None
    currency: Currency

    @property
    def one_time_total(self) -> float:
        insurance = self.health_insurance.amount if self.health_insurance else 0.0
        return self.application_fee.amount + self.visa_fee.amount + insurance


class CostAggregate(CamelModel):
    """Rounded amount with its flat +/-10% band."""

    model_config = ConfigDict(frozen=True)

    amount: int
    range: CostRange


class TotalProgramCost(CostAggregate):
    duration: float = Field(..., gt=0)


class CostBreakdown(CamelModel):
    """Split of the annual cost into its three categories."""

    model_config = ConfigDict(frozen=True)

    tuition: int
    living: int
    other: int


class CostSummary(CamelModel):
    model_config = ConfigDict(frozen=True)

    total_annual_cost: CostAggregate
    total_monthly_cost: CostAggregate
    total_cost: TotalProgramCost
    currency: Currency
    breakdown: CostBreakdown


class CostEstimateReport(CamelModel):
    """Terminal aggregate returned to the caller."""

    model_config = ConfigDict(frozen=True)

    user_input: UserInput
    tuition: TuitionRecord
    living_costs: LivingCosts
    other_costs: OtherCosts
    summary: CostSummary
    recommendations: list[str] = Field(..., min_length=1)
    generated_at: datetime = Field(default_factory=utc_now)
    sources: list[str] = Field(default_factory=list)


EstimationStep = Literal["tuition", "living", "other", "report", "complete"]


class EstimationProgress(CamelModel):
    """Progress event emitted by the coordinator."""

    model_config = ConfigDict(frozen=True)

    step: EstimationStep
    progress: int = Field(..., ge=0, le=100)
    message: str


class ValidationResult(CamelModel):
    """Outcome of the coordinator's validation gate.

    Lists every problem at once so the caller can render all errors together.
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)
