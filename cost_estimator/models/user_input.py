"""Student request model and the closed enums every static table is keyed by."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names.

    Accepts both snake_case and camelCase on input so reports produced by
    other implementations of the estimator can be loaded back.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_json_dict(self) -> dict:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Country(str, Enum):
    """Supported study destinations."""

    US = "US"
    AU = "AU"
    UK = "UK"
    CA = "CA"
    DE = "DE"
    HK = "HK"
    MO = "MO"
    SG = "SG"


class Currency(str, Enum):
    USD = "USD"
    AUD = "AUD"
    GBP = "GBP"
    CAD = "CAD"
    EUR = "EUR"
    HKD = "HKD"
    MOP = "MOP"
    SGD = "SGD"


class StudyLevel(str, Enum):
    UNDERGRADUATE = "undergraduate"
    GRADUATE = "graduate"


class Lifestyle(str, Enum):
    ECONOMY = "economy"
    STANDARD = "standard"
    COMFORTABLE = "comfortable"


class AccommodationType(str, Enum):
    DORMITORY = "dormitory"
    SHARED = "shared"
    STUDIO = "studio"
    APARTMENT = "apartment"


class LocationPreference(str, Enum):
    CITY_CENTRE = "cityCentre"
    OUTSIDE_CITY_CENTRE = "outsideCityCentre"


class Diet(str, Enum):
    NORMAL = "normal"
    VEGETARIAN = "vegetarian"
    HALAL = "halal"
    KOSHER = "kosher"
    CUSTOM = "custom"


class Transportation(str, Enum):
    WALKING = "walking"
    PUBLIC = "public"
    BIKE = "bike"
    CAR = "car"


# Fields the validation gate requires before any resolver runs
REQUIRED_FIELDS = (
    "country",
    "university",
    "program",
    "level",
    "lifestyle",
    "accommodation",
    "location_preference",
)


class UserInput(CamelModel):
    """Immutable estimation request.

    Attributes:
        country: Destination country
        university: University name, must exist in the static directory
        program: Free-text program name
        level: Undergraduate or graduate
        lifestyle: Spending profile, drives the living-cost multiplier
        accommodation: Housing type
        location_preference: City centre or outside city centre
        city: Target city (defaults to the university's city)
        diet: Optional dietary preference, used for prompt personalization
        transportation: Optional commute preference, used for prompt personalization
        program_duration: Optional duration hint in years
    """

    model_config = ConfigDict(frozen=True)

    country: Country
    university: str = Field(..., min_length=1)
    program: str = Field(..., min_length=1)
    level: StudyLevel
    lifestyle: Lifestyle
    accommodation: AccommodationType
    location_preference: LocationPreference
    city: Optional[str] = None
    diet: Optional[Diet] = None
    transportation: Optional[Transportation] = None
    program_duration: Optional[float] = Field(default=None, gt=0, le=10)

    @field_validator("university", "program", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        """Strip surrounding whitespace so blank names fail min_length."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("city", mode="before")
    @classmethod
    def blank_city_is_none(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip() or None
        return v
