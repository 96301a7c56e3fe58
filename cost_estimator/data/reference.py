"""
Static Reference Data

Read-only directories consumed by the resolvers' fallback paths:
- University directory (name, official website, city, public/private)
- Visa fees (authoritative, country-fixed)
- Accommodation baselines by country / location / housing type
- Tuition bands by country / level / institution type and default durations
- Application fees by country / level
- Non-rent living baselines by country and lifestyle multipliers

Every table is keyed by the closed enums in cost_estimator.models.user_input
and covers every member (enforced by tests/unit/test_reference_data.py).
Amounts are in the destination country's currency.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from cost_estimator.models.costs import CostRange
from cost_estimator.models.user_input import (
    AccommodationType,
    Country,
    Currency,
    Lifestyle,
    LocationPreference,
    StudyLevel,
    UserInput,
)


class UniversityNotFoundError(LookupError):
    """Raised when a university is not in the static directory (caller input error)."""

    pass


class InstitutionType(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class UniversityEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    website: str
    city: str
    institution_type: InstitutionType = InstitutionType.PUBLIC


def _uni(
    name: str, website: str, city: str, kind: InstitutionType = InstitutionType.PUBLIC
) -> UniversityEntry:
    return UniversityEntry(name=name, website=website, city=city, institution_type=kind)


_PRIVATE = InstitutionType.PRIVATE

UNIVERSITIES: dict[Country, tuple[UniversityEntry, ...]] = {
    Country.US: (
        _uni("Harvard University", "https://www.harvard.edu", "Cambridge", _PRIVATE),
        _uni("Stanford University", "https://www.stanford.edu", "Stanford", _PRIVATE),
        _uni("MIT", "https://web.mit.edu", "Cambridge", _PRIVATE),
        _uni("University of California, Berkeley", "https://www.berkeley.edu", "Berkeley"),
        _uni("Columbia University", "https://www.columbia.edu", "New York", _PRIVATE),
        _uni("University of Chicago", "https://www.uchicago.edu", "Chicago", _PRIVATE),
        _uni("Yale University", "https://www.yale.edu", "New Haven", _PRIVATE),
        _uni("Princeton University", "https://www.princeton.edu", "Princeton", _PRIVATE),
        _uni("UCLA", "https://www.ucla.edu", "Los Angeles"),
        _uni("NYU", "https://www.nyu.edu", "New York", _PRIVATE),
    ),
    Country.AU: (
        _uni("University of Melbourne", "https://www.unimelb.edu.au", "Melbourne"),
        _uni("Australian National University", "https://www.anu.edu.au", "Canberra"),
        _uni("University of Sydney", "https://www.sydney.edu.au", "Sydney"),
        _uni("University of New South Wales", "https://www.unsw.edu.au", "Sydney"),
        _uni("Monash University", "https://www.monash.edu", "Melbourne"),
        _uni("University of Queensland", "https://www.uq.edu.au", "Brisbane"),
        _uni("University of Western Australia", "https://www.uwa.edu.au", "Perth"),
        _uni("University of Adelaide", "https://www.adelaide.edu.au", "Adelaide"),
        _uni("Macquarie University", "https://www.mq.edu.au", "Sydney"),
        _uni("RMIT University", "https://www.rmit.edu.au", "Melbourne"),
    ),
    Country.UK: (
        _uni("University of Oxford", "https://www.ox.ac.uk", "Oxford"),
        _uni("University of Cambridge", "https://www.cam.ac.uk", "Cambridge"),
        _uni("Imperial College London", "https://www.imperial.ac.uk", "London"),
        _uni("University College London", "https://www.ucl.ac.uk", "London"),
        _uni("University of Edinburgh", "https://www.ed.ac.uk", "Edinburgh"),
        _uni("University of Manchester", "https://www.manchester.ac.uk", "Manchester"),
        _uni("King's College London", "https://www.kcl.ac.uk", "London"),
        _uni("London School of Economics", "https://www.lse.ac.uk", "London"),
    ),
    Country.CA: (
        _uni("University of Toronto", "https://www.utoronto.ca", "Toronto"),
        _uni("University of British Columbia", "https://www.ubc.ca", "Vancouver"),
        _uni("McGill University", "https://www.mcgill.ca", "Montreal"),
        _uni("University of Waterloo", "https://uwaterloo.ca", "Waterloo"),
        _uni("University of Alberta", "https://www.ualberta.ca", "Edmonton"),
    ),
    Country.DE: (
        _uni("Technical University of Munich", "https://www.tum.de", "Munich"),
        _uni("LMU Munich", "https://www.lmu.de", "Munich"),
        _uni("Heidelberg University", "https://www.uni-heidelberg.de", "Heidelberg"),
        _uni("Humboldt University of Berlin", "https://www.hu-berlin.de", "Berlin"),
        _uni("RWTH Aachen University", "https://www.rwth-aachen.de", "Aachen"),
        _uni("Constructor University", "https://constructor.university", "Bremen", _PRIVATE),
    ),
    Country.HK: (
        _uni("The University of Hong Kong", "https://www.hku.hk", "Hong Kong"),
        _uni("The Chinese University of Hong Kong", "https://www.cuhk.edu.hk", "Hong Kong"),
        _uni(
            "The Hong Kong University of Science and Technology",
            "https://hkust.edu.hk",
            "Hong Kong",
        ),
        _uni("The Hong Kong Polytechnic University", "https://www.polyu.edu.hk", "Hong Kong"),
        _uni("City University of Hong Kong", "https://www.cityu.edu.hk", "Hong Kong"),
    ),
    Country.MO: (
        _uni("University of Macau", "https://www.um.edu.mo", "Macau"),
        _uni(
            "Macau University of Science and Technology",
            "https://www.must.edu.mo",
            "Macau",
            _PRIVATE,
        ),
        _uni("City University of Macau", "https://www.cityu.edu.mo", "Macau", _PRIVATE),
    ),
    Country.SG: (
        _uni("National University of Singapore", "https://www.nus.edu.sg", "Singapore"),
        _uni("Nanyang Technological University", "https://www.ntu.edu.sg", "Singapore"),
        _uni("Singapore Management University", "https://www.smu.edu.sg", "Singapore"),
        _uni(
            "Singapore University of Technology and Design",
            "https://www.sutd.edu.sg",
            "Singapore",
        ),
    ),
}

COUNTRY_CURRENCY: dict[Country, Currency] = {
    Country.US: Currency.USD,
    Country.AU: Currency.AUD,
    Country.UK: Currency.GBP,
    Country.CA: Currency.CAD,
    Country.DE: Currency.EUR,
    Country.HK: Currency.HKD,
    Country.MO: Currency.MOP,
    Country.SG: Currency.SGD,
}

# (amount, official source)
VISA_FEES: dict[Country, tuple[float, str]] = {
    Country.US: (350, "https://travel.state.gov"),
    Country.AU: (650, "https://immi.homeaffairs.gov.au"),
    Country.UK: (524, "https://www.gov.uk/student-visa"),
    Country.CA: (150, "https://www.canada.ca/en/immigration-refugees-citizenship/services/study-canada/study-permit.html"),
    Country.DE: (75, "https://www.auswaertiges-amt.de"),
    Country.HK: (230, "https://www.immd.gov.hk"),
    Country.MO: (200, "https://www.fsm.gov.mo"),
    Country.SG: (90, "https://www.ica.gov.sg"),
}

_Range = tuple[float, float]
_AccommodationTable = dict[LocationPreference, dict[AccommodationType, _Range]]

_CENTRE = LocationPreference.CITY_CENTRE
_OUTSIDE = LocationPreference.OUTSIDE_CITY_CENTRE
_DORM = AccommodationType.DORMITORY
_SHARED = AccommodationType.SHARED
_STUDIO = AccommodationType.STUDIO
_APT = AccommodationType.APARTMENT


def _housing(
    centre: tuple[_Range, _Range, _Range, _Range],
    outside: tuple[_Range, _Range, _Range, _Range],
) -> _AccommodationTable:
    """Build a location table from (dormitory, shared, studio, apartment) ranges."""
    order = (_DORM, _SHARED, _STUDIO, _APT)
    return {
        _CENTRE: dict(zip(order, centre)),
        _OUTSIDE: dict(zip(order, outside)),
    }


# Monthly rent ranges used when the rent-index lookup fails
ACCOMMODATION_BASELINES: dict[Country, _AccommodationTable] = {
    Country.US: _housing(
        ((800, 1400), (500, 900), (1400, 2200), (2000, 3500)),
        ((600, 1100), (400, 700), (1000, 1700), (1500, 2800)),
    ),
    Country.AU: _housing(
        ((700, 1200), (450, 750), (1200, 1800), (1800, 3000)),
        ((500, 900), (350, 600), (900, 1400), (1300, 2200)),
    ),
    Country.UK: _housing(
        ((600, 1100), (400, 700), (900, 1500), (1400, 2500)),
        ((500, 900), (300, 600), (700, 1200), (1100, 2000)),
    ),
    Country.CA: _housing(
        ((700, 1200), (500, 800), (1100, 1700), (1600, 2800)),
        ((600, 1000), (400, 700), (900, 1400), (1300, 2200)),
    ),
    Country.DE: _housing(
        ((300, 600), (350, 650), (500, 900), (700, 1300)),
        ((250, 500), (300, 550), (400, 750), (600, 1100)),
    ),
    Country.HK: _housing(
        ((6000, 10000), (8000, 12000), (10000, 15000), (12000, 20000)),
        ((4000, 8000), (6000, 10000), (8000, 12000), (10000, 16000)),
    ),
    Country.MO: _housing(
        ((4000, 8000), (6000, 10000), (8000, 12000), (10000, 16000)),
        ((3000, 6000), (5000, 8000), (7000, 10000), (8000, 13000)),
    ),
    Country.SG: _housing(
        ((800, 1200), (1000, 1500), (1200, 1800), (1500, 2500)),
        ((600, 1000), (800, 1200), (1000, 1500), (1200, 2000)),
    ),
}

_UG = StudyLevel.UNDERGRADUATE
_GRAD = StudyLevel.GRADUATE
_PUB = InstitutionType.PUBLIC

# Annual tuition bands for international students
TUITION_BANDS: dict[Country, dict[StudyLevel, dict[InstitutionType, float]]] = {
    Country.US: {_UG: {_PUB: 35000, _PRIVATE: 55000}, _GRAD: {_PUB: 45000, _PRIVATE: 65000}},
    Country.AU: {_UG: {_PUB: 35000, _PRIVATE: 45000}, _GRAD: {_PUB: 40000, _PRIVATE: 50000}},
    Country.UK: {_UG: {_PUB: 22000, _PRIVATE: 28000}, _GRAD: {_PUB: 24000, _PRIVATE: 32000}},
    Country.CA: {_UG: {_PUB: 40000, _PRIVATE: 50000}, _GRAD: {_PUB: 25000, _PRIVATE: 35000}},
    Country.DE: {_UG: {_PUB: 1500, _PRIVATE: 15000}, _GRAD: {_PUB: 1500, _PRIVATE: 18000}},
    Country.HK: {_UG: {_PUB: 170000, _PRIVATE: 190000}, _GRAD: {_PUB: 180000, _PRIVATE: 250000}},
    Country.MO: {_UG: {_PUB: 120000, _PRIVATE: 160000}, _GRAD: {_PUB: 110000, _PRIVATE: 150000}},
    Country.SG: {_UG: {_PUB: 40000, _PRIVATE: 55000}, _GRAD: {_PUB: 45000, _PRIVATE: 65000}},
}

# Typical program length in years
DEFAULT_DURATIONS: dict[Country, dict[StudyLevel, float]] = {
    Country.US: {_UG: 4, _GRAD: 2},
    Country.AU: {_UG: 3, _GRAD: 2},
    Country.UK: {_UG: 3, _GRAD: 1},
    Country.CA: {_UG: 4, _GRAD: 2},
    Country.DE: {_UG: 3, _GRAD: 2},
    Country.HK: {_UG: 4, _GRAD: 1},
    Country.MO: {_UG: 4, _GRAD: 2},
    Country.SG: {_UG: 4, _GRAD: 1},
}

APPLICATION_FEES: dict[Country, dict[StudyLevel, float]] = {
    Country.US: {_UG: 85, _GRAD: 110},
    Country.AU: {_UG: 100, _GRAD: 125},
    Country.UK: {_UG: 28, _GRAD: 75},
    Country.CA: {_UG: 150, _GRAD: 125},
    Country.DE: {_UG: 75, _GRAD: 75},
    Country.HK: {_UG: 450, _GRAD: 300},
    Country.MO: {_UG: 300, _GRAD: 300},
    Country.SG: {_UG: 20, _GRAD: 50},
}

# Monthly cost of living excluding rent at the standard lifestyle
LIVING_BASELINES: dict[Country, float] = {
    Country.US: 1100,
    Country.AU: 1000,
    Country.UK: 700,
    Country.CA: 950,
    Country.DE: 550,
    Country.HK: 5500,
    Country.MO: 4500,
    Country.SG: 900,
}

LIFESTYLE_MULTIPLIERS: dict[Lifestyle, float] = {
    Lifestyle.ECONOMY: 0.8,
    Lifestyle.STANDARD: 1.0,
    Lifestyle.COMFORTABLE: 1.25,
}

NUMBEO_BASE_URL = "https://www.numbeo.com/cost-of-living/"


def find_university(country: Country, name: str) -> UniversityEntry:
    """Look up a university in the country's directory (case-insensitive).

    Raises:
        UniversityNotFoundError: If the university is not listed for the country
    """
    wanted = name.strip().casefold()
    for entry in UNIVERSITIES[country]:
        if entry.name.casefold() == wanted:
            return entry
    raise UniversityNotFoundError(
        f"University not found in {country.value} directory: {name}"
    )


def resolve_city(user_input: UserInput) -> str:
    """Return the user's city, or the university's city when none was given."""
    if user_input.city:
        return user_input.city
    return find_university(user_input.country, user_input.university).city


def currency_for(country: Country) -> Currency:
    return COUNTRY_CURRENCY[country]


def accommodation_baseline(
    country: Country,
    location: LocationPreference,
    accommodation: AccommodationType,
) -> CostRange:
    low, high = ACCOMMODATION_BASELINES[country][location][accommodation]
    return CostRange(min=low, max=high)


def numbeo_url(city: str | None) -> str:
    """Cost-of-living page for a city, or the index root when no city is known."""
    if not city:
        return NUMBEO_BASE_URL
    return f"{NUMBEO_BASE_URL}in/{city.strip().replace(' ', '-')}"
