"""Monetary amount parsing and rounding."""

import math
import re
from typing import Any, Optional

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def parse_amount(value: Any) -> Optional[float]:
    """Read a numeric amount from an oracle field.

    Accepts numbers and numeric strings with thousands separators or currency
    markers ("$45,000", "45000 USD"). Returns None for anything else,
    including NaN and infinity.
    """
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", value.replace(",", ""))
        if not cleaned or cleaned in ("-", ".", "-."):
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_positive_amount(value: Any) -> Optional[float]:
    number = parse_amount(value)
    if number is None or number <= 0:
        return None
    return number


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return math.floor(value + 0.5)
