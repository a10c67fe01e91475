"""Numeric coercion and rounding helpers."""

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce an API field to a finite float.

    Missing, non-numeric and non-finite values yield ``default``. Booleans
    are not treated as numbers.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(number):
        return default
    return number


def to_non_negative(value: Any) -> float:
    """Coerce to a finite float clamped at zero."""
    return max(0.0, to_number(value))


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero for positive values.

    Matches the dashboard's rounding of user-visible percentages, where
    78.5 becomes 79 rather than Python's banker's 78.
    """
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return float(rounded)


def percentage(part: float, whole: float, digits: int = 1) -> float:
    """Return ``part`` as a percentage of ``whole``; 0 when whole is 0."""
    if whole == 0:
        return 0.0
    return round_half_up(part / whole * 100, digits)


def parse_amount(amount_str: str) -> Decimal:
    """Parse a user-supplied amount string into a Decimal.

    Handles "1234.5", "₹1,234.50", "-$12" and "(12.00)" for negatives.

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    amount_str = re.sub(r"[$€£¥₹,\s]", "", amount_str)

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    return -amount if is_negative else amount


def parse_optional_amount(amount_str: Optional[str]) -> Optional[float]:
    """Parse an optional range bound; blank means unbounded."""
    if amount_str is None or not amount_str.strip():
        return None
    return float(parse_amount(amount_str))
