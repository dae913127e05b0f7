"""Decimal helpers shared by the adapter, operators, engine and debt service.

All arithmetic on scores, weights and scalar signal values happens in
decimal.Decimal. Floats are converted through str() so 85.1 becomes
Decimal("85.1") rather than its binary approximation.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

SCORE_PRECISION = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def is_number(value: object) -> bool:
    """True for int, float and Decimal values. bool is not a number here."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def to_decimal(value: object) -> Decimal | None:
    """Coerce a number or numeric string to a finite Decimal.

    Returns None for anything else: booleans, non-numeric strings, NaN and
    infinities, containers.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None

    return result if result.is_finite() else None


def quantize_score(value: Decimal) -> Decimal:
    """Round to two decimal places, half-up."""
    return value.quantize(SCORE_PRECISION, rounding=ROUND_HALF_UP)


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide and quantize, returning 0.00 when the denominator is not positive."""
    if denominator <= ZERO:
        return quantize_score(ZERO)
    return quantize_score(numerator / denominator)
