"""
Decimal arithmetic helpers shared by engines, services and selectors.

All rates, amounts and percentages are ``Decimal``.  Rounding is always
ROUND_HALF_UP so that 0.00005 becomes 0.0001 the way an operator's
calculator does it, not banker's rounding.
"""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")
PERCENT_PLACES = 2


def quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def round_places(value: Decimal, places: int = 4) -> Decimal:
    """Round half-up to ``places`` decimal places."""
    return value.quantize(quantum(places), rounding=ROUND_HALF_UP)


def round4(value: Decimal) -> Decimal:
    return round_places(value, 4)


def round_whole(value: Decimal) -> Decimal:
    """Round half-up to an integral Decimal."""
    return value.quantize(Decimal(1), rounding=ROUND_HALF_UP)


def ceil_div(numerator: int | Decimal, denominator: int | Decimal) -> int:
    """``ceil(numerator / denominator)`` without float error.

    Raises:
        ZeroDivisionError: if denominator is zero (decimal.DivisionByZero
            is a ZeroDivisionError subclass).
    """
    return int(
        (Decimal(numerator) / Decimal(denominator)).to_integral_value(
            rounding=ROUND_CEILING
        )
    )


def ceil_decimal(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def clamp_remaining(planned: int | Decimal, used: int | Decimal) -> int | Decimal:
    """``max(0, planned - used)``."""
    return max(planned - used, 0)


def percent(used: int | Decimal, planned: int | Decimal) -> Decimal:
    """``min(100, used / planned x 100)`` when planned > 0, else 0."""
    if planned <= 0:
        return round_places(ZERO, PERCENT_PLACES)
    raw = Decimal(used) / Decimal(planned) * HUNDRED
    return round_places(min(raw, HUNDRED), PERCENT_PLACES)
