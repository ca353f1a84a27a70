"""
Raw input parsing for numeric fields.

The presentation layer hands over whatever the operator typed.  These helpers
turn that into ``Decimal``/``int`` values or ``None`` ("absent").  Blank,
non-numeric, NaN and infinite input is absent; it is never coerced to zero.

``require_*`` variants raise ``InvalidQuantityError`` instead, for fields
where absence is a hard error (production stitches, clip quantities).
"""

from decimal import Decimal, InvalidOperation

from stitch_kernel.exceptions import InvalidQuantityError


def parse_decimal(raw: object) -> Decimal | None:
    """Parse ``raw`` into a finite Decimal, or None if it is not a number."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    if isinstance(raw, int):
        return Decimal(raw)
    if isinstance(raw, float):
        raw = repr(raw)
    text = str(raw).strip().replace(",", "")
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def parse_int(raw: object) -> int | None:
    """Parse ``raw`` into an int.  Fractional values are not integers."""
    value = parse_decimal(raw)
    if value is None or value != value.to_integral_value():
        return None
    return int(value)


def require_positive_int(field: str, raw: object) -> int:
    value = parse_int(raw)
    if value is None:
        raise InvalidQuantityError(field, raw, "must be a whole number")
    if value <= 0:
        raise InvalidQuantityError(field, raw, "must be greater than zero")
    return value


def require_non_negative_int(field: str, raw: object) -> int:
    value = parse_int(raw)
    if value is None:
        raise InvalidQuantityError(field, raw, "must be a whole number")
    if value < 0:
        raise InvalidQuantityError(field, raw, "must not be negative")
    return value


def require_positive_decimal(field: str, raw: object) -> Decimal:
    value = parse_decimal(raw)
    if value is None:
        raise InvalidQuantityError(field, raw, "must be a number")
    if value <= 0:
        raise InvalidQuantityError(field, raw, "must be greater than zero")
    return value
