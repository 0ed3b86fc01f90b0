"""
Money -- conversion between major-unit input and integer minor units.

Every amount inside the kernel is an ``int`` count of minor units.  Upstream
collaborators speak major units ("1250.50", 99, 12.5); this module is the
only place where those become integers.

Invariants enforced:
    - No float arithmetic: floats are converted through ``str`` first, so
      12.1 becomes Decimal("12.1"), not its binary approximation.
    - Rounding is ROUND_HALF_UP at the minor-unit boundary.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MINOR_EXPONENT = 2


def to_decimal(value: object) -> Decimal:
    """
    Parse a major-unit amount into Decimal.

    Raises:
        ValueError: for None, booleans, blanks and non-numeric strings.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            raise ValueError("Empty amount")
        try:
            result = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"Not an amount: {value!r}") from exc
    else:
        raise ValueError(f"Not an amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def to_minor_units(value: object, exponent: int = MINOR_EXPONENT) -> int:
    """Convert a major-unit amount to minor units, rounding half up."""
    scaled = to_decimal(value).scaleb(exponent)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def round_minor(value: Decimal) -> int:
    """Round a fractional minor-unit quantity (qty x rate, rate x base)."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percent_of(amount_minor: int, rate_percent: Decimal) -> int:
    """``rate_percent`` % of ``amount_minor``, rounded half up."""
    return round_minor(Decimal(amount_minor) * rate_percent / Decimal(100))


def format_minor(amount_minor: int, exponent: int = MINOR_EXPONENT) -> str:
    """Render minor units as a fixed-point major-unit string: 150050 -> '1500.50'."""
    quantum = Decimal(1).scaleb(-exponent)
    return str(Decimal(amount_minor).scaleb(-exponent).quantize(quantum))
