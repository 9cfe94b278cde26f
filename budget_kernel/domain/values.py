"""
Decimal helpers for money and quantities (``budget_kernel.domain.values``).

All arithmetic in the engine is ``Decimal``.  Floats are refused at the
boundary so binary rounding never enters a budget figure.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_decimal(value: Decimal | int | str, field: str = "value") -> Decimal:
    """Coerce ``value`` to Decimal.

    Raises:
        TypeError: for float (or any non Decimal/int/str) input.
        ValueError: for strings that are not numbers, or NaN/Infinity.
    """
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, str)):
        raise TypeError(
            f"{field} must be Decimal, int or str, got {type(value).__name__}"
        )
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"{field} is not a number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{field} must be finite: {value!r}")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round half-up to 2 decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
