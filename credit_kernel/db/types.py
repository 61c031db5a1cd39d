"""
Module: credit_kernel.db.types
Responsibility: Conversion and rounding helpers for monetary values.
    Centralizes precision and rounding so every model and service uses
    identical definitions.  Column precision itself comes from the
    declarative base's type_annotation_map (Decimal -> Numeric(38, 9)).
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    CRITICAL: No floats for money.  Amounts enter the kernel through
    to_money(), which goes via str() so binary float noise never reaches
    a Decimal.
    Stored amounts are quantized to MONEY_DECIMAL_PLACES and rates to
    RATE_DECIMAL_PLACES by quantize_money() before any validation runs.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
RATE_DECIMAL_PLACES = 4
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """
    Convert a caller-supplied amount to Decimal.

    Raises:
        ValueError: If value is not numeric (or is NaN/infinite).
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value to the given number of decimal places."""
    quantize_str = "1" if decimal_places == 0 else "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def quantize_money(
    value: Decimal | int | float | str,
    decimal_places: int = MONEY_DECIMAL_PLACES,
) -> Decimal:
    """
    Convert and round an amount entering the engine.

    Every stored amount goes through here, so values compared before a
    write are exactly the values read back afterwards.

    Raises:
        ValueError: If value is not numeric (or is NaN/infinite), or too
            large to hold at the requested precision.
    """
    amount = to_money(value)
    try:
        return round_money(amount, decimal_places)
    except InvalidOperation as exc:
        raise ValueError(f"Amount out of range: {value!r}") from exc
