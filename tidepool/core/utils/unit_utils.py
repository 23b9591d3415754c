from decimal import Decimal, Inexact, InvalidOperation, localcontext
from typing import Union

DecimalLike = Union[Decimal, int, float, str]

# uint256 max is 78 digits; 18 more for the fractional part of a scaled amount
_PRECISION = 100


def as_decimal(amount: DecimalLike) -> Decimal:
    """
    Parse an amount into an exact Decimal.

    Floats go through their shortest round-trip text (0.1 becomes Decimal("0.1"),
    not the binary expansion). Booleans are refused.
    """
    if isinstance(amount, bool):
        raise TypeError("Amount must be a number or numeric string, got bool.")
    try:
        if isinstance(amount, Decimal):
            value = amount
        elif isinstance(amount, float):
            value = Decimal(repr(amount))
        else:
            value = Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Amount must be finite: {amount!r}")
    return value


def to_base_units(amount: DecimalLike, decimals: int) -> int:
    """
    Convert a human-readable token amount into the token's smallest integer unit.

    Raises:
        ValueError if the amount is negative or carries more fractional digits
        than the token's precision.
    """
    if decimals < 0:
        raise ValueError(f"Token decimals must be non-negative, got {decimals}.")
    value = as_decimal(amount)
    if value < 0:
        raise ValueError(f"Amount must not be negative: {value}")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        ctx.traps[Inexact] = True
        try:
            scaled = value.scaleb(decimals)
        except Inexact as exc:
            raise ValueError(f"Amount {value} has more fractional digits than {decimals} decimals allow.") from exc
        integral = scaled.to_integral_value()
        if scaled != integral:
            raise ValueError(f"Amount {value} has more fractional digits than {decimals} decimals allow.")
        return int(integral)


def from_base_units(raw_amount: int, decimals: int) -> Decimal:
    """Convert an integer base-unit amount back into a decimal token amount."""
    if decimals < 0:
        raise ValueError(f"Token decimals must be non-negative, got {decimals}.")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(int(raw_amount)).scaleb(-decimals)
