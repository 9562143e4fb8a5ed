"""Fixed-point scaling between wire integers and real decimal magnitudes.

Portfolio documents store prices and share counts as integers scaled by
10^8 and monetary amounts as integers scaled by 10^2. Conversion uses
``Decimal.scaleb`` so no rounding ever happens on the way in.
"""

from decimal import Decimal, InvalidOperation

PRICE_SCALE = 8
SHARE_SCALE = 8
AMOUNT_SCALE = 2

PRICE_SCALING_FACTOR = Decimal(10) ** PRICE_SCALE
SHARE_SCALING_FACTOR = Decimal(10) ** SHARE_SCALE
AMOUNT_SCALING_FACTOR = Decimal(10) ** AMOUNT_SCALE


def to_decimal(raw: str | int | Decimal) -> Decimal:
    """
    Parse a wire value into an exact Decimal.

    Args:
        raw: Integer, Decimal or numeric string

    Returns:
        Exact Decimal value

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(raw, Decimal):
        value = raw
    else:
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a numeric value: {raw!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Not a finite numeric value: {raw!r}")
    return value


def unscale(raw: str | int | Decimal, scale: int) -> Decimal:
    """Divide a wire integer by 10^scale without rounding."""
    return to_decimal(raw).scaleb(-scale)


def unscale_price(raw: str | int | Decimal) -> Decimal:
    """Convert a 10^8-scaled price to its real magnitude."""
    return unscale(raw, PRICE_SCALE)


def unscale_shares(raw: str | int | Decimal) -> Decimal:
    """Convert a 10^8-scaled share count to its real magnitude."""
    return unscale(raw, SHARE_SCALE)


def unscale_amount(raw: str | int | Decimal) -> Decimal:
    """Convert a 10^2-scaled monetary amount to its real magnitude."""
    return unscale(raw, AMOUNT_SCALE)

