from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, localcontext

# Enough digits for any uint256 plus 18 fractional places
DECIMAL_PRECISION = 100


def from_base_units(value: int, decimals: int) -> Decimal:
    """Convert an on-chain integer amount into a decimal token amount.

    Args:
        value: Integer amount expressed with ``decimals`` decimal places.
        decimals: Decimal precision of the token.

    Returns:
        The exact decimal amount; no rounding takes place.
    """
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Decimal(int(value)).scaleb(-decimals)


def to_base_units(
    amount: Decimal, decimals: int, rounding: str = ROUND_DOWN
) -> int:
    """Convert a decimal token amount into an on-chain integer amount.

    Args:
        amount: Decimal amount in whole-token units.
        decimals: Decimal precision of the token.
        rounding: ``decimal`` rounding mode applied to digits beyond
            ``decimals``. Defaults to truncation.

    Returns:
        The integer amount in base units.

    Raises:
        ValueError: If ``amount`` is negative or not finite.
    """
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Cannot convert {amount!r} to base units")
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        scaled = amount.scaleb(decimals)
        return int(scaled.to_integral_value(rounding=rounding))
