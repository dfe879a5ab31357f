"""Conversion between asset amounts and native-currency amounts.

A listed asset's rate is the native amount paid for one whole asset unit.
Conversions keep full ``Decimal`` precision; ``truncate`` is for display only.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Optional

from ..errors import InvalidOperationError
from ..units import DECIMAL_PRECISION


@dataclass(frozen=True, slots=True)
class Conversion:
    """Outcome of a rate conversion.

    Exactly one of ``value`` and ``reason`` is set.
    """

    value: Optional[Decimal] = None
    reason: Optional[str] = None

    @classmethod
    def invalid(cls, reason: str) -> Conversion:
        return cls(value=None, reason=reason)

    @property
    def is_valid(self) -> bool:
        return self.value is not None

    def require(self) -> Decimal:
        """Return the converted value or raise InvalidOperationError."""
        if self.value is None:
            raise InvalidOperationError(self.reason or "invalid conversion")
        return self.value


def _coerce(value: object) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = str(value)
    if not isinstance(value, (Decimal, int, str)):
        return None
    try:
        number = Decimal(value)
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def _validate(amount: object, rate: object) -> tuple[Decimal, Decimal] | Conversion:
    parsed_rate = _coerce(rate)
    if parsed_rate is None:
        return Conversion.invalid(f"rate {rate!r} is not a number")
    if parsed_rate <= 0:
        return Conversion.invalid(f"rate {parsed_rate} must be positive")
    parsed_amount = _coerce(amount)
    if parsed_amount is None:
        return Conversion.invalid(f"amount {amount!r} is not a number")
    if parsed_amount < 0:
        return Conversion.invalid(f"amount {parsed_amount} is negative")
    return parsed_amount, parsed_rate


def asset_to_native(amount: object, rate: object) -> Conversion:
    """Native currency paid for ``amount`` asset units at ``rate``."""
    checked = _validate(amount, rate)
    if isinstance(checked, Conversion):
        return checked
    asset_amount, parsed_rate = checked
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Conversion(value=asset_amount * parsed_rate)


def native_to_asset(amount: object, rate: object) -> Conversion:
    """Asset units worth ``amount`` native currency at ``rate``."""
    checked = _validate(amount, rate)
    if isinstance(checked, Conversion):
        return checked
    native_amount, parsed_rate = checked
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Conversion(value=native_amount / parsed_rate)


def truncate(value: Decimal, places: int) -> Decimal:
    """Cut ``value`` to ``places`` fractional digits without rounding up."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)
