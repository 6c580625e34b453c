"""Decimal helpers shared by the solver, simulator and metrics."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from prohedge.errors import InvalidInput

Number = Union[Decimal, str, int, float]

MONEY_QUANT = Decimal("0.01")
RATIO_QUANT = Decimal("0.0001")


def to_decimal(value: Number, field_name: str = "value") -> Decimal:
    """Convert user input to Decimal. Floats go through str() to keep 2.05 as 2.05."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise InvalidInput(f"{field_name} is not a number: {value!r}") from exc
    if not result.is_finite():
        raise InvalidInput(f"{field_name} must be finite: {value!r}")
    return result


def quantize_money(value: Decimal) -> Decimal:
    """Round to the currency minor unit (2 dp, half-up)."""
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def quantize_ratio(value: Decimal) -> Decimal:
    return value.quantize(RATIO_QUANT, rounding=ROUND_HALF_UP)


def rounded_liability(stake: Decimal, hedge_odds: Decimal) -> Decimal:
    """Liability of the rounded stake, so the displayed pair stays consistent."""
    return quantize_money(quantize_money(stake) * (hedge_odds - 1))
