from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from ..core.constants import MONEY_SCALE


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Any, scale: int = MONEY_SCALE) -> Decimal:
    return to_decimal(value).quantize(Decimal("1").scaleb(-scale), rounding=ROUND_HALF_UP)


def percent(rate: Any) -> Decimal:
    """Convert a stored percentage (e.g. 10) into a fraction (0.10)."""
    return to_decimal(rate) / Decimal("100")
