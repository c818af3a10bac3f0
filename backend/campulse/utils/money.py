"""
Currency conversions done on integer subunits (kobo)
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple, Union

Number = Union[Decimal, int, float, str]


def _decimal(value: Number) -> Decimal:
    # str() keeps floats like 0.1 from dragging their binary error along
    return value if isinstance(value, Decimal) else Decimal(str(value))


def to_subunits(amount: Number, subunits: int = 100) -> int:
    return int((_decimal(amount) * subunits).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_subunits(amount: int, subunits: int = 100) -> Decimal:
    return (Decimal(amount) / subunits).quantize(Decimal("0.01"))


def split_payout(amount: Number, fee_rate: Number, subunits: int = 100) -> Tuple[int, int]:
    """
    Split a gross amount into the platform fee and the seller payout.

    Returns:
        (platform_fee, payout) both in subunits
    """
    gross = to_subunits(amount, subunits)
    platform_fee = int(
        (_decimal(amount) * subunits * _decimal(fee_rate)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )
    return platform_fee, gross - platform_fee
