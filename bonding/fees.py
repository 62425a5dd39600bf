"""
fees.py - Fee split and per-unit quote accumulation

Fees are charged in basis points of each unit's curve price. Each stream is
truncated on its own and per unit; batch totals are sums of per-unit values,
never a fee taken from a summed price.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from .core import MaxFeeExceeded


BIPS_DENOMINATOR = 10_000
MAX_FEE_BIPS = 2_500


def validate_fee_bips(value: int) -> int:
    """
    Check a fee or royalty rate against the fixed cap.

    Raises:
        ValueError: If value is not a non-negative int
        MaxFeeExceeded: If value > MAX_FEE_BIPS
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"fee bips must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"fee bips must be non-negative, got {value}")
    if value > MAX_FEE_BIPS:
        raise MaxFeeExceeded(value, MAX_FEE_BIPS)
    return value


def calculate_fees(price: int, creator_fee_bips: int, admin_fee_bips: int) -> Tuple[int, int]:
    """
    Split a unit price into (creator_fee, admin_fee).

    Each fee is price * bips // 10_000, computed independently.

    Example:
        calculate_fees(1_000_000, 700, 300)   # (70_000, 30_000)
    """
    creator_fee = price * creator_fee_bips // BIPS_DENOMINATOR
    admin_fee = price * admin_fee_bips // BIPS_DENOMINATOR
    return creator_fee, admin_fee


@dataclass(frozen=True, slots=True)
class Quote:
    """
    Price and fee streams for one or more units.

    Attributes:
        price: Curve price (principal) summed over the units.
        creator_fee: Creator fee summed over the units.
        admin_fee: Admin fee summed over the units.
        units: Number of units the quote covers.
    """
    price: int
    creator_fee: int
    admin_fee: int
    units: int = 1

    @classmethod
    def zero(cls) -> Quote:
        return cls(0, 0, 0, 0)

    @classmethod
    def for_price(cls, price: int, creator_fee_bips: int, admin_fee_bips: int) -> Quote:
        creator_fee, admin_fee = calculate_fees(price, creator_fee_bips, admin_fee_bips)
        return cls(price, creator_fee, admin_fee)

    @property
    def total_fees(self) -> int:
        return self.creator_fee + self.admin_fee

    @property
    def total_cost(self) -> int:
        """What a buyer pays: principal plus both fees."""
        return self.price + self.total_fees

    @property
    def net_proceeds(self) -> int:
        """What a seller receives: principal minus both fees."""
        return self.price - self.total_fees

    def __add__(self, other: Quote) -> Quote:
        if not isinstance(other, Quote):
            return NotImplemented
        return Quote(
            self.price + other.price,
            self.creator_fee + other.creator_fee,
            self.admin_fee + other.admin_fee,
            self.units + other.units,
        )
