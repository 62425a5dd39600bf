"""
curves.py - Bonding curve price functions

Maps a unit's index to its price in the payment asset's base units.

Classes:
- CurveProvider: Protocol defining the pricing interface
- CurveParameters: Immutable, validated parameter set of the sigmoid curve
- SigmoidCurve: Production curve (linear term plus a two-regime sigmoid term)
- LinearCurve: Base price plus a constant per-unit increment

The index n passed to price_for_unit() is zero-based from the first minted
unit: the creator's pre-mint sits at index 0, so the first purchasable unit
is priced at n = 1. All prices are exact integers.
"""

from dataclasses import dataclass
from math import isqrt
from typing import Protocol, runtime_checkable

from .core import InvalidCurveParameters


# Unit counts are 32-bit, price magnitudes 128-bit.
MAX_UNIT_INDEX = 2**32 - 1
MAX_PRICE = 2**128 - 1

# The square-root regime takes isqrt of a value scaled by 10**6, giving a
# root with three decimals of precision (scaled by 10**3).
SQRT_INPUT_SCALE = 10**6
SQRT_OUTPUT_SCALE = 10**3


@runtime_checkable
class CurveProvider(Protocol):
    """
    Protocol for bonding curves.

    Implementations must be pure: two calls with the same n return the same
    price for the lifetime of the curve.
    """

    def price_for_unit(self, n: int) -> int:
        """Price of the unit at zero-based index n."""
        ...


def _check_index(n: int) -> None:
    if not isinstance(n, int) or isinstance(n, bool):
        raise ValueError(f"unit index must be an int, got {type(n).__name__}")
    if n < 0 or n > MAX_UNIT_INDEX:
        raise ValueError(f"unit index {n} outside [0, {MAX_UNIT_INDEX}]")


@dataclass(frozen=True, slots=True)
class CurveParameters:
    """
    Immutable sigmoid curve parameters.

    Attributes:
        base_price: Price floor added to every unit.
        linear_slope: Per-unit linear increment.
        inflection_price: Value of the sigmoid term at the inflection point.
        inflection_point: Unit index where the quadratic regime hands over to
            the square-root regime.

    inflection_price must be at least inflection_point**2, otherwise the
    quadratic coefficient truncates to zero and the early curve is flat.
    """
    base_price: int
    linear_slope: int
    inflection_price: int
    inflection_point: int

    def __post_init__(self):
        for name in ('base_price', 'linear_slope', 'inflection_price', 'inflection_point'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidCurveParameters(f"{name} must be an int, got {type(value).__name__}")
            if value < 0:
                raise InvalidCurveParameters(f"{name} must be non-negative, got {value}")
            if value > MAX_PRICE:
                raise InvalidCurveParameters(f"{name} {value} exceeds {MAX_PRICE}")
        if self.inflection_point == 0:
            raise InvalidCurveParameters("inflection_point must be positive")
        if self.inflection_point > MAX_UNIT_INDEX:
            raise InvalidCurveParameters(
                f"inflection_point {self.inflection_point} exceeds {MAX_UNIT_INDEX}"
            )
        if self.inflection_price < self.inflection_point ** 2:
            raise InvalidCurveParameters(
                f"inflection_price {self.inflection_price} must be at least "
                f"inflection_point**2 = {self.inflection_point ** 2}"
            )

    @property
    def quadratic_coefficient(self) -> int:
        """Integer coefficient of k**2 below the inflection point."""
        return self.inflection_price // (self.inflection_point ** 2)


class SigmoidCurve:
    """
    Production bonding curve.

        price(n) = base_price + linear_slope * n + sigmoid(n)

    The sigmoid term grows quadratically up to the inflection point and like
    a square root after it:

        sigmoid(k) = c * k**2                                   k <  K
        sigmoid(k) = P * sqrt(4k/K - 3)                         k >= K

    with K = inflection_point, P = inflection_price, c = P // K**2. At k = K
    both regimes equal P and have the same slope 2P/K. Every evaluation is
    O(1) and uses integer arithmetic only.

    Example:
        curve = SigmoidCurve(CurveParameters(1_000_000, 100_000, 845_000_000, 2000))
        curve.price_for_unit(1)      # 1_100_211
        curve.price_for_unit(2000)   # 1_046_000_000
    """

    def __init__(self, params: CurveParameters):
        self.params = params

    def linear(self, k: int) -> int:
        return self.params.linear_slope * k

    def sigmoid(self, k: int) -> int:
        p = self.params
        if k < p.inflection_point:
            return p.quadratic_coefficient * k * k
        # 4k - 3K >= K > 0 in this branch
        scaled = (4 * k - 3 * p.inflection_point) * SQRT_INPUT_SCALE // p.inflection_point
        return p.inflection_price * isqrt(scaled) // SQRT_OUTPUT_SCALE

    def price_for_unit(self, n: int) -> int:
        _check_index(n)
        return self.params.base_price + self.linear(n) + self.sigmoid(n)

    def __repr__(self):
        p = self.params
        return (
            f"SigmoidCurve(base={p.base_price}, slope={p.linear_slope}, "
            f"inflection={p.inflection_price}@{p.inflection_point})"
        )


class LinearCurve:
    """Curve with a constant increment: base_price + slope * n."""

    def __init__(self, base_price: int, slope: int = 0):
        for name, value in (('base_price', base_price), ('slope', slope)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidCurveParameters(f"{name} must be an int, got {type(value).__name__}")
            if value < 0 or value > MAX_PRICE:
                raise InvalidCurveParameters(f"{name} {value} outside [0, {MAX_PRICE}]")
        self.base_price = base_price
        self.slope = slope

    def price_for_unit(self, n: int) -> int:
        _check_index(n)
        return self.base_price + self.slope * n

    def __repr__(self):
        return f"LinearCurve(base={self.base_price}, slope={self.slope})"
