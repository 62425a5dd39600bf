"""
analytics.py - Quote tables over a bonding curve

Array helpers for charting and pre-trade analysis:
- price_schedule: exact prices for a contiguous run of unit indices
- cumulative_cost: running principal of buying that run one unit at a time
- batch_costs: principal of buying k units for several batch sizes
- reserve_for_supply: custody balance backing the purchased units
- is_monotonic: check that a run of prices never decreases

Prices can exceed 64 bits, so arrays use object dtype and hold exact Python
ints. Nothing here is used to settle trades.
"""

from typing import Sequence

import numpy as np

from .curves import CurveProvider


def price_schedule(curve: CurveProvider, start: int, count: int) -> np.ndarray:
    """
    Prices of indices start, start + 1, ..., start + count - 1.

    Example:
        price_schedule(LinearCurve(100, 10), 1, 3)   # array([110, 120, 130], dtype=object)
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    return np.array([curve.price_for_unit(start + i) for i in range(count)], dtype=object)


def cumulative_cost(curve: CurveProvider, start: int, count: int) -> np.ndarray:
    """Element i is the principal of buying indices start..start + i."""
    prices = price_schedule(curve, start, count)
    if prices.size == 0:
        return prices
    return np.cumsum(prices, dtype=object)


def batch_costs(curve: CurveProvider, start: int, sizes: Sequence[int]) -> np.ndarray:
    """Principal of buying k units from `start`, for each k in sizes."""
    sizes = np.asarray(sizes, dtype=np.int64)
    if sizes.size == 0:
        return np.array([], dtype=object)
    if (sizes < 1).any():
        raise ValueError("batch sizes must be positive")
    running = cumulative_cost(curve, start, int(sizes.max()))
    return running[sizes - 1]


def reserve_for_supply(curve: CurveProvider, purchased: int) -> int:
    """
    Principal held in custody while `purchased` units are outstanding.

    Buying index k adds price(k) to custody and selling the top unit pays
    price(k) back out, so custody always equals the sum of price(1..purchased).
    """
    if purchased <= 0:
        return 0
    return int(cumulative_cost(curve, 1, purchased)[-1])


def is_monotonic(curve: CurveProvider, start: int, count: int) -> bool:
    """True if no price in the run is lower than the one before it."""
    prices = price_schedule(curve, start, count)
    if prices.size < 2:
        return True
    return bool((np.diff(prices) >= 0).all())
