"""
conftest.py - Shared pytest fixtures for bonding tests

Provides common fixtures used across unit, conformance and functional tests:
- A funded payment ledger (USDC in base units)
- The reference sigmoid curve and a simple linear curve
- Issuance ledgers with and without a referrer and a holding period
"""

import pytest
from datetime import timedelta

from bonding import SigmoidCurve, LinearCurve, IssuanceLedger

from tests.helpers import SCENARIO_PARAMS, USDC, build_config, build_payments


@pytest.fixture
def payments():
    """Payment ledger with alice, bob and carol holding 100 USDC each."""
    return build_payments()


@pytest.fixture
def sigmoid_curve():
    return SigmoidCurve(SCENARIO_PARAMS)


@pytest.fixture
def linear_curve():
    """price(n) = 1_000_000 + 100_000 * n"""
    return LinearCurve(1_000_000, 100_000)


@pytest.fixture
def keys(payments, linear_curve):
    """Issuance ledger on the linear curve, no referrer, no holding period."""
    return IssuanceLedger(build_config(), payments, USDC, linear_curve, verbose=False)


@pytest.fixture
def referred_keys(payments, linear_curve):
    """Issuance ledger with a referrer pre-mint."""
    return IssuanceLedger(
        build_config(referrer="referrer"), payments, USDC, linear_curve, verbose=False
    )


@pytest.fixture
def held_keys(payments, linear_curve):
    """Issuance ledger with a one-hour minimum holding period."""
    return IssuanceLedger(
        build_config(min_holding_period=timedelta(hours=1)),
        payments, USDC, linear_curve, verbose=False,
    )


@pytest.fixture
def sigmoid_keys(payments, sigmoid_curve):
    """Issuance ledger on the reference sigmoid curve."""
    return IssuanceLedger(build_config(), payments, USDC, sigmoid_curve, verbose=False)
