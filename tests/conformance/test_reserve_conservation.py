"""
Reserve Conservation Conformance Tests

INVARIANT: Custody always backs exactly the purchased units.

    custody_balance = Σ price(i) for i in 1..(total_supply - pre_mint_count)

INVARIANT: The payment asset is conserved. Buys and sells only move
funds between traders, custody, creator and admin.

INVARIANT: Counters stay consistent.

    pre_mint_count <= total_supply <= last_id
    total_supply = number of live ids in the registry
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from bonding import SigmoidCurve, reserve_for_supply

from tests.helpers import SCENARIO_PARAMS, TRADERS, USDC, build_issuance


RICH = Decimal(10**15)

operations = st.lists(
    st.tuples(
        st.sampled_from(["buy", "bulk_buy", "sell", "bulk_sell"]),
        st.sampled_from(TRADERS),
        st.integers(min_value=1, max_value=4),
    ),
    max_size=25,
)


def _apply(keys, action, trader, n):
    held = [t for t in keys.registry.tokens_of(trader) if t > keys.pre_mint_count]
    if action == "buy":
        keys.buy(trader, max_payment=10**15)
    elif action == "bulk_buy":
        keys.bulk_buy(trader, n, max_payment=10**15)
    elif action == "sell" and held:
        keys.sell(trader, held[-1])
    elif action == "bulk_sell" and held:
        keys.bulk_sell(trader, held[:n])


def _check_invariants(keys):
    purchased = keys.total_supply - keys.pre_mint_count
    assert keys.custody_balance() == reserve_for_supply(keys.curve, purchased)

    report = keys.payments.verify_double_entry({USDC: RICH * len(TRADERS)})
    assert report['valid'], report['discrepancies']

    assert keys.pre_mint_count <= keys.total_supply <= keys.last_id
    live = [t for t in range(1, keys.last_id + 1) if keys.registry.exists(t)]
    assert len(live) == keys.total_supply
    assert set(keys.purchase_times) == set(live)


class TestReserveConservationProperties:

    @given(operations, st.booleans())
    @settings(max_examples=60, deadline=None)
    def test_custody_matches_curve_reserve(self, ops, with_referrer):
        """
        PROPERTY: After any sequence of buys and sells every invariant holds.
        """
        keys = build_issuance(
            SigmoidCurve(SCENARIO_PARAMS), RICH,
            referrer="referrer" if with_referrer else None,
        )
        _check_invariants(keys)
        for action, trader, n in ops:
            _apply(keys, action, trader, n)
            _check_invariants(keys)

    @given(operations)
    @settings(max_examples=40, deadline=None)
    def test_full_unwind_empties_custody(self, ops):
        """
        PROPERTY: Selling every purchased unit returns custody to zero and
        leaves only the pre-mint outstanding.
        """
        keys = build_issuance(SigmoidCurve(SCENARIO_PARAMS), RICH)
        for action, trader, n in ops:
            _apply(keys, action, trader, n)

        for trader in TRADERS:
            held = [t for t in keys.registry.tokens_of(trader) if t > keys.pre_mint_count]
            if held:
                keys.bulk_sell(trader, held)

        assert keys.custody_balance() == 0
        assert keys.total_supply == keys.pre_mint_count
        assert keys.owner_of(1) == "creator"

    @given(operations)
    @settings(max_examples=40, deadline=None)
    def test_fees_only_accumulate(self, ops):
        """
        PROPERTY: Creator and admin balances never decrease.
        """
        keys = build_issuance(SigmoidCurve(SCENARIO_PARAMS), RICH)
        last = (0, 0)
        for action, trader, n in ops:
            _apply(keys, action, trader, n)
            current = (
                int(keys.payments.get_balance("creator", USDC)),
                int(keys.payments.get_balance("admin", USDC)),
            )
            assert current[0] >= last[0] and current[1] >= last[1]
            last = current
