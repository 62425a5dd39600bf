"""
test_sell.py - Unit tests for sell quotes, sell() and bulk_sell()

Sales are priced last-in-first-out on the curve: the unit sold is priced at
index total_supply - pre_mint_count whatever id it carries.
"""

import pytest
from datetime import timedelta

from bonding import (
    Quote, UnitSold,
    LedgerPaused, TokenNotFound, CallerIsNotOwner, MinHoldingTimeNotReached,
    LastTokensCannotBeSold, MinAcceptedPriceExceeded,
)

from tests.helpers import T0, balance, snapshot


@pytest.fixture
def bought(keys):
    """alice owns id 2, bought at index 1 for 1_210_000."""
    keys.buy("alice", max_payment=1_210_000)
    return keys


class TestSellQuotes:

    def test_only_pre_mint_outstanding(self, keys):
        with pytest.raises(LastTokensCannotBeSold) as exc_info:
            keys.price_to_sell_next()
        assert exc_info.value.total_supply == 1
        assert exc_info.value.floor == 1

    def test_top_unit(self, bought):
        quote = bought.price_to_sell_next()
        assert quote == Quote(1_100_000, 77_000, 33_000)
        assert quote.net_proceeds == 990_000

    def test_batch_walks_down_the_curve(self, keys):
        keys.bulk_buy("alice", 2, max_payment=10**9)
        quote = keys.price_to_sell_next(2)
        assert quote == Quote(2_300_000, 161_000, 69_000, 2)

    def test_batch_cannot_cross_floor(self, bought):
        with pytest.raises(LastTokensCannotBeSold):
            bought.price_to_sell_next(2)


class TestSell:

    def test_round_trip(self, bought):
        proceeds = bought.sell("alice", 2)
        assert proceeds == 990_000
        assert balance(bought, "alice") == 99_780_000
        assert bought.custody_balance() == 0
        assert balance(bought, "creator") == 154_000
        assert balance(bought, "admin") == 66_000

    def test_burns_the_unit(self, bought):
        bought.sell("alice", 2)
        assert bought.total_supply == 1
        assert bought.last_id == 2
        assert bought.purchase_time(2) is None
        with pytest.raises(TokenNotFound):
            bought.owner_of(2)

    def test_ids_are_not_reused(self, bought):
        bought.sell("alice", 2)
        assert bought.buy("bob", max_payment=10**9) == 3

    def test_last_in_first_out_pricing(self, bought):
        """alice's id 2 is sold at the top of the curve once bob holds id 3."""
        bought.buy("bob", max_payment=1_320_000)
        assert bought.sell("alice", 2) == 1_080_000
        assert balance(bought, "alice") == 99_870_000
        assert bought.sell("bob", 3) == 990_000
        assert balance(bought, "bob") == 99_670_000
        assert bought.custody_balance() == 0

    def test_not_owner(self, bought):
        before = snapshot(bought)
        with pytest.raises(CallerIsNotOwner) as exc_info:
            bought.sell("bob", 2)
        assert exc_info.value.owner == "alice"
        assert exc_info.value.caller == "bob"
        assert snapshot(bought) == before

    def test_unknown_token(self, bought):
        with pytest.raises(TokenNotFound) as exc_info:
            bought.sell("alice", 99)
        assert exc_info.value.token_id == 99

    def test_creator_pre_mint_floor(self, keys):
        with pytest.raises(LastTokensCannotBeSold):
            keys.sell("creator", 1)
        assert keys.owner_of(1) == "creator"

    def test_min_accepted_price_exceeded(self, bought):
        before = snapshot(bought)
        with pytest.raises(MinAcceptedPriceExceeded) as exc_info:
            bought.sell("alice", 2, min_accepted_price=990_001)
        assert exc_info.value.actual == 990_000
        assert exc_info.value.min_accepted == 990_001
        assert snapshot(bought) == before

    def test_exact_min_accepted_price(self, bought):
        assert bought.sell("alice", 2, min_accepted_price=990_000) == 990_000

    def test_paused(self, bought):
        bought.pause("admin", True)
        with pytest.raises(LedgerPaused):
            bought.sell("alice", 2)
        assert bought.owner_of(2) == "alice"

    def test_settlement(self, bought):
        bought.sell("alice", 2)
        tx = bought.payments.transaction_log[-1]
        assert tx.origin.event_type == "SELL"
        assert tx.contract_ids == frozenset({
            "KEYS:sell:#2:proceeds", "KEYS:sell:#2:creator_fee", "KEYS:sell:#2:admin_fee",
        })

    def test_event(self, bought):
        bought.sell("alice", 2)
        assert bought.events.of_type(UnitSold) == [
            UnitSold(T0, "alice", 2, 1_100_000, 77_000, 33_000)
        ]


class TestHoldersNewToThePaymentLedger:
    """Owners who never paid for anything still get their proceeds."""

    def test_sell_unit_bought_for_someone_else(self, keys):
        keys.buy("alice", max_payment=10**9, to="dave")
        assert balance(keys, "dave") == 0
        keys.buy("bob", max_payment=10**9)

        assert keys.sell("dave", 2) == 1_080_000
        assert balance(keys, "dave") == 1_080_000
        assert keys.custody_balance() == 1_100_000
        assert keys.owner_of(3) == "bob"

    def test_sell_unit_received_by_transfer(self, bought):
        bought.registry.transfer("alice", "erin", 2)

        assert bought.sell("erin", 2) == 990_000
        assert balance(bought, "erin") == 990_000
        assert balance(bought, "alice") == 98_790_000
        assert bought.custody_balance() == 0

    def test_rejected_sale_registers_nobody(self, bought):
        with pytest.raises(CallerIsNotOwner):
            bought.sell("mallory", 2)
        assert not bought.payments.is_registered("mallory")


class TestHoldingPeriod:
    """held_keys enforces a one-hour minimum holding period."""

    def test_too_early(self, held_keys):
        held_keys.buy("alice", max_payment=10**9)
        with pytest.raises(MinHoldingTimeNotReached) as exc_info:
            held_keys.sell("alice", 2)
        assert exc_info.value.purchased_at == T0
        assert exc_info.value.eligible_at == T0 + timedelta(hours=1)

    def test_one_second_early(self, held_keys):
        held_keys.buy("alice", max_payment=10**9)
        held_keys.payments.advance_time(T0 + timedelta(minutes=59, seconds=59))
        with pytest.raises(MinHoldingTimeNotReached):
            held_keys.sell("alice", 2)

    def test_exactly_at_boundary(self, held_keys):
        held_keys.buy("alice", max_payment=10**9)
        held_keys.payments.advance_time(T0 + timedelta(hours=1))
        assert held_keys.sell("alice", 2) == 990_000

    def test_clock_is_per_unit(self, held_keys):
        held_keys.buy("alice", max_payment=10**9)
        held_keys.payments.advance_time(T0 + timedelta(minutes=30))
        held_keys.buy("alice", max_payment=10**9)
        held_keys.payments.advance_time(T0 + timedelta(hours=1))
        held_keys.sell("alice", 2)
        with pytest.raises(MinHoldingTimeNotReached):
            held_keys.sell("alice", 3)

    def test_disabled_without_period(self, bought):
        assert bought.min_holding_period is None
        bought.sell("alice", 2)


class TestBulkSell:

    def test_prices_walk_down(self, keys):
        keys.bulk_buy("alice", 3, max_payment=10**9)
        assert keys.bulk_sell("alice", [2, 3, 4]) == 3_240_000
        assert balance(keys, "alice") == 99_280_000
        assert keys.custody_balance() == 0
        assert keys.total_supply == 1

    def test_one_event_per_unit_in_given_order(self, keys):
        keys.bulk_buy("alice", 3, max_payment=10**9)
        keys.bulk_sell("alice", [2, 3, 4])
        assert keys.events.of_type(UnitSold) == [
            UnitSold(T0, "alice", 2, 1_300_000, 91_000, 39_000),
            UnitSold(T0, "alice", 3, 1_200_000, 84_000, 36_000),
            UnitSold(T0, "alice", 4, 1_100_000, 77_000, 33_000),
        ]

    def test_single_settlement(self, keys):
        keys.bulk_buy("alice", 3, max_payment=10**9)
        keys.bulk_sell("alice", [4, 2])
        tx = keys.payments.transaction_log[-1]
        assert tx.origin.event_type == "BULK_SELL"
        assert "KEYS:bulk_sell:#4,#2:proceeds" in tx.contract_ids

    def test_all_or_nothing_on_ownership(self, keys):
        keys.bulk_buy("alice", 2, max_payment=10**9)
        keys.buy("bob", max_payment=10**9)
        before = snapshot(keys)
        with pytest.raises(CallerIsNotOwner):
            keys.bulk_sell("alice", [2, 3, 4])
        assert snapshot(keys) == before

    def test_all_or_nothing_on_floor(self, keys):
        keys.buy("alice", max_payment=10**9, to="creator")
        before = snapshot(keys)
        with pytest.raises(LastTokensCannotBeSold):
            keys.bulk_sell("creator", [2, 1])
        assert snapshot(keys) == before

    def test_min_accepted_price_bounds_the_aggregate(self, keys):
        keys.bulk_buy("alice", 3, max_payment=10**9)
        with pytest.raises(MinAcceptedPriceExceeded):
            keys.bulk_sell("alice", [2, 3, 4], min_accepted_price=3_240_001)
        assert keys.total_supply == 4

    def test_empty(self, bought):
        with pytest.raises(ValueError, match="empty"):
            bought.bulk_sell("alice", [])

    def test_duplicates(self, keys):
        keys.bulk_buy("alice", 2, max_payment=10**9)
        with pytest.raises(ValueError, match="duplicate"):
            keys.bulk_sell("alice", [2, 2])
        assert keys.total_supply == 3
