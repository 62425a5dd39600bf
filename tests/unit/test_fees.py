"""
test_fees.py - Unit tests for fee splitting and quote accumulation
"""

import pytest

from bonding import (
    Quote, calculate_fees, validate_fee_bips, MaxFeeExceeded, MAX_FEE_BIPS,
)


class TestCalculateFees:

    def test_reference_split(self):
        assert calculate_fees(1_000_000, 700, 300) == (70_000, 30_000)

    def test_each_stream_truncates_independently(self):
        assert calculate_fees(1_100_211, 700, 300) == (77_014, 33_006)

    def test_zero_rates(self):
        assert calculate_fees(1_000_000, 0, 0) == (0, 0)

    def test_tiny_price_rounds_to_zero(self):
        assert calculate_fees(1, MAX_FEE_BIPS, MAX_FEE_BIPS) == (0, 0)

    def test_large_price_is_exact(self):
        price = 2**127
        creator_fee, admin_fee = calculate_fees(price, 2_500, 1)
        assert creator_fee == price // 4
        assert admin_fee == price // 10_000


class TestValidateFeeBips:

    def test_cap_is_inclusive(self):
        assert validate_fee_bips(2_500) == 2_500
        assert validate_fee_bips(0) == 0

    def test_above_cap(self):
        with pytest.raises(MaxFeeExceeded) as exc_info:
            validate_fee_bips(2_501)
        assert exc_info.value.value == 2_501
        assert exc_info.value.max_value == 2_500

    def test_negative(self):
        with pytest.raises(ValueError, match="non-negative"):
            validate_fee_bips(-1)

    def test_non_int(self):
        with pytest.raises(ValueError, match="must be an int"):
            validate_fee_bips(7.5)


class TestQuote:

    def test_buyer_and_seller_totals(self):
        quote = Quote.for_price(1_000_000, 700, 300)
        assert quote.total_fees == 100_000
        assert quote.total_cost == 1_100_000
        assert quote.net_proceeds == 900_000
        assert quote.units == 1

    def test_zero_is_identity(self):
        quote = Quote.for_price(1_100_000, 700, 300)
        assert Quote.zero() + quote == quote

    def test_addition_sums_every_field(self):
        total = Quote.for_price(1_100_000, 700, 300) + Quote.for_price(1_200_000, 700, 300)
        assert total == Quote(2_300_000, 161_000, 69_000, 2)

    def test_per_unit_fees_can_differ_from_fee_on_sum(self):
        """Two units at 19 with 3% admin fee: 0 + 0 per unit, 1 on the summed price."""
        per_unit = Quote.for_price(19, 0, 300) + Quote.for_price(19, 0, 300)
        assert per_unit.admin_fee == 0
        assert calculate_fees(38, 0, 300) == (0, 1)

    def test_add_non_quote(self):
        with pytest.raises(TypeError):
            Quote.zero() + 1

    def test_immutable(self):
        with pytest.raises(AttributeError):
            Quote.zero().price = 5
