#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Issuance Ledger Step by Step

This is a walkthrough of a bonding-curve issuance ledger. Each step builds on
the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - The payment ledger, the curve, the issuance ledger
  4-6:  Trading      - Quotes, buying, selling, last-in-first-out pricing
  7-8:  Protections  - Caller bounds, the supply floor, the holding period
  9-10: Governance   - Pause, role hand-over, conservation check

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
import sys

from bonding import (
    AssetLedger, payment_token,
    CurveParameters, SigmoidCurve,
    IssuanceConfig, IssuanceLedger,
    price_schedule, batch_costs, reserve_for_supply,
    IssuanceError, MaxPaymentExceeded,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    # 100 USDC each, in base units (6 decimals)
    trader_balance: Decimal = Decimal("100000000")

    # Curve
    base_price: int = 1_000_000
    linear_slope: int = 100_000
    inflection_price: int = 845_000_000
    inflection_point: int = 2000

    # Fees in basis points
    creator_fee_bips: int = 700
    admin_fee_bips: int = 300
    creator_royalty_bips: int = 500

    holding_period: timedelta = timedelta(hours=1)


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def usdc(amount) -> str:
    return f"{Decimal(amount) / Decimal(10**6):,.6f} USDC"


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_payment_ledger():
    """Create the payment ledger and fund the traders."""
    step_header(1, "The Payment Ledger",
        "Funds live on a separate double-entry ledger in base units.")

    print("""
    The issuance ledger never holds balances itself. Every payment is a
    transaction on an AssetLedger, which applies all of its moves or none.
    USDC is registered with 0 decimal places: balances are base units and
    can never go negative.
    """)

    wait_for_enter()

    payments = AssetLedger("payments", CONFIG.start_time, verbose=False, test_mode=True)
    payments.register_unit(payment_token("USDC", "USD Coin", decimals=6))
    for trader in ("alice", "bob"):
        payments.register_wallet(trader)
        payments.set_balance(trader, "USDC", CONFIG.trader_balance)
        print(f"{trader:<8} {usdc(payments.get_balance(trader, 'USDC'))}")

    return payments


def step_02_curve():
    """Build the sigmoid curve and inspect a few prices."""
    step_header(2, "The Bonding Curve",
        "Price is a pure function of the unit's index.")

    print("""
    price(n) = base + slope * n + sigmoid(n)

    The sigmoid term grows quadratically up to the inflection point and like
    a square root after it. Index 0 is the creator's free pre-mint.
    """)

    wait_for_enter()

    curve = SigmoidCurve(CurveParameters(
        CONFIG.base_price, CONFIG.linear_slope,
        CONFIG.inflection_price, CONFIG.inflection_point,
    ))
    for n in (1, 2, 100, 1999, 2000, 10000):
        print(f"price({n:>5}) = {usdc(curve.price_for_unit(n))}")

    section_header("Batch costs from index 1")
    for size, cost in zip((1, 10, 100), batch_costs(curve, 1, [1, 10, 100])):
        print(f"{size:>4} units: {usdc(cost)}")

    return curve


def step_03_issuance(payments: AssetLedger, curve: SigmoidCurve):
    """Create the issuance ledger."""
    step_header(3, "The Issuance Ledger",
        "Construction pre-mints unit #1 to the creator.")

    config = IssuanceConfig(
        name="Creator Keys", symbol="KEYS", uri="ipfs://keys/",
        creator="creator", creator_fee_bips=CONFIG.creator_fee_bips,
        creator_royalty_bips=CONFIG.creator_royalty_bips,
        admin="admin", admin_fee_bips=CONFIG.admin_fee_bips,
        min_holding_period=CONFIG.holding_period,
    )
    keys = IssuanceLedger(config, payments, "USDC", curve)

    print(f"{keys!r}")
    print(f"Owner of #1:    {keys.owner_of(1)}")
    print(f"Supply floor:   {keys.supply_floor}")
    print(f"Custody wallet: {keys.custody_wallet}")
    wait_for_enter()
    return keys


# ============================================================================
# PHASE 2: TRADING (Steps 4-6)
# ============================================================================

def step_04_quote_and_buy(keys: IssuanceLedger):
    step_header(4, "Quote, Then Buy",
        "Fees are computed per unit; max_payment bounds what you pay.")

    quote = keys.price_to_buy_next()
    print(f"Next unit: price {usdc(quote.price)}, creator fee {usdc(quote.creator_fee)}, "
          f"admin fee {usdc(quote.admin_fee)}")
    print(f"Total cost: {usdc(quote.total_cost)}\n")

    token_id = keys.buy("alice", max_payment=quote.total_cost)
    print(f"\nalice now owns #{token_id}; custody holds {usdc(keys.custody_balance())}")
    wait_for_enter()


def step_05_bulk_buy(keys: IssuanceLedger):
    step_header(5, "Bulk Buy",
        "One settlement for many units, priced one by one up the curve.")

    quote = keys.price_to_buy_next(3)
    ids = keys.bulk_buy("bob", 3, max_payment=quote.total_cost)
    print(f"\nbob bought {ids} for {usdc(quote.total_cost)}")
    print(f"Prices paid: {[e.price for e in keys.events][-3:]}")
    wait_for_enter()


def step_06_lifo_sell(keys: IssuanceLedger):
    step_header(6, "Last-In-First-Out Selling",
        "A sale is priced at the top of the curve, whatever id is sold.")

    keys.payments.advance_time(CONFIG.start_time + CONFIG.holding_period)
    quote = keys.price_to_sell_next()
    print(f"Top of curve sells for {usdc(quote.net_proceeds)} net\n")
    proceeds = keys.sell("alice", 2)
    print(f"\nalice sold her early unit #2 for {usdc(proceeds)}")
    print("She bought at index 1 but sold at the top index, after bob's purchases.")
    wait_for_enter()


# ============================================================================
# PHASE 3: PROTECTIONS (Steps 7-8)
# ============================================================================

def step_07_caller_bounds(keys: IssuanceLedger):
    step_header(7, "Caller Protection",
        "Bounds that are not met reject the whole operation.")

    quote = keys.price_to_buy_next()
    try:
        keys.buy("alice", max_payment=quote.total_cost - 1)
    except MaxPaymentExceeded as e:
        print(f"✗ {e}")
    print(f"Supply unchanged: {keys.total_supply}")
    wait_for_enter()


def step_08_holding_period(keys: IssuanceLedger):
    step_header(8, "Holding Period",
        "Freshly bought units cannot be flipped immediately.")

    token_id = keys.buy("alice", max_payment=10**12)
    try:
        keys.sell("alice", token_id)
    except IssuanceError as e:
        print(f"✗ {e}")
    keys.payments.advance_time(keys.current_time + CONFIG.holding_period)
    print()
    keys.sell("alice", token_id)
    wait_for_enter()


# ============================================================================
# PHASE 4: GOVERNANCE (Steps 9-10)
# ============================================================================

def step_09_governance(keys: IssuanceLedger):
    step_header(9, "Pause and Role Hand-over",
        "Creator or admin may pause; each role is handed over by its holder.")

    keys.pause("admin", True)
    try:
        keys.buy("bob", max_payment=10**12)
    except IssuanceError as e:
        print(f"✗ {e}")
    keys.pause("creator", False)
    keys.update_creator("creator", "studio")
    print(f"Royalty info for #1: {keys.registry.royalty_info(1, 1_000_000)}")
    wait_for_enter()


def step_10_conservation(keys: IssuanceLedger):
    step_header(10, "Conservation",
        "Custody always equals the curve reserve of the outstanding units.")

    purchased = keys.total_supply - keys.pre_mint_count
    print(f"Outstanding purchased units: {purchased}")
    print(f"Custody balance:             {usdc(keys.custody_balance())}")
    print(f"Curve reserve:               {usdc(reserve_for_supply(keys.curve, purchased))}")
    print(f"Next prices:                 {list(price_schedule(keys.curve, purchased + 1, 3))}")

    expected = {"USDC": CONFIG.trader_balance * 2}
    report = keys.payments.verify_double_entry(expected)
    print(f"USDC conserved:              {report['valid']}")

    section_header("Final balances")
    for wallet in sorted(keys.payments.list_wallets()):
        print(f"{wallet:<14} {usdc(keys.payments.get_balance(wallet, 'USDC'))}")


def main():
    print("""
    ╔══════════════════════════════════════════════════════════════════╗
    ║              BONDING-CURVE ISSUANCE LEDGER TUTORIAL              ║
    ╚══════════════════════════════════════════════════════════════════╝
    """)

    payments = step_01_payment_ledger()
    curve = step_02_curve()
    keys = step_03_issuance(payments, curve)

    step_04_quote_and_buy(keys)
    step_05_bulk_buy(keys)
    step_06_lifo_sell(keys)

    step_07_caller_bounds(keys)
    step_08_holding_period(keys)

    step_09_governance(keys)
    step_10_conservation(keys)

    print("""
    Next steps:
      - See bonding/issuance.py for the settlement pattern
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
