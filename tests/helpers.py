"""
helpers.py - Builders shared by fixtures and property-based tests

Hypothesis tests cannot use function-scoped fixtures, so they build fresh
ledgers through these functions instead.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from bonding import (
    AssetLedger, payment_token,
    CurveParameters, CurveProvider, LinearCurve,
    IssuanceConfig, IssuanceLedger,
)


T0 = datetime(2025, 1, 1)
USDC = "USDC"
STARTING_BALANCE = Decimal("100000000")  # 100 USDC in base units
TRADERS = ("alice", "bob", "carol")

# Reference curve: price(1) = 1_100_211, price(2000) = 1_046_000_000
SCENARIO_PARAMS = CurveParameters(
    base_price=1_000_000,
    linear_slope=100_000,
    inflection_price=845_000_000,
    inflection_point=2000,
)


def build_config(**overrides) -> IssuanceConfig:
    """IssuanceConfig with 7% creator fee, 3% admin fee, 5% royalty."""
    fields: Dict[str, Any] = dict(
        name="Creator Keys",
        symbol="KEYS",
        uri="ipfs://keys/",
        creator="creator",
        creator_fee_bips=700,
        creator_royalty_bips=500,
        admin="admin",
        admin_fee_bips=300,
    )
    fields.update(overrides)
    return IssuanceConfig(**fields)


def build_payments(balance: Decimal = STARTING_BALANCE) -> AssetLedger:
    """Payment ledger with every trader funded with `balance`."""
    ledger = AssetLedger("payments", T0, verbose=False, test_mode=True)
    ledger.register_unit(payment_token(USDC, "USD Coin", decimals=6))
    for trader in TRADERS:
        ledger.register_wallet(trader)
        ledger.set_balance(trader, USDC, balance)
    return ledger


def build_issuance(
    curve: Optional[CurveProvider] = None,
    balance: Decimal = STARTING_BALANCE,
    **config_overrides,
) -> IssuanceLedger:
    """Issuance ledger on a fresh payment ledger (linear curve by default)."""
    return IssuanceLedger(
        build_config(**config_overrides),
        build_payments(balance),
        USDC,
        curve or LinearCurve(1_000_000, 100_000),
        verbose=False,
    )


def balance(keys: IssuanceLedger, wallet: str) -> int:
    return int(keys.payments.get_balance(wallet, USDC))


def snapshot(keys: IssuanceLedger) -> Dict[str, Any]:
    """Everything an operation could change, for before/after comparison."""
    payments = keys.payments
    return {
        'balances': {
            w: payments.get_balance(w, USDC) for w in sorted(payments.list_wallets())
        },
        'last_id': keys.last_id,
        'total_supply': keys.total_supply,
        'owners': {
            t: keys.registry.owner_of(t)
            for t in range(1, keys.last_id + 1) if keys.registry.exists(t)
        },
        'purchase_times': dict(keys.purchase_times),
        'events': len(keys.events),
        'tx_log': len(payments.transaction_log),
        'paused': keys.paused,
        'creator': keys.creator,
        'admin': keys.admin,
    }
