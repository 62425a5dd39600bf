"""
bonding - Bonding-Curve Issuance Ledger

Sequentially numbered units priced by a deterministic bonding curve, settled
against a fungible payment ledger.

Usage:
    from datetime import datetime
    from decimal import Decimal
    from bonding import (
        AssetLedger, payment_token, IssuanceConfig, IssuanceLedger,
        CurveParameters, SigmoidCurve,
    )

    payments = AssetLedger("payments", datetime(2025, 1, 1), test_mode=True)
    payments.register_unit(payment_token("USDC", "USD Coin", decimals=6))
    payments.register_wallet("alice")
    payments.set_balance("alice", "USDC", Decimal("100000000"))

    config = IssuanceConfig(
        name="Creator Keys", symbol="KEYS", uri="ipfs://keys/",
        creator="creator", creator_fee_bips=700, creator_royalty_bips=500,
        admin="admin", admin_fee_bips=300,
    )
    curve = SigmoidCurve(CurveParameters(1_000_000, 100_000, 845_000_000, 2000))
    keys = IssuanceLedger(config, payments, "USDC", curve)

    quote = keys.price_to_buy_next()
    token_id = keys.buy("alice", max_payment=quote.total_cost)
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    Unit,
    ExecuteResult,
    payment_token,
    is_null_address,
    SYSTEM_WALLET,
    ZERO_ADDRESS,
    UNIT_TYPE_PAYMENT_TOKEN,
    # Exceptions
    LedgerError,
    TransferRuleViolation,
    UnitNotRegistered,
    WalletNotRegistered,
    InvalidCurveParameters,
    TokenNotFound,
    TokenAlreadyMinted,
    IssuanceError,
    AddressZeroNotAllowed,
    MaxFeeExceeded,
    Unauthorized,
    LedgerPaused,
    MaxPaymentExceeded,
    MinAcceptedPriceExceeded,
    CallerIsNotOwner,
    MinHoldingTimeNotReached,
    LastTokensCannotBeSold,
    PaymentRejected,
)

# Payment ledger
from .ledger import AssetLedger

# Curves
from .curves import (
    CurveProvider,
    CurveParameters,
    SigmoidCurve,
    LinearCurve,
    MAX_UNIT_INDEX,
    MAX_PRICE,
)

# Fees
from .fees import (
    Quote,
    calculate_fees,
    validate_fee_bips,
    BIPS_DENOMINATOR,
    MAX_FEE_BIPS,
)

# Ownership
from .registry import OwnershipRegistry, TokenRegistry

# Events
from .events import (
    EventLog,
    EventListener,
    IssuanceEvent,
    UnitBought,
    UnitSold,
    PauseToggled,
    CreatorUpdated,
    AdminUpdated,
)

# Issuance
from .issuance import IssuanceConfig, IssuanceLedger

# Analytics
from .analytics import (
    price_schedule,
    cumulative_cost,
    batch_costs,
    reserve_for_supply,
    is_monotonic,
)

__all__ = [
    # Core
    'LedgerView', 'Move', 'Transaction', 'PendingTransaction', 'TransactionOrigin', 'OriginType',
    'build_transaction', 'Unit', 'ExecuteResult', 'payment_token', 'is_null_address',
    'SYSTEM_WALLET', 'ZERO_ADDRESS', 'UNIT_TYPE_PAYMENT_TOKEN',
    # Exceptions
    'LedgerError',
    'TransferRuleViolation', 'UnitNotRegistered', 'WalletNotRegistered',
    'InvalidCurveParameters', 'TokenNotFound', 'TokenAlreadyMinted',
    'IssuanceError', 'AddressZeroNotAllowed', 'MaxFeeExceeded', 'Unauthorized',
    'LedgerPaused', 'MaxPaymentExceeded', 'MinAcceptedPriceExceeded',
    'CallerIsNotOwner', 'MinHoldingTimeNotReached', 'LastTokensCannotBeSold',
    'PaymentRejected',
    # Payment ledger
    'AssetLedger',
    # Curves
    'CurveProvider', 'CurveParameters', 'SigmoidCurve', 'LinearCurve',
    'MAX_UNIT_INDEX', 'MAX_PRICE',
    # Fees
    'Quote', 'calculate_fees', 'validate_fee_bips', 'BIPS_DENOMINATOR', 'MAX_FEE_BIPS',
    # Ownership
    'OwnershipRegistry', 'TokenRegistry',
    # Events
    'EventLog', 'EventListener', 'IssuanceEvent',
    'UnitBought', 'UnitSold', 'PauseToggled', 'CreatorUpdated', 'AdminUpdated',
    # Issuance
    'IssuanceConfig', 'IssuanceLedger',
    # Analytics
    'price_schedule', 'cumulative_cost', 'batch_costs', 'reserve_for_supply', 'is_monotonic',
]

__version__ = '1.0.0'
