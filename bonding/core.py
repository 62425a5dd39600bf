"""
Core types shared by the payment ledger and the issuance ledger.

Payment amounts are whole base units of the payment asset (micro-USDC and
the like) carried as Decimal. Everything here is immutable: a Move says
what should change, a PendingTransaction bundles the moves of one buy or
sell, and a Transaction is the record the payment ledger keeps once it has
applied them. The error hierarchy for both ledgers lives here too.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_EVEN, ROUND_DOWN, getcontext
from enum import Enum
import hashlib
from typing import (
    Dict, List, Set, Optional, Callable, Any, Protocol,
    Tuple, FrozenSet, runtime_checkable
)


# ============================================================================
# DECIMAL CONTEXT
# ============================================================================

# Curve prices reach 128 bits (39 digits); fifty leaves room for fee products.
getcontext().prec = 50
getcontext().rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Funding source for the payment asset; never balance-checked.
SYSTEM_WALLET = "system"

ZERO_ADDRESS = "0x" + "0" * 40

UNIT_TYPE_PAYMENT_TOKEN = "PAYMENT_TOKEN"

# Anything smaller is not a real transfer of base units.
DUST = Decimal("1e-12")


def is_null_address(address: Optional[str]) -> bool:
    """True for None, blank strings and ZERO_ADDRESS."""
    if address is None:
        return True
    if not isinstance(address, str):
        raise ValueError(f"address must be a str, got {type(address).__name__}")
    address = address.strip()
    return address in ("", ZERO_ADDRESS)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """What the issuance ledger and transfer rules may read from the payment ledger."""

    @property
    def current_time(self) -> datetime:
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        ...

    def is_registered(self, wallet_id: str) -> bool:
        ...

    def list_wallets(self) -> Set[str]:
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """What AssetLedger.execute() did with a pending transaction."""
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"   # same intent_id seen before
    REJECTED = "rejected"                 # see AssetLedger.validate() for the reason


class OriginType(Enum):
    USER_ACTION = "user_action"           # direct transfers and funding
    CONTRACT = "contract"                 # buy/sell settlement


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Root of every error raised by this package."""


class TransferRuleViolation(LedgerError):
    """A unit's transfer rule refused a move."""


class UnitNotRegistered(LedgerError):
    pass


class WalletNotRegistered(LedgerError):
    pass


class InvalidCurveParameters(LedgerError, ValueError):
    """Raised when curve parameters cannot produce a sane, monotone price curve."""
    pass


class TokenNotFound(LedgerError):
    """Raised when a token id has never been minted or has been burned."""

    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(f"Token {token_id} does not exist")


class TokenAlreadyMinted(LedgerError):
    """Raised when minting an id that was already assigned."""

    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(f"Token {token_id} already minted")


class IssuanceError(LedgerError):
    """Base exception for issuance ledger failures. No state is mutated when raised."""
    pass


class AddressZeroNotAllowed(IssuanceError):
    """Raised when a role would be assigned to the null address."""

    def __init__(self, role: str):
        self.role = role
        super().__init__(f"{role} cannot be the zero address")


class MaxFeeExceeded(IssuanceError):
    """Raised when a fee or royalty rate exceeds the fixed cap."""

    def __init__(self, value: int, max_value: int):
        self.value = value
        self.max_value = max_value
        super().__init__(f"Fee {value} bips exceeds maximum {max_value}")


class Unauthorized(IssuanceError):
    """Raised when a role-gated operation is called by the wrong caller."""

    def __init__(self, caller: str, action: str):
        self.caller = caller
        self.action = action
        super().__init__(f"{caller} is not authorized to {action}")


class LedgerPaused(IssuanceError):
    """Raised when buying or selling while the ledger is paused."""

    def __init__(self):
        super().__init__("Issuance is paused")


class MaxPaymentExceeded(IssuanceError):
    """Raised when the total owed for a purchase exceeds the caller's ceiling."""

    def __init__(self, actual: int, max_payment: int):
        self.actual = actual
        self.max_payment = max_payment
        super().__init__(f"Payment {actual} exceeds maximum {max_payment}")


class MinAcceptedPriceExceeded(IssuanceError):
    """Raised when the net proceeds of a sale fall below the caller's floor."""

    def __init__(self, actual: int, min_accepted: int):
        self.actual = actual
        self.min_accepted = min_accepted
        super().__init__(f"Proceeds {actual} below minimum accepted {min_accepted}")


class CallerIsNotOwner(IssuanceError):
    """Raised when someone other than the owner tries to sell or transfer a unit."""

    def __init__(self, token_id: int, owner: Optional[str], caller: str):
        self.token_id = token_id
        self.owner = owner
        self.caller = caller
        super().__init__(f"{caller} does not own token {token_id} (owner: {owner})")


class MinHoldingTimeNotReached(IssuanceError):
    """Raised when a unit is sold before its holding period has elapsed."""

    def __init__(self, token_id: int, purchased_at: datetime, eligible_at: datetime):
        self.token_id = token_id
        self.purchased_at = purchased_at
        self.eligible_at = eligible_at
        super().__init__(
            f"Token {token_id} bought at {purchased_at} cannot be sold before {eligible_at}"
        )


class LastTokensCannotBeSold(IssuanceError):
    """Raised when a sale would take total supply below the pre-mint floor."""

    def __init__(self, total_supply: int, floor: int):
        self.total_supply = total_supply
        self.floor = floor
        super().__init__(f"Supply {total_supply} cannot drop below floor {floor}")


class PaymentRejected(IssuanceError):
    """Raised when the payment ledger would reject the settlement transfers."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Payment rejected: {reason}")


# ============================================================================
# SETTLEMENT RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """Who asked for a transaction: for settlements, the collection and operation."""
    origin_type: OriginType
    source_id: str
    unit_symbol: Optional[str] = None
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        desc = f"{self.origin_type.value}:{self.source_id}"
        if self.unit_symbol:
            desc += f", unit={self.unit_symbol}"
        if self.event_type:
            desc += f", event={self.event_type}"
        return f"Origin({desc})"


@dataclass(frozen=True, slots=True)
class Move:
    """
    One payment leg: `quantity` base units of `unit_symbol` from `source` to `dest`.

    `contract_id` names the settlement stream the leg belongs to, for example
    "KEYS:buy:#2:creator_fee".
    """
    quantity: Decimal
    unit_symbol: str
    source: str
    dest: str
    contract_id: str
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        for name in ("source", "dest", "unit_symbol", "contract_id"):
            value = getattr(self, name)
            if not value or not value.strip():
                raise ValueError(f"Move {name} cannot be empty")
        if not isinstance(self.quantity, Decimal):
            raise ValueError(f"Move quantity must be Decimal, got {type(self.quantity)}")
        if not self.quantity.is_finite():
            raise ValueError(f"Move quantity must be finite, got {self.quantity}")
        if abs(self.quantity) < DUST:
            raise ValueError("Move quantity is effectively zero")
        if self.source == self.dest:
            raise ValueError(f"Source and dest must be different ({self.source})")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


def _canonical_amount(quantity: Decimal) -> str:
    # 1100000 and 1.1E+6 must hash alike
    return format(quantity.normalize(), 'f')


def _intent_hash(moves: Tuple[Move, ...], origin: TransactionOrigin) -> str:
    """First 16 hex digits of a SHA-256 over the origin and the sorted legs."""
    legs = sorted(
        "\t".join((_canonical_amount(m.quantity), m.unit_symbol, m.source, m.dest, m.contract_id))
        for m in moves
    )
    header = "\t".join((
        origin.origin_type.value, origin.source_id,
        origin.unit_symbol or "", origin.event_type or "",
    ))
    digest = hashlib.sha256("\n".join([header, *legs]).encode())
    return digest.hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    The legs of one operation, not yet applied.

    intent_id is derived from the legs and origin (not the timestamp), so
    resubmitting the same settlement is recognised by the payment ledger.
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            object.__setattr__(self, 'intent_id', _intent_hash(self.moves, self.origin))

    def is_empty(self) -> bool:
        return len(self.moves) == 0

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, {self.origin})"


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """Wrap moves in a PendingTransaction stamped with the ledger's clock."""
    return PendingTransaction(
        moves=tuple(moves),
        origin=origin or TransactionOrigin(OriginType.USER_ACTION, "user"),
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    A PendingTransaction after the payment ledger applied it.

    exec_id and sequence_number are assigned by the ledger; contract_ids is
    filled from the moves when not given.
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")
        if self.contract_ids is None:
            ids = frozenset(move.contract_id for move in self.moves)
            object.__setattr__(self, 'contract_ids', ids)

    def describe(self) -> str:
        """Multi-line summary used by verbose ledgers."""
        lines = [f"tx #{self.sequence_number} [{self.intent_id}] {self.origin} @ {self.execution_time}"]
        lines.extend(
            f"    {move.quantity} {move.unit_symbol}  {move.source} → {move.dest}  ({move.contract_id})"
            for move in self.moves
        )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Transaction({self.exec_id}, {len(self.moves)} moves, {self.origin})"


# ============================================================================
# UNITS
# ============================================================================

# Raises TransferRuleViolation to refuse a move.
TransferRule = Callable[[LedgerView, Move], None]


@dataclass(frozen=True, slots=True)
class Unit:
    """
    A fungible asset the payment ledger can hold.

    Balances of every wallet except SYSTEM_WALLET must stay at or
    above min_balance after each transaction. `attributes` holds
    descriptive (key, value) pairs such as the display decimals; read it
    through `state`, which hands out a fresh dict.
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: Decimal = Decimal("0")
    decimal_places: Optional[int] = None
    transfer_rule: Optional[TransferRule] = None
    rounding: str = ROUND_HALF_EVEN
    attributes: Tuple[Tuple[str, Any], ...] = ()

    @property
    def state(self) -> Dict[str, Any]:
        return dict(self.attributes)

    def round(self, value: Decimal) -> Decimal:
        """Quantize to decimal_places; a unit without decimal_places is left as is."""
        if self.decimal_places is None:
            return value
        return Decimal(value).quantize(Decimal(1).scaleb(-self.decimal_places), rounding=self.rounding)


def payment_token(symbol: str, name: str, decimals: int = 6) -> Unit:
    """
    The fungible asset units are bought and sold with.

    The ledger keeps balances in base units, so the unit itself has zero
    decimal places, truncates, and cannot go negative. `decimals` is only
    recorded for display.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_PAYMENT_TOKEN,
        min_balance=Decimal("0"),
        decimal_places=0,
        rounding=ROUND_DOWN,
        attributes=(('decimals', decimals),),
    )
