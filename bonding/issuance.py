"""
issuance.py - Bonding-Curve Issuance Ledger

IssuanceLedger mints and burns sequentially numbered units whose price is set
by a bonding curve:
1. price_to_buy_next() / price_to_sell_next() - per-unit quotes summed over a batch
2. buy() / bulk_buy() - mint units, collect principal into custody and pay fees
3. sell() / bulk_sell() - burn units, pay the seller from custody and pay fees
4. update_creator() / update_admin() / pause() - role-gated governance

Pricing is last-in-first-out on the curve: the next unit bought is priced at
index total_supply + 1 - pre_mint_count, and the next unit sold, whichever id
it carries, is priced at index total_supply - pre_mint_count. Pre-minted
units (creator, and optionally a referrer) are not charged for and form the
supply floor.

Every operation checks all of its preconditions, including a dry run of the
settlement transfers on the payment ledger, before it mutates anything. A
failing operation raises and leaves balances, counters, ownership and the
event log exactly as they were.

Pattern:
    Buy (payer pays price + fees):
        Move(payer -> custody, price)
        Move(payer -> creator, creator_fee)
        Move(payer -> admin, admin_fee)

    Sell (seller receives price - fees):
        Move(custody -> seller, price - creator_fee - admin_fee)
        Move(custody -> creator, creator_fee)
        Move(custody -> admin, admin_fee)
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .core import (
    Move, PendingTransaction, TransactionOrigin, OriginType, ExecuteResult,
    build_transaction, is_null_address,
    AddressZeroNotAllowed, Unauthorized, LedgerPaused,
    MaxPaymentExceeded, MinAcceptedPriceExceeded, CallerIsNotOwner,
    MinHoldingTimeNotReached, LastTokensCannotBeSold, PaymentRejected,
)
from .curves import CurveProvider
from .events import (
    EventLog, UnitBought, UnitSold, PauseToggled, CreatorUpdated, AdminUpdated,
)
from .fees import Quote, calculate_fees, validate_fee_bips
from .ledger import AssetLedger
from .registry import OwnershipRegistry, TokenRegistry


@dataclass(frozen=True, slots=True)
class IssuanceConfig:
    """
    Construction-time configuration of an issuance ledger.

    Attributes:
        name, symbol, uri: Collection metadata, opaque to pricing.
        creator: Creator wallet; receives the first pre-minted unit, the
            creator fee and royalties.
        creator_fee_bips: Creator fee per unit, in basis points.
        creator_royalty_bips: Secondary-sale royalty advertised by the registry.
        admin: Admin wallet; receives the admin fee.
        admin_fee_bips: Admin fee per unit, in basis points.
        referrer: Optional wallet that receives a second pre-minted unit.
        min_holding_period: Optional minimum time between a unit's purchase
            and its sale. None disables the check.
    """
    name: str
    symbol: str
    uri: str
    creator: str
    creator_fee_bips: int
    creator_royalty_bips: int
    admin: str
    admin_fee_bips: int
    referrer: Optional[str] = None
    min_holding_period: Optional[timedelta] = None

    def __post_init__(self):
        if is_null_address(self.creator):
            raise AddressZeroNotAllowed("creator")
        if is_null_address(self.admin):
            raise AddressZeroNotAllowed("admin")
        validate_fee_bips(self.creator_fee_bips)
        validate_fee_bips(self.admin_fee_bips)
        validate_fee_bips(self.creator_royalty_bips)
        if not self.symbol or not self.symbol.strip():
            raise ValueError("symbol cannot be empty")
        if self.referrer is not None and is_null_address(self.referrer):
            object.__setattr__(self, 'referrer', None)
        if self.min_holding_period is not None and self.min_holding_period < timedelta(0):
            raise ValueError(f"min_holding_period must be non-negative, got {self.min_holding_period}")

    @property
    def pre_mint_count(self) -> int:
        return 2 if self.referrer is not None else 1


class IssuanceLedger:
    """
    Stateful issuance engine for one creator's units.

    Owns the id counter and the supply counter, prices units through the
    injected curve, moves funds through the payment ledger and ownership
    through the registry.

    Thread Safety:
        Not thread-safe. Each call runs to completion before the next starts.

    Example:
        payments = AssetLedger("payments", verbose=False)
        payments.register_unit(payment_token("USDC", "USD Coin"))
        ...
        keys = IssuanceLedger(config, payments, "USDC", SigmoidCurve(params))
        quote = keys.price_to_buy_next()
        token_id = keys.buy("alice", max_payment=quote.total_cost)
        proceeds = keys.sell("alice", token_id)
    """

    def __init__(
        self,
        config: IssuanceConfig,
        payments: AssetLedger,
        payment_symbol: str,
        curve: CurveProvider,
        registry: Optional[OwnershipRegistry] = None,
        custody_wallet: Optional[str] = None,
        verbose: bool = True,
    ):
        """
        Create the ledger and pre-mint the creator's (and referrer's) units.

        Args:
            config: Validated IssuanceConfig
            payments: Payment ledger holding payment_symbol balances
            payment_symbol: Symbol of the payment asset on that ledger
            curve: Pricing strategy
            registry: Ownership registry (default: a fresh TokenRegistry)
            custody_wallet: Wallet holding principal (default: "<symbol>:custody")
            verbose: Print one line per buy/sell/governance action

        Raises:
            UnitNotRegistered: If payment_symbol is not registered on payments
            TypeError: If curve does not implement CurveProvider
        """
        if not isinstance(curve, CurveProvider):
            raise TypeError(f"curve must implement price_for_unit(), got {type(curve).__name__}")
        payments.get_unit(payment_symbol)

        self.config = config
        self.payments = payments
        self.payment_symbol = payment_symbol
        self.curve = curve
        self.registry = registry if registry is not None else TokenRegistry(
            config.name, config.symbol, config.uri
        )
        self.custody_wallet = custody_wallet or f"{config.symbol}:custody"
        self.verbose = verbose

        self.creator = config.creator
        self.admin = config.admin
        self.referrer = config.referrer
        self.creator_fee_bips = config.creator_fee_bips
        self.admin_fee_bips = config.admin_fee_bips
        self.creator_royalty_bips = config.creator_royalty_bips
        self.min_holding_period = config.min_holding_period

        self.paused = False
        self.last_id = 0
        self.total_supply = 0
        self.purchase_times: Dict[int, datetime] = {}
        self.events = EventLog()

        for wallet in (self.custody_wallet, self.creator, self.admin, self.referrer):
            if wallet is not None:
                self._ensure_wallet(wallet)
        self.registry.set_royalty_receiver(self.creator, self.creator_royalty_bips)

        self._mint(self.creator)
        if self.referrer is not None:
            self._mint(self.referrer)

    # ========================================================================
    # READ-ONLY ACCESSORS
    # ========================================================================

    @property
    def pre_mint_count(self) -> int:
        """Units minted at construction: 1, or 2 with a referrer."""
        return self.config.pre_mint_count

    @property
    def supply_floor(self) -> int:
        return self.pre_mint_count

    @property
    def current_time(self) -> datetime:
        return self.payments.current_time

    def owner_of(self, token_id: int) -> str:
        return self.registry.owner_of(token_id)

    def purchase_time(self, token_id: int) -> Optional[datetime]:
        return self.purchase_times.get(token_id)

    def custody_balance(self) -> int:
        return int(self.payments.get_balance(self.custody_wallet, self.payment_symbol))

    def calculate_fees(self, price: int) -> Tuple[int, int]:
        """(creator_fee, admin_fee) for one unit price."""
        return calculate_fees(price, self.creator_fee_bips, self.admin_fee_bips)

    # ========================================================================
    # QUOTES
    # ========================================================================

    def _unit_quote(self, index: int) -> Quote:
        return Quote.for_price(
            self.curve.price_for_unit(index), self.creator_fee_bips, self.admin_fee_bips
        )

    def _buy_index(self, offset: int) -> int:
        return self.total_supply + 1 + offset - self.pre_mint_count

    def price_to_buy_next(self, count: int = 1) -> Quote:
        """
        Quote the next `count` purchases.

        Each unit is priced and charged fees on its own; the quote is the sum.
        """
        _check_count(count)
        quote = Quote.zero()
        for i in range(count):
            quote = quote + self._unit_quote(self._buy_index(i))
        return quote

    def price_to_sell_next(self, count: int = 1) -> Quote:
        """
        Quote the next `count` sales, top of the curve first.

        Raises:
            LastTokensCannotBeSold: If count sales would breach the supply floor
        """
        _check_count(count)
        quote = Quote.zero()
        for i in range(count):
            supply = self.total_supply - i
            self._check_floor(supply)
            quote = quote + self._unit_quote(supply - self.pre_mint_count)
        return quote

    # ========================================================================
    # BUY
    # ========================================================================

    def buy(self, caller: str, max_payment: int, to: Optional[str] = None) -> int:
        """
        Buy the next unit.

        Args:
            caller: Paying wallet
            max_payment: Ceiling on price + creator_fee + admin_fee
            to: Receiver of the unit (default: caller)

        Returns:
            The newly minted token id

        Raises:
            LedgerPaused, MaxPaymentExceeded, PaymentRejected
        """
        return self._purchase(caller, 1, max_payment, to, "BUY")[0]

    def bulk_buy(
        self,
        caller: str,
        count: int,
        max_payment: int,
        to: Optional[str] = None,
    ) -> List[int]:
        """
        Buy `count` consecutive units in one settlement.

        max_payment bounds the aggregate; each fee stream is paid in a single
        transfer.

        Returns:
            The newly minted token ids, ascending
        """
        return self._purchase(caller, count, max_payment, to, "BULK_BUY")

    def _purchase(
        self,
        caller: str,
        count: int,
        max_payment: int,
        to: Optional[str],
        event_type: str,
    ) -> List[int]:
        self._require_not_paused()
        _check_count(count)
        receiver = caller if to is None else to
        if is_null_address(receiver):
            raise AddressZeroNotAllowed("recipient")

        quotes = [self._unit_quote(self._buy_index(i)) for i in range(count)]
        total = sum(quotes, Quote.zero())
        if total.total_cost > max_payment:
            raise MaxPaymentExceeded(total.total_cost, max_payment)

        token_ids = list(range(self.last_id + 1, self.last_id + 1 + count))
        pending = self._settlement(event_type, token_ids, [
            (caller, self.custody_wallet, total.price, "principal"),
            (caller, self.creator, total.creator_fee, "creator_fee"),
            (caller, self.admin, total.admin_fee, "admin_fee"),
        ])
        self._settle(pending)
        self._ensure_wallet(receiver)

        # Ids past last_id have never been assigned, so these mints cannot collide
        now = self.current_time
        for _ in token_ids:
            self._mint(receiver)
        for token_id, quote in zip(token_ids, quotes):
            self.events.emit(UnitBought(
                now, caller, receiver, token_id,
                quote.price, quote.creator_fee, quote.admin_fee,
            ))

        if self.verbose:
            print(f"🟢 {event_type} {self.config.symbol} {_ids(token_ids)} -> {receiver}: "
                  f"paid {total.total_cost} {self.payment_symbol} "
                  f"(price {total.price}, fees {total.creator_fee}/{total.admin_fee})")
        return token_ids

    # ========================================================================
    # SELL
    # ========================================================================

    def sell(self, caller: str, token_id: int, min_accepted_price: int = 0) -> int:
        """
        Sell one unit back to the curve.

        Args:
            caller: Current owner of token_id
            token_id: Unit to burn
            min_accepted_price: Floor on price - creator_fee - admin_fee

        Returns:
            Net proceeds paid to the caller

        Raises:
            LedgerPaused, TokenNotFound, CallerIsNotOwner, MinHoldingTimeNotReached,
            LastTokensCannotBeSold, MinAcceptedPriceExceeded, PaymentRejected
        """
        return self._redeem(caller, [token_id], min_accepted_price, "SELL")

    def bulk_sell(
        self,
        caller: str,
        token_ids: Sequence[int],
        min_accepted_price: int = 0,
    ) -> int:
        """
        Sell several units in one settlement.

        Units are priced one after the other down the curve, in the order
        given. min_accepted_price bounds the aggregate net proceeds.
        """
        return self._redeem(caller, token_ids, min_accepted_price, "BULK_SELL")

    def _redeem(
        self,
        caller: str,
        token_ids: Iterable[int],
        min_accepted_price: int,
        event_type: str,
    ) -> int:
        self._require_not_paused()
        ids = list(token_ids)
        if not ids:
            raise ValueError("token_ids cannot be empty")
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate token ids in {ids}")

        now = self.current_time
        quotes: List[Quote] = []
        for i, token_id in enumerate(ids):
            owner = self.registry.owner_of(token_id)
            if owner != caller:
                raise CallerIsNotOwner(token_id, owner, caller)
            self._check_holding_period(token_id, now)
            supply = self.total_supply - i
            self._check_floor(supply)
            quotes.append(self._unit_quote(supply - self.pre_mint_count))

        total = sum(quotes, Quote.zero())
        if total.net_proceeds < min_accepted_price:
            raise MinAcceptedPriceExceeded(total.net_proceeds, min_accepted_price)

        # a holder who received the unit by transfer or as a gift may be new here
        self._ensure_wallet(caller)
        pending = self._settlement(event_type, ids, [
            (self.custody_wallet, caller, total.net_proceeds, "proceeds"),
            (self.custody_wallet, self.creator, total.creator_fee, "creator_fee"),
            (self.custody_wallet, self.admin, total.admin_fee, "admin_fee"),
        ])
        self._settle(pending)

        for token_id in ids:
            self.registry.burn(token_id)
            self.total_supply -= 1
            self.purchase_times.pop(token_id, None)
        for token_id, quote in zip(ids, quotes):
            self.events.emit(UnitSold(
                now, caller, token_id, quote.price, quote.creator_fee, quote.admin_fee,
            ))

        if self.verbose:
            print(f"🔴 {event_type} {self.config.symbol} {_ids(ids)} by {caller}: "
                  f"received {total.net_proceeds} {self.payment_symbol} "
                  f"(price {total.price}, fees {total.creator_fee}/{total.admin_fee})")
        return total.net_proceeds

    # ========================================================================
    # GOVERNANCE
    # ========================================================================

    def update_creator(self, caller: str, new_creator: str) -> None:
        """
        Hand the creator role (fees and royalties) to another wallet.

        Raises:
            Unauthorized: If caller is not the current creator
            AddressZeroNotAllowed: If new_creator is null
        """
        if caller != self.creator:
            raise Unauthorized(caller, "update creator")
        if is_null_address(new_creator):
            raise AddressZeroNotAllowed("creator")
        self.registry.set_royalty_receiver(new_creator, self.creator_royalty_bips)
        self._ensure_wallet(new_creator)
        old, self.creator = self.creator, new_creator
        self.events.emit(CreatorUpdated(self.current_time, old, new_creator))
        if self.verbose:
            print(f"👤 creator {old} -> {new_creator}")

    def update_admin(self, caller: str, new_admin: str) -> None:
        """
        Hand the admin role to another wallet.

        Raises:
            Unauthorized: If caller is not the current admin
            AddressZeroNotAllowed: If new_admin is null
        """
        if caller != self.admin:
            raise Unauthorized(caller, "update admin")
        if is_null_address(new_admin):
            raise AddressZeroNotAllowed("admin")
        self._ensure_wallet(new_admin)
        old, self.admin = self.admin, new_admin
        self.events.emit(AdminUpdated(self.current_time, old, new_admin))
        if self.verbose:
            print(f"👤 admin {old} -> {new_admin}")

    def pause(self, caller: str, state: bool) -> None:
        """
        Set the pause flag. Only the creator or the admin may call this.

        Raises:
            Unauthorized: If caller holds neither role
        """
        if caller not in (self.creator, self.admin):
            raise Unauthorized(caller, "pause")
        old, self.paused = self.paused, bool(state)
        self.events.emit(PauseToggled(self.current_time, old, self.paused, caller))
        if self.verbose:
            print(f"⏸️  paused {old} -> {self.paused} by {caller}")

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _require_not_paused(self) -> None:
        if self.paused:
            raise LedgerPaused()

    def _check_floor(self, supply: int) -> None:
        """Selling one more unit at `supply` must leave at least the floor."""
        if supply - 1 < self.supply_floor:
            raise LastTokensCannotBeSold(supply, self.supply_floor)

    def _check_holding_period(self, token_id: int, now: datetime) -> None:
        if not self.min_holding_period:
            return
        purchased_at = self.purchase_times[token_id]
        eligible_at = purchased_at + self.min_holding_period
        if now < eligible_at:
            raise MinHoldingTimeNotReached(token_id, purchased_at, eligible_at)

    def _ensure_wallet(self, wallet: str) -> None:
        if not self.payments.is_registered(wallet):
            self.payments.register_wallet(wallet)

    def _mint(self, to: str) -> int:
        token_id = self.last_id + 1
        self.registry.mint(to, token_id)
        self.last_id = token_id
        self.total_supply += 1
        self.purchase_times[token_id] = self.current_time
        return token_id

    def _settlement(
        self,
        event_type: str,
        token_ids: List[int],
        transfers: List[Tuple[str, str, int, str]],
    ) -> PendingTransaction:
        """
        One PendingTransaction carrying every transfer of an operation.

        Zero amounts and self-transfers move nothing and are left out. Token
        ids are never reused, so contract ids are unique per operation.
        """
        reference = f"{self.config.symbol}:{event_type.lower()}:{_ids(token_ids)}"
        moves = [
            Move(Decimal(amount), self.payment_symbol, source, dest, f"{reference}:{stream}")
            for source, dest, amount, stream in transfers
            if amount > 0 and source != dest
        ]
        origin = TransactionOrigin(
            origin_type=OriginType.CONTRACT,
            source_id=self.config.symbol,
            unit_symbol=self.payment_symbol,
            event_type=event_type,
        )
        return build_transaction(self.payments, moves, origin)

    def _settle(self, pending: PendingTransaction) -> None:
        valid, reason = self.payments.validate(pending)
        if not valid:
            raise PaymentRejected(reason)
        result = self.payments.execute(pending)
        if result != ExecuteResult.APPLIED:
            raise PaymentRejected(result.value)

    def __repr__(self):
        return (
            f"IssuanceLedger({self.config.symbol}: supply={self.total_supply}, "
            f"last_id={self.last_id}, paused={self.paused}, curve={self.curve!r})"
        )


def _check_count(count: int) -> None:
    if not isinstance(count, int) or isinstance(count, bool) or count < 1:
        raise ValueError(f"count must be a positive int, got {count!r}")


def _ids(token_ids: List[int]) -> str:
    if len(token_ids) == 1:
        return f"#{token_ids[0]}"
    if token_ids == list(range(token_ids[0], token_ids[-1] + 1)):
        return f"#{token_ids[0]}..#{token_ids[-1]}"
    return ",".join(f"#{t}" for t in token_ids)
