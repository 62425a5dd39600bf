"""
ledger.py - Payment Ledger

AssetLedger keeps the balances of the payment asset that units are bought
with and sold for. Issuance code never edits a balance: it hands over one
PendingTransaction per operation and the ledger applies all of its moves or
none of them. validate() runs the same checks without applying anything, so
an operation can find out before it mutates its own state.
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Set, Optional, Tuple, Any

from .core import (
    Move, Transaction, Unit,
    PendingTransaction,
    ExecuteResult,
    DUST, SYSTEM_WALLET,
    LedgerError, TransferRuleViolation, UnitNotRegistered, WalletNotRegistered,
)

ZERO = Decimal("0")
EPOCH = datetime(1970, 1, 1)


class AssetLedger:
    """
    Wallet balances of one or more fungible units, changed only by execute().

    Every applied transaction goes into transaction_log, and its intent_id
    into seen_intent_ids, so the same settlement is never applied twice and
    the whole history can be replayed.

    Example:
        ledger = AssetLedger("payments")
        ledger.register_unit(payment_token("USDC", "USD Coin"))
        ledger.register_wallet("alice")
        ledger.register_wallet("bob")
        ledger.execute(build_transaction(ledger, [
            Move(Decimal("100"), "USDC", "alice", "bob", "payment_001")
        ]))
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        test_mode: bool = False
    ):
        """
        Args:
            name: Used in exec ids and in the name of replayed copies
            initial_time: Starting clock (default: 1970-01-01)
            verbose: Print registrations and transaction results
            test_mode: Permit set_balance()
        """
        self.name = name
        self.verbose = verbose
        self._test_mode = test_mode
        self._clock = initial_time or EPOCH
        self.units: Dict[str, Unit] = {}
        # wallet -> unit symbol -> balance
        self._holdings: Dict[str, Dict[str, Decimal]] = {SYSTEM_WALLET: {}}
        self.seen_intent_ids: Set[str] = set()
        self.transaction_log: List[Transaction] = []

    def __repr__(self) -> str:
        return (
            f"AssetLedger({self.name}: {len(self._holdings)} wallets, "
            f"{len(self.transaction_log)} transactions, t={self._clock})"
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _require_wallet(self, wallet_id: str) -> Dict[str, Decimal]:
        try:
            return self._holdings[wallet_id]
        except KeyError:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered") from None

    def get_unit(self, symbol: str) -> Unit:
        try:
            return self.units[symbol]
        except KeyError:
            raise UnitNotRegistered(f"Unit {symbol} not registered") from None

    @property
    def current_time(self) -> datetime:
        return self._clock

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self._holdings

    def list_wallets(self) -> Set[str]:
        return set(self._holdings)

    def get_balance(self, wallet_id: str, unit_symbol: str) -> Decimal:
        """
        Raises:
            WalletNotRegistered, UnitNotRegistered
        """
        holdings = self._require_wallet(wallet_id)
        self.get_unit(unit_symbol)
        return holdings.get(unit_symbol, ZERO)

    def get_positions(self, unit_symbol: str) -> Dict[str, Decimal]:
        """Non-zero balances of one unit, by wallet."""
        positions = {}
        for wallet, holdings in self._holdings.items():
            qty = holdings.get(unit_symbol, ZERO)
            if abs(qty) > DUST:
                positions[wallet] = qty
        return positions

    def total_supply(self, unit_symbol: str) -> Decimal:
        """Sum of every wallet's balance of the unit, SYSTEM_WALLET included."""
        self.get_unit(unit_symbol)
        total = ZERO
        for wallet in sorted(self._holdings):
            total += self._holdings[wallet].get(unit_symbol, ZERO)
        return total

    def verify_double_entry(
        self,
        expected_supplies: Optional[Dict[str, Decimal]] = None,
    ) -> Dict[str, Any]:
        """
        Compare each unit's total supply with an expected figure.

        Moves only shift balances between wallets, so totals stay put unless
        SYSTEM_WALLET funds someone. Returns a dict with 'valid', 'supplies'
        (every registered unit) and 'discrepancies' (one dict per mismatch,
        with unit, expected, actual and difference).
        """
        expected_supplies = expected_supplies or {}
        supplies = {symbol: self.total_supply(symbol) for symbol in self.units}
        discrepancies = []
        for symbol, expected in expected_supplies.items():
            expected = Decimal(expected)
            actual = supplies.get(symbol, ZERO)
            if symbol not in supplies:
                discrepancies.append({
                    'unit': symbol, 'expected': expected, 'actual': actual,
                    'difference': actual - expected, 'error': 'unit not registered',
                })
            elif actual != expected:
                discrepancies.append({
                    'unit': symbol, 'expected': expected, 'actual': actual,
                    'difference': actual - expected,
                })
        return {
            'valid': not discrepancies,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def advance_time(self, new_time: datetime) -> None:
        """Move the clock forward. Raises ValueError when new_time is earlier."""
        if new_time < self._clock:
            raise ValueError(f"Cannot move time backwards: {new_time} < {self._clock}")
        self._clock = new_time

    def register_wallet(self, wallet_id: str) -> str:
        if wallet_id in self._holdings:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self._holdings[wallet_id] = {}
        return wallet_id

    def register_unit(self, unit: Unit) -> None:
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            print(f"📝 Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]")

    def set_balance(self, wallet_id: str, unit_symbol: str, quantity: Decimal) -> None:
        """
        Overwrite a balance. Test mode only: nothing is logged, so replay()
        will not reproduce it. Outside tests, fund wallets with moves from
        SYSTEM_WALLET.
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() requires test_mode=True; "
                "fund wallets with SYSTEM_WALLET moves instead"
            )
        holdings = self._require_wallet(wallet_id)
        self.get_unit(unit_symbol)
        holdings[unit_symbol] = Decimal(quantity)

    # ------------------------------------------------------------------
    # Validation and execution
    # ------------------------------------------------------------------

    def _check_move(self, move: Move) -> Optional[str]:
        if move.unit_symbol not in self.units:
            return f"unit not registered: {move.unit_symbol}"
        for wallet in (move.source, move.dest):
            if wallet not in self._holdings:
                return f"wallet not registered: {wallet}"
        rule = self.units[move.unit_symbol].transfer_rule
        if rule is not None:
            try:
                rule(self, move)
            except TransferRuleViolation as e:
                return str(e)
        return None

    def _net_changes(self, moves) -> Dict[Tuple[str, str], Decimal]:
        changes: Dict[Tuple[str, str], Decimal] = {}
        for move in moves:
            unit = self.units[move.unit_symbol]
            for wallet, sign in ((move.source, -1), (move.dest, 1)):
                key = (wallet, move.unit_symbol)
                changes[key] = unit.round(changes.get(key, ZERO) + sign * move.quantity)
        return changes

    def validate(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Check a pending transaction without applying it.

        Rejects an intent already applied, a timestamp ahead of the clock,
        unknown units or wallets, and moves refused by a transfer rule. Then
        the net change of each (wallet, unit) must keep the balance at or
        above the unit's minimum, so funds may pass through a wallet in one go.

        Returns:
            (True, "") or (False, reason)
        """
        if pending.intent_id in self.seen_intent_ids:
            return False, f"intent {pending.intent_id} already applied"
        if pending.timestamp > self._clock:
            return False, "future timestamp"

        for move in pending.moves:
            problem = self._check_move(move)
            if problem:
                return False, problem

        for (wallet, symbol), change in self._net_changes(pending.moves).items():
            if wallet == SYSTEM_WALLET:
                continue
            unit = self.units[symbol]
            after = unit.round(self._holdings[wallet].get(symbol, ZERO) + change)
            if after < unit.min_balance:
                return False, f"{wallet} {symbol}: {after} < min {unit.min_balance}"
        return True, ""

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Apply every move of `pending`, or none of them.

        An empty transaction is a no-op reported as APPLIED and is not logged.
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self.seen_intent_ids:
            if self.verbose:
                print(f"⚠️  ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        valid, reason = self.validate(pending)
        if not valid:
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        sequence = len(self.transaction_log)
        micros = int(self._clock.timestamp() * 1_000_000)
        tx = Transaction(
            moves=pending.moves,
            origin=pending.origin,
            timestamp=pending.timestamp,
            intent_id=pending.intent_id,
            exec_id=f"exec:{self.name}:{sequence:012d}:{micros}",
            ledger_name=self.name,
            execution_time=self._clock,
            sequence_number=sequence,
        )

        for move in tx.moves:
            unit = self.units[move.unit_symbol]
            for wallet, sign in ((move.source, -1), (move.dest, 1)):
                holdings = self._holdings[wallet]
                holdings[move.unit_symbol] = unit.round(
                    holdings.get(move.unit_symbol, ZERO) + sign * move.quantity
                )

        self.transaction_log.append(tx)
        self.seen_intent_ids.add(tx.intent_id)

        if self.verbose:
            print(f"✓ APPLIED {tx.describe()}")
        return ExecuteResult.APPLIED

    # ------------------------------------------------------------------
    # Copies
    # ------------------------------------------------------------------

    def clone(self) -> AssetLedger:
        """Independent copy: balances, log, intents, clock and units."""
        twin = AssetLedger(self.name, self._clock, self.verbose, self._test_mode)
        twin.units = dict(self.units)
        twin._holdings = {wallet: dict(h) for wallet, h in self._holdings.items()}
        twin.seen_intent_ids = set(self.seen_intent_ids)
        twin.transaction_log = list(self.transaction_log)
        return twin

    def replay(self, from_tx: int = 0) -> AssetLedger:
        """
        Rebuild a ledger from the units, wallets and transaction log.

        Each logged transaction is executed again at its execution time.
        set_balance() writes are not in the log and are lost.

        Raises:
            LedgerError: If a logged transaction is rejected on the way
        """
        rebuilt = AssetLedger(
            f"{self.name}_replayed", EPOCH, verbose=self.verbose, test_mode=self._test_mode
        )
        rebuilt.units = dict(self.units)
        for wallet in self._holdings:
            if wallet != SYSTEM_WALLET:
                rebuilt.register_wallet(wallet)

        for tx in self.transaction_log[from_tx:]:
            rebuilt.advance_time(max(tx.execution_time, rebuilt.current_time))
            pending = PendingTransaction(tx.moves, tx.origin, tx.timestamp)
            if rebuilt.execute(pending) == ExecuteResult.REJECTED:
                raise LedgerError(f"Replay failed at tx {tx.exec_id}")
        return rebuilt
