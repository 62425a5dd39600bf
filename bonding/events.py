"""
events.py - Notifications emitted by the issuance ledger

Events are plain immutable records, listeners are plain functions. Every
successful buy, sell, pause toggle and role change appends one record to the
ledger's EventLog; bulk operations append one record per unit. Failed
operations emit nothing.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterator, List, Type, Union


@dataclass(frozen=True, slots=True)
class UnitBought:
    timestamp: datetime
    payer: str
    receiver: str
    token_id: int
    price: int
    creator_fee: int
    admin_fee: int


@dataclass(frozen=True, slots=True)
class UnitSold:
    timestamp: datetime
    seller: str
    token_id: int
    price: int
    creator_fee: int
    admin_fee: int


@dataclass(frozen=True, slots=True)
class PauseToggled:
    timestamp: datetime
    old: bool
    new: bool
    caller: str


@dataclass(frozen=True, slots=True)
class CreatorUpdated:
    timestamp: datetime
    old: str
    new: str


@dataclass(frozen=True, slots=True)
class AdminUpdated:
    timestamp: datetime
    old: str
    new: str


IssuanceEvent = Union[UnitBought, UnitSold, PauseToggled, CreatorUpdated, AdminUpdated]

# Listener type: event -> None
EventListener = Callable[[IssuanceEvent], None]


class EventLog:
    """
    Append-only event history with synchronous listeners.

    Listeners are called in subscription order, after the operation that
    produced the event has fully completed.
    """

    def __init__(self):
        self._events: List[IssuanceEvent] = []
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self._listeners.remove(listener)

    def emit(self, event: IssuanceEvent) -> None:
        self._events.append(event)
        for listener in self._listeners:
            listener(event)

    def of_type(self, event_type: Type) -> List[IssuanceEvent]:
        """All recorded events of one type, oldest first."""
        return [e for e in self._events if isinstance(e, event_type)]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[IssuanceEvent]:
        return iter(list(self._events))

    def __getitem__(self, index):
        return self._events[index]
