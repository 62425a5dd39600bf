"""
registry.py - Ownership registry for sequentially numbered units

The issuance ledger never stores ownership itself. It mints, burns and looks
up owners through an OwnershipRegistry, which also carries the creator's
royalty metadata for secondary sales.

Classes:
- OwnershipRegistry: Protocol the issuance ledger depends on
- TokenRegistry: In-memory implementation backed by a sparse id -> owner map
"""

from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .core import (
    CallerIsNotOwner, TokenAlreadyMinted, TokenNotFound,
    AddressZeroNotAllowed, is_null_address,
)
from .fees import BIPS_DENOMINATOR, validate_fee_bips


@runtime_checkable
class OwnershipRegistry(Protocol):
    """Ownership primitives consumed by the issuance ledger."""

    def mint(self, to: str, token_id: int) -> None:
        ...

    def burn(self, token_id: int) -> None:
        ...

    def transfer(self, source: str, dest: str, token_id: int) -> None:
        ...

    def owner_of(self, token_id: int) -> str:
        ...

    def set_royalty_receiver(self, receiver: str, bips: int) -> None:
        ...


class TokenRegistry:
    """
    Sparse ownership map with burn tracking and ERC-2981 style royalties.

    Ids are never reused: minting a burned id fails just like minting a live
    one.

    Example:
        registry = TokenRegistry("Creator Keys", "KEYS")
        registry.mint("alice", 1)
        registry.owner_of(1)          # "alice"
        registry.burn(1)
        registry.exists(1)            # False
    """

    def __init__(self, name: str = "", symbol: str = "", uri: str = ""):
        self.name = name
        self.symbol = symbol
        self.uri = uri
        self._owners: Dict[int, str] = {}
        self._burned: set = set()
        self.royalty_receiver: Optional[str] = None
        self.royalty_bips: int = 0

    def exists(self, token_id: int) -> bool:
        return token_id in self._owners

    def owner_of(self, token_id: int) -> str:
        try:
            return self._owners[token_id]
        except KeyError:
            raise TokenNotFound(token_id) from None

    def balance_of(self, owner: str) -> int:
        return sum(1 for o in self._owners.values() if o == owner)

    def tokens_of(self, owner: str) -> List[int]:
        return sorted(t for t, o in self._owners.items() if o == owner)

    def mint(self, to: str, token_id: int) -> None:
        if is_null_address(to):
            raise AddressZeroNotAllowed("recipient")
        if token_id in self._owners or token_id in self._burned:
            raise TokenAlreadyMinted(token_id)
        self._owners[token_id] = to

    def burn(self, token_id: int) -> None:
        if token_id not in self._owners:
            raise TokenNotFound(token_id)
        del self._owners[token_id]
        self._burned.add(token_id)

    def transfer(self, source: str, dest: str, token_id: int) -> None:
        owner = self.owner_of(token_id)
        if owner != source:
            raise CallerIsNotOwner(token_id, owner, source)
        if is_null_address(dest):
            raise AddressZeroNotAllowed("recipient")
        self._owners[token_id] = dest

    def set_royalty_receiver(self, receiver: str, bips: int) -> None:
        if is_null_address(receiver):
            raise AddressZeroNotAllowed("royalty receiver")
        self.royalty_bips = validate_fee_bips(bips)
        self.royalty_receiver = receiver

    def royalty_info(self, token_id: int, sale_price: int) -> Tuple[Optional[str], int]:
        """Receiver and amount owed on a secondary sale of token_id."""
        self.owner_of(token_id)
        return self.royalty_receiver, sale_price * self.royalty_bips // BIPS_DENOMINATOR

    def __repr__(self):
        return f"TokenRegistry({self.symbol or '?'}: {len(self._owners)} live, {len(self._burned)} burned)"
