"""
cca/hooks.py - External collaborators of the auction.

The engine only computes amounts. Admission checks and balance movements are
delegated to two collaborators supplied by the surrounding system:

- ValidationHook: called before a bid is admitted; raises to deny it.
- Transfers: moves currency and tokens; each call either completes or raises.

Both may call back into the auction, so the auction guards its mutating
entry points while they run.
"""

from abc import ABC, abstractmethod
from collections import Counter

from cca.errors import InsufficientBalanceError


class ValidationHook(ABC):
    """Admission predicate for new bids."""

    @abstractmethod
    def validate(
        self,
        max_price: int,
        amount: int,
        owner: str,
        sender: str,
        hook_data: bytes,
    ) -> None:
        """
        Accept the bid by returning, reject it by raising.

        The raised exception reaches the bidder unchanged.
        """


class BidRejectedError(Exception):
    """Raised by the bundled hooks to deny a bid."""


class AllowlistHook(ValidationHook):
    """Admits bids whose owner and sender are both on an allowlist."""

    def __init__(self, allowed: set[str]) -> None:
        self.allowed = set(allowed)

    def validate(
        self,
        max_price: int,
        amount: int,
        owner: str,
        sender: str,
        hook_data: bytes,
    ) -> None:
        for account in (owner, sender):
            if account not in self.allowed:
                raise BidRejectedError(f"{account} is not allowed to bid")


class Transfers(ABC):
    """Currency and token movement between the auction and outside accounts."""

    @abstractmethod
    def receive_currency(self, sender: str, amount: int) -> None:
        """Pull `amount` currency from `sender` into the auction."""

    @abstractmethod
    def send_currency(self, recipient: str, amount: int) -> None:
        """Pay `amount` currency out of the auction."""

    @abstractmethod
    def send_tokens(self, recipient: str, amount: int) -> None:
        """Pay `amount` auctioned tokens out of the auction."""


class InMemoryTransfers(Transfers):
    """
    Balance book used by simulations and tests.

    Attributes:
        currency: Currency balance per outside account
        tokens: Token balance per outside account
        escrow_currency: Currency held by the auction
        escrow_tokens: Tokens held by the auction
    """

    def __init__(self) -> None:
        self.currency: Counter[str] = Counter()
        self.tokens: Counter[str] = Counter()
        self.escrow_currency = 0
        self.escrow_tokens = 0

    def fund(self, account: str, amount: int) -> None:
        self.currency[account] += amount

    def deposit_tokens(self, amount: int) -> int:
        """Place auctioned tokens in escrow; returns the escrow balance."""
        self.escrow_tokens += amount
        return self.escrow_tokens

    def receive_currency(self, sender: str, amount: int) -> None:
        balance = self.currency[sender]
        if balance < amount:
            raise InsufficientBalanceError(sender, balance, amount)
        self.currency[sender] = balance - amount
        self.escrow_currency += amount

    def send_currency(self, recipient: str, amount: int) -> None:
        if self.escrow_currency < amount:
            raise InsufficientBalanceError("auction", self.escrow_currency, amount)
        self.escrow_currency -= amount
        self.currency[recipient] += amount

    def send_tokens(self, recipient: str, amount: int) -> None:
        if self.escrow_tokens < amount:
            raise InsufficientBalanceError("auction", self.escrow_tokens, amount)
        self.escrow_tokens -= amount
        self.tokens[recipient] += amount
