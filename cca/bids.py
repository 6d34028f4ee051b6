"""
cca/bids.py - Bid records and their append-only ledger.
"""

from dataclasses import dataclass
from typing import Iterator

from cca.errors import BidNotFoundError, ZeroRemainingIssuanceError
from cca.fixed_point import MPS, Demand, ValueX7, mul_div, scale_up_x7


@dataclass
class Bid:
    """
    A single bid.

    Everything except `exited_block` and `tokens_filled` is fixed at
    submission. `exited_block` is 0 until the bid exits.

    Attributes:
        bid_id: Ledger key
        max_price: Q96 limit price
        amount: Currency committed
        owner: Recipient of refunds and tokens
        start_block: Block the bid was submitted in
        start_cumulative_mps: Issuance already sold when the bid arrived
        exited_block: Block the bid exited in (0 = not exited)
        tokens_filled: Tokens owed to the owner, set on exit
    """

    bid_id: int
    max_price: int
    amount: int
    owner: str
    start_block: int
    start_cumulative_mps: int
    exited_block: int = 0
    tokens_filled: int = 0

    @property
    def remaining_mps(self) -> int:
        return MPS - self.start_cumulative_mps

    @property
    def currency_demand_x7(self) -> ValueX7:
        """
        The bid amount spread over the issuance left at submission,
        normalised to a full schedule.
        """
        if self.remaining_mps == 0:
            raise ZeroRemainingIssuanceError()
        return ValueX7(mul_div(scale_up_x7(self.amount), MPS, self.remaining_mps))

    @property
    def demand(self) -> Demand:
        return Demand.at_price(self.currency_demand_x7, self.max_price)

    @property
    def has_exited(self) -> bool:
        return self.exited_block != 0


class BidLedger:
    """Bids keyed by an incrementing id, starting at 0."""

    def __init__(self) -> None:
        self._bids: dict[int, Bid] = {}
        self.next_bid_id = 0

    def __len__(self) -> int:
        return len(self._bids)

    def __iter__(self) -> Iterator[Bid]:
        return iter(self._bids.values())

    def __getitem__(self, bid_id: int) -> Bid:
        try:
            return self._bids[bid_id]
        except KeyError:
            raise BidNotFoundError(bid_id) from None

    def create(
        self,
        max_price: int,
        amount: int,
        owner: str,
        start_block: int,
        start_cumulative_mps: int,
    ) -> Bid:
        bid = Bid(
            bid_id=self.next_bid_id,
            max_price=max_price,
            amount=amount,
            owner=owner,
            start_block=start_block,
            start_cumulative_mps=start_cumulative_mps,
        )
        self._bids[bid.bid_id] = bid
        self.next_bid_id += 1
        return bid
