"""
Abstract base class for bidding agents in the clearing auction.

Each block the simulation shows every bidder a MarketView and asks for at
most one BidOrder. Bidders hold a private valuation (the most they would pay
per token) and a currency budget; they never bid above the valuation and
never commit more than what is left of the budget.

The auction may reject an order (price no longer above the clearing price,
hook denial, ...). The bidder is told either way.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class MarketView:
    """
    What a bidder can observe before bidding.

    Attributes:
        block: Current block
        clearing_price: Q96 clearing price; bids must be strictly above it
        floor_price: Q96 floor of the tick grid
        tick_spacing: Q96 distance between valid prices
        max_bid_price: Highest Q96 price the auction accepts
    """

    block: int
    clearing_price: int
    floor_price: int
    tick_spacing: int
    max_bid_price: int


@dataclass(frozen=True)
class BidOrder:
    """A bid a bidder wants to place: Q96 max price and currency amount."""

    max_price: int
    amount: int


def snap_to_grid(price: int, view: MarketView) -> int | None:
    """
    Round a Q96 price down onto the tick grid.

    Returns:
        The highest valid price at or below `price` that the auction would
        accept right now, or None if there is none
    """
    price = min(price, view.max_bid_price)
    if price <= view.floor_price:
        return None
    steps = (price - view.floor_price) // view.tick_spacing
    snapped = view.floor_price + steps * view.tick_spacing
    if snapped <= view.clearing_price or snapped == view.floor_price:
        return None
    return snapped


class Bidder(ABC):
    """
    Abstract base class for all bidding agents.

    Attributes:
        bidder_id: Account name used as bid owner and currency sender
        budget: Currency the bidder starts with
        valuation: Private Q96 value per token
        spent: Currency committed to accepted bids
        bid_ids: Ids of accepted bids
        rejections: Number of rejected orders
    """

    def __init__(self, bidder_id: str, budget: int, valuation: int) -> None:
        """
        Initialize a bidder.

        Args:
            bidder_id: Unique account name
            budget: Currency available for bidding (>= 0)
            valuation: Private Q96 value per token (> 0)

        Raises:
            ValueError: If budget is negative or valuation is not positive
        """
        if budget < 0:
            raise ValueError(f"budget must be >= 0, got {budget}")
        if valuation <= 0:
            raise ValueError(f"valuation must be > 0, got {valuation}")

        self.bidder_id = bidder_id
        self.budget = budget
        self.valuation = valuation
        self.spent = 0
        self.bid_ids: list[int] = []
        self.rejections = 0

    @property
    def remaining_budget(self) -> int:
        return self.budget - self.spent

    @abstractmethod
    def decide(self, view: MarketView) -> BidOrder | None:
        """
        Return the order to place this block, or None to abstain.

        Implementations must keep max_price at or below the valuation and
        amount within the remaining budget.
        """

    def on_bid_accepted(self, bid_id: int, order: BidOrder) -> None:
        self.bid_ids.append(bid_id)
        self.spent += order.amount

    def on_bid_rejected(self, order: BidOrder, error: Exception) -> None:
        self.rejections += 1
