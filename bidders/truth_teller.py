"""
Truth Teller Bidder.

Control strategy: commit the whole budget once, at the private valuation.

Nonadaptive, deterministic:
- Bids at the highest grid price not above the valuation
- Bids at the first block where that price is above the clearing price
- Never bids again
"""

from typing import Any

from bidders.base import Bidder, BidOrder, MarketView, snap_to_grid


class TruthTeller(Bidder):
    """Truth Teller - bids its whole budget at its valuation."""

    def __init__(self, bidder_id: str, budget: int, valuation: int, **kwargs: Any) -> None:
        super().__init__(bidder_id, budget, valuation)

    def decide(self, view: MarketView) -> BidOrder | None:
        if self.bid_ids or self.remaining_budget <= 0:
            return None
        price = snap_to_grid(self.valuation, view)
        if price is None:
            return None
        return BidOrder(max_price=price, amount=self.remaining_budget)
