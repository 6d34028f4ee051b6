"""
Zero Intelligence Constrained (ZIC) Bidder.

Adapts the Gode & Sunder (1993) ZIC trader to the clearing auction: it bids
at random within its budget constraint and does not try to predict the
clearing price.

Each block:
1. With probability `bid_probability`, decide to bid (otherwise abstain)
2. Price: uniform in (clearing price, valuation], snapped down to the grid
3. Amount: uniform fraction of the remaining budget, at least 1

Orders priced at or below the clearing price are never produced, but the
clearing price can still move before the order lands; the auction rejects
those and the bidder simply tries again later.
"""

from typing import Any

import numpy as np

from bidders.base import Bidder, BidOrder, MarketView, snap_to_grid


class ZIC(Bidder):
    """
    Zero Intelligence Constrained bidder - budget constraint only.

    Strategy:
    - Bid: Random price in (clearing_price, valuation]
    - Amount: Random share of the remaining budget
    """

    def __init__(
        self,
        bidder_id: str,
        budget: int,
        valuation: int,
        bid_probability: float = 0.3,
        seed: int | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize ZIC bidder.

        Args:
            bidder_id: Account name
            budget: Currency available
            valuation: Private Q96 value per token
            bid_probability: Chance of bidding in a given block
            seed: Random seed for reproducibility
            **kwargs: Ignored extra arguments
        """
        super().__init__(bidder_id, budget, valuation)
        if not 0.0 <= bid_probability <= 1.0:
            raise ValueError(f"bid_probability must be in [0, 1], got {bid_probability}")
        self.bid_probability = bid_probability
        self.rng = np.random.default_rng(seed)

    def decide(self, view: MarketView) -> BidOrder | None:
        if self.remaining_budget <= 0 or self.valuation <= view.clearing_price:
            return None
        if self.rng.random() >= self.bid_probability:
            return None

        # Q96 prices exceed int64, so draw a fraction and scale in Python ints
        span = self.valuation - view.clearing_price
        fraction = self.rng.random()
        price = snap_to_grid(view.clearing_price + 1 + int(fraction * span), view)
        if price is None or price > self.valuation:
            return None

        amount = max(1, int(self.rng.random() * self.remaining_budget))
        return BidOrder(max_price=price, amount=amount)
