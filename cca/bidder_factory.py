"""
Bidder Factory.
"""

from typing import Any

from bidders.base import Bidder
from bidders.truth_teller import TruthTeller
from bidders.zic import ZIC


def create_bidder(
    bidder_type: str,
    bidder_id: str,
    budget: int,
    valuation: int,
    seed: int | None = None,
    **kwargs: Any,
) -> Bidder:
    """
    Bidder instance

    Args:
        bidder_type: "ZIC" or "TruthTeller"
        bidder_id: Account name
        budget: Currency available
        valuation: Private Q96 value per token
        seed: Random seed for stochastic bidders
        **kwargs: Strategy specific options (e.g. bid_probability)

    Raises:
        ValueError: If the bidder type is unknown
    """
    if bidder_type == "ZIC":
        return ZIC(bidder_id, budget, valuation, seed=seed, **kwargs)
    elif bidder_type in ("TruthTeller", "TT"):
        return TruthTeller(bidder_id, budget, valuation, **kwargs)
    else:
        raise ValueError(f"Unknown bidder type: {bidder_type}")
