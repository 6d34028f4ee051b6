"""
bidders - Simulated bidding agents for the clearing auction.

All bidders implement the base.Bidder interface:
- ZIC: random budget-constrained bids below a private valuation
- TruthTeller: commits its whole budget at its valuation
"""

__version__ = "1.0.0"
