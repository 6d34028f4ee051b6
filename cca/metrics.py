"""
Settlement Metrics.

Post-auction summaries computed from the per-bid outcome frame returned by
the simulation:

- Supply conservation: tokens owed to bidders plus tokens swept back must not
  exceed the supply, and may fall short of it only by rounding dust.
- Fill prices: the average price each bid paid, and the volume-weighted
  average across the auction.
- Allocation concentration: how evenly the sold tokens were spread over
  bidders (Gini, skewness, top shares).
"""

import numpy as np
import pandas as pd
from scipy import stats


def calculate_supply_conservation(
    tokens_filled: list[int], unsold_tokens: int, total_supply: int
) -> dict:
    """
    Check that fills and the unsold sweep account for the supply.

    Each fill is rounded down and the unsold sweep subtracts the sold amount
    rounded up, so a small shortfall is expected and an excess never is.

    Args:
        tokens_filled: Tokens owed to each bid
        unsold_tokens: Tokens swept to the tokens recipient
        total_supply: Tokens on sale

    Returns:
        Dictionary with:
        - tokens_filled: Sum of all fills
        - unsold_tokens: The unsold sweep
        - dust: Supply neither filled nor swept
        - conserved: True when nothing was over-delivered
    """
    filled = int(sum(tokens_filled))
    dust = total_supply - filled - unsold_tokens
    return {
        "tokens_filled": filled,
        "unsold_tokens": unsold_tokens,
        "dust": dust,
        "conserved": dust >= 0,
    }


def calculate_fill_prices(results: pd.DataFrame) -> pd.Series:
    """
    Average price paid per token by each bid.

    Bids with no fill get NaN.

    Args:
        results: Frame with `currency_spent` and `tokens_filled` columns

    Returns:
        Series aligned with `results`
    """
    tokens = results["tokens_filled"].astype(float)
    spent = results["currency_spent"].astype(float)
    return (spent / tokens.where(tokens > 0)).rename("fill_price")


def calculate_average_price(results: pd.DataFrame) -> float:
    """Volume-weighted average fill price across the auction (0.0 if nothing sold)."""
    tokens = float(results["tokens_filled"].sum())
    if tokens <= 0:
        return 0.0
    return float(results["currency_spent"].sum()) / tokens


def compute_allocation_metrics(allocations: list[float]) -> dict:
    """
    Compute concentration metrics for the tokens held by each bidder.

    Args:
        allocations: Tokens received by each bidder

    Returns:
        Dictionary with:
        - gini: Gini coefficient (0 = equal split, 1 = one bidder takes all)
        - skewness: Allocation skewness (>0 = a few large winners)
        - top1_share: Share captured by the largest bidder
        - top2_share: Share captured by the two largest bidders
        - bottom50_share: Share captured by the bottom half
    """
    alloc = np.array(allocations, dtype=float)
    n = len(alloc)
    total = float(np.sum(alloc)) if n else 0.0

    if n == 0 or total <= 0:
        return {
            "gini": 0.0,
            "skewness": 0.0,
            "top1_share": 0.0,
            "top2_share": 0.0,
            "bottom50_share": 0.0,
        }

    sorted_asc = np.sort(alloc)
    cumsum = np.cumsum(sorted_asc)
    gini = (n + 1 - 2 * np.sum(cumsum) / cumsum[-1]) / n

    if n > 2 and np.std(alloc) > 1e-10:
        raw_skew = stats.skew(alloc)
        skewness = float(raw_skew) if np.isfinite(raw_skew) else 0.0
    else:
        skewness = 0.0

    sorted_desc = sorted_asc[::-1]
    top1_share = float(sorted_desc[0] / total)
    top2_share = float(np.sum(sorted_desc[: min(2, n)]) / total)
    bottom_half = sorted_asc[: n // 2]
    bottom50_share = float(np.sum(bottom_half) / total) if len(bottom_half) > 0 else 0.0

    return {
        "gini": float(gini),
        "skewness": skewness,
        "top1_share": top1_share,
        "top2_share": top2_share,
        "bottom50_share": bottom50_share,
    }
