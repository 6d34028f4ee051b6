"""
Simulation Engine.

Runs one clearing auction end to end with a configured population of
simulated bidders: bidding block by block, exiting every bid, claiming and
sweeping.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd
from omegaconf import DictConfig

from bidders.base import Bidder, MarketView
from cca.auction import Auction
from cca.bidder_factory import create_bidder
from cca.checkpoints import Checkpoint
from cca.config import build_auction
from cca.errors import PreconditionError, ZeroRemainingIssuanceError
from cca.event_logger import EventLogger
from cca.fixed_point import from_q96, scale_down_x7x7, to_q96
from cca.hooks import BidRejectedError, InMemoryTransfers
from cca.metrics import (
    calculate_average_price,
    calculate_fill_prices,
    calculate_supply_conservation,
    compute_allocation_metrics,
)


class Simulation:
    """
    Manages the execution of a simulated auction.
    """

    def __init__(self, config: DictConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.results: list[dict] = []
        self.unsold_tokens = 0
        self.currency_swept = 0

        # Event log of the auction (optional)
        self.event_logger: EventLogger | None = None
        if config.get("log_events", False):
            log_dir = Path(config.get("log_dir", "logs"))
            event_log_path = log_dir / f"{config.experiment.name}_events.jsonl"
            self.event_logger = EventLogger(event_log_path)
            self.logger.info(f"Event logging enabled: {event_log_path}")

        self.rng = np.random.default_rng(config.experiment.seed)
        self.transfers = InMemoryTransfers()
        self.auction: Auction = build_auction(
            config, self.transfers, event_logger=self.event_logger
        )
        self.bidders = self._create_bidders()

    def _create_bidders(self) -> list[Bidder]:
        sim = self.config.simulation
        bidders: list[Bidder] = []
        for group in sim.bidders:
            for _ in range(int(group.count)):
                index = len(bidders) + 1
                valuation = self.rng.uniform(float(sim.valuation_min), float(sim.valuation_max))
                bidders.append(
                    create_bidder(
                        group.type,
                        f"bidder_{index}",
                        int(group.budget),
                        to_q96(round(valuation, 4)),
                        seed=int(self.config.experiment.seed) + index,
                        bid_probability=float(sim.get("bid_probability", 0.3)),
                    )
                )
        self.logger.info(f"Initialized {len(bidders)} bidders")
        return bidders

    def run(self) -> pd.DataFrame:
        """Run the auction and return per-bid outcomes."""
        auction = self.auction
        params = auction.params

        self.transfers.deposit_tokens(params.total_supply)
        auction.notify_tokens_received(self.transfers.escrow_tokens)
        for bidder in self.bidders:
            self.transfers.fund(bidder.bidder_id, bidder.budget)

        auction.roll_to(max(auction.block_number, params.start_block))
        while not auction.is_over:
            self._run_block()
            auction.roll()

        auction.roll_to(max(auction.block_number, params.claim_block))
        final = auction.checkpoint()
        graduated = auction.is_graduated()
        self.logger.info(
            f"Auction ended at price {from_q96(final.clearing_price):.4f}, "
            f"raised {auction.currency_raised}, graduated={graduated}"
        )

        owners = {bidder.bidder_id: type(bidder).__name__ for bidder in self.bidders}
        for bid in list(auction.bids):
            refund = self._exit(bid.bid_id, final)
            self.results.append({
                "bid_id": bid.bid_id,
                "owner": bid.owner,
                "bidder_type": owners.get(bid.owner, "unknown"),
                "max_price": from_q96(bid.max_price),
                "amount": bid.amount,
                "start_block": bid.start_block,
                "tokens_filled": bid.tokens_filled,
                "currency_spent": bid.amount - refund,
                "refund": refund,
                "final_clearing_price": from_q96(final.clearing_price),
                "graduated": graduated,
            })

        if graduated:
            for bidder in self.bidders:
                if bidder.bid_ids:
                    auction.claim_tokens_batch(bidder.bidder_id, bidder.bid_ids)
            self.currency_swept = auction.sweep_currency()
        self.unsold_tokens = auction.sweep_unsold_tokens()

        if self.event_logger is not None:
            self.event_logger.close()
            self.logger.info("Event log saved")

        results = pd.DataFrame(self.results)
        if len(results):
            results["fill_price"] = calculate_fill_prices(results)
        return results

    def _run_block(self) -> None:
        auction = self.auction
        auction.checkpoint()
        for i in self.rng.permutation(len(self.bidders)):
            bidder = self.bidders[i]
            view = MarketView(
                block=auction.block_number,
                clearing_price=auction.clearing_price,
                floor_price=auction.params.floor_price,
                tick_spacing=auction.params.tick_spacing,
                max_bid_price=auction.max_bid_price,
            )
            order = bidder.decide(view)
            if order is None:
                continue
            try:
                bid_id = auction.submit_bid(
                    order.max_price,
                    order.amount,
                    bidder.bidder_id,
                    auction.ticks.hint_for(order.max_price),
                )
            except (PreconditionError, ZeroRemainingIssuanceError, BidRejectedError) as e:
                self.logger.debug(f"Block {view.block}: {bidder.bidder_id} rejected: {e}")
                bidder.on_bid_rejected(order, e)
                continue
            bidder.on_bid_accepted(bid_id, order)

    def _exit(self, bid_id: int, final: Checkpoint) -> int:
        auction = self.auction
        bid = auction.bids[bid_id]
        if not auction.is_graduated() or final.clearing_price < bid.max_price:
            return auction.exit_bid(bid_id)
        last_fully_filled, outbid = auction.checkpoints.find_exit_hints(
            bid.max_price, bid.start_block
        )
        return auction.exit_partially_filled_bid(bid_id, last_fully_filled, outbid)

    def checkpoint_frame(self) -> pd.DataFrame:
        """The checkpoint chain as a frame, one row per checkpoint."""
        rows = [
            {
                "block": cp.block,
                "clearing_price": from_q96(cp.clearing_price),
                "cumulative_mps": cp.cumulative_mps,
                "mps": cp.mps,
                "tokens_cleared": scale_down_x7x7(cp.total_cleared_x7x7),
                "currency_raised": scale_down_x7x7(cp.currency_raised_x7x7),
            }
            for cp in self.auction.checkpoints
        ]
        return pd.DataFrame(rows)

    def summary(self, results: pd.DataFrame) -> dict:
        """Settlement metrics for a finished run."""
        conservation = calculate_supply_conservation(
            results["tokens_filled"].tolist() if len(results) else [],
            self.unsold_tokens,
            self.auction.total_supply,
        )
        allocations = (
            results.groupby("owner")["tokens_filled"].sum().tolist() if len(results) else []
        )
        return {
            **conservation,
            "currency_raised": self.auction.currency_raised,
            "average_price": calculate_average_price(results) if len(results) else 0.0,
            **compute_allocation_metrics(allocations),
        }
