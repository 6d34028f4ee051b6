"""
Auction configuration.

Reads the `auction` node of an omegaconf tree into AuctionParameters. Prices
in the config are human prices (currency per token) and are converted to Q96
exactly; the issuance schedule is a list of [mps, blocks] pairs.

Example:
    auction:
      total_supply: 1000
      floor_price: 100
      tick_spacing: 10
      start_block: 100
      steps: [[1000000, 10]]
      claim_block: 110
"""

import logging
from typing import TYPE_CHECKING

from omegaconf import DictConfig, OmegaConf

from cca.auction import Auction, AuctionParameters
from cca.errors import InvalidAuctionStepsError
from cca.fixed_point import to_q96
from cca.hooks import AllowlistHook, Transfers, ValidationHook
from cca.schedule import encode_steps

if TYPE_CHECKING:
    from cca.event_logger import EventLogger

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "experiment": {
        "name": "default",
        "seed": 42,
        "log_level": "INFO",
        "output_dir": "outputs",
    },
    "auction": {
        "total_supply": 1000,
        "floor_price": 100,
        "tick_spacing": 10,
        "start_block": 100,
        "steps": [[1_000_000, 10]],
        "end_block": None,
        "claim_block": None,
        "required_currency_raised": 0,
        "tokens_recipient": "tokens_recipient",
        "funds_recipient": "funds_recipient",
        "allowlist": None,
    },
    "simulation": {
        "bidders": [
            {"type": "ZIC", "count": 8, "budget": 20_000},
            {"type": "TruthTeller", "count": 2, "budget": 50_000},
        ],
        "valuation_min": 100,
        "valuation_max": 200,
        "bid_probability": 0.3,
    },
    "log_events": False,
}


def default_config() -> DictConfig:
    """Return a fresh copy of the default configuration tree."""
    return OmegaConf.create(DEFAULT_CONFIG)


def parameters_from_config(cfg: DictConfig) -> AuctionParameters:
    """
    Build auction parameters from a config tree.

    `end_block` defaults to the end of the schedule and `claim_block` to the
    end block.

    Args:
        cfg: Config tree with an `auction` node

    Returns:
        Parameters ready for Auction

    Raises:
        InvalidAuctionStepsError: If `steps` is empty or malformed
    """
    auction_cfg = cfg.auction
    steps = [tuple(int(field) for field in step) for step in auction_cfg.steps]
    if not steps or any(len(step) != 2 for step in steps):
        raise InvalidAuctionStepsError("steps must be a non-empty list of [mps, blocks] pairs")

    start_block = int(auction_cfg.start_block)
    end_block = auction_cfg.get("end_block")
    if end_block is None:
        end_block = start_block + sum(blocks for _, blocks in steps)
    claim_block = auction_cfg.get("claim_block")
    if claim_block is None:
        claim_block = end_block

    return AuctionParameters(
        total_supply=int(auction_cfg.total_supply),
        floor_price=to_q96(auction_cfg.floor_price),
        tick_spacing=to_q96(auction_cfg.tick_spacing),
        auction_steps_data=encode_steps(steps),
        start_block=start_block,
        end_block=int(end_block),
        claim_block=int(claim_block),
        required_currency_raised=int(auction_cfg.get("required_currency_raised", 0)),
        tokens_recipient=str(auction_cfg.get("tokens_recipient", "tokens_recipient")),
        funds_recipient=str(auction_cfg.get("funds_recipient", "funds_recipient")),
    )


def build_validation_hook(cfg: DictConfig) -> ValidationHook | None:
    """An AllowlistHook when `auction.allowlist` is set, otherwise None."""
    allowlist = cfg.auction.get("allowlist")
    if not allowlist:
        return None
    return AllowlistHook(set(allowlist))


def build_auction(
    cfg: DictConfig,
    transfers: Transfers,
    validation_hook: ValidationHook | None = None,
    event_logger: "EventLogger | None" = None,
) -> Auction:
    """
    Construct an auction from a config tree.

    The auction's clock starts at `auction.initial_block`, or the start block
    when unset. An explicit `validation_hook` takes precedence over the
    configured allowlist.
    """
    params = parameters_from_config(cfg)
    if validation_hook is None:
        validation_hook = build_validation_hook(cfg)
    initial_block = cfg.auction.get("initial_block")
    if initial_block is None:
        initial_block = params.start_block

    logger.info(
        f"Building auction: supply={params.total_supply} blocks=[{params.start_block}, "
        f"{params.end_block}) floor={cfg.auction.floor_price} spacing={cfg.auction.tick_spacing}"
    )
    return Auction(
        params,
        transfers,
        validation_hook=validation_hook,
        event_logger=event_logger,
        block_number=int(initial_block),
    )
