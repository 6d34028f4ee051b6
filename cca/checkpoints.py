"""
cca/checkpoints.py - Checkpoint chain and lazy fill accounting.

A checkpoint is a snapshot of the auction taken at a block. Two of its
fields are running sums that make per-bid accounting O(1):

- cumulative_mps_per_price: sum over sold intervals of mps / clearing price
  (Q96 fixed point). A bid that stayed above the clearing price between two
  checkpoints received `amount * delta / remaining_mps` tokens.
- currency_raised_at_clearing_price_x7x7: currency paid by bids sitting
  exactly at the clearing price since it last changed. Bids at that tick
  split it pro rata to their demand.

Checkpoints are appended in block order and linked both ways so a caller can
walk from any checkpoint to its neighbours when resolving a bid that spans
several clearing price regimes.
"""

import logging
from dataclasses import dataclass
from typing import Iterator

from cca.bids import Bid
from cca.errors import CheckpointNotFoundError, PreconditionError
from cca.fixed_point import (
    MAX_BLOCK,
    MPS,
    Q96,
    RESOLUTION,
    ValueX7,
    ValueX7X7,
    mul_div,
    mul_div_up,
)

logger = logging.getLogger(__name__)


@dataclass
class Checkpoint:
    """
    Auction state at the end of `block`.

    Attributes:
        block: Block number of the snapshot
        clearing_price: Q96 price the interval ending here was sold at
        total_cleared_x7x7: Tokens sold since the start (X7X7)
        cumulative_mps: Issuance sold since the start
        mps: Issuance rate of the step active at `block`
        cumulative_mps_per_price: Running sum of mps / price (Q96)
        currency_raised_at_clearing_price_x7x7: Currency raised at this
            clearing price since it last changed (X7X7)
        currency_raised_x7x7: Currency raised since the start (X7X7)
        prev_block: Block of the previous checkpoint (0 for the first)
        next_block: Block of the next checkpoint (MAX_BLOCK for the latest)
    """

    block: int
    clearing_price: int
    total_cleared_x7x7: ValueX7X7 = ValueX7X7(0)
    cumulative_mps: int = 0
    mps: int = 0
    cumulative_mps_per_price: int = 0
    currency_raised_at_clearing_price_x7x7: ValueX7X7 = ValueX7X7(0)
    currency_raised_x7x7: ValueX7X7 = ValueX7X7(0)
    prev_block: int = 0
    next_block: int = MAX_BLOCK

    @property
    def remaining_mps(self) -> int:
        return MPS - self.cumulative_mps


def get_mps_per_price(mps: int, price: int) -> int:
    """mps / price in Q96, rounded down."""
    return (mps << (RESOLUTION * 2)) // price


def account_fully_filled(upper: Checkpoint, lower: Checkpoint, bid: Bid) -> tuple[int, int]:
    """
    Fill of a bid that stayed strictly above the clearing price between two
    checkpoints.

    Args:
        upper: Later checkpoint
        lower: Earlier checkpoint (the bid's start checkpoint or later)
        bid: The bid being accounted

    Returns:
        (tokens_filled rounded down, currency_spent rounded up)
    """
    tokens_filled = mul_div(
        bid.amount,
        upper.cumulative_mps_per_price - lower.cumulative_mps_per_price,
        Q96 * bid.remaining_mps,
    )
    currency_spent = mul_div_up(
        bid.amount,
        upper.cumulative_mps - lower.cumulative_mps,
        bid.remaining_mps,
    )
    return tokens_filled, currency_spent


def account_partially_filled(
    bid: Bid,
    tick_demand_x7: ValueX7,
    currency_raised_at_clearing_price_x7x7: ValueX7X7,
) -> tuple[int, int]:
    """
    Pro-rata fill of a bid while its max price equaled the clearing price.

    Currency is rounded up even when the exact share is below one unit, so a
    bid can never receive tokens without paying for them.

    Args:
        bid: The bid being accounted
        tick_demand_x7: Total demand at the bid's tick
        currency_raised_at_clearing_price_x7x7: Currency raised at the tick
            over the span being accounted

    Returns:
        (tokens_filled rounded down, currency_spent rounded up)
    """
    if tick_demand_x7 == 0:
        return 0, 0
    denominator = tick_demand_x7 * MPS * MPS
    bid_demand_x7 = bid.currency_demand_x7
    currency_spent = mul_div_up(
        bid_demand_x7, currency_raised_at_clearing_price_x7x7, denominator
    )
    tokens_filled = mul_div(
        bid_demand_x7,
        currency_raised_at_clearing_price_x7x7 * Q96,
        denominator * bid.max_price,
    )
    return tokens_filled, currency_spent


class CheckpointLedger:
    """
    Append-only, block-ordered chain of checkpoints.

    Attributes:
        last_block: Block of the latest checkpoint (None when empty)
    """

    def __init__(self) -> None:
        self._checkpoints: dict[int, Checkpoint] = {}
        self.first_block: int | None = None
        self.last_block: int | None = None

    def __len__(self) -> int:
        return len(self._checkpoints)

    def __contains__(self, block: int) -> bool:
        return block in self._checkpoints

    def __iter__(self) -> Iterator[Checkpoint]:
        block = self.first_block
        while block is not None and block != MAX_BLOCK:
            checkpoint = self._checkpoints[block]
            yield checkpoint
            block = checkpoint.next_block

    def __reversed__(self) -> Iterator[Checkpoint]:
        block = self.last_block
        while block is not None:
            checkpoint = self._checkpoints[block]
            yield checkpoint
            block = None if block == self.first_block else checkpoint.prev_block

    def get(self, block: int) -> Checkpoint:
        """
        Raises:
            CheckpointNotFoundError: If no checkpoint exists at `block`
        """
        checkpoint = self._checkpoints.get(block)
        if checkpoint is None:
            raise CheckpointNotFoundError(block)
        return checkpoint

    def latest(self) -> Checkpoint | None:
        if self.last_block is None:
            return None
        return self._checkpoints[self.last_block]

    def previous(self, checkpoint: Checkpoint) -> Checkpoint | None:
        if checkpoint.block == self.first_block:
            return None
        return self._checkpoints[checkpoint.prev_block]

    def next(self, checkpoint: Checkpoint) -> Checkpoint | None:
        if checkpoint.next_block == MAX_BLOCK:
            return None
        return self._checkpoints[checkpoint.next_block]

    def insert(self, checkpoint: Checkpoint) -> Checkpoint:
        """
        Append a checkpoint after the latest one, linking both directions.

        Raises:
            PreconditionError: If the block is not after the latest checkpoint
        """
        latest = self.latest()
        if latest is not None:
            if checkpoint.block <= latest.block:
                raise PreconditionError(
                    f"checkpoint at block {checkpoint.block} must follow block {latest.block}"
                )
            checkpoint.prev_block = latest.block
            latest.next_block = checkpoint.block
        else:
            self.first_block = checkpoint.block
        checkpoint.next_block = MAX_BLOCK
        self._checkpoints[checkpoint.block] = checkpoint
        self.last_block = checkpoint.block
        logger.debug(
            f"Checkpoint {checkpoint.block}: price={checkpoint.clearing_price} "
            f"cumulative_mps={checkpoint.cumulative_mps}"
        )
        return checkpoint

    def find_exit_hints(self, max_price: int, start_block: int) -> tuple[int, int]:
        """
        Locate the checkpoint hints for a partially filled exit.

        Walks backwards from the latest checkpoint.

        Args:
            max_price: The bid's max price
            start_block: The bid's start block

        Returns:
            (last_fully_filled_block, outbid_block); outbid_block is 0 when the
            bid was never priced out

        Raises:
            PreconditionError: If the bid never reached the clearing price
        """
        outbid_block = 0
        for checkpoint in reversed(self):
            if checkpoint.block < start_block:
                break
            if checkpoint.clearing_price > max_price:
                outbid_block = checkpoint.block
            elif checkpoint.clearing_price < max_price:
                if checkpoint.next_block == MAX_BLOCK:
                    break
                return checkpoint.block, outbid_block
        raise PreconditionError(
            f"no checkpoint hints for a bid at {max_price} from block {start_block}"
        )
