"""
cca/schedule.py - Issuance schedule for the clearing auction.

The schedule is supplied packed: one 8-byte big-endian word per step, the top
24 bits holding the issuance rate (mps per block) and the low 40 bits holding
the step length in blocks. Steps run back to back from the start block.

Validation at construction is what keeps a misconfigured auction from
stalling or over/under-issuing:
1. Every step spans at least one block
2. The rates weighted by their spans add up to exactly MPS
3. The last step ends on the configured end block
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from cca.errors import AuctionIsOverError, InvalidAuctionStepsError
from cca.fixed_point import MPS

logger = logging.getLogger(__name__)

STEP_BYTES = 8
MPS_BITS = 24
BLOCK_DELTA_BITS = 40
BLOCK_DELTA_MASK = (1 << BLOCK_DELTA_BITS) - 1


@dataclass(frozen=True)
class AuctionStep:
    """One issuance step covering blocks [start_block, end_block)."""

    mps: int
    start_block: int
    end_block: int

    @property
    def blocks(self) -> int:
        return self.end_block - self.start_block


def encode_steps(steps: Iterable[tuple[int, int]]) -> bytes:
    """
    Pack (mps, block_delta) pairs into the schedule wire format.

    Raises:
        InvalidAuctionStepsError: If a field does not fit its bit width
    """
    words = []
    for mps, block_delta in steps:
        if not 0 <= mps < (1 << MPS_BITS):
            raise InvalidAuctionStepsError(f"step rate {mps} does not fit in {MPS_BITS} bits")
        if not 0 <= block_delta <= BLOCK_DELTA_MASK:
            raise InvalidAuctionStepsError(
                f"step length {block_delta} does not fit in {BLOCK_DELTA_BITS} bits"
            )
        words.append((mps << BLOCK_DELTA_BITS) | block_delta)
    return np.asarray(words, dtype=">u8").tobytes()


def decode_steps(data: bytes) -> list[tuple[int, int]]:
    """
    Unpack the schedule wire format into (mps, block_delta) pairs.

    Raises:
        InvalidAuctionStepsError: If the data is empty or not whole words
    """
    if len(data) == 0 or len(data) % STEP_BYTES != 0:
        raise InvalidAuctionStepsError(
            f"schedule must be a non-empty multiple of {STEP_BYTES} bytes, got {len(data)}"
        )
    words = np.frombuffer(data, dtype=">u8")
    rates = words >> np.uint64(BLOCK_DELTA_BITS)
    deltas = words & np.uint64(BLOCK_DELTA_MASK)
    return [(int(mps), int(delta)) for mps, delta in zip(rates, deltas)]


class IssuanceSchedule:
    """
    Decoded issuance steps plus a cursor that only moves forward in time.

    Attributes:
        steps: All steps in block order
        start_block: First block of the first step
        end_block: Exclusive end of the last step
        index: Position of the cursor in `steps`
    """

    def __init__(self, data: bytes, start_block: int, end_block: int) -> None:
        """
        Decode and validate a packed schedule.

        Args:
            data: Packed steps (see encode_steps)
            start_block: Block the first step starts at
            end_block: Block the last step must end at

        Raises:
            InvalidAuctionStepsError: If any of the three schedule checks fail
        """
        pairs = decode_steps(data)
        self.steps: list[AuctionStep] = []
        block = start_block
        total_mps = 0
        for i, (mps, block_delta) in enumerate(pairs):
            if block_delta == 0:
                raise InvalidAuctionStepsError(f"step {i} spans zero blocks")
            self.steps.append(AuctionStep(mps, block, block + block_delta))
            total_mps += mps * block_delta
            block += block_delta

        if total_mps != MPS:
            raise InvalidAuctionStepsError(
                f"schedule issues {total_mps} mps in total, expected {MPS}"
            )
        if block != end_block:
            raise InvalidAuctionStepsError(
                f"schedule ends at block {block}, expected {end_block}"
            )

        self.start_block = start_block
        self.end_block = end_block
        self.index = 0
        self._last_block = start_block

    @classmethod
    def from_pairs(
        cls, pairs: Sequence[tuple[int, int]], start_block: int, end_block: int
    ) -> "IssuanceSchedule":
        return cls(encode_steps(pairs), start_block, end_block)

    @property
    def step(self) -> AuctionStep:
        """The step under the cursor."""
        return self.steps[self.index]

    def advance(self) -> AuctionStep:
        """
        Move the cursor to the next step.

        Raises:
            AuctionIsOverError: If the cursor is already on the last step
        """
        if self.index + 1 >= len(self.steps):
            raise AuctionIsOverError("issuance schedule has no further step")
        self.index += 1
        logger.debug(f"Schedule advanced to step {self.index}: {self.step}")
        return self.step

    def active_step(self, block: int) -> AuctionStep:
        """
        Return the step containing `block`, advancing the cursor as needed.

        Blocks at or past the end block resolve to the last step.

        Raises:
            InvalidAuctionStepsError: If asked for a block before a previous query
        """
        if block < self._last_block:
            raise InvalidAuctionStepsError(
                f"schedule cursor is at block {self._last_block}, cannot rewind to {block}"
            )
        self._last_block = block
        while block >= self.step.end_block and self.index + 1 < len(self.steps):
            self.advance()
        return self.step

    def issued_between(self, from_block: int, to_block: int) -> int:
        """
        Total mps issued over blocks [from_block, to_block).

        Walks the cursor across every step boundary in the range. Both blocks
        must lie within [start_block, end_block].
        """
        if not self.start_block <= from_block <= to_block <= self.end_block:
            raise InvalidAuctionStepsError(
                f"range [{from_block}, {to_block}) is outside the schedule "
                f"[{self.start_block}, {self.end_block})"
            )
        step = self.active_step(from_block)
        issued = 0
        block = from_block
        while block < to_block:
            upto = min(to_block, step.end_block)
            issued += step.mps * (upto - block)
            block = upto
            if block < to_block:
                step = self.advance()
        self._last_block = to_block
        return issued
