"""
Auction orchestrator for the continuous clearing auction.

Tokens are issued over a block range following the issuance schedule. Every
bid posts a max price and a currency amount that is spent evenly over the
issuance left when it arrives. Each slice of issuance sells at one clearing
price: the lowest price at which the demand still in the book absorbs the
supply.

Operations run one at a time against the current block:

1. CHECKPOINT: discover the clearing price from the demand committed before
   this block, sell the issuance elapsed since the last checkpoint at that
   price, and append a snapshot.
2. BID: checkpoint, validate, collect currency, add demand to its tick.
3. EXIT / CLAIM / SWEEP: after the end block, settle each bid lazily from
   two checkpoints and pay out through the transfer collaborator.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterator, Sequence, TYPE_CHECKING

from cca.bids import Bid, BidLedger
from cca.checkpoints import (
    Checkpoint,
    CheckpointLedger,
    account_fully_filled,
    account_partially_filled,
    get_mps_per_price,
)
from cca.errors import (
    AlreadySweptError,
    AuctionIsOverError,
    AuctionIsNotOverError,
    AuctionNotStartedError,
    BidAlreadyExitedError,
    BidMustBeAboveClearingPriceError,
    BidNotExitedError,
    BidOwnerMismatchError,
    BlockNumberRewindError,
    CannotExitBidError,
    ClaimBlockIsBeforeEndBlockError,
    FloorPriceIsZeroError,
    FloorPriceTooHighError,
    ForceIterateOverTicksError,
    InvalidBidAmountError,
    InvalidBidPriceTooHighError,
    InvalidEndBlockError,
    InvalidLastFullyFilledCheckpointHintError,
    InvalidOutbidBlockCheckpointHintError,
    InvalidTokenAmountReceivedError,
    InvalidTotalSupplyError,
    NotClaimableError,
    NotGraduatedError,
    ReentrancyError,
    TickSpacingIsZeroError,
    TokensNotReceivedError,
    ZeroRemainingIssuanceError,
)
from cca.event_logger import (
    BidExitedEvent,
    BidSubmittedEvent,
    CheckpointEvent,
    TickInitializedEvent,
    TokensClaimedEvent,
)
from cca.fixed_point import (
    MAX_BID_PRICE,
    MAX_TICK_PTR,
    MAX_TOTAL_SUPPLY,
    MAX_UINT256,
    MPS,
    Q96,
    ZERO_DEMAND,
    Demand,
    Rounding,
    ValueX7,
    ValueX7X7,
    div_up,
    saturating_sub,
    scale_down_x7x7,
)
from cca.hooks import Transfers, ValidationHook
from cca.schedule import IssuanceSchedule
from cca.tickbook import TickBook

if TYPE_CHECKING:
    from cca.event_logger import AuctionEvent, EventLogger

logger = logging.getLogger(__name__)


class AuctionState(Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    GRADUATED = "graduated"
    NOT_GRADUATED = "not_graduated"


@dataclass(frozen=True)
class AuctionParameters:
    """
    Immutable construction parameters.

    Attributes:
        total_supply: Tokens on sale
        floor_price: Lowest Q96 clearing price
        tick_spacing: Q96 distance between valid bid prices
        auction_steps_data: Packed issuance schedule (see cca.schedule)
        start_block: First block of issuance
        end_block: Block issuance ends at
        claim_block: First block tokens can be claimed
        required_currency_raised: Currency needed for the auction to graduate
        tokens_recipient: Receives unsold tokens
        funds_recipient: Receives the currency raised
    """

    total_supply: int
    floor_price: int
    tick_spacing: int
    auction_steps_data: bytes
    start_block: int
    end_block: int
    claim_block: int
    required_currency_raised: int = 0
    tokens_recipient: str = "tokens_recipient"
    funds_recipient: str = "funds_recipient"


def compute_max_bid_price(total_supply: int, floor_price: int, tick_spacing: int) -> int:
    """
    Highest price a bid may carry for a given supply.

    Keeps price * supply * MPS within 256 bits so fill arithmetic stays in
    range, stays one tick spacing clear of the MAX_TICK_PTR sentinel, and is
    aligned down onto the tick grid.
    """
    bound = min(
        MAX_BID_PRICE,
        MAX_UINT256 // (total_supply * MPS),
        MAX_TICK_PTR - tick_spacing,
    )
    if bound < floor_price:
        return bound
    return floor_price + ((bound - floor_price) // tick_spacing) * tick_spacing


class Auction:
    """
    The continuous clearing auction state machine.

    Attributes:
        params: Construction parameters
        schedule: Issuance schedule with its forward-only cursor
        ticks: Price-level book
        bids: Bid ledger
        checkpoints: Checkpoint chain
        clearing_price: Current clearing price; new bids must exceed it
        sum_demand_above_clearing: Demand of every tick above the clearing price
        max_bid_price: Highest allowed bid price
        block_number: Current block
    """

    def __init__(
        self,
        params: AuctionParameters,
        transfers: Transfers,
        validation_hook: ValidationHook | None = None,
        event_logger: "EventLogger | None" = None,
        block_number: int = 0,
    ) -> None:
        """
        Validate parameters and build an empty auction.

        Args:
            params: Construction parameters
            transfers: Moves currency and tokens on the auction's behalf
            validation_hook: Optional admission predicate for bids
            event_logger: Optional JSONL sink for auction events
            block_number: Block the auction is created at

        Raises:
            ConfigurationError: If any parameter is invalid
        """
        if params.floor_price == 0:
            raise FloorPriceIsZeroError()
        if params.tick_spacing == 0:
            raise TickSpacingIsZeroError()
        if not 0 < params.total_supply <= MAX_TOTAL_SUPPLY:
            raise InvalidTotalSupplyError(params.total_supply, MAX_TOTAL_SUPPLY)
        if params.end_block <= params.start_block:
            raise InvalidEndBlockError(params.start_block, params.end_block)
        if params.claim_block < params.end_block:
            raise ClaimBlockIsBeforeEndBlockError(params.claim_block, params.end_block)

        self.max_bid_price = compute_max_bid_price(
            params.total_supply, params.floor_price, params.tick_spacing
        )
        if params.floor_price > self.max_bid_price:
            raise FloorPriceTooHighError(params.floor_price, self.max_bid_price)

        self.params = params
        self.schedule = IssuanceSchedule(
            params.auction_steps_data, params.start_block, params.end_block
        )
        self.ticks = TickBook(params.floor_price, params.tick_spacing)
        self.bids = BidLedger()
        self.checkpoints = CheckpointLedger()
        self.transfers = transfers
        self.validation_hook = validation_hook
        self.event_logger = event_logger

        self.block_number = block_number
        self.clearing_price = params.floor_price
        self.sum_demand_above_clearing: Demand = ZERO_DEMAND
        self.tokens_received = False
        self.currency_swept = False
        self.tokens_swept = False
        self._locked = False

    # =========================================================================
    # CLOCK AND STATE
    # =========================================================================

    def roll(self, blocks: int = 1) -> int:
        """Advance the current block by `blocks`."""
        return self.roll_to(self.block_number + blocks)

    def roll_to(self, block: int) -> int:
        """
        Move the current block forward to `block`.

        Raises:
            BlockNumberRewindError: If `block` is before the current block
        """
        if block < self.block_number:
            raise BlockNumberRewindError(self.block_number, block)
        self.block_number = block
        return block

    @property
    def total_supply(self) -> int:
        return self.params.total_supply

    @property
    def is_over(self) -> bool:
        return self.block_number >= self.params.end_block

    @property
    def state(self) -> AuctionState:
        if not self.tokens_received or self.block_number < self.params.start_block:
            return AuctionState.NOT_STARTED
        if not self.is_over:
            return AuctionState.ACTIVE
        if self.is_graduated():
            return AuctionState.GRADUATED
        return AuctionState.NOT_GRADUATED

    @property
    def currency_raised(self) -> int:
        latest = self.checkpoints.latest()
        if latest is None:
            return 0
        return scale_down_x7x7(latest.currency_raised_x7x7)

    @property
    def tokens_sold(self) -> int:
        latest = self.checkpoints.latest()
        if latest is None:
            return 0
        return scale_down_x7x7(latest.total_cleared_x7x7)

    def is_graduated(self) -> bool:
        """
        True once the auction has ended having raised the required currency.

        Raises:
            AuctionIsNotOverError: Before the end block
        """
        return self._is_graduated(self._final_checkpoint())

    def notify_tokens_received(self, amount: int) -> None:
        """
        Record that the tokens on sale have been deposited.

        Raises:
            InvalidTokenAmountReceivedError: If `amount` is below the total supply
        """
        if amount < self.total_supply:
            raise InvalidTokenAmountReceivedError(amount, self.total_supply)
        self.tokens_received = True
        logger.info(f"Auction funded with {amount} tokens")

    @contextmanager
    def _non_reentrant(self) -> Iterator[None]:
        if self._locked:
            raise ReentrancyError()
        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    def _require_active(self) -> None:
        if self.block_number < self.params.start_block:
            raise AuctionNotStartedError(self.block_number, self.params.start_block)
        if not self.tokens_received:
            raise TokensNotReceivedError()
        if self.is_over:
            raise AuctionIsOverError()

    def _emit(self, event: "AuctionEvent") -> None:
        if self.event_logger is not None:
            self.event_logger.log(event)

    # =========================================================================
    # CHECKPOINTING AND PRICE DISCOVERY
    # =========================================================================

    def checkpoint(self) -> Checkpoint:
        """
        Bring the checkpoint chain up to the current block.

        Idempotent within a block. After the end block this returns the
        final checkpoint.

        Raises:
            AuctionNotStartedError: Before the start block
        """
        with self._non_reentrant():
            return self._checkpoint()

    def force_iterate_over_ticks(self, until_price: int) -> int:
        """
        Cross ticks up to `until_price` ahead of the next checkpoint.

        Anyone may call this to split the price discovery walk over a book
        with very many ticks across several calls. Only ticks whose demand
        already absorbs the remaining supply are crossed, so the walk never
        moves past the true clearing price.

        Returns:
            The clearing price after the walk

        Raises:
            ForceIterateOverTicksError: If `until_price` is not above the clearing price
        """
        with self._non_reentrant():
            self._require_active()
            checkpoint = self._checkpoint()
            if until_price <= self.clearing_price:
                raise ForceIterateOverTicksError(until_price, self.clearing_price)
            if checkpoint.remaining_mps == 0:
                return self.clearing_price
            supply_x7 = self._remaining_supply_x7(checkpoint)
            if supply_x7 > 0:
                self.clearing_price = self._iterate_over_ticks(supply_x7, until_price)
            logger.debug(f"Forced tick walk to {until_price}, clearing price {self.clearing_price}")
            return self.clearing_price

    def _checkpoint(self) -> Checkpoint:
        if self.block_number < self.params.start_block:
            raise AuctionNotStartedError(self.block_number, self.params.start_block)
        block = min(self.block_number, self.params.end_block)

        latest = self.checkpoints.latest()
        if latest is None:
            latest = self._insert_checkpoint(
                Checkpoint(
                    block=self.params.start_block,
                    clearing_price=self.params.floor_price,
                    mps=self.schedule.active_step(self.params.start_block).mps,
                )
            )
        if latest.block == block:
            return latest
        return self._insert_checkpoint(self._advance(latest, block))

    def _final_checkpoint(self) -> Checkpoint:
        if not self.is_over:
            raise AuctionIsNotOverError(self.block_number, self.params.end_block)
        return self._checkpoint()

    def _insert_checkpoint(self, checkpoint: Checkpoint) -> Checkpoint:
        self.checkpoints.insert(checkpoint)
        self._emit(
            CheckpointEvent(
                block=checkpoint.block,
                clearing_price=checkpoint.clearing_price,
                cumulative_mps=checkpoint.cumulative_mps,
                total_cleared_x7x7=checkpoint.total_cleared_x7x7,
                currency_raised_x7x7=checkpoint.currency_raised_x7x7,
            )
        )
        return checkpoint

    def _remaining_supply_x7(self, checkpoint: Checkpoint) -> ValueX7:
        """Unsold supply spread over the remaining issuance, normalised to MPS."""
        if checkpoint.remaining_mps == 0:
            raise ZeroRemainingIssuanceError()
        remaining_x7x7 = saturating_sub(
            self.total_supply * MPS * MPS, checkpoint.total_cleared_x7x7
        )
        return ValueX7(remaining_x7x7 // checkpoint.remaining_mps)

    def _advance(self, latest: Checkpoint, block: int) -> Checkpoint:
        """Build the checkpoint at `block` from the latest one."""
        delta_mps = self.schedule.issued_between(latest.block, block)
        mps = self.schedule.active_step(block).mps

        if latest.remaining_mps == 0:
            # Nothing left to sell; carry the totals forward
            return replace(latest, block=block, mps=mps)

        supply_x7 = self._remaining_supply_x7(latest)
        if supply_x7 > 0:
            self.clearing_price = self._discover_clearing_price(supply_x7)
        return self._sell_tokens_at_clearing_price(
            latest, block, self.clearing_price, delta_mps, mps, supply_x7
        )

    def _iterate_over_ticks(self, supply_x7: ValueX7, until_price: int = MAX_TICK_PTR) -> int:
        """
        Cross every tick whose demand, together with all demand above it,
        still absorbs the remaining supply.

        Returns:
            The minimum clearing price: the last tick crossed, or the current
            clearing price if none was
        """
        demand = self.sum_demand_above_clearing
        minimum = self.clearing_price
        next_price = self.ticks.next_active_price
        while (
            next_price != MAX_TICK_PTR
            and next_price <= until_price
            and demand.currency_demand_x7 * Q96 >= supply_x7 * next_price
        ):
            tick = self.ticks.get_tick(next_price)
            demand = demand - tick.demand
            minimum = next_price
            next_price = tick.next_price

        self.sum_demand_above_clearing = demand
        self.ticks.next_active_price = next_price
        return minimum

    def _discover_clearing_price(self, supply_x7: ValueX7) -> int:
        minimum = self._iterate_over_ticks(supply_x7)
        price = div_up(self.sum_demand_above_clearing.currency_demand_x7 * Q96, supply_x7)
        if price < minimum:
            price = minimum
        next_price = self.ticks.next_active_price
        if next_price != MAX_TICK_PTR and price >= next_price:
            # The remaining demand sits on uncrossed ticks, so stay below them
            price = next_price - 1
        return price

    def _sell_tokens_at_clearing_price(
        self,
        latest: Checkpoint,
        block: int,
        price: int,
        delta_mps: int,
        mps: int,
        supply_x7: ValueX7,
    ) -> Checkpoint:
        """
        Sell `delta_mps` of issuance at `price` and build the next checkpoint.

        Bids above the price are filled in full; bids at the price share what
        is left of the supply. Unsold supply stays in the remaining pool.
        """
        above_x7 = self.sum_demand_above_clearing.currency_demand_x7
        at_price_x7 = self.ticks.demand_at(price).currency_demand_x7
        demanded_x7 = Demand(ValueX7(above_x7 + at_price_x7)).resolve(price)

        cleared_x7x7 = ValueX7X7(min(supply_x7, demanded_x7) * delta_mps)
        currency_x7x7 = ValueX7X7(cleared_x7x7 * price // Q96)
        at_clearing_x7x7 = saturating_sub(currency_x7x7, above_x7 * delta_mps)

        carried_x7x7 = 0
        if price == latest.clearing_price:
            carried_x7x7 = latest.currency_raised_at_clearing_price_x7x7

        return Checkpoint(
            block=block,
            clearing_price=price,
            total_cleared_x7x7=ValueX7X7(latest.total_cleared_x7x7 + cleared_x7x7),
            cumulative_mps=latest.cumulative_mps + delta_mps,
            mps=mps,
            cumulative_mps_per_price=(
                latest.cumulative_mps_per_price + get_mps_per_price(delta_mps, price)
            ),
            currency_raised_at_clearing_price_x7x7=ValueX7X7(carried_x7x7 + at_clearing_x7x7),
            currency_raised_x7x7=ValueX7X7(latest.currency_raised_x7x7 + currency_x7x7),
        )

    # =========================================================================
    # BIDDING
    # =========================================================================

    def submit_bid(
        self,
        max_price: int,
        amount: int,
        owner: str,
        prev_tick_price: int,
        hook_data: bytes = b"",
        sender: str | None = None,
    ) -> int:
        """
        Admit a bid at the current block.

        Args:
            max_price: Q96 limit price, on the tick grid
            amount: Currency to commit
            owner: Receives refunds and tokens
            prev_tick_price: Initialized tick below `max_price`, used as the
                insertion hint when the tick is new
            hook_data: Opaque bytes forwarded to the validation hook
            sender: Account paying the currency (defaults to `owner`)

        Returns:
            The new bid id

        Raises:
            PreconditionError: If the auction is not active or the bid is invalid
            ZeroRemainingIssuanceError: If no issuance is left to bid on
        """
        sender = owner if sender is None else sender
        with self._non_reentrant():
            self._require_active()
            checkpoint = self._checkpoint()

            if amount <= 0:
                raise InvalidBidAmountError(amount)
            if max_price > self.max_bid_price:
                raise InvalidBidPriceTooHighError(max_price, self.max_bid_price)
            if max_price <= self.clearing_price:
                raise BidMustBeAboveClearingPriceError(max_price, self.clearing_price)
            if checkpoint.remaining_mps == 0:
                raise ZeroRemainingIssuanceError()
            self.ticks.validate_insert(prev_tick_price, max_price)

            # Nothing about this bid is recorded until the hook and the
            # currency pull have both succeeded
            if self.validation_hook is not None:
                self.validation_hook.validate(max_price, amount, owner, sender, hook_data)
            self.transfers.receive_currency(sender, amount)

            bid = self.bids.create(
                max_price=max_price,
                amount=amount,
                owner=owner,
                start_block=checkpoint.block,
                start_cumulative_mps=checkpoint.cumulative_mps,
            )
            is_new_tick = max_price not in self.ticks
            self.ticks.get_or_init_tick(prev_tick_price, max_price)
            demand = bid.demand
            self.ticks.add_demand(max_price, demand)
            self.sum_demand_above_clearing = self.sum_demand_above_clearing + demand

            if is_new_tick:
                self._emit(TickInitializedEvent(block=checkpoint.block, price=max_price))
            self._emit(
                BidSubmittedEvent(
                    block=checkpoint.block,
                    bid_id=bid.bid_id,
                    owner=owner,
                    max_price=max_price,
                    amount=amount,
                )
            )
            logger.debug(
                f"Bid {bid.bid_id} from {owner}: amount={amount} max_price={max_price} "
                f"at block {checkpoint.block}"
            )
            return bid.bid_id

    # =========================================================================
    # EXITS
    # =========================================================================

    def exit_bid(self, bid_id: int) -> int:
        """
        Settle a bid that needs no checkpoint hints.

        That covers bids of an auction that did not graduate (full refund),
        bids still above the final clearing price (fully filled throughout),
        and bids outbid before any issuance reached them (full refund).

        Returns:
            Currency refunded to the owner

        Raises:
            AuctionIsNotOverError: Before the end block
            BidAlreadyExitedError: If the bid already exited
            CannotExitBidError: If the bid needs exit_partially_filled_bid
        """
        with self._non_reentrant():
            final = self._final_checkpoint()
            bid = self._unexited_bid(bid_id)

            if not self._is_graduated(final):
                return self._process_exit(bid, 0, 0)

            start = self.checkpoints.get(bid.start_block)
            if bid.max_price > final.clearing_price:
                tokens_filled, currency_spent = account_fully_filled(final, start, bid)
                return self._process_exit(bid, tokens_filled, currency_spent)

            first = self.checkpoints.next(start)
            if first is not None and first.clearing_price > bid.max_price:
                return self._process_exit(bid, 0, 0)
            raise CannotExitBidError(bid_id)

    def exit_partially_filled_bid(
        self, bid_id: int, last_fully_filled_block: int, outbid_block: int = 0
    ) -> int:
        """
        Settle a bid that reached the clearing price.

        Args:
            bid_id: Bid to settle
            last_fully_filled_block: Last checkpoint whose clearing price was
                below the bid's max price
            outbid_block: First checkpoint whose clearing price was above the
                bid's max price, or 0 if that never happened

        Returns:
            Currency refunded to the owner

        Raises:
            InvalidLastFullyFilledCheckpointHintError: If the first hint is wrong
            InvalidOutbidBlockCheckpointHintError: If the second hint is wrong
        """
        with self._non_reentrant():
            final = self._final_checkpoint()
            bid = self._unexited_bid(bid_id)

            if not self._is_graduated(final):
                return self._process_exit(bid, 0, 0)

            if last_fully_filled_block not in self.checkpoints:
                raise InvalidLastFullyFilledCheckpointHintError(last_fully_filled_block)
            last_fully_filled = self.checkpoints.get(last_fully_filled_block)
            following = self.checkpoints.next(last_fully_filled)
            if (
                last_fully_filled.block < bid.start_block
                or last_fully_filled.clearing_price >= bid.max_price
                or following is None
                or following.clearing_price < bid.max_price
            ):
                raise InvalidLastFullyFilledCheckpointHintError(last_fully_filled_block)

            start = self.checkpoints.get(bid.start_block)
            tokens_filled, currency_spent = account_fully_filled(last_fully_filled, start, bid)

            tick_demand_x7 = self.ticks.get_tick(bid.max_price).demand.currency_demand_x7
            if outbid_block != 0:
                if outbid_block not in self.checkpoints:
                    raise InvalidOutbidBlockCheckpointHintError(outbid_block)
                outbid = self.checkpoints.get(outbid_block)
                upper = self.checkpoints.previous(outbid)
                if (
                    outbid.clearing_price <= bid.max_price
                    or upper is None
                    or upper.clearing_price > bid.max_price
                ):
                    raise InvalidOutbidBlockCheckpointHintError(outbid_block)
                currency_at_clearing_x7x7 = 0
                if upper.clearing_price == bid.max_price:
                    currency_at_clearing_x7x7 = upper.currency_raised_at_clearing_price_x7x7
            else:
                if final.clearing_price != bid.max_price:
                    raise InvalidOutbidBlockCheckpointHintError(outbid_block)
                currency_at_clearing_x7x7 = final.currency_raised_at_clearing_price_x7x7

            partial_tokens, partial_currency = account_partially_filled(
                bid, tick_demand_x7, ValueX7X7(currency_at_clearing_x7x7)
            )
            return self._process_exit(
                bid, tokens_filled + partial_tokens, currency_spent + partial_currency
            )

    def _unexited_bid(self, bid_id: int) -> Bid:
        bid = self.bids[bid_id]
        if bid.has_exited:
            raise BidAlreadyExitedError(bid_id)
        return bid

    def _process_exit(self, bid: Bid, tokens_filled: int, currency_spent: int) -> int:
        currency_spent = min(currency_spent, bid.amount)
        refund = bid.amount - currency_spent
        # A failed refund leaves the bid unexited
        if refund > 0:
            self.transfers.send_currency(bid.owner, refund)
        bid.tokens_filled = tokens_filled
        bid.exited_block = self.block_number

        self._emit(
            BidExitedEvent(
                block=self.block_number,
                bid_id=bid.bid_id,
                owner=bid.owner,
                tokens_filled=tokens_filled,
                currency_refunded=refund,
            )
        )
        logger.debug(
            f"Bid {bid.bid_id} exited: tokens={tokens_filled} spent={currency_spent} refund={refund}"
        )
        return refund

    # =========================================================================
    # CLAIMS AND SWEEPS
    # =========================================================================

    def claim_tokens(self, bid_id: int) -> int:
        """
        Send an exited bid's tokens to its owner.

        Anyone may call this; tokens only ever go to the recorded owner.

        Returns:
            Tokens sent (0 on a repeated claim)
        """
        with self._non_reentrant():
            self._require_claimable()
            bid = self._exited_bid(bid_id)
            tokens = bid.tokens_filled
            if tokens > 0:
                self.transfers.send_tokens(bid.owner, tokens)
            self._mark_claimed(bid)
            return tokens

    def claim_tokens_batch(self, owner: str, bid_ids: Sequence[int]) -> int:
        """
        Claim several exited bids of one owner with a single transfer.

        Raises:
            BidOwnerMismatchError: If any bid belongs to someone else
        """
        with self._non_reentrant():
            self._require_claimable()
            # Repeated ids are claimed once
            bids = list({bid_id: self._exited_bid(bid_id) for bid_id in bid_ids}.values())
            for bid in bids:
                if bid.owner != owner:
                    raise BidOwnerMismatchError(bid.bid_id, owner)
            tokens = sum(bid.tokens_filled for bid in bids)
            if tokens > 0:
                self.transfers.send_tokens(owner, tokens)
            for bid in bids:
                self._mark_claimed(bid)
            return tokens

    def sweep_currency(self) -> int:
        """
        Send the currency raised to the funds recipient.

        Raises:
            NotGraduatedError: If the auction did not graduate
            AlreadySweptError: On a second call
        """
        with self._non_reentrant():
            final = self._final_checkpoint()
            if self.currency_swept:
                raise AlreadySweptError("currency")
            if not self._is_graduated(final):
                raise NotGraduatedError()
            amount = scale_down_x7x7(final.currency_raised_x7x7)
            logger.info(f"Sweeping {amount} currency to {self.params.funds_recipient}")
            if amount > 0:
                self.transfers.send_currency(self.params.funds_recipient, amount)
            self.currency_swept = True
            return amount

    def sweep_unsold_tokens(self) -> int:
        """
        Send unsold tokens to the tokens recipient: everything when the
        auction did not graduate.

        Raises:
            AlreadySweptError: On a second call
        """
        with self._non_reentrant():
            final = self._final_checkpoint()
            if self.tokens_swept:
                raise AlreadySweptError("tokens")
            if self._is_graduated(final):
                sold = scale_down_x7x7(final.total_cleared_x7x7, Rounding.UP)
                amount = saturating_sub(self.total_supply, sold)
            else:
                amount = self.total_supply
            logger.info(f"Sweeping {amount} unsold tokens to {self.params.tokens_recipient}")
            if amount > 0:
                self.transfers.send_tokens(self.params.tokens_recipient, amount)
            self.tokens_swept = True
            return amount

    def _require_claimable(self) -> None:
        if self.block_number < self.params.claim_block:
            raise NotClaimableError(self.block_number, self.params.claim_block)
        if not self._is_graduated(self._final_checkpoint()):
            raise NotGraduatedError()

    def _exited_bid(self, bid_id: int) -> Bid:
        bid = self.bids[bid_id]
        if not bid.has_exited:
            raise BidNotExitedError(bid_id)
        return bid

    def _mark_claimed(self, bid: Bid) -> None:
        tokens = bid.tokens_filled
        bid.tokens_filled = 0
        self._emit(
            TokensClaimedEvent(
                block=self.block_number, bid_id=bid.bid_id, owner=bid.owner, tokens=tokens
            )
        )

    def _is_graduated(self, final: Checkpoint) -> bool:
        return scale_down_x7x7(final.currency_raised_x7x7) >= self.params.required_currency_raised
