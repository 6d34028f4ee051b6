# tests/property/test_auction_properties.py
"""
Property-based tests for auction invariants using Hypothesis.

These tests verify that key invariants hold across a wide range of inputs,
catching edge cases that example-based tests might miss:
- the tick chain is strictly increasing whatever hints are used
- a valid schedule issues exactly MPS however it is sliced
- checkpoint clearing prices never decrease, across schedule steps and
  forced tick walks
- settlement never delivers more tokens or currency than the auction holds
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from cca.auction import Auction, AuctionParameters
from cca.errors import PreconditionError
from cca.fixed_point import MAX_TICK_PTR, MPS, to_q96
from cca.hooks import InMemoryTransfers
from cca.schedule import IssuanceSchedule, encode_steps
from cca.tickbook import TickBook

FLOOR = to_q96(100)
SPACING = to_q96(10)

# =============================================================================
# Strategies for generating test data
# =============================================================================


@st.composite
def schedules(draw):
    """Generate (mps, blocks) steps whose weighted sum is exactly MPS."""
    num_steps = draw(st.integers(min_value=1, max_value=5))
    blocks = [draw(st.integers(min_value=1, max_value=20)) for _ in range(num_steps - 1)]
    # Every step but the last gets a small rate; the last absorbs the rest
    steps = []
    remaining = MPS
    for span in blocks:
        mps = draw(st.integers(min_value=0, max_value=remaining // span // num_steps))
        steps.append((mps, span))
        remaining -= mps * span
    # The last step takes a span that divides the remainder
    divisors = [d for d in range(1, 21) if remaining % d == 0]
    last_span = draw(st.sampled_from(divisors))
    steps.append((remaining // last_span, last_span))
    return steps


@st.composite
def auction_plans(draw):
    """
    Generate a schedule plus the actions taken during the auction.

    Actions are (block offset, kind, price in ticks above floor, amount);
    kind is "bid" or "walk" for a forced tick walk up to that price.
    """
    steps = draw(schedules())
    duration = sum(span for _, span in steps)
    actions = draw(
        st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=duration - 1),
                st.sampled_from(["bid", "bid", "bid", "walk"]),
                st.integers(min_value=1, max_value=30),
                st.integers(min_value=1, max_value=300_000),
            ),
            min_size=1,
            max_size=20,
        )
    )
    return steps, actions


def run_auction(plan, total_supply=1000):
    steps, actions = plan
    end_block = 100 + sum(span for _, span in steps)
    transfers = InMemoryTransfers()
    params = AuctionParameters(
        total_supply=total_supply,
        floor_price=FLOOR,
        tick_spacing=SPACING,
        auction_steps_data=encode_steps(steps),
        start_block=100,
        end_block=end_block,
        claim_block=end_block,
    )
    auction = Auction(params, transfers, block_number=100)
    transfers.deposit_tokens(total_supply)
    auction.notify_tokens_received(total_supply)

    placed = []
    for offset, kind, ticks, amount in sorted(actions, key=lambda action: action[0]):
        auction.roll_to(100 + offset)
        price = FLOOR + ticks * SPACING
        try:
            if kind == "walk":
                auction.force_iterate_over_ticks(price)
                continue
            owner = f"bidder_{len(placed)}"
            transfers.fund(owner, amount)
            placed.append(auction.submit_bid(price, amount, owner, auction.ticks.hint_for(price)))
        except PreconditionError:
            continue
    auction.roll_to(end_block)
    return auction, transfers, placed


def settle(auction, bid_id):
    bid = auction.bids[bid_id]
    final = auction.checkpoint()
    if final.clearing_price < bid.max_price:
        return auction.exit_bid(bid_id)
    last_fully_filled, outbid = auction.checkpoints.find_exit_hints(bid.max_price, bid.start_block)
    return auction.exit_partially_filled_bid(bid_id, last_fully_filled, outbid)


# =============================================================================
# Property Tests: TickBook
# =============================================================================


class TestTickBookInvariants:
    @given(st.lists(st.integers(min_value=1, max_value=200), min_size=1, max_size=40))
    @settings(max_examples=50)
    def test_chain_sorted_with_floor_hint(self, ticks):
        """Inserting with the floor as hint always yields a sorted chain."""
        book = TickBook(FLOOR, SPACING)
        for t in ticks:
            book.get_or_init_tick(FLOOR, FLOOR + t * SPACING)

        prices = [tick.price for tick in book]
        assert prices == sorted(set(prices))
        assert prices[0] == FLOOR
        assert len(prices) == len(set(ticks)) + 1
        assert book.next_active_price == FLOOR + min(ticks) * SPACING

    @given(st.lists(st.integers(min_value=1, max_value=200), min_size=1, max_size=40))
    @settings(max_examples=50)
    def test_last_tick_points_at_sentinel(self, ticks):
        book = TickBook(FLOOR, SPACING)
        for t in ticks:
            price = FLOOR + t * SPACING
            book.get_or_init_tick(book.hint_for(price), price)
        *_, last = book
        assert last.next_price == MAX_TICK_PTR


# =============================================================================
# Property Tests: IssuanceSchedule
# =============================================================================


class TestScheduleInvariants:
    @given(schedules(), st.data())
    @settings(max_examples=50)
    def test_any_slicing_issues_mps(self, steps, data):
        """Summing issued_between over any increasing block cut gives MPS."""
        end_block = sum(span for _, span in steps)
        schedule = IssuanceSchedule.from_pairs(steps, 0, end_block)
        cuts = sorted(
            data.draw(st.lists(st.integers(min_value=0, max_value=end_block), max_size=10))
        )
        bounds = [0] + cuts + [end_block]
        total = sum(schedule.issued_between(a, b) for a, b in zip(bounds, bounds[1:]))
        assert total == MPS


# =============================================================================
# Property Tests: Auction
# =============================================================================


class TestAuctionInvariants:
    @given(auction_plans())
    @settings(max_examples=40, deadline=None)
    def test_clearing_price_never_decreases(self, plan):
        auction, _, _ = run_auction(plan)
        auction.checkpoint()
        prices = [cp.clearing_price for cp in auction.checkpoints]
        assert prices == sorted(prices)
        assert prices[0] == FLOOR

    @given(auction_plans())
    @settings(max_examples=40, deadline=None)
    def test_never_sells_more_than_supply(self, plan):
        auction, _, _ = run_auction(plan)
        final = auction.checkpoint()
        assert final.total_cleared_x7x7 <= 1000 * MPS * MPS
        assert final.cumulative_mps == MPS

    @given(auction_plans())
    @settings(max_examples=40, deadline=None)
    def test_settlement_conserves_tokens_and_currency(self, plan):
        auction, transfers, placed = run_auction(plan)

        total_filled = 0
        for bid_id in placed:
            bid = auction.bids[bid_id]
            refund = settle(auction, bid_id)
            assert 0 <= refund <= bid.amount
            total_filled += bid.tokens_filled

        for bid_id in placed:
            auction.claim_tokens(bid_id)
        auction.sweep_currency()
        unsold = auction.sweep_unsold_tokens()

        # Fills and unsold are both rounded in the auction's favour
        assert total_filled + unsold <= 1000
        assert total_filled + unsold >= 1000 - 2 * len(placed) - 1
        assert transfers.escrow_tokens >= 0
        assert transfers.escrow_currency >= 0
