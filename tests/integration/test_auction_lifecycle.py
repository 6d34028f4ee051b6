# tests/integration/test_auction_lifecycle.py
"""
End-to-end auction scenarios with hand-computed settlements.

Every scenario sells 1000 tokens over blocks [100, 110) at 1,000,000 mps per
block, floor price 100, tick spacing 10. Expected fills are derived by hand
from the clearing rules:

- Demand above the clearing price is filled in full at the clearing price.
- Demand at the clearing price shares the remaining supply pro rata.
- A checkpoint sells the blocks since the previous checkpoint at the price
  discovered from the bids placed before it.
"""

import pytest

from cca.fixed_point import MPS, Q96, to_q96


def settle(auction, bid_id):
    """Exit a bid the way an off-chain keeper would."""
    bid = auction.bids[bid_id]
    final = auction.checkpoint()
    if final.clearing_price < bid.max_price:
        return auction.exit_bid(bid_id)
    last_fully_filled, outbid = auction.checkpoints.find_exit_hints(bid.max_price, bid.start_block)
    return auction.exit_partially_filled_bid(bid_id, last_fully_filled, outbid)


class TestUndersubscribed:
    """One small bid: the price stays at the floor and most supply goes unsold."""

    def test_single_bid_fills_at_floor(self, auction, place_bid, transfers):
        bid_id = place_bid(auction, "alice", 110, 5000)
        auction.roll_to(110)

        final = auction.checkpoint()
        assert final.clearing_price == to_q96(100)
        assert final.cumulative_mps_per_price == 100_000 * Q96
        assert auction.currency_raised == 5000
        assert auction.tokens_sold == 50

        assert auction.exit_bid(bid_id) == 0
        assert auction.bids[bid_id].tokens_filled == 50
        assert auction.claim_tokens(bid_id) == 50
        assert auction.sweep_currency() == 5000
        assert auction.sweep_unsold_tokens() == 950

        assert transfers.tokens["alice"] == 50
        assert transfers.escrow_tokens == 0
        assert transfers.escrow_currency == 0


class TestOversubscribed:
    """One large bid: the price rises to its max and it gets the whole supply."""

    def test_single_bid_at_clearing_price(self, auction, place_bid, transfers):
        bid_id = place_bid(auction, "alice", 110, 200_000)
        auction.roll_to(110)

        final = auction.checkpoint()
        assert final.clearing_price == to_q96(110)
        assert final.total_cleared_x7x7 == 1000 * MPS * MPS
        assert final.currency_raised_at_clearing_price_x7x7 == 110_000 * MPS * MPS

        refund = auction.exit_partially_filled_bid(bid_id, 100, 0)
        assert refund == 90_000
        assert auction.bids[bid_id].tokens_filled == 1000

        auction.claim_tokens(bid_id)
        assert auction.sweep_currency() == 110_000
        assert auction.sweep_unsold_tokens() == 0
        assert transfers.tokens["alice"] == 1000
        assert transfers.currency["alice"] == 90_000
        assert transfers.escrow_currency == 0


class TestOutbid:
    """A lower bid is priced out by a larger, higher one."""

    @pytest.fixture
    def ended(self, auction, place_bid):
        low = place_bid(auction, "alice", 120, 50_000)
        high = place_bid(auction, "bob", 150, 200_000)
        auction.roll_to(110)
        return auction, low, high

    def test_clearing_price_jumps_past_low_bid(self, ended):
        auction, _, _ = ended
        assert auction.checkpoint().clearing_price == to_q96(150)

    def test_high_bid_takes_supply(self, ended):
        auction, _, high = ended
        assert auction.exit_partially_filled_bid(high, 100, 0) == 50_000
        assert auction.bids[high].tokens_filled == 1000

    def test_low_bid_refunded_in_full(self, ended, transfers):
        auction, low, _ = ended
        assert auction.exit_bid(low) == 50_000
        assert auction.bids[low].tokens_filled == 0
        assert transfers.currency["alice"] == 50_000

    def test_low_bid_through_hints_matches(self, ended):
        auction, low, _ = ended
        assert auction.checkpoints.find_exit_hints(to_q96(120), 100) == (100, 110)
        assert auction.exit_partially_filled_bid(low, 100, 110) == 50_000
        assert auction.bids[low].tokens_filled == 0


class TestProRata:
    """Two bids at the same price split the supply by demand."""

    def test_fills_proportional_to_amount(self, auction, place_bid):
        small = place_bid(auction, "alice", 110, 110_000)
        large = place_bid(auction, "bob", 110, 330_000)
        auction.roll_to(110)

        assert settle(auction, small) == 110_000 - 27_500
        assert settle(auction, large) == 330_000 - 82_500
        assert auction.bids[small].tokens_filled == 250
        assert auction.bids[large].tokens_filled == 750
        assert auction.sweep_currency() == 110_000


class TestRegimeChange:
    """
    A late, large bid lifts the price mid-auction.

    Blocks 100-105 sell at the floor to the early bid only; the late bid then
    pushes the price to 300 for blocks 105-110, outbidding the early bid.
    """

    @pytest.fixture
    def ended(self, auction, place_bid):
        early = place_bid(auction, "alice", 200, 50_000)
        auction.roll_to(105)
        late = place_bid(auction, "bob", 300, 300_000)
        auction.roll_to(110)
        return auction, early, late

    def test_checkpoints(self, ended):
        auction, _, _ = ended
        mid = auction.checkpoints.get(105)
        assert mid.clearing_price == to_q96(100)
        assert mid.cumulative_mps == 5_000_000
        assert mid.cumulative_mps_per_price == 50_000 * Q96
        assert mid.total_cleared_x7x7 == 250 * MPS * MPS

        final = auction.checkpoint()
        assert final.clearing_price == to_q96(300)
        assert final.total_cleared_x7x7 == 1000 * MPS * MPS
        assert auction.currency_raised == 250_000

    def test_early_bid_filled_before_it_was_outbid(self, ended):
        auction, early, _ = ended
        assert auction.checkpoints.find_exit_hints(to_q96(200), 100) == (105, 110)
        assert auction.exit_partially_filled_bid(early, 105, 110) == 25_000
        assert auction.bids[early].tokens_filled == 250

    def test_late_bid_at_clearing_price(self, ended):
        auction, _, late = ended
        assert auction.checkpoints.find_exit_hints(to_q96(300), 105) == (105, 0)
        assert auction.exit_partially_filled_bid(late, 105, 0) == 75_000
        assert auction.bids[late].tokens_filled == 750

    def test_full_settlement_balances(self, ended, transfers):
        auction, early, late = ended
        settle(auction, early)
        settle(auction, late)
        auction.claim_tokens_batch("alice", [early])
        auction.claim_tokens_batch("bob", [late])
        auction.sweep_currency()
        auction.sweep_unsold_tokens()

        assert transfers.tokens["alice"] + transfers.tokens["bob"] == 1000
        assert transfers.currency["funds_recipient"] == 250_000
        assert transfers.escrow_currency == 0
        assert transfers.escrow_tokens == 0


class TestNotGraduated:
    def test_everyone_refunded(self, make_auction, place_bid, transfers):
        auction = make_auction(required_currency_raised=1_000_000)
        a = place_bid(auction, "alice", 110, 200_000)
        b = place_bid(auction, "bob", 150, 5000)
        auction.roll_to(110)

        assert auction.exit_bid(a) == 200_000
        assert auction.exit_partially_filled_bid(b, 100, 0) == 5000
        assert auction.sweep_unsold_tokens() == 1000
        assert transfers.currency["alice"] == 200_000
        assert transfers.currency["bob"] == 5000
        assert transfers.escrow_currency == 0
