# tests/conftest.py
"""Shared fixtures for the auction test suite."""

import numpy as np
import pytest

from cca.auction import Auction, AuctionParameters
from cca.fixed_point import to_q96
from cca.hooks import InMemoryTransfers
from cca.schedule import encode_steps


@pytest.fixture
def seed():
    """Fixed seed for reproducibility."""
    return 42


@pytest.fixture
def rng(seed):
    """Numpy random generator with fixed seed."""
    return np.random.default_rng(seed)


@pytest.fixture
def transfers():
    """Empty in-memory balance book."""
    return InMemoryTransfers()


@pytest.fixture
def make_auction(transfers):
    """
    Factory for a funded auction at its start block.

    Defaults: 1000 tokens, floor 100, spacing 10, one step of 1,000,000 mps
    over blocks [100, 110), claimable at 110, nothing required to graduate.
    """

    def _make(
        total_supply=1000,
        floor_price=100,
        tick_spacing=10,
        steps=((1_000_000, 10),),
        start_block=100,
        end_block=110,
        claim_block=None,
        required_currency_raised=0,
        validation_hook=None,
        event_logger=None,
        fund_tokens=True,
        block_number=None,
    ):
        params = AuctionParameters(
            total_supply=total_supply,
            floor_price=to_q96(floor_price),
            tick_spacing=to_q96(tick_spacing),
            auction_steps_data=encode_steps(steps),
            start_block=start_block,
            end_block=end_block,
            claim_block=end_block if claim_block is None else claim_block,
            required_currency_raised=required_currency_raised,
        )
        auction = Auction(
            params,
            transfers,
            validation_hook=validation_hook,
            event_logger=event_logger,
            block_number=start_block if block_number is None else block_number,
        )
        if fund_tokens:
            transfers.deposit_tokens(total_supply)
            auction.notify_tokens_received(total_supply)
        return auction

    return _make


@pytest.fixture
def auction(make_auction):
    """Default funded auction at block 100."""
    return make_auction()


@pytest.fixture
def place_bid(transfers):
    """Fund `owner` and submit a bid at a human max price, using the book's hint."""

    def _place(auction, owner, max_price, amount):
        price = to_q96(max_price)
        transfers.fund(owner, amount)
        return auction.submit_bid(price, amount, owner, auction.ticks.hint_for(price))

    return _place
