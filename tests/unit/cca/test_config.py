# tests/unit/cca/test_config.py
"""
Tests for loading auction parameters from omegaconf trees.
"""

import pytest
from omegaconf import OmegaConf

from cca.config import build_auction, default_config, parameters_from_config
from cca.errors import InvalidAuctionStepsError
from cca.fixed_point import Q96, to_q96
from cca.hooks import AllowlistHook, BidRejectedError, InMemoryTransfers
from cca.schedule import decode_steps


@pytest.fixture
def cfg():
    return default_config()


class TestParametersFromConfig:
    def test_defaults(self, cfg):
        params = parameters_from_config(cfg)
        assert params.total_supply == 1000
        assert params.floor_price == 100 * Q96
        assert params.tick_spacing == 10 * Q96
        assert params.start_block == 100
        assert params.end_block == 110
        assert params.claim_block == 110
        assert decode_steps(params.auction_steps_data) == [(1_000_000, 10)]

    def test_fractional_prices_are_exact(self, cfg):
        cfg.auction.floor_price = 0.1
        cfg.auction.tick_spacing = "0.05"
        params = parameters_from_config(cfg)
        assert params.floor_price == to_q96("0.1")
        assert params.tick_spacing == to_q96("0.05")

    def test_explicit_blocks(self, cfg):
        cfg.auction.steps = [[500_000, 10], [1_000_000, 5]]
        cfg.auction.end_block = 115
        cfg.auction.claim_block = 120
        params = parameters_from_config(cfg)
        assert (params.end_block, params.claim_block) == (115, 120)

    def test_empty_steps_rejected(self, cfg):
        cfg.auction.steps = []
        with pytest.raises(InvalidAuctionStepsError):
            parameters_from_config(cfg)

    def test_malformed_step_rejected(self, cfg):
        cfg.auction.steps = [[1_000_000, 10, 3]]
        with pytest.raises(InvalidAuctionStepsError):
            parameters_from_config(cfg)


class TestBuildAuction:
    def test_clock_starts_at_start_block(self, cfg):
        auction = build_auction(cfg, InMemoryTransfers())
        assert auction.block_number == 100
        assert auction.validation_hook is None

    def test_initial_block_override(self):
        cfg = OmegaConf.merge(default_config(), {"auction": {"initial_block": 90}})
        auction = build_auction(cfg, InMemoryTransfers())
        assert auction.block_number == 90

    def test_allowlist_builds_hook(self, cfg):
        cfg.auction.allowlist = ["alice"]
        transfers = InMemoryTransfers()
        auction = build_auction(cfg, transfers)
        assert isinstance(auction.validation_hook, AllowlistHook)

        transfers.deposit_tokens(1000)
        auction.notify_tokens_received(1000)
        transfers.fund("mallory", 10)
        with pytest.raises(BidRejectedError):
            auction.submit_bid(to_q96(110), 10, "mallory", to_q96(100))
        transfers.fund("alice", 10)
        assert auction.submit_bid(to_q96(110), 10, "alice", to_q96(100)) == 0
