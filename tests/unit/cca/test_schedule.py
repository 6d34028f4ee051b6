# tests/unit/cca/test_schedule.py
"""
Tests for the packed issuance schedule and its cursor.
"""

import pytest

from cca.errors import AuctionIsOverError, InvalidAuctionStepsError
from cca.fixed_point import MPS
from cca.schedule import AuctionStep, IssuanceSchedule, decode_steps, encode_steps

# Two steps: 500k mps for 10 blocks, then 1M mps for 5 blocks
TWO_STEPS = [(500_000, 10), (1_000_000, 5)]


class TestWireFormat:
    def test_each_step_is_one_big_endian_word(self):
        data = encode_steps([(1, 2)])
        assert len(data) == 8
        assert data == ((1 << 40) | 2).to_bytes(8, "big")

    def test_decode_inverts_encode(self):
        assert decode_steps(encode_steps(TWO_STEPS)) == TWO_STEPS

    def test_empty_data_rejected(self):
        with pytest.raises(InvalidAuctionStepsError):
            decode_steps(b"")

    def test_partial_word_rejected(self):
        with pytest.raises(InvalidAuctionStepsError):
            decode_steps(b"\x00" * 12)

    def test_rate_wider_than_24_bits_rejected(self):
        with pytest.raises(InvalidAuctionStepsError):
            encode_steps([(1 << 24, 1)])


class TestValidation:
    def test_valid_schedule(self):
        schedule = IssuanceSchedule.from_pairs(TWO_STEPS, 100, 115)
        assert schedule.steps == [
            AuctionStep(500_000, 100, 110),
            AuctionStep(1_000_000, 110, 115),
        ]

    def test_zero_length_step_rejected(self):
        with pytest.raises(InvalidAuctionStepsError, match="zero blocks"):
            IssuanceSchedule.from_pairs([(MPS, 1), (0, 0)], 0, 1)

    def test_total_must_equal_mps(self):
        with pytest.raises(InvalidAuctionStepsError, match="in total"):
            IssuanceSchedule.from_pairs([(999_999, 10)], 0, 10)

    def test_end_block_must_match(self):
        with pytest.raises(InvalidAuctionStepsError, match="ends at block"):
            IssuanceSchedule.from_pairs([(1_000_000, 10)], 0, 11)

    def test_zero_rate_step_is_allowed(self):
        schedule = IssuanceSchedule.from_pairs([(0, 5), (2_000_000, 5)], 0, 10)
        assert schedule.steps[0].mps == 0


class TestCursor:
    @pytest.fixture
    def schedule(self):
        return IssuanceSchedule.from_pairs(TWO_STEPS, 100, 115)

    def test_active_step_advances_across_boundary(self, schedule):
        assert schedule.active_step(100).mps == 500_000
        assert schedule.active_step(109).mps == 500_000
        assert schedule.active_step(110).mps == 1_000_000
        assert schedule.index == 1

    def test_blocks_past_end_resolve_to_last_step(self, schedule):
        assert schedule.active_step(500).mps == 1_000_000

    def test_cursor_never_rewinds(self, schedule):
        schedule.active_step(110)
        with pytest.raises(InvalidAuctionStepsError, match="cannot rewind"):
            schedule.active_step(105)

    def test_advance_past_last_step_raises(self, schedule):
        schedule.advance()
        with pytest.raises(AuctionIsOverError):
            schedule.advance()

    def test_issued_between_within_step(self, schedule):
        assert schedule.issued_between(100, 104) == 2_000_000

    def test_issued_between_across_steps(self, schedule):
        assert schedule.issued_between(108, 112) == 2 * 500_000 + 2 * 1_000_000

    def test_issued_over_whole_schedule_is_mps(self, schedule):
        assert schedule.issued_between(100, 115) == MPS

    def test_issued_between_sequential_calls(self, schedule):
        total = 0
        for a, b in [(100, 103), (103, 110), (110, 110), (110, 115)]:
            total += schedule.issued_between(a, b)
        assert total == MPS

    def test_range_outside_schedule_rejected(self, schedule):
        with pytest.raises(InvalidAuctionStepsError):
            schedule.issued_between(100, 116)
