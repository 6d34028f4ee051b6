# tests/unit/cca/test_metrics.py
"""
Tests for settlement metrics.
"""

import numpy as np
import pandas as pd
import pytest

from cca.metrics import (
    calculate_average_price,
    calculate_fill_prices,
    calculate_supply_conservation,
    compute_allocation_metrics,
)


class TestSupplyConservation:
    def test_exact(self):
        result = calculate_supply_conservation([250, 750], 0, 1000)
        assert result["dust"] == 0
        assert result["conserved"]

    def test_rounding_dust(self):
        result = calculate_supply_conservation([333, 333, 333], 0, 1000)
        assert result["dust"] == 1
        assert result["conserved"]

    def test_over_delivery(self):
        result = calculate_supply_conservation([600, 500], 0, 1000)
        assert not result["conserved"]


class TestFillPrices:
    @pytest.fixture
    def results(self):
        return pd.DataFrame(
            {"tokens_filled": [250, 750, 0], "currency_spent": [27_500, 82_500, 0]}
        )

    def test_per_bid_price(self, results):
        prices = calculate_fill_prices(results)
        assert prices.iloc[0] == pytest.approx(110.0)
        assert prices.iloc[1] == pytest.approx(110.0)
        assert np.isnan(prices.iloc[2])

    def test_volume_weighted_average(self, results):
        assert calculate_average_price(results) == pytest.approx(110.0)

    def test_nothing_sold(self):
        empty = pd.DataFrame({"tokens_filled": [0], "currency_spent": [0]})
        assert calculate_average_price(empty) == 0.0


class TestAllocationMetrics:
    def test_equal_split(self):
        metrics = compute_allocation_metrics([100, 100, 100, 100])
        assert metrics["gini"] == pytest.approx(0.0)
        assert metrics["top1_share"] == pytest.approx(0.25)
        assert metrics["bottom50_share"] == pytest.approx(0.5)
        assert metrics["skewness"] == 0.0

    def test_one_winner(self):
        metrics = compute_allocation_metrics([0, 0, 0, 1000])
        assert metrics["top1_share"] == pytest.approx(1.0)
        assert metrics["gini"] == pytest.approx(0.75)
        assert metrics["skewness"] > 0

    def test_empty(self):
        assert compute_allocation_metrics([])["gini"] == 0.0
