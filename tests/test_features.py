"""
Tests for derived context features.
"""

import pytest

from core.features import calculate_features, half_trend, mom_changes, volatility
from data.models import MonthView, TopExpense


def view(month: str, sales: float, opex: float = 0, gm: float = 0, nm: float = 0, top=None) -> MonthView:
    return MonthView(
        month_start=month,
        sales_rp=sales,
        opex_rp=opex,
        gross_margin=gm,
        net_margin=nm,
        top_expenses=top or [],
    )


class TestMomChanges:

    def test_basic_series(self):
        result = mom_changes([100, 110, 99])
        assert result[0] is None
        assert result[1] == pytest.approx(10.0)
        assert result[2] == pytest.approx(-10.0)

    def test_zero_previous_month_is_none(self):
        assert mom_changes([0, 50, 100]) == [None, None, 100.0]

    def test_single_month(self):
        assert mom_changes([100]) == [None]


class TestVolatility:

    def test_population_stdev_of_non_null_values(self):
        assert volatility([None, 10.0, -10.0]) == pytest.approx(10.0)

    def test_fewer_than_two_values(self):
        assert volatility([None, 5.0]) == 0
        assert volatility([]) == 0


class TestHalfTrend:

    def test_below_six_values_is_zero(self):
        assert half_trend([10, 20, 30, 40, 50]) == 0

    def test_even_window(self):
        assert half_trend([10, 10, 10, 20, 20, 20]) == pytest.approx(10.0)

    def test_odd_window_gives_extra_month_to_second_half(self):
        # mid = 3: first [0, 0, 0], second [10, 10, 10, 10]
        assert half_trend([0, 0, 0, 10, 10, 10, 10]) == pytest.approx(10.0)


class TestCalculateFeatures:

    def test_three_month_example(self):
        months = [
            view("2024-01", 100, opex=40, gm=30, nm=10),
            view("2024-02", 110, opex=44, gm=32, nm=12),
            view("2024-03", 99, opex=39.6, gm=28, nm=8),
        ]

        f = calculate_features(months)

        assert f.mom_sales[0] is None
        assert f.mom_sales[1] == pytest.approx(10.0)
        assert f.mom_sales[2] == pytest.approx(-10.0)
        assert f.volatility_idx == pytest.approx(10.0)
        assert f.opex_share == pytest.approx(0.4)
        assert f.gm_avg == pytest.approx(30.0)
        assert f.nm_avg == pytest.approx(10.0)
        assert f.gm_trend == 0
        assert f.nm_trend == 0
        assert f.peak_month == "2024-02"
        assert f.low_month == "2024-03"

    def test_top_expenses_come_from_last_month(self):
        months = [
            view("2024-01", 100, top=[TopExpense(category="sewa", amount_rp=10)]),
            view("2024-02", 100, top=[TopExpense(category="gaji", amount_rp=20)]),
        ]

        f = calculate_features(months)

        assert [e.category for e in f.top_expenses_last] == ["gaji"]

    def test_ties_pick_first_occurrence(self):
        months = [view("2024-01", 50), view("2024-02", 50), view("2024-03", 50)]

        f = calculate_features(months)

        assert f.peak_month == "2024-01"
        assert f.low_month == "2024-01"

    def test_zero_sales_gives_zero_opex_share(self):
        f = calculate_features([view("2024-01", 0, opex=10), view("2024-02", 0, opex=10)])

        assert f.opex_share == 0
        assert f.mom_sales == [None, None]
        assert f.volatility_idx == 0

    def test_empty_window(self):
        f = calculate_features([])

        assert f.mom_sales == []
        assert f.peak_month is None
        assert f.low_month is None
