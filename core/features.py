"""
Derived context features.

All feature math runs over months ordered oldest -> newest.
Simple heuristics, not a forecasting model.
"""

from statistics import mean, pstdev
from typing import Optional
import logging

from data.models import MonthView, Features

logger = logging.getLogger(__name__)

# Trends need both halves to carry at least 3 months
MIN_MONTHS_FOR_TREND = 6


def calculate_features(months: list[MonthView]) -> Features:
    """
    Computes the feature block of a StrategyContext.

    Args:
        months: chronologically ordered month views

    Returns:
        Features (all zero / empty for an empty window)
    """
    if not months:
        return Features()

    gm_avg = mean(m.gross_margin for m in months)
    nm_avg = mean(m.net_margin for m in months)

    gm_trend = half_trend([m.gross_margin for m in months])
    nm_trend = half_trend([m.net_margin for m in months])

    mom_sales = mom_changes([m.sales_rp for m in months])
    volatility_idx = volatility(mom_sales)

    total_sales = sum(m.sales_rp for m in months)
    total_opex = sum(m.opex_rp for m in months)
    opex_share = total_opex / total_sales if total_sales > 0 else 0

    peak, low = _extreme_months(months)

    features = Features(
        gm_avg=gm_avg,
        nm_avg=nm_avg,
        gm_trend=gm_trend,
        nm_trend=nm_trend,
        mom_sales=mom_sales,
        volatility_idx=volatility_idx,
        opex_share=opex_share,
        top_expenses_last=list(months[-1].top_expenses),
        peak_month=peak.month_start,
        low_month=low.month_start,
    )

    logger.debug(
        f"Features: gm_avg={gm_avg:.1f}, nm_trend={nm_trend:+.1f}, "
        f"volatility={volatility_idx:.1f}, opex_share={opex_share:.2f}"
    )

    return features


def half_trend(values: list[float]) -> float:
    """
    Second-half mean minus first-half mean.

    The split is at len // 2, so an odd window gives the extra month to the
    second half. Returns 0 for fewer than 6 values.
    """
    if len(values) < MIN_MONTHS_FOR_TREND:
        return 0.0

    mid = len(values) // 2
    return mean(values[mid:]) - mean(values[:mid])


def mom_changes(sales: list[float]) -> list[Optional[float]]:
    """
    Month-over-month percent change aligned to `sales`.

    The first element is None, and so is every element whose previous month
    had no sales.
    """
    changes: list[Optional[float]] = []
    for i, current in enumerate(sales):
        if i == 0:
            changes.append(None)
            continue
        prev = sales[i - 1]
        changes.append((current - prev) / prev * 100 if prev != 0 else None)
    return changes


def volatility(mom_sales: list[Optional[float]]) -> float:
    """Population standard deviation of the non-null MoM values (0 for fewer than 2)."""
    valid = [v for v in mom_sales if v is not None]
    if len(valid) < 2:
        return 0.0
    return pstdev(valid)


def _extreme_months(months: list[MonthView]) -> tuple[MonthView, MonthView]:
    """
    Months with max / min sales.

    Strict comparisons during a left-to-right scan: on ties the first
    occurrence wins.
    """
    peak = low = months[0]
    for m in months[1:]:
        if m.sales_rp > peak.sales_rp:
            peak = m
        if m.sales_rp < low.sales_rp:
            low = m
    return peak, low
