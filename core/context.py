"""
Strategy context builder.

Turns stored monthly metrics + company profile into a StrategyContext:
1. Profile (defaults when missing)
2. The most recent N months, chronological
3. Seasonality hints
4. Business notes
5. Derived features
"""

from collections import defaultdict
from statistics import mean
from typing import Optional, Protocol
import logging

from errors import AuthenticationError, NoDataError
from core.features import calculate_features
from data.models import (
    CompanyInfo,
    ContextWindow,
    MonthView,
    MonthlyMetric,
    Profile,
    StrategyContext,
)
from store.base import MetricsRepository, ProfileRepository

logger = logging.getLogger(__name__)


# === Indonesian month abbreviations ===
MONTH_ABBR = ['Jan', 'Feb', 'Mar', 'Apr', 'Mei', 'Jun',
              'Jul', 'Agu', 'Sep', 'Okt', 'Nov', 'Des']

# Fixed advisory note per UMKM level
LEVEL_NOTES = {
    'mikro': 'Fokus efisiensi dan struktur dasar bisnis',
    'kecil': 'Siap untuk ekspansi dan diversifikasi',
    'menengah': 'Optimalisasi operasional dan market expansion',
    'besar': 'Fokus inovasi dan competitive advantage',
}


class _Repositories(MetricsRepository, ProfileRepository, Protocol):
    pass


def build_strategy_context(
    store: _Repositories,
    user_id: Optional[str],
    months_back: int = 12,
) -> StrategyContext:
    """
    Builds the analysis context for one user.

    Args:
        store: metrics + profile repositories
        user_id: signed-in user (None/empty = not signed in)
        months_back: look-back in months (>= 1)

    Returns:
        StrategyContext over min(months_back, available) most recent months

    Raises:
        AuthenticationError: no signed-in user
        NoDataError: the user has no monthly metrics at all
        ValueError: months_back < 1
    """
    if not user_id:
        raise AuthenticationError()

    if months_back < 1:
        raise ValueError(f"months_back must be >= 1, got {months_back}")

    profile = store.get_profile(user_id)
    if profile is None:
        logger.debug(f"No profile for {user_id}, using defaults")

    available = store.count_months(user_id)
    if available == 0:
        raise NoDataError()

    to_fetch = min(months_back, available)
    logger.info(f"Fetching {to_fetch} months of data (available: {available}, requested: {months_back})")

    # Repository returns newest first
    rows = list(reversed(store.list_months(user_id, to_fetch)))
    months = [to_month_view(r) for r in rows]

    company = CompanyInfo(
        display_name=(profile and profile.display_name) or "UMKM",
        city=(profile and profile.city) or "Indonesia",
        umkm_level=profile.umkm_level.value if profile and profile.umkm_level else "mikro",
    )

    return StrategyContext(
        company=company,
        window=ContextWindow(
            months_count=len(months),
            start_month=months[0].month_start,
            end_month=months[-1].month_start,
        ),
        months=months,
        last12m_turnover_rp=profile.last12m_turnover_rp if profile else 0,
        seasonality_hints=seasonality_hints(months),
        notes=business_notes(months, profile),
        features=calculate_features(months),
    )


def to_month_view(metric: MonthlyMetric) -> MonthView:
    return MonthView(
        month_start=metric.month_start.strftime("%Y-%m"),
        sales_rp=metric.sales_rp,
        cogs_rp=metric.cogs_rp,
        opex_rp=metric.opex_rp,
        gross_profit_rp=metric.gross_profit_rp,
        net_profit_rp=metric.net_profit_rp,
        gross_margin=metric.gross_margin,
        net_margin=metric.net_margin,
        mom_sales_pct=metric.mom_sales_pct,
        top_expenses=list(metric.top_expenses),
    )


def seasonality_hints(months: list[MonthView]) -> list[str]:
    """
    Seasonality insights from the sales series.

    - Growth over the last 3 months (±10% thresholds)
    - Peak / low calendar month (averaged per calendar month)
    - Gross margin health (30% / 15% thresholds)
    """
    if len(months) < 3:
        return ['Data terbatas untuk analisis seasonality']

    hints = []

    # Recent growth
    avg_recent_growth = mean(m.mom_sales_pct for m in months[-3:])
    if avg_recent_growth > 10:
        hints.append('Tren pertumbuhan positif dalam 3 bulan terakhir')
    elif avg_recent_growth < -10:
        hints.append('Tren penurunan dalam 3 bulan terakhir')
    else:
        hints.append('Pertumbuhan relatif stabil')

    # Calendar-month buckets
    buckets: dict[str, list[float]] = defaultdict(list)
    for m in months:
        month_num = int(m.month_start[5:7])
        buckets[MONTH_ABBR[month_num - 1]].append(m.sales_rp)

    # sorted() is stable: equal averages keep first-seen order
    ranked = sorted(buckets.items(), key=lambda kv: mean(kv[1]), reverse=True)
    if len(ranked) >= 2:
        hints.append(f"Penjualan tertinggi: {ranked[0][0]}, terendah: {ranked[-1][0]}")

    # Margin health
    avg_margin = mean(m.gross_margin for m in months)
    if avg_margin > 30:
        hints.append('Margin kotor cukup sehat (>30%)')
    elif avg_margin > 15:
        hints.append('Margin kotor moderat (15-30%)')
    else:
        hints.append('Margin kotor perlu diperbaiki (<15%)')

    return hints


def business_notes(months: list[MonthView], profile: Optional[Profile]) -> list[str]:
    """
    Business insight notes.

    - Latest month vs window average (±20%)
    - Share of profitable months
    - Average OPEX / sales ratio
    - First vs second half sales growth (6+ months, ±20%)
    - Advisory note for the UMKM level
    """
    notes = []

    if not months:
        return notes

    latest = months[-1]
    avg_sales = mean(m.sales_rp for m in months)

    if latest.sales_rp > avg_sales * 1.2:
        notes.append('Penjualan bulan terakhir di atas rata-rata')
    elif latest.sales_rp < avg_sales * 0.8:
        notes.append('Penjualan bulan terakhir di bawah rata-rata')

    profitable_rate = sum(1 for m in months if m.net_profit_rp > 0) / len(months)
    if profitable_rate >= 0.8:
        notes.append('Konsisten menguntungkan')
    elif profitable_rate >= 0.5:
        notes.append('Profitabilitas tidak konsisten')
    else:
        notes.append('Sering mengalami kerugian')

    avg_opex_ratio = mean(m.opex_rp / m.sales_rp if m.sales_rp > 0 else 0 for m in months)
    if avg_opex_ratio > 0.5:
        notes.append('Biaya operasional tinggi (>50% dari penjualan)')
    elif avg_opex_ratio > 0.3:
        notes.append('Biaya operasional moderat (30-50%)')
    else:
        notes.append('Biaya operasional terkendali (<30%)')

    if len(months) >= 6:
        mid = len(months) // 2
        first_avg = mean(m.sales_rp for m in months[:mid])
        second_avg = mean(m.sales_rp for m in months[mid:])

        if first_avg > 0:
            growth_rate = (second_avg - first_avg) / first_avg * 100
            if growth_rate > 20:
                notes.append('Pertumbuhan signifikan periode ini')
            elif growth_rate < -20:
                notes.append('Penurunan signifikan periode ini')

    if profile and profile.umkm_level:
        notes.append(LEVEL_NOTES[profile.umkm_level.value])

    return notes
