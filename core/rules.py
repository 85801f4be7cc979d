"""
Feature-driven rule engine.

Maps context features to candidate quick wins and initiatives.
Pure and deterministic: every rule in RULES is evaluated in declaration
order, and all outputs are concatenated (no dedup, no priorities).

The candidates seed the AI prompt and fill the local fallback plan.
"""

from dataclasses import dataclass
from datetime import date
from statistics import mean
from typing import Callable
import logging

from data.models import (
    Features,
    Initiative,
    QuickWin,
    RuleProposals,
    StrategyContext,
)

logger = logging.getLogger(__name__)


RuleOutput = tuple[list[Initiative], list[QuickWin]]


@dataclass(frozen=True)
class Rule:
    """One independently evaluable rule."""
    id: str
    name: str
    apply: Callable[[Features, str], RuleOutput]


def next_month(month: str) -> str:
    """'2024-12' -> '2025-01'. Accepts YYYY-MM or YYYY-MM-DD."""
    year, mon = int(month[:4]), int(month[5:7])
    year, mon = (year + 1, 1) if mon == 12 else (year, mon + 1)
    return date(year, mon, 1).strftime("%Y-%m")


def _pct(fraction: float) -> str:
    return f"{fraction * 100:.1f}"


# === Rules ===

def _opex_control(f: Features, start: str) -> RuleOutput:
    if not (f.opex_share > 0.30 and f.gm_avg > 0.20):
        return [], []

    top3 = ", ".join(e.category for e in f.top_expenses_last[:3])
    initiative = Initiative(
        title="Program Kontrol OPEX Terstruktur",
        description="Audit mendalam biaya operasional dan renegosiasi kontrak supplier",
        owner="Manajer Keuangan",
        start_month=start,
        kpi="Rasio OPEX/Sales",
        target=f"Turun dari {_pct(f.opex_share)}% ke {_pct(f.opex_share - 0.05)}% dalam 3 bulan",
        notes=f"OPEX share saat ini {_pct(f.opex_share)}% dari sales",
    )
    quick_win = QuickWin(
        title="Review Biaya Tertinggi",
        impact="tinggi",
        effort="rendah",
        action="Audit 3 kategori expense terbesar dan negosiasi ulang kontrak",
        notes=f"Top expenses: {top3}",
    )
    return [initiative], [quick_win]


def _profitability_recovery(f: Features, start: str) -> RuleOutput:
    if not f.nm_trend < -5:
        return [], []

    initiative = Initiative(
        title="Program Pemulihan Profitabilitas",
        description="Fokus pada peningkatan efisiensi operasional dan pricing strategy",
        owner="Tim Operasional",
        start_month=start,
        kpi="Net Margin",
        target=f"Naik dari {f.nm_avg:.1f}% ke {f.nm_avg + 5:.1f}% dalam 4 bulan",
        notes=f"Net margin trend turun {abs(f.nm_trend):.1f} p.p",
    )
    return [initiative], []


def _volatility_stabilization(f: Features, start: str) -> RuleOutput:
    if not f.volatility_idx > 20:
        return [], []

    initiative = Initiative(
        title="Stabilisasi Penjualan",
        description="Diversifikasi produk dan customer base untuk mengurangi volatilitas",
        owner="Tim Marketing",
        start_month=start,
        kpi="Volatilitas MoM Sales",
        target=f"Turun dari {f.volatility_idx:.1f}% ke <15% dalam 6 bulan",
        notes=f"Volatilitas penjualan saat ini {f.volatility_idx:.1f}%",
    )
    quick_win = QuickWin(
        title="Analisis Pola Penjualan",
        impact="sedang",
        effort="rendah",
        action="Identifikasi faktor penyebab fluktuasi dan buat contingency plan",
        notes=f"Peak month: {f.peak_month}, Low month: {f.low_month}",
    )
    return [initiative], [quick_win]


def _seasonal_optimization(f: Features, start: str) -> RuleOutput:
    if not (f.peak_month and f.low_month and f.peak_month != f.low_month):
        return [], []

    initiative = Initiative(
        title=f"Optimalisasi Musiman {f.low_month}",
        description="Program khusus untuk meningkatkan penjualan di bulan-bulan lemah",
        owner="Tim Marketing",
        start_month=f.low_month,
        kpi=f"Penjualan bulan {f.low_month}",
        target="Naik minimal 20% vs periode yang sama tahun sebelumnya",
        notes=f"{f.low_month} adalah bulan terlemah, {f.peak_month} adalah peak",
    )
    quick_win = QuickWin(
        title="Promo Seasonal Targeting",
        impact="sedang",
        effort="sedang",
        action=f"Siapkan kampanye khusus untuk {f.low_month} dengan bundling produk",
        notes=f"Leverage pola seasonal: peak di {f.peak_month}, low di {f.low_month}",
    )
    return [initiative], [quick_win]


def recent_growth(mom_sales: list) -> float:
    """Mean of the last 3 non-null MoM values (0 if there are none)."""
    recent = [v for v in mom_sales if v is not None][-3:]
    return mean(recent) if recent else 0.0


def _recovery_plan(f: Features, start: str) -> RuleOutput:
    avg_recent = recent_growth(f.mom_sales)
    if not avg_recent < -5:
        return [], []

    quick_win = QuickWin(
        title="Recovery Plan Immediate",
        impact="tinggi",
        effort="sedang",
        action="Fokus pada customer retention dan reaktivasi dormant customers",
        notes=f"Rata-rata pertumbuhan 3 bulan terakhir: {avg_recent:.1f}%",
    )
    return [], [quick_win]


RULES: list[Rule] = [
    Rule("OPEX_CONTROL", "OPEX control", _opex_control),
    Rule("PROFIT_RECOVERY", "Profitability recovery", _profitability_recovery),
    Rule("VOLATILITY", "Volatility stabilization", _volatility_stabilization),
    Rule("SEASONAL", "Seasonal optimization", _seasonal_optimization),
    Rule("RECOVERY", "Recovery plan", _recovery_plan),
]


def propose_from_rules(context: StrategyContext) -> RuleProposals:
    """
    Runs every rule against the context features.

    Args:
        context: StrategyContext (months oldest -> newest)

    Returns:
        RuleProposals with concatenated initiatives and quick wins
        (both empty when the context has no months)
    """
    proposals = RuleProposals()

    if not context.months:
        return proposals

    start = next_month(context.months[-1].month_start)

    for rule in RULES:
        initiatives, quick_wins = rule.apply(context.features, start)
        if initiatives or quick_wins:
            logger.debug(f"Rule {rule.id} fired: {len(initiatives)} initiatives, {len(quick_wins)} quick wins")
        proposals.initiatives.extend(initiatives)
        proposals.quick_wins.extend(quick_wins)

    logger.info(
        f"Rule engine: {len(proposals.initiatives)} initiatives, "
        f"{len(proposals.quick_wins)} quick wins"
    )
    return proposals
