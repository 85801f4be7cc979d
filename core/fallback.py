"""
Local rule-based strategy plan.

Used when the AI provider fails, is not configured, or the caller forces
local-only mode. Built from rule engine output, padded with generic items up
to the minimum counts, plus formulaic diagnosis text.
"""

import logging

from config import settings
from core.rules import next_month
from data.models import (
    Initiative,
    QuickWin,
    RuleProposals,
    StrategyContext,
    StrategyPlan,
)

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "rules-v1"


GENERIC_QUICK_WINS = [
    QuickWin(
        title="Optimalisasi Biaya Operasional",
        impact="tinggi",
        effort="sedang",
        action="Review dan negosiasi ulang kontrak supplier utama untuk menurunkan COGS",
    ),
    QuickWin(
        title="Peningkatan Margin Produk",
        impact="tinggi",
        effort="rendah",
        action="Analisis pricing strategy untuk produk dengan margin tertinggi",
    ),
    QuickWin(
        title="Efisiensi Inventori",
        impact="sedang",
        effort="rendah",
        action="Implementasi sistem tracking inventori untuk mengurangi waste",
    ),
]

RISKS = [
    "Fluktuasi harga bahan baku dapat mempengaruhi margin",
    "Persaingan ketat di pasar dapat menurunkan market share",
    "Ketergantungan pada supplier tunggal menciptakan supply risk",
    "Cash flow yang tidak stabil dapat mengganggu operasional",
]

ASSUMPTIONS = [
    "Kondisi pasar tetap stabil dalam 6 bulan ke depan",
    "Tidak ada perubahan regulasi yang signifikan",
    "Tim internal memiliki kapasitas untuk implementasi inisiatif",
    "Akses funding tersedia untuk investasi yang diperlukan",
]

DATA_GAPS = [
    "Data detail customer segmentation belum tersedia",
    "Analisis kompetitor belum komprehensif",
    "Tracking customer acquisition cost perlu diperbaiki",
    "Data seasonal pattern perlu analisis lebih mendalam",
]


def generic_initiatives(first_month: str) -> list[Initiative]:
    """Boilerplate initiatives starting next month and the month after."""
    second_month = next_month(first_month)
    return [
        Initiative(
            title="Program Digitalisasi Penjualan",
            description="Mengembangkan channel digital untuk meningkatkan jangkauan pasar",
            owner="Tim Marketing & IT",
            start_month=first_month,
            kpi="Peningkatan penjualan online",
            target="25% dari total penjualan dalam 6 bulan",
        ),
        Initiative(
            title="Sistem Manajemen Keuangan",
            description="Implementasi sistem akuntansi terintegrasi untuk tracking real-time",
            owner="Tim Finance",
            start_month=second_month,
            kpi="Akurasi laporan keuangan",
            target="Laporan real-time mingguan",
        ),
        Initiative(
            title="Program Efisiensi Operasional",
            description="Optimalisasi proses bisnis untuk mengurangi biaya operasional",
            owner="Tim Operations",
            start_month=first_month,
            kpi="Rasio OPEX terhadap Revenue",
            target="Turun 15% dalam 4 bulan",
        ),
    ]


def format_rp(amount: float) -> str:
    """Indonesian thousands grouping: 1250000 -> 'Rp 1.250.000'."""
    return "Rp " + f"{amount:,.0f}".replace(",", ".")


def _pad(items: list, generic: list, minimum: int, maximum: int) -> list:
    """Rule items first, then generic ones (skipping duplicate titles) up to minimum; capped at maximum."""
    result = list(items)
    titles = {item.title for item in result}
    for item in generic:
        if len(result) >= minimum:
            break
        if item.title not in titles:
            result.append(item)
            titles.add(item.title)
    return result[:maximum]


def build_fallback_plan(context: StrategyContext, proposals: RuleProposals) -> StrategyPlan:
    """
    Deterministic plan from rule engine output.

    Args:
        context: analysis context (non-empty months)
        proposals: output of core.rules.propose_from_rules(context)

    Returns:
        StrategyPlan with >= quick_wins_min quick wins and >= initiatives_min initiatives
    """
    months = context.months
    n = len(months)

    total_sales = sum(m.sales_rp for m in months)
    avg_sales = total_sales / max(n, 1)
    last_sales = months[-1].sales_rp if months else 0
    trend = "meningkat" if last_sales > avg_sales else "menurun"

    diagnosis = [
        f"Penjualan rata-rata bulanan: {format_rp(avg_sales)}",
        f"Tren penjualan periode ini: {trend}",
        f"Total omzet {n} bulan terakhir: {format_rp(total_sales)}",
        "Perlu analisis margin kotor dan operasional yang lebih detail",
        "Struktur biaya perlu dioptimalkan untuk meningkatkan profitabilitas",
    ]

    start = next_month(months[-1].month_start) if months else next_month(context.window.end_month)

    quick_wins = _pad(
        proposals.quick_wins, GENERIC_QUICK_WINS,
        settings.quick_wins_min, settings.quick_wins_max,
    )
    initiatives = _pad(
        proposals.initiatives, generic_initiatives(start),
        settings.initiatives_min, settings.initiatives_max,
    )

    logger.info(
        f"Fallback plan: {len(quick_wins)} quick wins "
        f"({len(proposals.quick_wins)} from rules), {len(initiatives)} initiatives "
        f"({len(proposals.initiatives)} from rules)"
    )

    return StrategyPlan(
        umkm_level=context.company.umkm_level,
        diagnosis=diagnosis,
        quick_wins=quick_wins,
        initiatives=initiatives,
        risks=list(RISKS),
        assumptions=list(ASSUMPTIONS),
        data_gaps=list(DATA_GAPS),
    )
