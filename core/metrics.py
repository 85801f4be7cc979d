"""
Monthly metrics aggregation from raw transactions.

ALL money figures are computed here, locally.
The strategy context reads these rows; the LLM only interprets them.
"""

from datetime import date
from typing import Optional
import logging

import pandas as pd

from config import settings
from data.models import MonthlyMetric, TopExpense, Transaction, TransactionKind

logger = logging.getLogger(__name__)

TURNOVER_WINDOW_MONTHS = 12


def aggregate_monthly_metrics(
    transactions: list[Transaction],
    top_n: Optional[int] = None,
) -> list[MonthlyMetric]:
    """
    Main aggregation: one MonthlyMetric per user-month, ascending by month.

    Args:
        transactions: imported rows (any users, any order)
        top_n: expense categories kept per month (default from settings)

    Returns:
        list[MonthlyMetric] sorted by (user_id, month_start)
    """
    if top_n is None:
        top_n = settings.top_expenses_per_month

    if not transactions:
        return []

    df = pd.DataFrame([
        {
            "user_id": t.user_id,
            "month": t.date_ts.strftime("%Y-%m"),
            "kind": t.kind.value,
            "category": t.category,
            "amount": t.amount_rp,
        }
        for t in transactions
    ])

    logger.info(f"Aggregating {len(df)} transactions")

    # === Sums per kind ===
    totals = df.pivot_table(
        index=["user_id", "month"],
        columns="kind",
        values="amount",
        aggfunc="sum",
        fill_value=0,
    )
    for kind in TransactionKind:
        if kind.value not in totals.columns:
            totals[kind.value] = 0
    totals = totals.reset_index().sort_values(["user_id", "month"])

    top_by_month = _top_expenses(df, top_n)

    metrics = []
    prev_sales: dict[str, float] = {}

    for _, row in totals.iterrows():
        user_id = row["user_id"]
        sales = float(row[TransactionKind.INCOME.value])
        cogs = float(row[TransactionKind.COGS.value])
        opex = float(row[TransactionKind.EXPENSE.value])

        gross = sales - cogs
        net = gross - opex

        previous = prev_sales.get(user_id)
        if previous:
            mom = (sales - previous) / previous * 100
        else:
            mom = 0.0
        prev_sales[user_id] = sales

        metrics.append(MonthlyMetric(
            user_id=user_id,
            month_start=date.fromisoformat(f"{row['month']}-01"),
            sales_rp=sales,
            cogs_rp=cogs,
            opex_rp=opex,
            gross_profit_rp=gross,
            net_profit_rp=net,
            gross_margin=_margin(gross, sales),
            net_margin=_margin(net, sales),
            mom_sales_pct=mom,
            top_expenses=top_by_month.get((user_id, row["month"]), []),
        ))

    logger.debug(f"Aggregated {len(metrics)} user-months")

    return metrics


def _margin(profit: float, sales: float) -> float:
    """Profit / sales * 100, zero when there were no sales."""
    return profit / sales * 100 if sales else 0.0


def _top_expenses(df: pd.DataFrame, top_n: int) -> dict[tuple[str, str], list[TopExpense]]:
    """
    Largest expense categories per user-month, descending.

    Ties are broken by category name so the output is stable.
    """
    expenses = df[df["kind"] == TransactionKind.EXPENSE.value]
    if expenses.empty or top_n <= 0:
        return {}

    by_category = (
        expenses.groupby(["user_id", "month", "category"], as_index=False)["amount"]
        .sum()
        .sort_values(["user_id", "month", "amount", "category"], ascending=[True, True, False, True])
    )

    result: dict[tuple[str, str], list[TopExpense]] = {}
    for (user_id, month), group in by_category.groupby(["user_id", "month"], sort=False):
        result[(user_id, month)] = [
            TopExpense(category=r.category, amount_rp=float(r.amount))
            for r in group.head(top_n).itertuples()
        ]
    return result


def last12m_turnover(metrics: list[MonthlyMetric]) -> float:
    """Sum of sales over the latest 12 months present in `metrics`."""
    latest = sorted(metrics, key=lambda m: m.month_start, reverse=True)[:TURNOVER_WINDOW_MONTHS]
    return float(sum(m.sales_rp for m in latest))
