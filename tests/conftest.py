"""
Shared fixtures: in-memory store with seeded months, fake LLM clients and providers.
"""

import json
from datetime import date

import pytest

from data.models import (
    MonthlyMetric,
    Profile,
    ResultMeta,
    StrategyPlan,
    TopExpense,
    UmkmLevel,
)
from errors import AiProviderError
from store.memory import InMemoryStore

USER_ID = "user-1"


def make_metric(
    month: str,
    sales: float,
    cogs: float = 0,
    opex: float = 0,
    mom: float = 0,
    user_id: str = USER_ID,
    top_expenses: list = None,
) -> MonthlyMetric:
    """MonthlyMetric for 'YYYY-MM' with derived profits and percent margins."""
    year, mon = (int(p) for p in month.split("-"))
    gross = sales - cogs
    net = gross - opex
    return MonthlyMetric(
        user_id=user_id,
        month_start=date(year, mon, 1),
        sales_rp=sales,
        cogs_rp=cogs,
        opex_rp=opex,
        gross_profit_rp=gross,
        net_profit_rp=net,
        gross_margin=gross / sales * 100 if sales else 0,
        net_margin=net / sales * 100 if sales else 0,
        mom_sales_pct=mom,
        top_expenses=top_expenses or [],
    )


def month_series(start: str, count: int) -> list[str]:
    year, mon = (int(p) for p in start.split("-"))
    result = []
    for _ in range(count):
        result.append(f"{year:04d}-{mon:02d}")
        year, mon = (year + 1, 1) if mon == 12 else (year, mon + 1)
    return result


def seed_months(store: InMemoryStore, sales: list[float], start: str = "2024-01", user_id: str = USER_ID,
                cogs_ratio: float = 0.5, opex_ratio: float = 0.2) -> list[MonthlyMetric]:
    metrics = []
    prev = None
    for month, s in zip(month_series(start, len(sales)), sales):
        mom = (s - prev) / prev * 100 if prev else 0
        metrics.append(make_metric(
            month, s, cogs=s * cogs_ratio, opex=s * opex_ratio, mom=mom, user_id=user_id,
            top_expenses=[TopExpense(category="sewa", amount_rp=s * opex_ratio * 0.6),
                          TopExpense(category="gaji", amount_rp=s * opex_ratio * 0.4)],
        ))
        prev = s
    store.replace_months(user_id, metrics)
    return metrics


def valid_plan_dict(n_quick_wins: int = 3, n_initiatives: int = 3) -> dict:
    return {
        "umkmLevel": "kecil",
        "diagnosis": ["Penjualan stabil", "Margin kotor sehat"],
        "quickWins": [
            {
                "title": f"Quick win {i}",
                "impact": "tinggi",
                "effort": "rendah",
                "action": f"Aksi {i}",
            }
            for i in range(n_quick_wins)
        ],
        "initiatives": [
            {
                "title": f"Inisiatif {i}",
                "description": "Deskripsi",
                "owner": "Pemilik",
                "startMonth": "2024-07",
                "kpi": "Penjualan",
                "target": "+10%",
            }
            for i in range(n_initiatives)
        ],
        "risks": ["Harga bahan baku naik"],
    }


class FakeLLMClient:
    """Returns canned responses in order; records the messages it received."""

    def __init__(self, responses: list[str], model: str = "fake-model"):
        self.responses = list(responses)
        self.model = model
        self.calls: list[list[dict]] = []

    def complete(self, messages, temperature=0.3, max_tokens=2500) -> str:
        self.calls.append(messages)
        return self.responses.pop(0)

    def complete_with_repair(self, messages, temperature=0.3, max_tokens=2500) -> str:
        return self.complete(messages, temperature, max_tokens)


class ExplodingLLMClient:
    model = "broken-model"

    def complete(self, messages, temperature=0.3, max_tokens=2500) -> str:
        raise TimeoutError("request timed out")

    def complete_with_repair(self, messages, temperature=0.3, max_tokens=2500) -> str:
        return self.complete(messages, temperature, max_tokens)


class FailingProvider:
    """PlanProvider that always fails."""

    def __init__(self, error: Exception = None):
        self.error = error or AiProviderError("network down")
        self.calls = 0

    def generate(self, context, ctx_hash, seeds):
        self.calls += 1
        raise self.error


class StaticProvider:
    """PlanProvider returning a fixed valid plan."""

    def __init__(self):
        self.calls = 0

    def generate(self, context, ctx_hash, seeds):
        self.calls += 1
        plan = StrategyPlan.model_validate(valid_plan_dict())
        meta = ResultMeta(provider="openai", model="fake-model", source="ai",
                          months_used=len(context.months), ctx_hash=ctx_hash)
        return plan, meta


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def seeded_store(store):
    """Six months of steady data plus a 'kecil' profile."""
    seed_months(store, [10_000_000, 11_000_000, 9_500_000, 12_000_000, 12_500_000, 13_000_000])
    store.save_profile(Profile(
        user_id=USER_ID,
        display_name="Warung Sari",
        city="Bandung",
        umkm_level=UmkmLevel.KECIL,
        last12m_turnover_rp=68_000_000,
    ))
    return store


@pytest.fixture
def plan_json():
    return json.dumps(valid_plan_dict())
