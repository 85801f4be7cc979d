"""
AI strategy plan provider.

Request path:
1. Sanitize the context (finite numbers, strings, enum-constrained level)
2. Build the prompt: month table + context JSON + rule seeds + JSON schema
3. Call the LLM (with one JSON repair round-trip)
4. Parse and validate the plan

Any failure surfaces as AiProviderError; the orchestrator decides whether
to fall back to the local rule-based plan.
"""

from typing import Any, Optional, Protocol, runtime_checkable
import json
import math
import logging

import pandas as pd

from config import Settings, settings as default_settings
from data.models import ResultMeta, RuleProposals, StrategyContext, StrategyPlan
from errors import AiProviderError
from llm.client import LLMClient, get_llm_client
from llm.prompts import PLAN_PROMPT, STRATEGY_PLAN_SCHEMA, SYSTEM_PROMPT, UMKM_LEVEL_ENUM
from llm.response_parser import parse_plan

logger = logging.getLogger(__name__)


@runtime_checkable
class PlanProvider(Protocol):
    """Generates a plan for a context or raises AiProviderError."""

    def generate(
        self,
        context: StrategyContext,
        ctx_hash: str,
        seeds: RuleProposals,
    ) -> tuple[StrategyPlan, ResultMeta]:
        ...


# === Sanitization ===

def _num(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if math.isfinite(parsed) else default


def _str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def _arr(value: Any) -> list:
    return value if isinstance(value, list) else []


def _obj(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _expenses(value: Any) -> list[dict]:
    return [
        {"category": _str(_obj(e).get("category"), "other"), "amountRp": _num(_obj(e).get("amountRp"))}
        for e in _arr(value)
    ]


def sanitize_context(raw: dict) -> dict:
    """
    Coerces a serialized context (camelCase keys) into a safe shape for the prompt.

    - numbers -> finite floats (default 0)
    - strings -> str
    - umkmLevel -> one of mikro/kecil/menengah/besar (default mikro)
    - arrays -> [] when missing
    """
    raw = _obj(raw)
    company = _obj(raw.get("company"))
    window = _obj(raw.get("window"))
    features = _obj(raw.get("features"))

    months = [
        {
            "monthStart": _str(m.get("monthStart")),
            "salesRp": _num(m.get("salesRp")),
            "cogsRp": _num(m.get("cogsRp")),
            "opexRp": _num(m.get("opexRp")),
            "grossProfitRp": _num(m.get("grossProfitRp")),
            "netProfitRp": _num(m.get("netProfitRp")),
            "grossMargin": _num(m.get("grossMargin")),
            "netMargin": _num(m.get("netMargin")),
            "momSalesPct": _num(m.get("momSalesPct")),
            "topExpenses": _expenses(m.get("topExpenses")),
        }
        for m in map(_obj, _arr(raw.get("months")))
    ]

    level = company.get("umkmLevel")

    default_turnover = sum(m["salesRp"] for m in months)

    return {
        "company": {
            "displayName": _str(company.get("displayName")),
            "city": _str(company.get("city")),
            "umkmLevel": level if level in UMKM_LEVEL_ENUM else "mikro",
        },
        "window": {
            "monthsCount": int(_num(window.get("monthsCount"), len(months))),
            "startMonth": _str(window.get("startMonth")),
            "endMonth": _str(window.get("endMonth")),
        },
        "months": months,
        "last12mTurnoverRp": _num(raw.get("last12mTurnoverRp"), default_turnover),
        "seasonalityHints": [_str(x) for x in _arr(raw.get("seasonalityHints"))],
        "notes": [_str(x) for x in _arr(raw.get("notes"))],
        "features": {
            "gmAvg": _num(features.get("gmAvg")),
            "nmAvg": _num(features.get("nmAvg")),
            "gmTrend": _num(features.get("gmTrend")),
            "nmTrend": _num(features.get("nmTrend")),
            "momSales": [None if v is None else _num(v) for v in _arr(features.get("momSales"))],
            "volatilityIdx": _num(features.get("volatilityIdx")),
            "opexShare": _num(features.get("opexShare")),
            "topExpensesLast": _expenses(features.get("topExpensesLast")),
            "peakMonth": _str(features.get("peakMonth")) or None,
            "lowMonth": _str(features.get("lowMonth")) or None,
        },
    }


# === Prompt ===

def months_to_markdown(months: list[dict]) -> str:
    """Month table for the LLM (sanitized month dicts)."""
    if not months:
        return "(tidak ada data)"

    df = pd.DataFrame([
        {
            "bulan": m["monthStart"],
            "penjualan": m["salesRp"],
            "cogs": m["cogsRp"],
            "opex": m["opexRp"],
            "laba_bersih": m["netProfitRp"],
            "margin_kotor_%": m["grossMargin"],
            "margin_bersih_%": m["netMargin"],
        }
        for m in months
    ])

    for col in ["penjualan", "cogs", "opex", "laba_bersih"]:
        df[col] = df[col].apply(lambda x: f"{x:,.0f}".replace(",", "."))
    for col in ["margin_kotor_%", "margin_bersih_%"]:
        df[col] = df[col].apply(lambda x: f"{x:.1f}")

    # Pre-formatted cells stay text: tabulate would read "500.000" as 500.0
    return df.to_markdown(index=False, disable_numparse=True)


def build_messages(sanitized: dict, seeds: RuleProposals) -> list[dict]:
    context_for_prompt = {k: v for k, v in sanitized.items() if k != "months"}

    prompt = PLAN_PROMPT.format(
        months_table=months_to_markdown(sanitized["months"]),
        context_json=json.dumps(context_for_prompt, ensure_ascii=False, indent=2),
        seeds_json=json.dumps(seeds.model_dump(by_alias=True, exclude_none=True), ensure_ascii=False, indent=2),
        end_month=sanitized["window"]["endMonth"],
        umkm_level=sanitized["company"]["umkmLevel"],
        schema_json=json.dumps(STRATEGY_PLAN_SCHEMA, indent=2),
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


# === Provider ===

class AIPlanProvider:
    """
    PlanProvider backed by an LLMClient.

    The client is injected; build one with llm.get_llm_client().
    """

    provider_name = "openai"

    def __init__(self, client: LLMClient, config: Settings = default_settings):
        self.client = client
        self.config = config

    def generate(
        self,
        context: StrategyContext,
        ctx_hash: str,
        seeds: RuleProposals,
    ) -> tuple[StrategyPlan, ResultMeta]:
        """
        Generates a plan via the LLM.

        Raises:
            AiProviderError: transport error, timeout, bad JSON or invalid plan
        """
        sanitized = sanitize_context(context.model_dump(by_alias=True, mode="json"))
        messages = build_messages(sanitized, seeds)

        logger.info(f"Requesting AI plan (ctx={ctx_hash[:16]}, months={len(sanitized['months'])})")

        try:
            raw_response = self.client.complete_with_repair(
                messages,
                temperature=self.config.llm_temperature,
                max_tokens=self.config.llm_max_tokens,
            )
        except AiProviderError:
            raise
        except Exception as e:
            raise AiProviderError(f"Panggilan AI gagal: {e}") from e

        plan = parse_plan(
            raw_response,
            quick_wins_range=(self.config.quick_wins_min, self.config.quick_wins_max),
            initiatives_range=(self.config.initiatives_min, self.config.initiatives_max),
        )

        meta = ResultMeta(
            provider=self.provider_name,
            model=getattr(self.client, "model", None) or "unknown",
            source="ai",
            months_used=len(context.months),
            ctx_hash=ctx_hash,
        )
        return plan, meta


def get_plan_provider(config: Settings = default_settings) -> Optional[PlanProvider]:
    """AI provider for the configured client, or None when AI is disabled."""
    client = get_llm_client(config)
    return AIPlanProvider(client, config) if client is not None else None
