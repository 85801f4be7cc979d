"""
Pydantic data models for UMKM Strategi.

Models:
- Transaction / ImportRun: imported CSV rows and import bookkeeping
- MonthlyMetric: one aggregated row per user-month
- Profile: per-user business attributes
- StrategyContext (+ Features): the unit of analysis sent to the AI
- QuickWin / Initiative / StrategyPlan: the generated plan
- StrategyResult: everything the caller needs after an analysis run

All models accept snake_case names and serialise to the camelCase keys used
in the prompt, the context hash and stored JSON (model_dump(by_alias=True)).
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Literal


def _camel(name: str) -> str:
    """snake_case -> camelCase, digits kept as-is (last12m_turnover_rp -> last12mTurnoverRp)."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=_camel, populate_by_name=True)


class UmkmLevel(str, Enum):
    """UMKM business size class"""
    MIKRO = "mikro"
    KECIL = "kecil"
    MENENGAH = "menengah"
    BESAR = "besar"


class TransactionKind(str, Enum):
    """Transaction type column of the import CSV"""
    INCOME = "income"
    COGS = "cogs"
    EXPENSE = "expense"


class PlanSource(str, Enum):
    """Where the returned plan came from"""
    CACHE = "cache"
    AI = "ai"
    FALLBACK = "fallback"


Rating = Literal["rendah", "sedang", "tinggi"]
UmkmLevelName = Literal["mikro", "kecil", "menengah", "besar"]

MONTH_PATTERN = r"^\d{4}-\d{2}$"


# === Ingestion ===

class Transaction(CamelModel):
    """One normalised CSV row."""
    user_id: str
    date_ts: date
    kind: TransactionKind
    category: str = "other"
    amount_rp: int = 0
    notes: str = ""
    uniq_hash: str


class ImportRun(CamelModel):
    """Bookkeeping for one import."""
    user_id: str
    filename: str
    status: Literal["succeeded", "failed"] = "succeeded"
    total_rows: int = 0
    total_imported: int = 0
    warnings: list[str] = Field(default_factory=list)
    finished_at: datetime


# === Metrics and profile ===

class TopExpense(CamelModel):
    category: str
    amount_rp: float = 0


class MonthlyMetric(CamelModel):
    """
    One row per (user, month_start).

    Margins are percentages (gross_profit / sales * 100).
    """
    user_id: str
    month_start: date
    sales_rp: float = 0
    cogs_rp: float = 0
    opex_rp: float = 0
    gross_profit_rp: float = 0
    net_profit_rp: float = 0
    gross_margin: float = 0
    net_margin: float = 0
    mom_sales_pct: float = 0
    top_expenses: list[TopExpense] = Field(default_factory=list)


class Profile(CamelModel):
    user_id: str
    display_name: Optional[str] = None
    city: Optional[str] = None
    umkm_level: Optional[UmkmLevel] = None
    last12m_turnover_rp: float = 0
    last_recomputed_at: Optional[datetime] = None


# === Strategy context ===

class CompanyInfo(CamelModel):
    display_name: str = "UMKM"
    city: str = "Indonesia"
    umkm_level: UmkmLevelName = "mikro"


class ContextWindow(CamelModel):
    months_count: int
    start_month: str
    end_month: str


class MonthView(CamelModel):
    """A MonthlyMetric as seen by the context (month_start formatted YYYY-MM)."""
    month_start: str
    sales_rp: float = 0
    cogs_rp: float = 0
    opex_rp: float = 0
    gross_profit_rp: float = 0
    net_profit_rp: float = 0
    gross_margin: float = 0
    net_margin: float = 0
    mom_sales_pct: float = 0
    top_expenses: list[TopExpense] = Field(default_factory=list)


class Features(CamelModel):
    """
    Derived features, recomputed fresh for every context.

    gm_trend / nm_trend are in percentage points; opex_share is a fraction.
    """
    gm_avg: float = 0
    nm_avg: float = 0
    gm_trend: float = 0
    nm_trend: float = 0
    mom_sales: list[Optional[float]] = Field(default_factory=list)
    volatility_idx: float = 0
    opex_share: float = 0
    top_expenses_last: list[TopExpense] = Field(default_factory=list)
    peak_month: Optional[str] = None
    low_month: Optional[str] = None


class StrategyContext(CamelModel):
    company: CompanyInfo
    window: ContextWindow
    months: list[MonthView]
    last12m_turnover_rp: float = 0
    seasonality_hints: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    features: Features


# === Strategy plan ===

class QuickWin(CamelModel):
    title: str = Field(..., min_length=1)
    impact: Rating
    effort: Rating
    action: str = Field(..., min_length=1)
    notes: Optional[str] = None


class Initiative(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    owner: str = Field(..., min_length=1)
    start_month: str = Field(..., pattern=MONTH_PATTERN)
    kpi: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    notes: Optional[str] = None


class RuleProposals(CamelModel):
    """Rule engine output; never persisted on its own."""
    initiatives: list[Initiative] = Field(default_factory=list)
    quick_wins: list[QuickWin] = Field(default_factory=list)


class StrategyPlan(CamelModel):
    umkm_level: UmkmLevelName
    diagnosis: list[str] = Field(..., min_length=1)
    quick_wins: list[QuickWin]
    initiatives: list[Initiative]
    risks: Optional[list[str]] = None
    assumptions: Optional[list[str]] = None
    data_gaps: Optional[list[str]] = None


class SavedPlan(CamelModel):
    """A stored plan together with the context it was generated from."""
    id: str
    user_id: str
    type: str = "strategy_plan"
    model: str = "unknown"
    version: int = 1
    context_snapshot: dict
    result_json: dict
    context_hash: str
    created_at: datetime


class ResultMeta(CamelModel):
    provider: Optional[str] = None
    model: Optional[str] = None
    source: Optional[str] = None
    months_used: Optional[int] = None
    ctx_hash: Optional[str] = None


class StrategyResult(CamelModel):
    """Full result of one analysis run."""
    success: bool
    plan: Optional[StrategyPlan] = None
    context: Optional[StrategyContext] = None
    error: Optional[str] = None
    source: Optional[PlanSource] = None
    meta: Optional[ResultMeta] = None
    saved_summary_id: Optional[str] = None
