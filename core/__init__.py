"""
Core module: metrics, strategy context, rules and analysis orchestration.
"""

from core.metrics import aggregate_monthly_metrics, last12m_turnover
from core.importer import import_transactions
from core.features import calculate_features
from core.context import build_strategy_context
from core.rules import propose_from_rules
from core.fallback import build_fallback_plan
from core.analyzer import run_strategy_analysis, hash_context, list_saved_plans
from core.display import format_strategy_display

__all__ = [
    "aggregate_monthly_metrics",
    "last12m_turnover",
    "import_transactions",
    "calculate_features",
    "build_strategy_context",
    "propose_from_rules",
    "build_fallback_plan",
    "run_strategy_analysis",
    "hash_context",
    "list_saved_plans",
    "format_strategy_display",
]
