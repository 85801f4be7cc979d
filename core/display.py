"""
Presentation helpers for a strategy plan.

format_strategy_display() returns plain dicts ready for the UI:
quick wins get a priority and icons, initiatives a readable month.
"""

from typing import Literal

from core.context import MONTH_ABBR
from data.models import StrategyPlan

Priority = Literal["high", "medium", "low"]

IMPACT_SCORE = {"tinggi": 3, "sedang": 2, "rendah": 1}
EFFORT_SCORE = {"rendah": 3, "sedang": 2, "tinggi": 1}

IMPACT_ICONS = {"tinggi": "🔥", "sedang": "⚡", "rendah": "💡"}
EFFORT_ICONS = {"rendah": "⚡", "sedang": "⚖️", "tinggi": "🏋️"}
UNKNOWN_ICON = "❓"

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def calculate_priority(impact: str, effort: str) -> Priority:
    """
    High impact and low effort come first.

    Score = impact (3/2/1) + effort (3 for rendah .. 1 for tinggi);
    >= 5 high, >= 3 medium, else low.
    """
    score = IMPACT_SCORE.get(impact, 1) + EFFORT_SCORE.get(effort, 1)
    if score >= 5:
        return "high"
    if score >= 3:
        return "medium"
    return "low"


def format_month(month: str) -> str:
    """'2025-10' -> 'Okt 2025'"""
    year, month_num = month.split("-")
    return f"{MONTH_ABBR[int(month_num) - 1]} {year}"


def format_strategy_display(plan: StrategyPlan) -> dict:
    """
    Plan as a camelCase dict with display fields added.

    Quick wins: priority, impactIcon, effortIcon.
    Initiatives: formattedMonth.
    """
    data = plan.model_dump(by_alias=True, mode="json", exclude_none=True)

    for qw in data["quickWins"]:
        qw["priority"] = calculate_priority(qw["impact"], qw["effort"])
        qw["impactIcon"] = IMPACT_ICONS.get(qw["impact"], UNKNOWN_ICON)
        qw["effortIcon"] = EFFORT_ICONS.get(qw["effort"], UNKNOWN_ICON)

    for init in data["initiatives"]:
        init["formattedMonth"] = format_month(init["startMonth"])

    return data


def sort_by_priority(quick_wins: list[dict]) -> list[dict]:
    """Stable sort of formatted quick wins, high priority first."""
    return sorted(quick_wins, key=lambda qw: PRIORITY_ORDER[qw["priority"]])
