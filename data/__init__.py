"""
Data module: transaction file parsing, cleaning, models.
"""

from data.models import (
    UmkmLevel,
    TransactionKind,
    PlanSource,
    Transaction,
    ImportRun,
    TopExpense,
    MonthlyMetric,
    Profile,
    StrategyContext,
    Features,
    QuickWin,
    Initiative,
    RuleProposals,
    StrategyPlan,
    SavedPlan,
    ResultMeta,
    StrategyResult,
)
from data.parser import parse_file, parse_transactions, read_csv_text, ParseError
from data.cleaner import clean_transactions, clean_amount_rp, parse_transaction_date, transaction_hash

__all__ = [
    # Models
    "UmkmLevel",
    "TransactionKind",
    "PlanSource",
    "Transaction",
    "ImportRun",
    "TopExpense",
    "MonthlyMetric",
    "Profile",
    "StrategyContext",
    "Features",
    "QuickWin",
    "Initiative",
    "RuleProposals",
    "StrategyPlan",
    "SavedPlan",
    "ResultMeta",
    "StrategyResult",
    # Parser
    "parse_file",
    "parse_transactions",
    "read_csv_text",
    "ParseError",
    # Cleaner
    "clean_transactions",
    "clean_amount_rp",
    "parse_transaction_date",
    "transaction_hash",
]
