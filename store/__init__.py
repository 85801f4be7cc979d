"""
Store module: storage interfaces and the in-memory implementation.
"""

from store.base import (
    MetricsRepository,
    ProfileRepository,
    PlanStore,
    TransactionStore,
    StrategyStore,
)
from store.memory import InMemoryStore

__all__ = [
    "MetricsRepository",
    "ProfileRepository",
    "PlanStore",
    "TransactionStore",
    "StrategyStore",
    "InMemoryStore",
]
