"""
Storage interfaces.

The relational backend is an external collaborator; analysis code only
depends on these Protocols:
- MetricsRepository: monthly metrics read/write
- ProfileRepository: per-user profile
- PlanStore: cached strategy plans keyed by context hash
- TransactionStore: imported transactions and import runs

StrategyStore bundles all four; InMemoryStore implements it.
"""

from typing import Optional, Protocol, runtime_checkable

from data.models import (
    ImportRun,
    MonthlyMetric,
    Profile,
    SavedPlan,
    Transaction,
)


@runtime_checkable
class MetricsRepository(Protocol):

    def count_months(self, user_id: str) -> int:
        """Number of monthly metric rows available for the user."""
        ...

    def list_months(self, user_id: str, limit: int) -> list[MonthlyMetric]:
        """Most recent `limit` months, ordered by month_start DESCENDING."""
        ...

    def replace_months(self, user_id: str, months: list[MonthlyMetric]) -> None:
        """Replaces the user's monthly metrics with a freshly aggregated set."""
        ...


@runtime_checkable
class ProfileRepository(Protocol):

    def get_profile(self, user_id: str) -> Optional[Profile]:
        ...

    def save_profile(self, profile: Profile) -> None:
        ...


@runtime_checkable
class PlanStore(Protocol):

    def find_plan(self, user_id: str, plan_type: str, ctx_hash: str) -> Optional[SavedPlan]:
        """Newest stored plan of this type with a matching context hash."""
        ...

    def save_plan(
        self,
        user_id: str,
        plan_type: str,
        model: str,
        context_snapshot: dict,
        result_json: dict,
        ctx_hash: str,
    ) -> str:
        """Stores a plan and returns its id. Raises PersistenceError on failure."""
        ...

    def list_plans(self, user_id: str, plan_type: str, limit: int = 10) -> list[SavedPlan]:
        """Stored plans, newest first."""
        ...


@runtime_checkable
class TransactionStore(Protocol):

    def upsert_transactions(self, rows: list[Transaction]) -> int:
        """Inserts rows, ignoring (user_id, uniq_hash) duplicates. Returns rows written."""
        ...

    def list_transactions(self, user_id: str) -> list[Transaction]:
        ...

    def record_import(self, run: ImportRun) -> None:
        ...


class StrategyStore(MetricsRepository, ProfileRepository, PlanStore, TransactionStore, Protocol):
    """Everything the importer and the analyzer need from storage."""
