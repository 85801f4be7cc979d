"""
In-memory StrategyStore.

Used by the Gradio app for a single process and by the tests.
Data lives as long as the instance does.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional
import logging
import threading
import uuid

from errors import PersistenceError
from data.models import (
    ImportRun,
    MonthlyMetric,
    Profile,
    SavedPlan,
    Transaction,
)

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Dict-backed implementation of store.base.StrategyStore.

    A single lock guards all state. Plans with an identical (user, type, hash)
    may be saved more than once; the newest one wins on lookup.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._transactions: dict[str, dict[str, Transaction]] = defaultdict(dict)
        self._months: dict[str, list[MonthlyMetric]] = {}
        self._profiles: dict[str, Profile] = {}
        self._plans: list[SavedPlan] = []
        self._imports: list[ImportRun] = []

    # === Monthly metrics ===

    def count_months(self, user_id: str) -> int:
        with self._lock:
            return len(self._months.get(user_id, []))

    def list_months(self, user_id: str, limit: int) -> list[MonthlyMetric]:
        with self._lock:
            rows = sorted(self._months.get(user_id, []), key=lambda m: m.month_start, reverse=True)
        return rows[:limit]

    def replace_months(self, user_id: str, months: list[MonthlyMetric]) -> None:
        with self._lock:
            self._months[user_id] = list(months)
        logger.debug(f"Stored {len(months)} monthly metrics for {user_id}")

    # === Profiles ===

    def get_profile(self, user_id: str) -> Optional[Profile]:
        with self._lock:
            return self._profiles.get(user_id)

    def save_profile(self, profile: Profile) -> None:
        with self._lock:
            self._profiles[profile.user_id] = profile

    # === Plans ===

    def find_plan(self, user_id: str, plan_type: str, ctx_hash: str) -> Optional[SavedPlan]:
        with self._lock:
            for saved in reversed(self._plans):
                if (saved.user_id == user_id
                        and saved.type == plan_type
                        and saved.context_hash == ctx_hash):
                    return saved
        return None

    def save_plan(
        self,
        user_id: str,
        plan_type: str,
        model: str,
        context_snapshot: dict,
        result_json: dict,
        ctx_hash: str,
    ) -> str:
        if not ctx_hash:
            raise PersistenceError("Plan tanpa context hash tidak dapat disimpan")
        saved = SavedPlan(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=plan_type,
            model=model,
            context_snapshot=context_snapshot,
            result_json=result_json,
            context_hash=ctx_hash,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._plans.append(saved)
        return saved.id

    def list_plans(self, user_id: str, plan_type: str, limit: int = 10) -> list[SavedPlan]:
        with self._lock:
            matching = [p for p in self._plans if p.user_id == user_id and p.type == plan_type]
        return list(reversed(matching))[:limit]

    # === Transactions ===

    def upsert_transactions(self, rows: list[Transaction]) -> int:
        written = 0
        with self._lock:
            for row in rows:
                bucket = self._transactions[row.user_id]
                if row.uniq_hash in bucket:
                    continue
                bucket[row.uniq_hash] = row
                written += 1
        return written

    def list_transactions(self, user_id: str) -> list[Transaction]:
        with self._lock:
            return list(self._transactions.get(user_id, {}).values())

    def record_import(self, run: ImportRun) -> None:
        with self._lock:
            self._imports.append(run)

    def list_imports(self, user_id: str) -> list[ImportRun]:
        with self._lock:
            return [r for r in self._imports if r.user_id == user_id]
