"""
Tests for the strategy analysis pipeline: cache, AI, fallback, persistence.
"""

import re

import pytest

from conftest import USER_ID, FailingProvider, StaticProvider, seed_months
from core.analyzer import (
    INVALID_DATA_MESSAGE,
    INVALID_WINDOW_MESSAGE,
    hash_context,
    list_saved_plans,
    run_strategy_analysis,
)
from core.context import build_strategy_context
from core.fallback import build_fallback_plan, format_rp
from core.rules import propose_from_rules
from data.models import MonthlyMetric, PlanSource, RuleProposals
from errors import AuthenticationError, InsufficientDataError, NoDataError, PersistenceError
from store.memory import InMemoryStore

MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


class BrokenSaveStore(InMemoryStore):
    def save_plan(self, *args, **kwargs):
        raise PersistenceError("database unavailable")


class BrokenCacheStore(InMemoryStore):
    def find_plan(self, user_id, plan_type, ctx_hash):
        raise ConnectionError("cache offline")


class CorruptRowStore(InMemoryStore):
    def list_months(self, user_id, limit):
        return [MonthlyMetric.model_validate({"userId": user_id, "salesRp": "banyak"})]


class TestContextHash:

    def test_stable_for_same_data(self, seeded_store):
        first = hash_context(build_strategy_context(seeded_store, USER_ID))
        second = hash_context(build_strategy_context(seeded_store, USER_ID))

        assert first == second
        assert len(first) == 64

    def test_changes_with_data(self, seeded_store):
        before = hash_context(build_strategy_context(seeded_store, USER_ID))
        seed_months(seeded_store, [10_000_000, 11_000_000, 9_500_000, 12_000_000, 12_500_000, 13_500_000])
        after = hash_context(build_strategy_context(seeded_store, USER_ID))

        assert before != after

    def test_changes_with_window(self, seeded_store):
        full = hash_context(build_strategy_context(seeded_store, USER_ID, 12))
        short = hash_context(build_strategy_context(seeded_store, USER_ID, 3))

        assert full != short


class TestFallback:

    def test_ai_failure_falls_back(self, seeded_store):
        provider = FailingProvider()

        result = run_strategy_analysis(12, user_id=USER_ID, store=seeded_store, provider=provider)

        assert result.success
        assert result.source == PlanSource.FALLBACK
        assert result.meta.provider == "local"
        assert result.meta.model == "rules-v1"
        assert result.meta.source == "local-fallback"
        assert result.meta.months_used == 6
        assert len(result.plan.quick_wins) >= 3
        assert len(result.plan.initiatives) >= 3
        assert all(MONTH_RE.match(i.start_month) for i in result.plan.initiatives)
        assert result.saved_summary_id is not None
        assert provider.calls == 1

    def test_unexpected_provider_exception_falls_back(self, seeded_store):
        result = run_strategy_analysis(
            user_id=USER_ID, store=seeded_store, provider=FailingProvider(RuntimeError("boom")),
        )

        assert result.success
        assert result.source == PlanSource.FALLBACK

    def test_fallback_disabled(self, seeded_store):
        result = run_strategy_analysis(
            user_id=USER_ID, store=seeded_store, provider=FailingProvider(), allow_fallback=False,
        )

        assert not result.success
        assert result.error == "network down"
        assert result.plan is None
        assert result.context is not None

    def test_no_provider_uses_local_plan(self, seeded_store):
        result = run_strategy_analysis(user_id=USER_ID, store=seeded_store, provider=None)

        assert result.success
        assert result.source == PlanSource.FALLBACK

    def test_force_local_skips_ai(self, seeded_store):
        provider = StaticProvider()

        result = run_strategy_analysis(
            user_id=USER_ID, store=seeded_store, provider=provider, force_provider="local",
        )

        assert result.success
        assert result.source == PlanSource.FALLBACK
        assert provider.calls == 0


class TestFallbackPlan:

    def test_contents_for_seeded_data(self, seeded_store):
        ctx = build_strategy_context(seeded_store, USER_ID)

        plan = build_fallback_plan(ctx, propose_from_rules(ctx))

        assert plan.umkm_level == "kecil"
        assert plan.diagnosis[0] == "Penjualan rata-rata bulanan: Rp 11.333.333"
        assert plan.diagnosis[1] == "Tren penjualan periode ini: meningkat"
        assert plan.diagnosis[2] == "Total omzet 6 bulan terakhir: Rp 68.000.000"
        assert len(plan.diagnosis) == 5
        assert [q.title for q in plan.quick_wins] == [
            "Promo Seasonal Targeting",
            "Optimalisasi Biaya Operasional",
            "Peningkatan Margin Produk",
        ]
        assert plan.initiatives[0].title == "Optimalisasi Musiman 2024-03"
        assert plan.initiatives[1].start_month == "2024-07"
        assert plan.initiatives[2].start_month == "2024-08"
        assert len(plan.risks) == len(plan.assumptions) == len(plan.data_gaps) == 4

    def test_padding_without_rule_output(self, seeded_store):
        ctx = build_strategy_context(seeded_store, USER_ID)

        plan = build_fallback_plan(ctx, RuleProposals())

        assert len(plan.quick_wins) == 3
        assert len(plan.initiatives) == 3

    def test_declining_trend_word(self, store):
        seed_months(store, [2_000_000, 1_000_000])
        ctx = build_strategy_context(store, USER_ID)

        plan = build_fallback_plan(ctx, propose_from_rules(ctx))

        assert plan.diagnosis[1] == "Tren penjualan periode ini: menurun"

    def test_format_rp(self):
        assert format_rp(1250000) == "Rp 1.250.000"
        assert format_rp(0) == "Rp 0"


class TestCache:

    def test_second_run_hits_cache(self, seeded_store):
        provider = FailingProvider()

        first = run_strategy_analysis(12, user_id=USER_ID, store=seeded_store, provider=provider)
        second = run_strategy_analysis(12, user_id=USER_ID, store=seeded_store, provider=provider)

        assert second.success
        assert second.source == PlanSource.CACHE
        assert second.meta.source == "cache"
        assert second.meta.model == "rules-v1"
        assert second.saved_summary_id == first.saved_summary_id
        assert second.plan == first.plan
        assert provider.calls == 1

    def test_ai_plan_is_cached(self, seeded_store):
        provider = StaticProvider()

        first = run_strategy_analysis(user_id=USER_ID, store=seeded_store, provider=provider)
        second = run_strategy_analysis(user_id=USER_ID, store=seeded_store, provider=provider)

        assert first.source == PlanSource.AI
        assert first.meta.source == "ai"
        assert second.source == PlanSource.CACHE
        assert provider.calls == 1

    def test_new_data_misses_cache(self, seeded_store):
        provider = StaticProvider()

        run_strategy_analysis(user_id=USER_ID, store=seeded_store, provider=provider)
        seed_months(seeded_store, [1_000_000, 2_000_000, 3_000_000])
        result = run_strategy_analysis(user_id=USER_ID, store=seeded_store, provider=provider)

        assert result.source == PlanSource.AI
        assert provider.calls == 2

    def test_cache_lookup_failure_is_a_miss(self):
        store = BrokenCacheStore()
        seed_months(store, [1_000_000, 2_000_000])

        result = run_strategy_analysis(user_id=USER_ID, store=store)

        assert result.success
        assert result.source == PlanSource.FALLBACK


class TestFailures:

    def test_insufficient_data(self, store):
        seed_months(store, [1_000_000])

        result = run_strategy_analysis(user_id=USER_ID, store=store, provider=StaticProvider())

        assert not result.success
        assert result.error == InsufficientDataError.default_message
        assert "Minimal 2 bulan" in result.error

    def test_no_data(self, store):
        result = run_strategy_analysis(user_id=USER_ID, store=store)

        assert not result.success
        assert result.error == NoDataError.default_message

    @pytest.mark.parametrize("user_id", [None, ""])
    def test_not_signed_in(self, seeded_store, user_id):
        result = run_strategy_analysis(user_id=user_id, store=seeded_store)

        assert not result.success
        assert result.error == AuthenticationError.default_message

    def test_invalid_months_back(self, seeded_store):
        result = run_strategy_analysis(0, user_id=USER_ID, store=seeded_store)

        assert not result.success
        assert result.error == INVALID_WINDOW_MESSAGE
        assert "months_back" not in result.error

    def test_corrupt_stored_rows(self):
        store = CorruptRowStore()
        seed_months(store, [1_000_000, 2_000_000])

        result = run_strategy_analysis(user_id=USER_ID, store=store, provider=StaticProvider())

        assert not result.success
        assert result.error == INVALID_DATA_MESSAGE

    def test_save_failure_is_not_fatal(self):
        store = BrokenSaveStore()
        seed_months(store, [1_000_000, 2_000_000, 1_500_000])

        result = run_strategy_analysis(user_id=USER_ID, store=store, provider=StaticProvider())

        assert result.success
        assert result.source == PlanSource.AI
        assert result.saved_summary_id is None


class TestSavedPlans:

    def test_newest_first(self, seeded_store):
        first = run_strategy_analysis(12, user_id=USER_ID, store=seeded_store)
        second = run_strategy_analysis(3, user_id=USER_ID, store=seeded_store)

        saved = list_saved_plans(seeded_store, USER_ID)

        assert [p.id for p in saved] == [second.saved_summary_id, first.saved_summary_id]
        assert saved[0].context_snapshot["window"]["monthsCount"] == 3
        assert saved[0].model == "rules-v1"

    def test_requires_user(self, seeded_store):
        with pytest.raises(AuthenticationError):
            list_saved_plans(seeded_store, None)
