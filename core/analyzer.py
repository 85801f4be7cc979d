"""
Strategy analysis orchestration: ties all components into one pipeline.

Pipeline:
1. Auth check
2. Context build (>= 2 months required)
3. Context hash
4. Cache lookup (hit -> return, no AI call)
5. AI plan with rule seeds
6. Local rule-based fallback on AI failure
7. Persist (failure is logged, never fatal)

Steps 1-2 fail hard, 5-6 fall back, 7 never fails the run.
"""

from typing import Optional, Literal
import hashlib
import json
import logging

from pydantic import ValidationError

from config import settings
from core.context import build_strategy_context
from core.fallback import FALLBACK_MODEL, build_fallback_plan
from core.rules import propose_from_rules
from data.models import (
    PlanSource,
    ResultMeta,
    SavedPlan,
    StrategyContext,
    StrategyPlan,
    StrategyResult,
)
from errors import (
    AiProviderError,
    AuthenticationError,
    InsufficientDataError,
    PersistenceError,
    StrategyError,
)
from llm.provider import PlanProvider
from store.base import StrategyStore

logger = logging.getLogger(__name__)

INVALID_WINDOW_MESSAGE = "Periode analisis tidak valid: minimal 1 bulan"
INVALID_DATA_MESSAGE = "Data bulanan tersimpan tidak valid. Silakan import ulang data transaksi."

PLAN_TYPE = "strategy_plan"


def hash_context(context: StrategyContext) -> str:
    """
    SHA-256 over the canonical JSON of the context.

    Canonical = camelCase keys, sorted, no whitespace, UTF-8.
    """
    payload = json.dumps(
        context.model_dump(by_alias=True, mode="json"),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def run_strategy_analysis(
    months_back: int = settings.default_months_back,
    *,
    user_id: Optional[str],
    store: StrategyStore,
    provider: Optional[PlanProvider] = None,
    allow_fallback: bool = True,
    force_provider: Optional[Literal["local"]] = None,
) -> StrategyResult:
    """
    Full strategy analysis for the signed-in user.

    Args:
        months_back: look-back window in months
        user_id: signed-in user (None = not signed in)
        store: metrics/profile/plan storage
        provider: AI plan provider (None = AI not configured)
        allow_fallback: use the local rule-based plan when AI fails
        force_provider: "local" skips the AI call entirely

    Returns:
        StrategyResult; never raises, failures come back as success=False
    """
    logger.info(f"Starting strategy analysis (months_back={months_back})")

    # 1-2. Auth + context
    try:
        if not user_id:
            raise AuthenticationError()

        context = build_strategy_context(store, user_id, months_back)
        logger.debug(f"Context built: {context.window.months_count} months, features={context.features}")

        if len(context.months) < settings.min_analysis_months:
            raise InsufficientDataError()

    except StrategyError as e:
        logger.warning(f"Strategy analysis rejected: {e.user_message}")
        return StrategyResult(success=False, error=e.user_message)
    except ValidationError as e:
        logger.error(f"Stored metrics failed validation: {e}")
        return StrategyResult(success=False, error=INVALID_DATA_MESSAGE)
    except ValueError as e:
        logger.warning(f"Invalid analysis request: {e}")
        return StrategyResult(success=False, error=INVALID_WINDOW_MESSAGE)
    except Exception as e:
        logger.error(f"Context build failed: {e}", exc_info=True)
        return StrategyResult(success=False, error="Gagal menyiapkan data analisis")

    # 3. Hash
    ctx_hash = hash_context(context)
    logger.info(f"Context hash: {ctx_hash[:16]}")

    # 4. Cache
    cached = _find_cached(store, user_id, ctx_hash)
    if cached is not None:
        plan = _plan_from_cache(cached)
        if plan is not None:
            logger.info("Using cached strategy plan with matching context")
            return StrategyResult(
                success=True,
                plan=plan,
                context=context,
                source=PlanSource.CACHE,
                meta=ResultMeta(
                    model=cached.model,
                    source=PlanSource.CACHE.value,
                    months_used=len(context.months),
                    ctx_hash=ctx_hash,
                ),
                saved_summary_id=cached.id,
            )

    # 5-6. AI, then fallback
    seeds = propose_from_rules(context)
    use_ai = provider is not None and force_provider != "local"

    plan: Optional[StrategyPlan] = None
    meta: Optional[ResultMeta] = None
    ai_error: Optional[AiProviderError] = None

    if use_ai:
        try:
            plan, meta = provider.generate(context, ctx_hash, seeds)
        except AiProviderError as e:
            ai_error = e
            logger.warning(f"AI plan failed: {e}")
        except Exception as e:
            ai_error = AiProviderError(str(e))
            logger.warning(f"AI plan failed unexpectedly: {e}", exc_info=True)
    else:
        reason = "forced local" if force_provider == "local" else "AI not configured"
        logger.info(f"Skipping AI call ({reason})")

    if plan is None:
        if ai_error is not None and not allow_fallback:
            return StrategyResult(success=False, error=ai_error.user_message, context=context)

        plan = build_fallback_plan(context, seeds)
        meta = ResultMeta(
            provider="local",
            model=FALLBACK_MODEL,
            source="local-fallback",
            months_used=len(context.months),
            ctx_hash=ctx_hash,
        )

    source = PlanSource.FALLBACK if meta.source == "local-fallback" else PlanSource.AI

    # 7. Persist
    saved_id = _save_plan(store, user_id, context, plan, meta, ctx_hash)

    logger.info(f"Strategy plan ready (source={source.value})")

    return StrategyResult(
        success=True,
        plan=plan,
        context=context,
        source=source,
        meta=meta,
        saved_summary_id=saved_id,
    )


def _find_cached(store: StrategyStore, user_id: str, ctx_hash: str) -> Optional[SavedPlan]:
    try:
        return store.find_plan(user_id, PLAN_TYPE, ctx_hash)
    except Exception as e:
        logger.warning(f"Cache check failed: {e}")
        return None


def _plan_from_cache(saved: SavedPlan) -> Optional[StrategyPlan]:
    try:
        return StrategyPlan.model_validate(saved.result_json)
    except ValueError as e:
        logger.warning(f"Ignoring unreadable cached plan {saved.id}: {e}")
        return None


def _save_plan(
    store: StrategyStore,
    user_id: str,
    context: StrategyContext,
    plan: StrategyPlan,
    meta: ResultMeta,
    ctx_hash: str,
) -> Optional[str]:
    try:
        return store.save_plan(
            user_id,
            PLAN_TYPE,
            meta.model or "unknown",
            context.model_dump(by_alias=True, mode="json"),
            plan.model_dump(by_alias=True, mode="json", exclude_none=True),
            ctx_hash,
        )
    except PersistenceError as e:
        logger.warning(f"Failed to save strategy plan: {e.user_message}")
        return None
    except Exception as e:
        logger.warning(f"Failed to save strategy plan: {e}", exc_info=True)
        return None


def list_saved_plans(store: StrategyStore, user_id: Optional[str], limit: int = 10) -> list[SavedPlan]:
    """Previously stored strategy plans for the user, newest first."""
    if not user_id:
        raise AuthenticationError()
    return store.list_plans(user_id, PLAN_TYPE, limit)
