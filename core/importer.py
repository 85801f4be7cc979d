"""
Transaction import: file to stored monthly metrics.

Pipeline:
1. Parse + clean (data.parser)
2. Upsert in chunks (duplicates by uniq_hash are ignored)
3. Re-aggregate the user's monthly metrics
4. Refresh the profile's 12-month turnover
5. Record the ImportRun
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union
import logging

from config import settings
from core.metrics import aggregate_monthly_metrics, last12m_turnover
from data.models import ImportRun, Profile
from data.parser import ParseError, parse_transactions
from errors import AuthenticationError
from store.base import StrategyStore

logger = logging.getLogger(__name__)


def import_transactions(
    store: StrategyStore,
    user_id: Optional[str],
    source: Union[str, Path],
    filename: Optional[str] = None,
) -> ImportRun:
    """
    Imports one transaction export for the user.

    Args:
        store: transaction/metrics/profile storage
        user_id: signed-in user (None = not signed in)
        source: file path or CSV text
        filename: name recorded on the ImportRun (default: file name of `source`)

    Returns:
        ImportRun with row counts and warnings

    Raises:
        AuthenticationError: no user
        ParseError: unreadable file or bad header (a failed ImportRun is recorded)
    """
    if not user_id:
        raise AuthenticationError()

    if filename is None:
        filename = Path(source).name if not _is_text(source) else "upload.csv"

    logger.info(f"Importing transactions for {user_id} from {filename}")

    try:
        rows, warnings = parse_transactions(source, user_id)
    except ParseError as e:
        logger.warning(f"Import failed: {e}")
        store.record_import(ImportRun(
            user_id=user_id,
            filename=filename,
            status="failed",
            warnings=[str(e)],
            finished_at=datetime.now(timezone.utc),
        ))
        raise

    # === Upsert ===
    chunk_size = max(1, settings.import_chunk_size)
    written = 0
    for start in range(0, len(rows), chunk_size):
        chunk = rows[start:start + chunk_size]
        written += store.upsert_transactions(chunk)
        logger.debug(f"Upserted chunk {start // chunk_size + 1} ({len(chunk)} rows)")

    duplicates = len(rows) - written
    if duplicates:
        warnings.append(f"{duplicates} transaksi duplikat diabaikan")

    # === Metrics ===
    months = aggregate_monthly_metrics(store.list_transactions(user_id))
    store.replace_months(user_id, months)

    # === Profile ===
    now = datetime.now(timezone.utc)
    profile = store.get_profile(user_id) or Profile(user_id=user_id)
    store.save_profile(profile.model_copy(update={
        "last12m_turnover_rp": last12m_turnover(months),
        "last_recomputed_at": now,
    }))

    run = ImportRun(
        user_id=user_id,
        filename=filename,
        status="succeeded",
        total_rows=len(rows),
        total_imported=written,
        warnings=warnings,
        finished_at=now,
    )
    store.record_import(run)

    logger.info(
        f"Import finished: {written}/{len(rows)} rows written, "
        f"{len(months)} months, {len(warnings)} warnings"
    )

    return run


def _is_text(source: Union[str, Path]) -> bool:
    return isinstance(source, str) and "\n" in source
