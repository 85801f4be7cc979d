"""
Cleaning of user transaction exports.

Real UMKM exports contain:
- "Rp 1.250.000" or "1,250,000" instead of 1250000
- Indonesian headers (tanggal, jenis, kategori, jumlah)
- Mixed date formats (2024-01-05, 05/01/2024, timestamps)
- Blank lines and unknown transaction types

Import header contract: date,type,category,amountRp[,notes]
"""

import hashlib
import re
from datetime import date, datetime, timezone
from typing import Optional
import pandas as pd
import logging

from data.models import Transaction, TransactionKind

logger = logging.getLogger(__name__)


# === Column synonyms ===
# Key is our standard name, values are names seen in real files (lower-case)
COLUMN_SYNONYMS = {
    'date': ['date', 'tanggal', 'tgl'],
    'type': ['type', 'jenis', 'tipe'],
    'category': ['category', 'kategori'],
    'amountrp': ['amountrp', 'amount_rp', 'amount', 'jumlah', 'nominal'],
    'notes': ['notes', 'note', 'catatan', 'keterangan'],
}

REQUIRED_COLUMNS = ['date', 'type', 'category', 'amountrp']

KIND_VALUES = {k.value for k in TransactionKind}

DATE_FORMATS = [
    '%Y-%m-%d',    # 2024-01-15
    '%Y/%m/%d',    # 2024/01/15
    '%d/%m/%Y',    # 15/01/2024
    '%d-%m-%Y',    # 15-01-2024
    '%d.%m.%Y',    # 15.01.2024
]


def normalize_column_name(name: str) -> Optional[str]:
    """
    Maps a header cell to our schema.

    Examples:
    - "amountRp" -> "amountrp"
    - "Tanggal" -> "date"
    - "Kolom lain" -> None
    """
    name_lower = str(name).replace('\ufeff', '').strip().lower()

    for standard_name, synonyms in COLUMN_SYNONYMS.items():
        if name_lower in synonyms:
            return standard_name

    return None


def clean_amount_rp(value) -> int:
    """
    Integer rupiah amount: every character except digits and '-' is stripped.

    Examples:
    - "Rp 1.250.000" -> 1250000
    - "1,250,000" -> 1250000
    - "-75000" -> -75000
    - "" / "abc" -> 0
    """
    if value is None:
        return 0

    if isinstance(value, (int, float)):
        if pd.isna(value):
            return 0
        return int(value)

    digits = re.sub(r'[^\d-]', '', str(value))
    try:
        return int(digits)
    except ValueError:
        return 0


def parse_transaction_date(value) -> Optional[date]:
    """
    Parses a transaction date to a UTC calendar day.

    Timezone-aware timestamps are converted to UTC first; naive values are
    taken as they are.

    Returns:
        date or None if the value is not a date
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        return value
    else:
        s = str(value).strip()
        if not s:
            return None

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(s, fmt).date()
            except ValueError:
                continue

        # Last attempt: pandas/dateutil (ISO timestamps, "2024-01-05 00:00:00", ...)
        try:
            ts = pd.to_datetime(s)
        except (ValueError, OverflowError, TypeError):
            return None
        if pd.isna(ts):
            return None
        ts = ts.to_pydatetime()

    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date()


def transaction_hash(
    user_id: str,
    date_iso: str,
    kind: str,
    category: str,
    amount_rp: int,
    notes: str,
) -> str:
    """Deterministic duplicate key for one transaction (SHA-1 hex)."""
    raw = f"{user_id}|{date_iso}|{kind}|{category}|{amount_rp}|{notes}"
    return hashlib.sha1(raw.encode('utf-8')).hexdigest()


def clean_transactions(df: pd.DataFrame, user_id: str) -> tuple[list[Transaction], list[str]]:
    """
    Turns a raw import DataFrame into Transaction rows.

    Steps:
    1. Header normalisation (required: date, type, category, amountRp)
    2. Drop fully empty rows
    3. Per row: date, type, category, amount, notes
    4. Skip rows with a bad date or unknown type

    Args:
        df: raw DataFrame (all cells as strings)
        user_id: owner of the transactions

    Returns:
        tuple[list[Transaction], list[str]]: rows and warnings

    Raises:
        ValueError: if required columns are missing
    """
    warnings = []

    column_mapping = {}
    for col in df.columns:
        normalized = normalize_column_name(col)
        if normalized and normalized not in column_mapping.values():
            column_mapping[col] = normalized

    df = df.rename(columns=column_mapping)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(
            'Header CSV harus "date,type,category,amountRp[,notes]" '
            f'(pakai delimiter , atau ;). Kolom hilang: {", ".join(missing)}'
        )

    original_rows = len(df)
    df = df.replace('', pd.NA).dropna(how='all').fillna('')
    dropped_empty = original_rows - len(df)
    if dropped_empty > 0:
        logger.debug(f"Dropped {dropped_empty} empty rows")

    rows = []
    bad_dates = 0
    bad_types = 0

    for _, record in df.iterrows():
        day = parse_transaction_date(record['date'])
        if day is None:
            bad_dates += 1
            continue

        kind = str(record['type']).strip().lower()
        if kind not in KIND_VALUES:
            bad_types += 1
            continue

        category = str(record['category']).strip() or 'other'
        amount = clean_amount_rp(record['amountrp'])
        notes = str(record['notes']).strip() if 'notes' in df.columns else ''

        rows.append(Transaction(
            user_id=user_id,
            date_ts=day,
            kind=TransactionKind(kind),
            category=category,
            amount_rp=amount,
            notes=notes,
            uniq_hash=transaction_hash(user_id, day.isoformat(), kind, category, amount, notes),
        ))

    if bad_dates:
        warnings.append(f"{bad_dates} baris dilewati: tanggal tidak dikenali")
    if bad_types:
        warnings.append(f"{bad_types} baris dilewati: type bukan income/cogs/expense")

    logger.info(f"Cleaning finished: {len(rows)} transactions, {len(warnings)} warnings")

    return rows, warnings
