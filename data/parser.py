"""
Transaction file parser (CSV and Excel).

Functions:
- read_csv_text(): CSV text -> raw DataFrame (BOM, ',' or ';' delimiter)
- parse_file(): detects the format and reads a file into a raw DataFrame
- parse_transactions(): path or CSV text -> Transaction rows + warnings
"""

import io
import pandas as pd
from pathlib import Path
from typing import Union
import logging

from config import settings
from data.cleaner import clean_transactions
from data.models import Transaction

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """File cannot be read as a transaction export"""
    pass


def detect_delimiter(header_line: str) -> str:
    """';' only when the header has ';' and no ','."""
    if ';' in header_line and ',' not in header_line:
        return ';'
    return ','


def read_csv_text(text: str) -> pd.DataFrame:
    """
    Reads CSV text into a DataFrame of strings.

    Raises:
        ParseError: empty input or unreadable CSV
    """
    text = text.lstrip('\ufeff')
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise ParseError("File CSV kosong")

    sep = detect_delimiter(lines[0])

    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=sep,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
        )
    except Exception as e:
        raise ParseError(f"Gagal membaca CSV: {e}")

    logger.debug(f"CSV read with delimiter '{sep}', columns: {len(df.columns)}, rows: {len(df)}")
    return df


def parse_file(file_path: Union[str, Path]) -> pd.DataFrame:
    """
    Reads a CSV or Excel file and returns a raw DataFrame.

    Args:
        file_path: path to the file (CSV, XLSX, XLS)

    Returns:
        pd.DataFrame with raw string cells

    Raises:
        ParseError: unsupported format, file too large or unreadable
    """
    path = Path(file_path)

    if not path.exists():
        raise ParseError(f"File tidak ditemukan: {path}")

    size_mb = path.stat().st_size / (1024 * 1024)
    if size_mb > settings.max_file_size_mb:
        raise ParseError(f"File terlalu besar ({size_mb:.1f} MB), maksimal {settings.max_file_size_mb} MB")

    suffix = path.suffix.lower()

    logger.info(f"Parsing file: {path.name} (format: {suffix})")

    try:
        if suffix in (".csv", ".txt"):
            return _parse_csv(path)
        elif suffix in (".xlsx", ".xls"):
            return _parse_excel(path)
        else:
            raise ParseError(
                f"Format file tidak didukung: {suffix}. "
                f"Gunakan CSV, XLSX atau XLS"
            )
    except ParseError:
        raise
    except Exception as e:
        logger.error(f"Failed to read file: {e}")
        raise ParseError(f"Gagal membaca file: {e}")


def _parse_csv(path: Path) -> pd.DataFrame:
    """
    Parses a CSV file.

    Tries several encodings, utf-8-sig first so the BOM disappears.
    """
    raw = path.read_bytes()

    for encoding in ["utf-8-sig", "cp1252", "latin-1"]:
        try:
            text = raw.decode(encoding)
        except UnicodeDecodeError:
            continue
        logger.debug(f"CSV decoded as {encoding}")
        return read_csv_text(text)

    raise ParseError("Encoding file CSV tidak dikenali")


def _parse_excel(path: Path) -> pd.DataFrame:
    """
    Parses an Excel file.

    Takes the first sheet.
    """
    try:
        df = pd.read_excel(path, sheet_name=0, engine="openpyxl", dtype=str)
    except Exception as e:
        raise ParseError(f"Gagal membaca file Excel: {e}")

    df = df.fillna('')
    logger.debug(f"Excel read, columns: {len(df.columns)}, rows: {len(df)}")
    return df


def parse_transactions(
    source: Union[str, Path],
    user_id: str,
) -> tuple[list[Transaction], list[str]]:
    """
    Parses a transaction export into validated rows.

    Args:
        source: Path to a file, or CSV text (any str containing a newline)
        user_id: owner of the rows

    Returns:
        tuple[list[Transaction], list[str]]: rows and warnings

    Raises:
        ParseError: unreadable file or header without the required columns
    """
    if isinstance(source, str) and '\n' in source:
        df = read_csv_text(source)
    else:
        df = parse_file(source)

    try:
        return clean_transactions(df, user_id)
    except ValueError as e:
        raise ParseError(str(e))
