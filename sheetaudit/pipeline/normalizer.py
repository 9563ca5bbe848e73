"""Value normalization.

Turns a raw cell value plus its declared column type into a canonical
string so values coming from different files compare with plain equality.
Nothing in this module raises: a value that cannot be read as its declared
type degrades to its trimmed string form.
"""
from __future__ import annotations

import math
import re
import warnings
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import pandas as pd


# Column types
STRING = "string"
BOOLEAN = "boolean"
DATE = "date"
COLUMN_TYPES = (STRING, BOOLEAN, DATE)

TRUE_TOKENS = frozenset({"true", "yes", "1"})
FALSE_TOKENS = frozenset({"false", "no", "0"})
BOOLEAN_TOKENS = TRUE_TOKENS | FALSE_TOKENS

EXCEL_EPOCH = pd.Timestamp("1899-12-30")
# exclusive bounds of Excel serial day numbers (serial 2958465 is 9999-12-31)
_SERIAL_MIN = 0
_SERIAL_MAX = 2958466
_YEAR_MIN = 1
_YEAR_MAX = 9999
# a date in text has at least two digit groups joined by "-" or "/"
_DATE_TEXT_RE = re.compile(r"\d\s*[-/]\s*\d")


# ---------------------- Helpers -------------------------------------------
def _unwrap(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def is_number(value: Any) -> bool:
    """True for int/float values (numpy included), never for bools."""
    value = _unwrap(value)
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_empty(value: Any) -> bool:
    """True for None, NaN/NaT and blank strings. `0` and `False` are values."""
    value = _unwrap(value)
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_numeric_text(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def to_text(value: Any) -> str:
    """Trimmed string form of a raw cell value.

    None/NaN -> "", booleans -> "true"/"false", integral floats lose their
    trailing ".0" so spreadsheet numbers match their CSV spelling.
    """
    value = _unwrap(value)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, str):
        return value.strip()
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


# ---------------------------------------------------------------------------
# Date parsing
# ---------------------------------------------------------------------------

def _from_serial(number: float) -> Optional[pd.Timestamp]:
    if not math.isfinite(number) or not (_SERIAL_MIN < number < _SERIAL_MAX):
        return None
    try:
        return EXCEL_EPOCH + pd.Timedelta(days=float(number))
    except (OverflowError, ValueError):
        # beyond the range pandas timestamps can hold
        return None


def _in_year_range(ts: Optional[pd.Timestamp]) -> Optional[pd.Timestamp]:
    if ts is None or pd.isna(ts):
        return None
    if not (_YEAR_MIN <= ts.year <= _YEAR_MAX):
        return None
    return ts


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """Parse `value` as a calendar date/time, returning None on failure.

    Accepts datetime/date/Timestamp objects, Excel serial numbers (as numbers
    or numeric text) and text such as ISO-8601, `YYYY/MM/DD`, `MM/DD/YYYY`
    or date+time composites. Text needs two digit groups joined by `-` or
    `/`, so words ("today"), bare times ("12:30") and stray separators are
    not read as dates.
    """
    value = _unwrap(value)
    if is_empty(value) or isinstance(value, bool):
        return None
    if isinstance(value, (pd.Timestamp, datetime, date)):
        try:
            return _in_year_range(pd.Timestamp(value))
        except (TypeError, ValueError, OverflowError):
            return None
    if is_number(value):
        return _from_serial(float(value))

    text = to_text(value)
    if _is_numeric_text(text):
        # CSV cells arrive as text; read them like the numbers XLSX gives us
        return _from_serial(float(text))
    if not _DATE_TEXT_RE.search(text):
        return None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = pd.to_datetime(text, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    return _in_year_range(parsed)


def format_date(ts: pd.Timestamp) -> str:
    """`YYYY-MM-DD` with a zero-padded four digit year."""
    return f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"


def normalize_date(value: Any) -> str:
    """Format a date value as `YYYY-MM-DD`, or return its trimmed text."""
    if is_empty(value):
        return ""
    try:
        parsed = parse_date(value)
        if parsed is not None:
            return format_date(parsed)
    except (TypeError, ValueError, OverflowError, NotImplementedError, AttributeError):
        pass
    return to_text(value)


def normalize_boolean(value: Any) -> str:
    text = to_text(value)
    token = text.lower()
    if token in TRUE_TOKENS:
        return "true"
    if token in FALSE_TOKENS:
        return "false"
    return text


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def normalize(value: Any, column_type: str = STRING) -> str:
    """Normalize `value` according to `column_type`.

    Unknown types behave like `string`; validating the type is the job of
    the audit configuration, not of the per-cell path.
    """
    if column_type == DATE:
        return normalize_date(value)
    if column_type == BOOLEAN:
        return normalize_boolean(value)
    return to_text(value)


__all__ = [
    "STRING",
    "BOOLEAN",
    "DATE",
    "COLUMN_TYPES",
    "TRUE_TOKENS",
    "FALSE_TOKENS",
    "BOOLEAN_TOKENS",
    "is_empty",
    "is_number",
    "to_text",
    "parse_date",
    "format_date",
    "normalize_date",
    "normalize_boolean",
    "normalize",
]
