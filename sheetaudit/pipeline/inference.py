"""Column type inference.

Guesses whether a column holds booleans, dates or free text from a sample
of its values. The result only pre-fills the audit configuration; callers
are free to override it per column.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

import pandas as pd

from .normalizer import (
    BOOLEAN,
    BOOLEAN_TOKENS,
    DATE,
    STRING,
    is_empty,
    is_number,
    parse_date,
    to_text,
)

LOG = logging.getLogger(__name__)

# Constants
INFER_SAMPLE_SIZE = 100
INFER_THRESHOLD = 0.9
# numbers above this are candidate Excel serial dates; smaller ones are plain integers
SERIAL_DATE_FLOOR = 20000


def _is_date_like(value: Any, token: str) -> bool:
    if not ("-" in token or "/" in token or (is_number(value) and value > SERIAL_DATE_FLOOR)):
        return False
    return parse_date(value) is not None


def infer_type(
    values: Iterable[Any],
    sample_size: int = INFER_SAMPLE_SIZE,
    threshold: float = INFER_THRESHOLD,
) -> str:
    """Return 'boolean', 'date' or 'string' for a sample of raw values.

    Only the first `sample_size` non-empty values are examined. A type wins
    when strictly more than `threshold` of them match it; booleans are
    checked before dates.
    """
    valid = 0
    bool_hits = 0
    date_hits = 0

    for value in values:
        if valid >= sample_size:
            break
        if is_empty(value):
            continue
        valid += 1
        token = to_text(value).lower()

        if token in BOOLEAN_TOKENS:
            bool_hits += 1
        if _is_date_like(value, token):
            date_hits += 1

    if valid == 0:
        return STRING
    if bool_hits / valid > threshold:
        return BOOLEAN
    if date_hits / valid > threshold:
        return DATE
    return STRING


def infer_column_types(df: pd.DataFrame, sample_size: int = INFER_SAMPLE_SIZE) -> Dict[str, str]:
    """Infer a type per DataFrame column.

    Returns a dict col -> {'string','boolean','date'}.
    """
    types: Dict[str, str] = {}
    for col in df.columns:
        types[str(col)] = infer_type(df[col].tolist(), sample_size=sample_size)
    LOG.debug("Inferred column types: %s", types)
    return types


__all__ = [
    "INFER_SAMPLE_SIZE",
    "INFER_THRESHOLD",
    "SERIAL_DATE_FLOOR",
    "infer_type",
    "infer_column_types",
]
