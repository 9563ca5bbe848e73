from datetime import date, datetime

import numpy as np
import pandas as pd

from sheetaudit.pipeline.audit import reconcile
from sheetaudit.pipeline.normalizer import (
    format_date,
    is_empty,
    normalize,
    normalize_date,
    parse_date,
    to_text,
)


def test_normalize_date_formats_to_iso_day():
    for raw in ("2023-10-05T14:30:00.000Z", "2023/10/05", "2023-10-05"):
        assert normalize(raw, "date") == "2023-10-05"

    assert normalize("12/31/2023", "date") == "2023-12-31"
    # time of day is dropped
    assert normalize("2024-01-01 10:00", "date") == normalize("2024-01-01", "date")


def test_normalize_date_accepts_date_objects_and_serials():
    assert normalize(datetime(2024, 3, 1, 15, 45), "date") == "2024-03-01"
    assert normalize(date(2024, 3, 1), "date") == "2024-03-01"
    # Excel serial day number
    assert normalize(45292, "date") == "2024-01-01"


def test_normalize_date_falls_back_to_text():
    assert normalize("not a date", "date") == "not a date"
    assert normalize("  pending  ", "date") == "pending"
    assert normalize("1e999", "date") == "1e999"
    assert normalize(None, "date") == ""
    assert normalize_date("") == ""


def test_normalize_boolean_tokens():
    assert normalize("YES", "boolean") == normalize("1", "boolean") == "true"
    assert normalize("No", "boolean") == normalize("0", "boolean") == "false"
    assert normalize(" FALSE ", "boolean") == "false"
    assert normalize(True, "boolean") == "true"
    assert normalize(1.0, "boolean") == "true"
    assert normalize(0, "boolean") == "false"


def test_normalize_boolean_keeps_unknown_tokens_literal():
    assert normalize(" Maybe ", "boolean") == "Maybe"
    assert normalize(None, "boolean") == ""


def test_normalize_string_default():
    assert normalize("  Active ") == "Active"
    assert normalize(None) == ""
    assert normalize(float("nan")) == ""
    assert normalize(1.0) == "1"
    assert normalize(1.5) == "1.5"
    assert normalize(np.int64(7)) == "7"
    assert normalize(False) == "false"
    # unknown types compare as strings
    assert normalize(" x ", "number") == "x"


def test_to_text_and_is_empty():
    assert to_text(" a ") == "a"
    assert to_text(12) == "12"
    assert is_empty(None)
    assert is_empty("   ")
    assert is_empty(float("nan"))
    assert not is_empty(0)
    assert not is_empty(False)
    assert not is_empty("0")


def test_parse_date_rejects_words_and_bare_times():
    assert parse_date("today") is None
    assert parse_date("May") is None
    assert parse_date("12:30") is None
    assert parse_date(True) is None
    assert parse_date(-5) is None
    assert parse_date("-5") is None
    assert parse_date("2023-01-01") is not None


def test_normalize_date_never_raises_on_stray_separators():
    assert normalize("--1", "date") == "--1"
    assert normalize("/1/", "date") == "/1/"
    rows_a = [{"id": "1", "d": "--1"}]
    rows_b = [{"id": "1", "d": "2024-01-01"}]
    mismatches = reconcile([rows_a, rows_b], "id", [("d", "date")])
    assert [m.mismatched_columns for m in mismatches] == [["d"]]


def test_normalize_date_pads_short_years():
    assert format_date(pd.Timestamp("2024-03-01")) == "2024-03-01"
    assert normalize("0999-05-01", "date") == "0999-05-01"


def test_time_only_text_compares_literally():
    assert normalize("12:30", "date") == "12:30"
    assert normalize("18:00", "date") != normalize("12:30", "date")
    mismatches = reconcile([[{"id": "1", "t": "12:30"}], [{"id": "1", "t": "18:00"}]], "id", [("t", "date")])
    assert len(mismatches) == 1


def test_serial_numbers_match_their_text_spelling():
    assert normalize("45292", "date") == normalize(45292, "date") == "2024-01-01"
    assert normalize(" 45292.0 ", "date") == "2024-01-01"
    mismatches = reconcile([[{"id": "1", "d": 45292}], [{"id": "1", "d": "45292"}]], "id", [("d", "date")])
    assert mismatches == []
