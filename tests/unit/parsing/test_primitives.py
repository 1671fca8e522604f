from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from learning_pipeline.parsing.primitives import (
    ParseError,
    normalize_cell,
    normalize_header,
    parse_date_yyyy_mm_dd,
    parse_int,
    parse_numeric,
    parse_optional_int,
    parse_required_text,
    parse_timestamptz_iso,
)
from learning_pipeline.parsing.types import RejectCode


@pytest.mark.parametrize("raw", ["", "  ", "NULL", "na", "N/A"])
def test_normalize_cell_null_synonyms(raw: str) -> None:
    assert normalize_cell(raw) is None


def test_normalize_header_trims_and_upper_cases() -> None:
    assert normalize_header("  alternative_id ") == "ALTERNATIVE_ID"
    assert normalize_header(None) == ""


def test_parse_required_text_missing() -> None:
    with pytest.raises(ParseError) as e:
        parse_required_text("  ", field="NAME")
    assert e.value.code == RejectCode.missing_required
    assert "NAME" in e.value.detail


def test_parse_int_rejects_decimals() -> None:
    """`12.5` is not silently truncated."""
    assert parse_int(" 12 ", field="AGE") == 12
    with pytest.raises(ParseError) as e:
        parse_int("12.5", field="AGE")
    assert e.value.code == RejectCode.invalid_int


def test_parse_optional_int_passes_none() -> None:
    assert parse_optional_int("", field="AGE") is None


def test_parse_numeric() -> None:
    assert parse_numeric("3.5", field="CREDITS") == Decimal("3.5")
    with pytest.raises(ParseError) as e:
        parse_numeric("three", field="CREDITS")
    assert e.value.code == RejectCode.invalid_numeric
    assert "invalid numeric value" in e.value.detail


def test_parse_numeric_rejects_nan() -> None:
    with pytest.raises(ParseError):
        parse_numeric("NaN", field="WEIGHT")


def test_parse_date() -> None:
    assert parse_date_yyyy_mm_dd("2026-10-02", field="D") == date(2026, 10, 2)
    with pytest.raises(ParseError) as e:
        parse_date_yyyy_mm_dd("2026-02-30", field="D")
    assert e.value.code == RejectCode.invalid_timestamp


def test_parse_timestamp_assumes_utc() -> None:
    assert parse_timestamptz_iso("2026-09-12 10:00:00", field="T") == datetime(2026, 9, 12, 10, 0, tzinfo=timezone.utc)
    assert parse_timestamptz_iso("2026-09-12T10:00:00Z", field="T").tzinfo is not None
