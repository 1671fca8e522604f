from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from learning_pipeline.parsing.profiles.grade import GRADE_SCHEMA
from learning_pipeline.parsing.types import ParsedRow, RejectCode, RejectRow


def test_grade_happy_path() -> None:
    cells = ["S0001", "BIO101-F26", "Quiz 1", "Quiz", "10", "9", "0.05", "2026-09-12T10:00:00Z"]
    res = GRADE_SCHEMA.parse(cells, source_row=1)
    assert isinstance(res, ParsedRow)
    assert res.values["earned_points"] == Decimal("9")
    assert res.values["weight"] == Decimal("0.05")
    assert res.values["grade_date"] == datetime(2026, 9, 12, 10, 0, tzinfo=timezone.utc)


def test_grade_optional_fields_may_be_empty() -> None:
    """Null synonyms in optional fields become `None`."""
    cells = ["S0001", "BIO101-F26", "Participation", "N/A", "", "null", "", ""]
    res = GRADE_SCHEMA.parse(cells, source_row=2)
    assert isinstance(res, ParsedRow)
    assert res.values["category"] is None
    assert res.values["max_points"] is None
    assert res.values["grade_date"] is None


def test_grade_invalid_timestamp() -> None:
    cells = ["S0001", "BIO101-F26", "Quiz 1", "Quiz", "10", "9", "0.05", "2026-02-30"]
    res = GRADE_SCHEMA.parse(cells, source_row=3)
    assert isinstance(res, RejectRow)
    assert res.reason_code == RejectCode.invalid_timestamp
    assert "GRADE_DATE" in res.reason_detail
