from __future__ import annotations

import csv
from decimal import Decimal
from pathlib import Path
from typing import Callable

import pytest

from learning_pipeline.errors import ValidationError
from learning_pipeline.ingest import loader
from learning_pipeline.ingest.handlers import make_handler
from learning_pipeline.parsing.types import ExtractType, RejectCode


def _course_handler(settings, store):
    return make_handler(ExtractType.course, input_dir=settings.input_dir, store=store)


def test_course_scenario_one_bad_credits_value(settings, store, write_csv: Callable[[str, str], Path]) -> None:
    """Three rows, the second with non-numeric CREDITS: two load, one is reported."""
    write_csv(
        "course.csv",
        "COURSE_ID,NAME,TERM,CREDITS\n"
        "BIO101,Biology,2026FA,4\n"
        "CHM110,Chemistry,2026FA,four\n"
        "ENG120,Writing,2026FA,3\n",
    )
    result = _course_handler(settings, store).read_input_into_db()

    assert result.handled_type is ExtractType.course
    assert (result.total, result.loaded, result.failed) == (3, 2, 1)
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.source_row == 2
    assert failure.reason_code == RejectCode.invalid_numeric
    assert "invalid numeric value" in failure.reason_detail

    assert [r["course_id"] for r in store.rows["stg_course"]] == ["BIO101", "ENG120"]
    assert store.rows["stg_course"][0]["credits"] == Decimal("4")
    assert [r.source_row for r in store.rejects["stg_course"]] == [2]
    assert store.commits == 1


def test_clean_file_loads_everything(settings, store, write_csv) -> None:
    write_csv("course.csv", "COURSE_ID,NAME,TERM,CREDITS\nA,a,T,1\nB,b,T,2\n")
    result = _course_handler(settings, store).read_input_into_db()
    assert result.loaded == result.total == 2
    assert result.failed == 0
    assert result.failures == ()


def test_every_row_bad_still_returns_a_result(settings, store, write_csv) -> None:
    write_csv("course.csv", "COURSE_ID,NAME,TERM,CREDITS\nA,a,T,x\nB,b\n,c,T,1\n")
    result = _course_handler(settings, store).read_input_into_db()
    assert (result.total, result.loaded, result.failed) == (3, 0, 3)
    assert [f.reason_code for f in result.failures] == [
        RejectCode.invalid_numeric,
        RejectCode.invalid_column_count,
        RejectCode.missing_required,
    ]


def test_header_only_file(settings, store, write_csv) -> None:
    write_csv("course.csv", "COURSE_ID,NAME,TERM,CREDITS\n")
    result = _course_handler(settings, store).read_input_into_db()
    assert (result.total, result.loaded, result.failed) == (0, 0, 0)


def test_blank_lines_are_not_rows(settings, store, write_csv) -> None:
    write_csv("course.csv", "COURSE_ID,NAME,TERM,CREDITS\nA,a,T,1\n\n,,,\nB,b,T,x\n")
    result = _course_handler(settings, store).read_input_into_db()
    assert result.total == 2
    # blank lines still advance the row pointer
    assert result.failures[0].source_row == 4


def test_invalid_header_aborts_before_reading(settings, store, write_csv) -> None:
    write_csv("course.csv", "NAME,COURSE_ID,TERM,CREDITS\nA,a,T,1\n")
    with pytest.raises(ValidationError):
        _course_handler(settings, store).read_input_into_db()
    assert store.rows == {}
    assert store.commits == 0


def test_missing_file_raises_validation_error(settings, store) -> None:
    with pytest.raises(ValidationError) as e:
        _course_handler(settings, store).read_input_into_db()
    assert e.value.outcome.code.value == "missing_file"


def test_rows_refused_by_the_store_are_failures(settings, make_store, write_csv) -> None:
    store = make_store(refuse=lambda row: "duplicate" if row.values["course_id"] == "B" else None)
    write_csv("course.csv", "COURSE_ID,NAME,TERM,CREDITS\nA,a,T,1\nB,b,T,2\nC,c,T,x\n")
    result = _course_handler(settings, store).read_input_into_db()
    assert (result.total, result.loaded, result.failed) == (3, 1, 2)
    assert [(f.source_row, f.reason_code) for f in result.failures] == [
        (2, RejectCode.insert_failed),
        (3, RejectCode.invalid_numeric),
    ]


def test_rows_are_flushed_in_batches(settings, store, write_csv, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(loader, "BATCH_SIZE", 2)
    rows = "".join(f"C{i},n,T,{i}\n" for i in range(5))
    write_csv("course.csv", "COURSE_ID,NAME,TERM,CREDITS\n" + rows)
    result = _course_handler(settings, store).read_input_into_db()
    assert result.loaded == 5
    assert store.batches == [2, 2, 1]


def test_store_error_rolls_back_and_propagates(settings, make_store, write_csv) -> None:
    class BrokenStore(make_store):
        def insert_rows(self, table, rows):
            raise ConnectionError("store unreachable")

    store = BrokenStore()
    write_csv("course.csv", "COURSE_ID,NAME,TERM,CREDITS\nA,a,T,1\n")
    with pytest.raises(ConnectionError):
        _course_handler(settings, store).read_input_into_db()
    assert store.rollbacks == 1
    assert store.rows == {}


def test_oversized_field_fails_only_its_row(settings, store, write_csv) -> None:
    """A cell past the csv field limit is one `malformed_row`; the rows around it still load."""
    huge = "x" * (csv.field_size_limit() * 2)
    write_csv("course.csv", f"COURSE_ID,NAME,TERM,CREDITS\nA,a,T,1\nB,{huge},T,2\nC,c,T,3\n")

    result = _course_handler(settings, store).read_input_into_db()

    assert (result.total, result.loaded, result.failed) == (3, 2, 1)
    assert result.failures[0].source_row == 2
    assert result.failures[0].reason_code == RejectCode.malformed_row
    assert [r["course_id"] for r in store.rows["stg_course"]] == ["A", "C"]
    assert store.commits == 1


def test_invalid_utf8_past_the_first_buffer_fails_only_its_row(settings, store) -> None:
    good = "".join(f"C{i},n,T,{i % 5}\n" for i in range(3000)).encode("utf-8")
    (settings.input_dir / "course.csv").write_bytes(
        b"COURSE_ID,NAME,TERM,CREDITS\n" + good + b"D,\xff\xfe,T,4\nE,e,T,5\n"
    )

    result = _course_handler(settings, store).read_input_into_db()

    assert (result.total, result.loaded, result.failed) == (3002, 3001, 1)
    (failure,) = result.failures
    assert failure.source_row == 3001
    assert failure.reason_code == RejectCode.malformed_row
    assert failure.raw_payload["NAME"] == "\\xff\\xfe"
    assert store.rows["stg_course"][-1]["course_id"] == "E"
    assert store.rejects["stg_course"] == [failure]


def test_nul_in_a_cell_fails_only_its_row(settings, store, write_csv) -> None:
    write_csv("course.csv", "COURSE_ID,NAME,TERM,CREDITS\nA,a,T,1\nB,b\x00,T,x\nC,c,T,3\n")

    result = _course_handler(settings, store).read_input_into_db()

    assert (result.total, result.loaded, result.failed) == (3, 2, 1)
    assert result.failures[0].source_row == 2
    assert [r["course_id"] for r in store.rows["stg_course"]] == ["A", "C"]
