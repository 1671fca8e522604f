from __future__ import annotations

from dataclasses import replace

import pytest

from learning_pipeline.ingest import loader, service
from learning_pipeline.ingest.service import bootstrap, copy_sample_extracts, load_csvs, validate_csvs
from learning_pipeline.ingest.validator import ValidationCode
from learning_pipeline.parsing.types import ExtractType, RejectCode


def test_samples_load_cleanly(settings, store) -> None:
    copied = copy_sample_extracts(settings)
    assert sorted(p.name for p in copied) == sorted(f"{et.value}.csv" for et in ExtractType)

    report = load_csvs(settings, store)
    assert report.ok
    assert [f.extract_type for f in report.files] == list(ExtractType)
    for f in report.files:
        assert f.result is not None
        assert f.result.failed == 0
        assert f.result.loaded == f.result.total > 0
    assert store.commits == len(ExtractType)


def test_invalid_file_is_reported_and_others_still_load(settings, store, write_csv) -> None:
    copy_sample_extracts(settings)
    write_csv("grade.csv", "COURSE_ID,ALTERNATIVE_ID\nX,Y\n")

    report = load_csvs(settings, store)

    assert not report.ok
    grade = report.get(ExtractType.grade)
    assert grade is not None
    assert grade.result is None
    assert grade.outcome.code is ValidationCode.too_few_columns
    assert "stg_grade" not in store.rows
    loaded = [f.extract_type for f in report.files if f.result is not None]
    assert loaded == [ExtractType.personal, ExtractType.course, ExtractType.enrollment, ExtractType.activity]
    assert "grade: not loaded (too_few_columns)" in report.render_lines()[3]


def test_load_without_up_front_validation(settings, store) -> None:
    copy_sample_extracts(settings)
    (settings.input_dir / "activity.csv").unlink()

    report = load_csvs(settings, store, force_validate=False)

    activity = report.get(ExtractType.activity)
    assert activity is not None and activity.result is None
    assert activity.outcome.code is ValidationCode.missing_file
    assert report.get(ExtractType.course).result is not None


def test_row_failures_are_counted_across_files(settings, store, write_csv) -> None:
    copy_sample_extracts(settings)
    write_csv("course.csv", "COURSE_ID,NAME,TERM,CREDITS\nA,a,T,1\nB,b,T,x\n")
    report = load_csvs(settings, store)
    assert report.ok
    assert report.failed == 1
    assert report.loaded == report.total - 1


def test_validate_only_writes_nothing(settings, store) -> None:
    outcomes = validate_csvs(settings, store)
    assert all(o.code is ValidationCode.missing_file for o in outcomes.values())
    assert store.rows == {} and store.commits == 0


def test_bootstrap_follows_settings(settings, store) -> None:
    assert bootstrap(settings, store) is None
    assert not any(settings.input_dir.iterdir())

    report = bootstrap(replace(settings, copy_samples=True, init_load_csv=True), store)
    assert report is not None and report.ok


def test_undecodable_row_mid_file_does_not_stop_the_run(settings, store) -> None:
    """One bad byte sequence deep into personal.csv costs one row, not the run."""
    copy_sample_extracts(settings)
    personal = settings.input_dir / "personal.csv"
    header, *_ = personal.read_text(encoding="utf-8").splitlines()
    good = "".join(f"S{i:05d},50,,,,,,,,,,,,,\n" for i in range(3000))
    personal.write_bytes((header + "\n" + good).encode("utf-8") + b"S99999,\xff\xfe,,,,,,,,,,,,,\n")

    report = load_csvs(settings, store)

    assert report.ok
    p = report.get(ExtractType.personal).result
    assert (p.total, p.loaded, p.failed) == (3001, 3000, 1)
    assert p.failures[0].reason_code == RejectCode.malformed_row
    assert all(f.result is not None for f in report.files)
    assert set(store.rows) == {"stg_personal", "stg_course", "stg_enrollment", "stg_grade", "stg_activity"}


def test_io_error_mid_file_is_reported_and_the_run_goes_on(settings, store, monkeypatch: pytest.MonkeyPatch) -> None:
    copy_sample_extracts(settings)
    real_stream = loader.stream_csv_rows

    def flaky_stream(path):
        for i, (source_row, cells) in enumerate(real_stream(path)):
            if path.name == "personal.csv" and i == 2:
                raise OSError("device went away")
            yield source_row, cells

    monkeypatch.setattr(loader, "stream_csv_rows", flaky_stream)

    report = load_csvs(settings, store)

    assert not report.ok
    personal = report.get(ExtractType.personal)
    assert personal.result is None
    assert personal.outcome.code is ValidationCode.unreadable_file
    assert "device went away" in (personal.outcome.reason or "")
    assert "stg_personal" not in store.rows
    assert store.rollbacks == 1
    assert [f.extract_type for f in report.files if f.result is not None] == [
        ExtractType.course,
        ExtractType.enrollment,
        ExtractType.grade,
        ExtractType.activity,
    ]
    assert report.render_lines()[0].startswith("personal: not loaded (unreadable_file)")


def test_handlers_are_built_once_per_load(settings, store, monkeypatch: pytest.MonkeyPatch) -> None:
    copy_sample_extracts(settings)
    calls: list[object] = []
    real_make_handlers = service.make_handlers

    def counting_make_handlers(s, st):
        calls.append(s)
        return real_make_handlers(s, st)

    monkeypatch.setattr(service, "make_handlers", counting_make_handlers)

    load_csvs(settings, store, force_validate=True)

    assert len(calls) == 1
