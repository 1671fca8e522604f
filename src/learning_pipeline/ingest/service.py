from __future__ import annotations

import csv
import logging
import shutil
from pathlib import Path
from typing import Mapping

from learning_pipeline.config import Settings
from learning_pipeline.db.staging_writers import StagingStore
from learning_pipeline.errors import ValidationError
from learning_pipeline.ingest.handlers import CSVInputHandler, make_handlers
from learning_pipeline.ingest.summary import FileReport, LoadReport
from learning_pipeline.ingest.validator import ValidationCode, ValidationOutcome
from learning_pipeline.parsing.registry import registered_extract_types, schema_for
from learning_pipeline.parsing.types import ExtractType


logger = logging.getLogger(__name__)

# bundled with the package as data files.
SAMPLE_EXTRACTS_DIR = Path(__file__).resolve().parent.parent / "extracts"


def _validate_handlers(handlers: Mapping[ExtractType, CSVInputHandler]) -> dict[ExtractType, ValidationOutcome]:
    outcomes: dict[ExtractType, ValidationOutcome] = {}
    for et, handler in handlers.items():
        outcome = handler.validate()
        outcomes[et] = outcome
        if outcome.valid:
            logger.info("%s file and header appear valid", handler.input_path.name)
        else:
            logger.error("%s is not valid: %s", handler.input_path.name, outcome.reason)
    return outcomes


def validate_csvs(settings: Settings, store: StagingStore) -> dict[ExtractType, ValidationOutcome]:
    """Header check for every extract in the input dir, nothing is loaded."""
    return _validate_handlers(make_handlers(settings, store))


def load_csvs(settings: Settings, store: StagingStore, *, force_validate: bool = True) -> LoadReport:
    """
    Load the standard extracts from `settings.input_dir` into staging.

    With `force_validate` every header is checked before any file loads. A file
    that fails its check is reported and skipped; the remaining files still load.
    A file that breaks while it is being read (I/O error) is rolled back and
    reported as `unreadable_file`, and the run moves on to the next file.
    Store-level errors propagate (the failing file's rows are already rolled back).
    """
    logger.info("load CSV files from: %s", settings.input_dir.resolve())
    handlers = make_handlers(settings, store)
    logger.info("built %d CSV input handlers: %s", len(handlers), [et.value for et in handlers])

    outcomes: dict[ExtractType, ValidationOutcome] = {}
    if force_validate:
        outcomes = _validate_handlers(handlers)

    files: list[FileReport] = []
    for et, handler in handlers.items():
        outcome = outcomes.get(et)
        if outcome is not None and not outcome.valid:
            files.append(FileReport(extract_type=et, outcome=outcome))
            continue
        try:
            result = handler.read_input_into_db()
        except ValidationError as e:
            logger.error("%s is not valid: %s", handler.input_path.name, e)
            files.append(FileReport(extract_type=et, outcome=e.outcome))
            continue
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            logger.error("%s could not be read, nothing from it was kept: %s", handler.input_path.name, e)
            failed = ValidationOutcome(
                path=handler.input_path,
                extract_type=et,
                code=ValidationCode.unreadable_file,
                reason=f"{handler.input_path}: read failed mid-file ({type(e).__name__}: {e})",
            )
            files.append(FileReport(extract_type=et, outcome=failed))
            continue
        files.append(FileReport(extract_type=et, outcome=outcome or handler.validate(), result=result))

    report = LoadReport(files=tuple(files))
    logger.info(
        "loaded CSV files: total=%d loaded=%d failed=%d invalid_files=%d",
        report.total,
        report.loaded,
        report.failed,
        sum(1 for f in report.files if not f.outcome.valid),
    )
    return report


def copy_sample_extracts(settings: Settings) -> list[Path]:
    """Copy the bundled sample extracts into the input dir, creating it if needed."""
    settings.input_dir.mkdir(parents=True, exist_ok=True)
    copied: list[Path] = []
    for et in registered_extract_types():
        name = schema_for(et).file_name
        target = settings.input_dir / name
        shutil.copyfile(SAMPLE_EXTRACTS_DIR / name, target)
        copied.append(target)
    logger.info("copied %d sample extracts to %s", len(copied), settings.input_dir.resolve())
    return copied


def bootstrap(settings: Settings, store: StagingStore) -> LoadReport | None:
    """Startup hook: copy the samples and/or load the extracts, as the settings ask."""
    if settings.copy_samples:
        copy_sample_extracts(settings)
    if settings.init_load_csv:
        return load_csvs(settings, store)
    return None
