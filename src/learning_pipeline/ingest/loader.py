from __future__ import annotations

import logging
from contextlib import closing
from typing import TYPE_CHECKING

from learning_pipeline.ingest.readers import MalformedRecord, stream_csv_rows
from learning_pipeline.ingest.summary import ReadResult
from learning_pipeline.ingest.validator import validate_header
from learning_pipeline.parsing.types import ParsedRow, RejectRow

if TYPE_CHECKING:
    from learning_pipeline.ingest.handlers import CSVInputHandler


logger = logging.getLogger(__name__)

BATCH_SIZE = 500        # config: increase or decrease.


def read_input_into_db(handler: CSVInputHandler) -> ReadResult:
    """
    End-to-end file loading for one handler:
      - Re-check the header (raises `ValidationError` before anything is read),
      - Stream data rows one at a time,
      - Parse and coerce each row against the handler's schema (a record the
        reader could not decode or split is a `malformed_row` failure),
            - invalid rows -> failures (and `reject_rows`),
            - valid rows -> staging table, in batches,
      - Rows the store refuses on insert also become failures,
      - Commit the handler's rows once the whole file is through.

    Raises only on file/store level problems (I/O error, lost connection, ...),
    after rolling back this handler's writes.
    Will not raise on invalid data: a file where every row fails still returns a `ReadResult`.
    """
    schema = handler.schema
    table = handler.table
    store = handler.store

    validate_header(handler.input_path, schema).raise_for_status()

    total = 0
    failures: list[RejectRow] = []
    loaded = 0

    batch: list[ParsedRow] = []
    reject_batch: list[RejectRow] = []

    def flush() -> None:
        nonlocal loaded
        refused = store.insert_rows(table, batch)
        loaded += len(batch) - len(refused)
        reject_batch.extend(refused)
        failures.extend(refused)
        store.insert_rejects(table, reject_batch)
        batch.clear()
        reject_batch.clear()

    with store.transaction(), closing(stream_csv_rows(handler.input_path)) as rows:
        for source_row, cells in rows:
            total += 1

            if isinstance(cells, MalformedRecord):
                res = schema.reject_malformed(cells.cells, cells.detail, source_row=source_row)
            else:
                res = schema.parse(cells, source_row=source_row)
            if isinstance(res, RejectRow):
                failures.append(res)
                reject_batch.append(res)
            else:
                batch.append(res)

            if len(batch) >= BATCH_SIZE or len(reject_batch) >= BATCH_SIZE:
                flush()

        ## -- flush any remainder
        flush()

    failures.sort(key=lambda r: r.source_row)

    result = ReadResult(
        handled_type=handler.extract_type,
        table_name=table.table_name,
        input_path=str(handler.input_path),
        total=total,
        loaded=loaded,
        failed=len(failures),
        failures=tuple(failures),
    )
    if result.failures:
        logger.warning(
            "%d failures while parsing %s:\n%s",
            result.failed,
            handler.extract_type.value,
            "\n".join(str(f) for f in result.failures),
        )
    logger.info(
        "%d lines from %s (out of %d lines) inserted into %s (with %d failures)",
        result.loaded,
        handler.extract_type.value,
        result.total,
        table.table_name,
        result.failed,
    )
    return result
