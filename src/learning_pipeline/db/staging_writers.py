from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Protocol, Sequence

import psycopg
from psycopg import Connection, sql

from learning_pipeline.db.reject_writers import insert_reject_rows
from learning_pipeline.parsing.types import ExtractType, ParsedRow, RejectCode, RejectRow


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableWriteSpec:
    """Whitelisted staging-table contract used for safe SQL generation.

    Notes:
    - `columns` excludes `created_at` (it has a DB default).
    - `columns` mirror the extract's `SchemaDefinition.out_columns`, in file order.
    """
    table_name: str
    columns: tuple[str, ...]


# wrap all staging specs for data together.
STAGING_TABLES: dict[ExtractType, TableWriteSpec] = {
    # `personal.csv`
    ExtractType.personal: TableWriteSpec(
        table_name="stg_personal",
        columns=(
            "alternative_id",
            "percentile",
            "sat_verbal",
            "sat_math",
            "act_composite",
            "age",
            "race",
            "gender",
            "enrollment_status",
            "earned_credit_hours",
            "gpa_cumulative",
            "gpa_semester",
            "standing",
            "pell_status",
            "class_code",
        ),
    ),
    # `course.csv`
    ExtractType.course: TableWriteSpec(
        table_name="stg_course",
        columns=("course_id", "name", "term", "credits"),
    ),
    # `enrollment.csv`
    ExtractType.enrollment: TableWriteSpec(
        table_name="stg_enrollment",
        columns=("alternative_id", "course_id", "final_grade", "withdrawal_date"),
    ),
    # `grade.csv`
    ExtractType.grade: TableWriteSpec(
        table_name="stg_grade",
        columns=(
            "alternative_id",
            "course_id",
            "gradable_object",
            "category",
            "max_points",
            "earned_points",
            "weight",
            "grade_date",
        ),
    ),
    # `activity.csv`
    ExtractType.activity: TableWriteSpec(
        table_name="stg_activity",
        columns=("alternative_id", "course_id", "event", "event_date"),
    ),
}


class StagingStore(Protocol):
    """The store handle a load run writes through. Owned by the caller, never created here."""

    def transaction(self) -> Any:
        """Context manager: commit on success, roll back on exception."""
        ...

    def insert_rows(self, table: TableWriteSpec, rows: Sequence[ParsedRow]) -> list[RejectRow]:
        """Insert `rows`; return the ones the store refused."""
        ...

    def insert_rejects(self, table: TableWriteSpec, rejects: Sequence[RejectRow]) -> None:
        ...


def _insert_query(table: TableWriteSpec) -> sql.Composed:
    """Identifiers are interpolated ONLY from the whitelisted `STAGING_TABLES` specs."""
    return sql.SQL("INSERT INTO {tbl} ({cols}) VALUES ({vals})").format(
        tbl=sql.Identifier(table.table_name),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in table.columns),
        vals=sql.SQL(", ").join(sql.Placeholder() for _ in table.columns),
    )


def _row_params(table: TableWriteSpec, row: ParsedRow) -> tuple[Any, ...]:
    m = row.to_mapping()
    return tuple(m.get(c) for c in table.columns)


# store-side rejections that concern one row's data, not the store itself.
_ROW_ERRORS = (psycopg.DataError, psycopg.IntegrityError)


class PsycopgStagingStore:
    """
    `StagingStore` over a psycopg connection with autocommit OFF.

    Batches go in with one `executemany` inside a savepoint. If the database
    refuses the batch on data grounds, the batch is replayed row by row, each
    row in its own savepoint, so one bad row never costs its neighbours.
    Any other database error (lost connection, missing table) propagates.
    """

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self.conn.transaction():
            yield

    def insert_rows(self, table: TableWriteSpec, rows: Sequence[ParsedRow]) -> list[RejectRow]:
        if not rows:
            return []

        query = _insert_query(table)
        params = [_row_params(table, r) for r in rows]

        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.executemany(query, params)
            return []
        except _ROW_ERRORS as e:
            logger.debug("batch insert into %s refused (%s), retrying row by row", table.table_name, e)

        refused: list[RejectRow] = []
        for row, p in zip(rows, params):
            try:
                with self.conn.transaction():
                    self.conn.execute(query, p)
            except _ROW_ERRORS as e:
                message = e.diag.message_primary or str(e)
                refused.append(
                    RejectRow(
                        reason_code=RejectCode.insert_failed,
                        reason_detail=f"{table.table_name}: {message}",
                        raw_payload=row.raw_payload,
                        source_row=row.source_row,
                    )
                )
        return refused

    def insert_rejects(self, table: TableWriteSpec, rejects: Sequence[RejectRow]) -> None:
        insert_reject_rows(self.conn, table_name=table.table_name, rejects=rejects)


STAGING_TRUNCATE = sql.SQL("TRUNCATE TABLE {tables}").format(
    tables=sql.SQL(", ").join(
        [sql.Identifier(t.table_name) for t in STAGING_TABLES.values()] + [sql.Identifier("reject_rows")]
    )
)


def truncate_staging(conn: Connection) -> None:
    """Empty every staging table and `reject_rows`, committed immediately."""
    conn.execute(STAGING_TRUNCATE)
    conn.commit()
