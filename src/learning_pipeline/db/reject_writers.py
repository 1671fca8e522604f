from __future__ import annotations

from typing import Any, Mapping, Sequence

from psycopg import Connection, sql
from psycopg.types.json import Jsonb

from learning_pipeline.parsing.types import RejectRow


# fixed cols in `reject_rows`:
_COLS = ("table_name", "source_row", "raw_payload", "reason_code", "reason_detail")

# Postgres text and jsonb cannot hold NUL.
_NUL = "\x00"
_NUL_STAND_IN = "\ufffd"


def _storable(v: Any) -> Any:
    if isinstance(v, str):
        return v.replace(_NUL, _NUL_STAND_IN)
    return v


def storable_payload(raw_payload: Mapping[str, Any]) -> dict[str, Any]:
    """`raw_payload` with NUL characters swapped out of keys and string values."""
    return {_storable(str(k)): _storable(v) for k, v in raw_payload.items()}


def reject_params(table_name: str, r: RejectRow) -> tuple[Any, ...]:
    """One `reject_rows` parameter tuple, in `_COLS` order."""
    return (
        table_name,
        r.source_row,
        Jsonb(storable_payload(r.raw_payload)),
        r.reason_code.value,
        _storable(r.reason_detail),
    )


def insert_reject_rows(conn: Connection, *, table_name: str, rejects: Sequence[RejectRow]) -> None:
    """
    Insert `rejects` into the DB's `reject_rows`.

    Table/column identifiers are fixed constants.
    Values are parameterized directly.
    """
    query = sql.SQL("INSERT INTO {tbl} ({cols}) VALUES ({vals})").format(
        tbl=sql.Identifier("reject_rows"),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in _COLS),
        vals=sql.SQL(", ").join(sql.Placeholder() for _ in _COLS),
    )

    params = [reject_params(table_name, r) for r in rejects]

    if params:
        with conn.cursor() as cur:
            cur.executemany(query, params)
