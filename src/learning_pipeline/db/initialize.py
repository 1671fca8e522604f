from __future__ import annotations

from pathlib import Path

import psycopg


def split_statements(script: str) -> list[str]:
    """Split a `.sql` script on semicolons, dropping blank statements and `--` comment lines."""
    lines = [ln for ln in script.splitlines() if not ln.strip().startswith("--")]
    return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]


def run_sql_file(conn: psycopg.Connection, sql_path: Path) -> None:
    """Read and execute a `.sql` file, surfacing the failing statement."""
    statements = split_statements(sql_path.read_text(encoding="utf-8"))

    with conn.cursor() as cur:
        for i, stmt in enumerate(statements, 1):
            try:
                cur.execute(stmt)
            except psycopg.Error as e:
                raise RuntimeError(
                    f"DB init failed in {sql_path} on statement #{i}\n"
                    f"Postgres raised with: {e}\n"
                    f"--- statement ---\n{stmt}\n--- end ---\n"
                ) from e
    conn.commit()


def db_init(conn: psycopg.Connection, *, sql_path: Path) -> list[Path]:
    """
    Run a provided SQL init path to initialize (or re-initialize) the staging store.

    - If `sql_path` is a dir, run all `*.sql` files in ASC order.
    - If `sql_path` is just one file, it will run just that file.

    Returns the files that ran.
    """
    if sql_path.is_dir():
        files = sorted(sql_path.glob("*.sql"))
    else:
        files = [sql_path]
    for p in files:
        run_sql_file(conn, p)
    return files
