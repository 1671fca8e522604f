from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator


# `utf-8-sig` drops the BOM spreadsheet exports like to prepend.
ENCODING = "utf-8-sig"


@dataclass(frozen=True)
class MalformedRecord:
    """A data record the CSV layer could not turn into clean cells."""
    detail: str
    cells: tuple[str, ...] = ()     # printable rendering of whatever was read, if anything


def read_header(path: Path) -> list[str] | None:
    """Return the first CSV record of `path`, or `None` when the file is empty."""
    with path.open("r", encoding=ENCODING, newline="") as f:
        return next(csv.reader(f), None)


def _has_undecodable(cell: str) -> bool:
    # `surrogateescape` maps each undecodable byte to a lone surrogate.
    return any("\udc80" <= ch <= "\udcff" for ch in cell)


def _printable(cell: str) -> str:
    return cell.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


def stream_csv_rows(path: Path) -> Iterator[tuple[int, list[str] | MalformedRecord]]:
    """
    Yields `(source_row, cells)` for CSV data rows, one at a time.

    `source_row` is 1-based for the first data row, header is not counted.
    Blank lines are skipped but still counted, so `source_row` stays a stable
    pointer into the file's data rows.

    A record the csv module refuses (oversized field, stray NUL on older
    interpreters) or one holding bytes that are not UTF-8 comes back as a
    `MalformedRecord` in place of its cells, and reading carries on with the
    next record.
    The file is closed when iteration ends or the generator is closed early.
    """
    with path.open("r", encoding=ENCODING, errors="surrogateescape", newline="") as f:
        reader = csv.reader(f)
        next(reader, None)      # header
        i = 0
        while True:
            i += 1
            try:
                cells = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                yield i, MalformedRecord(detail=f"unparseable CSV record: {e}")
                continue

            if not cells or all(c.strip() == "" for c in cells):
                continue
            bad = [n for n, c in enumerate(cells, 1) if _has_undecodable(c)]
            if bad:
                yield i, MalformedRecord(
                    detail=f"invalid UTF-8 in cell(s) {bad}",
                    cells=tuple(_printable(c) for c in cells),
                )
                continue
            yield i, cells
