from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .primitives import ParseError, normalize_cell, normalize_header
from .types import ExtractType, ParsedRow, RejectCode, RejectRow

# Parser turns one normalized cell into its staging value.
Parser = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Any given column's configurable expectations."""
    column: str                 # expected header name, upper case.
    out_name: str               # staging column this value is written to.
    parser: Parser              # how to parse this field's value.
    required: bool = True       # whether or not this field's value must exist.


@dataclass(frozen=True, slots=True)
class SchemaDefinition:
    """
    The fixed layout of one extract file.

    Columns are positional: cell `i` of a data row is parsed by `fields[i]`.
    Cells past the last field are ignored, cells missing past `min_columns`
    are treated as empty.

    Rejection order is always:
    - 1st: `invalid_column_count`
    - 2nd: first `missing_required` or type/format error, in `fields` order
    """
    extract_type: ExtractType
    file_name: str
    fields: tuple[FieldSpec, ...]
    min_columns: int
    key_column: str
    key_position: int | None = 0        # `None`: key may sit anywhere in the first `min_columns`.

    def __post_init__(self) -> None:
        if self.min_columns < 1:
            raise ValueError(f"{self.extract_type.value}: min_columns must be >= 1")
        if self.min_columns > len(self.fields):
            raise ValueError(f"{self.extract_type.value}: min_columns exceeds the {len(self.fields)} declared fields")
        key = normalize_header(self.key_column)
        columns = self.columns
        if key not in columns:
            raise ValueError(f"{self.extract_type.value}: key column {key} is not a declared column")
        idx = columns.index(key)
        if idx >= self.min_columns:
            raise ValueError(f"{self.extract_type.value}: key column {key} must be within the first {self.min_columns} columns")
        if self.key_position is not None and idx != self.key_position:
            raise ValueError(f"{self.extract_type.value}: key column {key} declared at {idx}, expected {self.key_position}")

    @property
    def columns(self) -> tuple[str, ...]:
        """Expected header names, in file order."""
        return tuple(normalize_header(f.column) for f in self.fields)

    @property
    def out_columns(self) -> tuple[str, ...]:
        """Staging column names, in file order."""
        return tuple(f.out_name for f in self.fields)

    def reject_malformed(self, cells: Sequence[Any], detail: str, *, source_row: int) -> RejectRow:
        """A `malformed_row` reject for a record the reader could not decode or split."""
        return RejectRow(
            reason_code=RejectCode.malformed_row,
            reason_detail=detail,
            raw_payload=_raw_payload(self.columns, cells),
            source_row=source_row,
        )

    def parse(self, cells: Sequence[Any], *, source_row: int) -> ParsedRow | RejectRow:
        """
        Coerce one data row.
        Returns an accepted `ParsedRow`, or a rejected `RejectRow` (upon any early return).
        """
        raw_payload = _raw_payload(self.columns, cells)

        if len(cells) < self.min_columns:
            return RejectRow(
                reason_code=RejectCode.invalid_column_count,
                reason_detail=f"expected at least {self.min_columns} columns, got {len(cells)}",
                raw_payload=raw_payload,
                source_row=source_row,
            )

        out: dict[str, Any] = {}
        for i, f in enumerate(self.fields):
            raw_v = normalize_cell(cells[i]) if i < len(cells) else None
            try:
                if raw_v is None:
                    if f.required:
                        raise ParseError(RejectCode.missing_required, f"{f.column}: missing required value")
                    out[f.out_name] = None
                    continue
                out[f.out_name] = f.parser(raw_v)
            except ParseError as e:
                return RejectRow(
                    reason_code=e.code,
                    reason_detail=e.detail,
                    raw_payload=raw_payload,
                    source_row=source_row,
                )

        return ParsedRow(values=out, source_row=source_row, raw_payload=raw_payload)


def _raw_payload(columns: Sequence[str], cells: Sequence[Any]) -> dict[str, Any]:
    """Raw cells keyed by expected column; unexpected trailing cells keep their position."""
    payload: dict[str, Any] = {}
    for i, cell in enumerate(cells):
        key = columns[i] if i < len(columns) else f"_col{i + 1}"
        payload[key] = cell
    return payload
