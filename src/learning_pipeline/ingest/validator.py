from __future__ import annotations

import csv
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from learning_pipeline.errors import ValidationError
from learning_pipeline.ingest.readers import read_header
from learning_pipeline.parsing.primitives import normalize_header
from learning_pipeline.parsing.schema import SchemaDefinition
from learning_pipeline.parsing.types import ExtractType


class ValidationCode(str, Enum):
    ok = "ok"
    missing_file = "missing_file"
    unreadable_file = "unreadable_file"
    missing_header = "missing_header"
    too_few_columns = "too_few_columns"
    wrong_key_column = "wrong_key_column"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a header check. `reason` is `None` only when `code` is `ok`."""
    path: Path
    extract_type: ExtractType
    code: ValidationCode
    reason: str | None = None
    header: tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        return self.code is ValidationCode.ok

    def raise_for_status(self) -> None:
        """Raise `ValidationError` unless the header passed."""
        if not self.valid:
            raise ValidationError(self)


def validate_header(path: Path, schema: SchemaDefinition) -> ValidationOutcome:
    """
    Check that `path` exists and its header row matches `schema`.

    Reads only the header line, never raises for a bad file: every problem
    comes back as a non-`ok` `ValidationOutcome`. Safe to call repeatedly.
    """
    def fail(code: ValidationCode, reason: str, header: tuple[str, ...] = ()) -> ValidationOutcome:
        return ValidationOutcome(path=path, extract_type=schema.extract_type, code=code, reason=reason, header=header)

    if not path.is_file():
        return fail(ValidationCode.missing_file, f"{path}: file not found")

    try:
        first = read_header(path)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        return fail(ValidationCode.unreadable_file, f"{path}: cannot read header ({e})")

    if not first or all(c.strip() == "" for c in first):
        return fail(ValidationCode.missing_header, f"{path}: no header row")

    header = tuple(normalize_header(c) for c in first)

    if len(header) < schema.min_columns:
        return fail(
            ValidationCode.too_few_columns,
            f"{path}: header has {len(header)} columns, {schema.extract_type.value} requires at least {schema.min_columns}",
            header,
        )

    key = normalize_header(schema.key_column)
    if schema.key_position is not None:
        found = header[schema.key_position]
        if found != key:
            return fail(
                ValidationCode.wrong_key_column,
                f"{path}: expected key column {key} at position {schema.key_position + 1}, found {found or '<empty>'}",
                header,
            )
    elif key not in header[: schema.min_columns]:
        return fail(
            ValidationCode.wrong_key_column,
            f"{path}: key column {key} not found in the first {schema.min_columns} columns",
            header,
        )

    return ValidationOutcome(path=path, extract_type=schema.extract_type, code=ValidationCode.ok, header=header)
