from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class ExtractType(str, Enum):
    """The five fixed extract kinds delivered as CSV files."""
    personal = "personal"
    course = "course"
    enrollment = "enrollment"
    grade = "grade"
    activity = "activity"


class RejectCode(str, Enum):
    """Typed rejection classifications."""
    missing_required = "missing_required"
    invalid_column_count = "invalid_column_count"
    invalid_int = "invalid_int"
    invalid_numeric = "invalid_numeric"
    invalid_timestamp = "invalid_timestamp"     # also used for date parsing errors
    insert_failed = "insert_failed"             # the store refused the row
    malformed_row = "malformed_row"             # the CSV layer could not read the record


@dataclass(frozen=True, slots=True)
class ParsedRow:
    """Accepted row, keyed by staging column name."""
    values: dict[str, Any]
    source_row: int
    raw_payload: Mapping[str, Any]

    def to_mapping(self) -> Mapping[str, Any]:
        """
        Values ready for staging insert. Must match the `stg_*` column names
        (excluding `created_at`).
        """
        return self.values


@dataclass(frozen=True, slots=True)
class RejectRow:
    """Rejected row's contents."""
    reason_code: RejectCode
    reason_detail: str
    raw_payload: Mapping[str, Any]  # the raw unmutated cells being parsed.
    source_row: int                 # 1-based data row number, header not counted.

    def __str__(self) -> str:
        return f"row {self.source_row}: {self.reason_detail}"
