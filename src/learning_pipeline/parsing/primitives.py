from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from .types import RejectCode


@dataclass(frozen=True, slots=True)
class ParseError(Exception):
    """Handles rejected fields, with additional rejection details from error messages."""
    code: RejectCode            # used to classify the rejection type encountered
    detail: str                 # error message encountered that led to rejection.


# extracts from student systems commonly spell "no value" in one of these ways.
_NULL_STRINGS = {"", "null", "na", "n/a"}


def normalize_cell(v: Any) -> Any:
    """Transform raw CSV cells into normalized shape."""
    if v is None:
        return None
    if isinstance(v, str):
        s = v.strip()
        if s.lower() in _NULL_STRINGS:
            return None
        return s
    return v


def normalize_header(v: Any) -> str:
    """Header cells compare trimmed and upper cased."""
    return str(v or "").strip().upper()


## -- text / str fields

def parse_required_text(v: Any, *, field: str) -> str:
    """
    Assigns required text needed to parse a successful row.
    Raises on:
    - `None` typed input.
    - empty strings.
    """
    v = normalize_cell(v)
    if v is None:
        raise ParseError(RejectCode.missing_required, f"{field}: missing required text")
    return str(v)


def parse_optional_text(v: Any) -> str | None:
    """Assign optional text for row, or `None`."""
    v = normalize_cell(v)
    if v is None:
        return None
    return str(v)


## -- Other typed fields (`None` raises)

def parse_int(v: Any, *, field: str) -> int:
    """Parse integers. Raise on non `int` or `None`."""
    v = normalize_cell(v)
    if v is None:
        raise ParseError(RejectCode.missing_required, f"{field}: missing required int")
    try:
        # "12.3" or "1e-4" should fail, not be coerced to `int`
        if isinstance(v, str) and (("." in v) or ("e" in v.lower())):
            raise ValueError(f"non-integer number: {v!r}")
        return int(v)
    except (TypeError, ValueError):
        raise ParseError(RejectCode.invalid_int, f"{field}: invalid int value {v!r}")


def parse_optional_int(v: Any, *, field: str) -> int | None:
    """Like `parse_int`, but `None` passes through."""
    if normalize_cell(v) is None:
        return None
    return parse_int(v, field=field)


def parse_numeric(v: Any, *, field: str) -> Decimal:
    """Parse a decimal number. Raise on non numeric, non finite or `None`."""
    v = normalize_cell(v)
    if v is None:
        raise ParseError(RejectCode.missing_required, f"{field}: missing required numeric")
    try:
        d = Decimal(str(v))
    except (InvalidOperation, ValueError):
        raise ParseError(RejectCode.invalid_numeric, f"{field}: invalid numeric value {v!r}")
    if not d.is_finite():
        raise ParseError(RejectCode.invalid_numeric, f"{field}: invalid numeric value {v!r}")
    return d


def parse_optional_numeric(v: Any, *, field: str) -> Decimal | None:
    """Like `parse_numeric`, but `None` passes through."""
    if normalize_cell(v) is None:
        return None
    return parse_numeric(v, field=field)


def parse_date_yyyy_mm_dd(v: Any, *, field: str) -> date:
    """Parse date. Raise on non successful `date` coercion, or `None`."""
    v = normalize_cell(v)
    if v is None:
        raise ParseError(RejectCode.missing_required, f"{field}: missing required date")
    if not isinstance(v, str):
        raise ParseError(RejectCode.invalid_timestamp, f"{field}: invalid date value {v!r}")
    try:
        return date.fromisoformat(v)
    except ValueError:
        raise ParseError(RejectCode.invalid_timestamp, f"{field}: invalid date (expected YYYY-MM-DD): {v!r}")


def parse_optional_date(v: Any, *, field: str) -> date | None:
    """Like `parse_date_yyyy_mm_dd`, but `None` passes through."""
    if normalize_cell(v) is None:
        return None
    return parse_date_yyyy_mm_dd(v, field=field)


def parse_timestamptz_iso(v: Any, *, field: str) -> datetime:
    """
    Accepts the ISO forms:
    - `2026-02-10T12:34:56Z`
    - `2026-02-10 12:34:56+00:00`
    - `2026-02-10T12:34:56`  (assumption: UTC if tz missing)
    - `2026-02-10`           (midnight UTC)

    Raises on any other format and on `None`.
    """
    v = normalize_cell(v)
    if v is None:
        raise ParseError(RejectCode.missing_required, f"{field}: missing required timestamp")

    if not isinstance(v, str):
        raise ParseError(RejectCode.invalid_timestamp, f"{field}: invalid timestamp value {v!r}")

    s = v.replace("Z", "+00:00")
    s = s.replace(" ", "T")  # allows space-separated

    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        raise ParseError(RejectCode.invalid_timestamp, f"{field}: invalid timestamp (ISO): {v!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt
