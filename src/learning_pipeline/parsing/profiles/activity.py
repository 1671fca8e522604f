from __future__ import annotations

from learning_pipeline.parsing.primitives import parse_optional_text, parse_required_text, parse_timestamptz_iso
from learning_pipeline.parsing.schema import FieldSpec, SchemaDefinition
from learning_pipeline.parsing.types import ExtractType


# `activity.csv`: LMS events, one row per event.
ACTIVITY_SCHEMA = SchemaDefinition(
    extract_type=ExtractType.activity,
    file_name="activity.csv",
    min_columns=4,
    key_column="ALTERNATIVE_ID",
    fields=(
        FieldSpec("ALTERNATIVE_ID", "alternative_id", lambda v: parse_required_text(v, field="ALTERNATIVE_ID")),
        FieldSpec("COURSE_ID", "course_id", lambda v: parse_required_text(v, field="COURSE_ID")),
        FieldSpec("EVENT", "event", parse_optional_text, False),
        FieldSpec("EVENT_DATE", "event_date", lambda v: parse_timestamptz_iso(v, field="EVENT_DATE")),
    ),
)
