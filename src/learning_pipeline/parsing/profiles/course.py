from __future__ import annotations

from learning_pipeline.parsing.primitives import parse_numeric, parse_optional_text, parse_required_text
from learning_pipeline.parsing.schema import FieldSpec, SchemaDefinition
from learning_pipeline.parsing.types import ExtractType


# `course.csv`: one row per course offering.
COURSE_SCHEMA = SchemaDefinition(
    extract_type=ExtractType.course,
    file_name="course.csv",
    min_columns=4,
    key_column="COURSE_ID",
    fields=(
        FieldSpec("COURSE_ID", "course_id", lambda v: parse_required_text(v, field="COURSE_ID")),
        FieldSpec("NAME", "name", parse_optional_text, False),
        FieldSpec("TERM", "term", parse_optional_text, False),
        FieldSpec("CREDITS", "credits", lambda v: parse_numeric(v, field="CREDITS")),
    ),
)
