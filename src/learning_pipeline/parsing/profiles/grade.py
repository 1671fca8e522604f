from __future__ import annotations

from learning_pipeline.parsing.primitives import (
    parse_optional_numeric,
    parse_optional_text,
    parse_required_text,
    parse_timestamptz_iso,
)
from learning_pipeline.parsing.schema import FieldSpec, SchemaDefinition
from learning_pipeline.parsing.types import ExtractType


# `grade.csv`: one row per graded item per learner.
GRADE_SCHEMA = SchemaDefinition(
    extract_type=ExtractType.grade,
    file_name="grade.csv",
    min_columns=8,
    key_column="ALTERNATIVE_ID",
    fields=(
        FieldSpec("ALTERNATIVE_ID", "alternative_id", lambda v: parse_required_text(v, field="ALTERNATIVE_ID")),
        FieldSpec("COURSE_ID", "course_id", lambda v: parse_required_text(v, field="COURSE_ID")),
        FieldSpec("GRADABLE_OBJECT", "gradable_object", lambda v: parse_required_text(v, field="GRADABLE_OBJECT")),
        FieldSpec("CATEGORY", "category", parse_optional_text, False),
        FieldSpec("MAX_POINTS", "max_points", lambda v: parse_optional_numeric(v, field="MAX_POINTS"), False),
        FieldSpec("EARNED_POINTS", "earned_points", lambda v: parse_optional_numeric(v, field="EARNED_POINTS"), False),
        FieldSpec("WEIGHT", "weight", lambda v: parse_optional_numeric(v, field="WEIGHT"), False),
        FieldSpec("GRADE_DATE", "grade_date", lambda v: parse_timestamptz_iso(v, field="GRADE_DATE"), False),
    ),
)
