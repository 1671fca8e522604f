from __future__ import annotations

from learning_pipeline.parsing.primitives import parse_optional_date, parse_optional_text, parse_required_text
from learning_pipeline.parsing.schema import FieldSpec, SchemaDefinition
from learning_pipeline.parsing.types import ExtractType


# `enrollment.csv`: learner x course, final grade once the course closes.
ENROLLMENT_SCHEMA = SchemaDefinition(
    extract_type=ExtractType.enrollment,
    file_name="enrollment.csv",
    min_columns=4,
    key_column="ALTERNATIVE_ID",
    fields=(
        FieldSpec("ALTERNATIVE_ID", "alternative_id", lambda v: parse_required_text(v, field="ALTERNATIVE_ID")),
        FieldSpec("COURSE_ID", "course_id", lambda v: parse_required_text(v, field="COURSE_ID")),
        FieldSpec("FINAL_GRADE", "final_grade", parse_optional_text, False),
        FieldSpec("WITHDRAWAL_DATE", "withdrawal_date", lambda v: parse_optional_date(v, field="WITHDRAWAL_DATE"), False),
    ),
)
