from __future__ import annotations

from learning_pipeline.parsing.primitives import (
    parse_optional_int,
    parse_optional_numeric,
    parse_optional_text,
    parse_required_text,
)
from learning_pipeline.parsing.schema import FieldSpec, SchemaDefinition
from learning_pipeline.parsing.types import ExtractType


# `personal.csv`: one row per learner, demographics and academic standing.
PERSONAL_SCHEMA = SchemaDefinition(
    extract_type=ExtractType.personal,
    file_name="personal.csv",
    min_columns=15,
    key_column="ALTERNATIVE_ID",
    fields=(
        FieldSpec("ALTERNATIVE_ID", "alternative_id", lambda v: parse_required_text(v, field="ALTERNATIVE_ID")),
        FieldSpec("PERCENTILE", "percentile", lambda v: parse_optional_numeric(v, field="PERCENTILE"), False),
        FieldSpec("SAT_VERBAL", "sat_verbal", lambda v: parse_optional_int(v, field="SAT_VERBAL"), False),
        FieldSpec("SAT_MATH", "sat_math", lambda v: parse_optional_int(v, field="SAT_MATH"), False),
        FieldSpec("ACT_COMPOSITE", "act_composite", lambda v: parse_optional_int(v, field="ACT_COMPOSITE"), False),
        FieldSpec("AGE", "age", lambda v: parse_optional_int(v, field="AGE"), False),
        FieldSpec("RACE", "race", parse_optional_text, False),
        FieldSpec("GENDER", "gender", parse_optional_text, False),
        FieldSpec("ENROLLMENT_STATUS", "enrollment_status", parse_optional_text, False),
        FieldSpec("EARNED_CREDIT_HOURS", "earned_credit_hours", lambda v: parse_optional_numeric(v, field="EARNED_CREDIT_HOURS"), False),
        FieldSpec("GPA_CUMULATIVE", "gpa_cumulative", lambda v: parse_optional_numeric(v, field="GPA_CUMULATIVE"), False),
        FieldSpec("GPA_SEMESTER", "gpa_semester", lambda v: parse_optional_numeric(v, field="GPA_SEMESTER"), False),
        FieldSpec("STANDING", "standing", parse_optional_text, False),
        FieldSpec("PELL_STATUS", "pell_status", parse_optional_text, False),
        FieldSpec("CLASS_CODE", "class_code", parse_optional_text, False),
    ),
)
