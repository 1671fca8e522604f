from __future__ import annotations

from learning_pipeline.errors import UnknownExtractType
from learning_pipeline.parsing.profiles.activity import ACTIVITY_SCHEMA
from learning_pipeline.parsing.profiles.course import COURSE_SCHEMA
from learning_pipeline.parsing.profiles.enrollment import ENROLLMENT_SCHEMA
from learning_pipeline.parsing.profiles.grade import GRADE_SCHEMA
from learning_pipeline.parsing.profiles.personal import PERSONAL_SCHEMA
from learning_pipeline.parsing.schema import SchemaDefinition
from learning_pipeline.parsing.types import ExtractType


# Registry order is load order.
_SCHEMAS: dict[ExtractType, SchemaDefinition] = {
    s.extract_type: s
    for s in (PERSONAL_SCHEMA, COURSE_SCHEMA, ENROLLMENT_SCHEMA, GRADE_SCHEMA, ACTIVITY_SCHEMA)
}


def coerce_extract_type(value: ExtractType | str) -> ExtractType:
    """Accept an `ExtractType` or its name in any casing. Raise `UnknownExtractType` otherwise."""
    if isinstance(value, ExtractType):
        return value
    try:
        return ExtractType(str(value).strip().lower())
    except ValueError:
        raise UnknownExtractType(f"Unknown extract type: {value!r}") from None


def schema_for(extract_type: ExtractType | str) -> SchemaDefinition:
    """
    A registry that assigns each extract type its `SchemaDefinition`.
    `FieldSpec` defines the coercion rules inside the profile modules.
    """
    et = coerce_extract_type(extract_type)
    try:
        return _SCHEMAS[et]
    except KeyError:
        raise UnknownExtractType(f"No schema registered for extract type: {et.value}") from None


def registered_extract_types() -> tuple[ExtractType, ...]:
    """Every extract type with a schema, in load order."""
    return tuple(_SCHEMAS)
