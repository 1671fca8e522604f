from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from learning_pipeline.config import Settings
from learning_pipeline.db.staging_writers import STAGING_TABLES, StagingStore, TableWriteSpec
from learning_pipeline.errors import HandlerConstructionError, UnknownExtractType
from learning_pipeline.ingest.loader import read_input_into_db
from learning_pipeline.ingest.summary import ReadResult
from learning_pipeline.ingest.validator import ValidationOutcome, validate_header
from learning_pipeline.parsing.registry import registered_extract_types, schema_for
from learning_pipeline.parsing.schema import SchemaDefinition
from learning_pipeline.parsing.types import ExtractType


@dataclass(frozen=True)
class CSVInputHandler:
    """Binds one extract's schema to its source file and its staging table for one load run."""
    extract_type: ExtractType
    schema: SchemaDefinition
    input_path: Path
    table: TableWriteSpec
    store: StagingStore

    def validate(self) -> ValidationOutcome:
        return validate_header(self.input_path, self.schema)

    def read_input_into_db(self) -> ReadResult:
        return read_input_into_db(self)


def make_handler(extract_type: ExtractType, *, input_dir: Path, store: StagingStore) -> CSVInputHandler:
    """
    Build one handler. Raise `HandlerConstructionError` when the schema or the
    staging table cannot be resolved, or when they disagree on columns.
    The input file is not looked at here.
    """
    try:
        schema = schema_for(extract_type)
    except UnknownExtractType as e:
        raise HandlerConstructionError(f"{extract_type.value}: {e}") from e

    table = STAGING_TABLES.get(extract_type)
    if table is None:
        raise HandlerConstructionError(f"{extract_type.value}: no staging table registered")
    if table.columns != schema.out_columns:
        raise HandlerConstructionError(
            f"{extract_type.value}: staging table {table.table_name} columns {table.columns} "
            f"do not match schema columns {schema.out_columns}"
        )

    return CSVInputHandler(
        extract_type=extract_type,
        schema=schema,
        input_path=input_dir / schema.file_name,
        table=table,
        store=store,
    )


def make_handlers(settings: Settings, store: StagingStore) -> dict[ExtractType, CSVInputHandler]:
    """One handler per registered extract type, in load order."""
    return {
        et: make_handler(et, input_dir=settings.input_dir, store=store)
        for et in registered_extract_types()
    }
