from __future__ import annotations

import logging
import threading
from typing import Callable

import psycopg

from learning_pipeline.db.initialize import split_statements
from learning_pipeline.errors import JobDefinitionNotFound
from learning_pipeline.pipeline.model import PipelineConfig, ProcessorConfig, ProcessorResult, ProcessorType
from learning_pipeline.pipeline.processors.base import BasePipelineProcessor


logger = logging.getLogger(__name__)


class SqlScriptProcessor(BasePipelineProcessor):
    """
    Runs a `.sql` job file against the staging store.

    Each statement runs in its own savepoint: a failing statement is counted
    and the script carries on. The run commits once at the end, unless it is
    cancelled, in which case nothing is kept.
    """

    processor_type = ProcessorType.SQL_SCRIPT

    def __init__(self, connect: Callable[[str], psycopg.Connection] = psycopg.connect) -> None:
        self.connect = connect

    def process(
        self,
        pipeline_config: PipelineConfig,
        processor_config: ProcessorConfig,
        *,
        cancel: threading.Event | None = None,
    ) -> ProcessorResult:
        try:
            script = self.resolve_job_file(pipeline_config, processor_config)
            statements = split_statements(script.read_text(encoding="utf-8"))
        except (JobDefinitionNotFound, OSError, UnicodeDecodeError) as e:
            return ProcessorResult.failed(self.processor_type, str(e), {"filename": processor_config.filename})

        url = self.connection_overrides(pipeline_config, processor_config)["url"]
        errors: list[str] = []
        cancelled_at: int | None = None
        try:
            with self.connect(url) as conn:
                with conn.transaction():
                    for i, stmt in enumerate(statements, 1):
                        if cancel is not None and cancel.is_set():
                            cancelled_at = i
                            raise psycopg.Rollback()
                        try:
                            # nested: a savepoint inside the script's transaction
                            with conn.transaction():
                                conn.execute(stmt)
                        except (psycopg.DataError, psycopg.IntegrityError, psycopg.ProgrammingError) as e:
                            logger.warning("%s: statement #%d failed: %s", script.name, i, e)
                            errors.append(f"statement #{i}: {e}")
        except psycopg.Error as e:
            return ProcessorResult.failed(self.processor_type, f"staging store error: {e}", {"script": str(script)})

        if cancelled_at is not None:
            return ProcessorResult.failed(
                self.processor_type,
                f"cancelled before statement #{cancelled_at}",
                {"script": str(script), "statements": len(statements)},
            )

        return ProcessorResult.done(
            self.processor_type,
            len(errors),
            {"script": str(script), "statements": len(statements), "errors": tuple(errors)},
        )
