from __future__ import annotations

import logging
import threading

from learning_pipeline.errors import ExternalEngineFailure, JobDefinitionNotFound
from learning_pipeline.pipeline.model import PipelineConfig, ProcessorConfig, ProcessorResult, ProcessorType
from learning_pipeline.pipeline.processors.base import BasePipelineProcessor
from learning_pipeline.pipeline.processors.engine import JobEngine


logger = logging.getLogger(__name__)

# tail of the engine log kept in the result details
_OUTPUT_TAIL_CHARS = 4000


class ExternalJobProcessor(BasePipelineProcessor):
    """
    Hands a job definition to an external engine and waits for it.

    A run the engine finishes is `completed` with the engine's own error tally,
    which need not be zero. A missing job file, an engine that cannot start,
    times out, is cancelled or blows up gives a `failed` result with the cause.
    """

    processor_type = ProcessorType.EXTERNAL_JOB

    def __init__(self, engine: JobEngine, *, timeout_s: float | None = None) -> None:
        self.engine = engine
        self.timeout_s = timeout_s

    def process(
        self,
        pipeline_config: PipelineConfig,
        processor_config: ProcessorConfig,
        *,
        cancel: threading.Event | None = None,
    ) -> ProcessorResult:
        try:
            job_file = self.resolve_job_file(pipeline_config, processor_config)
        except JobDefinitionNotFound as e:
            logger.error("%s: %s", pipeline_config.name, e)
            return ProcessorResult.failed(self.processor_type, str(e), {"filename": processor_config.filename})

        details = {"job_file": str(job_file)}
        try:
            with self.engine.session() as session:
                run = session.run(
                    job_file,
                    parameters=self.job_parameters(pipeline_config, processor_config),
                    connection=self.connection_overrides(pipeline_config, processor_config),
                    timeout_s=self.timeout_s,
                    cancel=cancel,
                )
        except ExternalEngineFailure as e:
            logger.error("%s: engine failed on %s: %s", pipeline_config.name, job_file.name, e)
            return ProcessorResult.failed(self.processor_type, str(e), details)
        except Exception as e:
            logger.exception("%s: engine raised on %s", pipeline_config.name, job_file.name)
            return ProcessorResult.failed(self.processor_type, f"engine error: {type(e).__name__}: {e}", details)

        details.update(returncode=run.returncode, output=run.output[-_OUTPUT_TAIL_CHARS:])
        return ProcessorResult.done(self.processor_type, run.error_count, details)
