"""
BasePipelineProcessor: common ground for every processor implementation.

A processor advertises one fixed `ProcessorType` and turns a
`(PipelineConfig, ProcessorConfig)` pair into a terminal `ProcessorResult`.
Implementations handle their own failures: `process` returns a failed
result rather than raising.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from learning_pipeline.errors import JobDefinitionNotFound
from learning_pipeline.pipeline.model import PipelineConfig, ProcessorConfig, ProcessorResult, ProcessorType


class BasePipelineProcessor(ABC):
    processor_type: ClassVar[ProcessorType]

    @abstractmethod
    def process(
        self,
        pipeline_config: PipelineConfig,
        processor_config: ProcessorConfig,
        *,
        cancel: threading.Event | None = None,
    ) -> ProcessorResult:
        ...

    # ─── Helpers available to all processors ──────────

    def resolve_job_file(self, pipeline_config: PipelineConfig, processor_config: ProcessorConfig) -> Path:
        """Relative filenames resolve under `pipelines_dir`. Raise `JobDefinitionNotFound` if nothing is there."""
        path = Path(processor_config.filename)
        if not path.is_absolute():
            path = pipeline_config.pipelines_dir / path
        if not path.is_file():
            raise JobDefinitionNotFound(f"job definition not found: {path}")
        return path.resolve()

    def connection_overrides(self, pipeline_config: PipelineConfig, processor_config: ProcessorConfig) -> dict[str, str]:
        """The pipeline's staging DSN, overlaid by the processor's own `connection` entries."""
        conn = {"url": pipeline_config.database_url}
        conn.update(processor_config.connection)
        return conn

    def job_parameters(self, pipeline_config: PipelineConfig, processor_config: ProcessorConfig) -> dict[str, str]:
        """Pipeline-wide parameters, overlaid by processor-level ones."""
        params = dict(pipeline_config.parameters)
        params.update(processor_config.parameters)
        return params
