"""
PipelineDispatcher: maps a processor's type tag to the implementation registered for it.

Processors are registered explicitly at construction, one per `ProcessorType`.
Lookup is an exact match: no fallback, no wildcard. Each dispatch walks

    Received -> Resolving -> Executing -> Completed | Failed

and always ends in a terminal `ProcessorResult`, except when the tag is not
registered, which raises `UnsupportedProcessorType` before anything runs.
The dispatcher never retries; a caller wanting a retry dispatches again.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from learning_pipeline.config import Settings
from learning_pipeline.errors import ConfigurationError, UnsupportedProcessorType
from learning_pipeline.pipeline.model import (
    PipelineConfig,
    ProcessorConfig,
    ProcessorResult,
    ProcessorStatus,
    ProcessorType,
)
from learning_pipeline.pipeline.processors.base import BasePipelineProcessor
from learning_pipeline.pipeline.processors.engine import KitchenEngine
from learning_pipeline.pipeline.processors.external_job import ExternalJobProcessor
from learning_pipeline.pipeline.processors.sql_script import SqlScriptProcessor


logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    received = "received"
    resolving = "resolving"
    executing = "executing"
    completed = "completed"
    failed = "failed"


@dataclass(frozen=True)
class PipelineReport:
    """Results of every processor in one pipeline run, in run order."""
    pipeline: str
    results: tuple[ProcessorResult, ...]

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def error_count(self) -> int:
        return sum(r.error_count for r in self.results)

    def render_lines(self) -> list[str]:
        return [f"{self.pipeline} #{i}: {r.render_one_line()}" for i, r in enumerate(self.results, 1)]


class PipelineDispatcher:
    def __init__(self, processors: Iterable[BasePipelineProcessor] = ()) -> None:
        self._processors: dict[ProcessorType, BasePipelineProcessor] = {}
        for p in processors:
            self.register(p)

    def register(self, processor: BasePipelineProcessor) -> None:
        tag = processor.processor_type
        if tag in self._processors:
            raise ConfigurationError(f"processor type already registered: {tag.value}")
        self._processors[tag] = processor

    def supported_types(self) -> tuple[ProcessorType, ...]:
        return tuple(self._processors)

    def _transition(self, state: DispatchState, pipeline_config: PipelineConfig, tag: ProcessorType) -> None:
        logger.debug("dispatch %s/%s: %s", pipeline_config.name, tag.value, state.value)

    def dispatch(
        self,
        pipeline_config: PipelineConfig,
        processor_config: ProcessorConfig,
        *,
        cancel: threading.Event | None = None,
    ) -> ProcessorResult:
        tag = processor_config.processor_type
        self._transition(DispatchState.received, pipeline_config, tag)

        self._transition(DispatchState.resolving, pipeline_config, tag)
        processor = self._processors.get(tag)
        if processor is None:
            supported = ", ".join(t.value for t in self._processors) or "none"
            raise UnsupportedProcessorType(f"no processor registered for {tag.value} (supported: {supported})")

        self._transition(DispatchState.executing, pipeline_config, tag)
        try:
            result = processor.process(pipeline_config, processor_config, cancel=cancel)
        except Exception as e:
            # implementations should not raise; never let a run vanish if one does.
            logger.exception("processor %s raised", tag.value)
            result = ProcessorResult.failed(tag, f"processor raised {type(e).__name__}: {e}")

        if result.status is ProcessorStatus.completed:
            self._transition(DispatchState.completed, pipeline_config, tag)
            logger.info("%s: %s", pipeline_config.name, result.render_one_line())
        else:
            self._transition(DispatchState.failed, pipeline_config, tag)
            logger.error("%s: %s", pipeline_config.name, result.render_one_line())
        return result

    def run_pipeline(
        self,
        pipeline_config: PipelineConfig,
        processor_configs: Sequence[ProcessorConfig],
        *,
        cancel: threading.Event | None = None,
    ) -> PipelineReport:
        """
        Dispatch each processor in order and collect the results. A failed
        processor does not stop the ones after it; an unsupported type does,
        and is checked for every processor before the first one runs.
        """
        for pc in processor_configs:
            if pc.processor_type not in self._processors:
                raise UnsupportedProcessorType(f"no processor registered for {pc.processor_type.value}")
        results = tuple(self.dispatch(pipeline_config, pc, cancel=cancel) for pc in processor_configs)
        return PipelineReport(pipeline=pipeline_config.name, results=results)


def default_dispatcher(settings: Settings) -> PipelineDispatcher:
    """The shipped processors, wired from settings."""
    return PipelineDispatcher(
        [
            ExternalJobProcessor(KitchenEngine(settings.engine_command), timeout_s=settings.engine_timeout_s),
            SqlScriptProcessor(),
        ]
    )
