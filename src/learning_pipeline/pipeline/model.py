from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from learning_pipeline.config import Settings
from learning_pipeline.errors import ConfigurationError


class ProcessorType(str, Enum):
    """Capability tag a processor implementation advertises."""
    EXTERNAL_JOB = "EXTERNAL_JOB"
    SQL_SCRIPT = "SQL_SCRIPT"
    EXTERNAL_TRANSFORM = "EXTERNAL_TRANSFORM"


class ProcessorStatus(str, Enum):
    completed = "completed"
    failed = "failed"


@dataclass(frozen=True)
class PipelineConfig:
    """One logical pipeline run: directories and parameters shared by all its processors."""
    name: str
    pipelines_dir: Path
    output_dir: Path
    database_url: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings, *, name: str = "adhoc", parameters: Mapping[str, str] | None = None) -> PipelineConfig:
        return cls(
            name=name,
            pipelines_dir=settings.pipelines_dir,
            output_dir=settings.output_dir,
            database_url=settings.database_url,
            parameters=dict(parameters or {}),
        )


@dataclass(frozen=True)
class ProcessorConfig:
    """
    Declares which processor runs and with what. Configuration only: one
    `ProcessorConfig` maps to exactly one processor implementation at dispatch.
    """
    processor_type: ProcessorType
    filename: str
    parameters: Mapping[str, str] = field(default_factory=dict)
    connection: Mapping[str, str] = field(default_factory=dict)     # overrides, e.g. {"url": ...}


@dataclass(frozen=True)
class ProcessorResult:
    """
    Terminal outcome of one processor run. Build it with `done` or `failed`.

    `completed` means the processor ran to the end; the job may still report
    errors in `error_count`. `failed` always carries a `cause`.
    """
    processor_type: ProcessorType
    status: ProcessorStatus
    error_count: int
    details: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    cause: str | None = None

    @classmethod
    def done(cls, processor_type: ProcessorType, error_count: int, details: Mapping[str, Any] | None = None) -> ProcessorResult:
        if error_count < 0:
            raise ValueError(f"error_count must be >= 0, got {error_count}")
        return cls(processor_type, ProcessorStatus.completed, error_count, MappingProxyType(dict(details or {})))

    @classmethod
    def failed(cls, processor_type: ProcessorType, cause: str, details: Mapping[str, Any] | None = None) -> ProcessorResult:
        return cls(processor_type, ProcessorStatus.failed, 1, MappingProxyType(dict(details or {})), cause or "unknown failure")

    @property
    def ok(self) -> bool:
        return self.status is ProcessorStatus.completed and self.error_count == 0

    def render_one_line(self) -> str:
        line = f"{self.processor_type.value}: {self.status.value} errors={self.error_count}"
        if self.cause:
            line += f" cause={self.cause}"
        return line


def _string_map(value: Any, *, where: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{where}: expected an object, got {type(value).__name__}")
    return {str(k): str(v) for k, v in value.items()}


def parse_processor_type(value: Any) -> ProcessorType:
    """Parse a type tag; unknown names raise `ConfigurationError`."""
    try:
        return ProcessorType(str(value).strip().upper())
    except ValueError:
        raise ConfigurationError(f"unknown processor type: {value!r}") from None


def load_pipeline_config(path: Path, settings: Settings) -> tuple[PipelineConfig, list[ProcessorConfig]]:
    """
    Read a JSON pipeline definition:

        {"name": "...", "parameters": {...},
         "processors": [{"type": "SQL_SCRIPT", "filename": "...", "parameters": {...}, "connection": {...}}]}

    Directories and the DSN come from `settings`.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"{path}: cannot read pipeline definition ({e})") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path}: invalid JSON ({e})") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path}: pipeline definition must be an object")

    processors_raw = raw.get("processors")
    if not isinstance(processors_raw, list) or not processors_raw:
        raise ConfigurationError(f"{path}: `processors` must be a non-empty list")

    pipeline = PipelineConfig.from_settings(
        settings,
        name=str(raw.get("name") or path.stem),
        parameters=_string_map(raw.get("parameters"), where=f"{path}: parameters"),
    )

    processors: list[ProcessorConfig] = []
    for i, p in enumerate(processors_raw, 1):
        where = f"{path}: processors[{i}]"
        if not isinstance(p, dict):
            raise ConfigurationError(f"{where}: expected an object")
        filename = p.get("filename")
        if not filename:
            raise ConfigurationError(f"{where}: `filename` is required")
        processors.append(
            ProcessorConfig(
                processor_type=parse_processor_type(p.get("type")),
                filename=str(filename),
                parameters=_string_map(p.get("parameters"), where=f"{where}.parameters"),
                connection=_string_map(p.get("connection"), where=f"{where}.connection"),
            )
        )
    return pipeline, processors
