"""
Exception hierarchy for the load pipeline and processor dispatch.

Configuration-time faults (unknown extract type, handler construction,
unsupported processor type) are raised immediately. Row-level problems are
never raised past the parser; they travel as `RejectRow` data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from learning_pipeline.ingest.validator import ValidationOutcome


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(PipelineError):
    """A settings value or pipeline definition is malformed."""


class UnknownExtractType(PipelineError):
    """No schema is registered for the requested extract type."""


class HandlerConstructionError(PipelineError):
    """A handler's schema or staging table could not be resolved."""


class ValidationError(PipelineError):
    """An extract file failed its header check."""

    def __init__(self, outcome: ValidationOutcome) -> None:
        self.outcome = outcome
        super().__init__(outcome.reason or "invalid extract", details={"code": outcome.code.value})


class UnsupportedProcessorType(PipelineError):
    """The dispatcher has no processor registered for a type tag."""


class JobDefinitionNotFound(PipelineError):
    """A processor's job definition file does not exist."""


class ExternalEngineFailure(PipelineError):
    """The external job engine failed to start or to finish."""


class EngineTimeout(ExternalEngineFailure):
    """The external job engine did not finish within its time bound."""


class EngineCancelled(ExternalEngineFailure):
    """The external job engine run was cancelled by the caller."""
