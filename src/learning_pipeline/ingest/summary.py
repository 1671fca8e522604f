from __future__ import annotations

from dataclasses import dataclass

from learning_pipeline.ingest.validator import ValidationOutcome
from learning_pipeline.parsing.types import ExtractType, RejectRow


@dataclass(frozen=True)
class ReadResult:
    """
    Outcome of loading one extract file.

    `total` counts non-blank data rows (header excluded), and always
    `loaded + failed == total`. `failures` is in source-row order.
    """
    handled_type: ExtractType
    table_name: str
    input_path: str
    total: int
    loaded: int
    failed: int
    failures: tuple[RejectRow, ...] = ()

    def render_one_line(self) -> str:
        """How each line of summary is formatted for the terminal."""
        return f"{self.handled_type.value} -> {self.table_name}: total={self.total} loaded={self.loaded} failed={self.failed}"


@dataclass(frozen=True)
class FileReport:
    """One extract's part of a load run: its header check and, if it passed, its load."""
    extract_type: ExtractType
    outcome: ValidationOutcome
    result: ReadResult | None = None

    def render_one_line(self) -> str:
        if self.result is not None:
            return self.result.render_one_line()
        return f"{self.extract_type.value}: not loaded ({self.outcome.code.value}) {self.outcome.reason}"


@dataclass(frozen=True)
class LoadReport:
    """All files of one load run, in load order."""
    files: tuple[FileReport, ...]

    @property
    def ok(self) -> bool:
        """Every file passed validation (row failures do not count against this)."""
        return all(f.outcome.valid for f in self.files)

    @property
    def total(self) -> int:
        return sum(f.result.total for f in self.files if f.result is not None)

    @property
    def loaded(self) -> int:
        return sum(f.result.loaded for f in self.files if f.result is not None)

    @property
    def failed(self) -> int:
        return sum(f.result.failed for f in self.files if f.result is not None)

    def get(self, extract_type: ExtractType) -> FileReport | None:
        for f in self.files:
            if f.extract_type is extract_type:
                return f
        return None

    def render_lines(self) -> list[str]:
        return [f.render_one_line() for f in self.files]
