from __future__ import annotations

import logging
import re
import subprocess
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Protocol, Sequence

from learning_pipeline.errors import EngineCancelled, EngineTimeout, ExternalEngineFailure


logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.2

_ERROR_LINE = re.compile(r"\bERROR\b")


@dataclass(frozen=True)
class EngineRun:
    """What the engine reported for one finished job."""
    error_count: int
    returncode: int
    output: str


class EngineSession(Protocol):
    def run(
        self,
        job_file: Path,
        *,
        parameters: Mapping[str, str],
        connection: Mapping[str, str],
        timeout_s: float | None = None,
        cancel: threading.Event | None = None,
    ) -> EngineRun: ...


class JobEngine(Protocol):
    """An external job engine: run a job, wait for it, report its error tally."""

    def session(self) -> Iterator[EngineSession]:
        """Context manager holding the engine's runtime for one or more runs."""
        ...


def count_errors(output: str, returncode: int) -> int:
    """Lines flagged `ERROR` in the engine log; a non-zero exit counts at least once."""
    n = sum(1 for line in output.splitlines() if _ERROR_LINE.search(line))
    if returncode != 0:
        return max(n, 1)
    return n


class _KitchenSession:
    def __init__(self, command: Sequence[str]) -> None:
        self.command = tuple(command)
        self._running: list[subprocess.Popen[str]] = []

    def argv(self, job_file: Path, *, parameters: Mapping[str, str], connection: Mapping[str, str]) -> list[str]:
        args = [*self.command, f"-file={job_file}"]
        for k, v in connection.items():
            args.append(f"-param:DB_{k.upper()}={v}")
        for k, v in parameters.items():
            args.append(f"-param:{k}={v}")
        return args

    def run(
        self,
        job_file: Path,
        *,
        parameters: Mapping[str, str],
        connection: Mapping[str, str],
        timeout_s: float | None = None,
        cancel: threading.Event | None = None,
    ) -> EngineRun:
        argv = self.argv(job_file, parameters=parameters, connection=connection)
        logger.debug("starting engine: %s", argv[0])
        try:
            proc = subprocess.Popen(argv, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
        except OSError as e:
            raise ExternalEngineFailure(f"cannot start engine {argv[0]!r}: {e}") from e

        self._running.append(proc)
        deadline = None if timeout_s is None else time.monotonic() + timeout_s
        try:
            while True:
                try:
                    # retrying `communicate` after a timeout does not lose output.
                    output, _ = proc.communicate(timeout=POLL_INTERVAL_S)
                    break
                except subprocess.TimeoutExpired:
                    if cancel is not None and cancel.is_set():
                        _kill(proc)
                        raise EngineCancelled(f"engine run of {job_file.name} cancelled")
                    if deadline is not None and time.monotonic() >= deadline:
                        _kill(proc)
                        raise EngineTimeout(f"engine run of {job_file.name} exceeded {timeout_s}s")
        finally:
            self._running.remove(proc)

        output = output or ""
        return EngineRun(
            error_count=count_errors(output, proc.returncode),
            returncode=proc.returncode,
            output=output,
        )

    def close(self) -> None:
        for proc in list(self._running):
            _kill(proc)
        self._running.clear()


def _kill(proc: subprocess.Popen[str]) -> None:
    if proc.poll() is None:
        proc.kill()
    proc.communicate()


class KitchenEngine:
    """
    Runs jobs through a command line engine (Pentaho `kitchen.sh` by default):

        <command...> -file=<job> -param:DB_URL=<dsn> -param:<K>=<V> ...

    The command's exit code and its `ERROR` log lines give the error tally.
    """

    def __init__(self, command: Sequence[str]) -> None:
        if not command:
            raise ValueError("engine command must not be empty")
        self.command = tuple(command)

    @contextmanager
    def session(self) -> Iterator[_KitchenSession]:
        s = _KitchenSession(self.command)
        try:
            yield s
        finally:
            s.close()
