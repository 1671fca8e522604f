from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path

from learning_pipeline.config import Settings, get_settings
from learning_pipeline.db.connect import connect
from learning_pipeline.db.initialize import db_init
from learning_pipeline.db.staging_writers import PsycopgStagingStore, truncate_staging
from learning_pipeline.errors import ConfigurationError, PipelineError
from learning_pipeline.ingest.service import bootstrap, copy_sample_extracts, load_csvs, validate_csvs
from learning_pipeline.pipeline.dispatcher import default_dispatcher
from learning_pipeline.pipeline.model import (
    PipelineConfig,
    ProcessorConfig,
    load_pipeline_config,
    parse_processor_type,
)


logger = logging.getLogger(__name__)


def _parse_params(pairs: list[str]) -> dict[str, str]:
    """`K=V` pairs from repeated `--param` flags."""
    out: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"--param expects KEY=VALUE, got {pair!r}")
        out[key.strip()] = value
    return out


class _NullStore:
    """Store stand-in for header-only validation, which never writes."""

    def transaction(self):
        raise RuntimeError("validation does not write to the staging store")

    def insert_rows(self, table, rows):
        raise RuntimeError("validation does not write to the staging store")

    def insert_rejects(self, table, rejects):
        raise RuntimeError("validation does not write to the staging store")


def main(argv: list[str] | None = None) -> int:
    """
    A CLI for loading learner extracts into the staging store and running processors.

    The `cmd` options are:
    ## load:
    Validate then load the five extracts (personal, course, enrollment, grade, activity)
    from the input dir. Prints one summary line per file.
    - `--input-dir` overrides `LAP_INPUT_DIR`,
    - `--fresh` empties the staging tables first,
    - `--no-validate` skips the up-front header pass (each file is still checked before it loads).

    ## validate:
    Header check only, nothing is written.

    ## samples copy:
    Copy the bundled sample extracts into the input dir.

    ## db init:
    Run schema SQL (`--sql` is a file or a dir of `.sql` files).

    ## process:
    Dispatch one processor, e.g.
    - `lap process --type SQL_SCRIPT --file summarize.sql`
    - `lap process --type EXTERNAL_JOB --file risk_model.kjb --param TERM=2026FA`

    ## pipeline run:
    Run every processor of a JSON pipeline definition, in order.

    ## bootstrap:
    Apply `LAP_INPUT_COPY_SAMPLES` and `LAP_INPUT_INIT_LOAD_CSV`.

    Exit codes: 0 success, 1 invalid files or failed processors, 2 usage/configuration errors.
    """
    p = argparse.ArgumentParser(prog="lap")
    sub = p.add_subparsers(dest="cmd", required=True)

    # load cmd
    load = sub.add_parser("load", help="Validate and load the extracts into staging.")
    load.add_argument("--input-dir", default=None, help="Directory holding the five extract CSVs.")
    load.add_argument("--fresh", action="store_true", help="Truncate the staging tables before loading.")
    load.add_argument("--no-validate", action="store_true", help="Skip the up-front validation pass.")

    # validate cmd
    validate = sub.add_parser("validate", help="Check extract headers without loading.")
    validate.add_argument("--input-dir", default=None)

    # samples cmd
    samples = sub.add_parser("samples", help="Sample extract utilities.")
    samples_sub = samples.add_subparsers(dest="samples_cmd", required=True)
    samples_copy = samples_sub.add_parser("copy", help="Copy bundled sample extracts to the input dir.")
    samples_copy.add_argument("--input-dir", default=None)

    # db cmd
    db = sub.add_parser("db", help="Database utilities.")
    db_sub = db.add_subparsers(dest="db_cmd", required=True)
    db_init_p = db_sub.add_parser("init", help="Initialize the staging schema from SQL file(s).")
    db_init_p.add_argument("--sql", default="sql", help="Path to schema SQL file OR a directory of `.sql` files.")

    # process cmd
    process = sub.add_parser("process", help="Dispatch one processor.")
    process.add_argument("--type", required=True, help="Processor type, e.g. EXTERNAL_JOB or SQL_SCRIPT.")
    process.add_argument("--file", required=True, help="Job definition file (relative to the pipelines dir).")
    process.add_argument("--param", action="append", default=[], help="KEY=VALUE, repeatable.")
    process.add_argument("--name", default="adhoc", help="Pipeline name used in logs.")

    # pipeline cmd
    pipeline = sub.add_parser("pipeline", help="Pipeline utilities.")
    pipeline_sub = pipeline.add_subparsers(dest="pipeline_cmd", required=True)
    pipeline_run = pipeline_sub.add_parser("run", help="Run a JSON pipeline definition.")
    pipeline_run.add_argument("--config", required=True, help="Path to the pipeline definition.")

    # bootstrap cmd
    sub.add_parser("bootstrap", help="Copy samples and/or load extracts per settings.")

    args = p.parse_args(argv)

    try:
        settings = get_settings()
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        input_dir = getattr(args, "input_dir", None)
        if input_dir:
            settings = replace(settings, input_dir=Path(input_dir))
        return _run(args, settings)
    except PipelineError as e:
        # configuration, handler construction and unsupported processor types
        logger.error("%s", e)
        return 2


def _run(args: argparse.Namespace, settings: Settings) -> int:
    if args.cmd == "load":
        with connect(settings) as conn:
            if args.fresh:
                truncate_staging(conn)
            report = load_csvs(settings, PsycopgStagingStore(conn), force_validate=not args.no_validate)
        for line in report.render_lines():
            print(line)
        return 0 if report.ok else 1

    if args.cmd == "validate":
        outcomes = validate_csvs(settings, _NullStore())
        for et, outcome in outcomes.items():
            print(f"{et.value}: {'ok' if outcome.valid else outcome.reason}")
        return 0 if all(o.valid for o in outcomes.values()) else 1

    if args.cmd == "samples" and args.samples_cmd == "copy":
        for path in copy_sample_extracts(settings):
            print(path)
        return 0

    if args.cmd == "db" and args.db_cmd == "init":
        with connect(settings) as conn:
            ran = db_init(conn, sql_path=Path(args.sql))
        print(f"Initialized schema from {', '.join(str(f) for f in ran)}")
        return 0

    if args.cmd == "process":
        pipeline_config = PipelineConfig.from_settings(settings, name=args.name)
        processor_config = ProcessorConfig(
            processor_type=parse_processor_type(args.type),
            filename=args.file,
            parameters=_parse_params(args.param),
        )
        result = default_dispatcher(settings).dispatch(pipeline_config, processor_config)
        print(result.render_one_line())
        return 0 if result.ok else 1

    if args.cmd == "pipeline" and args.pipeline_cmd == "run":
        pipeline_config, processors = load_pipeline_config(Path(args.config), settings)
        report = default_dispatcher(settings).run_pipeline(pipeline_config, processors)
        for line in report.render_lines():
            print(line)
        return 0 if report.ok else 1

    if args.cmd == "bootstrap":
        if not settings.init_load_csv:
            bootstrap(settings, _NullStore())
            print("bootstrap: nothing to load")
            return 0
        with connect(settings) as conn:
            report = bootstrap(settings, PsycopgStagingStore(conn))
        if report is None:
            print("bootstrap: nothing to load")
            return 0
        for line in report.render_lines():
            print(line)
        return 0 if report.ok else 1

    return 2
