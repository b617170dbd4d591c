from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

import typer

from csvpipe.common.clock import Stopwatch, new_run_id
from csvpipe.config.config import Settings, load_settings
from csvpipe.config.job import JobSpec, build_pipeline, load_job
from csvpipe.domain.csv.importer import InvalidRecordPolicy
from csvpipe.domain.errors import CsvConfigurationError, ScanError
from csvpipe.domain.reporting.collector import ReportCollector
from csvpipe.infra.artifacts.report_writer import open_report, save_report
from csvpipe.infra.io.text_io import TextReader, TextWriter
from csvpipe.infra.logging.setup import (
    StdStreamToLogger,
    TeeStream,
    close_command_logger,
    create_command_logger,
    log_event,
    map_log_level,
)
from csvpipe.infra.scan.path_scanner import PathScanner
from csvpipe.usecases.observers import LoggingObserver, ReportObserver

app = typer.Typer(no_args_is_help=True, add_completion=False)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

CommandRunner = Callable[[logging.Logger, ReportCollector], int]


def ensure_dir(path: str) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def print_run_header(run_id: str, command: str, settings: Settings, sources: list[str]) -> None:
    typer.echo(
        f"run_id={run_id} command={command} sources={sources} "
        f"log_level={settings.log_level} encoding={settings.encoding}"
    )


def run_with_report(ctx: typer.Context, command_name: str, runner: CommandRunner) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога
        - создаёт скелет отчёта
        - дублирует stdout/stderr в лог (tee)
        - гарантирует запись отчёта в finally

    Входные данные:
        ctx: typer.Context
        command_name: str
        runner: (logger, report) -> exit code

    Поведение:
        - Код возврата runner становится кодом выхода процесса.
    """
    run_id = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    stopwatch = Stopwatch()

    logger, log_file_path = create_command_logger(
        command_name=command_name,
        log_dir=settings.log_dir,
        run_id=run_id,
        log_level=settings.log_level,
    )

    report = open_report(
        run_id=run_id,
        command=command_name,
        config_sources=sources,
        items_limit=settings.report_items_limit,
    )

    original_stdout = sys.stdout
    original_stderr = sys.stderr
    sys.stdout = TeeStream(original_stdout, StdStreamToLogger(logger, logging.INFO, run_id, "stdout"))
    sys.stderr = TeeStream(original_stderr, StdStreamToLogger(logger, logging.ERROR, run_id, "stderr"))

    exit_code: int | None = None

    try:
        log_event(logger, logging.INFO, run_id, "core", "Command started")
        print_run_header(run_id, command_name, settings, sources)
        exit_code = runner(logger, report)
    finally:
        report_path = save_report(
            report,
            report_dir=settings.report_dir,
            duration_ms=stopwatch.elapsed_ms(),
            log_file=log_file_path,
        )
        log_event(logger, logging.INFO, run_id, "report", f"Report written: {report_path}")

        sys.stdout.flush()
        sys.stderr.flush()
        sys.stdout = original_stdout
        sys.stderr = original_stderr
        close_command_logger(logger)

    if exit_code is not None:
        raise typer.Exit(code=exit_code)


def _resolve_output(job: JobSpec, output: str | None) -> Path | None:
    if output:
        return Path(output)
    return job.output_path


def run_transform_command(ctx: typer.Context, job_path: str, output: str | None) -> None:
    settings: Settings = ctx.obj["settings"]
    run_id = ctx.obj["runId"]

    def execute(logger: logging.Logger, report: ReportCollector) -> int:
        try:
            job = load_job(job_path)
        except CsvConfigurationError as exc:
            log_event(logger, logging.ERROR, run_id, "config", f"Invalid job: {exc}")
            report.set_error(exc)
            typer.echo(f"ERROR: {exc}", err=True)
            return EXIT_USAGE

        target_path = _resolve_output(job, output)
        if target_path is None:
            log_event(logger, logging.ERROR, run_id, "config", "Output path is not configured")
            report.set_error(CsvConfigurationError("Output path is not configured (job output.path or --output)"))
            typer.echo("ERROR: output path is required (job output.path or --output)", err=True)
            return EXIT_USAGE

        report.set_context(
            "job",
            {
                "path": str(job_path),
                "root": str(job.root),
                "include": list(job.includes),
                "exclude": list(job.excludes),
                "output": str(target_path),
            },
        )

        skip_invalid = job.invalid_records is InvalidRecordPolicy.SKIP and not job.fail_on_validation_error
        try:
            pipeline = build_pipeline(
                job,
                target=TextWriter.from_file(target_path),
                observers=[LoggingObserver(logger, run_id), ReportObserver(report, skip_invalid=skip_invalid)],
                open_source=lambda p: TextReader.from_file(p, encoding=settings.encoding),
            )
        except CsvConfigurationError as exc:
            log_event(logger, logging.ERROR, run_id, "config", f"Invalid job: {exc}")
            report.set_error(exc)
            typer.echo(f"ERROR: {exc}", err=True)
            return EXIT_USAGE

        result = pipeline.run()
        if not result.ok:
            typer.echo(f"ERROR: pipeline failed: {result.error} (see logs/report)", err=True)
            return EXIT_FAILED

        summary = result.value
        report.set_exported(summary.exported_count)
        typer.echo(
            f"files={summary.file_count} records={summary.record_count} exported={summary.exported_count} "
            f"invalid={summary.invalid_count} skipped={summary.skipped_count} output={target_path}"
        )
        return EXIT_OK

    run_with_report(ctx=ctx, command_name="run", runner=execute)


def run_scan_command(
    ctx: typer.Context,
    root: str,
    includes: list[str],
    excludes: list[str],
    sort_by_name: bool,
) -> None:
    run_id = ctx.obj["runId"]

    def execute(logger: logging.Logger, report: ReportCollector) -> int:
        try:
            scanner = PathScanner.builder().include_regular_files(*includes).exclude(*excludes).build()
        except CsvConfigurationError as exc:
            report.set_error(exc)
            typer.echo(f"ERROR: {exc}", err=True)
            return EXIT_USAGE

        paths = scanner.scan(root)
        if sort_by_name:
            paths = paths.sorted(key=lambda p: (p.name, str(p)))
        found: list[str] = []
        try:
            for path in paths:
                report.add_file()
                found.append(str(path))
                typer.echo(str(path))
        except ScanError as exc:
            log_event(logger, logging.ERROR, run_id, "scan", f"Scan failed: {exc}")
            report.set_error(exc)
            typer.echo(f"ERROR: {exc}", err=True)
            return EXIT_USAGE

        report.set_context("files", {"root": root, "paths": found})
        log_event(logger, logging.INFO, run_id, "scan", f"Matched {len(found)} file(s)")
        return EXIT_OK

    run_with_report(ctx=ctx, command_name="scan", runner=execute)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", help="Path to config.yml"),
    run_id: Optional[str] = typer.Option(None, "--run-id", help="Run identifier used in log and report names. Generated if omitted."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    log_dir: Optional[str] = typer.Option(None, "--log-dir", help="Directory for logs."),
    report_dir: Optional[str] = typer.Option(None, "--report-dir", help="Directory for reports."),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - создаёт каталоги log/report
        - сохраняет всё в ctx.obj для подкоманд
    """
    if not run_id:
        run_id = new_run_id()

    cli_overrides = {
        "log_level": log_level,
        "log_dir": log_dir,
        "report_dir": report_dir,
    }
    try:
        loaded = load_settings(config_path=config, cli_overrides=cli_overrides)
        map_log_level(loaded.settings.log_level)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=EXIT_USAGE)

    ensure_dir(loaded.settings.log_dir)
    ensure_dir(loaded.settings.report_dir)

    ctx.obj = {
        "runId": run_id,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }


@app.command("run")
def run(
    ctx: typer.Context,
    job: str = typer.Option(..., "--job", help="Path to the job YAML file"),
    output: Optional[str] = typer.Option(None, "--output", help="Output CSV path (overrides job output.path)"),
):
    """Scan, import, validate and export CSV files as described by a job file."""
    run_transform_command(ctx, job, output)


@app.command("scan")
def scan(
    ctx: typer.Context,
    root: str = typer.Option(..., "--root", help="Root directory to scan"),
    include: List[str] = typer.Option(..., "--include", help="Glob pattern of files to include (repeatable)"),
    exclude: List[str] = typer.Option([], "--exclude", help="Glob pattern to exclude (repeatable)"),
    sort_by_name: bool = typer.Option(False, "--sorted", help="Sort matches by file name"),
):
    """Print regular files under ROOT matching the include patterns."""
    run_scan_command(ctx, root, include, exclude, sort_by_name)


if __name__ == "__main__":
    app()
