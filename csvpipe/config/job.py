from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

import yaml

from csvpipe.domain.csv.exporter import CsvExporter
from csvpipe.domain.csv.format import CsvFormat
from csvpipe.domain.csv.importer import CsvImporter, InvalidRecordPolicy, StructureErrorPolicy
from csvpipe.domain.csv.record import CsvRecord
from csvpipe.domain.errors import CsvConfigurationError
from csvpipe.domain.ports.text_io import TextSink, TextSource
from csvpipe.domain.validation.field_functions import resolve_check
from csvpipe.domain.validation.validator import CsvValidator
from csvpipe.infra.scan.path_scanner import PathScanner
from csvpipe.usecases.observer import Observer
from csvpipe.usecases.transform_pipeline import CsvTransformPipeline


@dataclass(frozen=True)
class RuleSpec:
    column: str
    description: str
    check: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class JobSpec:
    """
    Назначение:
        Описание задачи преобразования из YAML job-файла.

    Инварианты:
        - Относительные пути (root, output) разрешаются от каталога job-файла.
        - column_map: выходная колонка -> входная колонка; по умолчанию
          выходные колонки совпадают по именам с входными.
    """

    root: Path
    includes: tuple[str, ...]
    input_format: CsvFormat
    output_format: CsvFormat
    column_map: Mapping[str, str]
    excludes: tuple[str, ...] = ()
    output_path: Path | None = None
    rules: tuple[RuleSpec, ...] = ()
    fail_on_validation_error: bool = False
    invalid_records: InvalidRecordPolicy = InvalidRecordPolicy.FORWARD
    structure_errors: StructureErrorPolicy = StructureErrorPolicy.FAIL
    source_path: Path | None = field(default=None, compare=False)


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in data or data[key] is None:
        raise CsvConfigurationError(f"Missing '{key}' in {where}")
    return data[key]


def _as_list(value: Any, where: str) -> list[Any]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise CsvConfigurationError(f"Expected a list in {where}, got {type(value).__name__}")


def parse_format(data: Mapping[str, Any], where: str) -> CsvFormat:
    if not isinstance(data, Mapping):
        raise CsvConfigurationError(f"Expected a mapping in {where}")
    builder = (
        CsvFormat.builder()
        .columns(*[str(c) for c in _as_list(_require(data, "columns", where), f"{where}.columns")])
        .delimiter(str(data.get("delimiter", ",")))
        .quote_mode(data.get("quote_mode", "minimal"))
        .auto_trim(bool(data.get("auto_trim", False)))
    )
    if "line_separator" in data:
        builder.line_separator(str(data["line_separator"]))
    return builder.build()


def _resolve_path(value: str | None, base: Path) -> Path | None:
    if value is None:
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def parse_job(data: Mapping[str, Any], base_dir: Path, source_path: Path | None = None) -> JobSpec:
    """
    Назначение:
        Построить JobSpec из словаря (разобранный YAML).

    Ошибки:
        CsvConfigurationError: отсутствующие/некорректные параметры.
    """
    if not isinstance(data, Mapping):
        raise CsvConfigurationError("Job file must contain a mapping")
    input_cfg = _require(data, "input", "job")
    output_cfg = _require(data, "output", "job")

    input_format = parse_format(_require(input_cfg, "format", "input"), "input.format")
    output_format = parse_format(_require(output_cfg, "format", "output"), "output.format")

    raw_map = output_cfg.get("columns")
    if raw_map is None:
        column_map = {column: column for column in output_format.columns}
    elif isinstance(raw_map, Mapping):
        column_map = {str(k): str(v) for k, v in raw_map.items()}
    else:
        raise CsvConfigurationError("output.columns must map output columns to input columns")

    missing_out = [c for c in output_format.columns if c not in column_map]
    if missing_out:
        raise CsvConfigurationError(f"No input column mapped for output columns: {', '.join(missing_out)}")
    unknown_in = sorted({v for v in column_map.values() if not input_format.has_column(v)})
    if unknown_in:
        raise CsvConfigurationError(f"Output mapping references unknown input columns: {', '.join(unknown_in)}")

    rules: list[RuleSpec] = []
    for pos, rule in enumerate(data.get("rules") or []):
        where = f"rules[{pos}]"
        if not isinstance(rule, Mapping):
            raise CsvConfigurationError(f"Expected a mapping in {where}")
        rules.append(
            RuleSpec(
                column=str(_require(rule, "column", where)),
                description=str(rule.get("description") or rule.get("check")),
                check=str(_require(rule, "check", where)),
                args=tuple(_as_list(rule.get("args", []), f"{where}.args")),
            )
        )

    try:
        invalid_records = InvalidRecordPolicy(str(data.get("invalid_records", "forward")).lower())
        structure_errors = StructureErrorPolicy(str(data.get("structure_errors", "fail")).lower())
    except ValueError as exc:
        raise CsvConfigurationError(f"Invalid policy value: {exc}") from exc

    return JobSpec(
        root=_resolve_path(str(_require(input_cfg, "root", "input")), base_dir),
        includes=tuple(str(p) for p in _as_list(_require(input_cfg, "include", "input"), "input.include")),
        excludes=tuple(str(p) for p in _as_list(input_cfg.get("exclude") or [], "input.exclude")),
        input_format=input_format,
        output_format=output_format,
        column_map=column_map,
        output_path=_resolve_path(output_cfg.get("path"), base_dir),
        rules=tuple(rules),
        fail_on_validation_error=bool(data.get("fail_on_validation_error", False)),
        invalid_records=invalid_records,
        structure_errors=structure_errors,
        source_path=source_path,
    )


def load_job(path: str | Path) -> JobSpec:
    job_path = Path(path)
    if not job_path.is_file():
        raise CsvConfigurationError(f"Job file not found: {job_path}")
    with job_path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise CsvConfigurationError(f"Invalid YAML in job file {job_path}: {exc}") from exc
    return parse_job(data or {}, base_dir=job_path.parent, source_path=job_path)


def build_validator(job: JobSpec) -> CsvValidator:
    builder = CsvValidator.builder(job.input_format.columns)
    for rule in job.rules:
        builder.validate_column(rule.column, rule.description, resolve_check(rule.check, rule.args))
    return builder.build()


def build_importer(job: JobSpec) -> CsvImporter[CsvRecord]:
    return (
        CsvImporter.builder()
        .format(job.input_format)
        .validator(build_validator(job))
        .fail_on_validation_error(job.fail_on_validation_error)
        .invalid_records(job.invalid_records)
        .structure_errors(job.structure_errors)
        .build()
    )


def build_exporter(job: JobSpec) -> CsvExporter[CsvRecord]:
    sources = tuple(job.column_map[column] for column in job.output_format.columns)
    return CsvExporter.builder().format(job.output_format).mapper(lambda rec: [rec[c] for c in sources]).build()


def build_scanner(job: JobSpec) -> PathScanner:
    return PathScanner.builder().include_regular_files(*job.includes).exclude(*job.excludes).build()


def build_pipeline(
    job: JobSpec,
    target: TextSink,
    observers: Iterable[Observer | None] = (),
    open_source: Callable[[Path], TextSource] | None = None,
) -> CsvTransformPipeline:
    """
    Назначение:
        Собрать оркестратор по JobSpec. Все ошибки конфигурации возникают здесь,
        до запуска.
    """
    return CsvTransformPipeline(
        scanner=build_scanner(job),
        root=job.root,
        importer=build_importer(job),
        exporter=build_exporter(job),
        target=target,
        observers=observers,
        open_source=open_source,
    )


__all__ = ["JobSpec", "RuleSpec", "load_job", "parse_job", "parse_format", "build_pipeline"]
