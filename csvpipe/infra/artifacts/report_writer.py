from __future__ import annotations

import json
import os
from pathlib import Path

from csvpipe.domain.reporting.collector import ReportCollector, asdict_report


def report_path(report_dir: str | Path, command: str, run_id: str) -> Path:
    return Path(report_dir) / f"report_{command}_{run_id}.json"


def open_report(run_id: str, command: str, config_sources: list[str], items_limit: int | None = None) -> ReportCollector:
    report = ReportCollector(run_id=run_id, command=command, items_limit=items_limit)
    if config_sources:
        report.set_context("config", {"sources": list(config_sources)})
    return report


def save_report(report: ReportCollector, report_dir: str | Path, duration_ms: int, log_file: str | None = None) -> Path:
    """
    Назначение:
        Завершить отчёт (время, длительность, runtime-контекст) и записать
        его в <report_dir>/report_<command>_<run_id>.json.

    Поведение:
        - JSON пишется во временный файл и переименовывается, поэтому
          читатель никогда не увидит недописанный отчёт.
        - Значения, не сериализуемые в JSON (Path и т.п.), пишутся через str().
    """
    report.set_context("runtime", {"log_file": log_file, "report_dir": str(report_dir)})
    report.finish(duration_ms=duration_ms)

    target = report_path(report_dir, report.meta.command, report.meta.run_id)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(target.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(asdict_report(report.build()), f, ensure_ascii=False, indent=2, default=str)
    os.replace(tmp, target)
    return target


__all__ = ["open_report", "save_report", "report_path"]
