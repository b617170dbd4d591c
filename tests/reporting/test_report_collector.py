import json

from csvpipe.domain.csv.record import CsvRecord
from csvpipe.domain.errors import CsvHeaderError
from csvpipe.domain.reporting.collector import ReportCollector, asdict_report
from csvpipe.domain.validation.models import RECORD_LEVEL, ValidationOutcome, Violation
from csvpipe.infra.artifacts.report_writer import open_report, save_report


def _outcome(index, *columns):
    record = CsvRecord(("ID", "PRICE"), ("1", "-1"), index=index, line_no=index + 2, raw="1;-1", source="p.csv")
    return ValidationOutcome(
        record=record,
        violations=tuple(Violation(column=c, description=f"{c} rule", value="-1") for c in columns),
        index=index,
        source="p.csv",
        raw="1;-1",
        line_no=index + 2,
    )


def test_counts_and_partial_status():
    report = ReportCollector(run_id="r1", command="run")
    report.add_file()
    report.add_record()
    report.add_record()
    report.add_outcome(_outcome(1, "PRICE", "ID"), skipped=True)
    report.set_exported(1)
    report.finish(duration_ms=5)

    envelope = report.build()
    assert envelope.status == "PARTIAL"
    assert envelope.summary.files_total == 1
    assert envelope.summary.records_total == 2
    assert envelope.summary.records_invalid == 1
    assert envelope.summary.records_skipped == 1
    assert envelope.summary.violations_total == 2
    assert envelope.summary.by_column == {"PRICE": 1, "ID": 1}
    assert envelope.items[0].status == "INVALID"
    assert [d.column for d in envelope.items[0].diagnostics] == ["PRICE", "ID"]
    assert envelope.meta.duration_ms == 5


def test_malformed_records_counted_separately():
    report = ReportCollector(run_id="r1", command="run")
    outcome = ValidationOutcome(
        record=None,
        violations=(Violation(column=RECORD_LEVEL, description="Unterminated quoted field", value='"x'),),
        index=3,
        source="p.csv",
        raw='"x',
        line_no=5,
    )
    report.add_malformed(outcome)

    summary = report.build().summary
    assert summary.structure_errors == 1
    assert summary.records_skipped == 1
    assert summary.records_invalid == 0
    assert report.build().status == "PARTIAL"


def test_items_limit_truncates():
    report = ReportCollector(run_id="r1", command="run", items_limit=2)
    for index in range(4):
        report.add_outcome(_outcome(index, "PRICE"))

    assert len(report.items) == 2
    assert report.meta.items_truncated is True
    assert report.summary.records_invalid == 4


def test_error_sets_failed_status_with_code():
    report = ReportCollector(run_id="r1", command="run")
    report.set_error(CsvHeaderError(message="bad header", source="p.csv", line_no=1))
    report.finish()

    envelope = report.build()
    assert envelope.status == "FAILED"
    assert envelope.error["code"] == "CSV_HEADER"
    assert envelope.error["details"]["source"] == "p.csv"


def test_unexpected_error_code():
    report = ReportCollector(run_id="r1", command="run")
    report.set_error(PermissionError("denied"))
    assert report.error["code"] == "IO_ERROR"
    assert report.error["details"]["type"] == "PermissionError"


def test_report_written_as_json(tmp_path):
    report = open_report(run_id="r1", command="scan", config_sources=["env"], items_limit=10)
    report.add_outcome(_outcome(0, "PRICE"))

    path = save_report(report, report_dir=tmp_path, duration_ms=12, log_file="x.log")

    assert path == tmp_path / "report_scan_r1.json"
    assert not list(tmp_path.glob("*.tmp"))

    data = json.loads(open(path, encoding="utf-8").read())
    assert data["status"] == "PARTIAL"
    assert data["meta"]["run_id"] == "r1"
    assert data["meta"]["items_limit"] == 10
    assert "app_version" not in data["meta"]
    assert data["context"]["config"] == {"sources": ["env"]}
    assert data["context"]["runtime"]["log_file"] == "x.log"
    assert data["items"][0]["diagnostics"][0]["column"] == "PRICE"
    assert asdict_report(report.build())["summary"]["records_invalid"] == 1
