import json

from typer.testing import CliRunner

from csvpipe.main import app

runner = CliRunner()

JOB_YAML = """
input:
  root: data
  include: ["*.csv"]
  format:
    columns: [ID, PRICE]
    delimiter: ";"
    auto_trim: true
output:
  path: out.csv
  format:
    columns: [ID, PRICE]
rules:
  - column: ID
    description: Must have a length of exactly 10 characters
    check: has_length
    args: [10]
  - column: PRICE
    description: Must be a positive float
    check: is_greater
    args: [0]
invalid_records: skip
"""


def _workspace(tmp_path, rows="ID;PRICE\n0000000001; 12.50\n0000000002;-1\n"):
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "prices.csv").write_text(rows, encoding="utf-8")
    job = tmp_path / "job.yml"
    job.write_text(JOB_YAML, encoding="utf-8")
    return job


def _global_args(tmp_path, run_id="r1"):
    return ["--log-dir", str(tmp_path / "logs"), "--report-dir", str(tmp_path / "reports"), "--run-id", run_id]


def _report(tmp_path, command, run_id="r1"):
    path = tmp_path / "reports" / f"report_{command}_{run_id}.json"
    return json.loads(path.read_text(encoding="utf-8"))


def test_help_shows_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "run" in result.output
    assert "scan" in result.output


def test_run_requires_job(tmp_path):
    result = runner.invoke(app, [*_global_args(tmp_path), "run"])
    assert result.exit_code == 2


def test_run_exports_valid_rows_and_writes_report(tmp_path):
    job = _workspace(tmp_path)

    result = runner.invoke(app, [*_global_args(tmp_path), "run", "--job", str(job)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out.csv").read_text(encoding="utf-8") == "ID,PRICE\n0000000001,12.50\n"
    assert "exported=1" in result.output
    assert (tmp_path / "logs" / "run_r1.log").exists()

    report = _report(tmp_path, "run")
    assert report["status"] == "PARTIAL"
    assert report["summary"]["records_total"] == 2
    assert report["summary"]["records_exported"] == 1
    assert report["summary"]["records_skipped"] == 1
    assert report["summary"]["by_column"] == {"PRICE": 1}
    assert report["items"][0]["index"] == 1


def test_run_output_option_overrides_job(tmp_path):
    job = _workspace(tmp_path)
    target = tmp_path / "custom" / "result.csv"

    result = runner.invoke(app, [*_global_args(tmp_path), "run", "--job", str(job), "--output", str(target)])

    assert result.exit_code == 0, result.output
    assert target.exists()
    assert not (tmp_path / "out.csv").exists()


def test_run_pipeline_failure_exits_1(tmp_path):
    job = _workspace(tmp_path, rows="ID;PRICE\n0000000001;1;extra\n")

    result = runner.invoke(app, [*_global_args(tmp_path), "run", "--job", str(job)])

    assert result.exit_code == 1
    assert not (tmp_path / "out.csv").exists()
    report = _report(tmp_path, "run")
    assert report["status"] == "FAILED"
    assert report["error"]["code"] == "CSV_STRUCTURE"


def test_run_invalid_job_exits_2(tmp_path):
    job = tmp_path / "job.yml"
    job.write_text("input: {}\n", encoding="utf-8")

    result = runner.invoke(app, [*_global_args(tmp_path), "run", "--job", str(job)])

    assert result.exit_code == 2
    assert _report(tmp_path, "run")["error"]["code"] == "CONFIG_ERROR"


def test_scan_prints_sorted_matches(tmp_path):
    (tmp_path / "data" / "b").mkdir(parents=True)
    (tmp_path / "data" / "b" / "a.csv").write_text("x", encoding="utf-8")
    (tmp_path / "data" / "c.csv").write_text("x", encoding="utf-8")
    (tmp_path / "data" / "skip.txt").write_text("x", encoding="utf-8")

    result = runner.invoke(
        app,
        [*_global_args(tmp_path, "s1"), "scan", "--root", str(tmp_path / "data"), "--include", "**/*.csv", "--sorted"],
    )

    assert result.exit_code == 0, result.output
    printed = [line for line in result.output.splitlines() if line.endswith(".csv")]
    assert [line.rsplit("/", 1)[-1] for line in printed] == ["a.csv", "c.csv"]
    assert _report(tmp_path, "scan", "s1")["summary"]["files_total"] == 2


def test_scan_missing_root_exits_2(tmp_path):
    result = runner.invoke(
        app, [*_global_args(tmp_path), "scan", "--root", str(tmp_path / "nope"), "--include", "*.csv"]
    )
    assert result.exit_code == 2


def test_invalid_log_level_exits_2(tmp_path):
    result = runner.invoke(app, [*_global_args(tmp_path), "--log-level", "LOUD", "scan", "--root", ".", "--include", "*"])
    assert result.exit_code == 2
