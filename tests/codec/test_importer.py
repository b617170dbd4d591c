import io
from pathlib import Path

import pytest

from csvpipe.domain.csv.exporter import CsvExporter
from csvpipe.domain.csv.format import CsvFormat
from csvpipe.domain.csv.importer import CsvImporter, InvalidRecordPolicy, StructureErrorPolicy
from csvpipe.domain.errors import (
    CsvConfigurationError,
    CsvHeaderError,
    CsvMappingError,
    CsvStructureError,
    CsvValidationError,
)
from csvpipe.domain.validation.field_functions import has_length, is_float, is_greater
from csvpipe.domain.validation.validator import CsvValidator
from csvpipe.infra.io.text_io import TextReader, TextWriter


class _Listener:
    def __init__(self):
        self.records = []
        self.violations = []
        self.structure_errors = []

    def on_record(self, record):
        self.records.append(record)

    def on_violation(self, outcome):
        self.violations.append(outcome)

    def on_structure_error(self, error):
        self.structure_errors.append(error)


def _price_format():
    return CsvFormat.builder().columns("ID", "PRICE").delimiter(";").auto_trim().build()


def _price_validator():
    return (
        CsvValidator.builder(["ID", "PRICE"])
        .validate_column("ID", "Must have a length of exactly 10 characters", lambda v: has_length(v, 10))
        .validate_column("PRICE", "Must be a positive float", lambda v: is_float(v) and is_greater(v, 0))
        .build()
    )


def test_price_file_end_to_end_skips_invalid_row_and_reports_violation():
    source = TextReader.from_string("ID;PRICE\n0000000001; 12.50\n0000000002;-1\n", name="prices.csv")
    importer = (
        CsvImporter.builder()
        .format(_price_format())
        .validator(_price_validator())
        .invalid_records(InvalidRecordPolicy.SKIP)
        .build()
    )
    exporter = (
        CsvExporter.builder()
        .format(CsvFormat.builder().columns("ID", "PRICE").build())
        .mapper(lambda r: [r["ID"], r["PRICE"]])
        .build()
    )
    listener = _Listener()
    out = io.StringIO()

    written = exporter.export(importer.parse(source, listener), TextWriter.from_stream(out))

    assert written == 1
    assert out.getvalue() == "ID,PRICE\n0000000001,12.50\n"
    assert len(listener.records) == 2
    assert len(listener.violations) == 1
    outcome = listener.violations[0]
    assert outcome.index == 1
    assert outcome.columns == ("PRICE",)
    assert outcome.source == "prices.csv"
    assert outcome.line_no == 3
    assert outcome.raw == "0000000002;-1"
    assert outcome.violations[0].value == "-1"


def test_invalid_records_forwarded_by_default():
    source = TextReader.from_string("ID;PRICE\n0000000001;1\nshort;-5\n")
    importer = CsvImporter.builder().format(_price_format()).validator(_price_validator()).build()
    listener = _Listener()

    records = importer.parse(source, listener).to_list()

    assert [r["ID"] for r in records] == ["0000000001", "short"]
    assert len(listener.violations) == 1
    assert listener.violations[0].columns == ("ID", "PRICE")


def test_fail_on_validation_error_aborts_with_first_outcome():
    source = TextReader.from_string("ID;PRICE\n0000000001;1\n0000000002;x\n0000000003;y\n")
    importer = (
        CsvImporter.builder()
        .format(_price_format())
        .validator(_price_validator())
        .fail_on_validation_error()
        .build()
    )
    pulled = []

    with pytest.raises(CsvValidationError) as exc_info:
        importer.parse(source).for_each(pulled.append)

    assert len(pulled) == 1
    assert exc_info.value.index == 1
    assert [v.column for v in exc_info.value.violations] == ["PRICE"]


def test_header_may_reorder_columns():
    source = TextReader.from_string("PRICE;ID\n5;A\n")
    record = CsvImporter.builder().format(_price_format()).build().parse(source).first()
    assert record.values() == ("A", "5")
    assert record["PRICE"] == "5"
    assert record.index == 0
    assert record.line_no == 2


@pytest.mark.parametrize("text", ["", "ID;COST\n1;2\n", "ID;PRICE;EXTRA\n1;2;3\n", '"ID;PRICE\n'])
def test_bad_or_missing_header_is_fatal(text):
    importer = CsvImporter.builder().format(_price_format()).build()
    with pytest.raises(CsvHeaderError):
        importer.parse(TextReader.from_string(text)).to_list()


def test_column_count_mismatch_fails_by_default():
    importer = CsvImporter.builder().format(_price_format()).build()
    source = TextReader.from_string("ID;PRICE\n1;2\n3;4;5\n6;7\n", name="bad.csv")

    with pytest.raises(CsvStructureError) as exc_info:
        importer.parse(source).to_list()

    err = exc_info.value
    assert not isinstance(err, CsvHeaderError)
    assert err.index == 1
    assert err.line_no == 3
    assert err.source == "bad.csv"
    assert err.raw == "3;4;5"


def test_structure_errors_skipped_when_configured():
    importer = (
        CsvImporter.builder()
        .format(_price_format())
        .structure_errors(StructureErrorPolicy.SKIP)
        .build()
    )
    source = TextReader.from_string('ID;PRICE\n1;2\n3;4;5\n"x"y;1\n6;7\n')
    listener = _Listener()

    records = importer.parse(source, listener).to_list()

    assert [r["ID"] for r in records] == ["1", "6"]
    assert [r.index for r in records] == [0, 3]
    assert [e.index for e in listener.structure_errors] == [1, 2]


def test_mapper_failure_is_wrapped_with_context():
    def mapper(record):
        return float(record["PRICE"])

    importer = CsvImporter.builder().format(_price_format()).mapper(mapper).build()
    source = TextReader.from_string("ID;PRICE\n1;2.5\n2;abc\n", name="m.csv")

    with pytest.raises(CsvMappingError) as exc_info:
        importer.parse(source).to_list()

    assert exc_info.value.index == 1
    assert exc_info.value.source == "m.csv"
    assert isinstance(exc_info.value.__cause__, ValueError)


def test_mapper_transforms_records():
    importer = CsvImporter.builder().format(_price_format()).mapper(lambda r: (r["ID"], float(r["PRICE"]))).build()
    assert importer.parse(TextReader.from_string("ID;PRICE\nA;1.5\n")).to_list() == [("A", 1.5)]


def test_source_is_opened_lazily_and_closed_after_early_stop():
    opened = []

    def opener():
        stream = io.StringIO("ID;PRICE\n1;1\n2;2\n3;3\n", newline="")
        opened.append(stream)
        return stream

    importer = CsvImporter.builder().format(_price_format()).build()
    seq = importer.parse(TextReader(opener, name="lazy"))
    assert opened == []

    assert seq.first()["ID"] == "1"
    assert len(opened) == 1
    assert opened[0].closed


def test_parse_files_keeps_file_then_row_order():
    contents = {
        "f1.csv": "ID;PRICE\nA;1\nB;2\n",
        "f2.csv": "ID;PRICE\nC;3\nD;4\n",
    }
    importer = CsvImporter.builder().format(_price_format()).build()
    seq = importer.parse_files(
        [Path("f1.csv"), Path("f2.csv")],
        lambda p: TextReader.from_string(contents[p.name], name=p.name),
    )

    records = seq.to_list()
    assert [r["ID"] for r in records] == ["A", "B", "C", "D"]
    assert [r.source for r in records] == ["f1.csv", "f1.csv", "f2.csv", "f2.csv"]



def test_parse_files_opens_one_file_at_a_time():
    opened = []

    def open_source(path):
        def opener():
            assert all(stream.closed for stream in opened), "previous file still open"
            stream = io.StringIO(f"ID;PRICE\n{path.stem};1\n", newline="")
            opened.append(stream)
            return stream

        return TextReader(opener, name=path.name)

    importer = CsvImporter.builder().format(_price_format()).build()
    seq = importer.parse_files([Path("a.csv"), Path("b.csv"), Path("c.csv")], open_source)

    assert [r["ID"] for r in seq] == ["a", "b", "c"]
    assert len(opened) == 3
    assert all(stream.closed for stream in opened)

def test_try_parse_all_returns_failure_instead_of_raising():
    importer = CsvImporter.builder().format(_price_format()).build()
    result = importer.try_parse_all(TextReader.from_string("WRONG\n"))
    assert not result.ok
    assert isinstance(result.error, CsvHeaderError)


def test_validator_with_unknown_column_fails_at_build():
    validator = CsvValidator.builder().validate_column("NOPE", "x", bool).build()
    with pytest.raises(CsvConfigurationError):
        CsvImporter.builder().format(_price_format()).validator(validator).build()


def test_importer_requires_format():
    with pytest.raises(CsvConfigurationError):
        CsvImporter.builder().build()
