import logging

import pytest

from csvpipe.infra.logging.setup import (
    StdStreamToLogger,
    close_command_logger,
    create_command_logger,
    log_event,
    map_log_level,
)


def test_map_log_level():
    assert map_log_level("warn") == logging.WARNING
    assert map_log_level("DEBUG") == logging.DEBUG
    with pytest.raises(ValueError):
        map_log_level("loud")


def test_command_logger_writes_run_id_and_component(tmp_path):
    logger, log_file = create_command_logger("run", str(tmp_path), "abc", "INFO")
    try:
        log_event(logger, logging.INFO, "abc", "scan", "Processing a.csv")
        logging.getLogger("csvpipe.domain.csv.importer").info("library message")
        logger.debug("hidden")
    finally:
        close_command_logger(logger)

    text = open(log_file, encoding="utf-8").read()
    assert "runId=abc comp=scan msg=Processing a.csv" in text
    assert "comp=core msg=library message" in text
    assert "hidden" not in text


def test_std_stream_to_logger_splits_lines(caplog):
    logger = logging.getLogger("tests.stdstream")
    stream = StdStreamToLogger(logger, logging.INFO, "r", "stdout")
    with caplog.at_level(logging.INFO, logger="tests.stdstream"):
        stream.write("one\ntw")
        stream.write("o\n")
        stream.write("tail")
        stream.flush()
    assert [r.getMessage() for r in caplog.records] == ["one", "two", "tail"]
