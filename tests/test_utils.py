"""Tests for logging setup and console helpers."""

import json
import logging

from jobconsole.utils import StructuredFormatter, print_error, print_status, setup_logging


def test_structured_formatter():
    record = logging.LogRecord("jobconsole.registry", logging.INFO, __file__, 1, "Stopped job %s", (3,), None)
    record.job_id = 3
    data = json.loads(StructuredFormatter().format(record))
    assert data["level"] == "INFO"
    assert data["message"] == "Stopped job 3"
    assert data["logger"] == "jobconsole.registry"
    assert data["job_id"] == 3


def test_setup_logging_with_file(tmp_path):
    log_file = tmp_path / "logs" / "jobconsole.log"
    logger = setup_logging("DEBUG", "structured", log_file)
    try:
        assert logger.level == logging.DEBUG
        logging.getLogger("jobconsole.test").info("hello")
        for handler in logger.handlers:
            handler.flush()
        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "hello"
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []
        logger.setLevel(logging.NOTSET)


def test_print_helpers_escape_markup(capsys):
    print_status("Usage: rename_job [ID] [Name]")
    print_error("bad [bold]thing[/bold]")
    out = capsys.readouterr().out
    assert "[ID] [Name]" in out
    assert "[bold]thing[/bold]" in out
