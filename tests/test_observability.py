import json
import logging

import pytest

from prompt_scribe.observability import LOG_FILE_NAME, get_logger, setup_logging


@pytest.fixture
def reset_logging():
    yield
    # Drop the file handler so later tests log to stderr only.
    setup_logging()


def _flush():
    for handler in logging.getLogger().handlers:
        handler.flush()


def test_log_dir_gets_a_json_log_file(tmp_path, reset_logging):
    log_dir = tmp_path / "logs"
    setup_logging("DEBUG", "console", str(log_dir))

    get_logger("prompt_scribe.test").info("tool_executed", tool="echo", result="hi")
    _flush()

    lines = (log_dir / LOG_FILE_NAME).read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[-1])
    assert record["event"] == "tool_executed"
    assert record["tool"] == "echo"
    assert record["level"] == "info"
    assert "timestamp" in record


def test_repeated_setup_does_not_stack_handlers(tmp_path, reset_logging):
    setup_logging(log_dir=str(tmp_path))
    setup_logging(log_dir=str(tmp_path))

    names = [h.get_name() for h in logging.getLogger().handlers]
    assert names.count("prompt_scribe.console") == 1
    assert names.count("prompt_scribe.file") == 1


def test_no_log_dir_means_no_file(tmp_path, reset_logging):
    setup_logging()

    names = [h.get_name() for h in logging.getLogger().handlers]
    assert "prompt_scribe.file" not in names
