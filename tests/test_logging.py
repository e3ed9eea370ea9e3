import json
import logging

import pytest

from calcagent.logging_config import configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_logging(capsys, tmp_path):
    configure_logging(level="INFO", json_format=True, log_file=str(tmp_path / "calc.log"))
    logger = logging.getLogger("test.json")
    logger.info("hello json")

    captured = capsys.readouterr()
    record = json.loads(captured.err.strip())
    assert record["message"] == "hello json"
    assert record["level"] == "INFO"
    assert record["logger"] == "test.json"
    assert "timestamp" in record


def test_plain_logging(capsys, tmp_path):
    configure_logging(level="INFO", json_format=False, log_file=str(tmp_path / "calc.log"))
    logger = logging.getLogger("test.plain")
    logger.info("hello plain")

    captured = capsys.readouterr()
    line = captured.err.strip()
    assert "hello plain" in line
    assert "test.plain" in line
    # Should NOT be JSON
    try:
        json.loads(line)
        assert False, "Expected plain text, got JSON"
    except json.JSONDecodeError:
        pass


def test_log_level_filtering(capsys, tmp_path):
    configure_logging(level="WARNING", json_format=True, log_file=str(tmp_path / "calc.log"))
    logger = logging.getLogger("test.level")
    logger.info("should not appear")
    logger.warning("should appear")

    captured = capsys.readouterr()
    lines = [l for l in captured.err.strip().splitlines() if l]
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["message"] == "should appear"


def test_file_handler_creates_directory(tmp_path):
    log_file = tmp_path / "logs" / "calc.log"
    configure_logging(level="INFO", log_file=str(log_file))
    logging.getLogger("test.file").info("written to file")

    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "written to file" in log_file.read_text(encoding="utf-8")


def test_reconfigure_replaces_handlers(tmp_path):
    configure_logging(log_file=str(tmp_path / "a.log"))
    configure_logging(log_file=str(tmp_path / "b.log"))
    assert len(logging.getLogger().handlers) == 2
