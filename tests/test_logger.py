import logging
from pathlib import Path

import pytest

from ledger_categorizer.logger import ColourizedFormatter, get_logging_config


def test_console_only_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_DIR", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = get_logging_config()
    assert set(config["handlers"]) == {"console"}
    assert config["handlers"]["console"]["formatter"] == "colour"
    assert config["loggers"][""]["level"] == "DEBUG"
    assert config["loggers"]["uvicorn.access"]["handlers"] == ["console"]


def test_file_handler_when_log_dir_set(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    log_dir = tmp_path / "logs"
    monkeypatch.setenv("LOG_DIR", str(log_dir))
    monkeypatch.setenv("NO_COLOR", "1")

    config = get_logging_config()
    assert log_dir.is_dir()
    assert config["handlers"]["file"]["filename"] == str(log_dir / "app.log")
    assert config["handlers"]["console"]["formatter"] == "plain"
    assert config["loggers"][""]["handlers"] == ["console", "file"]


def test_colourized_formatter_restores_level_name() -> None:
    formatter = ColourizedFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("ledger", logging.WARNING, __file__, 1, "no match", None, None)

    output = formatter.format(record)
    assert ColourizedFormatter.YELLOW in output
    assert output.endswith("no match")
    assert record.levelname == "WARNING"
