import logging
import sys

import pytest
from pydantic import ValidationError

from sixball.config import Settings
from sixball.logging_config import setup_logging


def test_defaults(monkeypatch):
    for name in ("SIXBALL_COMMENT_SEPARATOR", "SIXBALL_TRAY_CAPACITY", "SIXBALL_MAX_GENERATIONS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)

    assert settings.comment_separator == "#"
    assert settings.tray_capacity == 10
    assert settings.max_generations == 100


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SIXBALL_TRAY_CAPACITY", "3")
    monkeypatch.setenv("SIXBALL_COMMENT_SEPARATOR", ";")
    settings = Settings(_env_file=None)

    assert settings.tray_capacity == 3
    assert settings.comment_separator == ";"


def test_capacity_must_be_positive(monkeypatch):
    monkeypatch.setenv("SIXBALL_TRAY_CAPACITY", "0")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_setup_logging_writes_to_stderr(tmp_path):
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        log_file = tmp_path / "sixball.log"
        setup_logging("debug", str(log_file), use_colors=False)

        assert root.level == logging.DEBUG
        assert root.handlers[0].stream is sys.stderr
        assert isinstance(root.handlers[1], logging.FileHandler)

        logging.getLogger("sixball.test").info("hello")
        root.handlers[1].flush()
        assert "hello" in log_file.read_text()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])


def test_setup_logging_rejects_unknown_levels():
    with pytest.raises(ValueError):
        setup_logging("loud")
