"""Tests for the logger factory."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

import config
from utils import get_logger


def test_level_and_file_come_from_config(monkeypatch, tmp_path):
    log_file = tmp_path / "logs" / "worker.log"
    monkeypatch.setattr(config, "LOG_LEVEL", "warning")
    monkeypatch.setattr(config, "LOG_FILE", str(log_file))

    logger = get_logger("tests.utils.file")

    assert logger.level == logging.WARNING
    [file_handler] = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    assert file_handler.baseFilename == str(log_file)
    assert log_file.parent.is_dir()
    file_handler.close()


def test_empty_log_file_is_console_only(monkeypatch):
    monkeypatch.setattr(config, "LOG_FILE", "")
    logger = get_logger("tests.utils.console")
    assert not any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
    assert not logger.propagate


def test_configured_once():
    first = get_logger("tests.utils.once")
    assert get_logger("tests.utils.once").handlers == first.handlers
