"""
Unit Tests for Logging Setup

Tests configure_logging:
- Console handler outside production
- error.log / combined.log when LOG_DIR is set
- No console output in production when log files are configured
"""

import logging

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from relay.config import RelayConfig
from relay.main import configure_logging


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)


def handler_kinds(root: logging.Logger):
    console = [
        h for h in root.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    files = sorted(
        os.path.basename(h.baseFilename) for h in root.handlers
        if isinstance(h, logging.FileHandler)
    )
    return console, files


class TestConfigureLogging:

    def test_console_only_by_default(self, restore_root_logging) -> None:
        configure_logging(RelayConfig(log_level="DEBUG"))

        console, files = handler_kinds(restore_root_logging)
        assert len(console) == 1
        assert files == []
        assert restore_root_logging.level == logging.DEBUG

    def test_log_dir_adds_file_handlers(self, restore_root_logging, tmp_path) -> None:
        configure_logging(RelayConfig(log_dir=str(tmp_path / "logs")))

        console, files = handler_kinds(restore_root_logging)
        assert len(console) == 1
        assert files == ["combined.log", "error.log"]

        error_handler = next(
            h for h in restore_root_logging.handlers
            if isinstance(h, logging.FileHandler) and h.baseFilename.endswith("error.log")
        )
        assert error_handler.level == logging.ERROR

    def test_production_with_log_dir_drops_console(self, restore_root_logging, tmp_path) -> None:
        configure_logging(RelayConfig(environment="production", log_dir=str(tmp_path)))

        console, files = handler_kinds(restore_root_logging)
        assert console == []
        assert files == ["combined.log", "error.log"]

    def test_production_without_log_dir_keeps_console(self, restore_root_logging) -> None:
        configure_logging(RelayConfig(environment="production"))

        console, files = handler_kinds(restore_root_logging)
        assert len(console) == 1
        assert files == []
