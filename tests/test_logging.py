"""
Tests for logging setup — level resolution and handlers.
"""

import logging
from pathlib import Path

import pytest

from avbbs.core.observability.logging_config import parse_level, resolve_level, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_flags_in_precedence_order(self):
        assert resolve_level(debug=True, verbose=True, quiet=True, environ={}) == "DEBUG"
        assert resolve_level(verbose=True, quiet=True, environ={}) == "INFO"
        assert resolve_level(quiet=True, environ={}) == "ERROR"

    def test_environment(self):
        assert resolve_level(environ={"AVBBS_LOG_LEVEL": "INFO"}) == "INFO"

    def test_flag_beats_environment(self):
        assert resolve_level(quiet=True, environ={"AVBBS_LOG_LEVEL": "DEBUG"}) == "ERROR"

    def test_default(self):
        assert resolve_level(environ={}) == "WARNING"


class TestParseLevel:
    def test_known(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level("ERROR") == logging.ERROR

    def test_unknown_means_warning(self):
        assert parse_level("chatty") == logging.WARNING
        assert parse_level(None) == logging.WARNING


class TestSetupLogging:
    def test_console_only(self, restore_root_logger):
        setup_logging("INFO")
        root = restore_root_logger
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        assert root.handlers[0].level == logging.INFO

    def test_file_handler(self, restore_root_logger, tmp_path: Path):
        log_file = tmp_path / "build.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = restore_root_logger
        assert len(root.handlers) == 2
        assert root.level == logging.DEBUG

        logging.getLogger("avbbs.test").debug("detail only in the file")
        for handler in root.handlers:
            handler.flush()
        assert "detail only in the file" in log_file.read_text()

    def test_repeated_setup_does_not_stack(self, restore_root_logger):
        setup_logging("INFO")
        setup_logging("DEBUG")
        assert len(restore_root_logger.handlers) == 1
