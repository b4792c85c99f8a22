"""Unit tests for calendargrid.grid_logging."""

import logging

import pytest
from colorlog import ColoredFormatter

from calendargrid.grid_logging import (
    build_console_handler,
    configure_grid_logging,
    get_logging_status,
    reset_logging_to_debug,
)

pytestmark = [pytest.mark.unit, pytest.mark.usefixtures("restore_logging")]


class TestConfigureGridLogging:
    """Tests for configure_grid_logging."""

    def test_default_is_info(self):
        configure_grid_logging()
        status = get_logging_status()
        assert status["root"] == "INFO"
        assert status["calendargrid"] == "INFO"
        assert status["icalendar"] == "INFO"
        assert status["asyncio"] == "WARNING"

    def test_debug_mode(self):
        configure_grid_logging(debug_mode=True)
        assert logging.getLogger("calendargrid.domain.bucket_assembler").level == logging.DEBUG
        assert logging.getLogger().level == logging.DEBUG

    def test_env_debug(self, monkeypatch):
        monkeypatch.setenv("CALENDARGRID_DEBUG", "yes")
        configure_grid_logging()
        assert get_logging_status()["calendargrid"] == "DEBUG"

    def test_force_debug_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("CALENDARGRID_DEBUG", "1")
        configure_grid_logging(debug_mode=True, force_debug=False)
        assert get_logging_status()["calendargrid"] == "INFO"

    def test_env_log_level_sets_root(self, monkeypatch):
        monkeypatch.setenv("CALENDARGRID_LOG_LEVEL", "warning")
        configure_grid_logging()
        assert get_logging_status()["root"] == "WARNING"

    def test_handler_added_only_once(self):
        root = logging.getLogger()
        root.handlers[:] = []
        configure_grid_logging()
        configure_grid_logging()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ColoredFormatter)

    def test_reset_logging_to_debug(self):
        configure_grid_logging()
        reset_logging_to_debug()
        status = get_logging_status()
        assert set(status.values()) == {"DEBUG"}


class TestBuildConsoleHandler:
    """Tests for build_console_handler."""

    def test_formats_level_and_logger_name(self):
        handler = build_console_handler(logging.WARNING)
        record = logging.LogRecord("calendargrid.test", logging.WARNING, __file__, 1, "hello %s", ("grid",), None)
        output = handler.format(record)
        assert handler.level == logging.WARNING
        assert "WARNING" in output
        assert "calendargrid.test: hello grid" in output
