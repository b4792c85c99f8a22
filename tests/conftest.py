"""Shared pytest fixtures for calendargrid tests."""

import logging
from collections.abc import Generator
from typing import Any, Callable

import pytest

from calendargrid.calendar.grid_models import GridEvent

_CALENDARGRID_ENV_VARS = (
    "CALENDARGRID_TEST_TIME",
    "CALENDARGRID_DEBUG",
    "CALENDARGRID_LOG_LEVEL",
    "CALENDARGRID_MAX_OCCURRENCES",
    "CALENDARGRID_HORIZON_PADDING_MONTHS",
    "CALENDARGRID_WEEK_START",
    "CALENDARGRID_DEFAULT_TIMEZONE",
    "CALENDARGRID_DEDUPE",
)


def pytest_configure(config: Any) -> None:
    """Register test markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: End-to-end grid build scenarios")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Ensure CALENDARGRID_* variables from the host never leak into tests."""
    for name in _CALENDARGRID_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def restore_logging() -> Generator[None, Any, None]:
    """Put root handlers and calendargrid logger levels back after a test."""
    from calendargrid.grid_logging import GRID_MODULES, SUPPRESSED_LOGGERS  # noqa: PLC0415

    root = logging.getLogger()
    saved_level, saved_handlers = root.level, list(root.handlers)
    saved_levels = {name: logging.getLogger(name).level for name in [*GRID_MODULES, *SUPPRESSED_LOGGERS]}
    yield
    root.setLevel(saved_level)
    root.handlers[:] = saved_handlers
    for name, level in saved_levels.items():
        logging.getLogger(name).setLevel(level)


@pytest.fixture
def test_timezone() -> str:
    """Return a deterministic viewer timezone well away from UTC.

    Using a fixed timezone string avoids host-local timezone differences
    which can make datetime-sensitive tests flaky.
    """
    return "America/Los_Angeles"


@pytest.fixture
def make_event() -> Callable[..., GridEvent]:
    """Factory for stored events using the sync source's field names.

    Defaults to a 30 minute timed event on 2025-04-01 09:00 UTC.
    """
    counter = {"n": 0}

    def _make(**overrides: Any) -> GridEvent:
        counter["n"] += 1
        data: dict[str, Any] = {
            "id": f"evt-{counter['n']}",
            "title": f"Event {counter['n']}",
            "startInstant": "2025-04-01T09:00:00Z",
            "endInstant": "2025-04-01T09:30:00Z",
            "allDay": False,
        }
        data.update(overrides)
        return GridEvent.model_validate(data)

    return _make
