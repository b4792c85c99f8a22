"""Month grid display window for calendargrid."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from calendargrid.calendar.grid_datetime_utils import format_day_key

logger = logging.getLogger(__name__)

_WEEKDAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class GridDay:
    """One cell of the month grid."""

    date: date
    day_key: str
    is_current_month: bool
    is_today: bool = False


@dataclass(frozen=True)
class MonthWindow:
    """Whole weeks covering one calendar month."""

    year: int
    month: int
    week_start: str
    days: tuple[GridDay, ...]

    @property
    def day_keys(self) -> tuple[str, ...]:
        return tuple(day.day_key for day in self.days)

    @property
    def first_day(self) -> date:
        return self.days[0].date

    @property
    def last_day(self) -> date:
        return self.days[-1].date

    @property
    def weeks(self) -> list[tuple[GridDay, ...]]:
        return [self.days[i : i + 7] for i in range(0, len(self.days), 7)]

    def __len__(self) -> int:
        return len(self.days)


def _week_start_number(week_start: str) -> int:
    return 0 if str(week_start).lower() == "monday" else 6


def weekday_headers(week_start: str = "sunday") -> list[str]:
    """Column headers in grid order, e.g. ["Sun", "Mon", ...]."""
    first = _week_start_number(week_start)
    return [_WEEKDAY_ABBREVIATIONS[(first + offset) % 7] for offset in range(7)]


def build_month_window(
    year: int,
    month: int,
    week_start: str = "sunday",
    today: Optional[date] = None,
) -> MonthWindow:
    """Build the grid for a month, from the start of the week containing the
    1st through the end of the week containing the last day.

    Args:
        year: Calendar year
        month: Month number (1-12)
        week_start: "sunday" or "monday"
        today: Day to mark as today (viewer-relative, supplied by the caller)

    Returns:
        MonthWindow of 28, 35 or 42 days

    Raises:
        ValueError: If month is out of range
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")

    first_of_month = date(year, month, 1)
    last_of_month = date(year, month, calendar.monthrange(year, month)[1])
    first_number = _week_start_number(week_start)

    grid_start = first_of_month - timedelta(days=(first_of_month.weekday() - first_number) % 7)
    grid_end = last_of_month + timedelta(days=(first_number - 1 - last_of_month.weekday()) % 7)

    days = []
    current = grid_start
    while current <= grid_end:
        days.append(
            GridDay(
                date=current,
                day_key=format_day_key(current),
                is_current_month=current.month == month and current.year == year,
                is_today=current == today,
            )
        )
        current += timedelta(days=1)

    logger.debug("Month window %04d-%02d: %s..%s (%d days)", year, month, grid_start, grid_end, len(days))
    return MonthWindow(year=year, month=month, week_start=str(week_start).lower(), days=tuple(days))
