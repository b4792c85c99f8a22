"""Instant parsing and day-key mapping - CalendarGrid.

Day keys are taken from the calendar date fields of the instant exactly as
it was stored. Converting to the viewer's offset before truncating is the
bug class this module exists to prevent: an event stored as midnight UTC on
April 4 keys to ``2025-04-04`` for every viewer.
"""

import logging
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Any, Optional, Union

from dateutil import parser as date_parser

from calendargrid.core.timezone_utils import TimezoneLike, now_utc, resolve_viewer_timezone

from .grid_exceptions import InvalidDateError

logger = logging.getLogger(__name__)

DAY_KEY_FORMAT = "%Y-%m-%d"
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def ensure_timezone_aware(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware.

    Naive datetimes are taken as UTC without shifting their fields.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def align_awareness(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Make a start/end pair comparable when only one side carries an offset."""
    if (start.tzinfo is None) != (end.tzinfo is None):
        return ensure_timezone_aware(start), ensure_timezone_aware(end)
    return start, end


def parse_instant(value: Any) -> datetime:
    """Parse a stored instant into a datetime, keeping its own offset.

    Handles:
    - datetime objects (returned unchanged)
    - date objects (midnight, naive)
    - ISO 8601 text: 2025-04-01T09:00:00Z, 2025-04-01 09:00:00+02:00, 2025-04-01
    - iCalendar literals: 20250401T090000Z, 20250401
    - epoch milliseconds (int/float), interpreted as UTC

    Raises:
        InvalidDateError: If the value is missing or unparseable
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, bool):
        raise InvalidDateError(f"Unsupported instant value: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return _EPOCH + timedelta(milliseconds=value)
        except (OverflowError, ValueError) as e:
            raise InvalidDateError(f"Epoch milliseconds out of range: {value!r}") from e
    if value is None:
        raise InvalidDateError("Missing instant")
    if not isinstance(value, str):
        raise InvalidDateError(f"Unsupported instant type: {type(value).__name__}")

    text = value.strip()
    if not text:
        raise InvalidDateError("Empty instant string")

    try:
        return date_parser.isoparse(text)
    except (ValueError, OverflowError):
        logger.debug("Instant %r is not ISO 8601, trying lenient parse", text)

    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError) as e:
        raise InvalidDateError(f"Unable to parse instant: {value!r}") from e


def epoch_millis(dt: datetime) -> int:
    """Exact epoch milliseconds for an instant (naive taken as UTC)."""
    return (ensure_timezone_aware(dt) - _EPOCH) // timedelta(milliseconds=1)


def format_day_key(day: date) -> str:
    return day.strftime(DAY_KEY_FORMAT)


def parse_day_key(day_key: str) -> date:
    """Parse a ``YYYY-MM-DD`` day key.

    Raises:
        InvalidDateError: If the key is malformed
    """
    try:
        return datetime.strptime(day_key, DAY_KEY_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise InvalidDateError(f"Invalid day key: {day_key!r}") from e


class DateKeyMapper:
    """Map instants to timezone-stable ``YYYY-MM-DD`` day keys.

    The viewer timezone is an explicit parameter, never read from the host.
    It answers viewer-relative questions such as "which day is today"; it
    never takes part in deriving an event's day key.
    """

    def __init__(self, viewer_timezone: TimezoneLike = None):
        self.viewer_timezone: tzinfo = resolve_viewer_timezone(viewer_timezone)

    def to_date(self, instant: Union[datetime, date, str, int, float]) -> date:
        """Calendar date of the instant as recorded.

        Raises:
            InvalidDateError: If the instant cannot be parsed
        """
        return parse_instant(instant).date()

    def to_day_key(self, instant: Union[datetime, date, str, int, float], all_day: bool = False) -> str:
        """Day key for an instant.

        All-day and timed instants both key to the stored date portion; no
        time-of-day adjustment is applied to all-day values.
        """
        return format_day_key(self.to_date(instant))

    def today_key(self, now: Optional[datetime] = None) -> str:
        """Day key of "today" for the viewer."""
        current = now or now_utc()
        return format_day_key(ensure_timezone_aware(current).astimezone(self.viewer_timezone).date())
