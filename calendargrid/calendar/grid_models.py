"""Data models for recurring-event expansion and grid placement - CalendarGrid.

All models are frozen: the engine reads stored events and produces derived
occurrence copies, but never mutates either.
"""

import logging
from datetime import UTC, date, datetime, time
from enum import Enum
from typing import Any, Optional, Union

from dateutil import parser as date_parser
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class RecurrencePattern(str, Enum):
    """Recurrence patterns the occurrence generator can expand."""

    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class RecurrenceEndType(str, Enum):
    """How a recurrence terminates."""

    NEVER = "Never"
    AFTER = "After"  # after `occurrences` total occurrences
    ON = "On"  # on `until`, inclusive


class Weekday(str, Enum):
    """Weekday names as stored in structured recurrence configs."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def number(self) -> int:
        """Weekday number compatible with ``date.weekday()`` (Monday == 0)."""
        return _WEEKDAY_ORDER.index(self)

    @property
    def ical_code(self) -> str:
        """Two-letter iCalendar BYDAY code (MO, TU, ...)."""
        return self.value[:2].upper()

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        return _WEEKDAY_ORDER[index % 7]

    @classmethod
    def parse(cls, value: Any) -> Optional["Weekday"]:
        """Resolve a full name, a three-letter abbreviation or a BYDAY code.

        Ordinal prefixes used by monthly BYDAY values ("1MO", "-1FR") are
        ignored. Returns None for anything unrecognized.
        """
        if isinstance(value, Weekday):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls.from_index(value)
        if not isinstance(value, str):
            return None
        text = value.strip().lstrip("+-0123456789").lower()
        if len(text) < 2:
            return None
        for weekday in _WEEKDAY_ORDER:
            name = weekday.value.lower()
            if text == name or (len(text) in (2, 3) and name.startswith(text)):
                return weekday
        return None


_WEEKDAY_ORDER: tuple[Weekday, ...] = tuple(Weekday)

_PATTERN_LOOKUP = {pattern.value.lower(): pattern for pattern in RecurrencePattern}
_END_TYPE_LOOKUP = {
    "never": RecurrenceEndType.NEVER,
    "after": RecurrenceEndType.AFTER,
    "count": RecurrenceEndType.AFTER,
    "on": RecurrenceEndType.ON,
    # Older client builds stored the date-bounded variant as "Until"
    "until": RecurrenceEndType.ON,
}


def coerce_pattern(value: Any) -> Union[RecurrencePattern, str]:
    """Map a pattern value to RecurrencePattern, keeping unrecognized text as-is.

    Unrecognized patterns are not rejected here; the occurrence generator
    reports them when it tries to step.
    """
    if isinstance(value, RecurrencePattern):
        return value
    if value is None:
        return RecurrencePattern.NONE
    text = str(value).strip()
    if not text:
        return RecurrencePattern.NONE
    return _PATTERN_LOOKUP.get(text.lower(), text)


def _coerce_positive_int(name: str, raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning("Recurrence %s=%r is not an integer; ignoring", name, raw)
        return None
    if value < 1:
        logger.warning("Recurrence %s=%r is not positive; ignoring", name, raw)
        return None
    return value


def _coerce_until(raw: Any) -> Optional[datetime]:
    """Normalize an end-date value to an aware UTC datetime.

    Date-only values mean "through the end of that day".
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        try:
            parsed = date_parser.isoparse(raw.strip())
        except (ValueError, OverflowError):
            logger.warning("Recurrence until=%r is not a valid date; ignoring", raw)
            return None
        # isoparse returns a datetime even for date-only text
        if len(raw.strip()) <= 10:
            raw = parsed.date()
        else:
            raw = parsed
    if isinstance(raw, datetime):
        return raw.replace(tzinfo=UTC) if raw.tzinfo is None else raw.astimezone(UTC)
    if isinstance(raw, date):
        return datetime.combine(raw, time(23, 59, 59), tzinfo=UTC)
    logger.warning("Recurrence until=%r has unsupported type %s; ignoring", raw, type(raw).__name__)
    return None


def _coerce_weekdays(raw: Any) -> tuple[Weekday, ...]:
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        raw = raw.split(",")
    weekdays = set()
    for item in raw:
        weekday = Weekday.parse(item)
        if weekday is None:
            logger.warning("Ignoring unrecognized weekday %r in recurrence rule", item)
            continue
        weekdays.add(weekday)
    return tuple(sorted(weekdays, key=lambda wd: wd.number))


class RecurrenceConfig(BaseModel):
    """Canonical recurrence rule shared by both input grammars.

    Exactly one of ``occurrences``/``until`` is meaningful, selected by
    ``end_type``. A config whose end value is missing is demoted to
    ``Never``; the other end value is always cleared.
    """

    pattern: Union[RecurrencePattern, str] = RecurrencePattern.NONE
    interval: int = Field(default=1, ge=1)
    weekdays: tuple[Weekday, ...] = ()
    end_type: RecurrenceEndType = RecurrenceEndType.NEVER
    occurrences: Optional[int] = Field(default=None, ge=1)
    until: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        def pick(*names: str) -> Any:
            for name in names:
                if name in data:
                    return data[name]
            return None

        pattern = coerce_pattern(pick("pattern"))

        interval = _coerce_positive_int("interval", pick("interval"))
        end_raw = pick("end_type", "endType")
        end_type = RecurrenceEndType.NEVER
        if isinstance(end_raw, RecurrenceEndType):
            end_type = end_raw
        elif end_raw is not None and str(end_raw).strip():
            end_type = _END_TYPE_LOOKUP.get(str(end_raw).strip().lower(), RecurrenceEndType.NEVER)
            if str(end_raw).strip().lower() not in _END_TYPE_LOOKUP:
                logger.warning("Unknown recurrence endType %r; treating as Never", end_raw)

        occurrences = _coerce_positive_int("occurrences", pick("occurrences", "count"))
        until = _coerce_until(
            pick("until", "untilInstant", "untilDate", "until_instant", "until_date", "endDate", "end_date")
        )

        if end_type == RecurrenceEndType.AFTER and occurrences is None:
            logger.warning("Recurrence endType=After without occurrences; treating as Never")
            end_type = RecurrenceEndType.NEVER
        elif end_type == RecurrenceEndType.ON and until is None:
            logger.warning("Recurrence endType=On without an until date; treating as Never")
            end_type = RecurrenceEndType.NEVER

        weekdays: tuple[Weekday, ...] = ()
        if pattern == RecurrencePattern.WEEKLY:
            weekdays = _coerce_weekdays(pick("weekdays", "byday", "days"))

        return {
            "pattern": pattern,
            "interval": interval or 1,
            "weekdays": weekdays,
            "end_type": end_type,
            "occurrences": occurrences if end_type == RecurrenceEndType.AFTER else None,
            "until": until if end_type == RecurrenceEndType.ON else None,
        }

    @field_validator("pattern", mode="after")
    @classmethod
    def _keep_pattern_enum(cls, value: Union[RecurrencePattern, str]) -> Union[RecurrencePattern, str]:
        return coerce_pattern(value)

    @property
    def is_recurring(self) -> bool:
        return self.pattern != RecurrencePattern.NONE

    @property
    def is_known_pattern(self) -> bool:
        return isinstance(self.pattern, RecurrencePattern)


InstantValue = Union[datetime, date, str, int, float, None]


class GridEvent(BaseModel):
    """Stored calendar event as delivered by the event store.

    ``start``/``end`` keep their stored representation; they are validated
    by the engine on every pass, so a malformed record does not fail the
    whole batch at construction time. Input accepts the sync source's
    camelCase field names.
    """

    # Identity
    id: Union[str, int] = Field(..., description="Store event ID")
    uid: Optional[str] = Field(default=None, description="Stable logical identity from the sync source")
    calendar_id: Optional[Union[str, int]] = Field(
        default=None, validation_alias=AliasChoices("calendar_id", "calendarId")
    )

    # Content
    title: str = Field(default="", validation_alias=AliasChoices("title", "subject"))
    description: Optional[str] = None
    location: Optional[str] = None
    attendees: Optional[list[Any]] = None
    resources: Optional[list[Any]] = None

    # Time information
    start: InstantValue = Field(
        default=None,
        validation_alias=AliasChoices("start", "startInstant", "start_instant", "startDate", "start_date"),
    )
    end: InstantValue = Field(
        default=None,
        validation_alias=AliasChoices("end", "endInstant", "end_instant", "endDate", "end_date"),
    )
    all_day: bool = Field(default=False, validation_alias=AliasChoices("all_day", "allDay"))

    # Recurrence: structured config, mapping, JSON text or RRULE text
    recurrence_rule: Optional[Union[RecurrenceConfig, dict[str, Any], str]] = Field(
        default=None, validation_alias=AliasChoices("recurrence_rule", "recurrenceRule")
    )

    # Sync completeness
    etag: Optional[str] = None
    url: Optional[str] = None
    last_sync_attempt: Optional[Union[datetime, str]] = Field(
        default=None, validation_alias=AliasChoices("last_sync_attempt", "lastSyncAttempt")
    )
    sync_status: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("sync_status", "syncStatus")
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def has_recurrence_rule(self) -> bool:
        rule = self.recurrence_rule
        if rule is None:
            return False
        if isinstance(rule, str):
            return bool(rule.strip())
        if isinstance(rule, RecurrenceConfig):
            return rule.is_recurring
        return bool(rule)


class GridOccurrence(BaseModel):
    """One concrete instance of an event, never persisted.

    Index 0 is the base occurrence; generated instances carry a synthetic
    ``recurrence_id`` used as a stable list key.
    """

    event: GridEvent
    start: datetime
    end: datetime
    index: int = 0
    original_event_id: Union[str, int]
    recurrence_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_base(self) -> bool:
        return self.index == 0

    @property
    def list_key(self) -> str:
        return self.recurrence_id or str(self.original_event_id)


class DaySlot(BaseModel):
    """Position of one day inside an occurrence's span."""

    day_key: str
    day_index: int = 0
    total_days: int = 1
    is_first_day: bool = True
    is_last_day: bool = True
    is_multi_day: bool = False

    model_config = ConfigDict(frozen=True)


class PlacedEntry(BaseModel):
    """An occurrence placed into one day bucket."""

    occurrence: GridOccurrence
    slot: DaySlot

    model_config = ConfigDict(frozen=True)

    @property
    def event(self) -> GridEvent:
        return self.occurrence.event

    @property
    def day_key(self) -> str:
        return self.slot.day_key

    @property
    def title(self) -> str:
        return self.occurrence.event.title

    @property
    def list_key(self) -> str:
        return self.occurrence.list_key
