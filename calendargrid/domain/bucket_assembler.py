"""Day bucket assembly for the month grid - CalendarGrid.

Folds stored events, their generated occurrences and multi-day spans into a
read-only mapping of day key to placed entries. Every call builds its own
accumulator; nothing is carried between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Optional, Union

from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from calendargrid.calendar.grid_datetime_utils import align_awareness, format_day_key, parse_day_key, parse_instant
from calendargrid.calendar.grid_exceptions import InvalidDateError, RecurrenceParseError, UnknownPatternError
from calendargrid.calendar.grid_models import GridEvent, PlacedEntry, RecurrenceConfig
from calendargrid.calendar.grid_occurrence_generator import OccurrenceGenerator
from calendargrid.calendar.grid_rrule_parser import RecurrenceRuleParser
from calendargrid.calendar.grid_span_assigner import SpanAssigner
from calendargrid.core.timezone_utils import TimezoneLike

logger = logging.getLogger(__name__)

DayBuckets = Mapping[str, tuple[PlacedEntry, ...]]
EventInput = Union[GridEvent, Mapping[str, Any]]


@dataclass
class BucketBuildResult:
    """Buckets for one display window plus what was recovered along the way."""

    buckets: DayBuckets = field(default_factory=lambda: MappingProxyType({}))
    window: tuple[str, ...] = ()
    warnings: list[str] = field(default_factory=list)
    skipped_event_ids: list[Union[str, int, None]] = field(default_factory=list)

    # Statistics
    events_in: int = 0
    occurrences_generated: int = 0
    entries_placed: int = 0

    def add_warning(self, message: str) -> None:
        """Record a recovered error."""
        self.warnings.append(message)
        logger.warning("%s", message)


def normalize_window(window: Any) -> tuple[str, ...]:
    """Ordered, de-duplicated day keys of a display window.

    Accepts an object exposing ``day_keys`` (such as MonthWindow) or an
    iterable of day-key strings, dates or datetimes.

    Raises:
        InvalidDateError: If a day key is malformed
    """
    items = getattr(window, "day_keys", window)
    if isinstance(items, str):
        items = [items]

    keys: dict[str, None] = {}
    for item in items:
        if isinstance(item, datetime):
            key = format_day_key(item.date())
        elif isinstance(item, date):
            key = format_day_key(item)
        else:
            key = format_day_key(parse_day_key(str(item)))
        keys.setdefault(key, None)
    return tuple(keys)


class DayBucketAssembler:
    """Place every event's occurrences into the days of a display window."""

    def __init__(
        self,
        generator: Optional[OccurrenceGenerator] = None,
        span_assigner: Optional[SpanAssigner] = None,
        parser: Optional[RecurrenceRuleParser] = None,
        horizon_padding_months: int = 1,
        viewer_timezone: TimezoneLike = None,
    ):
        self.generator = generator or OccurrenceGenerator()
        self.span_assigner = span_assigner or SpanAssigner(viewer_timezone)
        self.parser = parser or RecurrenceRuleParser()
        self.horizon_padding_months = max(0, horizon_padding_months)

    @classmethod
    def from_config(cls, config: Any, viewer_timezone: TimezoneLike = None) -> DayBucketAssembler:
        """Build an assembler from a GridConfig-like settings object."""
        tz = viewer_timezone or getattr(config, "default_timezone", None)
        return cls(
            generator=OccurrenceGenerator.from_config(config),
            span_assigner=SpanAssigner(tz),
            horizon_padding_months=getattr(config, "horizon_padding_months", 1),
        )

    def horizon_for(self, window_keys: tuple[str, ...]) -> date:
        """Last day generation may reach: window end plus the padding months."""
        last_day = max(parse_day_key(key) for key in window_keys)
        return last_day + relativedelta(months=self.horizon_padding_months)

    def assemble(self, events: Iterable[EventInput], window: Any) -> BucketBuildResult:
        """Build the day buckets for a display window.

        Args:
            events: Stored events (GridEvent or mappings in the store's field
                names); never mutated
            window: Display window (see normalize_window)

        Returns:
            BucketBuildResult whose ``buckets`` holds every window key, in
            window order, mapped to a tuple of entries in input order with
            occurrences following their base event
        """
        window_keys = normalize_window(window)
        result = BucketBuildResult(window=window_keys)
        accumulator: dict[str, list[PlacedEntry]] = {key: [] for key in window_keys}

        if not window_keys:
            logger.debug("Empty display window; nothing to place")
            result.events_in = sum(1 for _ in events)
            return result

        window_set = frozenset(window_keys)
        window_start = min(parse_day_key(key) for key in window_keys)
        horizon = self.horizon_for(window_keys)
        logger.debug("Assembling %d-day window %s..%s (horizon %s)", len(window_keys), window_start, max(window_keys), horizon)

        for raw in events:
            result.events_in += 1
            event = self._coerce_event(raw, result)
            if event is None:
                continue
            self._place_event(event, accumulator, window_set, window_start, horizon, result)

        result.buckets = MappingProxyType({key: tuple(entries) for key, entries in accumulator.items()})
        logger.debug(
            "Assembled %d events into %d entries (%d occurrences, %d warnings)",
            result.events_in,
            result.entries_placed,
            result.occurrences_generated,
            len(result.warnings),
        )
        return result

    def _coerce_event(self, raw: EventInput, result: BucketBuildResult) -> Optional[GridEvent]:
        if isinstance(raw, GridEvent):
            return raw
        if not isinstance(raw, Mapping):
            result.add_warning(f"Skipping unsupported event record of type {type(raw).__name__}")
            result.skipped_event_ids.append(None)
            return None
        try:
            return GridEvent.model_validate(dict(raw))
        except ValidationError as e:
            event_id = raw.get("id")
            result.add_warning(f"Skipping event {event_id}: invalid record ({e.error_count()} validation errors)")
            result.skipped_event_ids.append(event_id)
            return None

    def _recurrence_for(self, event: GridEvent, result: BucketBuildResult) -> RecurrenceConfig:
        if not event.has_recurrence_rule:
            return RecurrenceConfig()
        try:
            return self.parser.parse(event.recurrence_rule)
        except RecurrenceParseError as e:
            result.add_warning(f"Event {event.id}: {e}; showing base occurrence only")
            return RecurrenceConfig()

    def _place_event(
        self,
        event: GridEvent,
        accumulator: dict[str, list[PlacedEntry]],
        window_set: frozenset[str],
        window_start: date,
        horizon: date,
        result: BucketBuildResult,
    ) -> None:
        try:
            start, end = align_awareness(parse_instant(event.start), parse_instant(event.end))
        except InvalidDateError as e:
            result.add_warning(f"Skipping event {event.id}: {e}")
            result.skipped_event_ids.append(event.id)
            return

        config = self._recurrence_for(event, result)
        occurrences = self.generator.iter_occurrences(event, start, end, config, horizon, window_start)
        generated = 0
        try:
            for occurrence in occurrences:
                generated += 1
                for slot in self.span_assigner.assign(occurrence.start, occurrence.end, event.all_day, within=window_set):
                    accumulator[slot.day_key].append(PlacedEntry(occurrence=occurrence, slot=slot))
                    result.entries_placed += 1
        except UnknownPatternError as e:
            result.add_warning(f"Event {event.id}: {e}; stopped after {generated} occurrence(s)")
        result.occurrences_generated += generated
