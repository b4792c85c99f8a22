"""Occurrence generation for recurring events - CalendarGrid."""

import logging
from collections.abc import Iterator
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

from dateutil.relativedelta import relativedelta

from .grid_datetime_utils import align_awareness, ensure_timezone_aware, parse_instant
from .grid_exceptions import UnknownPatternError
from .grid_models import GridEvent, GridOccurrence, RecurrenceConfig, RecurrenceEndType, RecurrencePattern

logger = logging.getLogger(__name__)

DEFAULT_MAX_OCCURRENCES = 100
DEFAULT_WEEKLY_SCAN_DAYS = 14

Horizon = Union[datetime, date]


def recurrence_id_for(event_id: Union[str, int], index: int) -> Optional[str]:
    """Synthetic list key for a generated occurrence; None for the base."""
    if index == 0:
        return None
    return f"{event_id}-recurrence-{index}"


class OccurrenceGenerator:
    """Produce the bounded, ordered start instants of a recurring event.

    The base start is always occurrence 0, even when it does not satisfy the
    rule's weekday constraint. Arithmetic patterns are computed from the
    anchor (``anchor + k * step``) rather than by repeated addition, so a rule
    anchored on the 31st keeps returning to month end after short months.
    """

    def __init__(
        self,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
        weekly_scan_days: int = DEFAULT_WEEKLY_SCAN_DAYS,
        week_start: str = "sunday",
    ):
        self.max_occurrences = max(1, max_occurrences)
        self.weekly_scan_days = max(7, weekly_scan_days)
        # date.weekday() number of the first day of a week
        self.week_start_number = 0 if str(week_start).lower() == "monday" else 6

    @classmethod
    def from_config(cls, config: Any) -> "OccurrenceGenerator":
        """Build a generator from a GridConfig-like settings object."""
        return cls(
            max_occurrences=getattr(config, "max_occurrences", DEFAULT_MAX_OCCURRENCES),
            weekly_scan_days=getattr(config, "weekly_scan_days", DEFAULT_WEEKLY_SCAN_DAYS),
            week_start=getattr(config, "week_start", "sunday"),
        )

    def iter_starts(
        self,
        start: datetime,
        config: RecurrenceConfig,
        horizon: Horizon,
        window_start: Optional[Horizon] = None,
    ) -> Iterator[tuple[int, datetime]]:
        """Yield ``(index, start)`` pairs, base first.

        Args:
            start: Base occurrence start
            config: Parsed recurrence rule
            horizon: Last instant (or day, inclusive) generation may reach
            window_start: Earliest instant the caller cares about; lets
                generation skip occurrences that cannot be displayed

        Raises:
            UnknownPatternError: After the base, if the pattern cannot be expanded
        """
        yield 0, start
        if not config.is_recurring:
            return
        if not config.is_known_pattern:
            raise UnknownPatternError(config.pattern)

        emitted = 1
        if config.pattern == RecurrencePattern.WEEKLY and config.weekdays:
            candidates = self._iter_weekday_candidates(start, config, window_start)
        else:
            candidates = self._iter_arithmetic_candidates(start, config, window_start)

        for index, candidate in candidates:
            if config.end_type == RecurrenceEndType.AFTER and index >= config.occurrences:
                break
            if config.end_type == RecurrenceEndType.ON and ensure_timezone_aware(candidate) > config.until:
                break
            if self._past_horizon(candidate, horizon):
                break
            if emitted >= self.max_occurrences:
                logger.debug("Occurrence safety cap (%d) reached at index %d", self.max_occurrences, index)
                break
            yield index, candidate
            emitted += 1

    def generate_starts(
        self,
        start: datetime,
        config: RecurrenceConfig,
        horizon: Horizon,
        window_start: Optional[Horizon] = None,
    ) -> list[datetime]:
        """List of occurrence starts, stopping quietly on an unknown pattern."""
        starts: list[datetime] = []
        try:
            for _, occurrence_start in self.iter_starts(start, config, horizon, window_start):
                starts.append(occurrence_start)
        except UnknownPatternError as e:
            logger.warning("%s; keeping %d occurrence(s)", e, len(starts))
        return starts

    def iter_occurrences(
        self,
        event: GridEvent,
        start: datetime,
        end: datetime,
        config: RecurrenceConfig,
        horizon: Horizon,
        window_start: Optional[Horizon] = None,
    ) -> Iterator[GridOccurrence]:
        """Yield GridOccurrence objects with the base duration preserved.

        ``window_start`` is shifted back by the event duration so a multi-day
        occurrence starting before the window is still produced.

        Raises:
            UnknownPatternError: As for iter_starts
        """
        duration = end - start
        if window_start is not None and duration > timedelta(0):
            window_start = window_start - timedelta(days=duration.days + 1)

        for index, occurrence_start in self.iter_starts(start, config, horizon, window_start):
            yield GridOccurrence(
                event=event,
                start=occurrence_start,
                end=occurrence_start + duration,
                index=index,
                original_event_id=event.id,
                recurrence_id=recurrence_id_for(event.id, index),
            )

    def expand(
        self,
        event: GridEvent,
        config: RecurrenceConfig,
        horizon: Horizon,
        window_start: Optional[Horizon] = None,
    ) -> list[GridOccurrence]:
        """Expand a stored event into its occurrences.

        Unknown patterns are logged and the occurrences produced so far are
        returned.

        Raises:
            InvalidDateError: If the event's start or end cannot be parsed
        """
        start, end = align_awareness(parse_instant(event.start), parse_instant(event.end))
        occurrences: list[GridOccurrence] = []
        try:
            for occurrence in self.iter_occurrences(event, start, end, config, horizon, window_start):
                occurrences.append(occurrence)
        except UnknownPatternError as e:
            logger.warning("Event %s: %s; keeping %d occurrence(s)", event.id, e, len(occurrences))
        return occurrences

    def _iter_arithmetic_candidates(
        self, start: datetime, config: RecurrenceConfig, window_start: Optional[Horizon]
    ) -> Iterator[tuple[int, datetime]]:
        index = self._first_index(start, config, window_start)
        while True:
            yield index, start + self._step(config, index)
            index += 1

    def _step(self, config: RecurrenceConfig, index: int) -> Union[timedelta, relativedelta]:
        amount = config.interval * index
        if config.pattern == RecurrencePattern.DAILY:
            return timedelta(days=amount)
        if config.pattern == RecurrencePattern.WEEKLY:
            return timedelta(weeks=amount)
        if config.pattern == RecurrencePattern.MONTHLY:
            return relativedelta(months=amount)
        if config.pattern == RecurrencePattern.YEARLY:
            return relativedelta(years=amount)
        raise UnknownPatternError(config.pattern)

    def _first_index(self, start: datetime, config: RecurrenceConfig, window_start: Optional[Horizon]) -> int:
        """Smallest index worth generating for a window, never below 1.

        Starts one step early to absorb rounding. Indices stay exact.
        """
        if window_start is None:
            return 1
        target = window_start.date() if isinstance(window_start, datetime) else window_start
        anchor = start.date()
        if target <= anchor:
            return 1

        if config.pattern == RecurrencePattern.DAILY:
            steps = (target - anchor).days // config.interval
        elif config.pattern == RecurrencePattern.WEEKLY:
            steps = (target - anchor).days // (7 * config.interval)
        elif config.pattern == RecurrencePattern.MONTHLY:
            months = (target.year - anchor.year) * 12 + (target.month - anchor.month)
            steps = months // config.interval
        else:
            steps = (target.year - anchor.year) // config.interval

        first = max(1, steps - 1)
        if first > 1:
            logger.debug("Skipping to occurrence %d to reach window starting %s", first, target)
        return first

    def _iter_weekday_candidates(
        self, start: datetime, config: RecurrenceConfig, window_start: Optional[Horizon] = None
    ) -> Iterator[tuple[int, datetime]]:
        allowed = {weekday.number for weekday in config.weekdays}
        anchor_week = self._week_start_of(start.date())
        scan_limit = self.weekly_scan_days * config.interval

        current, index = self._weekday_resume_point(start, config, allowed, anchor_week, window_start)
        while True:
            following = None
            for offset in range(1, scan_limit + 1):
                candidate = current + timedelta(days=offset)
                if candidate.weekday() not in allowed:
                    continue
                weeks_from_anchor = (self._week_start_of(candidate.date()) - anchor_week).days // 7
                if weeks_from_anchor % config.interval == 0:
                    following = candidate
                    break
            if following is None:
                logger.debug("No matching weekday within %d days of %s; stepping whole weeks", scan_limit, current)
                following = current + timedelta(weeks=config.interval)

            index += 1
            yield index, following
            current = following

    def _weekday_resume_point(
        self,
        start: datetime,
        config: RecurrenceConfig,
        allowed: set[int],
        anchor_week: date,
        window_start: Optional[Horizon],
    ) -> tuple[datetime, int]:
        """Where weekday scanning starts and the index of the last skipped occurrence.

        Jumps to the eve of the last interval-aligned week before the window.
        Skipped occurrences are counted, not generated: the matching days
        after the base in its own week, plus every allowed weekday of each
        aligned week in between.
        """
        if window_start is None:
            return start, 0
        target = window_start.date() if isinstance(window_start, datetime) else window_start
        weeks_to_target = (self._week_start_of(target) - anchor_week).days // 7
        aligned_weeks = (weeks_to_target - 1) // config.interval
        if aligned_weeks < 1:
            return start, 0

        anchor_days = (anchor_week + timedelta(days=offset) for offset in range(7))
        anchor_matches = sum(1 for day in anchor_days if day > start.date() and day.weekday() in allowed)
        skipped = anchor_matches + (aligned_weeks - 1) * len(allowed)
        resume_week = anchor_week + timedelta(weeks=aligned_weeks * config.interval)
        current = start + timedelta(days=(resume_week - start.date()).days - 1)
        logger.debug("Skipping %d weekday occurrence(s) to reach window starting %s", skipped, target)
        return current, skipped

    def _week_start_of(self, day: date) -> date:
        return day - timedelta(days=(day.weekday() - self.week_start_number) % 7)

    @staticmethod
    def _past_horizon(candidate: datetime, horizon: Horizon) -> bool:
        if isinstance(horizon, datetime):
            candidate, horizon = align_awareness(candidate, horizon)
            return candidate > horizon
        return candidate.date() > horizon
