"""Multi-day span assignment - CalendarGrid."""

import logging
from collections.abc import Collection
from datetime import date, datetime, timedelta
from typing import Optional

from calendargrid.core.timezone_utils import TimezoneLike

from .grid_datetime_utils import DateKeyMapper, format_day_key
from .grid_models import DaySlot

logger = logging.getLogger(__name__)


class SpanAssigner:
    """Turn an occurrence's start/end into the day slots it occupies."""

    def __init__(self, viewer_timezone: TimezoneLike = None, key_mapper: Optional[DateKeyMapper] = None):
        self.key_mapper = key_mapper or DateKeyMapper(viewer_timezone)

    def span_days(self, start: datetime, end: datetime, all_day: bool = False) -> list[date]:
        """Calendar days covered by the interval, start day through end day inclusive.

        An all-day event whose end is its start day or the day after occupies
        only its start day; that end value is the exclusive encoding of a
        single day, not spillover.
        """
        start_day = self.key_mapper.to_date(start)
        end_day = self.key_mapper.to_date(end)

        if end_day < start_day:
            logger.warning("Event ends (%s) before it starts (%s); placing on start day only", end, start)
            return [start_day]
        if all_day and (end_day - start_day).days <= 1:
            return [start_day]

        return [start_day + timedelta(days=offset) for offset in range((end_day - start_day).days + 1)]

    def assign(
        self,
        start: datetime,
        end: datetime,
        all_day: bool = False,
        within: Optional[Collection[str]] = None,
    ) -> list[DaySlot]:
        """Ordered day slots for an occurrence.

        Args:
            start: Occurrence start
            end: Occurrence end
            all_day: Whether the event is an all-day event
            within: Optional set of day keys; slots outside it are dropped but
                keep their position markers relative to the whole span

        Returns:
            List of DaySlot, first day first
        """
        days = self.span_days(start, end, all_day)
        total = len(days)
        slots = []
        for day_index, day in enumerate(days):
            day_key = format_day_key(day)
            if within is not None and day_key not in within:
                continue
            slots.append(
                DaySlot(
                    day_key=day_key,
                    day_index=day_index,
                    total_days=total,
                    is_first_day=day_index == 0,
                    is_last_day=day_index == total - 1,
                    is_multi_day=total > 1,
                )
            )
        return slots
