"""calendargrid - recurring-event expansion and month-grid placement.

Turns a flat list of stored events into the per-day entries a month view
renders: recurrence rules in either grammar are parsed into one canonical
config, expanded into occurrences, spread over the days they span and
collapsed where the sync source delivered duplicate copies.

    from calendargrid import build_day_buckets, build_month_window

    buckets = build_day_buckets(events, build_month_window(2025, 4))
    buckets["2025-04-01"]  # tuple of PlacedEntry
"""

from calendargrid.calendar.grid_datetime_utils import DateKeyMapper
from calendargrid.calendar.grid_exceptions import (
    GridConfigError,
    GridEngineError,
    InvalidDateError,
    RecurrenceParseError,
    UnknownPatternError,
)
from calendargrid.calendar.grid_models import (
    DaySlot,
    GridEvent,
    GridOccurrence,
    PlacedEntry,
    RecurrenceConfig,
    RecurrenceEndType,
    RecurrencePattern,
    Weekday,
)
from calendargrid.calendar.grid_occurrence_generator import OccurrenceGenerator
from calendargrid.calendar.grid_rrule_parser import RecurrenceRuleParser, format_rrule, sanitize_rrule
from calendargrid.calendar.grid_span_assigner import SpanAssigner
from calendargrid.core.config_loader import GridConfig, apply_env_overrides, load_config
from calendargrid.domain.bucket_assembler import BucketBuildResult, DayBucketAssembler
from calendargrid.domain.event_deduplicator import DeduplicationEngine
from calendargrid.domain.month_window import MonthWindow, build_month_window
from calendargrid.domain.pipeline import GridBuildResult, GridPipeline, build_day_buckets

__version__ = "1.0.0"

__all__ = [
    "BucketBuildResult",
    "DateKeyMapper",
    "DayBucketAssembler",
    "DaySlot",
    "DeduplicationEngine",
    "GridBuildResult",
    "GridConfig",
    "GridConfigError",
    "GridEngineError",
    "GridEvent",
    "GridOccurrence",
    "GridPipeline",
    "InvalidDateError",
    "MonthWindow",
    "OccurrenceGenerator",
    "PlacedEntry",
    "RecurrenceConfig",
    "RecurrenceEndType",
    "RecurrenceParseError",
    "RecurrencePattern",
    "RecurrenceRuleParser",
    "SpanAssigner",
    "UnknownPatternError",
    "Weekday",
    "apply_env_overrides",
    "build_day_buckets",
    "build_month_window",
    "format_rrule",
    "load_config",
    "sanitize_rrule",
]
