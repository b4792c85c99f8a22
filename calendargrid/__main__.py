"""Command-line entry for calendargrid.

Renders a text (or JSON) preview of the month grid for a file of stored
events, so rule expansion and placement can be checked without a UI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

from calendargrid.calendar.grid_datetime_utils import DateKeyMapper, parse_day_key
from calendargrid.calendar.grid_exceptions import GridConfigError
from calendargrid.calendar.grid_models import PlacedEntry
from calendargrid.core.config_loader import GridConfig, apply_env_overrides, load_config
from calendargrid.core.timezone_utils import now_utc
from calendargrid.domain.month_window import MonthWindow, build_month_window, weekday_headers
from calendargrid.domain.pipeline import GridBuildResult, GridPipeline
from calendargrid.grid_logging import configure_grid_logging

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the calendargrid CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendargrid",
        description="CalendarGrid - preview recurring-event expansion on a month grid",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calendargrid events.json                       # Current month
  python -m calendargrid events.yaml --month 2025-04       # April 2025
  python -m calendargrid events.json --month 2025-04 --json --no-dedupe
        """,
    )
    parser.add_argument("events", metavar="EVENTS", help="JSON or YAML file holding a list of events")
    parser.add_argument("--month", metavar="YYYY-MM", help="Month to preview (default: current month)")
    parser.add_argument("--config", metavar="PATH", help="YAML/JSON config file (default: ./calendargrid.yaml)")
    parser.add_argument("--timezone", metavar="TZ", help="Viewer timezone for the today marker")
    parser.add_argument("--week-start", choices=("sunday", "monday"), help="First column of the grid")
    parser.add_argument("--no-dedupe", action="store_true", help="Keep duplicate sync copies")
    parser.add_argument("--json", action="store_true", help="Print the buckets as JSON")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def load_events(path: str | Path) -> list[Any]:
    """Read stored events from a JSON or YAML file.

    The top level is either a list of events or a mapping with an ``events`` list.

    Raises:
        GridConfigError: If the document has neither shape
    """
    with open(path, encoding="utf-8") as f:
        loaded = yaml.safe_load(f)
    if isinstance(loaded, dict):
        loaded = loaded.get("events")
    if loaded is None:
        return []
    if not isinstance(loaded, list):
        raise GridConfigError(f"{path}: expected a list of events")
    return loaded


def _parse_month(value: Optional[str], viewer_today: str) -> tuple[int, int]:
    if not value:
        today = parse_day_key(viewer_today)
        return today.year, today.month
    year_text, _, month_text = value.partition("-")
    year, month = int(year_text), int(month_text)
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {value}")
    return year, month


def _describe_entry(entry: PlacedEntry) -> str:
    occurrence = entry.occurrence
    if entry.event.all_day:
        when = "all day"
    else:
        when = f"{occurrence.start:%H:%M}-{occurrence.end:%H:%M}"
    line = f"  {when:<13} {entry.title or '(untitled)'}"
    if entry.slot.is_multi_day:
        line += f"  [day {entry.slot.day_index + 1}/{entry.slot.total_days}]"
    if not occurrence.is_base:
        line += f"  (#{occurrence.index})"
    return line


def render_text(result: GridBuildResult, window: MonthWindow) -> str:
    lines = [f"{window.year:04d}-{window.month:02d}", "  ".join(weekday_headers(window.week_start))]
    by_key = {day.day_key: day for day in window.days}
    for day_key in result.non_empty_days:
        day = by_key.get(day_key)
        marker = " *today*" if day is not None and day.is_today else ""
        lines.append(f"{day_key} ({parse_day_key(day_key):%a}){marker}")
        lines.extend(_describe_entry(entry) for entry in result.entries_for(day_key))
    for warning in result.warnings:
        lines.append(f"warning: {warning}")
    return "\n".join(lines)


def render_json(result: GridBuildResult) -> str:
    payload = {
        "days": {
            day_key: [
                {
                    "key": entry.list_key,
                    "event_id": entry.occurrence.original_event_id,
                    "title": entry.title,
                    "start": entry.occurrence.start.isoformat(),
                    "end": entry.occurrence.end.isoformat(),
                    "all_day": entry.event.all_day,
                    "index": entry.occurrence.index,
                    "day_index": entry.slot.day_index,
                    "total_days": entry.slot.total_days,
                }
                for entry in entries
            ]
            for day_key, entries in result.buckets.items()
            if entries
        },
        "warnings": result.warnings,
        "skipped_event_ids": result.skipped_event_ids,
        "duplicates_removed": result.duplicates_removed,
    }
    return json.dumps(payload, indent=2, default=str)


def run_preview(args: argparse.Namespace) -> int:
    """Run one preview and print it; returns the process exit code."""
    try:
        config = apply_env_overrides(load_config(args.config))
    except GridConfigError as e:
        print(f"calendargrid: {e}", file=sys.stderr)
        return 1

    overrides: dict[str, Any] = {}
    if args.week_start:
        overrides["week_start"] = args.week_start
    if args.no_dedupe:
        overrides["dedupe_enabled"] = False
    if args.timezone:
        overrides["default_timezone"] = args.timezone
    if overrides:
        config = GridConfig.from_dict({**config.to_dict(), **overrides})

    configure_grid_logging(debug_mode=args.debug or config.log_level == "DEBUG")

    try:
        events = load_events(args.events)
    except (OSError, yaml.YAMLError, GridConfigError) as e:
        print(f"calendargrid: cannot read events: {e}", file=sys.stderr)
        return 1

    viewer_today = DateKeyMapper(config.default_timezone).today_key(now_utc())
    try:
        year, month = _parse_month(args.month, viewer_today)
    except ValueError as e:
        print(f"calendargrid: invalid --month {args.month!r}: {e}", file=sys.stderr)
        return 2

    window = build_month_window(year, month, week_start=config.week_start, today=parse_day_key(viewer_today))
    result = GridPipeline(config).build(events, window)

    print(render_json(result) if args.json else render_text(result, window))
    return 0 if result.success else 1


def main(argv: Optional[list[str]] = None) -> None:
    """Run the calendargrid CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)
    sys.exit(run_preview(args))


if __name__ == "__main__":
    main()
