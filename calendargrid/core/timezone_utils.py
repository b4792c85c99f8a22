"""Timezone resolution utilities for calendargrid.

The engine never reads the host's ambient timezone. A viewer timezone is
always passed in explicitly and resolved here.
"""

from __future__ import annotations

import datetime
import logging
import os
import zoneinfo
from functools import lru_cache
from typing import Union

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

DEFAULT_VIEWER_TIMEZONE = "UTC"

# Windows timezone names found in Outlook/Exchange synced events
WINDOWS_TZ_MAP: dict[str, str] = {
    "Pacific Standard Time": "America/Los_Angeles",
    "Mountain Standard Time": "America/Denver",
    "Central Standard Time": "America/Chicago",
    "Eastern Standard Time": "America/New_York",
    "Alaskan Standard Time": "America/Anchorage",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "US Mountain Standard Time": "America/Phoenix",
    "Atlantic Standard Time": "America/Halifax",
    "GMT Standard Time": "Europe/London",
    "W. Europe Standard Time": "Europe/Berlin",
    "Romance Standard Time": "Europe/Paris",
    "Central Europe Standard Time": "Europe/Budapest",
    "E. Europe Standard Time": "Europe/Bucharest",
    "Russian Standard Time": "Europe/Moscow",
    "India Standard Time": "Asia/Kolkata",
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "Korea Standard Time": "Asia/Seoul",
    "Singapore Standard Time": "Asia/Singapore",
    "SE Asia Standard Time": "Asia/Bangkok",
    "Arabian Standard Time": "Asia/Dubai",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "New Zealand Standard Time": "Pacific/Auckland",
    "E. South America Standard Time": "America/Sao_Paulo",
    "South Africa Standard Time": "Africa/Johannesburg",
}

# Obsolete IANA names and common aliases
TZ_ALIAS_MAP: dict[str, str] = {
    "US/Pacific": "America/Los_Angeles",
    "US/Mountain": "America/Denver",
    "US/Central": "America/Chicago",
    "US/Eastern": "America/New_York",
    "US/Alaska": "America/Anchorage",
    "US/Hawaii": "Pacific/Honolulu",
    "US/Arizona": "America/Phoenix",
    "GMT": "UTC",
    "Z": "UTC",
    "Zulu": "UTC",
    "Etc/UTC": "UTC",
    "Etc/GMT": "UTC",
    "Universal": "UTC",
    "Asia/Calcutta": "Asia/Kolkata",
    "Asia/Rangoon": "Asia/Yangon",
    "America/Godthab": "America/Nuuk",
}

TimezoneLike = Union[str, datetime.tzinfo, None]


def windows_tz_to_iana(windows_tz: str) -> str | None:
    """Convert a Windows timezone name to its IANA identifier, or None."""
    return WINDOWS_TZ_MAP.get(windows_tz)


def resolve_timezone_alias(tz_name: str) -> str:
    """Resolve an alias to its canonical IANA identifier.

    Examples:
        >>> resolve_timezone_alias("US/Pacific")
        'America/Los_Angeles'
        >>> resolve_timezone_alias("Europe/Paris")
        'Europe/Paris'
    """
    return TZ_ALIAS_MAP.get(tz_name, tz_name)


def normalize_timezone_name(tz_str: str | None) -> str | None:
    """Normalize a Windows name, alias or IANA identifier.

    Returns:
        Canonical IANA identifier, or None if it cannot be resolved
    """
    if not tz_str:
        return None

    candidate = tz_str.strip()
    candidate = windows_tz_to_iana(candidate) or resolve_timezone_alias(candidate)
    if candidate == "UTC":
        return candidate
    try:
        zoneinfo.ZoneInfo(candidate)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r", tz_str)
        return None
    return candidate


@lru_cache(maxsize=32)
def _zone_for_name(tz_name: str) -> datetime.tzinfo:
    canonical = normalize_timezone_name(tz_name)
    if canonical is None:
        logger.warning("Falling back to %s for unresolvable viewer timezone %r", DEFAULT_VIEWER_TIMEZONE, tz_name)
        return datetime.UTC
    if canonical == "UTC":
        return datetime.UTC
    return zoneinfo.ZoneInfo(canonical)


def resolve_viewer_timezone(value: TimezoneLike, fallback: str = DEFAULT_VIEWER_TIMEZONE) -> datetime.tzinfo:
    """Resolve an explicit viewer timezone parameter to a tzinfo.

    Args:
        value: tzinfo instance, timezone name (IANA, alias or Windows), or None
        fallback: timezone name used when value is None

    Returns:
        tzinfo, UTC when the name cannot be resolved
    """
    if isinstance(value, datetime.tzinfo):
        return value
    return _zone_for_name(value or fallback)


def now_utc() -> datetime.datetime:
    """Return the current UTC time.

    Honors CALENDARGRID_TEST_TIME (ISO 8601) so "today" markers are
    reproducible under test. Naive override values are taken as UTC.
    """
    test_time = os.environ.get("CALENDARGRID_TEST_TIME")
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse CALENDARGRID_TEST_TIME=%r: %s", test_time, e)
        else:
            if dt.tzinfo is None:
                return dt.replace(tzinfo=datetime.UTC)
            return dt.astimezone(datetime.UTC)

    return datetime.datetime.now(datetime.UTC)
