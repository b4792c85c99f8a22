"""Recurrence rule parsing for CalendarGrid.

Two grammars reach the engine: the structured recurrence object written by
the event editor (a mapping or its JSON text) and iCalendar RRULE strings
delivered by the sync source. Both are normalized here into a single
RecurrenceConfig; nothing downstream branches on the original format.
"""

import json
import logging
import re
from collections.abc import Mapping
from datetime import UTC, date, datetime, time
from typing import Any, Optional

from icalendar.prop import vRecur
from pydantic import ValidationError

from .grid_exceptions import RecurrenceParseError
from .grid_models import RecurrenceConfig, RecurrenceEndType, RecurrencePattern, Weekday

logger = logging.getLogger(__name__)

FREQ_TO_PATTERN: dict[str, RecurrencePattern] = {
    "DAILY": RecurrencePattern.DAILY,
    "WEEKLY": RecurrencePattern.WEEKLY,
    "MONTHLY": RecurrencePattern.MONTHLY,
    "YEARLY": RecurrencePattern.YEARLY,
}
PATTERN_TO_FREQ: dict[RecurrencePattern, str] = {pattern: freq for freq, pattern in FREQ_TO_PATTERN.items()}

_UNTIL_LITERAL = re.compile(r"^\d{8}(T\d{6}Z?)?$", re.IGNORECASE)
_POSITIVE_INT = re.compile(r"^\d+$")


def sanitize_rrule(rrule: str) -> str:
    """Clean an RRULE string of the damage it picks up on the way in.

    - Removes ``mailto:`` fragments pasted from mail clients
    - Collapses double commas and trailing commas/semicolons
    - Decodes ``%20`` and strips whitespace
    - Drops empty parameters, non-positive COUNT/INTERVAL and malformed UNTIL

    Args:
        rrule: Raw RRULE text without the ``RRULE:`` prefix

    Returns:
        Cleaned RRULE text (possibly empty)
    """
    if not rrule:
        return ""

    cleaned = re.sub(r"mailto:[^;,]+", "", rrule, flags=re.IGNORECASE)
    cleaned = cleaned.replace("%20", " ")
    cleaned = re.sub(r"\s+", "", cleaned)
    cleaned = re.sub(r",{2,}", ",", cleaned)
    cleaned = cleaned.replace(",;", ";").rstrip(";,")

    params = []
    for param in cleaned.split(";"):
        if "=" not in param:
            continue
        name, _, value = param.partition("=")
        name = name.upper()
        value = value.strip(",")
        if not name or not value:
            continue
        if name in ("COUNT", "INTERVAL"):
            if not _POSITIVE_INT.match(value) or int(value) <= 0:
                logger.debug("Dropping invalid %s=%r from RRULE", name, value)
                continue
            value = str(int(value))
        elif name == "UNTIL" and not _UNTIL_LITERAL.match(value):
            logger.debug("Dropping malformed UNTIL=%r from RRULE", value)
            continue
        params.append(f"{name}={value}")

    return ";".join(params)


def format_rrule(config: RecurrenceConfig) -> str:
    """Render a RecurrenceConfig as an RRULE string (without ``RRULE:`` prefix).

    Returns an empty string for non-recurring or unrecognized patterns.
    """
    if not isinstance(config.pattern, RecurrencePattern) or config.pattern == RecurrencePattern.NONE:
        return ""

    parts = [f"FREQ={PATTERN_TO_FREQ[config.pattern]}"]
    if config.interval > 1:
        parts.append(f"INTERVAL={config.interval}")
    if config.pattern == RecurrencePattern.WEEKLY and config.weekdays:
        parts.append("BYDAY=" + ",".join(day.ical_code for day in config.weekdays))
    if config.end_type == RecurrenceEndType.AFTER and config.occurrences:
        parts.append(f"COUNT={config.occurrences}")
    elif config.end_type == RecurrenceEndType.ON and config.until is not None:
        parts.append("UNTIL=" + config.until.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ"))
    return ";".join(parts)


class RecurrenceRuleParser:
    """Normalize either recurrence grammar into a RecurrenceConfig."""

    def parse(self, raw: Any) -> RecurrenceConfig:
        """Parse an event's raw recurrence rule.

        Args:
            raw: None, a RecurrenceConfig, a mapping, JSON text of a structured
                config, or an RRULE string (optionally ``RRULE:``-prefixed or
                embedded in a DTSTART/RRULE block)

        Returns:
            RecurrenceConfig; pattern None when there is no rule

        Raises:
            RecurrenceParseError: If the rule is present but matches neither grammar
        """
        if raw is None:
            return RecurrenceConfig()
        if isinstance(raw, RecurrenceConfig):
            return raw
        if isinstance(raw, Mapping):
            return self._parse_structured(raw)
        if not isinstance(raw, str):
            raise RecurrenceParseError(f"Unsupported recurrence rule type: {type(raw).__name__}")

        text = raw.strip()
        if not text:
            return RecurrenceConfig()

        decoded = self._decode_json(text)
        if isinstance(decoded, Mapping):
            if "pattern" in decoded:
                return self._parse_structured(decoded)
        elif isinstance(decoded, str):
            text = decoded.strip()
        elif decoded is None and text == "null":
            return RecurrenceConfig()

        if "FREQ=" in text.upper():
            return self._parse_rrule(text)

        raise RecurrenceParseError(f"Unrecognized recurrence rule: {raw!r}")

    def parse_or_none(self, raw: Any) -> RecurrenceConfig:
        """Parse, degrading to a non-recurring config on RecurrenceParseError."""
        try:
            return self.parse(raw)
        except RecurrenceParseError as e:
            logger.warning("Treating event as non-recurring: %s", e)
            return RecurrenceConfig()

    def _decode_json(self, text: str) -> Any:
        if text[:1] not in ('{', '"') and text != "null":
            return _NOT_JSON
        try:
            return json.loads(text)
        except ValueError:
            logger.debug("Recurrence rule is not JSON: %r", text[:80])
            return _NOT_JSON

    def _parse_structured(self, data: Mapping) -> RecurrenceConfig:
        if "pattern" not in data:
            raise RecurrenceParseError("Structured recurrence rule has no pattern field")
        try:
            return RecurrenceConfig.model_validate(dict(data))
        except ValidationError as e:
            raise RecurrenceParseError(f"Invalid structured recurrence rule: {e}") from e

    def _extract_rrule_line(self, text: str) -> str:
        """Pick the RRULE line out of a DTSTART/RRULE block and strip its prefix."""
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        rule = next((line for line in lines if line.upper().startswith("RRULE:")), None)
        if rule is None:
            rule = next((line for line in lines if "FREQ=" in line.upper()), text)
        if rule.upper().startswith("RRULE:"):
            rule = rule[len("RRULE:"):]
        return rule

    def _parse_rrule(self, text: str) -> RecurrenceConfig:
        rule = sanitize_rrule(self._extract_rrule_line(text))
        if "FREQ=" not in rule:
            raise RecurrenceParseError(f"RRULE has no usable FREQ: {text!r}")

        try:
            recur = vRecur.from_ical(rule)
        except ValueError as e:
            raise RecurrenceParseError(f"Malformed RRULE {rule!r}: {e}") from e

        freq = str(recur["FREQ"][0]).upper()
        pattern: Any = FREQ_TO_PATTERN.get(freq, freq.capitalize())

        fields: dict[str, Any] = {"pattern": pattern, "end_type": RecurrenceEndType.NEVER}

        interval = self._first(recur, "INTERVAL")
        if interval is not None:
            fields["interval"] = int(interval)

        if pattern == RecurrencePattern.WEEKLY and "BYDAY" in recur:
            weekdays = []
            for code in recur["BYDAY"]:
                weekday = Weekday.parse(str(code))
                if weekday is None:
                    logger.warning("Ignoring unknown BYDAY code %r", code)
                    continue
                weekdays.append(weekday)
            fields["weekdays"] = weekdays
        elif "BYDAY" in recur:
            logger.debug("Ignoring BYDAY for %s rule", freq)

        count = self._first(recur, "COUNT")
        if count is not None:
            fields["end_type"] = RecurrenceEndType.AFTER
            fields["occurrences"] = int(count)

        until = self._first(recur, "UNTIL")
        if until is not None:
            if count is not None:
                logger.debug("RRULE has both COUNT and UNTIL; UNTIL takes precedence")
            fields["end_type"] = RecurrenceEndType.ON
            fields["until"] = self._until_to_utc(until)

        try:
            return RecurrenceConfig.model_validate(fields)
        except ValidationError as e:
            raise RecurrenceParseError(f"Invalid RRULE values in {rule!r}: {e}") from e

    @staticmethod
    def _first(recur: vRecur, key: str) -> Optional[Any]:
        values = recur.get(key)
        if not values:
            return None
        return values[0]

    @staticmethod
    def _until_to_utc(until: Any) -> datetime:
        if isinstance(until, datetime):
            return until.replace(tzinfo=UTC) if until.tzinfo is None else until.astimezone(UTC)
        if isinstance(until, date):
            return datetime.combine(until, time(23, 59, 59), tzinfo=UTC)
        raise RecurrenceParseError(f"Unsupported UNTIL value: {until!r}")


_NOT_JSON = object()
