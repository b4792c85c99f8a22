"""Custom exception hierarchy for the calendar grid engine.

Every error the engine raises derives from GridEngineError so callers can
recover at the event boundary without catching unrelated exceptions. None of
these are fatal to a build: the assembler records them as warnings and keeps
going with a best-effort bucket map.
"""


class GridEngineError(Exception):
    """Base exception for all calendar grid engine errors."""


class InvalidDateError(GridEngineError):
    """An event's start or end instant could not be parsed.

    Raised when:
    - The stored instant is missing or empty
    - The string is neither ISO 8601 nor an iCalendar date/date-time literal
    - The value has an unsupported type

    The assembler skips the whole event (base and recurrences) for the pass.
    """


class RecurrenceParseError(GridEngineError):
    """A recurrence rule is present but unparseable.

    Raised when the rule is neither a structured recurrence object with a
    ``pattern`` field nor an RRULE string containing ``FREQ=``, or when the
    RRULE grammar itself is malformed.

    The event is treated as non-recurring; the base occurrence is still shown.
    """


class UnknownPatternError(GridEngineError):
    """A structurally valid recurrence rule names a pattern the engine cannot expand.

    Generation stops at whatever has been produced so far. The base
    occurrence is always produced before this is raised.
    """

    def __init__(self, pattern: object):
        super().__init__(f"Unknown recurrence pattern: {pattern!r}")
        self.pattern = pattern


class GridConfigError(GridEngineError):
    """Configuration file could not be interpreted.

    Raised when a config file parses but its top level is not a mapping.
    """
