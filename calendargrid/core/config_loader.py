"""calendargrid.core.config_loader

Config loader for calendargrid.

- Reads YAML with PyYAML (`safe_load`); JSON files are valid YAML.
- Exposes a typed dataclass `GridConfig` and a `load_config()` helper that
  accepts an optional path override.
- `apply_env_overrides()` layers CALENDARGRID_* environment variables on top.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from calendargrid.calendar.grid_exceptions import GridConfigError

logger = logging.getLogger(__name__)

WEEK_START_CHOICES = ("sunday", "monday")
LOG_LEVEL_CHOICES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_OVERRIDES: dict[str, str] = {
    "CALENDARGRID_MAX_OCCURRENCES": "max_occurrences",
    "CALENDARGRID_HORIZON_PADDING_MONTHS": "horizon_padding_months",
    "CALENDARGRID_WEEK_START": "week_start",
    "CALENDARGRID_DEFAULT_TIMEZONE": "default_timezone",
    "CALENDARGRID_DEDUPE": "dedupe_enabled",
    "CALENDARGRID_LOG_LEVEL": "log_level",
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class GridConfig:
    """Typed configuration for calendargrid.

    Fields:
        max_occurrences: safety cap on occurrences per event (1..1000)
        horizon_padding_months: months generated past the window end (0..12)
        weekly_scan_days: day-by-day scan bound for weekday rules (7..31)
        week_start: first column of the month grid, "sunday" or "monday"
        default_timezone: viewer timezone used when none is passed
        dedupe_enabled: collapse duplicate sync copies per day
        log_level: logging level name
    """

    max_occurrences: int = 100
    horizon_padding_months: int = 1
    weekly_scan_days: int = 14
    week_start: str = "sunday"
    default_timezone: str = "UTC"
    dedupe_enabled: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> GridConfig:
        """Create GridConfig from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int and clamped to their bounds;
        unrecognized choices fall back to the default. Each coercion is logged.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int, minimum: int, maximum: int) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < minimum:
                logger.warning("%s %d below minimum; coercing to %d", key, value, minimum)
                return minimum
            if value > maximum:
                logger.warning("%s %d above maximum; coercing to %d", key, value, maximum)
                return maximum
            return value

        def _coerce_choice(key: str, default: str, choices: tuple[str, ...], upper: bool = False) -> str:
            raw = data.get(key, default)
            value = str(raw).strip() if raw is not None else default
            value = value.upper() if upper else value.lower()
            if value not in choices:
                logger.warning("Config %s=%r is not one of %s; using %s", key, raw, ", ".join(choices), default)
                return default
            return value

        default_timezone = data.get("default_timezone", "UTC")
        default_timezone = str(default_timezone).strip() if default_timezone else "UTC"

        return cls(
            max_occurrences=_coerce_int("max_occurrences", 100, 1, 1000),
            horizon_padding_months=_coerce_int("horizon_padding_months", 1, 0, 12),
            weekly_scan_days=_coerce_int("weekly_scan_days", 14, 7, 31),
            week_start=_coerce_choice("week_start", "sunday", WEEK_START_CHOICES),
            default_timezone=default_timezone,
            dedupe_enabled=_coerce_bool("dedupe_enabled", data.get("dedupe_enabled", True), True),
            log_level=_coerce_choice("log_level", "INFO", LOG_LEVEL_CHOICES, upper=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_occurrences": self.max_occurrences,
            "horizon_padding_months": self.horizon_padding_months,
            "weekly_scan_days": self.weekly_scan_days,
            "week_start": self.week_start,
            "default_timezone": self.default_timezone,
            "dedupe_enabled": self.dedupe_enabled,
            "log_level": self.log_level,
        }


def _coerce_bool(key: str, raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    logger.warning("Config %s=%r is not a boolean; using default %s", key, raw, default)
    return default


def _load_yaml(path: Path) -> Any:
    """Load a YAML (or JSON) document; an empty file yields an empty mapping."""
    try:
        loaded = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise GridConfigError(f"Unable to parse config file {path}: {exc}") from exc
    if loaded is None:
        return {}
    return loaded


def load_config(path: str | Path | None = None) -> GridConfig:
    """Load configuration from a YAML/JSON file and return a GridConfig.

    Args:
        path: Optional path to the config file. Defaults to
              ./calendargrid.yaml in the current working directory.

    Returns:
        GridConfig with values from file (or defaults).

    Raises:
        GridConfigError: If the file is not valid YAML or its top level is not a mapping
    """
    p = Path(path) if path else Path.cwd() / "calendargrid.yaml"
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return GridConfig()

    raw = _load_yaml(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise GridConfigError("Config file must contain a mapping at top level")
    cfg = GridConfig.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg


def apply_env_overrides(cfg: GridConfig, environ: Mapping[str, str] | None = None) -> GridConfig:
    """Return a copy of cfg with CALENDARGRID_* environment variables applied.

    Recognizes:
    - CALENDARGRID_MAX_OCCURRENCES -> max_occurrences
    - CALENDARGRID_HORIZON_PADDING_MONTHS -> horizon_padding_months
    - CALENDARGRID_WEEK_START -> week_start
    - CALENDARGRID_DEFAULT_TIMEZONE -> default_timezone
    - CALENDARGRID_DEDUPE -> dedupe_enabled
    - CALENDARGRID_LOG_LEVEL -> log_level

    Values pass through the same coercion as file values.
    """
    env = os.environ if environ is None else environ
    overrides = {field: env[var] for var, field in ENV_OVERRIDES.items() if env.get(var)}
    if not overrides:
        return cfg

    logger.debug("Applying environment overrides for: %s", ", ".join(sorted(overrides)))
    merged = GridConfig.from_dict({**cfg.to_dict(), **overrides})
    return replace(cfg, **{field: getattr(merged, field) for field in overrides})
