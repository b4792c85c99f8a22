"""Unit tests for calendargrid.core.config_loader."""

import pytest

from calendargrid.calendar.grid_exceptions import GridConfigError
from calendargrid.core.config_loader import GridConfig, apply_env_overrides, load_config

pytestmark = pytest.mark.unit


class TestGridConfigFromDict:
    """Tests for GridConfig.from_dict coercion."""

    def test_defaults(self):
        cfg = GridConfig.from_dict(None)
        assert cfg == GridConfig()
        assert cfg.max_occurrences == 100
        assert cfg.horizon_padding_months == 1
        assert cfg.week_start == "sunday"
        assert cfg.dedupe_enabled is True

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("250", 250), (0, 1), (5000, 1000), ("lots", 100)],
    )
    def test_max_occurrences_coerced_and_clamped(self, raw, expected):
        assert GridConfig.from_dict({"max_occurrences": raw}).max_occurrences == expected

    def test_padding_and_scan_bounds(self):
        cfg = GridConfig.from_dict({"horizon_padding_months": 40, "weekly_scan_days": 2})
        assert cfg.horizon_padding_months == 12
        assert cfg.weekly_scan_days == 7

    def test_choices(self):
        cfg = GridConfig.from_dict({"week_start": " Monday ", "log_level": "debug"})
        assert cfg.week_start == "monday"
        assert cfg.log_level == "DEBUG"
        assert GridConfig.from_dict({"week_start": "friday"}).week_start == "sunday"
        assert GridConfig.from_dict({"log_level": "LOUD"}).log_level == "INFO"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(False, False), ("no", False), ("OFF", False), ("1", True), ("maybe", True)],
    )
    def test_dedupe_flag(self, raw, expected):
        assert GridConfig.from_dict({"dedupe_enabled": raw}).dedupe_enabled is expected

    def test_blank_timezone_falls_back_to_utc(self):
        assert GridConfig.from_dict({"default_timezone": ""}).default_timezone == "UTC"

    def test_to_dict_round_trip(self):
        cfg = GridConfig(max_occurrences=20, week_start="monday", dedupe_enabled=False)
        assert GridConfig.from_dict(cfg.to_dict()) == cfg


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "absent.yaml") == GridConfig()

    def test_default_path_is_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "calendargrid.yaml").write_text("week_start: monday\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().week_start == "monday"

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "grid.yaml"
        path.write_text("max_occurrences: 50\nhorizon_padding_months: 2\ndefault_timezone: Europe/Paris\n")
        cfg = load_config(path)
        assert cfg.max_occurrences == 50
        assert cfg.horizon_padding_months == 2
        assert cfg.default_timezone == "Europe/Paris"

    def test_json_is_accepted(self, tmp_path):
        path = tmp_path / "grid.json"
        path.write_text('{"dedupe_enabled": false}')
        assert load_config(path).dedupe_enabled is False

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == GridConfig()

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(GridConfigError):
            load_config(path)

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("week_start: [monday\n")
        with pytest.raises(GridConfigError):
            load_config(path)


class TestApplyEnvOverrides:
    """Tests for apply_env_overrides."""

    def test_no_overrides_returns_same_object(self):
        cfg = GridConfig()
        assert apply_env_overrides(cfg, environ={}) is cfg

    def test_overrides_are_coerced(self):
        env = {
            "CALENDARGRID_MAX_OCCURRENCES": "9999",
            "CALENDARGRID_WEEK_START": "MONDAY",
            "CALENDARGRID_DEDUPE": "false",
            "CALENDARGRID_DEFAULT_TIMEZONE": "Asia/Tokyo",
        }
        cfg = apply_env_overrides(GridConfig(horizon_padding_months=3), environ=env)
        assert cfg.max_occurrences == 1000
        assert cfg.week_start == "monday"
        assert cfg.dedupe_enabled is False
        assert cfg.default_timezone == "Asia/Tokyo"
        assert cfg.horizon_padding_months == 3

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("CALENDARGRID_LOG_LEVEL", "warning")
        assert apply_env_overrides(GridConfig()).log_level == "WARNING"
