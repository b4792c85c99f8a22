"""Unit tests for the calendargrid command line."""

import json

import pytest
import yaml

from calendargrid.__main__ import _create_parser, load_events, main, run_preview

pytestmark = [pytest.mark.unit, pytest.mark.usefixtures("restore_logging")]

STANDUP = {
    "id": "standup",
    "title": "Standup",
    "startInstant": "2025-04-01T09:00:00Z",
    "endInstant": "2025-04-01T09:30:00Z",
    "allDay": False,
    "recurrenceRule": "RRULE:FREQ=WEEKLY;BYDAY=MO,WE;COUNT=4",
}


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run from an empty directory with a fixed clock."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CALENDARGRID_TEST_TIME", "2025-04-04T12:00:00Z")
    return tmp_path


def _run(*argv):
    return run_preview(_create_parser().parse_args(list(argv)))


class TestLoadEvents:
    """Tests for load_events."""

    def test_list_document(self, workdir):
        path = workdir / "events.json"
        path.write_text(json.dumps([STANDUP]))
        assert load_events(path) == [STANDUP]

    def test_mapping_with_events_key(self, workdir):
        path = workdir / "events.yaml"
        path.write_text(yaml.safe_dump({"events": [STANDUP]}))
        assert load_events(path)[0]["id"] == "standup"

    def test_empty_document(self, workdir):
        path = workdir / "events.yaml"
        path.write_text("")
        assert load_events(path) == []


class TestRunPreview:
    """Tests for run_preview."""

    def test_text_preview(self, workdir, capsys):
        (workdir / "events.json").write_text(json.dumps([STANDUP]))

        assert _run("events.json", "--month", "2025-04") == 0

        out = capsys.readouterr().out
        assert out.splitlines()[0] == "2025-04"
        assert "Sun  Mon  Tue  Wed  Thu  Fri  Sat" in out
        assert "2025-04-01 (Tue)" in out
        assert "2025-04-09 (Wed)" in out
        assert "2025-04-14" not in out
        assert "Standup  (#3)" in out

    def test_defaults_to_current_month_and_marks_today(self, workdir, capsys):
        event = dict(STANDUP, recurrenceRule=None, startInstant="2025-04-04T09:00:00Z", endInstant="2025-04-04T10:00:00Z")
        (workdir / "events.json").write_text(json.dumps([event]))

        assert _run("events.json") == 0

        assert "2025-04-04 (Fri) *today*" in capsys.readouterr().out

    def test_json_preview(self, workdir, capsys):
        (workdir / "events.json").write_text(json.dumps([STANDUP]))

        assert _run("events.json", "--month", "2025-04", "--json", "--week-start", "monday") == 0

        payload = json.loads(capsys.readouterr().out)
        assert sorted(payload["days"]) == ["2025-04-01", "2025-04-02", "2025-04-07", "2025-04-09"]
        assert payload["days"]["2025-04-07"][0]["key"] == "standup-recurrence-2"
        assert payload["duplicates_removed"] == 0

    def test_no_dedupe_flag(self, workdir, capsys):
        copy = dict(STANDUP, id="standup-copy", url="https://calendar.example.com/standup")
        (workdir / "events.json").write_text(json.dumps([STANDUP, copy]))

        assert _run("events.json", "--month", "2025-04", "--json", "--no-dedupe") == 0

        payload = json.loads(capsys.readouterr().out)
        assert len(payload["days"]["2025-04-01"]) == 2

    def test_config_file_is_read_from_cwd(self, workdir, capsys):
        (workdir / "calendargrid.yaml").write_text("week_start: monday\n")
        (workdir / "events.json").write_text("[]")

        assert _run("events.json", "--month", "2025-04") == 0

        assert "Mon  Tue  Wed  Thu  Fri  Sat  Sun" in capsys.readouterr().out

    def test_invalid_config_exits_1(self, workdir, capsys):
        (workdir / "bad.yaml").write_text("- not\n- a mapping\n")
        (workdir / "events.json").write_text("[]")
        assert _run("events.json", "--config", "bad.yaml") == 1
        assert "calendargrid:" in capsys.readouterr().err

    def test_missing_events_file_exits_1(self, workdir, capsys):
        assert _run("missing.json") == 1
        assert "cannot read events" in capsys.readouterr().err

    @pytest.mark.parametrize("month", ["2025-13", "april"])
    def test_invalid_month_exits_2(self, workdir, capsys, month):
        (workdir / "events.json").write_text("[]")
        assert _run("events.json", "--month", month) == 2
        assert "invalid --month" in capsys.readouterr().err

    def test_warnings_are_printed(self, workdir, capsys):
        broken = dict(STANDUP, id="broken", startInstant="not a date")
        (workdir / "events.json").write_text(json.dumps([broken]))

        assert _run("events.json", "--month", "2025-04") == 0

        assert "warning: Skipping event broken" in capsys.readouterr().out


class TestMain:
    """Tests for main."""

    def test_main_exits_with_status(self, workdir):
        (workdir / "events.json").write_text("[]")
        with pytest.raises(SystemExit) as exc_info:
            main(["events.json", "--month", "2025-04"])
        assert exc_info.value.code == 0
