"""Unit tests for grid_datetime_utils module."""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from calendargrid.calendar.grid_datetime_utils import (
    DateKeyMapper,
    align_awareness,
    epoch_millis,
    format_day_key,
    parse_day_key,
    parse_instant,
)
from calendargrid.calendar.grid_exceptions import InvalidDateError

pytestmark = pytest.mark.unit

VIEWER_TIMEZONES = ["UTC", "America/Los_Angeles", "Asia/Tokyo", "Pacific/Kiritimati", "Pacific Standard Time"]


class TestParseInstant:
    """Tests for parse_instant."""

    def test_iso_utc(self):
        assert parse_instant("2025-04-01T09:00:00Z") == datetime(2025, 4, 1, 9, 0, tzinfo=UTC)

    def test_iso_offset_kept(self):
        parsed = parse_instant("2025-04-04T23:30:00-07:00")
        assert parsed.utcoffset() == timedelta(hours=-7)
        assert parsed.day == 4

    def test_date_only_is_naive_midnight(self):
        assert parse_instant("2025-04-01") == datetime(2025, 4, 1)

    def test_ical_basic_format(self):
        assert parse_instant("20250401T090000Z") == datetime(2025, 4, 1, 9, 0, tzinfo=UTC)

    def test_lenient_fallback(self):
        assert parse_instant("April 1, 2025 9:00") == datetime(2025, 4, 1, 9, 0)

    def test_epoch_millis(self):
        assert parse_instant(1743724800000) == datetime(2025, 4, 4, tzinfo=UTC)

    def test_datetime_and_date_objects(self):
        dt = datetime(2025, 4, 1, 9, 0, tzinfo=UTC)
        assert parse_instant(dt) is dt
        assert parse_instant(date(2025, 4, 1)) == datetime(2025, 4, 1)

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", True, [2025, 4, 1], 1e30])
    def test_invalid_values_raise(self, value):
        with pytest.raises(InvalidDateError):
            parse_instant(value)


class TestHelpers:
    """Tests for the smaller date helpers."""

    def test_align_awareness_only_when_mixed(self):
        naive = datetime(2025, 4, 1, 9, 0)
        aware = datetime(2025, 4, 1, 10, 0, tzinfo=UTC)
        start, end = align_awareness(naive, aware)
        assert start.tzinfo is UTC
        assert end is aware
        assert align_awareness(naive, naive) == (naive, naive)

    def test_epoch_millis(self):
        assert epoch_millis(datetime(1970, 1, 1, 0, 0, 1)) == 1000
        assert epoch_millis(datetime(2025, 4, 4, tzinfo=UTC)) == 1743724800000
        assert epoch_millis(datetime(2025, 4, 4, 2, tzinfo=timezone(timedelta(hours=2)))) == 1743724800000

    def test_day_key_round_trip_and_validation(self):
        assert format_day_key(date(2025, 4, 4)) == "2025-04-04"
        assert parse_day_key("2025-04-04") == date(2025, 4, 4)
        with pytest.raises(InvalidDateError):
            parse_day_key("2025-13-01")


class TestDateKeyMapper:
    """Tests for timezone-stable day keys."""

    @pytest.mark.parametrize("viewer_timezone", VIEWER_TIMEZONES)
    def test_midnight_utc_keys_to_same_day_for_every_viewer(self, viewer_timezone):
        mapper = DateKeyMapper(viewer_timezone)
        assert mapper.to_day_key("2025-04-04T00:00:00Z") == "2025-04-04"
        assert mapper.to_day_key("2025-04-04T00:00:00Z", all_day=True) == "2025-04-04"

    @pytest.mark.parametrize("viewer_timezone", VIEWER_TIMEZONES)
    def test_stored_offset_date_fields_are_used(self, viewer_timezone):
        mapper = DateKeyMapper(viewer_timezone)
        assert mapper.to_day_key("2025-04-04T23:30:00-07:00") == "2025-04-04"
        assert mapper.to_day_key(datetime(2025, 4, 4, 1, 0, tzinfo=timezone(timedelta(hours=9)))) == "2025-04-04"

    def test_epoch_input(self):
        assert DateKeyMapper("Asia/Tokyo").to_day_key(1743724800000) == "2025-04-04"

    def test_today_key_uses_viewer_timezone(self):
        now = datetime(2025, 4, 4, 3, 0, tzinfo=UTC)
        assert DateKeyMapper("UTC").today_key(now) == "2025-04-04"
        assert DateKeyMapper("America/Los_Angeles").today_key(now) == "2025-04-03"

    def test_today_key_honors_test_time(self, monkeypatch):
        monkeypatch.setenv("CALENDARGRID_TEST_TIME", "2025-06-10T12:00:00Z")
        assert DateKeyMapper("Asia/Tokyo").today_key() == "2025-06-10"

    def test_invalid_instant_raises(self):
        with pytest.raises(InvalidDateError):
            DateKeyMapper().to_day_key("garbage")
