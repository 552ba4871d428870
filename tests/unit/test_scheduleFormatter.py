"""
Unit tests for the schedule formatter.

Covers weekday convention conversion, 12-hour time rendering, compact day
ranges and timezone display labels.
"""

from datetime import datetime, time, timezone

import pytest

from rxdesk.services.scheduleFormatter import (
    db_day_to_ui_index,
    format_day_range,
    format_time,
    format_time_range,
    format_timezone_label,
    is_valid_timezone,
    parse_time,
    ui_index_to_db_day,
)

SUMMER = datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)
WINTER = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Weekday conversion
# ---------------------------------------------------------------------------


class TestWeekdayConversion:

    def test_sunday_is_last_in_ui(self):
        assert db_day_to_ui_index(0) == 6

    def test_monday_is_first_in_ui(self):
        assert db_day_to_ui_index(1) == 0

    def test_saturday(self):
        assert db_day_to_ui_index(6) == 5

    def test_round_trip_for_every_day(self):
        for db_day in range(7):
            assert ui_index_to_db_day(db_day_to_ui_index(db_day)) == db_day

    def test_ui_sunday_maps_to_zero(self):
        assert ui_index_to_db_day(6) == 0

    @pytest.mark.parametrize("bad", [-1, 7, 12])
    def test_out_of_range_rejected(self, bad):
        with pytest.raises(ValueError):
            db_day_to_ui_index(bad)
        with pytest.raises(ValueError):
            ui_index_to_db_day(bad)


# ---------------------------------------------------------------------------
# Times
# ---------------------------------------------------------------------------


class TestFormatTime:

    def test_morning(self):
        assert format_time("08:30") == "8:30am"

    def test_afternoon_with_seconds(self):
        assert format_time("17:00:00") == "5:00pm"

    def test_midnight(self):
        assert format_time("00:00") == "12:00am"

    def test_noon(self):
        assert format_time(time(12, 0)) == "12:00pm"

    def test_unparseable_string_returned_unchanged(self):
        assert format_time("later") == "later"

    def test_range(self):
        assert format_time_range("08:30", "17:00") == "8:30am - 5:00pm"

    def test_parse_time_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_time("8h30")


# ---------------------------------------------------------------------------
# Day ranges
# ---------------------------------------------------------------------------


class TestFormatDayRange:

    def test_weekdays_collapse(self):
        assert format_day_range(["Mon", "Tue", "Wed", "Thu", "Fri"]) == "Mon - Fri"

    def test_run_plus_single(self):
        assert format_day_range(["Mon", "Tue", "Wed", "Fri"]) == "Mon - Wed, Fri"

    def test_non_consecutive_listed(self):
        assert format_day_range(["Mon", "Wed", "Fri"]) == "Mon, Wed, Fri"

    def test_two_days_comma_joined_even_when_adjacent(self):
        assert format_day_range(["Sat", "Sun"]) == "Sat, Sun"

    def test_single_day(self):
        assert format_day_range(["Thu"]) == "Thu"

    def test_empty(self):
        assert format_day_range([]) == ""

    def test_input_order_does_not_matter(self):
        assert format_day_range(["Fri", "Mon", "Wed", "Tue", "Thu"]) == "Mon - Fri"

    def test_short_runs_are_not_collapsed(self):
        assert format_day_range(["Mon", "Tue", "Thu", "Fri"]) == "Mon, Tue, Thu, Fri"

    def test_whole_week(self):
        days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
        assert format_day_range(days) == "Mon - Sun"


# ---------------------------------------------------------------------------
# Timezones
# ---------------------------------------------------------------------------


class TestTimezoneLabel:

    def test_dublin_summer(self):
        assert format_timezone_label("Europe/Dublin", SUMMER) == "Dublin (GMT+1)"

    def test_dublin_winter_is_plain_gmt(self):
        assert format_timezone_label("Europe/Dublin", WINTER) == "Dublin (GMT)"

    def test_new_york_summer(self):
        assert format_timezone_label("America/New_York", SUMMER) == "New York (GMT-4)"

    def test_half_hour_offset(self):
        assert format_timezone_label("Asia/Kolkata", WINTER) == "Kolkata (GMT+5:30)"

    def test_nested_zone_uses_last_segment(self):
        label = format_timezone_label("America/Argentina/Buenos_Aires", WINTER)
        assert label == "Buenos Aires (GMT-3)"

    def test_unknown_zone_returned_unchanged(self):
        assert format_timezone_label("Mars/Olympus_Mons", SUMMER) == "Mars/Olympus_Mons"

    def test_is_valid_timezone(self):
        assert is_valid_timezone("America/Chicago") is True
        assert is_valid_timezone("Mars/Olympus_Mons") is False
