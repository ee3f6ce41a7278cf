# SPDX-License-Identifier: Apache-2.0
"""
Behavioral tests for the week key functions in week_utility.py.
"""
import datetime

import pytest

from scorecard.week_utility import (
    current_week_key,
    format_week_key,
    is_future_week,
    is_past_week,
    parse_week_key,
    to_date,
    week_beginning,
    week_ending,
    week_key_for,
    weeks_in_range,
)

JANUARY_2024 = [datetime.date(2024, 1, 1) + datetime.timedelta(days=n) for n in range(31)]


# ---------------------------------------------------------------------------
# week_ending / week_beginning
# ---------------------------------------------------------------------------

class TestWeekEnding:
    def test_friday_is_its_own_week_ending(self):
        assert week_ending(datetime.date(2024, 5, 17)) == "2024-05-17"

    def test_saturday_rolls_to_next_friday(self):
        assert week_ending(datetime.date(2024, 5, 18)) == "2024-05-24"

    def test_monday_rolls_forward(self):
        assert week_ending(datetime.date(2024, 5, 13)) == "2024-05-17"

    def test_crosses_year_boundary(self):
        assert week_ending(datetime.date(2024, 12, 30)) == "2025-01-03"

    def test_zero_padded(self):
        assert week_ending(datetime.date(2024, 1, 1)) == "2024-01-05"

    def test_datetime_uses_local_calendar_day(self):
        """A late evening timestamp stays on its own calendar day."""
        assert week_ending(datetime.datetime(2024, 5, 16, 23, 30)) == "2024-05-17"

    @pytest.mark.parametrize("d", JANUARY_2024)
    def test_is_a_friday_on_or_after_the_date(self, d):
        friday = parse_week_key(week_ending(d))
        assert friday.isoweekday() == 5
        assert 0 <= (friday - d).days <= 6


class TestWeekBeginning:
    def test_monday_is_its_own_week_beginning(self):
        assert week_beginning(datetime.date(2024, 5, 13)) == "2024-05-13"

    def test_friday_rolls_back(self):
        assert week_beginning(datetime.date(2024, 5, 17)) == "2024-05-13"

    def test_sunday_rolls_back_six_days(self):
        assert week_beginning(datetime.date(2024, 5, 19)) == "2024-05-13"

    def test_crosses_year_boundary(self):
        assert week_beginning(datetime.date(2025, 1, 1)) == "2024-12-30"

    @pytest.mark.parametrize("d", JANUARY_2024)
    def test_is_a_monday_on_or_before_the_date(self, d):
        monday = parse_week_key(week_beginning(d))
        assert monday.isoweekday() == 1
        assert 0 <= (d - monday).days <= 6


class TestWeekKeyFor:
    def test_dispatches_on_convention(self):
        d = datetime.date(2024, 5, 15)
        assert week_key_for(d, 'ending') == "2024-05-17"
        assert week_key_for(d, 'beginning') == "2024-05-13"

    def test_unknown_convention_raises(self):
        with pytest.raises(ValueError, match="Unsupported week convention"):
            week_key_for(datetime.date(2024, 5, 15), 'middle')

    def test_current_week_key_uses_today(self, today):
        assert current_week_key('ending', today) == "2024-05-17"
        assert current_week_key('beginning', today) == "2024-05-13"


# ---------------------------------------------------------------------------
# weeks_in_range
# ---------------------------------------------------------------------------

class TestWeeksInRange:
    def test_fridays_in_april(self):
        assert weeks_in_range("2024-04-01", "2024-04-30", 'ending') == [
            "2024-04-05", "2024-04-12", "2024-04-19", "2024-04-26"]

    def test_mondays_in_april(self):
        assert weeks_in_range(datetime.date(2024, 4, 1), datetime.date(2024, 4, 30), 'beginning') == [
            "2024-04-01", "2024-04-08", "2024-04-15", "2024-04-22", "2024-04-29"]

    def test_range_endpoints_are_inclusive(self):
        assert weeks_in_range("2024-04-05", "2024-04-12") == ["2024-04-05", "2024-04-12"]

    def test_no_target_day_in_range(self):
        assert weeks_in_range("2024-05-13", "2024-05-16", 'ending') == []

    def test_start_after_end_is_empty(self):
        assert weeks_in_range("2024-05-31", "2024-05-01", 'ending') == []

    def test_seven_day_steps(self):
        keys = weeks_in_range("2024-01-01", "2024-12-31", 'ending')
        dates = [parse_week_key(k) for k in keys]
        assert len(keys) == 52
        assert all((b - a).days == 7 for a, b in zip(dates, dates[1:]))

    def test_unknown_convention_raises(self):
        with pytest.raises(ValueError):
            weeks_in_range("2024-01-01", "2024-01-31", 'fortnight')


# ---------------------------------------------------------------------------
# parsing and comparison
# ---------------------------------------------------------------------------

class TestParsing:
    def test_parse_week_key(self):
        assert parse_week_key("2024-05-17") == datetime.date(2024, 5, 17)

    @pytest.mark.parametrize("bad", ["17-05-2024", "2024-13-01", "", None])
    def test_parse_rejects_malformed_keys(self, bad):
        with pytest.raises(ValueError):
            parse_week_key(bad)

    def test_format_week_key(self):
        assert format_week_key(datetime.datetime(2024, 3, 8, 10, 0)) == "2024-03-08"

    def test_to_date_rejects_numbers(self):
        with pytest.raises(TypeError):
            to_date(20240517)


class TestPastAndFuture:
    def test_previous_week_is_past(self, today):
        assert is_past_week("2024-05-10", 'ending', today) is True

    def test_current_week_is_neither(self, today):
        assert is_past_week("2024-05-17", 'ending', today) is False
        assert is_future_week("2024-05-17", 'ending', today) is False

    def test_next_week_is_future(self, today):
        assert is_future_week("2024-05-24", 'ending', today) is True
