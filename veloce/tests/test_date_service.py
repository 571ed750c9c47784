"""
Tests for DateService.

Tests cover:
1. Next occurrence for every recurrence rule
2. Recurring day parsing and formatting
3. Day and week ranges
4. Countdown and deadline formatting
"""
import pytest
from datetime import date, datetime, timedelta

from veloce.services.date_service import DateService
from veloce.enums import RecurrenceType

WEDNESDAY = datetime(2025, 1, 15, 18, 30)
FRIDAY = datetime(2025, 1, 17, 9, 0)
SATURDAY = datetime(2025, 1, 18, 9, 0)
TUESDAY = datetime(2025, 1, 14, 9, 0)


class TestNextOccurrence:
    """Tests for calculate_next_occurrence"""

    def test_once_has_no_next_date(self):
        assert DateService.calculate_next_occurrence(RecurrenceType.ONCE, WEDNESDAY) is None

    def test_daily_wednesday_to_thursday(self):
        """A daily task completed on Wednesday recurs on Thursday"""
        result = DateService.calculate_next_occurrence(RecurrenceType.DAILY, WEDNESDAY)
        assert result == datetime(2025, 1, 16, 18, 30)
        assert result.strftime("%A") == "Thursday"

    def test_weekdays_friday_to_monday(self):
        """Weekdays-only task completed on Friday recurs the following Monday"""
        result = DateService.calculate_next_occurrence(RecurrenceType.WEEKDAYS, FRIDAY)
        assert result.date() == date(2025, 1, 20)

    def test_weekdays_saturday_to_monday(self):
        """Sunday is skipped too"""
        result = DateService.calculate_next_occurrence(RecurrenceType.WEEKDAYS, SATURDAY)
        assert result.date() == date(2025, 1, 20)

    def test_weekdays_midweek_is_next_day(self):
        result = DateService.calculate_next_occurrence(RecurrenceType.WEEKDAYS, WEDNESDAY)
        assert result.date() == date(2025, 1, 16)

    def test_weekly_and_biweekly(self):
        assert DateService.calculate_next_occurrence(RecurrenceType.WEEKLY, WEDNESDAY) == WEDNESDAY + timedelta(weeks=1)
        assert DateService.calculate_next_occurrence(RecurrenceType.BIWEEKLY, WEDNESDAY) == WEDNESDAY + timedelta(weeks=2)

    def test_monthly_clamps_to_month_end(self):
        """Jan 31 -> Feb 28"""
        result = DateService.calculate_next_occurrence(RecurrenceType.MONTHLY, datetime(2025, 1, 31, 8, 0))
        assert result == datetime(2025, 2, 28, 8, 0)

    def test_custom_monday_wednesday_from_tuesday(self):
        """Days {Mon, Wed} from a Tuesday -> Wednesday of the same week"""
        result = DateService.calculate_next_occurrence(RecurrenceType.CUSTOM, TUESDAY, [1, 3])
        assert result.date() == date(2025, 1, 15)

    def test_custom_wraps_into_next_week(self):
        """Days {Mon} from a Wednesday -> next Monday"""
        result = DateService.calculate_next_occurrence(RecurrenceType.CUSTOM, WEDNESDAY, [1])
        assert result.date() == date(2025, 1, 20)

    def test_custom_same_weekday_is_one_week_later(self):
        """Scan starts the day after the base date"""
        result = DateService.calculate_next_occurrence(RecurrenceType.CUSTOM, WEDNESDAY, [3])
        assert result.date() == date(2025, 1, 22)

    def test_custom_without_days(self):
        assert DateService.calculate_next_occurrence(RecurrenceType.CUSTOM, WEDNESDAY, []) is None


class TestRecurringDays:
    """Tests for stored recurring-day arrays"""

    def test_parse_sorts_and_drops_invalid(self):
        assert DateService.parse_recurring_days("[3, 1, 9, -1, 1]") == [1, 3]

    @pytest.mark.parametrize("raw", [None, "", "not json", "{\"a\": 1}"])
    def test_parse_bad_input(self, raw):
        assert DateService.parse_recurring_days(raw) == []

    def test_format(self):
        assert DateService.format_recurring_days("[0,6]") == "Sun, Sat"
        assert DateService.format_recurring_days(None) is None

    def test_sunday_index(self):
        assert DateService.sunday_index(datetime(2025, 1, 19)) == 0  # Sunday
        assert DateService.sunday_index(WEDNESDAY) == 3


class TestRanges:
    """Tests for day and week ranges"""

    def test_day_range(self):
        start, end = DateService.get_day_range(date(2025, 1, 15))
        assert start == datetime(2025, 1, 15, 0, 0)
        assert end == datetime(2025, 1, 16, 0, 0)

    def test_end_of_day(self):
        assert DateService.end_of_day(WEDNESDAY) == datetime(2025, 1, 15, 23, 59, 59)

    def test_week_starts_monday(self):
        start, end = DateService.get_week_range(WEDNESDAY)
        assert start == datetime(2025, 1, 13, 0, 0)
        assert end == datetime(2025, 1, 20, 0, 0)

    def test_sunday_belongs_to_previous_week(self):
        assert DateService.start_of_week(datetime(2025, 1, 19, 23, 0)) == datetime(2025, 1, 13)


class TestFormatting:
    """Tests for deadline and countdown strings"""

    def test_days_remaining_truncates(self):
        now = datetime(2025, 1, 15, 12, 0)
        assert DateService.days_remaining(now + timedelta(days=2, hours=20), now) == 2
        assert DateService.days_remaining(now - timedelta(hours=30), now) == -1
        assert DateService.days_remaining(None, now) is None

    @pytest.mark.parametrize("days,expected", [
        (None, "No deadline"),
        (0, "Due today"),
        (1, "Due tomorrow"),
        (5, "5 days left"),
        (-1, "1 day overdue"),
        (-3, "3 days overdue"),
    ])
    def test_format_days_remaining(self, days, expected):
        assert DateService.format_days_remaining(days) == expected

    @pytest.mark.parametrize("minutes,expected", [(90, "1h 30m"), (120, "2h"), (45, "45m"), (None, None)])
    def test_format_duration(self, minutes, expected):
        assert DateService.format_duration(minutes) == expected

    def test_countdowns(self):
        assert DateService.format_hours_left(0) == "Expired"
        assert DateService.format_hours_left(2 * 3600 + 15 * 60) == "2h 15m left"
        assert DateService.format_days_left(3 * 86400 + 4 * 3600) == "3d 4h left"
        assert DateService.format_short_countdown(250) == "4m 10s"
        assert DateService.format_short_countdown(-5) == "Expired"
