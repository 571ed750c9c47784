"""
Date calculation and formatting service.
Handles day/week ranges, recurrence calculations and countdown strings.
"""
from datetime import datetime, timedelta, date
from typing import Optional, List
import json

from dateutil.relativedelta import relativedelta

from veloce.enums import RecurrenceType
from veloce.constants import CUSTOM_RECURRENCE_SCAN_DAYS

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
SECONDS_PER_DAY = 86400


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def parse_time(time_str: str) -> tuple[int, int]:
        """
        Parse time string into hour and minute.

        Args:
            time_str: Time string in "HH:MM" format

        Returns:
            Tuple of (hour, minute)

        Raises:
            ValueError: If time string is invalid
        """
        parts = time_str.split(":")
        hour = int(parts[0])
        minute = int(parts[1])
        return hour, minute

    @staticmethod
    def sunday_index(dt: datetime) -> int:
        """Weekday as 0-6 with Sunday = 0"""
        return (dt.weekday() + 1) % 7

    @staticmethod
    def parse_recurring_days(raw: Optional[str]) -> List[int]:
        """
        Parse a stored recurring-days JSON array like "[1,3]".
        Values outside 0-6 are dropped.
        """
        if not raw:
            return []
        try:
            days = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return []
        if not isinstance(days, list):
            return []
        return sorted({d for d in days if isinstance(d, int) and 0 <= d <= 6})

    @staticmethod
    def format_recurring_days(raw: Optional[str]) -> Optional[str]:
        """"[1,3]" -> "Mon, Wed" """
        days = DateService.parse_recurring_days(raw)
        if not days:
            return None
        return ", ".join(DAY_NAMES[d] for d in days)

    @staticmethod
    def calculate_next_occurrence(
        recurring_type: RecurrenceType,
        base_date: datetime,
        recurring_days: Optional[List[int]] = None
    ) -> Optional[datetime]:
        """
        Calculate the next occurrence of a recurring task.

        Args:
            recurring_type: Recurrence rule
            base_date: Completion time of the current instance (or now)
            recurring_days: For custom rules, weekdays 0-6 with Sunday = 0

        Returns:
            Next occurrence, or None when the rule yields no date
        """
        if recurring_type == RecurrenceType.ONCE:
            return None

        if recurring_type == RecurrenceType.DAILY:
            return base_date + timedelta(days=1)

        if recurring_type == RecurrenceType.WEEKDAYS:
            next_date = base_date + timedelta(days=1)
            weekday = DateService.sunday_index(next_date)
            if weekday == 0:
                next_date += timedelta(days=1)
            elif weekday == 6:
                next_date += timedelta(days=2)
            return next_date

        if recurring_type == RecurrenceType.WEEKLY:
            return base_date + timedelta(weeks=1)

        if recurring_type == RecurrenceType.BIWEEKLY:
            return base_date + timedelta(weeks=2)

        if recurring_type == RecurrenceType.MONTHLY:
            # Clamps to the last day of shorter months (Jan 31 -> Feb 28)
            return base_date + relativedelta(months=1)

        if recurring_type == RecurrenceType.CUSTOM:
            if not recurring_days:
                return None
            search_date = base_date + timedelta(days=1)
            for _ in range(CUSTOM_RECURRENCE_SCAN_DAYS):
                if DateService.sunday_index(search_date) in recurring_days:
                    return search_date
                search_date += timedelta(days=1)
            return None

        return None

    @staticmethod
    def get_day_range(target_date: date) -> tuple[datetime, datetime]:
        """
        Get datetime range for a full day (midnight to midnight).

        Args:
            target_date: Date to get range for

        Returns:
            Tuple of (day_start, day_end) datetimes
        """
        day_start = datetime.combine(target_date, datetime.min.time())
        day_end = datetime.combine(target_date + timedelta(days=1), datetime.min.time())
        return day_start, day_end

    @staticmethod
    def end_of_day(now: datetime) -> datetime:
        """23:59:59 of the given day"""
        return datetime.combine(now.date(), datetime.min.time()) + timedelta(hours=23, minutes=59, seconds=59)

    @staticmethod
    def start_of_week(now: datetime) -> datetime:
        """Monday 00:00 of the week containing now"""
        monday = now.date() - timedelta(days=now.weekday())
        return datetime.combine(monday, datetime.min.time())

    @staticmethod
    def get_week_range(now: datetime) -> tuple[datetime, datetime]:
        """Monday 00:00 to next Monday 00:00"""
        week_start = DateService.start_of_week(now)
        return week_start, week_start + timedelta(days=7)

    @staticmethod
    def days_remaining(target: Optional[datetime], now: datetime) -> Optional[int]:
        """
        Whole days from now until target, truncated toward zero.
        Negative when target is in the past.
        """
        if target is None:
            return None
        return int((target - now).total_seconds() / SECONDS_PER_DAY)

    @staticmethod
    def format_days_remaining(days: Optional[int]) -> str:
        if days is None:
            return "No deadline"
        if days == 0:
            return "Due today"
        if days == 1:
            return "Due tomorrow"
        if days == -1:
            return "1 day overdue"
        if days < 0:
            return f"{abs(days)} days overdue"
        return f"{days} days left"

    @staticmethod
    def format_duration(minutes: Optional[int]) -> Optional[str]:
        """90 -> "1h 30m", 120 -> "2h", 45 -> "45m" """
        if minutes is None:
            return None
        hours, mins = divmod(minutes, 60)
        if hours > 0 and mins > 0:
            return f"{hours}h {mins}m"
        if hours > 0:
            return f"{hours}h"
        return f"{mins}m"

    @staticmethod
    def format_hours_left(remaining_seconds: float) -> str:
        """Countdown used by daily challenges"""
        if remaining_seconds <= 0:
            return "Expired"
        remaining = int(remaining_seconds)
        hours = remaining // 3600
        minutes = (remaining % 3600) // 60
        if hours > 0:
            return f"{hours}h {minutes}m left"
        return f"{minutes}m left"

    @staticmethod
    def format_days_left(remaining_seconds: float) -> str:
        """Countdown used by weekly bosses"""
        if remaining_seconds <= 0:
            return "Expired"
        remaining = int(remaining_seconds)
        days = remaining // SECONDS_PER_DAY
        hours = (remaining % SECONDS_PER_DAY) // 3600
        if days > 0:
            return f"{days}d {hours}h left"
        minutes = (remaining % 3600) // 60
        return f"{hours}h {minutes}m left"

    @staticmethod
    def format_short_countdown(remaining_seconds: float) -> str:
        """Countdown used by active power-ups: "1h 5m", "4m 10s", "9s" """
        if remaining_seconds <= 0:
            return "Expired"
        remaining = int(remaining_seconds)
        hours = remaining // 3600
        minutes = (remaining % 3600) // 60
        seconds = remaining % 60
        if hours > 0:
            return f"{hours}h {minutes}m"
        if minutes > 0:
            return f"{minutes}m {seconds}s"
        return f"{seconds}s"
