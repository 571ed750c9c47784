"""
User statistics service.
Handles the daily-goal streak and the weekly velocity score.
"""
import logging
from datetime import date, datetime
from typing import Optional
from sqlalchemy.orm import Session

from veloce.models import UserStats
from veloce.enums import PowerUpType, ScoreTier
from veloce.repositories.settings_repository import SettingsRepository, UserStatsRepository
from veloce.repositories.task_repository import TaskRepository
from veloce.services.date_service import DateService
from veloce.services.power_up_service import PowerUpService
from veloce.constants import (
    VELOCITY_COMPONENT_MAX,
    VELOCITY_MIN_STREAK_BASELINE,
    VELOCITY_DEFAULT_ON_TIME_RATIO,
    VELOCITY_FOCUS_GOAL_MINUTES,
)

logger = logging.getLogger("veloce.gamification")


class StatsService:
    """Service for streaks and the velocity score"""

    def __init__(self, db: Session):
        self.db = db
        self.stats_repo = UserStatsRepository()
        self.settings_repo = SettingsRepository()
        self.task_repo = TaskRepository()
        self.date_service = DateService()
        self.power_up_service = PowerUpService(db)

    # === Streak ===

    def record_task_completion(self, now: Optional[datetime] = None) -> bool:
        """
        Extend the streak the first time today's completions reach the daily goal.

        Returns:
            True if the streak was extended by this completion
        """
        now = now or datetime.now()
        today = now.date()
        stats = self.stats_repo.get(self.db)
        if stats.last_streak_date == today:
            return False

        settings = self.settings_repo.get(self.db)
        day_start, day_end = self.date_service.get_day_range(today)
        done_today = self.task_repo.get_completed_count(self.db, day_start, day_end)
        if done_today < settings.daily_task_goal:
            return False

        stats.current_streak = (stats.current_streak or 0) + 1
        stats.longest_streak = max(stats.longest_streak or 0, stats.current_streak)
        stats.last_streak_date = today
        self.stats_repo.update(self.db, stats)
        logger.info(f"Daily goal met, streak is now {stats.current_streak} days")
        return True

    def roll_day(self, closed_day: date, now: Optional[datetime] = None) -> UserStats:
        """
        Close out a day. A missed daily goal breaks the streak unless a
        streak shield is active, in which case the shield is spent instead.
        """
        now = now or datetime.now()
        stats = self.stats_repo.get(self.db)
        if not stats.current_streak or stats.last_streak_date == closed_day:
            return stats
        # Already rolled (a later day kept the streak alive)
        if stats.last_streak_date is not None and stats.last_streak_date > closed_day:
            return stats

        if self.power_up_service.consume_active(PowerUpType.STREAK_SHIELD, now):
            stats.last_streak_date = closed_day
            logger.info(f"Streak shield absorbed missed day {closed_day}, streak kept at {stats.current_streak}")
        else:
            logger.info(f"Daily goal missed on {closed_day}, streak of {stats.current_streak} broken")
            stats.current_streak = 0
        return self.stats_repo.update(self.db, stats)

    # === Velocity score ===

    @staticmethod
    def calculate_velocity_score(
        current_streak: int,
        longest_streak: int,
        tasks_completed_this_week: int,
        weekly_goal: int,
        focus_minutes_this_week: int,
        focus_goal_minutes: int,
        tasks_on_time: int,
        total_tasks_completed: int
    ) -> dict:
        """
        Four components of 0-25 each; the total is truncated to an int.
        With no completed tasks the on-time ratio counts as 0.5.
        """
        if longest_streak > 0:
            streak_ratio = current_streak / max(longest_streak, VELOCITY_MIN_STREAK_BASELINE)
        else:
            streak_ratio = 0.0
        completion_ratio = tasks_completed_this_week / weekly_goal if weekly_goal > 0 else 0.0
        focus_ratio = focus_minutes_this_week / focus_goal_minutes if focus_goal_minutes > 0 else 0.0
        if total_tasks_completed > 0:
            on_time_ratio = tasks_on_time / total_tasks_completed
        else:
            on_time_ratio = VELOCITY_DEFAULT_ON_TIME_RATIO

        streak_score = min(VELOCITY_COMPONENT_MAX, streak_ratio * VELOCITY_COMPONENT_MAX)
        completion_score = min(VELOCITY_COMPONENT_MAX, completion_ratio * VELOCITY_COMPONENT_MAX)
        focus_score = min(VELOCITY_COMPONENT_MAX, focus_ratio * VELOCITY_COMPONENT_MAX)
        on_time_score = min(VELOCITY_COMPONENT_MAX, on_time_ratio * VELOCITY_COMPONENT_MAX)

        total = int(streak_score + completion_score + focus_score + on_time_score)
        tier = ScoreTier.from_score(total)
        return {
            "streak_score": streak_score,
            "completion_score": completion_score,
            "focus_score": focus_score,
            "on_time_score": on_time_score,
            "total": total,
            "tier": tier,
            "message": tier.message,
        }

    def get_velocity_score(self, now: Optional[datetime] = None) -> dict:
        """Velocity score for the current week"""
        now = now or datetime.now()
        stats = self.stats_repo.get(self.db)
        settings = self.settings_repo.get(self.db)
        week_start, week_end = self.date_service.get_week_range(now)

        return self.calculate_velocity_score(
            current_streak=stats.current_streak or 0,
            longest_streak=stats.longest_streak or 0,
            tasks_completed_this_week=self.task_repo.get_completed_count(self.db, week_start, week_end),
            weekly_goal=settings.weekly_task_goal,
            focus_minutes_this_week=self.task_repo.get_focus_minutes(self.db, week_start, week_end),
            focus_goal_minutes=VELOCITY_FOCUS_GOAL_MINUTES,
            tasks_on_time=self.task_repo.get_on_time_count(self.db),
            total_tasks_completed=self.task_repo.get_total_completed_count(self.db),
        )

    def get_summary(self, now: Optional[datetime] = None) -> dict:
        """Streak and today's progress towards the daily goal"""
        now = now or datetime.now()
        stats = self.stats_repo.get(self.db)
        settings = self.settings_repo.get(self.db)
        day_start, day_end = self.date_service.get_day_range(now.date())
        return {
            "current_streak": stats.current_streak or 0,
            "longest_streak": stats.longest_streak or 0,
            "done_today": self.task_repo.get_completed_count(self.db, day_start, day_end),
            "daily_task_goal": settings.daily_task_goal,
        }
