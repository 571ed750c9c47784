"""
Points calculation service.
Handles potential points, energy bands, completion points and the level curve.
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from veloce.models import Task, UserStats
from veloce.enums import EnergyState
from veloce.repositories.settings_repository import UserStatsRepository
from veloce.constants import (
    POINTS_TASK_COMPLETE,
    POINTS_ON_TIME_BONUS,
    POTENTIAL_POINTS_MIN,
    POTENTIAL_POINTS_MAX,
    PRIORITY_BONUS_HIGH,
    PRIORITY_BONUS_MEDIUM,
    STAR_RATING_BONUS,
    AI_PROCESSING_BONUS,
    SCHEDULED_BONUS,
    DURATION_BONUS_DIVISOR,
    DURATION_BONUS_CAP,
    OVERDUE_PENALTY,
    ENERGY_LOW_THRESHOLD,
    ENERGY_MEDIUM_THRESHOLD,
    ENERGY_HIGH_THRESHOLD,
    LEVEL_POINTS_FACTOR,
    LEVEL_POINTS_EXPONENT,
)

logger = logging.getLogger("veloce.gamification")


class PointsService:
    """Service for points calculation and the user's point balance"""

    def __init__(self, db: Session):
        self.db = db
        self.stats_repo = UserStatsRepository()

    # === Task points ===

    @staticmethod
    def calculate_potential_points(
        star_rating: int,
        has_ai_processing: bool = False,
        is_scheduled: bool = False,
        estimated_minutes: Optional[int] = None,
        is_overdue: bool = False
    ) -> int:
        """
        Advisory value of a task before completion, always in [10, 100].

        Formula: 10 + priority bonus + stars*5 + AI(5) + scheduled(5)
                 + min(minutes // 10, 20), minus 10 if overdue (floored at 10)
        """
        points = POINTS_TASK_COMPLETE

        # Priority bonus
        if star_rating == 3:
            points += PRIORITY_BONUS_HIGH
        elif star_rating == 2:
            points += PRIORITY_BONUS_MEDIUM

        points += star_rating * STAR_RATING_BONUS

        if has_ai_processing:
            points += AI_PROCESSING_BONUS

        if is_scheduled:
            points += SCHEDULED_BONUS

        if estimated_minutes:
            points += min(max(estimated_minutes, 0) // DURATION_BONUS_DIVISOR, DURATION_BONUS_CAP)

        if is_overdue:
            points = max(points - OVERDUE_PENALTY, POTENTIAL_POINTS_MIN)

        return min(points, POTENTIAL_POINTS_MAX)

    @staticmethod
    def potential_points_for_task(task: Task, now: Optional[datetime] = None) -> int:
        """Potential points of a stored task at the given moment"""
        now = now or datetime.now()
        return PointsService.calculate_potential_points(
            star_rating=task.star_rating or 2,
            has_ai_processing=task.has_ai_processing,
            is_scheduled=task.scheduled_time is not None,
            estimated_minutes=task.estimated_minutes,
            is_overdue=task.is_overdue(now)
        )

    @staticmethod
    def energy_state(points: int) -> EnergyState:
        """Map potential points to a visual band"""
        if points <= ENERGY_LOW_THRESHOLD:
            return EnergyState.LOW
        if points <= ENERGY_MEDIUM_THRESHOLD:
            return EnergyState.MEDIUM
        if points <= ENERGY_HIGH_THRESHOLD:
            return EnergyState.HIGH
        return EnergyState.MAX

    @staticmethod
    def energy_level(points: int) -> float:
        """Normalized gauge fill in [0, 1]"""
        span = POTENTIAL_POINTS_MAX - POTENTIAL_POINTS_MIN
        return min(1.0, max(0.0, (points - POTENTIAL_POINTS_MIN) / span))

    @staticmethod
    def calculate_completion_points(
        scheduled_time: Optional[datetime],
        completed_at: datetime
    ) -> tuple[int, Optional[bool]]:
        """
        Points frozen when a task is completed.

        Returns:
            Tuple of (points, completed_on_time). completed_on_time is None
            for unscheduled tasks.
        """
        completed_on_time = None
        if scheduled_time is not None:
            completed_on_time = completed_at <= scheduled_time

        points = POINTS_TASK_COMPLETE
        if completed_on_time:
            points += POINTS_ON_TIME_BONUS
        return points, completed_on_time

    # === Level curve ===

    @staticmethod
    def points_for_level(level: int) -> int:
        """Total points needed to reach a level"""
        if level <= 1:
            return 0
        return int(LEVEL_POINTS_FACTOR * level ** LEVEL_POINTS_EXPONENT)

    @staticmethod
    def level_for_points(points: int) -> int:
        level = 1
        while PointsService.points_for_level(level + 1) <= points:
            level += 1
        return level

    @staticmethod
    def level_progress(points: int) -> float:
        """Progress from the current level to the next one (0.0 - 1.0)"""
        level = PointsService.level_for_points(points)
        current_floor = PointsService.points_for_level(level)
        next_floor = PointsService.points_for_level(level + 1)
        required = next_floor - current_floor
        if required <= 0:
            return 1.0
        return min(1.0, (points - current_floor) / required)

    @staticmethod
    def points_to_next_level(points: int) -> int:
        level = PointsService.level_for_points(points)
        return PointsService.points_for_level(level + 1) - points

    def get_level_summary(self) -> dict:
        """Level information for the stored point balance"""
        stats = self.stats_repo.get(self.db)
        total = stats.total_points or 0
        return {
            "total_points": total,
            "level": self.level_for_points(total),
            "level_progress": round(self.level_progress(total), 4),
            "points_to_next_level": self.points_to_next_level(total),
        }

    # === Balance ===

    def award_points(self, amount: int) -> Optional[dict]:
        """
        Add points to the user's balance.

        Returns:
            Level-up info if the award crossed a level threshold, else None
        """
        stats = self.stats_repo.get(self.db)
        previous_total = stats.total_points or 0
        previous_level = self.level_for_points(previous_total)

        stats.total_points = previous_total + amount
        self.stats_repo.update(self.db, stats)

        new_level = self.level_for_points(stats.total_points)
        if new_level > previous_level:
            logger.info(f"Level up: {previous_level} -> {new_level} ({stats.total_points} points)")
            return {
                "previous_level": previous_level,
                "new_level": new_level,
                "points_required": self.points_for_level(new_level),
                "total_points": stats.total_points,
            }
        return None

    def revoke_points(self, amount: int) -> UserStats:
        """Take points back (e.g. a task was uncompleted); balance never goes negative"""
        stats = self.stats_repo.get(self.db)
        stats.total_points = max(0, (stats.total_points or 0) - amount)
        return self.stats_repo.update(self.db, stats)
