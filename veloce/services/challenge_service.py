"""
Daily challenge service.
Generates the day's challenges from goal and streak state and tracks their progress.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from veloce.models import DailyChallenge, Goal
from veloce.enums import DailyChallengeType
from veloce.exceptions import ChallengeNotFoundException
from veloce.repositories.gamification_repository import ChallengeRepository
from veloce.repositories.goal_repository import GoalRepository
from veloce.repositories.settings_repository import UserStatsRepository
from veloce.services.date_service import DateService
from veloce.services.points_service import PointsService
from veloce.constants import (
    CHALLENGE_GOAL_SPRINT_TARGET,
    CHALLENGE_TASK_MASTER_TARGET,
    CHALLENGE_EARLY_BIRD_TARGET,
    CHALLENGE_FOCUS_MINUTES_TARGET,
    CHALLENGE_STREAK_TARGET,
    CHALLENGE_MOMENTUM_TARGET,
    CHALLENGE_STREAK_BASE_XP,
    CHALLENGE_STREAK_XP_PER_DAY,
    CHALLENGE_SPRINT_TITLE_LENGTH,
    EARLY_BIRD_CUTOFF_HOUR,
)

logger = logging.getLogger("veloce.gamification")

# Challenge types advanced by one for every completed task
TASK_COUNT_TYPES = (
    DailyChallengeType.TASK_MASTER,
    DailyChallengeType.MOMENTUM_BUILDER,
)


class ChallengeService:
    """Service for daily challenges"""

    def __init__(self, db: Session):
        self.db = db
        self.challenge_repo = ChallengeRepository()
        self.goal_repo = GoalRepository()
        self.stats_repo = UserStatsRepository()
        self.date_service = DateService()
        self.points_service = PointsService(db)

    @staticmethod
    def new_challenge(
        challenge_type: DailyChallengeType,
        title: str,
        description: str,
        target_value: int,
        now: datetime,
        xp_reward: Optional[int] = None,
        linked_goal_id: Optional[int] = None
    ) -> DailyChallenge:
        """Unsaved challenge expiring at the end of the day"""
        return DailyChallenge(
            challenge_type=challenge_type.value,
            title=title,
            description=description,
            target_value=target_value,
            current_value=0,
            xp_reward=xp_reward if xp_reward is not None else challenge_type.base_xp_reward,
            linked_goal_id=linked_goal_id,
            challenge_date=now.date(),
            expires_at=DateService.end_of_day(now),
            is_completed=False,
        )

    @staticmethod
    def build_daily_challenges(goals: List[Goal], streak: int, now: datetime) -> List[DailyChallenge]:
        """
        Pick the three challenges for a day.

        1. A sprint on the first incomplete goal, or a generic task count
        2. Early bird before noon, focus session afterwards
        3. Streak extension while a streak runs, momentum otherwise
        """
        challenges = []

        priority_goal = next((g for g in goals if not g.is_completed), None)
        if priority_goal is not None:
            challenges.append(ChallengeService.new_challenge(
                DailyChallengeType.GOAL_SPRINT,
                f"Sprint: {priority_goal.title[:CHALLENGE_SPRINT_TITLE_LENGTH]}",
                "Make progress on your goal today",
                CHALLENGE_GOAL_SPRINT_TARGET,
                now,
                linked_goal_id=priority_goal.id
            ))
        else:
            challenges.append(ChallengeService.new_challenge(
                DailyChallengeType.TASK_MASTER,
                "Complete 5 Tasks",
                "Finish 5 tasks to build momentum",
                CHALLENGE_TASK_MASTER_TARGET,
                now
            ))

        if now.hour < EARLY_BIRD_CUTOFF_HOUR:
            challenges.append(ChallengeService.new_challenge(
                DailyChallengeType.EARLY_BIRD,
                "Early Bird",
                "Complete a task before noon",
                CHALLENGE_EARLY_BIRD_TARGET,
                now
            ))
        else:
            challenges.append(ChallengeService.new_challenge(
                DailyChallengeType.FOCUS_POWER,
                "Focus Session",
                "Complete 30 minutes of focused work",
                CHALLENGE_FOCUS_MINUTES_TARGET,
                now
            ))

        if streak > 0:
            challenges.append(ChallengeService.new_challenge(
                DailyChallengeType.STREAK_EXTENDER,
                "Keep the Fire",
                f"Complete your daily goal to extend your {streak}-day streak",
                CHALLENGE_STREAK_TARGET,
                now,
                xp_reward=CHALLENGE_STREAK_BASE_XP + streak * CHALLENGE_STREAK_XP_PER_DAY
            ))
        else:
            challenges.append(ChallengeService.new_challenge(
                DailyChallengeType.MOMENTUM_BUILDER,
                "Morning Momentum",
                "Complete 3 tasks before the day ends",
                CHALLENGE_MOMENTUM_TARGET,
                now
            ))

        return challenges

    @staticmethod
    def update_progress(challenge: DailyChallenge, new_value: int, now: Optional[datetime] = None) -> bool:
        """
        Set progress clamped to [0, target]. Completion happens once.

        Returns:
            True if this update completed the challenge
        """
        challenge.current_value = max(0, min(new_value, challenge.target_value))
        if challenge.current_value >= challenge.target_value and not challenge.is_completed:
            challenge.is_completed = True
            challenge.completed_at = now or datetime.now()
            return True
        return False

    @staticmethod
    def progress(challenge: DailyChallenge) -> float:
        if challenge.target_value <= 0:
            return 0.0
        return min(1.0, (challenge.current_value or 0) / challenge.target_value)

    def time_remaining(self, challenge: DailyChallenge, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        return self.date_service.format_hours_left((challenge.expires_at - now).total_seconds())

    # === Persistence ===

    def get_today(self, now: Optional[datetime] = None) -> List[DailyChallenge]:
        now = now or datetime.now()
        return self.challenge_repo.get_for_date(self.db, now.date())

    def generate_daily_challenges(self, now: Optional[datetime] = None) -> List[DailyChallenge]:
        """Today's challenges, generated on first request of the day"""
        now = now or datetime.now()
        existing = self.get_today(now)
        if existing:
            return existing

        goals = self.goal_repo.get_active(self.db)
        streak = self.stats_repo.get(self.db).current_streak or 0
        challenges = self.build_daily_challenges(goals, streak, now)
        created = self.challenge_repo.create_many(self.db, challenges)
        logger.info(f"Generated {len(created)} daily challenges for {now.date()}")
        return created

    def record_progress(self, challenge_id: int, value: int, now: Optional[datetime] = None) -> DailyChallenge:
        """Set a challenge's progress to an absolute value"""
        challenge = self.challenge_repo.get_by_id(self.db, challenge_id)
        if not challenge:
            raise ChallengeNotFoundException(challenge_id)
        self._advance(challenge, value, now or datetime.now())
        return challenge

    def _advance(self, challenge: DailyChallenge, value: int, now: datetime) -> None:
        completed = self.update_progress(challenge, value, now)
        self.challenge_repo.update(self.db, challenge)
        if completed:
            logger.info(f"Challenge completed: {challenge.title} (+{challenge.xp_reward} XP)")
            self.points_service.award_points(challenge.xp_reward or 0)

    def on_task_completed(
        self,
        linked_goal_ids: List[int],
        now: Optional[datetime] = None
    ) -> List[DailyChallenge]:
        """
        Advance today's open challenges for one completed task.

        Returns:
            The challenges that were advanced
        """
        now = now or datetime.now()
        advanced = []
        for challenge in self.challenge_repo.get_open_for_date(self.db, now.date()):
            challenge_type = DailyChallengeType.parse(challenge.challenge_type)

            if challenge_type in TASK_COUNT_TYPES:
                applies = True
            elif challenge_type == DailyChallengeType.EARLY_BIRD:
                applies = now.hour < EARLY_BIRD_CUTOFF_HOUR
            elif challenge_type == DailyChallengeType.GOAL_SPRINT:
                applies = challenge.linked_goal_id in linked_goal_ids
            else:
                applies = False

            if applies:
                self._advance(challenge, (challenge.current_value or 0) + 1, now)
                advanced.append(challenge)
        return advanced

    def on_daily_goal_met(self, now: Optional[datetime] = None) -> None:
        """Complete today's streak-extension challenge"""
        now = now or datetime.now()
        for challenge in self.challenge_repo.get_open_for_date(self.db, now.date()):
            if DailyChallengeType.parse(challenge.challenge_type) == DailyChallengeType.STREAK_EXTENDER:
                self._advance(challenge, challenge.target_value, now)
