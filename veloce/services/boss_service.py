"""
Weekly boss service.
Handles boss generation, combat (damage and critical hits) and defeat rewards.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from veloce.models import WeeklyBoss, Goal
from veloce.enums import BossAppearance, BossDifficulty
from veloce.exceptions import BossNotFoundException
from veloce.repositories.gamification_repository import BossRepository
from veloce.repositories.goal_repository import GoalRepository
from veloce.repositories.settings_repository import SettingsRepository
from veloce.services.date_service import DateService
from veloce.services.points_service import PointsService
from veloce.constants import (
    BOSS_MIN_HEALTH,
    BOSS_BASE_XP,
    BOSS_XP_PER_TARGET,
    BOSS_TASK_DAMAGE,
    BOSS_CRITICAL_DAMAGE,
    BOSS_SPEED_BONUS_FAST,
    BOSS_SPEED_BONUS_MEDIUM,
    BOSS_SPEED_FAST_DAYS,
    BOSS_SPEED_MEDIUM_DAYS,
    BOSS_CRITICAL_BONUS,
    BOSS_OVERKILL_MULTIPLIER,
    BOSS_OVERKILL_CAP,
    BOSS_LOW_HEALTH,
    BOSS_CRITICAL_HEALTH,
    BOSS_WEEK_DAYS,
    DEFAULT_WEEKLY_BOSS_TARGET,
)

logger = logging.getLogger("veloce.gamification")


class BossService:
    """Service for the weekly boss battle"""

    def __init__(self, db: Session):
        self.db = db
        self.boss_repo = BossRepository()
        self.goal_repo = GoalRepository()
        self.settings_repo = SettingsRepository()
        self.date_service = DateService()
        self.points_service = PointsService(db)

    # === Factory ===

    @staticmethod
    def build_boss(
        goal: Optional[Goal],
        week_start: datetime,
        weekly_target: int = DEFAULT_WEEKLY_BOSS_TARGET,
        difficulty: BossDifficulty = BossDifficulty.NORMAL
    ) -> WeeklyBoss:
        """
        Create (without persisting) the boss for a week.

        The appearance follows the linked goal's category; health scales
        with the weekly target and both health and XP with difficulty.
        """
        if goal is not None:
            appearance = BossAppearance.from_goal_category(goal.category)
            linked_goal_id = goal.id
        else:
            appearance = BossAppearance.VOID_VANGUARD
            linked_goal_id = None

        base_health = max(BOSS_MIN_HEALTH, weekly_target)
        base_xp = BOSS_BASE_XP + weekly_target * BOSS_XP_PER_TARGET
        health = int(base_health * difficulty.health_multiplier)

        return WeeklyBoss(
            name=appearance.display_name,
            appearance=appearance.value,
            difficulty=difficulty.value,
            total_health=health,
            current_health=health,
            damage_dealt=0,
            xp_reward=int(base_xp * difficulty.xp_multiplier),
            linked_goal_id=linked_goal_id,
            week_start=week_start,
            is_defeated=False,
            critical_hits=0,
            tasks_defeated=0,
        )

    # === Combat ===

    @staticmethod
    def _apply_damage(boss: WeeklyBoss, amount: int, now: datetime) -> bool:
        """Returns True when this hit defeated the boss"""
        boss.current_health = max(0, (boss.current_health or 0) - amount)
        boss.damage_dealt = (boss.damage_dealt or 0) + amount
        if boss.current_health == 0 and not boss.is_defeated:
            boss.is_defeated = True
            boss.defeated_at = now
            return True
        return False

    @staticmethod
    def deal_damage(boss: WeeklyBoss, amount: int = BOSS_TASK_DAMAGE, now: Optional[datetime] = None) -> bool:
        """Regular task completion hit"""
        boss.tasks_defeated = (boss.tasks_defeated or 0) + 1
        return BossService._apply_damage(boss, amount, now or datetime.now())

    @staticmethod
    def deal_critical_hit(boss: WeeklyBoss, amount: int = BOSS_CRITICAL_DAMAGE, now: Optional[datetime] = None) -> bool:
        """Milestone completion hit"""
        boss.critical_hits = (boss.critical_hits or 0) + 1
        return BossService._apply_damage(boss, amount, now or datetime.now())

    @staticmethod
    def calculate_bonus_xp(boss: WeeklyBoss) -> int:
        """Speed, critical and overkill bonuses"""
        bonus = 0

        if boss.is_defeated and boss.defeated_at is not None:
            days_to_defeat = (boss.defeated_at - boss.week_start).total_seconds() / 86400
            if days_to_defeat < BOSS_SPEED_FAST_DAYS:
                bonus += BOSS_SPEED_BONUS_FAST
            elif days_to_defeat < BOSS_SPEED_MEDIUM_DAYS:
                bonus += BOSS_SPEED_BONUS_MEDIUM

        bonus += (boss.critical_hits or 0) * BOSS_CRITICAL_BONUS

        overkill = (boss.damage_dealt or 0) - boss.total_health
        if overkill > 0:
            bonus += min(overkill * BOSS_OVERKILL_MULTIPLIER, BOSS_OVERKILL_CAP)

        return bonus

    # === Read model ===

    @staticmethod
    def week_end(boss: WeeklyBoss) -> datetime:
        return boss.week_start + timedelta(days=BOSS_WEEK_DAYS)

    @staticmethod
    def health_progress(boss: WeeklyBoss) -> float:
        if not boss.total_health:
            return 0.0
        return boss.current_health / boss.total_health

    @staticmethod
    def is_expired(boss: WeeklyBoss, now: datetime) -> bool:
        return now > BossService.week_end(boss) and not boss.is_defeated

    @staticmethod
    def current_taunt(boss: WeeklyBoss) -> str:
        taunts = BossAppearance.parse(boss.appearance).taunts
        return taunts[abs(boss.current_health or 0) % len(taunts)]

    def describe(self, boss: WeeklyBoss, now: Optional[datetime] = None) -> dict:
        """Derived values shown next to a boss"""
        now = now or datetime.now()
        appearance = BossAppearance.parse(boss.appearance)
        health_progress = self.health_progress(boss)
        remaining = (self.week_end(boss) - now).total_seconds()
        return {
            "health_progress": health_progress,
            "damage_progress": 1.0 - health_progress,
            "is_low_health": health_progress < BOSS_LOW_HEALTH,
            "is_critical_health": health_progress < BOSS_CRITICAL_HEALTH,
            "is_expired": self.is_expired(boss, now),
            "week_end": self.week_end(boss),
            "time_remaining": self.date_service.format_days_left(remaining),
            "taunt": self.current_taunt(boss),
            "defeat_message": appearance.defeat_message if boss.is_defeated else None,
            "bonus_xp": self.calculate_bonus_xp(boss),
        }

    # === Persistence ===

    def get_current_boss(self, now: Optional[datetime] = None) -> Optional[WeeklyBoss]:
        now = now or datetime.now()
        return self.boss_repo.get_for_week(self.db, self.date_service.start_of_week(now))

    def require_current_boss(self, now: Optional[datetime] = None) -> WeeklyBoss:
        """Current boss or BossNotFoundException"""
        now = now or datetime.now()
        boss = self.get_current_boss(now)
        if not boss:
            raise BossNotFoundException(self.date_service.start_of_week(now))
        return boss

    def generate_weekly_boss(self, now: Optional[datetime] = None) -> WeeklyBoss:
        """
        Return this week's boss, creating it from the first active goal
        and the configured target/difficulty when none exists yet.
        """
        now = now or datetime.now()
        existing = self.get_current_boss(now)
        if existing:
            return existing

        settings = self.settings_repo.get(self.db)
        active_goals = self.goal_repo.get_active(self.db)
        goal = active_goals[0] if active_goals else None

        boss = self.build_boss(
            goal,
            week_start=self.date_service.start_of_week(now),
            weekly_target=settings.weekly_boss_target,
            difficulty=BossDifficulty.parse(settings.boss_difficulty)
        )
        boss = self.boss_repo.create(self.db, boss)
        logger.info(f"Weekly boss spawned: {boss.name} ({boss.total_health} HP, {boss.xp_reward} XP)")
        return boss

    def damage_current_boss(
        self,
        amount: int = BOSS_TASK_DAMAGE,
        critical: bool = False,
        now: Optional[datetime] = None
    ) -> Optional[WeeklyBoss]:
        """
        Hit this week's boss, if one exists. Awards the XP reward plus
        bonus XP the moment the boss is defeated.
        """
        now = now or datetime.now()
        boss = self.get_current_boss(now)
        if not boss:
            return None

        if critical:
            defeated = self.deal_critical_hit(boss, amount, now)
        else:
            defeated = self.deal_damage(boss, amount, now)
        self.boss_repo.update(self.db, boss)

        if defeated:
            reward = (boss.xp_reward or 0) + self.calculate_bonus_xp(boss)
            logger.info(f"Boss defeated: {boss.name}, awarding {reward} XP")
            self.points_service.award_points(reward)

        return boss
