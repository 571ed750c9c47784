"""
Milestone service.
Aggregates a goal's milestones and handles completion toggles, which award
the milestone's points and land a critical hit on the weekly boss.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from veloce.models import Goal, GoalMilestone
from veloce.exceptions import MilestoneNotFoundException
from veloce.schemas import MilestoneCreate
from veloce.repositories.goal_repository import GoalRepository, MilestoneRepository
from veloce.services.date_service import DateService
from veloce.services.goal_service import GoalService
from veloce.services.points_service import PointsService
from veloce.services.boss_service import BossService
from veloce.constants import MILESTONE_DUE_SOON_DAYS, MILESTONE_DEFAULT_POINTS, BOSS_CRITICAL_DAMAGE

logger = logging.getLogger("veloce.goals")


class MilestoneService:
    """Service for goal milestones"""

    def __init__(self, db: Session):
        self.db = db
        self.goal_repo = GoalRepository()
        self.milestone_repo = MilestoneRepository()
        self.date_service = DateService()
        self.goal_service = GoalService(db)
        self.points_service = PointsService(db)
        self.boss_service = BossService(db)

    # === Collection aggregates ===

    @staticmethod
    def completed_count(milestones: List[GoalMilestone]) -> int:
        return len([m for m in milestones if m.is_completed])

    @staticmethod
    def progress(milestones: List[GoalMilestone]) -> float:
        if not milestones:
            return 0.0
        return MilestoneService.completed_count(milestones) / len(milestones)

    @staticmethod
    def progress_string(milestones: List[GoalMilestone]) -> str:
        return f"{MilestoneService.completed_count(milestones)}/{len(milestones)}"

    @staticmethod
    def total_points_value(milestones: List[GoalMilestone]) -> int:
        return sum(m.points_value or 0 for m in milestones)

    @staticmethod
    def earned_points(milestones: List[GoalMilestone]) -> int:
        return sum(m.points_value or 0 for m in milestones if m.is_completed)

    @staticmethod
    def sorted_milestones(milestones: List[GoalMilestone]) -> List[GoalMilestone]:
        # sorted() is stable, equal sort orders keep their input order
        return sorted(milestones, key=lambda m: m.sort_order or 0)

    @staticmethod
    def next_milestone(milestones: List[GoalMilestone]) -> Optional[GoalMilestone]:
        for milestone in MilestoneService.sorted_milestones(milestones):
            if not milestone.is_completed:
                return milestone
        return None

    @staticmethod
    def overdue(milestones: List[GoalMilestone], now: datetime) -> List[GoalMilestone]:
        return [
            m for m in milestones
            if not m.is_completed and m.target_date is not None and m.target_date < now
        ]

    @staticmethod
    def due_soon(milestones: List[GoalMilestone], now: datetime) -> List[GoalMilestone]:
        """Incomplete milestones due within the next three days (inclusive)"""
        result = []
        for milestone in milestones:
            if milestone.is_completed:
                continue
            days = DateService.days_remaining(milestone.target_date, now)
            if days is not None and 0 <= days <= MILESTONE_DUE_SOON_DAYS:
                result.append(milestone)
        return result

    # === Single milestone ===

    @staticmethod
    def toggle(milestone: GoalMilestone, now: Optional[datetime] = None) -> bool:
        """Flip completion. Returns the new completion state."""
        if milestone.is_completed:
            milestone.is_completed = False
            milestone.completed_at = None
        else:
            milestone.is_completed = True
            milestone.completed_at = now or datetime.now()
        return milestone.is_completed

    # === Persistence ===

    def get_milestone(self, milestone_id: int) -> GoalMilestone:
        milestone = self.milestone_repo.get_by_id(self.db, milestone_id)
        if not milestone:
            raise MilestoneNotFoundException(milestone_id)
        return milestone

    def get_milestones(self, goal_id: int) -> List[GoalMilestone]:
        self.goal_service.get_goal(goal_id)
        return self.milestone_repo.get_for_goal(self.db, goal_id)

    def add_milestone(self, goal_id: int, data: MilestoneCreate) -> GoalMilestone:
        goal = self.goal_service.get_goal(goal_id)
        values = data.model_dump()
        if values.get("sort_order") is None:
            values["sort_order"] = len(self.milestone_repo.get_for_goal(self.db, goal_id))
        if values.get("points_value") is None:
            values["points_value"] = MILESTONE_DEFAULT_POINTS
        milestone = GoalMilestone(goal_id=goal_id, is_completed=False, **values)
        milestone = self.milestone_repo.create(self.db, milestone)
        self._sync_counts(goal)
        return milestone

    def toggle_milestone(self, milestone_id: int, now: Optional[datetime] = None) -> GoalMilestone:
        """
        Toggle a milestone and refresh the goal's milestone counters.
        Completing awards the milestone's points, reopening takes them back.
        The critical hit on the boss is dealt once per milestone.
        """
        now = now or datetime.now()
        milestone = self.get_milestone(milestone_id)
        completed = self.toggle(milestone, now)
        self.milestone_repo.update(self.db, milestone)

        goal = self.goal_service.get_goal(milestone.goal_id)
        self._sync_counts(goal)

        if completed:
            logger.info(f"Milestone completed: {milestone.title} (+{milestone.points_value} points)")
            self.points_service.award_points(milestone.points_value or 0)
            if not milestone.critical_hit_dealt:
                milestone.critical_hit_dealt = True
                self.milestone_repo.update(self.db, milestone)
                self.boss_service.damage_current_boss(BOSS_CRITICAL_DAMAGE, critical=True, now=now)
        else:
            self.points_service.revoke_points(milestone.points_value or 0)

        return milestone

    def _sync_counts(self, goal: Goal) -> None:
        """Only the counters follow the milestones; goal progress stays as set"""
        milestones = self.milestone_repo.get_for_goal(self.db, goal.id)
        goal.milestone_count = len(milestones)
        goal.completed_milestone_count = self.completed_count(milestones)
        self.goal_repo.update(self.db, goal)

    def summary(self, goal_id: int, now: Optional[datetime] = None) -> dict:
        """Milestone collection read model of a goal"""
        now = now or datetime.now()
        milestones = self.get_milestones(goal_id)
        next_one = self.next_milestone(milestones)
        return {
            "goal_id": goal_id,
            "milestones": self.sorted_milestones(milestones),
            "completed_count": self.completed_count(milestones),
            "total_count": len(milestones),
            "progress": self.progress(milestones),
            "progress_string": self.progress_string(milestones),
            "total_points_value": self.total_points_value(milestones),
            "earned_points": self.earned_points(milestones),
            "next_milestone_id": next_one.id if next_one else None,
            "overdue_ids": [m.id for m in self.overdue(milestones, now)],
            "due_soon_ids": [m.id for m in self.due_soon(milestones, now)],
        }

    def days_remaining_text(self, milestone: GoalMilestone, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        return self.date_service.format_days_remaining(
            self.date_service.days_remaining(milestone.target_date, now)
        )
