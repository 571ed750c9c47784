"""
Goal service.
Handles goal progress and completion, weekly check-ins, collection
aggregates and goal-task links.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session

from veloce.models import Goal, GoalTaskLink, Task
from veloce.enums import GoalTimeframe, GoalTaskLinkType, GoalTaskLinkStatus
from veloce.exceptions import GoalNotFoundException, TaskNotFoundException, ValidationException
from veloce.schemas import GoalCreate
from veloce.repositories.goal_repository import GoalRepository, GoalTaskLinkRepository
from veloce.repositories.task_repository import TaskRepository
from veloce.services.date_service import DateService
from veloce.services.points_service import PointsService
from veloce.constants import (
    GOAL_DEFAULT_COMPLETION_POINTS,
    GOAL_FULL_PROGRESS_BONUS,
    GOAL_DUE_SOON_DAYS,
    CHECK_IN_INTERVAL_DAYS,
)

logger = logging.getLogger("veloce.goals")

CHECK_IN_STREAK_REWARD_THRESHOLD = 3
CHECK_IN_STREAK_REWARD = 10


class GoalService:
    """Service for goal management"""

    def __init__(self, db: Session):
        self.db = db
        self.goal_repo = GoalRepository()
        self.link_repo = GoalTaskLinkRepository()
        self.task_repo = TaskRepository()
        self.date_service = DateService()
        self.points_service = PointsService(db)

    # === Single goal ===

    @staticmethod
    def update_progress(goal: Goal, new_progress: float, now: Optional[datetime] = None) -> bool:
        """
        Clamp progress to [0, 1]; reaching 1.0 completes the goal.

        Returns:
            True if this update completed the goal
        """
        goal.progress = min(max(new_progress, 0.0), 1.0)
        if goal.progress >= 1.0 and not goal.is_completed:
            GoalService.complete(goal, now)
            return True
        return False

    @staticmethod
    def complete(goal: Goal, now: Optional[datetime] = None) -> None:
        goal.is_completed = True
        goal.progress = 1.0
        goal.completed_at = now or datetime.now()

    @staticmethod
    def smart_score(goal: Goal) -> int:
        """Number of SMART criteria met (0-5)"""
        flags = (goal.is_specific, goal.is_measurable, goal.is_achievable,
                 goal.is_relevant, goal.is_time_bound)
        return sum(1 for flag in flags if flag)

    @staticmethod
    def is_overdue(goal: Goal, now: datetime) -> bool:
        if goal.target_date is None or goal.is_completed:
            return False
        return goal.target_date < now

    @staticmethod
    def formatted_progress(goal: Goal) -> str:
        return f"{int((goal.progress or 0) * 100)}%"

    @staticmethod
    def completion_points(goal: Goal) -> int:
        """Timeframe base points times multiplier, plus a bonus at full progress"""
        timeframe = GoalTimeframe.parse_optional(goal.timeframe)
        base = timeframe.base_completion_points if timeframe else GOAL_DEFAULT_COMPLETION_POINTS
        multiplier = timeframe.points_multiplier if timeframe else 1.0
        bonus = GOAL_FULL_PROGRESS_BONUS if (goal.progress or 0) >= 1.0 else 0
        return int(base * multiplier) + bonus

    @staticmethod
    def record_check_in(goal: Goal, now: datetime) -> int:
        """
        Register a weekly check-in. Consecutive calendar weeks extend the
        streak; a second check-in in the same week changes nothing.

        Returns:
            The check-in streak after this check-in
        """
        this_week = DateService.start_of_week(now)
        if goal.last_check_in is not None:
            last_week = DateService.start_of_week(goal.last_check_in)
            if last_week == this_week:
                goal.last_check_in = now
                return goal.check_in_streak or 0
            if this_week - last_week == timedelta(days=CHECK_IN_INTERVAL_DAYS):
                goal.check_in_streak = (goal.check_in_streak or 0) + 1
            else:
                goal.check_in_streak = 1
        else:
            goal.check_in_streak = 1
        goal.last_check_in = now
        return goal.check_in_streak

    def describe(self, goal: Goal, now: Optional[datetime] = None) -> dict:
        """Derived values shown next to a goal"""
        now = now or datetime.now()
        days = self.date_service.days_remaining(goal.target_date, now)
        score = self.smart_score(goal)
        return {
            "smart_score": score,
            "smart_progress": score / 5.0,
            "is_overdue": self.is_overdue(goal, now),
            "days_remaining": days,
            "formatted_progress": self.formatted_progress(goal),
            "completion_points": self.completion_points(goal),
        }

    # === Collections ===

    @staticmethod
    def average_progress(goals: List[Goal]) -> float:
        if not goals:
            return 0.0
        return sum(g.progress or 0 for g in goals) / len(goals)

    @staticmethod
    def max_check_in_streak(goals: List[Goal]) -> int:
        return max((g.check_in_streak or 0 for g in goals), default=0)

    @staticmethod
    def due_soon(goals: List[Goal], now: datetime, days: int = GOAL_DUE_SOON_DAYS) -> List[Goal]:
        """Open goals whose target date falls within the next `days` days"""
        result = []
        for goal in goals:
            remaining = DateService.days_remaining(goal.target_date, now)
            if remaining is not None and 0 <= remaining <= days and not goal.is_completed:
                result.append(goal)
        return result

    @staticmethod
    def of_timeframe(goals: List[Goal], timeframe: GoalTimeframe) -> List[Goal]:
        return [g for g in goals if g.timeframe == timeframe.value]

    def collection_summary(self, now: Optional[datetime] = None, days: int = GOAL_DUE_SOON_DAYS) -> dict:
        now = now or datetime.now()
        goals = self.goal_repo.get_all(self.db)
        return {
            "total": len(goals),
            "active": len([g for g in goals if not g.is_completed]),
            "completed": len([g for g in goals if g.is_completed]),
            "overdue": len([g for g in goals if self.is_overdue(g, now)]),
            "due_soon": len(self.due_soon(goals, now, days)),
            "average_progress": self.average_progress(goals),
            "max_check_in_streak": self.max_check_in_streak(goals),
        }

    # === Links ===

    @staticmethod
    def link_status(link: GoalTaskLink) -> GoalTaskLinkStatus:
        if link.is_rejected:
            return GoalTaskLinkStatus.REJECTED
        if link.is_pending:
            return GoalTaskLinkStatus.PENDING
        if link.is_approved:
            return GoalTaskLinkStatus.APPROVED
        return GoalTaskLinkStatus.PENDING

    @staticmethod
    def weighted_progress(links: List[GoalTaskLink], tasks: List[Task]) -> float:
        """
        Share of link weight whose task is completed. Each link counts
        with its type's progress weight.
        """
        if not links:
            return 0.0
        tasks_by_id = {t.id: t for t in tasks}
        if not tasks_by_id:
            return 0.0

        total_weight = 0.0
        completed_weight = 0.0
        for link in links:
            weight = GoalTaskLinkType.parse(link.link_type).progress_weight
            total_weight += weight
            task = tasks_by_id.get(link.task_id)
            if task is not None and task.is_completed:
                completed_weight += weight
        return completed_weight / total_weight if total_weight > 0 else 0.0

    def linked_tasks_progress(self, goal_id: int) -> float:
        self.get_goal(goal_id)
        links = self.link_repo.get_approved_for_goal(self.db, goal_id)
        tasks = self.task_repo.get_by_ids(self.db, [link.task_id for link in links])
        return self.weighted_progress(links, tasks)

    def link_task(
        self,
        goal_id: int,
        task_id: int,
        link_type: GoalTaskLinkType = GoalTaskLinkType.DIRECT_ACTION,
        milestone_id: Optional[int] = None,
        suggested: bool = False,
        now: Optional[datetime] = None
    ) -> GoalTaskLink:
        """Link a task to a goal; suggestions wait for approval"""
        self.get_goal(goal_id)
        if not self.task_repo.get_by_id(self.db, task_id):
            raise TaskNotFoundException(task_id)

        link = GoalTaskLink(
            goal_id=goal_id,
            task_id=task_id,
            milestone_id=milestone_id,
            link_type=link_type.value,
            is_approved=not suggested,
            is_pending=suggested,
            is_rejected=False,
            approved_at=None if suggested else (now or datetime.now()),
        )
        return self.link_repo.create(self.db, link)

    def get_links(self, goal_id: int) -> List[GoalTaskLink]:
        self.get_goal(goal_id)
        return self.link_repo.get_for_goal(self.db, goal_id)

    def approve_link(self, link_id: int, now: Optional[datetime] = None) -> GoalTaskLink:
        link = self._get_link(link_id)
        link.is_approved = True
        link.is_pending = False
        link.is_rejected = False
        link.approved_at = now or datetime.now()
        return self.link_repo.update(self.db, link)

    def reject_link(self, link_id: int) -> GoalTaskLink:
        link = self._get_link(link_id)
        link.is_rejected = True
        link.is_pending = False
        link.is_approved = False
        return self.link_repo.update(self.db, link)

    def _get_link(self, link_id: int) -> GoalTaskLink:
        link = self.link_repo.get_by_id(self.db, link_id)
        if not link:
            raise ValidationException("link_id", f"link {link_id} does not exist")
        return link

    def goal_ids_for_task(self, task_id: int) -> List[int]:
        """Goals an approved link ties this task to"""
        return [
            link.goal_id for link in self.link_repo.get_for_task(self.db, task_id)
            if self.link_status(link) == GoalTaskLinkStatus.APPROVED
        ]

    # === Persistence ===

    def get_goal(self, goal_id: int) -> Goal:
        goal = self.goal_repo.get_by_id(self.db, goal_id)
        if not goal:
            raise GoalNotFoundException(goal_id)
        return goal

    def get_goals(self, timeframe: Optional[GoalTimeframe] = None) -> List[Goal]:
        if timeframe is not None:
            return self.goal_repo.get_by_timeframe(self.db, timeframe.value)
        return self.goal_repo.get_all(self.db)

    def create_goal(self, goal_data: GoalCreate) -> Goal:
        goal = Goal(**goal_data.model_dump(mode="python"))
        goal.progress = 0.0
        goal.check_in_streak = 0
        goal.milestone_count = 0
        goal.completed_milestone_count = 0
        return self.goal_repo.create(self.db, goal)

    def set_progress(self, goal_id: int, progress: float, now: Optional[datetime] = None) -> Goal:
        goal = self.get_goal(goal_id)
        if self.update_progress(goal, progress, now):
            self._award_completion(goal)
        return self.goal_repo.update(self.db, goal)

    def complete_goal(self, goal_id: int, now: Optional[datetime] = None) -> Goal:
        goal = self.get_goal(goal_id)
        if not goal.is_completed:
            self.complete(goal, now)
            self._award_completion(goal)
        return self.goal_repo.update(self.db, goal)

    def check_in(self, goal_id: int, now: Optional[datetime] = None) -> Goal:
        now = now or datetime.now()
        goal = self.get_goal(goal_id)
        previous = goal.last_check_in
        new_week = previous is None or self.date_service.start_of_week(previous) != self.date_service.start_of_week(now)
        streak = self.record_check_in(goal, now)
        self.goal_repo.update(self.db, goal)
        if new_week and streak >= CHECK_IN_STREAK_REWARD_THRESHOLD:
            self.points_service.award_points(CHECK_IN_STREAK_REWARD)
        return goal

    def _award_completion(self, goal: Goal) -> None:
        points = self.completion_points(goal)
        goal.points_awarded = points
        logger.info(f"Goal completed: {goal.title} (+{points} points)")
        self.points_service.award_points(points)
