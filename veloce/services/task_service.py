"""
Task management service.
Handles task CRUD, completion with its gamification side effects, and
recurring instances.
"""
import json
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from veloce.models import Task
from veloce.enums import RecurrenceType, TaskPriority
from veloce.exceptions import TaskNotFoundException
from veloce.schemas import TaskCreate, TaskUpdate
from veloce.repositories.task_repository import TaskRepository
from veloce.services.date_service import DateService
from veloce.services.points_service import PointsService
from veloce.services.boss_service import BossService
from veloce.services.challenge_service import ChallengeService
from veloce.services.goal_service import GoalService
from veloce.services.stats_service import StatsService
from veloce.constants import BOSS_TASK_DAMAGE

logger = logging.getLogger("veloce.tasks")


class TaskService:
    """Service for task management"""

    def __init__(self, db: Session):
        self.db = db
        self.task_repo = TaskRepository()
        self.date_service = DateService()
        self.points_service = PointsService(db)
        self.boss_service = BossService(db)
        self.challenge_service = ChallengeService(db)
        self.goal_service = GoalService(db)
        self.stats_service = StatsService(db)

    # === Recurrence ===

    @staticmethod
    def next_occurrence(task: Task, now: Optional[datetime] = None) -> Optional[datetime]:
        """Next date of a recurring task, based on its completion time (or now)"""
        if not task.is_recurring:
            return None
        base_date = task.completed_at or now or datetime.now()
        return DateService.calculate_next_occurrence(
            RecurrenceType.parse(task.recurring_type),
            base_date,
            DateService.parse_recurring_days(task.recurring_days)
        )

    @staticmethod
    def can_create_next_recurrence(task: Task, now: Optional[datetime] = None) -> bool:
        if not task.is_recurring or not task.is_completed:
            return False
        # one successor per task, even if it is reopened and completed again
        if task.last_recurrence_date is not None:
            return False
        now = now or datetime.now()
        if task.recurring_end_date is not None and now > task.recurring_end_date:
            return False
        return True

    @staticmethod
    def build_recurring_instance(task: Task, now: Optional[datetime] = None) -> Optional[Task]:
        """
        Unsaved copy of a completed recurring task scheduled at its next
        occurrence. None when the series has ended.
        """
        now = now or datetime.now()
        if not TaskService.can_create_next_recurrence(task, now):
            return None
        next_date = TaskService.next_occurrence(task, now)
        if next_date is None:
            return None
        if task.recurring_end_date is not None and next_date > task.recurring_end_date:
            return None

        instance = Task(
            title=task.title,
            context_notes=task.context_notes,
            category=task.category,
            task_type=task.task_type,
            star_rating=task.star_rating,
            estimated_minutes=task.estimated_minutes,
            duration=task.duration,
            scheduled_time=next_date,
            recurring_type=task.recurring_type,
            recurring_days=task.recurring_days,
            recurring_end_date=task.recurring_end_date,
            recurring_parent_id=task.recurring_parent_id or task.id,
            is_completed=False,
            points_earned=0,
        )
        task.last_recurrence_date = now
        return instance

    # === Completion ===

    @staticmethod
    def mark_complete(task: Task, now: Optional[datetime] = None) -> None:
        """Freeze completion time, on-time flag and earned points"""
        now = now or datetime.now()
        points, on_time = PointsService.calculate_completion_points(task.scheduled_time, now)
        task.is_completed = True
        task.completed_at = now
        task.completed_on_time = on_time
        task.points_earned = points

    @staticmethod
    def mark_incomplete(task: Task) -> None:
        task.is_completed = False
        task.completed_at = None
        task.completed_on_time = None
        task.points_earned = 0

    def complete_task(self, task_id: int, now: Optional[datetime] = None) -> dict:
        """
        Complete a task and apply its side effects: points, one hit on the
        weekly boss, challenge progress, the daily streak and the next
        recurring instance. The boss hit, challenge progress and next
        instance happen only the first time a task is completed.
        """
        now = now or datetime.now()
        task = self.get_task(task_id)
        if task.is_completed:
            return {"task": task, "next_instance": None, "level_up": None}

        first_completion = not task.rewards_applied
        self.mark_complete(task, now)
        task.rewards_applied = True
        next_instance = self.build_recurring_instance(task, now)
        self.task_repo.update(self.db, task)

        level_up = self.points_service.award_points(task.points_earned)
        if first_completion:
            self.boss_service.damage_current_boss(BOSS_TASK_DAMAGE, now=now)
            self.challenge_service.on_task_completed(self.goal_service.goal_ids_for_task(task.id), now)
        if self.stats_service.record_task_completion(now):
            self.challenge_service.on_daily_goal_met(now)

        if next_instance is not None:
            next_instance = self.task_repo.create(self.db, next_instance)
            logger.info(f"Recurring task {task.id} scheduled again for {next_instance.scheduled_time}")

        return {"task": task, "next_instance": next_instance, "level_up": level_up}

    def uncomplete_task(self, task_id: int) -> Task:
        """Reopen a task and take back the points it earned"""
        task = self.get_task(task_id)
        if not task.is_completed:
            return task
        earned = task.points_earned or 0
        self.mark_incomplete(task)
        self.task_repo.update(self.db, task)
        if earned:
            self.points_service.revoke_points(earned)
        return task

    # === Read model ===

    def describe(self, task: Task, now: Optional[datetime] = None) -> dict:
        """Derived values shown next to a task"""
        now = now or datetime.now()
        points = self.points_service.potential_points_for_task(task, now)
        energy = self.points_service.energy_state(points)
        return {
            "potential_points": points,
            "energy_state": energy,
            "energy_level": self.points_service.energy_level(points),
            "fill_percentage": energy.fill_percentage,
            "glow_intensity": energy.glow_intensity,
            "is_breathing": energy.is_breathing,
            "is_pulsing": energy.is_pulsing,
            "has_particles": energy.has_particles,
            "is_overdue": task.is_overdue(now),
            "priority_stars": TaskPriority.parse(task.star_rating).stars,
            "estimated_time": self.date_service.format_duration(task.estimated_minutes),
            "recurring_days_text": self.date_service.format_recurring_days(task.recurring_days),
        }

    # === CRUD ===

    def get_task(self, task_id: int) -> Task:
        task = self.task_repo.get_by_id(self.db, task_id)
        if not task:
            raise TaskNotFoundException(task_id)
        return task

    def get_tasks(self, skip: int = 0, limit: int = 100) -> List[Task]:
        return self.task_repo.get_all(self.db, skip, limit)

    def create_task(self, task_data: TaskCreate) -> Task:
        values = task_data.model_dump()
        values["recurring_days"] = self._encode_days(values.get("recurring_days"))
        task = Task(**values)
        task.is_completed = False
        task.points_earned = 0
        return self.task_repo.create(self.db, task)

    def create_from_text(self, lines: List[str]) -> List[Task]:
        """Brain-dump capture: one task per non-empty line, star prefix sets priority"""
        created = []
        for line in lines:
            if not line.strip():
                continue
            priority, title = TaskPriority.parse_prefix(line)
            if not title:
                continue
            created.append(self.create_task(TaskCreate(title=title, star_rating=priority.value)))
        return created

    def update_task(self, task_id: int, task_update: TaskUpdate) -> Task:
        task = self.get_task(task_id)
        update_data = task_update.model_dump(exclude_unset=True)
        if "recurring_days" in update_data:
            update_data["recurring_days"] = self._encode_days(update_data["recurring_days"])
        for key, value in update_data.items():
            setattr(task, key, value)
        return self.task_repo.update(self.db, task)

    def delete_task(self, task_id: int) -> None:
        task = self.get_task(task_id)
        self.task_repo.delete(self.db, task)

    @staticmethod
    def _encode_days(days: Optional[List[int]]) -> Optional[str]:
        if not days:
            return None
        return json.dumps(sorted(set(days)))
