"""
Task repository - Data access layer for Task model.
Handles all database queries related to tasks.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_, func

from veloce.models import Task


class TaskRepository:
    """Repository for Task data access"""

    @staticmethod
    def get_by_id(db: Session, task_id: int) -> Optional[Task]:
        """Get task by ID"""
        return db.query(Task).filter(Task.id == task_id).first()

    @staticmethod
    def get_all(db: Session, skip: int = 0, limit: int = 100) -> List[Task]:
        """Get all tasks with pagination"""
        return db.query(Task).order_by(Task.sort_order, Task.id).offset(skip).limit(limit).all()

    @staticmethod
    def get_open_tasks(db: Session) -> List[Task]:
        """Get all tasks that are not completed"""
        return db.query(Task).filter(Task.is_completed == False).order_by(Task.sort_order).all()

    @staticmethod
    def get_by_ids(db: Session, task_ids: List[int]) -> List[Task]:
        """Get tasks whose ID is in the given list"""
        if not task_ids:
            return []
        return db.query(Task).filter(Task.id.in_(task_ids)).all()

    @staticmethod
    def get_completed_tasks(
        db: Session,
        start_time: datetime,
        end_time: datetime
    ) -> List[Task]:
        """Get tasks completed in time range"""
        return db.query(Task).filter(
            and_(
                Task.is_completed == True,
                Task.completed_at >= start_time,
                Task.completed_at < end_time
            )
        ).all()

    @staticmethod
    def get_completed_count(
        db: Session,
        start_time: datetime,
        end_time: datetime
    ) -> int:
        """Count tasks completed in time range"""
        return db.query(Task).filter(
            and_(
                Task.is_completed == True,
                Task.completed_at >= start_time,
                Task.completed_at < end_time
            )
        ).count()

    @staticmethod
    def get_total_completed_count(db: Session) -> int:
        """Count all completed tasks"""
        return db.query(Task).filter(Task.is_completed == True).count()

    @staticmethod
    def get_on_time_count(db: Session) -> int:
        """Count completed tasks that were finished by their scheduled time"""
        return db.query(Task).filter(
            and_(
                Task.is_completed == True,
                Task.completed_on_time == True
            )
        ).count()

    @staticmethod
    def get_focus_minutes(
        db: Session,
        start_time: datetime,
        end_time: datetime
    ) -> int:
        """Sum of actual minutes worked on tasks completed in time range"""
        total = db.query(func.sum(Task.actual_minutes)).filter(
            and_(
                Task.is_completed == True,
                Task.completed_at >= start_time,
                Task.completed_at < end_time
            )
        ).scalar()
        return int(total or 0)

    @staticmethod
    def get_recurring_instances(db: Session, parent_id: int) -> List[Task]:
        """Get all instances generated from a recurring parent"""
        return db.query(Task).filter(Task.recurring_parent_id == parent_id).all()

    @staticmethod
    def create(db: Session, task: Task) -> Task:
        """Create a new task"""
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def update(db: Session, task: Task) -> Task:
        """Update existing task"""
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def delete(db: Session, task: Task) -> None:
        """Delete a task"""
        db.delete(task)
        db.commit()
