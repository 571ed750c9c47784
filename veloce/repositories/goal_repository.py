"""
Goal repository - Data access layer for goals, milestones and goal-task links.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_

from veloce.models import Goal, GoalMilestone, GoalTaskLink


class GoalRepository:
    """Repository for Goal data access"""

    @staticmethod
    def get_by_id(db: Session, goal_id: int) -> Optional[Goal]:
        """Get goal by ID"""
        return db.query(Goal).filter(Goal.id == goal_id).first()

    @staticmethod
    def get_all(db: Session) -> List[Goal]:
        """Get all goals, oldest first"""
        return db.query(Goal).order_by(Goal.created_at, Goal.id).all()

    @staticmethod
    def get_active(db: Session) -> List[Goal]:
        """Get goals that are not completed, oldest first"""
        return db.query(Goal).filter(
            Goal.is_completed == False
        ).order_by(Goal.created_at, Goal.id).all()

    @staticmethod
    def get_by_timeframe(db: Session, timeframe: str) -> List[Goal]:
        """Get goals in a timeframe bucket"""
        return db.query(Goal).filter(Goal.timeframe == timeframe).all()

    @staticmethod
    def create(db: Session, goal: Goal) -> Goal:
        """Create a new goal"""
        db.add(goal)
        db.commit()
        db.refresh(goal)
        return goal

    @staticmethod
    def update(db: Session, goal: Goal) -> Goal:
        """Update existing goal"""
        db.commit()
        db.refresh(goal)
        return goal

    @staticmethod
    def delete(db: Session, goal: Goal) -> None:
        """Delete a goal"""
        db.delete(goal)
        db.commit()


class MilestoneRepository:
    """Repository for GoalMilestone data access"""

    @staticmethod
    def get_by_id(db: Session, milestone_id: int) -> Optional[GoalMilestone]:
        """Get milestone by ID"""
        return db.query(GoalMilestone).filter(GoalMilestone.id == milestone_id).first()

    @staticmethod
    def get_for_goal(db: Session, goal_id: int) -> List[GoalMilestone]:
        """Get all milestones of a goal in sort order"""
        return db.query(GoalMilestone).filter(
            GoalMilestone.goal_id == goal_id
        ).order_by(GoalMilestone.sort_order, GoalMilestone.id).all()

    @staticmethod
    def get_overdue(db: Session, now: datetime) -> List[GoalMilestone]:
        """Get incomplete milestones whose target date has passed"""
        return db.query(GoalMilestone).filter(
            and_(
                GoalMilestone.is_completed == False,
                GoalMilestone.target_date < now
            )
        ).all()

    @staticmethod
    def create(db: Session, milestone: GoalMilestone) -> GoalMilestone:
        """Create a new milestone"""
        db.add(milestone)
        db.commit()
        db.refresh(milestone)
        return milestone

    @staticmethod
    def update(db: Session, milestone: GoalMilestone) -> GoalMilestone:
        """Update existing milestone"""
        db.commit()
        db.refresh(milestone)
        return milestone

    @staticmethod
    def delete(db: Session, milestone: GoalMilestone) -> None:
        """Delete a milestone"""
        db.delete(milestone)
        db.commit()


class GoalTaskLinkRepository:
    """Repository for GoalTaskLink data access"""

    @staticmethod
    def get_by_id(db: Session, link_id: int) -> Optional[GoalTaskLink]:
        """Get link by ID"""
        return db.query(GoalTaskLink).filter(GoalTaskLink.id == link_id).first()

    @staticmethod
    def get_for_goal(db: Session, goal_id: int) -> List[GoalTaskLink]:
        """Get all links of a goal"""
        return db.query(GoalTaskLink).filter(GoalTaskLink.goal_id == goal_id).all()

    @staticmethod
    def get_approved_for_goal(db: Session, goal_id: int) -> List[GoalTaskLink]:
        """Get approved links of a goal"""
        return db.query(GoalTaskLink).filter(
            and_(
                GoalTaskLink.goal_id == goal_id,
                GoalTaskLink.is_approved == True,
                GoalTaskLink.is_rejected == False
            )
        ).all()

    @staticmethod
    def get_for_task(db: Session, task_id: int) -> List[GoalTaskLink]:
        """Get all links pointing at a task"""
        return db.query(GoalTaskLink).filter(GoalTaskLink.task_id == task_id).all()

    @staticmethod
    def create(db: Session, link: GoalTaskLink) -> GoalTaskLink:
        """Create a new link"""
        db.add(link)
        db.commit()
        db.refresh(link)
        return link

    @staticmethod
    def update(db: Session, link: GoalTaskLink) -> GoalTaskLink:
        """Update existing link"""
        db.commit()
        db.refresh(link)
        return link
