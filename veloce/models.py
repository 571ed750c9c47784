from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Date, Text
from datetime import datetime
from veloce.database import Base
from veloce.constants import (
    MILESTONE_DEFAULT_POINTS, BOSS_DEFAULT_BASE_HEALTH, BOSS_DEFAULT_XP_REWARD,
    DEFAULT_DAILY_TASK_GOAL, DEFAULT_WEEKLY_TASK_GOAL, DEFAULT_WEEKLY_BOSS_TARGET,
    DAILY_ROLL_TIME
)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    context_notes = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    task_type = Column(String, nullable=True)  # create, communicate, consume, coordinate
    star_rating = Column(Integer, default=2)   # 1-3 stars
    sort_order = Column(Integer, default=0)

    is_completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
    completed_on_time = Column(Boolean, nullable=True)
    points_earned = Column(Integer, default=0)  # frozen on completion
    rewards_applied = Column(Boolean, default=False)  # boss hit and challenge progress already dealt
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # AI metadata
    ai_advice = Column(Text, nullable=True)
    ai_priority = Column(String, nullable=True)  # low, medium, high
    ai_thought_process = Column(Text, nullable=True)
    ai_processed_at = Column(DateTime, nullable=True)

    # Scheduling (minutes)
    estimated_minutes = Column(Integer, nullable=True)
    actual_minutes = Column(Integer, nullable=True)
    scheduled_time = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=True)

    # Recurrence
    recurring_type = Column(String, nullable=True)   # once, daily, weekdays, weekly, biweekly, monthly, custom
    recurring_days = Column(String, nullable=True)   # JSON array, 0-6 for Sun-Sat: "[1,3]"
    recurring_end_date = Column(DateTime, nullable=True)
    recurring_parent_id = Column(Integer, nullable=True)
    last_recurrence_date = Column(DateTime, nullable=True)

    def is_overdue(self, now: datetime) -> bool:
        """Scheduled in the past and still open"""
        if self.scheduled_time is None:
            return False
        return not self.is_completed and self.scheduled_time < now

    @property
    def has_ai_processing(self) -> bool:
        return self.ai_advice is not None or self.ai_thought_process is not None

    @property
    def is_recurring(self) -> bool:
        return self.recurring_type is not None and self.recurring_type != "once"


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    timeframe = Column(String, nullable=True)  # sprint, milestone, horizon
    target_date = Column(DateTime, nullable=True)

    is_completed = Column(Boolean, default=False)
    progress = Column(Float, default=0.0)  # 0.0 - 1.0, authoritative
    completed_at = Column(DateTime, nullable=True)
    points_awarded = Column(Integer, default=0)

    # SMART flags
    is_specific = Column(Boolean, default=False)
    is_measurable = Column(Boolean, default=False)
    is_achievable = Column(Boolean, default=False)
    is_relevant = Column(Boolean, default=False)
    is_time_bound = Column(Boolean, default=False)

    # Check-ins and milestone counters
    check_in_streak = Column(Integer, default=0)
    last_check_in = Column(DateTime, nullable=True)
    milestone_count = Column(Integer, default=0)
    completed_milestone_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class GoalMilestone(Base):
    __tablename__ = "goal_milestones"

    id = Column(Integer, primary_key=True, index=True)
    goal_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    target_date = Column(DateTime, nullable=True)
    sort_order = Column(Integer, default=0)

    is_completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
    points_value = Column(Integer, default=MILESTONE_DEFAULT_POINTS)
    critical_hit_dealt = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.now)


class GoalTaskLink(Base):
    __tablename__ = "goal_task_links"

    id = Column(Integer, primary_key=True, index=True)
    goal_id = Column(Integer, nullable=False, index=True)
    task_id = Column(Integer, nullable=False, index=True)
    milestone_id = Column(Integer, nullable=True)
    link_type = Column(String, default="direct_action")

    is_approved = Column(Boolean, default=True)
    is_pending = Column(Boolean, default=False)  # suggestion awaiting approval
    is_rejected = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.now)
    approved_at = Column(DateTime, nullable=True)


class DailyChallenge(Base):
    __tablename__ = "daily_challenges"

    id = Column(Integer, primary_key=True, index=True)
    challenge_type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(String, default="")
    target_value = Column(Integer, nullable=False)
    current_value = Column(Integer, default=0)
    xp_reward = Column(Integer, default=0)
    linked_goal_id = Column(Integer, nullable=True)
    challenge_date = Column(Date, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)

    is_completed = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class WeeklyBoss(Base):
    __tablename__ = "weekly_bosses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    appearance = Column(String, default="void_vanguard")
    difficulty = Column(String, default="normal")
    total_health = Column(Integer, default=BOSS_DEFAULT_BASE_HEALTH)
    current_health = Column(Integer, default=BOSS_DEFAULT_BASE_HEALTH)
    damage_dealt = Column(Integer, default=0)
    xp_reward = Column(Integer, default=BOSS_DEFAULT_XP_REWARD)
    linked_goal_id = Column(Integer, nullable=True)
    week_start = Column(DateTime, nullable=False, index=True)

    is_defeated = Column(Boolean, default=False)
    defeated_at = Column(DateTime, nullable=True)
    critical_hits = Column(Integer, default=0)   # milestone completions
    tasks_defeated = Column(Integer, default=0)  # regular task completions
    created_at = Column(DateTime, default=datetime.now)


class PowerUp(Base):
    __tablename__ = "power_ups"

    id = Column(Integer, primary_key=True, index=True)
    power_up_type = Column(String, nullable=False, unique=True)
    quantity = Column(Integer, default=0)
    is_active = Column(Boolean, default=False)
    activated_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    earned_from = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class Pact(Base):
    __tablename__ = "pacts"

    id = Column(Integer, primary_key=True, index=True)
    initiator_id = Column(Integer, nullable=False)
    partner_id = Column(Integer, nullable=False)

    commitment_type = Column(String, default="daily_tasks")
    target_value = Column(Integer, default=3)
    custom_description = Column(String, nullable=True)

    status = Column(String, default="pending")  # pending, active, completed, broken
    accepted_at = Column(DateTime, nullable=True)
    broken_at = Column(DateTime, nullable=True)
    broken_by_user_id = Column(Integer, nullable=True)

    current_streak = Column(Integer, default=0)
    longest_streak = Column(Integer, default=0)
    initiator_completed_today = Column(Boolean, default=False)
    partner_completed_today = Column(Boolean, default=False)
    last_checked_date = Column(Date, nullable=True)

    shield_active = Column(Boolean, default=False)
    shield_used_at = Column(DateTime, nullable=True)

    xp_earned = Column(Integer, default=0)
    milestones_reached = Column(String, default="[]")  # JSON array: "[7,30]"

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class Settings(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    daily_task_goal = Column(Integer, default=DEFAULT_DAILY_TASK_GOAL)
    weekly_task_goal = Column(Integer, default=DEFAULT_WEEKLY_TASK_GOAL)
    weekly_boss_target = Column(Integer, default=DEFAULT_WEEKLY_BOSS_TARGET)
    boss_difficulty = Column(String, default="normal")

    # Generation jobs
    auto_generation_enabled = Column(Boolean, default=True)
    nightly_roll_time = Column(String, default=DAILY_ROLL_TIME)  # HH:MM
    last_nightly_roll_date = Column(Date, nullable=True)


class UserStats(Base):
    __tablename__ = "user_stats"

    id = Column(Integer, primary_key=True, index=True)
    total_points = Column(Integer, default=0)
    current_streak = Column(Integer, default=0)
    longest_streak = Column(Integer, default=0)
    last_streak_date = Column(Date, nullable=True)  # last day the daily goal was met
