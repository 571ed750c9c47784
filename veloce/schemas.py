import json
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, date
from typing import Dict, List, Optional

from veloce.enums import (
    AIPriority, TaskType, RecurrenceType, GoalCategory, GoalTimeframe,
    GoalTaskLinkType, BossDifficulty, PowerUpType, PowerUpSource, PactCommitmentType
)
from veloce.constants import (
    DEFAULT_DAILY_TASK_GOAL, DEFAULT_WEEKLY_TASK_GOAL, DEFAULT_WEEKLY_BOSS_TARGET,
    DAILY_ROLL_TIME, POWER_UP_MAX_QUANTITY
)

TIME_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"


def _decode_days(value):
    if value is None or isinstance(value, list):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return None


# Task schemas
class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    context_notes: Optional[str] = None
    category: Optional[str] = None
    task_type: Optional[TaskType] = None
    star_rating: int = Field(default=2, ge=1, le=3)  # 1-3 stars
    sort_order: int = 0

    # Time
    estimated_minutes: Optional[int] = Field(None, ge=0)
    actual_minutes: Optional[int] = Field(None, ge=0)
    scheduled_time: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=0)

    # Recurrence
    recurring_type: Optional[RecurrenceType] = None
    recurring_days: Optional[List[int]] = None  # 0-6 for Sun-Sat
    recurring_end_date: Optional[datetime] = None

    @field_validator("recurring_days")
    @classmethod
    def check_days(cls, days):
        if days is not None and any(day < 0 or day > 6 for day in days):
            raise ValueError("recurring days must be between 0 (Sunday) and 6 (Saturday)")
        return days


class TaskCreate(TaskBase):
    class Config:
        use_enum_values = True


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    context_notes: Optional[str] = None
    category: Optional[str] = None
    task_type: Optional[TaskType] = None
    star_rating: Optional[int] = Field(None, ge=1, le=3)
    sort_order: Optional[int] = None
    estimated_minutes: Optional[int] = Field(None, ge=0)
    actual_minutes: Optional[int] = Field(None, ge=0)
    scheduled_time: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=0)
    ai_priority: Optional[AIPriority] = None
    recurring_type: Optional[RecurrenceType] = None
    recurring_days: Optional[List[int]] = None
    recurring_end_date: Optional[datetime] = None

    class Config:
        use_enum_values = True


class TaskResponse(BaseModel):
    id: int
    title: str
    context_notes: Optional[str] = None
    category: Optional[str] = None
    task_type: Optional[str] = None
    star_rating: int = 2
    sort_order: int = 0
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    completed_on_time: Optional[bool] = None
    points_earned: int = 0
    created_at: datetime

    # AI processing
    ai_advice: Optional[str] = None
    ai_priority: Optional[str] = None
    ai_thought_process: Optional[str] = None
    ai_processed_at: Optional[datetime] = None

    estimated_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    scheduled_time: Optional[datetime] = None
    duration: Optional[int] = None

    recurring_type: Optional[str] = None
    recurring_days: Optional[List[int]] = None
    recurring_end_date: Optional[datetime] = None
    recurring_parent_id: Optional[int] = None
    last_recurrence_date: Optional[datetime] = None

    @field_validator("recurring_days", mode="before")
    @classmethod
    def decode_recurring_days(cls, value):
        return _decode_days(value)

    class Config:
        from_attributes = True


class TaskInsightsResponse(BaseModel):
    potential_points: int
    energy_state: str
    energy_level: float
    fill_percentage: float
    glow_intensity: float
    is_breathing: bool
    is_pulsing: bool
    has_particles: bool
    is_overdue: bool
    priority_stars: str
    estimated_time: Optional[str] = None
    recurring_days_text: Optional[str] = None


class LevelUpInfo(BaseModel):
    previous_level: int
    new_level: int
    points_required: int
    total_points: int


class TaskCompletionResponse(BaseModel):
    task: TaskResponse
    next_instance: Optional[TaskResponse] = None
    level_up: Optional[LevelUpInfo] = None


class BrainDumpRequest(BaseModel):
    text: str = Field(..., min_length=1)  # one task per line, "***" prefix for high priority


# Goal schemas
class GoalBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[GoalCategory] = None
    timeframe: Optional[GoalTimeframe] = None
    target_date: Optional[datetime] = None

    # SMART criteria
    is_specific: bool = False
    is_measurable: bool = False
    is_achievable: bool = False
    is_relevant: bool = False
    is_time_bound: bool = False


class GoalCreate(GoalBase):
    class Config:
        use_enum_values = True


class GoalResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    timeframe: Optional[str] = None
    target_date: Optional[datetime] = None
    is_completed: bool = False
    progress: float = 0.0
    completed_at: Optional[datetime] = None
    points_awarded: int = 0
    is_specific: bool = False
    is_measurable: bool = False
    is_achievable: bool = False
    is_relevant: bool = False
    is_time_bound: bool = False
    check_in_streak: int = 0
    last_check_in: Optional[datetime] = None
    milestone_count: int = 0
    completed_milestone_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class GoalProgressUpdate(BaseModel):
    progress: float = Field(..., ge=0.0, le=1.0)


class GoalInsightsResponse(BaseModel):
    smart_score: int
    smart_progress: float
    is_overdue: bool
    days_remaining: Optional[int] = None
    formatted_progress: str
    completion_points: int
    linked_tasks_progress: float = 0.0


class GoalSummaryResponse(BaseModel):
    total: int
    active: int
    completed: int
    overdue: int
    due_soon: int
    average_progress: float
    max_check_in_streak: int


# Milestone schemas
class MilestoneCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    target_date: Optional[datetime] = None
    sort_order: Optional[int] = Field(None, ge=0)
    points_value: Optional[int] = Field(None, ge=0)


class MilestoneResponse(BaseModel):
    id: int
    goal_id: int
    title: str
    description: Optional[str] = None
    target_date: Optional[datetime] = None
    sort_order: int = 0
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    points_value: int = 0

    class Config:
        from_attributes = True


class MilestoneSummaryResponse(BaseModel):
    goal_id: int
    milestones: List[MilestoneResponse]
    completed_count: int
    total_count: int
    progress: float
    progress_string: str
    total_points_value: int
    earned_points: int
    next_milestone_id: Optional[int] = None
    overdue_ids: List[int] = []
    due_soon_ids: List[int] = []


# Goal-task link schemas
class LinkCreate(BaseModel):
    task_id: int
    link_type: GoalTaskLinkType = GoalTaskLinkType.DIRECT_ACTION
    milestone_id: Optional[int] = None
    suggested: bool = False  # suggestions wait for approval


class LinkResponse(BaseModel):
    id: int
    goal_id: int
    task_id: int
    milestone_id: Optional[int] = None
    link_type: str
    is_approved: bool
    is_pending: bool
    is_rejected: bool
    approved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Daily challenge schemas
class ChallengeResponse(BaseModel):
    id: int
    challenge_type: str
    title: str
    description: str = ""
    target_value: int
    current_value: int = 0
    xp_reward: int = 0
    linked_goal_id: Optional[int] = None
    challenge_date: date
    expires_at: datetime
    is_completed: bool = False
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProgressUpdate(BaseModel):
    value: int = Field(..., ge=0)


# Weekly boss schemas
class BossResponse(BaseModel):
    id: int
    name: str
    appearance: str
    difficulty: str
    total_health: int
    current_health: int
    damage_dealt: int = 0
    xp_reward: int
    linked_goal_id: Optional[int] = None
    week_start: datetime
    is_defeated: bool = False
    defeated_at: Optional[datetime] = None
    critical_hits: int = 0
    tasks_defeated: int = 0

    class Config:
        from_attributes = True


class BossDamage(BaseModel):
    amount: int = Field(default=1, ge=1, le=100)
    critical: bool = False


class BossStatusResponse(BossResponse):
    health_progress: float
    damage_progress: float
    is_low_health: bool
    is_critical_health: bool
    is_expired: bool
    week_end: datetime
    time_remaining: str
    taunt: str
    defeat_message: Optional[str] = None
    bonus_xp: int


# Power-up schemas
class PowerUpResponse(BaseModel):
    id: int
    power_up_type: str
    quantity: int = 0
    is_active: bool = False
    activated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    earned_from: Optional[str] = None

    class Config:
        from_attributes = True


class PowerUpGrant(BaseModel):
    power_up_type: PowerUpType
    amount: int = Field(default=1, ge=1, le=POWER_UP_MAX_QUANTITY)
    source: Optional[PowerUpSource] = None


class PowerUpSummaryResponse(BaseModel):
    items: List[PowerUpResponse]
    total_count: int
    active: Dict[str, str]  # type -> countdown
    has_xp_boost: bool
    has_streak_shield: bool
    has_goal_accelerator: bool
    has_focus_force_field: bool
    has_combo_keeper: bool


# Pact schemas
class PactCreate(BaseModel):
    initiator_id: int
    partner_id: int
    commitment_type: PactCommitmentType = PactCommitmentType.DAILY_TASKS
    target_value: Optional[int] = Field(None, ge=1)
    custom_description: Optional[str] = Field(None, max_length=500)


class PactResponse(BaseModel):
    id: int
    initiator_id: int
    partner_id: int
    commitment_type: str
    target_value: int
    custom_description: Optional[str] = None
    status: str
    accepted_at: Optional[datetime] = None
    broken_at: Optional[datetime] = None
    broken_by_user_id: Optional[int] = None
    current_streak: int = 0
    longest_streak: int = 0
    initiator_completed_today: bool = False
    partner_completed_today: bool = False
    last_checked_date: Optional[date] = None
    shield_active: bool = False
    shield_used_at: Optional[datetime] = None
    xp_earned: int = 0
    milestones_reached: List[int] = []

    @field_validator("milestones_reached", mode="before")
    @classmethod
    def decode_milestones(cls, value):
        return _decode_days(value) or []

    class Config:
        from_attributes = True


class PactMemberAction(BaseModel):
    user_id: int


class PactProgressRecord(BaseModel):
    user_id: int
    current_value: int = Field(..., ge=0)


class PactStatusResponse(BaseModel):
    pact_id: int
    user_status: str
    status_text: str
    commitment_description: str
    next_milestone: Optional[int] = None
    days_until_next_milestone: Optional[int] = None


class PactEvaluationResponse(BaseModel):
    extended: int = 0
    shielded: int = 0
    broken: int = 0


# Settings schemas
class SettingsBase(BaseModel):
    daily_task_goal: int = Field(default=DEFAULT_DAILY_TASK_GOAL, ge=1, le=100)
    weekly_task_goal: int = Field(default=DEFAULT_WEEKLY_TASK_GOAL, ge=1, le=500)
    weekly_boss_target: int = Field(default=DEFAULT_WEEKLY_BOSS_TARGET, ge=1, le=500)
    boss_difficulty: BossDifficulty = BossDifficulty.NORMAL

    # Generation jobs
    auto_generation_enabled: bool = Field(default=True)
    nightly_roll_time: str = Field(default=DAILY_ROLL_TIME, pattern=TIME_PATTERN)


class SettingsUpdate(SettingsBase):
    class Config:
        use_enum_values = True


class SettingsResponse(SettingsBase):
    id: int
    last_nightly_roll_date: Optional[date] = None

    class Config:
        from_attributes = True


# Stats schemas
class LevelResponse(BaseModel):
    total_points: int
    level: int
    level_progress: float
    points_to_next_level: int


class VelocityResponse(BaseModel):
    streak_score: float
    completion_score: float
    focus_score: float
    on_time_score: float
    total: int
    tier: str
    message: str


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    done_today: int
    daily_task_goal: int


# Strategy schemas
class StrategyPayload(BaseModel):
    """Advice JSON as returned by the remote model"""
    overview: str
    key_points: List[str]
    actionable_steps: List[str]
    potential_obstacles: Optional[List[str]] = None
    estimated_minutes: Optional[int] = None
    thought_process: Optional[str] = None


class StrategyRequest(BaseModel):
    raw_response: Optional[str] = None  # remote advice JSON; empty means use the fallback


class StrategyResponse(StrategyPayload):
    task_id: int
    generated_at: datetime
    expires_at: datetime
    is_fallback: bool = False
    formatted: Optional[str] = None
    summary: Optional[str] = None