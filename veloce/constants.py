"""
Application constants.
Point values, thresholds and defaults used by the scoring services.
"""

# Environment defaults
DEFAULT_DB_URL = "sqlite:///./veloce.db"
DEFAULT_API_KEY = "your-secret-key-change-me"
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/veloce"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"
DEFAULT_LOG_FILE = "app.log"
CORS_ALLOWED_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]

# Task points
POINTS_TASK_COMPLETE = 10
POINTS_ON_TIME_BONUS = 5
POTENTIAL_POINTS_MIN = 10
POTENTIAL_POINTS_MAX = 100
PRIORITY_BONUS_HIGH = 15
PRIORITY_BONUS_MEDIUM = 5
STAR_RATING_BONUS = 5
AI_PROCESSING_BONUS = 5
SCHEDULED_BONUS = 5
DURATION_BONUS_DIVISOR = 10
DURATION_BONUS_CAP = 20
OVERDUE_PENALTY = 10

# Energy bands (inclusive upper bounds)
ENERGY_LOW_THRESHOLD = 25
ENERGY_MEDIUM_THRESHOLD = 50
ENERGY_HIGH_THRESHOLD = 75

# Levels
LEVEL_POINTS_FACTOR = 50
LEVEL_POINTS_EXPONENT = 1.5

# Milestones
MILESTONE_DEFAULT_POINTS = 50
MILESTONE_DUE_SOON_DAYS = 3
GOAL_DUE_SOON_DAYS = 7
GOAL_FULL_PROGRESS_BONUS = 50
GOAL_DEFAULT_COMPLETION_POINTS = 100
CHECK_IN_INTERVAL_DAYS = 7

# Recurrence
CUSTOM_RECURRENCE_SCAN_DAYS = 7

# Weekly boss
BOSS_DEFAULT_BASE_HEALTH = 20
BOSS_DEFAULT_XP_REWARD = 200
BOSS_MIN_HEALTH = 10
BOSS_BASE_XP = 100
BOSS_XP_PER_TARGET = 5
BOSS_TASK_DAMAGE = 1
BOSS_CRITICAL_DAMAGE = 2
BOSS_SPEED_BONUS_FAST = 50
BOSS_SPEED_BONUS_MEDIUM = 25
BOSS_SPEED_FAST_DAYS = 3
BOSS_SPEED_MEDIUM_DAYS = 5
BOSS_CRITICAL_BONUS = 10
BOSS_OVERKILL_MULTIPLIER = 5
BOSS_OVERKILL_CAP = 100
BOSS_LOW_HEALTH = 0.25
BOSS_CRITICAL_HEALTH = 0.1
BOSS_WEEK_DAYS = 7

# Daily challenges
CHALLENGE_GOAL_SPRINT_TARGET = 2
CHALLENGE_TASK_MASTER_TARGET = 5
CHALLENGE_EARLY_BIRD_TARGET = 1
CHALLENGE_FOCUS_MINUTES_TARGET = 30
CHALLENGE_STREAK_TARGET = 1
CHALLENGE_MOMENTUM_TARGET = 3
CHALLENGE_STREAK_BASE_XP = 30
CHALLENGE_STREAK_XP_PER_DAY = 2
CHALLENGE_SPRINT_TITLE_LENGTH = 20
EARLY_BIRD_CUTOFF_HOUR = 12

# Power-ups
POWER_UP_MAX_QUANTITY = 3

# Pacts
PACT_MILESTONES = (7, 30, 100)
PACT_XP_PER_STREAK_DAY = 50

# User streak
DEFAULT_DAILY_TASK_GOAL = 5
DEFAULT_WEEKLY_TASK_GOAL = 25
DEFAULT_WEEKLY_BOSS_TARGET = 20

# Velocity score
VELOCITY_COMPONENT_MAX = 25.0
VELOCITY_MIN_STREAK_BASELINE = 7
VELOCITY_DEFAULT_ON_TIME_RATIO = 0.5
VELOCITY_FOCUS_GOAL_MINUTES = 5 * 60

# AI strategy
STRATEGY_TTL_HOURS = 4
FALLBACK_STRATEGY_TTL_HOURS = 1

# Scheduler
DAILY_ROLL_TIME = "00:05"
